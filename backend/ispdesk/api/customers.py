"""Customer endpoints."""

from datetime import date
from decimal import Decimal

import structlog
from fastapi import APIRouter, Depends, HTTPException, Query, Request, status
from pydantic import BaseModel, Field, field_validator
from sqlalchemy.ext.asyncio import AsyncSession

from ispdesk.api.deps import get_city_or_404, get_customer_or_404, get_today, resolve_period
from ispdesk.api.schemas import (
    AdditionalRouter,
    CustomerResponse,
    SnapshotResponse,
    customer_to_response,
    snapshot_to_response,
)
from ispdesk.core.audit import AuditAction, audit_log
from ispdesk.core.cache import invalidate_revenue_views
from ispdesk.core.limiter import limiter
from ispdesk.core.public_id import CUSTOMER_PREFIX, generate_public_id
from ispdesk.db.session import get_db
from ispdesk.middleware.request_tracing import client_ip
from ispdesk.models.customer import Customer
from ispdesk.services import repository
from ispdesk.services.receivables import build_snapshot
from ispdesk.services.records import CustomerRecord

logger = structlog.get_logger()

router = APIRouter(prefix="/customers", tags=["customers"])

# Non-nullable columns that an update may change but not clear
_REQUIRED_FIELDS = (
    "name",
    "subscription_value",
    "setup_fee_total",
    "setup_fee_paid",
    "additional_routers",
)


def _strip_optional(v: str | None) -> str | None:
    if v is None:
        return None
    v = v.strip()
    return v or None


class CustomerCreate(BaseModel):
    """Customer creation schema."""

    city_id: str
    name: str = Field(..., min_length=1, max_length=255)
    phone: str | None = Field(default=None, max_length=50)
    notes: str | None = None
    user_name: str | None = Field(default=None, max_length=100)
    ip_number: str | None = Field(default=None, max_length=64)
    additional_routers: list[AdditionalRouter] = Field(default_factory=list)
    lap: str | None = Field(default=None, max_length=100)
    site: str | None = Field(default=None, max_length=255)
    start_date: date | None = None
    subscription_value: Decimal = Field(default=Decimal("0"), ge=0, max_digits=12, decimal_places=2)
    setup_fee_total: Decimal = Field(default=Decimal("0"), ge=0, max_digits=12, decimal_places=2)
    setup_fee_paid: Decimal = Field(default=Decimal("0"), ge=0, max_digits=12, decimal_places=2)

    @field_validator("name")
    @classmethod
    def validate_name(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("Customer name cannot be empty")
        return v

    @field_validator("user_name", "ip_number", "phone")
    @classmethod
    def strip_identifiers(cls, v: str | None) -> str | None:
        return _strip_optional(v)


class CustomerUpdate(BaseModel):
    """Customer update schema. City changes go through the transfer endpoint."""

    name: str | None = Field(default=None, min_length=1, max_length=255)
    phone: str | None = Field(default=None, max_length=50)
    notes: str | None = None
    user_name: str | None = Field(default=None, max_length=100)
    ip_number: str | None = Field(default=None, max_length=64)
    additional_routers: list[AdditionalRouter] | None = None
    lap: str | None = Field(default=None, max_length=100)
    site: str | None = Field(default=None, max_length=255)
    start_date: date | None = None
    subscription_value: Decimal | None = Field(default=None, ge=0, max_digits=12, decimal_places=2)
    setup_fee_total: Decimal | None = Field(default=None, ge=0, max_digits=12, decimal_places=2)
    setup_fee_paid: Decimal | None = Field(default=None, ge=0, max_digits=12, decimal_places=2)

    @field_validator("name")
    @classmethod
    def validate_name(cls, v: str | None) -> str | None:
        if v is None:
            return None
        v = v.strip()
        if not v:
            raise ValueError("Customer name cannot be empty")
        return v

    @field_validator("user_name", "ip_number", "phone")
    @classmethod
    def strip_identifiers(cls, v: str | None) -> str | None:
        return _strip_optional(v)


class TransferRequest(BaseModel):
    """Move a customer to another city."""

    city_id: str


async def _ensure_unique_router(
    db: AsyncSession,
    city_id: str,
    user_name: str | None,
    ip_number: str | None,
    exclude_id: str | None = None,
) -> None:
    """Raise 409 when another customer in the city uses the same router identity."""
    conflict = await repository.find_router_conflict(
        db, city_id, user_name, ip_number, exclude_id=exclude_id
    )
    if conflict is None:
        return

    field = "user_name" if user_name and conflict.user_name == user_name else "ip_number"
    raise HTTPException(
        status_code=status.HTTP_409_CONFLICT,
        detail=f"Another customer in this city already uses this {field}",
    )


@router.get("", response_model=list[CustomerResponse])
async def list_customers(
    city_id: str | None = Query(default=None),
    q: str | None = Query(default=None, description="Search name, user name or phone"),
    suspended: bool | None = Query(default=None),
    discounted: bool | None = Query(default=None),
    exempt: bool | None = Query(default=None),
    db: AsyncSession = Depends(get_db),
) -> list[CustomerResponse]:
    """List customers, optionally filtered."""
    customers = await repository.list_customers(
        db,
        city_id=city_id,
        query=q,
        suspended=suspended,
        discounted=discounted,
        exempt=exempt,
    )
    return [customer_to_response(customer) for customer in customers]


@router.post("", response_model=CustomerResponse, status_code=status.HTTP_201_CREATED)
@limiter.limit("60/minute")
async def create_customer(
    request: Request,
    customer_data: CustomerCreate,
    db: AsyncSession = Depends(get_db),
) -> CustomerResponse:
    """Create a customer.

    Args:
        request: HTTP request (for rate limiting)
        customer_data: Customer fields
        db: Database session

    Returns:
        Created customer

    Raises:
        HTTPException: 404 if the city does not exist, 409 on a duplicate
            user_name or ip_number within the city
    """
    await get_city_or_404(db, customer_data.city_id)
    await _ensure_unique_router(
        db, customer_data.city_id, customer_data.user_name, customer_data.ip_number
    )

    data = customer_data.model_dump()
    customer = Customer(
        id=generate_public_id(CUSTOMER_PREFIX),
        monthly_payments={},
        partial_payments={},
        has_discount=False,
        discount_amount=Decimal("0"),
        is_suspended=False,
        is_exempt=False,
        **data,
    )
    db.add(customer)
    await db.commit()
    await db.refresh(customer)
    await invalidate_revenue_views()

    logger.info("customer_created", customer_id=customer.id, city_id=customer.city_id)
    audit_log(
        AuditAction.CUSTOMER_CREATE,
        resource_type="customer",
        resource_id=customer.id,
        ip_address=client_ip(request),
    )
    return customer_to_response(customer)


@router.get("/{customer_id}", response_model=CustomerResponse)
async def get_customer(
    customer_id: str,
    db: AsyncSession = Depends(get_db),
) -> CustomerResponse:
    """Get a customer by id."""
    return customer_to_response(await get_customer_or_404(db, customer_id))


@router.put("/{customer_id}", response_model=CustomerResponse)
@limiter.limit("60/minute")
async def update_customer(
    request: Request,
    customer_id: str,
    update_data: CustomerUpdate,
    db: AsyncSession = Depends(get_db),
) -> CustomerResponse:
    """Update a customer's fields."""
    customer = await get_customer_or_404(db, customer_id)
    updates = update_data.model_dump(exclude_unset=True)

    for field in _REQUIRED_FIELDS:
        if field in updates and updates[field] is None:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail=f"{field} cannot be cleared",
            )

    if "user_name" in updates or "ip_number" in updates:
        await _ensure_unique_router(
            db,
            customer.city_id,
            updates.get("user_name"),
            updates.get("ip_number"),
            exclude_id=customer.id,
        )

    for field, value in updates.items():
        setattr(customer, field, value)

    await db.commit()
    await invalidate_revenue_views()

    audit_log(
        AuditAction.CUSTOMER_UPDATE,
        resource_type="customer",
        resource_id=customer.id,
        details={"fields": sorted(updates)},
        ip_address=client_ip(request),
    )
    return customer_to_response(customer)


@router.delete("/{customer_id}", status_code=status.HTTP_204_NO_CONTENT)
@limiter.limit("30/minute")
async def delete_customer(
    request: Request,
    customer_id: str,
    db: AsyncSession = Depends(get_db),
) -> None:
    """Delete a customer."""
    customer = await get_customer_or_404(db, customer_id)
    await db.delete(customer)
    await db.commit()
    await invalidate_revenue_views()

    logger.info("customer_deleted", customer_id=customer_id)
    audit_log(
        AuditAction.CUSTOMER_DELETE,
        resource_type="customer",
        resource_id=customer_id,
        ip_address=client_ip(request),
    )


@router.post("/{customer_id}/transfer", response_model=CustomerResponse)
@limiter.limit("30/minute")
async def transfer_customer(
    request: Request,
    customer_id: str,
    transfer: TransferRequest,
    db: AsyncSession = Depends(get_db),
) -> CustomerResponse:
    """Move a customer to another city.

    Raises:
        HTTPException: 400 for the customer's own city, 404 for an unknown
            city, 409 if the router identity is taken in the target city
    """
    customer = await get_customer_or_404(db, customer_id)
    if transfer.city_id == customer.city_id:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Customer is already in this city",
        )

    target = await get_city_or_404(db, transfer.city_id)
    await _ensure_unique_router(
        db, target.id, customer.user_name, customer.ip_number, exclude_id=customer.id
    )

    source_city_id = customer.city_id
    customer.city_id = target.id
    await db.commit()
    await invalidate_revenue_views()

    audit_log(
        AuditAction.CUSTOMER_TRANSFER,
        resource_type="customer",
        resource_id=customer.id,
        details={"from_city_id": source_city_id, "to_city_id": target.id},
        ip_address=client_ip(request),
    )
    return customer_to_response(customer)


@router.post("/{customer_id}/suspend", response_model=CustomerResponse)
@limiter.limit("30/minute")
async def toggle_suspension(
    request: Request,
    customer_id: str,
    db: AsyncSession = Depends(get_db),
    today: date = Depends(get_today),
) -> CustomerResponse:
    """Suspend an active customer or resume a suspended one."""
    customer = await get_customer_or_404(db, customer_id)
    customer.is_suspended = not customer.is_suspended
    customer.suspended_date = today if customer.is_suspended else None
    await db.commit()
    await invalidate_revenue_views()

    audit_log(
        AuditAction.CUSTOMER_SUSPEND if customer.is_suspended else AuditAction.CUSTOMER_RESUME,
        resource_type="customer",
        resource_id=customer.id,
        ip_address=client_ip(request),
    )
    return customer_to_response(customer)


@router.post("/{customer_id}/exempt", response_model=CustomerResponse)
@limiter.limit("30/minute")
async def toggle_exemption(
    request: Request,
    customer_id: str,
    db: AsyncSession = Depends(get_db),
) -> CustomerResponse:
    """Exclude a customer from revenue, or include them again."""
    customer = await get_customer_or_404(db, customer_id)
    customer.is_exempt = not customer.is_exempt
    await db.commit()
    await invalidate_revenue_views()

    audit_log(
        AuditAction.CUSTOMER_EXEMPT if customer.is_exempt else AuditAction.CUSTOMER_UNEXEMPT,
        resource_type="customer",
        resource_id=customer.id,
        ip_address=client_ip(request),
    )
    return customer_to_response(customer)


@router.get("/{customer_id}/receivable", response_model=SnapshotResponse)
async def get_receivable(
    customer_id: str,
    year: int | None = Query(default=None, ge=1900, le=9999),
    month: int | None = Query(default=None, ge=1, le=12),
    db: AsyncSession = Depends(get_db),
    today: date = Depends(get_today),
) -> SnapshotResponse:
    """Receivable snapshot of a customer for a reporting month."""
    customer = await get_customer_or_404(db, customer_id)
    year, month = resolve_period(year, month, today)
    snapshot = build_snapshot(CustomerRecord.from_model(customer), year, month)
    return snapshot_to_response(snapshot)
