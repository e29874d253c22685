"""Subscription discount endpoints."""

from decimal import Decimal

import structlog
from fastapi import APIRouter, Depends, HTTPException, Request, status
from pydantic import BaseModel, Field
from sqlalchemy.ext.asyncio import AsyncSession

from ispdesk.api.deps import get_customer_or_404
from ispdesk.api.schemas import CustomerResponse, customer_to_response
from ispdesk.core.audit import AuditAction, audit_log
from ispdesk.core.cache import invalidate_revenue_views
from ispdesk.core.limiter import limiter
from ispdesk.db.session import get_db
from ispdesk.middleware.request_tracing import client_ip
from ispdesk.services.discounts import DiscountError, DiscountKind, apply_discount, remove_discount
from ispdesk.services.records import CustomerRecord, apply_record

logger = structlog.get_logger()

router = APIRouter(prefix="/customers", tags=["discounts"])


class DiscountRequest(BaseModel):
    """Discount to apply, as a fixed amount or a percentage of the current value."""

    kind: DiscountKind
    value: Decimal = Field(..., max_digits=12, decimal_places=2)


@router.post("/{customer_id}/discount", response_model=CustomerResponse)
@limiter.limit("30/minute")
async def add_discount(
    request: Request,
    customer_id: str,
    discount: DiscountRequest,
    db: AsyncSession = Depends(get_db),
) -> CustomerResponse:
    """Apply a discount; repeated discounts accumulate.

    Raises:
        HTTPException: 400 for a non-positive value, a percentage above 100
            or an amount above the current subscription value
    """
    customer = await get_customer_or_404(db, customer_id)
    record = CustomerRecord.from_model(customer)

    try:
        updated = apply_discount(record, discount.kind, discount.value)
    except DiscountError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e)) from e

    apply_record(customer, updated)
    await db.commit()
    await invalidate_revenue_views()

    audit_log(
        AuditAction.DISCOUNT_APPLY,
        resource_type="customer",
        resource_id=customer.id,
        details={
            "kind": discount.kind.value,
            "value": str(discount.value),
            "subscription_value": str(updated.subscription_value),
        },
        ip_address=client_ip(request),
    )
    return customer_to_response(customer)


@router.delete("/{customer_id}/discount", response_model=CustomerResponse)
@limiter.limit("30/minute")
async def delete_discount(
    request: Request,
    customer_id: str,
    db: AsyncSession = Depends(get_db),
) -> CustomerResponse:
    """Remove the accumulated discount and restore the subscription value."""
    customer = await get_customer_or_404(db, customer_id)
    record = CustomerRecord.from_model(customer)

    try:
        updated = remove_discount(record)
    except DiscountError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e)) from e

    apply_record(customer, updated)
    await db.commit()
    await invalidate_revenue_views()

    audit_log(
        AuditAction.DISCOUNT_REMOVE,
        resource_type="customer",
        resource_id=customer.id,
        details={"subscription_value": str(updated.subscription_value)},
        ip_address=client_ip(request),
    )
    return customer_to_response(customer)
