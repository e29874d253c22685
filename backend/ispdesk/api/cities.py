"""City endpoints."""

import structlog
from fastapi import APIRouter, Depends, Request, status
from pydantic import BaseModel, field_validator
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from ispdesk.api.deps import get_city_or_404
from ispdesk.core.audit import AuditAction, audit_log
from ispdesk.core.cache import invalidate_revenue_views
from ispdesk.core.limiter import limiter
from ispdesk.core.public_id import CITY_PREFIX, generate_public_id
from ispdesk.db.session import get_db
from ispdesk.middleware.request_tracing import client_ip
from ispdesk.models.city import City
from ispdesk.models.customer import Customer
from ispdesk.services import repository

logger = structlog.get_logger()

router = APIRouter(prefix="/cities", tags=["cities"])

MAX_CITY_NAME_LENGTH = 255


class CityWrite(BaseModel):
    """City create/rename schema."""

    name: str

    @field_validator("name")
    @classmethod
    def validate_name(cls, v: str) -> str:
        """Strip and require a name."""
        v = v.strip()
        if not v:
            raise ValueError("City name cannot be empty")
        if len(v) > MAX_CITY_NAME_LENGTH:
            raise ValueError(f"City name cannot exceed {MAX_CITY_NAME_LENGTH} characters")
        return v


class CityResponse(BaseModel):
    """City response schema."""

    id: str
    name: str
    customer_count: int = 0


class CityDeleteResponse(BaseModel):
    """Result of a cascading city delete."""

    message: str
    customers_deleted: int


@router.get("", response_model=list[CityResponse])
async def list_cities(db: AsyncSession = Depends(get_db)) -> list[CityResponse]:
    """List cities with their customer counts."""
    counts = (
        select(Customer.city_id, func.count(Customer.id).label("customer_count"))
        .group_by(Customer.city_id)
        .subquery()
    )
    result = await db.execute(
        select(City, func.coalesce(counts.c.customer_count, 0))
        .outerjoin(counts, counts.c.city_id == City.id)
        .order_by(City.name)
    )
    return [
        CityResponse(id=city.id, name=city.name, customer_count=count)
        for city, count in result.all()
    ]


@router.post("", response_model=CityResponse, status_code=status.HTTP_201_CREATED)
@limiter.limit("30/minute")
async def create_city(
    request: Request,
    city_data: CityWrite,
    db: AsyncSession = Depends(get_db),
) -> CityResponse:
    """Create a city."""
    city = City(id=generate_public_id(CITY_PREFIX), name=city_data.name)
    db.add(city)
    await db.commit()
    await db.refresh(city)

    logger.info("city_created", city_id=city.id, name=city.name)
    audit_log(
        AuditAction.CITY_CREATE,
        resource_type="city",
        resource_id=city.id,
        ip_address=client_ip(request),
    )
    return CityResponse(id=city.id, name=city.name)


@router.put("/{city_id}", response_model=CityResponse)
@limiter.limit("30/minute")
async def rename_city(
    request: Request,
    city_id: str,
    city_data: CityWrite,
    db: AsyncSession = Depends(get_db),
) -> CityResponse:
    """Rename a city."""
    city = await get_city_or_404(db, city_id)
    city.name = city_data.name
    await db.commit()

    audit_log(
        AuditAction.CITY_UPDATE,
        resource_type="city",
        resource_id=city.id,
        details={"name": city.name},
        ip_address=client_ip(request),
    )
    return CityResponse(id=city.id, name=city.name)


@router.delete("/{city_id}", response_model=CityDeleteResponse)
@limiter.limit("10/minute")
async def delete_city(
    request: Request,
    city_id: str,
    db: AsyncSession = Depends(get_db),
) -> CityDeleteResponse:
    """Delete a city together with all of its customers."""
    city = await get_city_or_404(db, city_id)

    try:
        deleted = await repository.delete_city_cascade(db, city)
        await db.commit()
    except Exception:
        logger.exception("city_delete_failed", city_id=city_id)
        raise

    await invalidate_revenue_views()
    logger.info("city_deleted", city_id=city_id, customers_deleted=deleted)
    audit_log(
        AuditAction.CITY_DELETE,
        resource_type="city",
        resource_id=city_id,
        details={"customers_deleted": deleted},
        ip_address=client_ip(request),
    )
    return CityDeleteResponse(message="City deleted", customers_deleted=deleted)
