"""Revenue views: monthly summary, yearly grid and due invoices."""

from datetime import date

import structlog
from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel
from sqlalchemy.ext.asyncio import AsyncSession

from ispdesk.api.deps import get_today, resolve_period
from ispdesk.api.schemas import (
    CustomerBrief,
    SnapshotResponse,
    record_to_brief,
    snapshot_to_response,
)
from ispdesk.core.cache import cache_get, cache_set, revenue_cache_key
from ispdesk.core.config import settings
from ispdesk.db.session import get_db
from ispdesk.services import repository
from ispdesk.services.receivables import (
    ClassifiedCustomer,
    days_into_billing,
    due_customers,
    summarize_revenue,
    year_month_key,
    yearly_grid,
)
from ispdesk.services.records import ZERO

logger = structlog.get_logger()

router = APIRouter(prefix="/revenues", tags=["revenues"])


class ClassifiedCustomerResponse(BaseModel):
    """A customer and its snapshot inside a revenue bucket."""

    customer: CustomerBrief
    snapshot: SnapshotResponse


class RevenueSummaryResponse(BaseModel):
    """Paid / partial / pending buckets for one reporting month."""

    year: int
    month: int
    year_month: str
    city_id: str | None
    is_future: bool
    currency: str
    paid_count: int
    partial_count: int
    pending_count: int
    customer_count: int
    paid_amount: float
    partial_amount: float
    pending_amount: float
    paid: list[ClassifiedCustomerResponse]
    partial: list[ClassifiedCustomerResponse]
    pending: list[ClassifiedCustomerResponse]


class YearlyCellResponse(BaseModel):
    month: int
    key: str
    status: str
    paid_amount: float


class YearlyRowResponse(BaseModel):
    customer: CustomerBrief
    is_suspended: bool
    is_exempt: bool
    cells: list[YearlyCellResponse]
    paid_count: float
    snapshot: SnapshotResponse


class YearlyGridResponse(BaseModel):
    """Per-customer monthly statuses across one calendar year."""

    year: int
    city_id: str | None
    customer_count: int
    total_subscription: float
    rows: list[YearlyRowResponse]


class DueCustomerResponse(BaseModel):
    customer: CustomerBrief
    start_date: date
    days_elapsed: int
    current_status: str


class DueInvoicesResponse(BaseModel):
    """Customers whose current month is still unpaid past the threshold."""

    as_of: date
    year_month: str
    threshold_days: int
    customers: list[DueCustomerResponse]


def _classified(entries: tuple[ClassifiedCustomer, ...]) -> list[ClassifiedCustomerResponse]:
    return [
        ClassifiedCustomerResponse(
            customer=record_to_brief(entry.customer),
            snapshot=snapshot_to_response(entry.snapshot),
        )
        for entry in entries
    ]


@router.get("/summary", response_model=RevenueSummaryResponse)
async def revenue_summary(
    year: int | None = Query(default=None, ge=1900, le=9999),
    month: int | None = Query(default=None, ge=1, le=12),
    city_id: str | None = Query(default=None),
    db: AsyncSession = Depends(get_db),
    today: date = Depends(get_today),
) -> RevenueSummaryResponse:
    """Classify billable customers into paid, partial and pending.

    Suspended, exempt and zero-value customers are left out. Results are
    cached per period, city and day until the next customer or city
    mutation.
    """
    year, month = resolve_period(year, month, today)
    cache_key = revenue_cache_key(
        "summary", year, f"{month:02d}", city_id, today.isoformat()
    )

    cached = await cache_get(cache_key)
    if cached is not None:
        return RevenueSummaryResponse.model_validate(cached)

    records = await repository.load_records(db, city_id=city_id)
    summary = summarize_revenue(records, year, month, city_id=city_id, today=today)

    response = RevenueSummaryResponse(
        year=year,
        month=month,
        year_month=year_month_key(year, month),
        city_id=city_id,
        is_future=summary.is_future,
        currency=settings.CURRENCY,
        paid_count=len(summary.paid),
        partial_count=len(summary.partial),
        pending_count=len(summary.pending),
        customer_count=summary.customer_count,
        paid_amount=float(summary.paid_amount),
        partial_amount=float(summary.partial_amount),
        pending_amount=float(summary.pending_amount),
        paid=_classified(summary.paid),
        partial=_classified(summary.partial),
        pending=_classified(summary.pending),
    )

    await cache_set(cache_key, response.model_dump(mode="json"), ttl=settings.REVENUE_CACHE_TTL)
    logger.debug(
        "revenue_summary_computed",
        year=year,
        month=month,
        city_id=city_id,
        customers=summary.customer_count,
    )
    return response


@router.get("/yearly", response_model=YearlyGridResponse)
async def yearly_tracking(
    year: int | None = Query(default=None, ge=1900, le=9999),
    city_id: str | None = Query(default=None),
    db: AsyncSession = Depends(get_db),
    today: date = Depends(get_today),
) -> YearlyGridResponse:
    """Yearly payment grid; suspended customers are listed and flagged."""
    year = year or today.year
    records = await repository.load_records(db, city_id=city_id)
    rows = yearly_grid(records, year, city_id=city_id, today=today)

    return YearlyGridResponse(
        year=year,
        city_id=city_id,
        customer_count=len(rows),
        total_subscription=float(sum((row.customer.subscription_value for row in rows), ZERO)),
        rows=[
            YearlyRowResponse(
                customer=record_to_brief(row.customer),
                is_suspended=row.customer.is_suspended,
                is_exempt=row.customer.is_exempt,
                cells=[
                    YearlyCellResponse(
                        month=cell.month,
                        key=cell.key,
                        status=cell.status.value,
                        paid_amount=float(cell.paid_amount),
                    )
                    for cell in row.cells
                ],
                paid_count=float(row.paid_count),
                snapshot=snapshot_to_response(row.snapshot),
            )
            for row in rows
        ],
    )


@router.get("/due", response_model=DueInvoicesResponse)
async def due_invoices(
    city_id: str | None = Query(default=None),
    db: AsyncSession = Depends(get_db),
    today: date = Depends(get_today),
) -> DueInvoicesResponse:
    """Customers still unpaid for the current month after the due threshold."""
    records = await repository.load_records(db, city_id=city_id)
    threshold = settings.DUE_INVOICE_DAYS
    current_key = year_month_key(today.year, today.month)

    return DueInvoicesResponse(
        as_of=today,
        year_month=current_key,
        threshold_days=threshold,
        customers=[
            DueCustomerResponse(
                customer=record_to_brief(customer),
                start_date=customer.start_date,
                days_elapsed=days_into_billing(customer.start_date, today),
                current_status=customer.status_for(current_key).value,
            )
            for customer in due_customers(records, today, threshold)
        ],
    )
