"""Invoice data endpoint.

Returns the figures an invoice needs; rendering to PDF happens client-side.
"""

from datetime import date

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel
from sqlalchemy.ext.asyncio import AsyncSession

from ispdesk.api.deps import get_city_or_404, get_customer_or_404, get_today, resolve_period
from ispdesk.api.schemas import (
    CustomerResponse,
    SnapshotResponse,
    customer_to_response,
    snapshot_to_response,
)
from ispdesk.core.config import settings
from ispdesk.db.session import get_db
from ispdesk.services.receivables import invoice_statement, year_month_key
from ispdesk.services.records import CustomerRecord

router = APIRouter(prefix="/invoices", tags=["invoices"])


class InvoiceResponse(BaseModel):
    """Invoice figures for one customer and billing month."""

    customer: CustomerResponse
    city_name: str
    issue_date: date
    year: int
    month: int
    year_month: str
    currency: str
    current_status: str
    current_month_paid: float
    current_month_remaining: float
    receivable: SnapshotResponse
    setup_fee_total: float
    setup_fee_paid: float
    setup_fee_remaining: float


@router.get("/{customer_id}", response_model=InvoiceResponse)
async def get_invoice(
    customer_id: str,
    year: int | None = Query(default=None, ge=1900, le=9999),
    month: int | None = Query(default=None, ge=1, le=12),
    db: AsyncSession = Depends(get_db),
    today: date = Depends(get_today),
) -> InvoiceResponse:
    """Invoice for the requested month, or the current month when omitted."""
    customer = await get_customer_or_404(db, customer_id)
    city = await get_city_or_404(db, customer.city_id)
    year, month = resolve_period(year, month, today)

    statement = invoice_statement(
        CustomerRecord.from_model(customer), year=year, month=month, today=today
    )

    return InvoiceResponse(
        customer=customer_to_response(customer),
        city_name=city.name,
        issue_date=today,
        year=statement.year,
        month=statement.month,
        year_month=year_month_key(statement.year, statement.month),
        currency=settings.CURRENCY,
        current_status=statement.current_status.value,
        current_month_paid=float(statement.current_month_paid),
        current_month_remaining=float(statement.current_month_remaining),
        receivable=snapshot_to_response(statement.snapshot),
        setup_fee_total=float(statement.setup_fee_total),
        setup_fee_paid=float(statement.setup_fee_paid),
        setup_fee_remaining=float(statement.setup_fee_remaining),
    )
