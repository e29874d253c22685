"""Monthly payment status endpoints."""

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
from ispdesk.models.customer import Customer, PaymentStatus
from ispdesk.services.payments import PaymentError, next_status, record_payment
from ispdesk.services.records import CustomerRecord, apply_record

logger = structlog.get_logger()

router = APIRouter(prefix="/customers", tags=["payments"])


class PaymentUpdate(BaseModel):
    """Status for one billing month; amount is required for partial."""

    status: PaymentStatus
    amount: Decimal | None = Field(default=None, ge=0, max_digits=12, decimal_places=2)


class PaymentCycle(BaseModel):
    """Optional amount used when the cycle lands on partial."""

    amount: Decimal | None = Field(default=None, ge=0, max_digits=12, decimal_places=2)


async def _save_payment(
    request: Request,
    db: AsyncSession,
    customer: Customer,
    year_month: str,
    payment_status: PaymentStatus,
    amount: Decimal | None,
) -> CustomerResponse:
    record = CustomerRecord.from_model(customer)
    try:
        updated = record_payment(record, year_month, payment_status, amount)
    except PaymentError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e)) from e

    apply_record(customer, updated)
    await db.commit()
    await invalidate_revenue_views()

    logger.info(
        "payment_recorded",
        customer_id=customer.id,
        year_month=year_month,
        status=payment_status.value,
    )
    audit_log(
        AuditAction.PAYMENT_RECORD,
        resource_type="customer",
        resource_id=customer.id,
        details={
            "year_month": year_month,
            "status": payment_status.value,
            "amount": None if amount is None else str(amount),
        },
        ip_address=client_ip(request),
    )
    return customer_to_response(customer)


@router.put("/{customer_id}/payments/{year_month}", response_model=CustomerResponse)
@limiter.limit("120/minute")
async def set_payment_status(
    request: Request,
    customer_id: str,
    year_month: str,
    payment: PaymentUpdate,
    db: AsyncSession = Depends(get_db),
) -> CustomerResponse:
    """Set the payment status of one month.

    Args:
        request: HTTP request (for rate limiting)
        customer_id: Customer id
        year_month: Billing month as "YYYY-MM"
        payment: New status and, for partial, the amount received
        db: Database session

    Returns:
        Updated customer

    Raises:
        HTTPException: 404 if the customer does not exist, 400 for a
            malformed month or a partial status without an amount
    """
    customer = await get_customer_or_404(db, customer_id)
    return await _save_payment(
        request, db, customer, year_month, payment.status, payment.amount
    )


@router.post("/{customer_id}/payments/{year_month}/cycle", response_model=CustomerResponse)
@limiter.limit("120/minute")
async def cycle_payment_status(
    request: Request,
    customer_id: str,
    year_month: str,
    cycle: PaymentCycle | None = None,
    db: AsyncSession = Depends(get_db),
) -> CustomerResponse:
    """Advance a month to its next status: pending, partial, paid, pending.

    Landing on partial keeps the month's existing partial amount unless a
    new amount is supplied.
    """
    customer = await get_customer_or_404(db, customer_id)
    record = CustomerRecord.from_model(customer)
    new_status = next_status(record.status_for(year_month))

    amount = cycle.amount if cycle else None
    if new_status is PaymentStatus.PARTIAL and amount is None:
        amount = record.partial_payments.get(year_month, Decimal("0"))

    return await _save_payment(request, db, customer, year_month, new_status, amount)
