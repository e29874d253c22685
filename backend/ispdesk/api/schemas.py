"""Response schemas shared by several routers."""

from datetime import date
from typing import Any

from pydantic import BaseModel

from ispdesk.models.customer import Customer
from ispdesk.services.receivables import ReceivableSnapshot
from ispdesk.services.records import CustomerRecord, to_decimal


class AdditionalRouter(BaseModel):
    """Extra router attached to a customer."""

    user_name: str = ""
    ip_number: str = ""


class CustomerResponse(BaseModel):
    """Customer response schema."""

    id: str
    city_id: str
    name: str
    phone: str | None
    notes: str | None
    user_name: str | None
    ip_number: str | None
    additional_routers: list[AdditionalRouter]
    lap: str | None
    site: str | None
    start_date: date | None
    subscription_value: float
    subscription_paid: float | None
    monthly_payments: dict[str, str]
    partial_payments: dict[str, float]
    has_discount: bool
    discount_amount: float
    setup_fee_total: float
    setup_fee_paid: float
    setup_fee_remaining: float
    is_suspended: bool
    suspended_date: date | None
    is_exempt: bool


class SnapshotResponse(BaseModel):
    """Receivable snapshot of one customer at one reporting month."""

    year: int
    month: int
    year_month: str
    months: list[str]
    due_months: int
    subscription_value: float
    total_due: float
    total_paid: float
    outstanding: float
    paid_months: int
    partial_months: int
    arrears_months: int
    current_status: str
    current_month_paid: float


def customer_to_response(customer: Customer) -> CustomerResponse:
    """Convert a stored customer to its API shape."""
    setup_total = to_decimal(customer.setup_fee_total)
    setup_paid = to_decimal(customer.setup_fee_paid)
    routers: list[dict[str, Any]] = customer.additional_routers or []

    return CustomerResponse(
        id=customer.id,
        city_id=customer.city_id,
        name=customer.name,
        phone=customer.phone,
        notes=customer.notes,
        user_name=customer.user_name,
        ip_number=customer.ip_number,
        additional_routers=[AdditionalRouter(**router) for router in routers],
        lap=customer.lap,
        site=customer.site,
        start_date=customer.start_date,
        subscription_value=float(to_decimal(customer.subscription_value)),
        subscription_paid=(
            None if customer.subscription_paid is None else float(customer.subscription_paid)
        ),
        monthly_payments=dict(customer.monthly_payments or {}),
        partial_payments={
            key: float(to_decimal(value))
            for key, value in (customer.partial_payments or {}).items()
        },
        has_discount=customer.has_discount,
        discount_amount=float(to_decimal(customer.discount_amount)),
        setup_fee_total=float(setup_total),
        setup_fee_paid=float(setup_paid),
        setup_fee_remaining=float(setup_total - setup_paid),
        is_suspended=customer.is_suspended,
        suspended_date=customer.suspended_date,
        is_exempt=customer.is_exempt,
    )


def snapshot_to_response(snapshot: ReceivableSnapshot) -> SnapshotResponse:
    """Convert an engine snapshot to its API shape."""
    return SnapshotResponse(
        year=snapshot.year,
        month=snapshot.month,
        year_month=snapshot.key,
        months=list(snapshot.months),
        due_months=snapshot.due_months,
        subscription_value=float(snapshot.subscription_value),
        total_due=float(snapshot.total_due),
        total_paid=float(snapshot.total_paid),
        outstanding=float(snapshot.outstanding),
        paid_months=snapshot.paid_months,
        partial_months=snapshot.partial_months,
        arrears_months=snapshot.arrears_months,
        current_status=snapshot.current_status.value,
        current_month_paid=float(snapshot.current_month_paid),
    )


class CustomerBrief(BaseModel):
    """Minimal customer identity for list views."""

    id: str
    city_id: str
    name: str
    subscription_value: float


def record_to_brief(record: CustomerRecord) -> CustomerBrief:
    """Convert an engine record to a list entry."""
    return CustomerBrief(
        id=record.id,
        city_id=record.city_id,
        name=record.name,
        subscription_value=float(record.subscription_value),
    )
