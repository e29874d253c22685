"""Subscription receivable engine.

Folds a customer's sparse per-month payment record into dues, payments and
outstanding balance for a reporting month, and classifies customers into
paid / partial / pending buckets. Everything here is pure: the same record
and period always give the same result, so views recompute freely instead
of storing derived totals.

Amounts are derived from the customer's *current* subscription value, so a
discount lowers the dues of every month in range, including past ones.
"""

import re
from collections.abc import Iterable
from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from enum import Enum

from dateutil.relativedelta import relativedelta

from ispdesk.models.customer import PaymentStatus
from ispdesk.services.records import ZERO, CustomerRecord

_KEY_PATTERN = re.compile(r"^(\d{4})-(\d{2})$")

MONTHS_PER_YEAR = 12

# Yearly grid weighting: a partial month counts as half a payment
PARTIAL_MONTH_WEIGHT = Decimal("0.5")


class ReceivableBucket(str, Enum):
    """Classification of a customer for a reporting month."""

    PAID = "paid"
    PARTIAL = "partial"
    PENDING = "pending"


def year_month_key(year: int, month: int) -> str:
    """Canonical "YYYY-MM" key; sorts lexicographically in calendar order."""
    return f"{year:04d}-{month:02d}"


def parse_year_month_key(key: str) -> tuple[int, int]:
    """Split a "YYYY-MM" key into (year, month).

    Raises:
        ValueError: If the key is not a valid year-month.
    """
    match = _KEY_PATTERN.match(key)
    if not match:
        raise ValueError(f"Invalid year-month key: {key!r}")
    year, month = int(match.group(1)), int(match.group(2))
    if not 1 <= month <= MONTHS_PER_YEAR:
        raise ValueError(f"Invalid month in year-month key: {key!r}")
    return year, month


def is_future_month(year: int, month: int, today: date) -> bool:
    """True when (year, month) is after the calendar month containing today."""
    return (year, month) > (today.year, today.month)


def billing_months(start_date: date | None, year: int, month: int) -> list[str]:
    """Year-month keys a customer owes for, through the reporting month.

    Billing starts at the month containing start_date, or January of the
    reporting year when there is none. A start after the reporting month
    still bills the reporting month itself, so the range is never empty.
    """
    reporting = date(year, month, 1)
    effective_start = start_date.replace(day=1) if start_date else date(year, 1, 1)

    if effective_start > reporting:
        return [year_month_key(year, month)]

    keys = []
    cursor = effective_start
    while cursor <= reporting:
        keys.append(year_month_key(cursor.year, cursor.month))
        cursor += relativedelta(months=1)
    return keys


def month_payment(customer: CustomerRecord, key: str) -> tuple[PaymentStatus, Decimal]:
    """Status and paid amount of one month, clamped to the monthly due.

    A partial month uses its own partial_payments entry, then the legacy
    subscription_paid value, then zero.
    """
    due = max(ZERO, customer.subscription_value)
    status = customer.status_for(key)

    if status is PaymentStatus.PAID:
        amount = due
    elif status is PaymentStatus.PARTIAL:
        amount = customer.partial_payments.get(key)
        if amount is None:
            amount = customer.subscription_paid if customer.subscription_paid is not None else ZERO
    else:
        amount = ZERO

    return status, min(max(amount, ZERO), due)


@dataclass(frozen=True)
class ReceivableSnapshot:
    """Financial summary of one customer at one reporting month."""

    year: int
    month: int
    months: tuple[str, ...]
    subscription_value: Decimal
    total_due: Decimal
    total_paid: Decimal
    outstanding: Decimal
    paid_months: int
    partial_months: int
    arrears_months: int
    current_status: PaymentStatus
    current_month_paid: Decimal

    @property
    def due_months(self) -> int:
        """Number of billed months in range."""
        return len(self.months)

    @property
    def key(self) -> str:
        """Year-month key of the reporting month."""
        return year_month_key(self.year, self.month)


def build_snapshot(customer: CustomerRecord, year: int, month: int) -> ReceivableSnapshot:
    """Fold the customer's payment record over their billing months."""
    due = max(ZERO, customer.subscription_value)
    months = billing_months(customer.start_date, year, month)

    total_paid = ZERO
    paid_months = partial_months = arrears_months = 0
    for key in months:
        status, amount = month_payment(customer, key)
        total_paid += amount
        if status is PaymentStatus.PAID:
            paid_months += 1
        elif status is PaymentStatus.PARTIAL:
            partial_months += 1
        if amount < due:
            arrears_months += 1

    total_due = due * len(months)
    current_status, current_month_paid = month_payment(customer, year_month_key(year, month))

    return ReceivableSnapshot(
        year=year,
        month=month,
        months=tuple(months),
        subscription_value=due,
        total_due=total_due,
        total_paid=total_paid,
        outstanding=max(ZERO, total_due - total_paid),
        paid_months=paid_months,
        partial_months=partial_months,
        arrears_months=arrears_months,
        current_status=current_status,
        current_month_paid=current_month_paid,
    )


def classify(snapshot: ReceivableSnapshot, *, future: bool = False) -> ReceivableBucket:
    """Bucket a snapshot; a future reporting month is always pending."""
    if future:
        return ReceivableBucket.PENDING
    if snapshot.outstanding == ZERO:
        return ReceivableBucket.PAID
    if snapshot.total_paid > ZERO:
        return ReceivableBucket.PARTIAL
    return ReceivableBucket.PENDING


def is_billable(customer: CustomerRecord) -> bool:
    """Customers that take part in revenue computation."""
    return (
        not customer.is_suspended
        and not customer.is_exempt
        and customer.subscription_value > ZERO
    )


def in_city(customers: Iterable[CustomerRecord], city_id: str | None) -> list[CustomerRecord]:
    """Apply the optional city filter."""
    return [c for c in customers if city_id is None or c.city_id == city_id]


@dataclass(frozen=True)
class ClassifiedCustomer:
    """A customer, its snapshot and the bucket it landed in."""

    customer: CustomerRecord
    snapshot: ReceivableSnapshot
    bucket: ReceivableBucket


@dataclass(frozen=True)
class RevenueSummary:
    """Bucketed receivables across a customer list."""

    year: int
    month: int
    city_id: str | None
    is_future: bool
    paid: tuple[ClassifiedCustomer, ...]
    partial: tuple[ClassifiedCustomer, ...]
    pending: tuple[ClassifiedCustomer, ...]

    @property
    def paid_amount(self) -> Decimal:
        return sum((c.snapshot.total_paid for c in self.paid), ZERO)

    @property
    def partial_amount(self) -> Decimal:
        return sum((c.snapshot.total_paid for c in self.partial), ZERO)

    @property
    def pending_amount(self) -> Decimal:
        return sum((c.snapshot.outstanding for c in self.pending), ZERO)

    @property
    def customer_count(self) -> int:
        return len(self.paid) + len(self.partial) + len(self.pending)


def summarize_revenue(
    customers: Iterable[CustomerRecord],
    year: int,
    month: int,
    city_id: str | None = None,
    today: date | None = None,
) -> RevenueSummary:
    """Classify every billable customer for the reporting month."""
    future = is_future_month(year, month, today or date.today())

    buckets: dict[ReceivableBucket, list[ClassifiedCustomer]] = {
        bucket: [] for bucket in ReceivableBucket
    }
    for customer in in_city(customers, city_id):
        if not is_billable(customer):
            continue
        snapshot = build_snapshot(customer, year, month)
        bucket = classify(snapshot, future=future)
        buckets[bucket].append(ClassifiedCustomer(customer, snapshot, bucket))

    return RevenueSummary(
        year=year,
        month=month,
        city_id=city_id,
        is_future=future,
        paid=tuple(buckets[ReceivableBucket.PAID]),
        partial=tuple(buckets[ReceivableBucket.PARTIAL]),
        pending=tuple(buckets[ReceivableBucket.PENDING]),
    )


@dataclass(frozen=True)
class YearlyCell:
    """One month of one customer in the yearly grid."""

    month: int
    key: str
    status: PaymentStatus
    paid_amount: Decimal


@dataclass(frozen=True)
class YearlyRow:
    """One customer across a calendar year."""

    customer: CustomerRecord
    cells: tuple[YearlyCell, ...]
    paid_count: Decimal
    snapshot: ReceivableSnapshot


def grid_reporting_month(year: int, today: date) -> int:
    """Last month of the year that the yearly grid reports receivables for."""
    return today.month if year == today.year else MONTHS_PER_YEAR


def yearly_row(customer: CustomerRecord, year: int, today: date | None = None) -> YearlyRow:
    """Build one customer's row of the yearly tracking grid."""
    cells = []
    paid_count = ZERO
    for month in range(1, MONTHS_PER_YEAR + 1):
        key = year_month_key(year, month)
        status, amount = month_payment(customer, key)
        if status is PaymentStatus.PAID:
            paid_count += 1
        elif status is PaymentStatus.PARTIAL:
            paid_count += PARTIAL_MONTH_WEIGHT
        cells.append(YearlyCell(month=month, key=key, status=status, paid_amount=amount))

    reporting_month = grid_reporting_month(year, today or date.today())
    return YearlyRow(
        customer=customer,
        cells=tuple(cells),
        paid_count=paid_count,
        snapshot=build_snapshot(customer, year, reporting_month),
    )


def yearly_grid(
    customers: Iterable[CustomerRecord],
    year: int,
    city_id: str | None = None,
    today: date | None = None,
) -> list[YearlyRow]:
    """Rows for every customer in the city filter, suspended ones included."""
    return [yearly_row(customer, year, today) for customer in in_city(customers, city_id)]


@dataclass(frozen=True)
class InvoiceStatement:
    """Figures an invoice renderer needs for one customer and period."""

    customer: CustomerRecord
    year: int
    month: int
    current_status: PaymentStatus
    current_month_paid: Decimal
    current_month_remaining: Decimal
    snapshot: ReceivableSnapshot
    setup_fee_total: Decimal
    setup_fee_paid: Decimal
    setup_fee_remaining: Decimal


def invoice_statement(
    customer: CustomerRecord,
    year: int | None = None,
    month: int | None = None,
    today: date | None = None,
) -> InvoiceStatement:
    """Invoice figures for the requested period, or the current month."""
    today = today or date.today()
    if year is None or month is None:
        year, month = today.year, today.month

    snapshot = build_snapshot(customer, year, month)
    return InvoiceStatement(
        customer=customer,
        year=year,
        month=month,
        current_status=snapshot.current_status,
        current_month_paid=snapshot.current_month_paid,
        current_month_remaining=snapshot.subscription_value - snapshot.current_month_paid,
        snapshot=snapshot,
        setup_fee_total=customer.setup_fee_total,
        setup_fee_paid=customer.setup_fee_paid,
        setup_fee_remaining=customer.setup_fee_remaining,
    )


def days_into_billing(start_date: date, today: date) -> int:
    """Days elapsed since the later of start_date and the first of today's month."""
    effective_start = max(start_date, today.replace(day=1))
    return max(0, (today - effective_start).days)


def due_customers(
    customers: Iterable[CustomerRecord],
    today: date,
    threshold_days: int,
) -> list[CustomerRecord]:
    """Customers whose current month is unpaid after threshold_days of billing."""
    current_key = year_month_key(today.year, today.month)
    due = []
    for customer in customers:
        if customer.start_date is None or customer.is_suspended or customer.is_exempt:
            continue
        if customer.status_for(current_key) is PaymentStatus.PAID:
            continue
        if days_into_billing(customer.start_date, today) >= threshold_days:
            due.append(customer)
    return due
