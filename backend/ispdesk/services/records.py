"""Immutable customer records handed to the receivable engine.

Stored rows are loose: JSON columns may carry statuses or amounts written
by older clients, and numeric fields may be missing. Everything is coerced
once here so the engine itself only ever sees well-typed values.
"""

from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from datetime import date, datetime
from decimal import Decimal, InvalidOperation
from types import MappingProxyType
from typing import Any

import structlog

from ispdesk.models.customer import Customer, PaymentStatus

logger = structlog.get_logger()

ZERO = Decimal("0")


def parse_status(value: Any) -> PaymentStatus:
    """Map a stored status to PaymentStatus; anything unrecognised is pending."""
    if isinstance(value, PaymentStatus):
        return value
    try:
        return PaymentStatus(value)
    except ValueError:
        logger.warning("unknown_payment_status", value=value)
        return PaymentStatus.PENDING


def to_decimal(value: Any, default: Decimal = ZERO) -> Decimal:
    """Coerce a stored amount to Decimal, falling back to default."""
    if value is None or isinstance(value, bool):
        return default
    if isinstance(value, Decimal):
        return value if value.is_finite() else default
    try:
        result = Decimal(str(value))
    except (InvalidOperation, ValueError):
        logger.warning("invalid_amount", value=value)
        return default
    return result if result.is_finite() else default


def to_date(value: Any) -> date | None:
    """Coerce a stored start date; malformed values mean "no start date"."""
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if isinstance(value, str):
        try:
            return date.fromisoformat(value[:10])
        except ValueError:
            logger.warning("invalid_start_date", value=value)
            return None
    logger.warning("invalid_start_date", value=value)
    return None


@dataclass(frozen=True)
class CustomerRecord:
    """Read-only view of the customer fields that drive billing."""

    id: str
    city_id: str
    name: str = ""
    subscription_value: Decimal = ZERO
    start_date: date | None = None
    monthly_payments: Mapping[str, PaymentStatus] = field(default_factory=dict)
    partial_payments: Mapping[str, Decimal] = field(default_factory=dict)
    subscription_paid: Decimal | None = None
    has_discount: bool = False
    discount_amount: Decimal = ZERO
    setup_fee_total: Decimal = ZERO
    setup_fee_paid: Decimal = ZERO
    is_suspended: bool = False
    is_exempt: bool = False

    def __post_init__(self) -> None:
        # Freeze the mappings too, so a record can be shared between views
        object.__setattr__(self, "monthly_payments", MappingProxyType(dict(self.monthly_payments)))
        object.__setattr__(self, "partial_payments", MappingProxyType(dict(self.partial_payments)))

    def status_for(self, key: str) -> PaymentStatus:
        """Status of a billing month; months without an entry are pending."""
        return self.monthly_payments.get(key, PaymentStatus.PENDING)

    @property
    def setup_fee_remaining(self) -> Decimal:
        """Unpaid setup fee; negative when the customer overpaid."""
        return self.setup_fee_total - self.setup_fee_paid

    @classmethod
    def from_model(cls, customer: Customer) -> "CustomerRecord":
        """Snapshot a stored customer row."""
        raw_payments = customer.monthly_payments or {}
        raw_partials = customer.partial_payments or {}

        return cls(
            id=customer.id,
            city_id=customer.city_id,
            name=customer.name or "",
            subscription_value=to_decimal(customer.subscription_value),
            start_date=to_date(customer.start_date),
            monthly_payments={key: parse_status(value) for key, value in raw_payments.items()},
            partial_payments={key: to_decimal(value) for key, value in raw_partials.items()},
            subscription_paid=(
                None if customer.subscription_paid is None else to_decimal(customer.subscription_paid)
            ),
            has_discount=bool(customer.has_discount),
            discount_amount=to_decimal(customer.discount_amount),
            setup_fee_total=to_decimal(customer.setup_fee_total),
            setup_fee_paid=to_decimal(customer.setup_fee_paid),
            is_suspended=bool(customer.is_suspended),
            is_exempt=bool(customer.is_exempt),
        )


def to_records(customers: Iterable[Customer]) -> list[CustomerRecord]:
    """Snapshot a list of stored customers."""
    return [CustomerRecord.from_model(customer) for customer in customers]


def apply_record(customer: Customer, record: CustomerRecord) -> None:
    """Write the billing fields of a modified record back onto its row.

    The JSON columns are replaced wholesale so SQLAlchemy sees the change.
    """
    customer.subscription_value = record.subscription_value
    customer.subscription_paid = record.subscription_paid
    customer.monthly_payments = {key: status.value for key, status in record.monthly_payments.items()}
    customer.partial_payments = {key: str(amount) for key, amount in record.partial_payments.items()}
    customer.has_discount = record.has_discount
    customer.discount_amount = record.discount_amount
