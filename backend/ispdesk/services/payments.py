"""Recording monthly payment statuses on a customer record."""

from dataclasses import replace
from decimal import Decimal

from ispdesk.models.customer import PaymentStatus
from ispdesk.services.receivables import parse_year_month_key
from ispdesk.services.records import ZERO, CustomerRecord

# Order the yearly grid steps through when an operator clicks a cell
_CYCLE = {
    PaymentStatus.PENDING: PaymentStatus.PARTIAL,
    PaymentStatus.PARTIAL: PaymentStatus.PAID,
    PaymentStatus.PAID: PaymentStatus.PENDING,
}


class PaymentError(ValueError):
    """Raised when a payment update is not acceptable."""


def next_status(status: PaymentStatus) -> PaymentStatus:
    """pending -> partial -> paid -> pending."""
    return _CYCLE[status]


def record_payment(
    customer: CustomerRecord,
    key: str,
    status: PaymentStatus,
    amount: Decimal | None = None,
) -> CustomerRecord:
    """Return a copy of the customer with one month's status updated.

    A partial month keeps its own amount in partial_payments, also mirrored
    to subscription_paid for older readers. Moving a month to paid or pending
    drops its partial amount.

    Raises:
        PaymentError: On a malformed key, or a partial status without a
            non-negative amount.
    """
    try:
        parse_year_month_key(key)
    except ValueError as e:
        raise PaymentError(str(e)) from e

    payments = dict(customer.monthly_payments)
    partials = dict(customer.partial_payments)
    subscription_paid = customer.subscription_paid

    payments[key] = status
    if status is PaymentStatus.PARTIAL:
        if amount is None:
            raise PaymentError("A partial payment needs an amount")
        if amount < ZERO:
            raise PaymentError("Payment amount cannot be negative")
        partials[key] = amount
        subscription_paid = amount
    else:
        partials.pop(key, None)

    return replace(
        customer,
        monthly_payments=payments,
        partial_payments=partials,
        subscription_paid=subscription_paid,
    )
