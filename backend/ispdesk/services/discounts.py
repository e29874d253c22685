"""Applying and removing subscription discounts."""

from dataclasses import replace
from decimal import Decimal
from enum import Enum

from ispdesk.services.records import ZERO, CustomerRecord

HUNDRED = Decimal("100")
CENT = Decimal("0.01")


class DiscountKind(str, Enum):
    """How a discount value is interpreted."""

    AMOUNT = "amount"
    PERCENTAGE = "percentage"


class DiscountError(ValueError):
    """Raised when a discount cannot be applied or removed."""


def discount_amount(current_value: Decimal, kind: DiscountKind, value: Decimal) -> Decimal:
    """Amount a discount takes off the current subscription value.

    Raises:
        DiscountError: If value is not positive, a percentage exceeds 100,
            or a fixed amount exceeds the current value.
    """
    if value <= ZERO:
        raise DiscountError("Discount value must be positive")

    if kind is DiscountKind.PERCENTAGE:
        if value > HUNDRED:
            raise DiscountError("Percentage cannot exceed 100%")
        return (current_value * value / HUNDRED).quantize(CENT)

    if value > current_value:
        raise DiscountError("Discount is larger than the subscription value")
    return value


def apply_discount(customer: CustomerRecord, kind: DiscountKind, value: Decimal) -> CustomerRecord:
    """Lower the subscription value; discounts accumulate."""
    current_value = max(ZERO, customer.subscription_value)
    amount = discount_amount(current_value, kind, value)

    return replace(
        customer,
        subscription_value=current_value - amount,
        has_discount=True,
        discount_amount=customer.discount_amount + amount,
    )


def remove_discount(customer: CustomerRecord) -> CustomerRecord:
    """Restore the subscription value by adding back the accumulated discount."""
    if not customer.has_discount or customer.discount_amount <= ZERO:
        raise DiscountError("Customer has no discount")

    return replace(
        customer,
        subscription_value=customer.subscription_value + customer.discount_amount,
        has_discount=False,
        discount_amount=ZERO,
    )
