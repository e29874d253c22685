"""Tests for subscription discounts."""

from decimal import Decimal

import pytest

from ispdesk.services.discounts import (
    DiscountError,
    DiscountKind,
    apply_discount,
    discount_amount,
    remove_discount,
)
from ispdesk.services.records import CustomerRecord


@pytest.fixture
def customer() -> CustomerRecord:
    return CustomerRecord(id="cu_1", city_id="ct_1", subscription_value=Decimal("100"))


class TestDiscountAmount:
    """Test discount calculation and caps."""

    def test_percentage(self) -> None:
        assert discount_amount(Decimal("100"), DiscountKind.PERCENTAGE, Decimal("10")) == Decimal("10.00")

    def test_percentage_rounds_to_cents(self) -> None:
        assert discount_amount(Decimal("99.99"), DiscountKind.PERCENTAGE, Decimal("33")) == Decimal("33.00")

    def test_percentage_over_hundred(self) -> None:
        with pytest.raises(DiscountError, match="100%"):
            discount_amount(Decimal("100"), DiscountKind.PERCENTAGE, Decimal("101"))

    def test_amount_over_value(self) -> None:
        with pytest.raises(DiscountError, match="larger"):
            discount_amount(Decimal("100"), DiscountKind.AMOUNT, Decimal("100.01"))

    @pytest.mark.parametrize("value", [Decimal("0"), Decimal("-5")])
    def test_non_positive_value(self, value: Decimal) -> None:
        with pytest.raises(DiscountError, match="positive"):
            discount_amount(Decimal("100"), DiscountKind.AMOUNT, value)


class TestApplyDiscount:
    """Test applying and removing discounts."""

    def test_ten_percent(self, customer: CustomerRecord) -> None:
        updated = apply_discount(customer, DiscountKind.PERCENTAGE, Decimal("10"))

        assert updated.subscription_value == Decimal("90")
        assert updated.has_discount is True
        assert updated.discount_amount == Decimal("10")

    def test_discounts_accumulate(self, customer: CustomerRecord) -> None:
        first = apply_discount(customer, DiscountKind.AMOUNT, Decimal("20"))
        second = apply_discount(first, DiscountKind.PERCENTAGE, Decimal("50"))

        assert second.subscription_value == Decimal("40")
        assert second.discount_amount == Decimal("60")

    def test_full_amount_discount(self, customer: CustomerRecord) -> None:
        updated = apply_discount(customer, DiscountKind.AMOUNT, Decimal("100"))
        assert updated.subscription_value == Decimal("0")

    def test_remove_restores_value(self, customer: CustomerRecord) -> None:
        discounted = apply_discount(customer, DiscountKind.AMOUNT, Decimal("25"))
        restored = remove_discount(discounted)

        assert restored.subscription_value == Decimal("100")
        assert restored.has_discount is False
        assert restored.discount_amount == Decimal("0")

    def test_remove_without_discount(self, customer: CustomerRecord) -> None:
        with pytest.raises(DiscountError, match="no discount"):
            remove_discount(customer)
