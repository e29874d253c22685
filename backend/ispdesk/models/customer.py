"""Customer model - a subscriber and their payment ledger."""

from datetime import date
from decimal import Decimal
from enum import Enum
from typing import TYPE_CHECKING, Any

from sqlalchemy import JSON, Boolean, Date, ForeignKey, Numeric, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from ispdesk.db.base import Base, TimestampMixin

if TYPE_CHECKING:
    from ispdesk.models.city import City


class PaymentStatus(str, Enum):
    """Payment status of one billing month."""

    PAID = "paid"
    PARTIAL = "partial"
    PENDING = "pending"


class Customer(Base, TimestampMixin):
    """Subscriber record.

    monthly_payments maps "YYYY-MM" keys to a PaymentStatus value and is
    sparse: a missing month is pending. partial_payments maps the same keys
    to the amount received for a partial month, stored as a decimal string.
    """

    __tablename__ = "customers"

    id: Mapped[str] = mapped_column(String(32), primary_key=True)
    city_id: Mapped[str] = mapped_column(
        String(32),
        ForeignKey("cities.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    # Identity
    name: Mapped[str] = mapped_column(String(255), nullable=False, index=True)
    phone: Mapped[str | None] = mapped_column(String(50), nullable=True)
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)

    # Router access (user_name / ip_number unique per city, enforced in the API)
    user_name: Mapped[str | None] = mapped_column(String(100), nullable=True, index=True)
    ip_number: Mapped[str | None] = mapped_column(String(64), nullable=True, index=True)
    additional_routers: Mapped[list[dict[str, Any]]] = mapped_column(
        JSON, default=list, nullable=False
    )
    lap: Mapped[str | None] = mapped_column(String(100), nullable=True)
    site: Mapped[str | None] = mapped_column(String(255), nullable=True)

    # Subscription
    start_date: Mapped[date | None] = mapped_column(Date, nullable=True)
    subscription_value: Mapped[Decimal] = mapped_column(
        Numeric(12, 2), default=Decimal("0"), nullable=False
    )
    subscription_paid: Mapped[Decimal | None] = mapped_column(
        Numeric(12, 2), nullable=True, comment="Legacy single partial amount"
    )
    monthly_payments: Mapped[dict[str, str]] = mapped_column(JSON, default=dict, nullable=False)
    partial_payments: Mapped[dict[str, str]] = mapped_column(JSON, default=dict, nullable=False)

    # Discount
    has_discount: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    discount_amount: Mapped[Decimal] = mapped_column(
        Numeric(12, 2), default=Decimal("0"), nullable=False
    )

    # One-time setup fee ledger
    setup_fee_total: Mapped[Decimal] = mapped_column(
        Numeric(12, 2), default=Decimal("0"), nullable=False
    )
    setup_fee_paid: Mapped[Decimal] = mapped_column(
        Numeric(12, 2), default=Decimal("0"), nullable=False
    )

    # Billing exclusions
    is_suspended: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False, index=True)
    suspended_date: Mapped[date | None] = mapped_column(Date, nullable=True)
    is_exempt: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)

    city: Mapped["City"] = relationship("City", back_populates="customers")

    def __repr__(self) -> str:
        """String representation."""
        return f"<Customer {self.id} - {self.name} ({self.city_id})>"
