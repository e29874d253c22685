"""Manual finance ledger entries (expenses and incomes)."""

from datetime import date
from decimal import Decimal

from sqlalchemy import Date, Integer, Numeric, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from ispdesk.db.base import Base, TimestampMixin


class LedgerEntryMixin:
    """Columns shared by expenses and incomes.

    month and year are denormalized from entry_date so monthly totals can be
    filtered without date arithmetic in SQL.
    """

    id: Mapped[str] = mapped_column(String(32), primary_key=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    amount: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)
    entry_date: Mapped[date] = mapped_column(Date, nullable=False)
    month: Mapped[int] = mapped_column(Integer, nullable=False, index=True)
    year: Mapped[int] = mapped_column(Integer, nullable=False, index=True)


class Expense(LedgerEntryMixin, Base, TimestampMixin):
    """Money spent outside the subscription system."""

    __tablename__ = "expenses"


class Income(LedgerEntryMixin, Base, TimestampMixin):
    """Money received outside the subscription system."""

    __tablename__ = "incomes"
