"""Monthly totals for the manual finance ledger."""

from collections.abc import Iterable
from dataclasses import dataclass
from decimal import Decimal

from ispdesk.models.ledger import Expense, Income
from ispdesk.services.records import ZERO, to_decimal


@dataclass(frozen=True)
class MonthTotals:
    """Income, expense and net totals of one calendar month."""

    year: int
    month: int
    total_incomes: Decimal
    total_expenses: Decimal

    @property
    def net(self) -> Decimal:
        return self.total_incomes - self.total_expenses


def month_totals(
    expenses: Iterable[Expense],
    incomes: Iterable[Income],
    year: int,
    month: int,
) -> MonthTotals:
    """Sum the entries that fall in (year, month)."""

    def _total(entries: Iterable[Expense | Income]) -> Decimal:
        return sum(
            (to_decimal(e.amount) for e in entries if e.year == year and e.month == month),
            ZERO,
        )

    return MonthTotals(
        year=year,
        month=month,
        total_incomes=_total(incomes),
        total_expenses=_total(expenses),
    )
