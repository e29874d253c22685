"""SQLAlchemy models."""

from ispdesk.models.city import City
from ispdesk.models.customer import Customer, PaymentStatus
from ispdesk.models.ledger import Expense, Income

__all__ = [
    "City",
    "Customer",
    "Expense",
    "Income",
    "PaymentStatus",
]
