"""Billing services."""

from ispdesk.services.discounts import DiscountError, DiscountKind, apply_discount, remove_discount
from ispdesk.services.payments import PaymentError, next_status, record_payment
from ispdesk.services.receivables import (
    ReceivableBucket,
    ReceivableSnapshot,
    RevenueSummary,
    billing_months,
    build_snapshot,
    summarize_revenue,
    year_month_key,
)
from ispdesk.services.records import CustomerRecord

__all__ = [
    "CustomerRecord",
    "DiscountError",
    "DiscountKind",
    "PaymentError",
    "ReceivableBucket",
    "ReceivableSnapshot",
    "RevenueSummary",
    "apply_discount",
    "billing_months",
    "build_snapshot",
    "next_status",
    "record_payment",
    "remove_discount",
    "summarize_revenue",
    "year_month_key",
]
