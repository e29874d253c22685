"""Audit logging for privileged back-office operations.

Deletes, transfers, discount changes and suspensions are the operations an
operator is asked to confirm; each of them leaves an audit event on the
"audit" logger so the trail can be filtered out of the request logs.
"""

from typing import Any

import structlog

logger = structlog.get_logger("audit")

_MASK_SUFFIX_LENGTH = 4

_SENSITIVE_FIELDS = {"password", "phone", "secret", "token"}


class AuditAction:
    """Audit action constants."""

    CITY_CREATE = "city.create"
    CITY_UPDATE = "city.update"
    CITY_DELETE = "city.delete"

    CUSTOMER_CREATE = "customer.create"
    CUSTOMER_UPDATE = "customer.update"
    CUSTOMER_DELETE = "customer.delete"
    CUSTOMER_TRANSFER = "customer.transfer"
    CUSTOMER_SUSPEND = "customer.suspend"
    CUSTOMER_RESUME = "customer.resume"
    CUSTOMER_EXEMPT = "customer.exempt"
    CUSTOMER_UNEXEMPT = "customer.unexempt"

    PAYMENT_RECORD = "payment.record"

    DISCOUNT_APPLY = "discount.apply"
    DISCOUNT_REMOVE = "discount.remove"

    EXPENSE_CREATE = "finance.expense.create"
    EXPENSE_UPDATE = "finance.expense.update"
    EXPENSE_DELETE = "finance.expense.delete"
    INCOME_CREATE = "finance.income.create"
    INCOME_UPDATE = "finance.income.update"
    INCOME_DELETE = "finance.income.delete"


def audit_log(
    action: str,
    resource_type: str | None = None,
    resource_id: str | None = None,
    details: dict[str, Any] | None = None,
    success: bool = True,
    ip_address: str | None = None,
) -> None:
    """Log an audit event.

    Args:
        action: The action being performed (use AuditAction constants)
        resource_type: Type of record acted upon ("city", "customer", ...)
        resource_id: Opaque id of the record
        details: Additional details; sensitive keys are masked
        success: Whether the action succeeded
        ip_address: Client IP address
    """
    log_data: dict[str, Any] = {
        "audit": True,
        "action": action,
        "success": success,
    }

    if resource_type:
        log_data["resource_type"] = resource_type
    if resource_id:
        log_data["resource_id"] = resource_id
    if ip_address:
        log_data["ip_address"] = ip_address
    if details:
        log_data["details"] = _sanitize_details(details)

    if success:
        logger.info("audit_event", **log_data)
    else:
        logger.warning("audit_event", **log_data)


def _sanitize_details(details: dict[str, Any]) -> dict[str, Any]:
    """Mask values whose key names look sensitive, keeping the last few chars."""
    sanitized = {}
    for key, value in details.items():
        lower_key = key.lower()
        if any(sensitive in lower_key for sensitive in _SENSITIVE_FIELDS):
            if isinstance(value, str) and len(value) > _MASK_SUFFIX_LENGTH:
                sanitized[key] = f"****{value[-_MASK_SUFFIX_LENGTH:]}"
            else:
                sanitized[key] = "****"
        else:
            sanitized[key] = value

    return sanitized
