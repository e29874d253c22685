"""Tests for audit logging helpers."""

from ispdesk.core.audit import AuditAction, _sanitize_details, audit_log
from ispdesk.core.public_id import CUSTOMER_PREFIX, generate_public_id


class TestSanitizeDetails:
    """Test masking of sensitive detail values."""

    def test_phone_is_masked(self) -> None:
        details = _sanitize_details({"phone": "0551234567", "city_id": "ct_1"})

        assert details["phone"] == "****4567"
        assert details["city_id"] == "ct_1"

    def test_short_values_fully_masked(self) -> None:
        assert _sanitize_details({"token": "abc"}) == {"token": "****"}

    def test_audit_log_accepts_details(self) -> None:
        audit_log(
            AuditAction.DISCOUNT_APPLY,
            resource_type="customer",
            resource_id="cu_1",
            details={"kind": "percentage", "value": "10"},
            ip_address="127.0.0.1",
        )


class TestPublicId:
    """Test opaque id generation."""

    def test_prefix_and_length(self) -> None:
        public_id = generate_public_id(CUSTOMER_PREFIX)

        assert public_id.startswith("cu_")
        assert len(public_id) == len("cu_") + 12

    def test_ids_are_unique(self) -> None:
        assert len({generate_public_id("ct") for _ in range(100)}) == 100
