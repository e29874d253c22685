"""Tests for customer endpoints."""

from datetime import date
from typing import Any

import pytest
from httpx import AsyncClient


@pytest.fixture
def customer_payload() -> dict[str, Any]:
    """Sample customer creation payload."""
    return {
        "name": "Fahad",
        "phone": "0551234567",
        "user_name": "fahad01",
        "ip_number": "10.0.0.5",
        "additional_routers": [{"user_name": "fahad02", "ip_number": "10.0.0.6"}],
        "start_date": "2024-01-10",
        "subscription_value": 150,
        "setup_fee_total": 300,
        "setup_fee_paid": 100,
    }


class TestCreateCustomer:
    """Test customer creation."""

    @pytest.mark.asyncio
    async def test_create_customer(
        self,
        test_client: AsyncClient,
        create_test_city: Any,
        customer_payload: dict[str, Any],
    ) -> None:
        city = await create_test_city()

        response = await test_client.post(
            "/api/v1/customers", json={**customer_payload, "city_id": city.id}
        )

        assert response.status_code == 201
        data = response.json()
        assert data["id"].startswith("cu_")
        assert data["subscription_value"] == 150.0
        assert data["setup_fee_remaining"] == 200.0
        assert data["monthly_payments"] == {}
        assert data["additional_routers"] == [{"user_name": "fahad02", "ip_number": "10.0.0.6"}]

    @pytest.mark.asyncio
    async def test_create_customer_unknown_city(
        self, test_client: AsyncClient, customer_payload: dict[str, Any]
    ) -> None:
        response = await test_client.post(
            "/api/v1/customers", json={**customer_payload, "city_id": "ct_missing"}
        )
        assert response.status_code == 404

    @pytest.mark.asyncio
    async def test_negative_subscription_rejected(
        self,
        test_client: AsyncClient,
        create_test_city: Any,
        customer_payload: dict[str, Any],
    ) -> None:
        city = await create_test_city()
        response = await test_client.post(
            "/api/v1/customers",
            json={**customer_payload, "city_id": city.id, "subscription_value": -5},
        )
        assert response.status_code == 422

    @pytest.mark.asyncio
    async def test_duplicate_user_name_in_city(
        self,
        test_client: AsyncClient,
        create_test_city: Any,
        create_test_customer: Any,
        customer_payload: dict[str, Any],
    ) -> None:
        city = await create_test_city()
        await create_test_customer(city.id, user_name="fahad01", ip_number="10.9.9.9")

        response = await test_client.post(
            "/api/v1/customers", json={**customer_payload, "city_id": city.id}
        )

        assert response.status_code == 409
        assert "user_name" in response.json()["detail"]

    @pytest.mark.asyncio
    async def test_duplicate_ip_in_city(
        self,
        test_client: AsyncClient,
        create_test_city: Any,
        create_test_customer: Any,
        customer_payload: dict[str, Any],
    ) -> None:
        city = await create_test_city()
        await create_test_customer(city.id, user_name="other", ip_number="10.0.0.5")

        response = await test_client.post(
            "/api/v1/customers", json={**customer_payload, "city_id": city.id}
        )

        assert response.status_code == 409
        assert "ip_number" in response.json()["detail"]

    @pytest.mark.asyncio
    async def test_same_user_name_in_other_city(
        self,
        test_client: AsyncClient,
        create_test_city: Any,
        create_test_customer: Any,
        customer_payload: dict[str, Any],
    ) -> None:
        first = await create_test_city(name="First")
        second = await create_test_city(name="Second")
        await create_test_customer(first.id, user_name="fahad01", ip_number="10.0.0.5")

        response = await test_client.post(
            "/api/v1/customers", json={**customer_payload, "city_id": second.id}
        )

        assert response.status_code == 201


class TestListCustomers:
    """Test customer listing and filters."""

    @pytest.mark.asyncio
    async def test_filters(
        self,
        test_client: AsyncClient,
        create_test_city: Any,
        create_test_customer: Any,
    ) -> None:
        riyadh = await create_test_city(name="Riyadh")
        abha = await create_test_city(name="Abha")
        await create_test_customer(riyadh.id, name="Salem", user_name="salem")
        await create_test_customer(riyadh.id, name="Noura", is_suspended=True)
        await create_test_customer(abha.id, name="Omar", has_discount=True)

        by_city = await test_client.get("/api/v1/customers", params={"city_id": riyadh.id})
        assert [c["name"] for c in by_city.json()] == ["Noura", "Salem"]

        suspended = await test_client.get("/api/v1/customers", params={"suspended": "true"})
        assert [c["name"] for c in suspended.json()] == ["Noura"]

        discounted = await test_client.get("/api/v1/customers", params={"discounted": "true"})
        assert [c["name"] for c in discounted.json()] == ["Omar"]

        search = await test_client.get("/api/v1/customers", params={"q": "SAL"})
        assert [c["name"] for c in search.json()] == ["Salem"]

    @pytest.mark.asyncio
    async def test_search_wildcards_match_literally(
        self,
        test_client: AsyncClient,
        create_test_city: Any,
        create_test_customer: Any,
    ) -> None:
        city = await create_test_city()
        await create_test_customer(city.id, name="Ali")
        await create_test_customer(city.id, name="Net_Cafe")

        underscore = await test_client.get("/api/v1/customers", params={"q": "_"})
        assert [c["name"] for c in underscore.json()] == ["Net_Cafe"]

        percent = await test_client.get("/api/v1/customers", params={"q": "%"})
        assert percent.json() == []


class TestUpdateCustomer:
    """Test editing, transfer and toggles."""

    @pytest.mark.asyncio
    async def test_update_fields(
        self,
        test_client: AsyncClient,
        create_test_city: Any,
        create_test_customer: Any,
    ) -> None:
        city = await create_test_city()
        customer = await create_test_customer(city.id)

        response = await test_client.put(
            f"/api/v1/customers/{customer.id}",
            json={"name": "Renamed", "subscription_value": 120},
        )

        assert response.status_code == 200
        data = response.json()
        assert data["name"] == "Renamed"
        assert data["subscription_value"] == 120.0
        assert data["phone"] == "0500000000"

    @pytest.mark.asyncio
    async def test_update_conflicting_ip(
        self,
        test_client: AsyncClient,
        create_test_city: Any,
        create_test_customer: Any,
    ) -> None:
        city = await create_test_city()
        await create_test_customer(city.id, ip_number="10.0.0.1")
        customer = await create_test_customer(city.id, ip_number="10.0.0.2")

        response = await test_client.put(
            f"/api/v1/customers/{customer.id}", json={"ip_number": "10.0.0.1"}
        )
        assert response.status_code == 409

    @pytest.mark.asyncio
    async def test_update_cannot_clear_required_fields(
        self,
        test_client: AsyncClient,
        create_test_city: Any,
        create_test_customer: Any,
    ) -> None:
        """Test explicit nulls for non-nullable fields are rejected."""
        city = await create_test_city()
        customer = await create_test_customer(city.id, name="Kept")

        for field in (
            "name",
            "subscription_value",
            "setup_fee_total",
            "setup_fee_paid",
            "additional_routers",
        ):
            response = await test_client.put(
                f"/api/v1/customers/{customer.id}", json={field: None}
            )
            assert response.status_code == 400
            assert response.json()["detail"] == f"{field} cannot be cleared"

        response = await test_client.get(f"/api/v1/customers/{customer.id}")
        assert response.status_code == 200
        assert response.json()["name"] == "Kept"
        assert response.json()["subscription_value"] == 100.0

    @pytest.mark.asyncio
    async def test_get_missing_customer(self, test_client: AsyncClient) -> None:
        response = await test_client.get("/api/v1/customers/cu_missing")

        assert response.status_code == 404
        assert response.json()["detail"] == "Customer not found"

    @pytest.mark.asyncio
    async def test_transfer(
        self,
        test_client: AsyncClient,
        create_test_city: Any,
        create_test_customer: Any,
    ) -> None:
        source = await create_test_city(name="Source")
        target = await create_test_city(name="Target")
        customer = await create_test_customer(source.id)

        response = await test_client.post(
            f"/api/v1/customers/{customer.id}/transfer", json={"city_id": target.id}
        )

        assert response.status_code == 200
        assert response.json()["city_id"] == target.id

    @pytest.mark.asyncio
    async def test_transfer_to_same_city(
        self,
        test_client: AsyncClient,
        create_test_city: Any,
        create_test_customer: Any,
    ) -> None:
        city = await create_test_city()
        customer = await create_test_customer(city.id)

        response = await test_client.post(
            f"/api/v1/customers/{customer.id}/transfer", json={"city_id": city.id}
        )
        assert response.status_code == 400

    @pytest.mark.asyncio
    async def test_transfer_to_unknown_city(
        self,
        test_client: AsyncClient,
        create_test_city: Any,
        create_test_customer: Any,
    ) -> None:
        city = await create_test_city()
        customer = await create_test_customer(city.id)

        response = await test_client.post(
            f"/api/v1/customers/{customer.id}/transfer", json={"city_id": "ct_missing"}
        )
        assert response.status_code == 404

    @pytest.mark.asyncio
    async def test_suspend_toggle(
        self,
        test_client: AsyncClient,
        create_test_city: Any,
        create_test_customer: Any,
    ) -> None:
        city = await create_test_city()
        customer = await create_test_customer(city.id)

        suspended = await test_client.post(f"/api/v1/customers/{customer.id}/suspend")
        assert suspended.json()["is_suspended"] is True
        assert suspended.json()["suspended_date"] == "2024-06-15"

        resumed = await test_client.post(f"/api/v1/customers/{customer.id}/suspend")
        assert resumed.json()["is_suspended"] is False
        assert resumed.json()["suspended_date"] is None

    @pytest.mark.asyncio
    async def test_exempt_toggle(
        self,
        test_client: AsyncClient,
        create_test_city: Any,
        create_test_customer: Any,
    ) -> None:
        city = await create_test_city()
        customer = await create_test_customer(city.id)

        response = await test_client.post(f"/api/v1/customers/{customer.id}/exempt")
        assert response.json()["is_exempt"] is True

    @pytest.mark.asyncio
    async def test_delete_customer(
        self,
        test_client: AsyncClient,
        create_test_city: Any,
        create_test_customer: Any,
    ) -> None:
        city = await create_test_city()
        customer = await create_test_customer(city.id)

        response = await test_client.delete(f"/api/v1/customers/{customer.id}")
        assert response.status_code == 204

        missing = await test_client.get(f"/api/v1/customers/{customer.id}")
        assert missing.status_code == 404


class TestReceivable:
    """Test the per-customer receivable snapshot."""

    @pytest.mark.asyncio
    async def test_snapshot_for_month(
        self,
        test_client: AsyncClient,
        create_test_city: Any,
        create_test_customer: Any,
    ) -> None:
        city = await create_test_city()
        customer = await create_test_customer(
            city.id,
            start_date=date(2024, 1, 15),
            monthly_payments={"2024-01": "paid", "2024-02": "partial"},
            partial_payments={"2024-02": "40"},
        )

        response = await test_client.get(
            f"/api/v1/customers/{customer.id}/receivable", params={"year": 2024, "month": 2}
        )

        assert response.status_code == 200
        data = response.json()
        assert data["total_due"] == 200.0
        assert data["total_paid"] == 140.0
        assert data["outstanding"] == 60.0
        assert data["arrears_months"] == 1
        assert data["months"] == ["2024-01", "2024-02"]

    @pytest.mark.asyncio
    async def test_snapshot_defaults_to_current_month(
        self,
        test_client: AsyncClient,
        create_test_city: Any,
        create_test_customer: Any,
    ) -> None:
        city = await create_test_city()
        customer = await create_test_customer(city.id, start_date=date(2024, 1, 1))

        response = await test_client.get(f"/api/v1/customers/{customer.id}/receivable")

        data = response.json()
        assert data["year_month"] == "2024-06"
        assert data["total_due"] == 600.0

    @pytest.mark.asyncio
    async def test_snapshot_needs_year_and_month(
        self,
        test_client: AsyncClient,
        create_test_city: Any,
        create_test_customer: Any,
    ) -> None:
        city = await create_test_city()
        customer = await create_test_customer(city.id)

        response = await test_client.get(
            f"/api/v1/customers/{customer.id}/receivable", params={"year": 2024}
        )
        assert response.status_code == 400
