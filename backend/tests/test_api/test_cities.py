"""Tests for city endpoints."""

from typing import Any

import pytest
from httpx import AsyncClient
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from ispdesk.models.customer import Customer


class TestCityCrud:
    """Test creating, listing and renaming cities."""

    @pytest.mark.asyncio
    async def test_create_city(self, test_client: AsyncClient) -> None:
        response = await test_client.post("/api/v1/cities", json={"name": "  Jeddah  "})

        assert response.status_code == 201
        data = response.json()
        assert data["name"] == "Jeddah"
        assert data["id"].startswith("ct_")

    @pytest.mark.asyncio
    async def test_create_city_blank_name(self, test_client: AsyncClient) -> None:
        response = await test_client.post("/api/v1/cities", json={"name": "   "})
        assert response.status_code == 422

    @pytest.mark.asyncio
    async def test_list_cities_with_counts(
        self,
        test_client: AsyncClient,
        create_test_city: Any,
        create_test_customer: Any,
    ) -> None:
        riyadh = await create_test_city(name="Riyadh")
        await create_test_city(name="Abha")
        await create_test_customer(riyadh.id, name="A")
        await create_test_customer(riyadh.id, name="B")

        response = await test_client.get("/api/v1/cities")

        assert response.status_code == 200
        data = response.json()
        assert [c["name"] for c in data] == ["Abha", "Riyadh"]
        assert [c["customer_count"] for c in data] == [0, 2]

    @pytest.mark.asyncio
    async def test_rename_city(self, test_client: AsyncClient, create_test_city: Any) -> None:
        city = await create_test_city(name="Old")

        response = await test_client.put(f"/api/v1/cities/{city.id}", json={"name": "New"})

        assert response.status_code == 200
        assert response.json()["name"] == "New"

    @pytest.mark.asyncio
    async def test_rename_missing_city(self, test_client: AsyncClient) -> None:
        response = await test_client.put("/api/v1/cities/ct_missing", json={"name": "New"})

        assert response.status_code == 404
        assert response.json()["detail"] == "City not found"


class TestCityDelete:
    """Test cascading city deletion."""

    @pytest.mark.asyncio
    async def test_delete_city_removes_customers(
        self,
        test_client: AsyncClient,
        test_session: AsyncSession,
        create_test_city: Any,
        create_test_customer: Any,
    ) -> None:
        doomed = await create_test_city(name="Doomed")
        kept = await create_test_city(name="Kept")
        await create_test_customer(doomed.id, name="A")
        await create_test_customer(doomed.id, name="B")
        await create_test_customer(kept.id, name="C")

        response = await test_client.delete(f"/api/v1/cities/{doomed.id}")

        assert response.status_code == 200
        assert response.json()["customers_deleted"] == 2

        remaining = await test_session.scalar(select(func.count(Customer.id)))
        assert remaining == 1

    @pytest.mark.asyncio
    async def test_delete_missing_city(self, test_client: AsyncClient) -> None:
        response = await test_client.delete("/api/v1/cities/ct_missing")
        assert response.status_code == 404
