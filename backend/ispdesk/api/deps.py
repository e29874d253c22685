"""Shared API dependencies."""

from datetime import date

from fastapi import HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession

from ispdesk.models.city import City
from ispdesk.models.customer import Customer
from ispdesk.services import repository


def get_today() -> date:
    """Today's date; overridden in tests to pin the calendar."""
    return date.today()


def resolve_period(year: int | None, month: int | None, today: date) -> tuple[int, int]:
    """Reporting (year, month), defaulting to the current month.

    Raises:
        HTTPException: If only one of year / month is given.
    """
    if year is None and month is None:
        return today.year, today.month
    if year is None or month is None:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Provide both year and month, or neither",
        )
    return year, month


async def get_city_or_404(db: AsyncSession, city_id: str) -> City:
    """Fetch a city or raise 404."""
    city = await repository.get_city(db, city_id)
    if not city:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="City not found")
    return city


async def get_customer_or_404(db: AsyncSession, customer_id: str) -> Customer:
    """Fetch a customer or raise 404."""
    customer = await repository.get_customer(db, customer_id)
    if not customer:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Customer not found")
    return customer
