"""Queries for cities and customers.

Route handlers fetch rows here and hand the engine immutable
CustomerRecord snapshots rather than live ORM objects.
"""

from sqlalchemy import delete, func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from ispdesk.models.city import City
from ispdesk.models.customer import Customer
from ispdesk.services.records import CustomerRecord, to_records


def _escape_like(term: str) -> str:
    """Make % and _ in a search term match literally."""
    return term.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


async def get_city(db: AsyncSession, city_id: str) -> City | None:
    """Fetch a city by id."""
    result = await db.execute(select(City).where(City.id == city_id))
    return result.scalar_one_or_none()


async def get_customer(db: AsyncSession, customer_id: str) -> Customer | None:
    """Fetch a customer by id."""
    result = await db.execute(select(Customer).where(Customer.id == customer_id))
    return result.scalar_one_or_none()


async def list_customers(
    db: AsyncSession,
    city_id: str | None = None,
    query: str | None = None,
    suspended: bool | None = None,
    discounted: bool | None = None,
    exempt: bool | None = None,
) -> list[Customer]:
    """List customers ordered by name, with optional filters.

    query matches name, user_name (case-insensitive) or phone.
    """
    stmt = select(Customer).order_by(Customer.name, Customer.id)

    if city_id is not None:
        stmt = stmt.where(Customer.city_id == city_id)
    if suspended is not None:
        stmt = stmt.where(Customer.is_suspended == suspended)
    if discounted is not None:
        stmt = stmt.where(Customer.has_discount == discounted)
    if exempt is not None:
        stmt = stmt.where(Customer.is_exempt == exempt)
    if query:
        term = _escape_like(query.strip())
        pattern = f"%{term.lower()}%"
        stmt = stmt.where(
            or_(
                func.lower(Customer.name).like(pattern, escape="\\"),
                func.lower(Customer.user_name).like(pattern, escape="\\"),
                Customer.phone.like(f"%{term}%", escape="\\"),
            )
        )

    result = await db.execute(stmt)
    return list(result.scalars().all())


async def load_records(db: AsyncSession, city_id: str | None = None) -> list[CustomerRecord]:
    """Snapshot every customer (optionally one city's) for the engine."""
    return to_records(await list_customers(db, city_id=city_id))


async def find_router_conflict(
    db: AsyncSession,
    city_id: str,
    user_name: str | None,
    ip_number: str | None,
    exclude_id: str | None = None,
) -> Customer | None:
    """Another customer in the city already using this user_name or ip_number."""
    clauses = []
    if user_name:
        clauses.append(Customer.user_name == user_name)
    if ip_number:
        clauses.append(Customer.ip_number == ip_number)
    if not clauses:
        return None

    stmt = select(Customer).where(Customer.city_id == city_id, or_(*clauses))
    if exclude_id is not None:
        stmt = stmt.where(Customer.id != exclude_id)

    result = await db.execute(stmt.limit(1))
    return result.scalar_one_or_none()


async def delete_city_cascade(db: AsyncSession, city: City) -> int:
    """Delete a city and every customer in it; returns customers deleted."""
    result = await db.execute(delete(Customer).where(Customer.city_id == city.id))
    await db.delete(city)
    await db.flush()
    return result.rowcount or 0
