"""Manual finance ledger: expenses, incomes and monthly totals."""

from datetime import date
from decimal import Decimal

import structlog
from fastapi import APIRouter, Depends, HTTPException, Query, Request, status
from pydantic import BaseModel, Field, field_validator
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from ispdesk.api.deps import get_today, resolve_period
from ispdesk.core.audit import AuditAction, audit_log
from ispdesk.core.config import settings
from ispdesk.core.limiter import limiter
from ispdesk.core.public_id import EXPENSE_PREFIX, INCOME_PREFIX, generate_public_id
from ispdesk.db.session import get_db
from ispdesk.middleware.request_tracing import client_ip
from ispdesk.models.ledger import Expense, Income
from ispdesk.services.finance import month_totals

logger = structlog.get_logger()

router = APIRouter(prefix="/finance", tags=["finance"])

LedgerModel = type[Expense] | type[Income]


class LedgerEntryCreate(BaseModel):
    """Expense or income creation schema."""

    name: str = Field(..., min_length=1, max_length=255)
    description: str | None = None
    amount: Decimal = Field(..., gt=0, max_digits=12, decimal_places=2)
    entry_date: date

    @field_validator("name")
    @classmethod
    def validate_name(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("Name cannot be empty")
        return v


class LedgerEntryUpdate(BaseModel):
    """Expense or income update schema."""

    name: str | None = Field(default=None, min_length=1, max_length=255)
    description: str | None = None
    amount: Decimal | None = Field(default=None, gt=0, max_digits=12, decimal_places=2)
    entry_date: date | None = None


class LedgerEntryResponse(BaseModel):
    """Expense or income response schema."""

    id: str
    name: str
    description: str | None
    amount: float
    entry_date: date
    month: int
    year: int

    model_config = {"from_attributes": True}


class FinanceSummaryResponse(BaseModel):
    """Ledger totals of one month."""

    year: int
    month: int
    currency: str
    total_incomes: float
    total_expenses: float
    net: float


async def _list_entries(
    db: AsyncSession, model: LedgerModel, year: int | None, month: int | None
) -> list[LedgerEntryResponse]:
    stmt = select(model).order_by(model.entry_date.desc(), model.id)
    if year is not None:
        stmt = stmt.where(model.year == year)
    if month is not None:
        stmt = stmt.where(model.month == month)
    result = await db.execute(stmt)
    return [LedgerEntryResponse.model_validate(entry) for entry in result.scalars().all()]


async def _get_entry_or_404(db: AsyncSession, model: LedgerModel, entry_id: str) -> Expense | Income:
    result = await db.execute(select(model).where(model.id == entry_id))
    entry = result.scalar_one_or_none()
    if not entry:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"{model.__name__} not found",
        )
    return entry


async def _create_entry(
    request: Request,
    db: AsyncSession,
    model: LedgerModel,
    prefix: str,
    data: LedgerEntryCreate,
    action: str,
) -> LedgerEntryResponse:
    entry = model(
        id=generate_public_id(prefix),
        name=data.name,
        description=data.description,
        amount=data.amount,
        entry_date=data.entry_date,
        month=data.entry_date.month,
        year=data.entry_date.year,
    )
    db.add(entry)
    await db.commit()
    await db.refresh(entry)

    logger.info("ledger_entry_created", kind=model.__tablename__, entry_id=entry.id)
    audit_log(
        action,
        resource_type=model.__tablename__,
        resource_id=entry.id,
        details={"amount": str(data.amount)},
        ip_address=client_ip(request),
    )
    return LedgerEntryResponse.model_validate(entry)


async def _update_entry(
    request: Request,
    db: AsyncSession,
    model: LedgerModel,
    entry_id: str,
    data: LedgerEntryUpdate,
    action: str,
) -> LedgerEntryResponse:
    entry = await _get_entry_or_404(db, model, entry_id)
    updates = data.model_dump(exclude_unset=True)

    if updates.get("name") is not None:
        updates["name"] = updates["name"].strip()
    for field in ("name", "amount", "entry_date"):
        if field in updates and updates[field] is None:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail=f"{field} cannot be cleared",
            )

    for field, value in updates.items():
        setattr(entry, field, value)
    # Keep the denormalized period in step with the date
    entry.month = entry.entry_date.month
    entry.year = entry.entry_date.year
    await db.commit()

    audit_log(
        action,
        resource_type=model.__tablename__,
        resource_id=entry.id,
        details={"fields": sorted(updates)},
        ip_address=client_ip(request),
    )
    return LedgerEntryResponse.model_validate(entry)


async def _delete_entry(
    request: Request,
    db: AsyncSession,
    model: LedgerModel,
    entry_id: str,
    action: str,
) -> None:
    entry = await _get_entry_or_404(db, model, entry_id)
    await db.delete(entry)
    await db.commit()

    audit_log(
        action,
        resource_type=model.__tablename__,
        resource_id=entry_id,
        ip_address=client_ip(request),
    )


# Expenses


@router.get("/expenses", response_model=list[LedgerEntryResponse])
async def list_expenses(
    year: int | None = Query(default=None),
    month: int | None = Query(default=None, ge=1, le=12),
    db: AsyncSession = Depends(get_db),
) -> list[LedgerEntryResponse]:
    """List expenses, newest first."""
    return await _list_entries(db, Expense, year, month)


@router.post("/expenses", response_model=LedgerEntryResponse, status_code=status.HTTP_201_CREATED)
@limiter.limit("60/minute")
async def create_expense(
    request: Request,
    entry_data: LedgerEntryCreate,
    db: AsyncSession = Depends(get_db),
) -> LedgerEntryResponse:
    """Record an expense; its month and year come from entry_date."""
    return await _create_entry(
        request, db, Expense, EXPENSE_PREFIX, entry_data, AuditAction.EXPENSE_CREATE
    )


@router.put("/expenses/{entry_id}", response_model=LedgerEntryResponse)
@limiter.limit("60/minute")
async def update_expense(
    request: Request,
    entry_id: str,
    entry_data: LedgerEntryUpdate,
    db: AsyncSession = Depends(get_db),
) -> LedgerEntryResponse:
    """Update an expense."""
    return await _update_entry(
        request, db, Expense, entry_id, entry_data, AuditAction.EXPENSE_UPDATE
    )


@router.delete("/expenses/{entry_id}", status_code=status.HTTP_204_NO_CONTENT)
@limiter.limit("30/minute")
async def delete_expense(
    request: Request,
    entry_id: str,
    db: AsyncSession = Depends(get_db),
) -> None:
    """Delete an expense."""
    await _delete_entry(request, db, Expense, entry_id, AuditAction.EXPENSE_DELETE)


# Incomes


@router.get("/incomes", response_model=list[LedgerEntryResponse])
async def list_incomes(
    year: int | None = Query(default=None),
    month: int | None = Query(default=None, ge=1, le=12),
    db: AsyncSession = Depends(get_db),
) -> list[LedgerEntryResponse]:
    """List incomes, newest first."""
    return await _list_entries(db, Income, year, month)


@router.post("/incomes", response_model=LedgerEntryResponse, status_code=status.HTTP_201_CREATED)
@limiter.limit("60/minute")
async def create_income(
    request: Request,
    entry_data: LedgerEntryCreate,
    db: AsyncSession = Depends(get_db),
) -> LedgerEntryResponse:
    """Record an income; its month and year come from entry_date."""
    return await _create_entry(
        request, db, Income, INCOME_PREFIX, entry_data, AuditAction.INCOME_CREATE
    )


@router.put("/incomes/{entry_id}", response_model=LedgerEntryResponse)
@limiter.limit("60/minute")
async def update_income(
    request: Request,
    entry_id: str,
    entry_data: LedgerEntryUpdate,
    db: AsyncSession = Depends(get_db),
) -> LedgerEntryResponse:
    """Update an income."""
    return await _update_entry(
        request, db, Income, entry_id, entry_data, AuditAction.INCOME_UPDATE
    )


@router.delete("/incomes/{entry_id}", status_code=status.HTTP_204_NO_CONTENT)
@limiter.limit("30/minute")
async def delete_income(
    request: Request,
    entry_id: str,
    db: AsyncSession = Depends(get_db),
) -> None:
    """Delete an income."""
    await _delete_entry(request, db, Income, entry_id, AuditAction.INCOME_DELETE)


@router.get("/summary", response_model=FinanceSummaryResponse)
async def finance_summary(
    year: int | None = Query(default=None, ge=1900, le=9999),
    month: int | None = Query(default=None, ge=1, le=12),
    db: AsyncSession = Depends(get_db),
    today: date = Depends(get_today),
) -> FinanceSummaryResponse:
    """Income, expense and net totals for a month (the current one by default)."""
    year, month = resolve_period(year, month, today)

    expenses = await db.execute(select(Expense).where(Expense.year == year, Expense.month == month))
    incomes = await db.execute(select(Income).where(Income.year == year, Income.month == month))
    totals = month_totals(expenses.scalars().all(), incomes.scalars().all(), year, month)

    return FinanceSummaryResponse(
        year=year,
        month=month,
        currency=settings.CURRENCY,
        total_incomes=float(totals.total_incomes),
        total_expenses=float(totals.total_expenses),
        net=float(totals.net),
    )
