# revenue_sync/infrastructure/db/repositories/revenue_repository.py
"""Repository for Revenue ledger rows, keyed by invoice and (optionally) department."""

from __future__ import annotations

import uuid
from typing import Any

from sqlalchemy import and_, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from revenue_sync.infrastructure.db.models import Revenue


class RevenueRepository:
    def __init__(self, db: AsyncSession) -> None:
        self.db = db

    # ---------- lookups ----------

    async def get_by_id(
        self,
        revenue_id: uuid.UUID,
        user_id: uuid.UUID,
    ) -> Revenue | None:
        stmt = select(Revenue).where(
            and_(Revenue.id == revenue_id, Revenue.user_id == user_id)
        )
        result = await self.db.execute(stmt)
        return result.scalar_one_or_none()

    async def get_for_invoice(
        self,
        invoice_id: uuid.UUID,
        user_id: uuid.UUID,
    ) -> Revenue | None:
        """The invoice-level (non-split) row."""
        stmt = select(Revenue).where(
            and_(
                Revenue.invoice_id == invoice_id,
                Revenue.user_id == user_id,
                Revenue.is_department_split.is_(False),
            )
        )
        result = await self.db.execute(stmt)
        return result.scalars().first()

    async def get_department_split(
        self,
        invoice_id: uuid.UUID,
        department_name: str,
        user_id: uuid.UUID,
    ) -> Revenue | None:
        stmt = select(Revenue).where(
            and_(
                Revenue.invoice_id == invoice_id,
                Revenue.department_name == department_name,
                Revenue.user_id == user_id,
                Revenue.is_department_split.is_(True),
            )
        )
        result = await self.db.execute(stmt)
        return result.scalars().first()

    async def list_for_user(
        self,
        user_id: uuid.UUID,
        *,
        month: str | None = None,
        year: int | None = None,
        department: str | None = None,
        is_department_split: bool | None = None,
        limit: int = 20,
        offset: int = 0,
    ) -> tuple[list[Revenue], int]:
        """Filtered page of revenue rows (newest invoice first) and the total count."""
        conditions = [Revenue.user_id == user_id]
        if month:
            conditions.append(Revenue.month == month)
        if year:
            conditions.append(Revenue.year == year)
        if department:
            conditions.append(Revenue.department_name == department)
        if is_department_split is not None:
            conditions.append(Revenue.is_department_split.is_(is_department_split))

        count_stmt = select(func.count()).select_from(Revenue).where(and_(*conditions))
        total = (await self.db.execute(count_stmt)).scalar_one()

        stmt = (
            select(Revenue)
            .where(and_(*conditions))
            .order_by(Revenue.invoice_date.desc(), Revenue.created_at.desc())
            .limit(limit)
            .offset(offset)
        )
        result = await self.db.execute(stmt)
        return list(result.scalars().all()), total

    # ---------- writes ----------

    async def create(self, data: dict[str, Any]) -> Revenue:
        """Insert a new revenue row; due_amount is derived, never taken from data."""
        revenue = Revenue(id=uuid.uuid4(), **data)
        revenue.refresh_due_amount()
        self.db.add(revenue)
        await self.db.commit()
        await self.db.refresh(revenue)
        return revenue

    async def update(self, revenue: Revenue, data: dict[str, Any]) -> Revenue:
        """Overwrite every field in data (replace, not merge) and re-derive due_amount."""
        for key, value in data.items():
            setattr(revenue, key, value)
        revenue.refresh_due_amount()
        await self.db.commit()
        await self.db.refresh(revenue)
        return revenue
