# revenue_sync/infrastructure/db/repositories/invoice_repository.py
"""Read access to invoices plus the single write this service owns: the revenue back-link."""

from __future__ import annotations

import uuid

from sqlalchemy import and_, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from revenue_sync.domain.models.revenue import COLLECTIBLE_STATUSES
from revenue_sync.infrastructure.db.models import Invoice


class InvoiceRepository:
    def __init__(self, db: AsyncSession) -> None:
        self.db = db

    async def get_by_id(
        self,
        invoice_id: uuid.UUID,
        user_id: uuid.UUID,
    ) -> Invoice | None:
        stmt = select(Invoice).where(
            and_(Invoice.id == invoice_id, Invoice.user_id == user_id)
        )
        result = await self.db.execute(stmt)
        return result.scalar_one_or_none()

    async def list_unreconciled(self, user_id: uuid.UUID) -> list[Invoice]:
        """
        Paid / Partial invoices that have no revenue back-link yet.
        Used by the reconciliation sweep.
        """
        stmt = (
            select(Invoice)
            .where(
                and_(
                    Invoice.user_id == user_id,
                    Invoice.status.in_(COLLECTIBLE_STATUSES),
                    Invoice.revenue_id.is_(None),
                )
            )
            .order_by(Invoice.invoice_date, Invoice.created_at)
        )
        result = await self.db.execute(stmt)
        return list(result.scalars().all())

    async def list_tenants_with_unreconciled(self) -> list[uuid.UUID]:
        """Distinct tenants that still have collectible invoices without revenue."""
        stmt = (
            select(Invoice.user_id)
            .where(
                and_(
                    Invoice.status.in_(COLLECTIBLE_STATUSES),
                    Invoice.revenue_id.is_(None),
                )
            )
            .distinct()
        )
        result = await self.db.execute(stmt)
        return list(result.scalars().all())

    async def set_revenue_id(
        self,
        invoice_id: uuid.UUID,
        user_id: uuid.UUID,
        revenue_id: uuid.UUID,
    ) -> bool:
        """Point invoice.revenue_id at a revenue row. Returns False if the invoice is gone."""
        stmt = (
            update(Invoice)
            .where(and_(Invoice.id == invoice_id, Invoice.user_id == user_id))
            .values(revenue_id=revenue_id)
        )
        result = await self.db.execute(stmt)
        await self.db.commit()
        return (result.rowcount or 0) > 0
