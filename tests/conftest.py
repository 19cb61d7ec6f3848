"""Shared test fixtures for the revenue sync test suite."""

import asyncio
import uuid
from datetime import date
from decimal import Decimal
from unittest.mock import AsyncMock, patch

import pytest

from revenue_sync.infrastructure.db.models import Invoice, Revenue
from revenue_sync.infrastructure.db.repositories.invoice_repository import InvoiceRepository
from revenue_sync.infrastructure.db.repositories.revenue_repository import RevenueRepository


@pytest.fixture(scope="session")
def event_loop():
    """Use a single event loop for the entire test session."""
    loop = asyncio.new_event_loop()
    yield loop
    loop.close()


@pytest.fixture
def tenant_id() -> uuid.UUID:
    return uuid.uuid4()


def make_invoice(tenant_id, **overrides) -> Invoice:
    """Transient Invoice row with sensible INR defaults."""
    fields = {
        "id": uuid.uuid4(),
        "user_id": tenant_id,
        "invoice_number": "INV-001",
        "invoice_date": date(2025, 3, 14),
        "status": "Partial",
        "client_name": "Acme Corp",
        "client_country": "India",
        "invoice_currency": "INR",
        "sub_total": Decimal("10000"),
        "cgst": Decimal("900"),
        "sgst": Decimal("900"),
        "tds_amount": Decimal("500"),
        "remittance_charges": Decimal("0"),
        "received_amount": Decimal("5000"),
        "service_description": "SEO retainer",
    }
    fields.update(overrides)
    return Invoice(**fields)


@pytest.fixture
def invoice_factory(tenant_id):
    def _make(**overrides) -> Invoice:
        return make_invoice(tenant_id, **overrides)
    return _make


# ---------------------------------------------------------------------------
# In-memory ledger standing in for the database
# ---------------------------------------------------------------------------

class LedgerSession:
    """Just enough of AsyncSession for the repositories' write paths."""

    def __init__(self, ledger: "InMemoryLedger") -> None:
        self.ledger = ledger
        self.commit = AsyncMock()
        self.refresh = AsyncMock()
        self.rollback = AsyncMock()

    def add(self, obj) -> None:
        self.ledger.revenues.append(obj)

    async def __aenter__(self):
        self.ledger.sessions_opened += 1
        return self

    async def __aexit__(self, *exc_info):
        return False


class InMemoryLedger:
    def __init__(self) -> None:
        self.invoices: list[Invoice] = []
        self.revenues: list[Revenue] = []
        self.sessions_opened = 0
        self.fail_departments: set[str] = set()
        self.fail_backlinks = False
        self.in_flight = 0
        self.max_in_flight = 0

    def session(self) -> LedgerSession:
        return LedgerSession(self)

    def add_invoice(self, invoice: Invoice) -> Invoice:
        self.invoices.append(invoice)
        return invoice

    def invoice_rows(self, invoice_id) -> list[Revenue]:
        return [r for r in self.revenues if r.invoice_id == invoice_id and not r.is_department_split]

    def split_rows(self, invoice_id) -> list[Revenue]:
        return [r for r in self.revenues if r.invoice_id == invoice_id and r.is_department_split]

    def repositories(self):
        ledger = self

        class LedgerRevenueRepository(RevenueRepository):
            async def get_by_id(self, revenue_id, user_id):
                return next(
                    (r for r in ledger.revenues if r.id == revenue_id and r.user_id == user_id),
                    None,
                )

            async def get_for_invoice(self, invoice_id, user_id):
                return next(
                    (r for r in ledger.invoice_rows(invoice_id) if r.user_id == user_id),
                    None,
                )

            async def get_department_split(self, invoice_id, department_name, user_id):
                ledger.in_flight += 1
                ledger.max_in_flight = max(ledger.max_in_flight, ledger.in_flight)
                try:
                    await asyncio.sleep(0)
                finally:
                    ledger.in_flight -= 1
                return next(
                    (
                        r for r in ledger.split_rows(invoice_id)
                        if r.department_name == department_name and r.user_id == user_id
                    ),
                    None,
                )

            async def create(self, data):
                if data.get("department_name") in ledger.fail_departments:
                    raise RuntimeError(f"insert rejected for {data['department_name']}")
                return await super().create(data)

        class LedgerInvoiceRepository(InvoiceRepository):
            async def get_by_id(self, invoice_id, user_id):
                return next(
                    (i for i in ledger.invoices if i.id == invoice_id and i.user_id == user_id),
                    None,
                )

            async def list_unreconciled(self, user_id):
                return [
                    i for i in ledger.invoices
                    if i.user_id == user_id
                    and i.status in ("Paid", "Partial")
                    and i.revenue_id is None
                ]

            async def list_tenants_with_unreconciled(self):
                tenants = []
                for i in ledger.invoices:
                    if i.status in ("Paid", "Partial") and i.revenue_id is None and i.user_id not in tenants:
                        tenants.append(i.user_id)
                return tenants

            async def set_revenue_id(self, invoice_id, user_id, revenue_id):
                if ledger.fail_backlinks:
                    raise ConnectionError("database went away")
                invoice = await self.get_by_id(invoice_id, user_id)
                if invoice is None:
                    return False
                invoice.revenue_id = revenue_id
                return True

        return LedgerRevenueRepository, LedgerInvoiceRepository


@pytest.fixture
def ledger():
    """In-memory store wired into the reconciliation services."""
    store = InMemoryLedger()
    revenue_repo, invoice_repo = store.repositories()
    with patch("revenue_sync.domain.services.ledger_sync.RevenueRepository", revenue_repo), \
         patch("revenue_sync.domain.services.ledger_sync.InvoiceRepository", invoice_repo), \
         patch("revenue_sync.domain.services.department_split.RevenueRepository", revenue_repo):
        yield store
