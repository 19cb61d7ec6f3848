"""Tests for the /api/v1/revenue endpoints."""

import uuid
from decimal import Decimal
from unittest.mock import AsyncMock, MagicMock, patch

import pytest
from fastapi import HTTPException
from fastapi.testclient import TestClient
from jose import jwt

from revenue_sync.api.v1.deps import get_current_tenant
from revenue_sync.core.config import settings
from revenue_sync.core.db import get_db
from revenue_sync.domain.exceptions import RevenueValidationError, SplitAllocationError
from revenue_sync.domain.models.revenue import SweepSummary
from revenue_sync.infrastructure.db.models import Revenue
from revenue_sync.main import app

ROUTES = "revenue_sync.api.v1.routes.revenue"
LEDGER_SYNC = "revenue_sync.domain.services.ledger_sync"
DEPARTMENT_SPLIT = "revenue_sync.domain.services.department_split"


@pytest.fixture
def client(tenant_id):
    db = AsyncMock()

    async def _db():
        yield db

    app.dependency_overrides[get_current_tenant] = lambda: tenant_id
    app.dependency_overrides[get_db] = _db
    yield TestClient(app)
    app.dependency_overrides.clear()


def _revenue(tenant_id, **overrides) -> Revenue:
    fields = {
        "id": uuid.uuid4(),
        "user_id": tenant_id,
        "invoice_id": uuid.uuid4(),
        "client_name": "Acme Corp",
        "country": "India",
        "service": "SEO",
        "engagement_type": "One Time",
        "invoice_number": "INV-001",
        "invoice_amount": Decimal("10000.00"),
        "gst_amount": Decimal("1800.00"),
        "tds_amount": Decimal("500.00"),
        "remittance_charges": Decimal("0.00"),
        "received_amount": Decimal("5000.00"),
        "due_amount": Decimal("6300.00"),
        "month": "Mar",
        "year": 2025,
        "department_name": "",
        "is_department_split": False,
        "split_ratio": Decimal("0"),
    }
    fields.update(overrides)
    return Revenue(**fields)


def _invoice_repo(invoice):
    repo = MagicMock()
    repo.return_value.get_by_id = AsyncMock(return_value=invoice)
    return repo


def test_health(client):
    resp = client.get("/health")
    assert resp.status_code == 200
    assert resp.json()["status"] == "ok"


# ---------------------------------------------------------------------------
# Auth
# ---------------------------------------------------------------------------

class TestAuth:

    def test_missing_token(self):
        resp = TestClient(app).post(f"/api/v1/revenue/invoices/{uuid.uuid4()}/reconcile")
        assert resp.status_code == 401

    def test_garbage_token(self):
        resp = TestClient(app).post(
            f"/api/v1/revenue/invoices/{uuid.uuid4()}/reconcile",
            headers={"Authorization": "Bearer not-a-jwt"},
        )
        assert resp.status_code == 401

    def test_subject_must_be_uuid(self, event_loop):
        token = jwt.encode({"sub": "42"}, settings.JWT_SECRET, algorithm=settings.JWT_ALGORITHM)
        with pytest.raises(HTTPException) as exc_info:
            event_loop.run_until_complete(get_current_tenant(f"Bearer {token}"))
        assert exc_info.value.status_code == 401

    def test_valid_token_yields_tenant(self, event_loop, tenant_id):
        token = jwt.encode(
            {"sub": str(tenant_id)}, settings.JWT_SECRET, algorithm=settings.JWT_ALGORITHM
        )
        result = event_loop.run_until_complete(get_current_tenant(f"Bearer {token}"))
        assert result == tenant_id


# ---------------------------------------------------------------------------
# Reconcile one invoice
# ---------------------------------------------------------------------------

class TestReconcileInvoice:

    def test_success(self, client, tenant_id, invoice_factory):
        invoice = invoice_factory()
        revenue = _revenue(tenant_id, invoice_id=invoice.id)

        with patch(f"{ROUTES}.InvoiceRepository", _invoice_repo(invoice)), \
             patch(f"{LEDGER_SYNC}.reconcile_one", AsyncMock(return_value=revenue)) as mock_reconcile:
            resp = client.post(f"/api/v1/revenue/invoices/{invoice.id}/reconcile")

        assert resp.status_code == 200
        body = resp.json()
        assert body["status"] == "ok"
        assert body["data"]["id"] == str(revenue.id)
        assert Decimal(body["data"]["due_amount"]) == Decimal("6300.00")
        assert mock_reconcile.await_args.args[:2] == (invoice, tenant_id)

    def test_invoice_not_found(self, client):
        with patch(f"{ROUTES}.InvoiceRepository", _invoice_repo(None)):
            resp = client.post(f"/api/v1/revenue/invoices/{uuid.uuid4()}/reconcile")
        assert resp.status_code == 404

    def test_validation_error(self, client, invoice_factory):
        invoice = invoice_factory(client_name="")
        failing = AsyncMock(side_effect=RevenueValidationError("invoice client name is missing"))

        with patch(f"{ROUTES}.InvoiceRepository", _invoice_repo(invoice)), \
             patch(f"{LEDGER_SYNC}.reconcile_one", failing):
            resp = client.post(f"/api/v1/revenue/invoices/{invoice.id}/reconcile")

        assert resp.status_code == 422
        assert "client name" in resp.json()["detail"]

    def test_nothing_collected(self, client, invoice_factory):
        invoice = invoice_factory(status="Unpaid", received_amount=None)

        with patch(f"{ROUTES}.InvoiceRepository", _invoice_repo(invoice)), \
             patch(f"{LEDGER_SYNC}.reconcile_one", AsyncMock(return_value=None)):
            resp = client.post(f"/api/v1/revenue/invoices/{invoice.id}/reconcile")

        assert resp.status_code == 200
        assert resp.json()["data"] is None


# ---------------------------------------------------------------------------
# Department splits
# ---------------------------------------------------------------------------

class TestSplits:

    BODY = {
        "payment_amount": "12000",
        "splits": [
            {"department_name": "Sales", "amount": "7000"},
            {"department_name": "Marketing", "amount": "5000"},
        ],
    }

    def _invoice(self, invoice_factory):
        return invoice_factory(
            status="Paid",
            sub_total=Decimal("12000"),
            cgst=None,
            sgst=None,
            igst=Decimal("2160"),
            tds_amount=Decimal("0"),
            received_amount=Decimal("12000"),
        )

    def test_success(self, client, tenant_id, invoice_factory):
        invoice = self._invoice(invoice_factory)
        rows = [
            _revenue(tenant_id, department_name="Sales", is_department_split=True,
                     split_ratio=Decimal("0.5833"), received_amount=Decimal("7000.00")),
            _revenue(tenant_id, department_name="Marketing", is_department_split=True,
                     split_ratio=Decimal("0.4167"), received_amount=Decimal("5000.00")),
        ]

        with patch(f"{ROUTES}.InvoiceRepository", _invoice_repo(invoice)), \
             patch(f"{LEDGER_SYNC}.reconcile_one", AsyncMock()) as mock_reconcile, \
             patch(f"{DEPARTMENT_SPLIT}.allocate_splits", AsyncMock(return_value=rows)) as mock_allocate:
            resp = client.post(f"/api/v1/revenue/invoices/{invoice.id}/splits", json=self.BODY)

        assert resp.status_code == 200
        data = resp.json()["data"]
        assert [d["department_name"] for d in data] == ["Sales", "Marketing"]
        mock_reconcile.assert_awaited_once()
        splits = mock_allocate.await_args.args[1]
        assert [s.department_name for s in splits] == ["Sales", "Marketing"]
        assert splits[0].amount == Decimal("7000")

    def test_total_mismatch_rejected(self, client, invoice_factory):
        invoice = self._invoice(invoice_factory)
        body = dict(self.BODY, payment_amount="10000")

        with patch(f"{ROUTES}.InvoiceRepository", _invoice_repo(invoice)), \
             patch(f"{DEPARTMENT_SPLIT}.allocate_splits", AsyncMock()) as mock_allocate:
            resp = client.post(f"/api/v1/revenue/invoices/{invoice.id}/splits", json=body)

        assert resp.status_code == 422
        mock_allocate.assert_not_awaited()

    def test_splits_above_received_rejected(self, client, invoice_factory):
        invoice = self._invoice(invoice_factory)
        invoice.received_amount = Decimal("5000")
        body = {"splits": [{"department_name": "Sales", "amount": "6000"}]}

        with patch(f"{ROUTES}.InvoiceRepository", _invoice_repo(invoice)), \
             patch(f"{LEDGER_SYNC}.reconcile_one", AsyncMock()), \
             patch(f"{DEPARTMENT_SPLIT}.allocate_splits", AsyncMock()) as mock_allocate:
            resp = client.post(f"/api/v1/revenue/invoices/{invoice.id}/splits", json=body)

        assert resp.status_code == 422
        assert "exceeds received amount" in resp.json()["detail"]
        mock_allocate.assert_not_awaited()

    def test_empty_split_list(self, client):
        resp = client.post(
            f"/api/v1/revenue/invoices/{uuid.uuid4()}/splits",
            json={"splits": []},
        )
        assert resp.status_code == 422

    def test_partial_failure_reported_per_department(self, client, invoice_factory):
        invoice = self._invoice(invoice_factory)
        failure = SplitAllocationError([("Marketing", RuntimeError("unique violation"))])

        with patch(f"{ROUTES}.InvoiceRepository", _invoice_repo(invoice)), \
             patch(f"{LEDGER_SYNC}.reconcile_one", AsyncMock()), \
             patch(f"{DEPARTMENT_SPLIT}.allocate_splits", AsyncMock(side_effect=failure)):
            resp = client.post(f"/api/v1/revenue/invoices/{invoice.id}/splits", json=self.BODY)

        assert resp.status_code == 500
        body = resp.json()
        assert body["status"] == "error"
        assert body["errors"] == [{"department": "Marketing", "error": "unique violation"}]


# ---------------------------------------------------------------------------
# Sweep and listing
# ---------------------------------------------------------------------------

class TestSyncAndList:

    def test_sync_runs_sweep(self, client, tenant_id):
        summary = SweepSummary(total=3, reconciled=2, failed=["INV-002"])

        with patch(f"{LEDGER_SYNC}.sweep", AsyncMock(return_value=summary)) as mock_sweep:
            resp = client.post("/api/v1/revenue/sync")

        assert resp.status_code == 200
        data = resp.json()["data"]
        assert data["reconciled"] == 2
        assert data["failed"] == ["INV-002"]
        assert mock_sweep.await_args.args[0] == tenant_id

    def test_sync_in_background(self, client, tenant_id):
        enqueue = AsyncMock(return_value=f"revenue-sweep-{tenant_id}")

        with patch("revenue_sync.infrastructure.queue.sweep_queue.enqueue_tenant_sweep", enqueue), \
             patch(f"{LEDGER_SYNC}.sweep", AsyncMock()) as mock_sweep:
            resp = client.post("/api/v1/revenue/sync?background=true")

        assert resp.status_code == 200
        assert resp.json()["data"]["job_id"] == f"revenue-sweep-{tenant_id}"
        enqueue.assert_awaited_once_with(tenant_id)
        mock_sweep.assert_not_awaited()

    def test_sync_already_queued(self, client):
        with patch("revenue_sync.infrastructure.queue.sweep_queue.enqueue_tenant_sweep",
                   AsyncMock(return_value=None)):
            resp = client.post("/api/v1/revenue/sync?background=true")

        assert resp.json()["message"] == "Revenue sync already queued"

    def test_list_survives_sweep_failure(self, client, tenant_id):
        rows = [_revenue(tenant_id)]
        repo = MagicMock()
        repo.return_value.list_for_user = AsyncMock(return_value=(rows, 1))

        with patch(f"{LEDGER_SYNC}.sweep", AsyncMock(side_effect=RuntimeError("db down"))), \
             patch(f"{ROUTES}.RevenueRepository", repo):
            resp = client.get("/api/v1/revenue/?month=Mar&year=2025")

        assert resp.status_code == 200
        page = resp.json()["data"]
        assert page["total"] == 1
        assert page["has_more"] is False
        assert page["items"][0]["client_name"] == "Acme Corp"
        kwargs = repo.return_value.list_for_user.await_args.kwargs
        assert kwargs["month"] == "Mar"
        assert kwargs["year"] == 2025

    def test_list_rejects_unknown_month(self, client):
        with patch(f"{LEDGER_SYNC}.sweep", AsyncMock()):
            resp = client.get("/api/v1/revenue/?month=March")
        assert resp.status_code == 422
