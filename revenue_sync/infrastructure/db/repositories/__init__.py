from .invoice_repository import InvoiceRepository
from .revenue_repository import RevenueRepository

__all__ = [
    "InvoiceRepository",
    "RevenueRepository",
]
