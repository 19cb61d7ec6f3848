# revenue_sync/domain/exceptions.py
"""Errors raised by the revenue reconciliation services."""

from __future__ import annotations


class RevenueSyncError(Exception):
    """Base class for revenue reconciliation errors."""
    pass


class RevenueValidationError(RevenueSyncError):
    """Raised when an invoice cannot be turned into a Revenue row."""
    pass


class SplitValidationError(RevenueSyncError):
    """Raised when a set of department splits is rejected before allocation."""
    pass


class SplitAllocationError(RevenueSyncError):
    """Raised when one or more department split upserts failed.

    ``failures`` holds ``(department_name, exception)`` pairs for every split
    that failed; ``revenues`` holds the rows that were written successfully.
    """

    def __init__(self, failures, revenues=None) -> None:
        self.failures = list(failures)
        self.revenues = list(revenues or [])
        departments = ", ".join(name for name, _ in self.failures)
        super().__init__(
            f"{len(self.failures)} department split(s) failed: {departments}"
        )
