"""
Core DNS reconciliation functionality.

This package contains the reconciliation loop, its scheduler and the
record service that feeds it.
"""

from .ddns_manager import DDNSManager
from .reconciler import (
    ConvergenceApplier,
    ExpiryScanner,
    Reconciler,
    RecordOutcome,
    RemovalApplier,
)
from .record_service import AccountService, RecordService
from .scheduler import ReconciliationScheduler

__all__ = [
    "AccountService",
    "ConvergenceApplier",
    "DDNSManager",
    "ExpiryScanner",
    "Reconciler",
    "ReconciliationScheduler",
    "RecordOutcome",
    "RecordService",
    "RemovalApplier",
]
