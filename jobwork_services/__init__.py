"""
jobwork_services -- orchestration over the kernel and the engines.

The write boundary of the ledger (MoveLedgerService, ReceiptRecorder) and
the dashboard read model (ExternalDashboardService) live here because they
compose jobwork_engines with jobwork_kernel, and the kernel must not
import the engines.
"""

from jobwork_services.dashboard_service import (
    SOURCE_TABLES,
    DashboardSnapshot,
    ExternalDashboardService,
)
from jobwork_services.move_ledger_service import (
    MoveLedgerService,
    MoveResult,
    MoveResultStatus,
)
from jobwork_services.receipt_service import (
    ReceiptRecorder,
    ReceiptResult,
    ReceiptResultStatus,
)

__all__ = [
    "SOURCE_TABLES",
    "DashboardSnapshot",
    "ExternalDashboardService",
    "MoveLedgerService",
    "MoveResult",
    "MoveResultStatus",
    "ReceiptRecorder",
    "ReceiptResult",
    "ReceiptResultStatus",
]
