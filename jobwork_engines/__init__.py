"""
Module: jobwork_engines
Responsibility:
    Package entrypoint that re-exports the public symbols of the pure
    calculation engines.  This is the import surface for jobwork_services.

Architecture position:
    Engines -- pure calculation layer, zero I/O.
    May only import jobwork_kernel domain, exceptions, invariants and
    logging (and sibling engine modules).
    MUST NOT import jobwork_services or jobwork_config.

Invariants enforced:
    - Purity: engines NEVER call ``datetime.now()`` or ``date.today()``.
      The as-of date or moment is always passed in by the caller.
    - Determinism: identical inputs always produce identical outputs.

Audit relevance:
    Every engine invocation is traced via the ``@traced_engine`` decorator
    (see ``jobwork_engines.tracer``), emitting JOBWORK_ENGINE_TRACE log
    records with engine name, version, input fingerprint and duration.
"""

from jobwork_engines.partner_performance import (
    PartnerStats,
    compute_all_partner_stats,
    compute_partner_stats,
    is_on_time,
)
from jobwork_engines.process_summary import ProcessSummary, summarize_by_process
from jobwork_engines.reconciliation import (
    ReconciledMoveView,
    derive_status,
    reconcile,
    reconcile_all,
    status_progression,
)
from jobwork_engines.return_alerts import AlertKind, ReturnAlert, find_return_alerts
from jobwork_engines.tracer import compute_input_fingerprint, traced_engine

__all__ = [
    "AlertKind",
    "PartnerStats",
    "ProcessSummary",
    "ReconciledMoveView",
    "ReturnAlert",
    "compute_all_partner_stats",
    "compute_input_fingerprint",
    "compute_partner_stats",
    "derive_status",
    "find_return_alerts",
    "is_on_time",
    "reconcile",
    "reconcile_all",
    "status_progression",
    "summarize_by_process",
    "traced_engine",
]
