"""
Pytest fixtures for the job-work ledger test suite.

Provides:
- In-memory SQLite database sessions (one engine per test)
- A DeterministicClock pinned to 2024-03-01 09:00 UTC
- Registered partners and service instances wired to the same session
- Captured JSON log records

Concurrency tests build their own file-backed engine (see
tests/concurrency/conftest.py); an in-memory database is a single
connection and cannot host real parallel transactions.
"""

import json
import logging
from datetime import datetime, timezone
from io import StringIO
from typing import Generator
from uuid import uuid4

import pytest
from sqlalchemy.orm import Session

from jobwork_config import EngineConfig, get_active_config
from jobwork_kernel.db.engine import (
    create_tables,
    drop_tables,
    get_session,
    init_engine_from_url,
    reset_engine,
)
from jobwork_kernel.db.immutability import (
    register_immutability_listeners,
    unregister_immutability_listeners,
)
from jobwork_kernel.domain.clock import DeterministicClock
from jobwork_kernel.logging_config import (
    LogContext,
    StructuredFormatter,
    configure_logging,
    reset_logging,
)
from jobwork_kernel.services.move_locks import MoveLockRegistry
from jobwork_kernel.services.partner_service import PartnerService
from jobwork_services.dashboard_service import ExternalDashboardService
from jobwork_services.move_ledger_service import MoveLedgerService
from jobwork_services.receipt_service import ReceiptRecorder

# Test actor ID for all test operations
TEST_ACTOR_ID = uuid4()

TEST_NOW = datetime(2024, 3, 1, 9, 0, tzinfo=timezone.utc)
TEST_TODAY = TEST_NOW.date()


# =============================================================================
# Logging fixtures
# =============================================================================


@pytest.fixture(autouse=True, scope="session")
def _configure_test_logging():
    """Configure structured logging for the test suite."""
    reset_logging()
    configure_logging(level=logging.DEBUG)
    yield
    reset_logging()


@pytest.fixture(autouse=True)
def _clear_log_context():
    """Clear LogContext between tests to prevent cross-test contamination."""
    LogContext.clear()
    yield
    LogContext.clear()


@pytest.fixture
def captured_logs():
    """
    Capture jobwork_kernel logs as parsed JSON dicts.

    Usage::

        def test_something(captured_logs, receipt_recorder):
            receipt_recorder.record_receipt(...)
            logs = captured_logs()
            assert any(r["message"] == "receipt_recorded" for r in logs)
    """
    stream = StringIO()
    handler = logging.StreamHandler(stream)
    handler.setFormatter(StructuredFormatter())
    root = logging.getLogger("jobwork_kernel")
    previous_level = root.level
    root.setLevel(logging.DEBUG)
    root.addHandler(handler)

    def _get_records() -> list[dict]:
        lines = stream.getvalue().strip().split("\n")
        return [json.loads(line) for line in lines if line]

    yield _get_records

    root.removeHandler(handler)
    root.setLevel(previous_level)


# =============================================================================
# Database
# =============================================================================


@pytest.fixture(scope="session")
def _immutability_listeners():
    register_immutability_listeners()
    yield
    unregister_immutability_listeners()


@pytest.fixture
def db_engine(_immutability_listeners):
    """Fresh in-memory database with all tables, per test."""
    eng = init_engine_from_url("sqlite://")
    create_tables()
    yield eng
    drop_tables()
    reset_engine()


@pytest.fixture
def session(db_engine) -> Generator[Session, None, None]:
    """
    Single session for the test.

    The in-memory database is one shared connection, so every fixture and
    service in a test uses this session.
    """
    s = get_session()
    yield s
    s.rollback()
    s.close()


# =============================================================================
# Domain fixtures
# =============================================================================


@pytest.fixture
def clock() -> DeterministicClock:
    return DeterministicClock(TEST_NOW)


@pytest.fixture
def config() -> EngineConfig:
    return get_active_config()


@pytest.fixture
def actor_id():
    return TEST_ACTOR_ID


@pytest.fixture
def move_locks() -> MoveLockRegistry:
    return MoveLockRegistry()


@pytest.fixture
def partner_service(session, config) -> PartnerService:
    return PartnerService(session, default_lead_time_days=config.default_lead_time_days)


@pytest.fixture
def plating_partner(session, partner_service, actor_id):
    """Platers who also buff; 5-day lead time; no return QC."""
    partner = partner_service.register_partner(
        name="Shree Plating Works",
        process_types=["Plating", "Buffing"],
        actor_id=actor_id,
        lead_time_days=5,
    )
    session.commit()
    return partner


@pytest.fixture
def qc_partner(session, partner_service, actor_id):
    """Heat treaters whose returns must carry a QC outcome."""
    partner = partner_service.register_partner(
        name="Precision Heat Treaters",
        process_types=["Heat Treatment"],
        actor_id=actor_id,
        requires_return_qc=True,
        lead_time_days=3,
    )
    session.commit()
    return partner


@pytest.fixture
def move_ledger(session, clock, config, move_locks) -> MoveLedgerService:
    return MoveLedgerService(session, clock=clock, config=config, move_locks=move_locks)


@pytest.fixture
def receipt_recorder(session, clock, config, move_locks) -> ReceiptRecorder:
    return ReceiptRecorder(session, clock=clock, config=config, move_locks=move_locks)


@pytest.fixture
def dashboard(session, clock, config) -> ExternalDashboardService:
    return ExternalDashboardService(session, clock=clock, config=config)


@pytest.fixture
def create_move(move_ledger, plating_partner, actor_id):
    """
    Factory creating a committed Plating move and returning its MoveRecord.

    Any create_move keyword may be overridden.
    """

    def _create(**overrides):
        kwargs = {
            "work_order_id": "WO-1001",
            "partner_id": plating_partner.partner_id,
            "process_type": "Plating",
            "quantity_sent": 100,
            "dispatch_date": TEST_TODAY,
            "actor_id": actor_id,
        }
        kwargs.update(overrides)
        result = move_ledger.create_move(**kwargs)
        assert result.is_success, result.message
        return result.move

    return _create