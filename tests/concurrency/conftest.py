"""
File-backed SQLite database for multi-threaded tests.

Each thread opens its own session from ``file_session_factory``.  The
engine issues ``BEGIN IMMEDIATE`` on file databases, so competing writers
queue on the database write lock instead of failing.
"""

import pytest

from jobwork_kernel.db.engine import (
    create_tables,
    get_session_factory,
    init_engine_from_url,
    reset_engine,
)
from jobwork_kernel.services.partner_service import PartnerService
from jobwork_services.move_ledger_service import MoveLedgerService


@pytest.fixture
def file_session_factory(tmp_path, _immutability_listeners):
    init_engine_from_url(f"sqlite:///{tmp_path / 'jobwork.db'}")
    create_tables()
    yield get_session_factory()
    reset_engine()


@pytest.fixture
def seed_move(file_session_factory, clock, config, actor_id):
    """Factory committing a partner and a Plating move; returns the move id."""

    def _seed(quantity_sent: int):
        session = file_session_factory()
        try:
            partner = PartnerService(session).register_partner(
                name="Race Platers",
                process_types=["Plating"],
                actor_id=actor_id,
                lead_time_days=5,
            )
            session.commit()
            result = MoveLedgerService(session, clock=clock, config=config).create_move(
                work_order_id="WO-RACE",
                partner_id=partner.partner_id,
                process_type="Plating",
                quantity_sent=quantity_sent,
                dispatch_date=clock.today(),
                actor_id=actor_id,
            )
            assert result.is_success
            return result.move.move_id
        finally:
            session.close()

    return _seed
