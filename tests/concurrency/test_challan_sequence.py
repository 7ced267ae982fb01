"""
Challan number allocation.

Numbers are unique per prefix and day, strictly increasing and never
reused, including when several dispatches are entered at once.
"""

import inspect
from concurrent.futures import ThreadPoolExecutor
from datetime import date
from threading import Barrier

from jobwork_kernel.services.challan_service import (
    ChallanSequenceService,
    FALLBACK_PREFIX,
    format_challan_no,
)
from jobwork_kernel.services.partner_service import PartnerService
from jobwork_services.move_ledger_service import MoveLedgerService
from tests.conftest import TEST_TODAY


class TestChallanFormat:
    def test_format(self):
        assert format_challan_no("PL", date(2024, 1, 15), 7) == "PL-20240115-0007"

    def test_wide_values_not_truncated(self):
        assert format_challan_no("HT", date(2024, 1, 15), 12345) == "HT-20240115-12345"


class TestSequenceService:
    def test_strictly_increasing(self, session):
        service = ChallanSequenceService(session)

        numbers = [service.next_challan_no("PL", TEST_TODAY) for _ in range(5)]

        assert numbers == [f"PL-20240301-{i:04d}" for i in range(1, 6)]
        assert service.current_value("PL", TEST_TODAY) == 5

    def test_unknown_process_uses_fallback_prefix(self, session):
        number = ChallanSequenceService(session).next_challan_no(None, TEST_TODAY)
        assert number.startswith(f"{FALLBACK_PREFIX}-20240301-")

    def test_prefix_case_insensitive(self, session):
        service = ChallanSequenceService(session)
        service.next_challan_no("pl", TEST_TODAY)
        assert service.next_challan_no("PL", TEST_TODAY) == "PL-20240301-0002"

    def test_counter_survives_commit(self, session):
        ChallanSequenceService(session).next_challan_no("BF", TEST_TODAY)
        session.commit()

        assert ChallanSequenceService(session).next_challan_no("BF", TEST_TODAY) == "BF-20240301-0002"

    def test_rolled_back_number_not_persisted(self, session):
        service = ChallanSequenceService(session)
        service.next_challan_no("BL", TEST_TODAY)
        session.commit()
        service.next_challan_no("BL", TEST_TODAY)
        session.rollback()

        assert service.current_value("BL", TEST_TODAY) == 1

    def test_counter_row_read_for_update(self):
        source = inspect.getsource(ChallanSequenceService._lock_counter)
        assert "with_for_update" in source

    def test_no_max_scan_over_moves(self):
        source = inspect.getsource(ChallanSequenceService)
        assert "func.max" not in source


class TestConcurrentDispatch:
    def test_parallel_moves_get_distinct_contiguous_numbers(
        self, file_session_factory, clock, config, actor_id
    ):
        setup = file_session_factory()
        try:
            partner = PartnerService(setup).register_partner(
                name="Parallel Platers", process_types=["Plating"], actor_id=actor_id
            )
            setup.commit()
        finally:
            setup.close()

        num_threads = 8
        barrier = Barrier(num_threads, timeout=30)

        def dispatch(thread_id: int):
            barrier.wait()
            session = file_session_factory()
            try:
                return MoveLedgerService(session, clock=clock, config=config).create_move(
                    work_order_id=f"WO-{thread_id}",
                    partner_id=partner.partner_id,
                    process_type="Plating",
                    quantity_sent=10,
                    dispatch_date=TEST_TODAY,
                    actor_id=actor_id,
                )
            finally:
                session.close()

        with ThreadPoolExecutor(max_workers=num_threads) as executor:
            results = [f.result() for f in [executor.submit(dispatch, i) for i in range(num_threads)]]

        assert all(r.is_success for r in results)
        assert sorted(r.move.challan_no for r in results) == [
            f"PL-20240301-{i:04d}" for i in range(1, num_threads + 1)
        ]
