"""
Tests for the partner directory (PartnerService and PartnerSelector).
"""

from datetime import timedelta
from uuid import uuid4

import pytest

from jobwork_kernel.exceptions import PartnerNotFoundError
from jobwork_kernel.selectors.partner_selector import PartnerSelector
from tests.conftest import TEST_TODAY


class TestRegisterPartner:
    def test_register(self, partner_service, actor_id, captured_logs):
        partner = partner_service.register_partner(
            name="  Kiran Forge  ",
            process_types=["Forging", "Forging", " Heat Treatment "],
            actor_id=actor_id,
            contact_phone="+91 98450 00000",
        )

        assert partner.name == "Kiran Forge"
        assert partner.process_types == frozenset({"Forging", "Heat Treatment"})
        assert partner.is_active is True
        assert partner.requires_return_qc is False

        registered = [r for r in captured_logs() if r["message"] == "partner_registered"]
        assert registered[0]["partner_name"] == "Kiran Forge"

    def test_default_lead_time_from_config(self, partner_service, actor_id, config):
        partner = partner_service.register_partner(
            name="Default Lead", process_types=["Blasting"], actor_id=actor_id
        )
        assert partner.lead_time_days == config.default_lead_time_days

    def test_requires_a_process(self, partner_service, actor_id):
        with pytest.raises(ValueError):
            partner_service.register_partner(name="Nothing", process_types=[" "], actor_id=actor_id)

    def test_negative_lead_time_rejected(self, partner_service, actor_id):
        with pytest.raises(ValueError):
            partner_service.register_partner(
                name="Negative", process_types=["Plating"], actor_id=actor_id, lead_time_days=-1
            )


class TestUpdateTerms:
    def test_update(self, partner_service, plating_partner, actor_id):
        updated = partner_service.update_terms(
            plating_partner.partner_id,
            actor_id,
            process_types=["Plating"],
            requires_return_qc=True,
            lead_time_days=9,
        )

        assert updated.process_types == frozenset({"Plating"})
        assert updated.requires_return_qc is True
        assert updated.lead_time_days == 9

    def test_partial_update_keeps_other_terms(self, partner_service, plating_partner, actor_id):
        updated = partner_service.update_terms(plating_partner.partner_id, actor_id, lead_time_days=2)

        assert updated.process_types == plating_partner.process_types
        assert updated.lead_time_days == 2

    def test_unknown_partner(self, partner_service, actor_id, db_engine):
        with pytest.raises(PartnerNotFoundError):
            partner_service.update_terms(uuid4(), actor_id, lead_time_days=1)

    def test_lead_time_change_applies_to_new_moves(
        self, session, partner_service, plating_partner, create_move, actor_id
    ):
        partner_service.update_terms(plating_partner.partner_id, actor_id, lead_time_days=12)
        session.commit()

        move = create_move()
        assert move.expected_return_date == TEST_TODAY + timedelta(days=12)


class TestActivation:
    def test_deactivate_and_reactivate(self, session, partner_service, plating_partner, actor_id):
        selector = PartnerSelector(session)

        partner_service.deactivate(plating_partner.partner_id, actor_id)
        assert selector.list_active() == []
        assert selector.get(plating_partner.partner_id).is_active is False

        partner_service.reactivate(plating_partner.partner_id, actor_id)
        assert [p.partner_id for p in selector.list_active()] == [plating_partner.partner_id]


class TestPartnerSelector:
    def test_lookup(self, session, plating_partner, qc_partner):
        selector = PartnerSelector(session)

        assert selector.get(uuid4()) is None
        assert selector.get_by_name("Shree Plating Works").partner_id == plating_partner.partner_id
        assert [p.name for p in selector.list_all()] == [
            "Precision Heat Treaters",
            "Shree Plating Works",
        ]

    def test_list_supporting(self, session, plating_partner, qc_partner):
        selector = PartnerSelector(session)

        assert [p.partner_id for p in selector.list_supporting("Buffing")] == [
            plating_partner.partner_id
        ]
        assert selector.list_supporting("Forging") == []
