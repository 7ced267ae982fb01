"""
Module: jobwork_kernel.selectors.partner_selector
Responsibility: Read-only access to the Partner Directory.
Architecture position: Kernel > Selectors.

Failure modes:
    - get() returns None for an unknown id; it never raises on absence.
"""

from uuid import UUID

from sqlalchemy import select
from sqlalchemy.orm import Session

from jobwork_kernel.domain.dtos import PartnerRecord
from jobwork_kernel.models.partner import Partner
from jobwork_kernel.selectors.base import BaseSelector


def partner_to_record(partner: Partner) -> PartnerRecord:
    """Convert ORM Partner to PartnerRecord."""
    return PartnerRecord(
        partner_id=partner.id,
        name=partner.name,
        process_types=frozenset(partner.process_types or ()),
        requires_return_qc=bool(partner.requires_return_qc),
        lead_time_days=partner.lead_time_days,
        is_active=bool(partner.is_active),
    )


class PartnerSelector(BaseSelector[Partner]):
    """
    Selector for partner queries.

    Guarantees:
        - Multi-partner results are ordered by name.
    """

    def __init__(self, session: Session):
        super().__init__(session)

    def get(self, partner_id: UUID) -> PartnerRecord | None:
        partner = self.session.get(Partner, partner_id)
        return partner_to_record(partner) if partner is not None else None

    def get_by_name(self, name: str) -> PartnerRecord | None:
        partner = self.session.execute(
            select(Partner).where(Partner.name == name)
        ).scalar_one_or_none()
        return partner_to_record(partner) if partner is not None else None

    def list_active(self) -> list[PartnerRecord]:
        """Active directory: the partners a new move may be sent to."""
        stmt = (
            select(Partner)
            .where(Partner.is_active.is_(True))
            .order_by(Partner.name)
        )
        return [partner_to_record(p) for p in self.session.execute(stmt).scalars()]

    def list_all(self) -> list[PartnerRecord]:
        """All partners, including deactivated ones with historical moves."""
        stmt = select(Partner).order_by(Partner.name)
        return [partner_to_record(p) for p in self.session.execute(stmt).scalars()]

    def list_supporting(self, process_type: str) -> list[PartnerRecord]:
        """Active partners that offer the given process."""
        return [p for p in self.list_active() if p.supports(process_type)]
