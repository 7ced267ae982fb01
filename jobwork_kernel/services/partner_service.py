"""
Service layer for the Partner Directory.

Registers external processors, adjusts their terms and deactivates them.
Partners are never deleted: historical moves must stay attributable, so
deactivation only blocks new dispatches.

Returns PartnerRecord DTOs instead of ORM entities.
"""

from __future__ import annotations

from collections.abc import Iterable
from uuid import UUID

from sqlalchemy.orm import Session

from jobwork_kernel.exceptions import PartnerNotFoundError
from jobwork_kernel.logging_config import get_logger
from jobwork_kernel.models.partner import Partner
from jobwork_kernel.selectors.partner_selector import partner_to_record
from jobwork_kernel.domain.dtos import PartnerRecord
from jobwork_kernel.services.base import BaseService

logger = get_logger("services.partner")


class PartnerService(BaseService[Partner]):
    """
    Service for managing partners.

    ``default_lead_time_days`` is applied when a partner is registered
    without an explicit lead time.
    """

    def __init__(self, session: Session, default_lead_time_days: int = 7):
        super().__init__(session)
        self._default_lead_time_days = default_lead_time_days

    def _get_by_id(self, partner_id: UUID) -> Partner:
        partner = self.session.get(Partner, partner_id)
        if partner is None:
            raise PartnerNotFoundError(str(partner_id))
        return partner

    def get(self, partner_id: UUID) -> PartnerRecord:
        """
        Get partner by ID.

        Raises:
            PartnerNotFoundError: If partner doesn't exist.
        """
        return partner_to_record(self._get_by_id(partner_id))

    def register_partner(
        self,
        name: str,
        process_types: Iterable[str],
        actor_id: UUID,
        requires_return_qc: bool = False,
        lead_time_days: int | None = None,
        contact_name: str | None = None,
        contact_phone: str | None = None,
        contact_email: str | None = None,
        address: str | None = None,
    ) -> PartnerRecord:
        """
        Add a partner to the directory.

        Args:
            name: Unique display name.
            process_types: Process codes the partner offers (non-empty).
            actor_id: UUID of the user registering the partner.
            requires_return_qc: Receipts must carry a QC outcome.
            lead_time_days: Typical turnaround; seeds expected return dates.

        Raises:
            ValueError: If process_types is empty or lead_time_days < 0.
        """
        processes = sorted({p.strip() for p in process_types if p and p.strip()})
        if not processes:
            raise ValueError(f"Partner {name!r} must support at least one process")
        lead_time = self._default_lead_time_days if lead_time_days is None else lead_time_days
        if lead_time < 0:
            raise ValueError("lead_time_days cannot be negative")

        partner = Partner(
            name=name.strip(),
            process_types=processes,
            requires_return_qc=requires_return_qc,
            lead_time_days=lead_time,
            is_active=True,
            contact_name=contact_name,
            contact_phone=contact_phone,
            contact_email=contact_email,
            address=address,
            created_by_id=actor_id,
        )
        self.session.add(partner)
        self.session.flush()

        logger.info(
            "partner_registered",
            extra={
                "partner_id": str(partner.id),
                "partner_name": partner.name,
                "process_types": processes,
            },
        )
        return partner_to_record(partner)

    def update_terms(
        self,
        partner_id: UUID,
        actor_id: UUID,
        process_types: Iterable[str] | None = None,
        requires_return_qc: bool | None = None,
        lead_time_days: int | None = None,
    ) -> PartnerRecord:
        """
        Change what a partner offers and how returns from it are handled.

        Existing moves keep their process type and expected return date.
        """
        partner = self._get_by_id(partner_id)

        if process_types is not None:
            processes = sorted({p.strip() for p in process_types if p and p.strip()})
            if not processes:
                raise ValueError(f"Partner {partner.name!r} must support at least one process")
            partner.process_types = processes
        if requires_return_qc is not None:
            partner.requires_return_qc = requires_return_qc
        if lead_time_days is not None:
            if lead_time_days < 0:
                raise ValueError("lead_time_days cannot be negative")
            partner.lead_time_days = lead_time_days
        partner.updated_by_id = actor_id

        self.session.flush()
        return partner_to_record(partner)

    def deactivate(self, partner_id: UUID, actor_id: UUID) -> PartnerRecord:
        """Block new moves to the partner; open moves are unaffected."""
        partner = self._get_by_id(partner_id)
        partner.is_active = False
        partner.updated_by_id = actor_id
        self.session.flush()
        logger.info("partner_deactivated", extra={"partner_id": str(partner_id)})
        return partner_to_record(partner)

    def reactivate(self, partner_id: UUID, actor_id: UUID) -> PartnerRecord:
        partner = self._get_by_id(partner_id)
        partner.is_active = True
        partner.updated_by_id = actor_id
        self.session.flush()
        logger.info("partner_reactivated", extra={"partner_id": str(partner_id)})
        return partner_to_record(partner)
