"""
Module: jobwork_kernel.models.partner
Responsibility: ORM persistence for the Partner Directory -- external
    processors (platers, forgers, heat treaters, job-work shops) that pieces
    are dispatched to.
Architecture position: Kernel > Models.  May import from db/base.py only.

Invariants enforced:
    - name is unique (uq_partner_name).
    - Deactivation is a soft flag (is_active); partners are never deleted so
      historical moves remain attributable.

Failure modes:
    - IntegrityError on duplicate name.
"""

from sqlalchemy import JSON, Boolean, Index, Integer, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from jobwork_kernel.db.base import TrackedBase


class Partner(TrackedBase):
    """
    External processor that pieces are sent to.

    Guarantees:
        - process_types is a non-empty list of process codes (checked by
          PartnerService before insert).
        - requires_return_qc drives the QC_REQUIRED receipt rule.
        - lead_time_days seeds the default expected return date.

    Non-goals:
        - Contact fields are opaque to the engine.
    """

    __tablename__ = "partners"

    __table_args__ = (
        UniqueConstraint("name", name="uq_partner_name"),
        Index("idx_partner_active", "is_active"),
    )

    name: Mapped[str] = mapped_column(String(255), nullable=False)

    process_types: Mapped[list[str]] = mapped_column(JSON, nullable=False)

    requires_return_qc: Mapped[bool] = mapped_column(
        Boolean,
        nullable=False,
        default=False,
    )

    lead_time_days: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
        default=7,
    )

    is_active: Mapped[bool] = mapped_column(
        Boolean,
        nullable=False,
        default=True,
    )

    contact_name: Mapped[str | None] = mapped_column(String(255), nullable=True)
    contact_phone: Mapped[str | None] = mapped_column(String(50), nullable=True)
    contact_email: Mapped[str | None] = mapped_column(String(255), nullable=True)
    address: Mapped[str | None] = mapped_column(String(1000), nullable=True)

    def __repr__(self) -> str:
        return f"<Partner {self.name} ({', '.join(self.process_types or [])})>"
