"""
Module: jobwork_kernel.models.move
Responsibility: ORM persistence for external moves (one dispatch of a batch
    to one partner for one process) and their receipts (physical return
    events).
Architecture position: Kernel > Models.  May import from db/base.py and
    domain/values.py only.

Invariants enforced:
    - quantity_sent > 0 (ck_move_quantity_positive).
    - challan_no is unique (uq_move_challan_no).
    - quantity_received > 0 (ck_receipt_quantity_positive).
    - 0 <= quantity_rejected <= quantity_received (ck_receipt_rejected_range).
    - (move_id, sequence) is unique (uq_receipt_move_sequence): two writers
      that both read a stale receipt count collide at INSERT.
    - status is written only by ReceiptRecorder (materialized on write).
    - Receipts are append-only and quantity_sent is locked once receipts
      exist; both enforced by db/immutability.py listeners.
"""

from datetime import date, datetime
from uuid import UUID

from sqlalchemy import (
    CheckConstraint,
    ForeignKey,
    Index,
    Integer,
    String,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from jobwork_kernel.db.base import TrackedBase, UUIDString
from jobwork_kernel.domain.values import MoveStatus


class ExternalMove(TrackedBase):
    """
    Outbound dispatch of pieces to a partner.

    Guarantees:
        - status is one of MoveStatus and never regresses.
        - voided_at marks a cancelled dispatch; the row is never deleted.
    """

    __tablename__ = "external_moves"

    __table_args__ = (
        UniqueConstraint("challan_no", name="uq_move_challan_no"),
        CheckConstraint("quantity_sent > 0", name="ck_move_quantity_positive"),
        Index("idx_move_partner", "partner_id"),
        Index("idx_move_work_order", "work_order_id"),
        Index("idx_move_dispatch_date", "dispatch_date"),
        Index("idx_move_process", "process_type"),
    )

    work_order_id: Mapped[str] = mapped_column(String(100), nullable=False)

    partner_id: Mapped[UUID] = mapped_column(
        UUIDString(),
        ForeignKey("partners.id"),
        nullable=False,
    )

    process_type: Mapped[str] = mapped_column(String(50), nullable=False)

    quantity_sent: Mapped[int] = mapped_column(Integer, nullable=False)

    dispatch_date: Mapped[date] = mapped_column(nullable=False)

    dispatched_at: Mapped[datetime] = mapped_column(nullable=False)

    expected_return_date: Mapped[date | None] = mapped_column(nullable=True)

    status: Mapped[str] = mapped_column(
        String(30),
        nullable=False,
        default=MoveStatus.SENT.value,
    )

    challan_no: Mapped[str] = mapped_column(String(40), nullable=False)

    remarks: Mapped[str | None] = mapped_column(String(1000), nullable=True)

    voided_at: Mapped[datetime | None] = mapped_column(nullable=True)

    void_reason: Mapped[str | None] = mapped_column(String(1000), nullable=True)

    receipts: Mapped[list["ExternalReceipt"]] = relationship(
        back_populates="move",
        order_by="ExternalReceipt.sequence",
        lazy="selectin",
    )

    @property
    def is_voided(self) -> bool:
        return self.voided_at is not None

    def __repr__(self) -> str:
        return (
            f"<ExternalMove {self.challan_no}: {self.quantity_sent} pcs "
            f"{self.process_type} ({self.status})>"
        )


class ExternalReceipt(TrackedBase):
    """
    Physical return of pieces against a move.

    Guarantees:
        - Immutable once flushed (no UPDATE, no DELETE).
        - sequence is the 1-based insertion order within the move.
    """

    __tablename__ = "external_receipts"

    __table_args__ = (
        UniqueConstraint("move_id", "sequence", name="uq_receipt_move_sequence"),
        CheckConstraint("quantity_received > 0", name="ck_receipt_quantity_positive"),
        CheckConstraint(
            "quantity_rejected >= 0 AND quantity_rejected <= quantity_received",
            name="ck_receipt_rejected_range",
        ),
        Index("idx_receipt_move", "move_id"),
    )

    move_id: Mapped[UUID] = mapped_column(
        UUIDString(),
        ForeignKey("external_moves.id"),
        nullable=False,
    )

    sequence: Mapped[int] = mapped_column(Integer, nullable=False)

    quantity_received: Mapped[int] = mapped_column(Integer, nullable=False)

    quantity_rejected: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    received_date: Mapped[date] = mapped_column(nullable=False)

    qc_outcome: Mapped[str | None] = mapped_column(String(20), nullable=True)

    remarks: Mapped[str | None] = mapped_column(String(1000), nullable=True)

    move: Mapped[ExternalMove] = relationship(back_populates="receipts")

    def __repr__(self) -> str:
        return f"<ExternalReceipt #{self.sequence} {self.quantity_received} pcs on {self.received_date}>"
