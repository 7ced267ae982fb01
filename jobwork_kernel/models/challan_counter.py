"""
Module: jobwork_kernel.models.challan_counter
Responsibility: Counter rows backing challan number allocation.  One row per
    (prefix, dispatch day); the row is locked while the next number is taken.
Architecture position: Kernel > Models.  May import from db/base.py only.
"""

from sqlalchemy import BigInteger, String
from sqlalchemy.orm import Mapped, mapped_column

from jobwork_kernel.db.base import Base


class ChallanCounter(Base):
    """
    Challan sequence counter.

    Each row represents a named sequence (e.g. ``PL-20240115``) with its
    current value.  Row-level locking keeps numbers unique under concurrency.
    """

    __tablename__ = "challan_counters"

    name: Mapped[str] = mapped_column(
        String(50),
        nullable=False,
        unique=True,
    )

    current_value: Mapped[int] = mapped_column(
        BigInteger,
        nullable=False,
        default=0,
    )
