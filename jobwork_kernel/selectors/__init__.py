"""Selectors for the job-work kernel (read side)."""

from jobwork_kernel.selectors.move_selector import (
    MoveSelector,
    move_to_record,
    receipt_to_record,
)
from jobwork_kernel.selectors.partner_selector import PartnerSelector, partner_to_record

__all__ = [
    "MoveSelector",
    "PartnerSelector",
    "move_to_record",
    "partner_to_record",
    "receipt_to_record",
]
