"""Services for the job-work kernel (write side)."""

from jobwork_kernel.services.challan_service import (
    ChallanSequenceService,
    format_challan_no,
)
from jobwork_kernel.services.move_locks import MoveLockRegistry, default_move_locks
from jobwork_kernel.services.partner_service import PartnerService

__all__ = [
    "ChallanSequenceService",
    "MoveLockRegistry",
    "PartnerService",
    "default_move_locks",
    "format_challan_no",
]
