"""Domain models for the job-work kernel."""

from jobwork_kernel.models.challan_counter import ChallanCounter
from jobwork_kernel.models.move import ExternalMove, ExternalReceipt
from jobwork_kernel.models.partner import Partner

__all__ = [
    "ChallanCounter",
    "ExternalMove",
    "ExternalReceipt",
    "Partner",
]
