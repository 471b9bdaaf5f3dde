"""
TimeMint Token Registry

Ownership ledger and the safe transfer protocol layered on it.
"""

from timemint.registry.ownership import OwnershipRegistry
from timemint.registry.safe_transfer import SafeTransferProtocol

__all__ = [
    "OwnershipRegistry",
    "SafeTransferProtocol",
]
