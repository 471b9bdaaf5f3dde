"""
TimeMint Core Data Structures
"""

from timemint.core.types import (
    Address,
    InterfaceId,
    SiteKey,
    ZERO_ADDRESS,
    derive_site_key,
    is_uint256,
)

__all__ = [
    "Address",
    "InterfaceId",
    "SiteKey",
    "ZERO_ADDRESS",
    "derive_site_key",
    "is_uint256",
]
