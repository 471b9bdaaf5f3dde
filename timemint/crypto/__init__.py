"""
TimeMint Cryptographic Helpers
"""

from timemint.crypto.keccak import (
    keccak256,
    function_selector,
    interface_id,
    event_topic,
)

__all__ = [
    "keccak256",
    "function_selector",
    "interface_id",
    "event_topic",
]
