"""
TimeMint Slot-Booking Ledger

ERC-721 ownership registry with receiver-checked safe transfers, a
booking ledger that turns paid time slots into tokens, and per-account
slot indexes.
"""

__version__ = "0.1.0"
__author__ = "TimeMint Team"

from timemint.constants import TOKEN_NAME, TOKEN_SYMBOL, SUPPORTED_INTERFACES

__all__ = [
    "TOKEN_NAME",
    "TOKEN_SYMBOL",
    "SUPPORTED_INTERFACES",
    "__version__",
]
