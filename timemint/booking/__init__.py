"""
TimeMint Booking
"""

from timemint.booking.slots import SlotIndex
from timemint.booking.ledger import (
    BookingLedger,
    Booking,
    FeeSplit,
    SlotRecord,
    EMPTY_SLOT,
    split_fee,
)

__all__ = [
    # Index
    "SlotIndex",
    # Ledger
    "BookingLedger",
    "Booking",
    "FeeSplit",
    "SlotRecord",
    "EMPTY_SLOT",
    "split_fee",
]
