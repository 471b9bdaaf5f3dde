"""
TimeMint State Persistence
"""

from timemint.state.storage import StateStorage

__all__ = [
    "StateStorage",
]
