"""
TimeMint Host Environment

Simulated execution host: accounts, native value, code placement and
transactional call frames.
"""

from timemint.host.environment import Environment, Journaled, CallStats
from timemint.host.receivers import (
    TokenReceiver,
    AcceptingReceiver,
    RejectingReceiver,
    FailingReceiver,
    CallbackReceiver,
)

__all__ = [
    # Environment
    "Environment",
    "Journaled",
    "CallStats",
    # Receivers
    "TokenReceiver",
    "AcceptingReceiver",
    "RejectingReceiver",
    "FailingReceiver",
    "CallbackReceiver",
]
