"""
TimeMint Ledger Events

Notifications emitted by the registry after a successful mutation.
Events are observable side effects, not state; they are rolled back
together with the host frame that produced them.
"""

from __future__ import annotations
import logging
from dataclasses import dataclass, field
from typing import ClassVar, Dict, List, Optional, Type

from timemint.constants import (
    EVENT_APPROVAL_FOR_ALL_SIGNATURE,
    EVENT_APPROVAL_SIGNATURE,
    EVENT_TRANSFER_SIGNATURE,
    MAX_EVENT_LOG,
)
from timemint.core.types import Address
from timemint.crypto.keccak import event_topic

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Event:
    """Base class for emitted events."""
    NAME: ClassVar[str] = ""
    SIGNATURE: ClassVar[str] = ""

    @property
    def topic(self) -> bytes:
        return event_topic(self.SIGNATURE)

    def args(self) -> dict:
        raise NotImplementedError

    def to_dict(self) -> dict:
        return {
            "event": self.NAME,
            "topic": "0x" + self.topic.hex(),
            "args": self.args(),
        }


@dataclass(frozen=True)
class TransferEvent(Event):
    """Transfer(from, to, token_id)"""
    NAME: ClassVar[str] = "Transfer"
    SIGNATURE: ClassVar[str] = EVENT_TRANSFER_SIGNATURE

    from_: Address
    to: Address
    token_id: int

    def args(self) -> dict:
        return {"from": self.from_.hex(), "to": self.to.hex(), "token_id": self.token_id}


@dataclass(frozen=True)
class ApprovalEvent(Event):
    """Approval(owner, approved, token_id)"""
    NAME: ClassVar[str] = "Approval"
    SIGNATURE: ClassVar[str] = EVENT_APPROVAL_SIGNATURE

    owner: Address
    approved: Address
    token_id: int

    def args(self) -> dict:
        return {
            "owner": self.owner.hex(),
            "approved": self.approved.hex(),
            "token_id": self.token_id,
        }


@dataclass(frozen=True)
class ApprovalForAllEvent(Event):
    """ApprovalForAll(owner, operator, approved)"""
    NAME: ClassVar[str] = "ApprovalForAll"
    SIGNATURE: ClassVar[str] = EVENT_APPROVAL_FOR_ALL_SIGNATURE

    owner: Address
    operator: Address
    approved: bool

    def args(self) -> dict:
        return {
            "owner": self.owner.hex(),
            "operator": self.operator.hex(),
            "approved": self.approved,
        }


EVENT_TYPES: Dict[str, Type[Event]] = {
    cls.NAME: cls for cls in (TransferEvent, ApprovalEvent, ApprovalForAllEvent)
}


@dataclass
class EventLog:
    """
    Ordered, append-only record of emitted events.
    """
    max_events: int = MAX_EVENT_LOG
    _events: List[Event] = field(default_factory=list)

    def emit(self, event: Event) -> None:
        self._events.append(event)
        logger.debug(f"Event {event.NAME}: {event.args()}")

    def events(self, name: Optional[str] = None) -> List[Event]:
        """All events, optionally filtered by name."""
        if name is None:
            return list(self._events)
        return [e for e in self._events if e.NAME == name]

    def __len__(self) -> int:
        return len(self._events)

    def mark(self) -> int:
        """Position to truncate back to on rollback."""
        return len(self._events)

    def truncate(self, mark: int) -> None:
        del self._events[mark:]

    def compact(self) -> int:
        """
        Drop the oldest events beyond max_events.

        Must only be called between host frames, never inside one, since
        rollback marks are positional.

        Returns:
            Number of events dropped
        """
        excess = len(self._events) - self.max_events
        if excess <= 0:
            return 0
        del self._events[:excess]
        return excess

    def clear(self) -> None:
        self._events.clear()
