"""
TimeMint Receiver Contracts

Third-party code that can be placed at an address in the host. A
contract recipient of a safe transfer must answer onERC721Received with
the receiver magic value; a recipient of a value payout may observe it
through receive_value. Both hooks get the host and may call back into
the primary contract.
"""

from __future__ import annotations
import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Callable, List, Optional, Protocol, Tuple, runtime_checkable

from timemint.constants import ERC721_RECEIVER_MAGIC
from timemint.core.types import Address

if TYPE_CHECKING:
    from timemint.host.environment import Environment

logger = logging.getLogger(__name__)


@runtime_checkable
class TokenReceiver(Protocol):
    """onERC721Received(operator, from, token_id, data) -> bytes4"""

    def on_erc721_received(
        self,
        host: "Environment",
        operator: Address,
        from_: Address,
        token_id: int,
        data: bytes
    ) -> bytes: ...


@dataclass
class AcceptingReceiver:
    """Acknowledges every token and remembers what it was sent."""
    address: Address
    received: List[Tuple[Address, Address, int, bytes]] = field(default_factory=list)
    payments: List[Tuple[Address, int]] = field(default_factory=list)

    def on_erc721_received(self, host, operator, from_, token_id, data) -> bytes:
        self.received.append((operator, from_, token_id, data))
        return ERC721_RECEIVER_MAGIC

    def receive_value(self, host, sender: Address, amount: int) -> None:
        self.payments.append((sender, amount))


@dataclass
class RejectingReceiver:
    """Answers with a fixed code other than the receiver magic value."""
    address: Address
    returned: bytes = b"\xde\xad\xbe\xef"

    def on_erc721_received(self, host, operator, from_, token_id, data) -> bytes:
        return self.returned


@dataclass
class FailingReceiver:
    """Raises from every hook, like code that reverts."""
    address: Address
    reason: str = "receiver reverted"

    def on_erc721_received(self, host, operator, from_, token_id, data) -> bytes:
        raise RuntimeError(self.reason)

    def receive_value(self, host, sender: Address, amount: int) -> None:
        raise RuntimeError(self.reason)


ReceiveHook = Callable[["Environment", "CallbackReceiver", Address, Address, int, bytes], Optional[bytes]]
ValueHook = Callable[["Environment", "CallbackReceiver", Address, int], None]


@dataclass
class CallbackReceiver:
    """
    Receiver driven by user-supplied hooks.

    on_receive may call back into the host (reentrancy) and may return a
    code to answer with; None means the receiver magic value.
    """
    address: Address
    on_receive: Optional[ReceiveHook] = None
    on_value: Optional[ValueHook] = None

    def on_erc721_received(self, host, operator, from_, token_id, data) -> bytes:
        returned = None
        if self.on_receive is not None:
            returned = self.on_receive(host, self, operator, from_, token_id, data)
        return ERC721_RECEIVER_MAGIC if returned is None else returned

    def receive_value(self, host, sender: Address, amount: int) -> None:
        if self.on_value is not None:
            self.on_value(host, self, sender, amount)
