"""
TimeMint Safe Transfer Protocol

Caller-facing transfer entry points. The safe variant performs the
transfer and then calls back into the receiving account when it holds
code, requiring the ERC-721 receiver acknowledgment.

Ownership has already moved when the callback runs. A refused transfer
raises; undoing the move is the job of the enclosing host frame.
"""

from __future__ import annotations
import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING

from timemint.constants import ERC721_RECEIVER_MAGIC, RECEIVER_CALL_FAILED
from timemint.core.types import Address
from timemint.errors import ReceiverRefusedError, TransferToZeroError
from timemint.registry.ownership import OwnershipRegistry

if TYPE_CHECKING:
    from timemint.host.environment import Environment

logger = logging.getLogger(__name__)


@dataclass
class SafeTransferProtocol:
    """Authorization-checked transfers with receiver callbacks."""
    registry: OwnershipRegistry
    host: "Environment"

    def transfer_from(
        self,
        caller: Address,
        from_: Address,
        to: Address,
        token_id: int
    ) -> None:
        """
        Transfer without receiver acknowledgment.

        Raises:
            TransferToZeroError: If to is the zero address
            NotOwnerError, NotApprovedError, InvalidTokenError: From the
                authorization gate
        """
        if to.is_zero():
            raise TransferToZeroError(token_id)
        self.registry.require_authorized_to_spend(caller, from_, token_id)
        self.registry.transfer(token_id, from_, to)

    def safe_transfer_from(
        self,
        caller: Address,
        from_: Address,
        to: Address,
        token_id: int,
        data: bytes = b""
    ) -> None:
        """
        Transfer and require a contract recipient to acknowledge it.

        Raises:
            ReceiverRefusedError: If a contract recipient does not return
                the receiver magic value
        """
        self.transfer_from(caller, from_, to, token_id)
        self.call_receiver(caller, from_, to, token_id, data)

    def call_receiver(
        self,
        operator: Address,
        from_: Address,
        to: Address,
        token_id: int,
        data: bytes
    ) -> None:
        """
        Invoke to's onERC721Received hook when to holds code.

        Plain accounts are skipped. A hook that raises is reported with a
        zeroed return code; its own effects are discarded by the subcall
        frame.
        """
        receiver = self.host.get_code(to)
        if receiver is None:
            return

        try:
            returned = self.host.subcall(
                receiver.on_erc721_received,
                self.host, operator, from_, token_id, data,
            )
        except Exception as e:
            logger.warning(
                f"Receiver {to.short()} failed on token {token_id}: {e}"
            )
            raise ReceiverRefusedError(to, token_id, RECEIVER_CALL_FAILED) from e

        if not isinstance(returned, (bytes, bytearray)) or len(returned) != len(ERC721_RECEIVER_MAGIC):
            logger.warning(f"Receiver {to.short()} returned malformed code: {returned!r}")
            raise ReceiverRefusedError(to, token_id, RECEIVER_CALL_FAILED)

        if bytes(returned) != ERC721_RECEIVER_MAGIC:
            logger.warning(
                f"Receiver {to.short()} refused token {token_id}: 0x{bytes(returned).hex()}"
            )
            raise ReceiverRefusedError(to, token_id, bytes(returned))
