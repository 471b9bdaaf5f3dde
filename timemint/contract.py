"""
TimeMint Booking Contract

Single aggregate owning every ledger of one contract instance: the
ownership registry, the booking ledger and the creator/owner slot
indexes. Exposes the caller-facing surface dispatched by the host.
"""

from __future__ import annotations
import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Callable, FrozenSet, List, Optional, Tuple

from timemint.booking.ledger import BookingLedger
from timemint.constants import ERC721_RECEIVER_MAGIC
from timemint.core.types import Address, InterfaceId
from timemint.errors import PayoutFailedError, UnknownMethodError
from timemint.registry.ownership import OwnershipRegistry
from timemint.registry.safe_transfer import SafeTransferProtocol

if TYPE_CHECKING:
    from timemint.host.environment import Environment
    from timemint.node.config import ContractConfig

logger = logging.getLogger(__name__)


# Entry points taking the caller as first argument
CALLER_METHODS: FrozenSet[str] = frozenset({
    "approve",
    "set_approval_for_all",
    "transfer_from",
    "safe_transfer_from",
    "burn",
    "init",
    "register_site",
    "set_booking_fee",
    "book_slot",
    "withdraw",
})

# Entry points that accept attached value
PAYABLE_METHODS: FrozenSet[str] = frozenset({"book_slot"})

VIEW_METHODS: FrozenSet[str] = frozenset({
    "name",
    "symbol",
    "token_uri",
    "total_supply",
    "owner_of",
    "balance_of",
    "get_approved",
    "is_approved_for_all",
    "supports_interface",
    "booking_fee",
    "admin",
    "creator_of_site",
    "user_balance",
    "slot_metadata",
    "slots_of_creator",
    "slots_of_owner",
    "owner_slot_entries",
})


@dataclass
class TimeMintSnapshot:
    """Point-in-time copy of contract state."""
    registry: OwnershipRegistry
    ledger: BookingLedger


@dataclass
class TimeMint:
    """
    TimeMint slot-booking contract.

    Every state-changing entry point takes the calling account first;
    book_slot additionally receives the attached payment.
    """
    address: Address
    host: "Environment"
    registry: Optional[OwnershipRegistry] = None
    ledger: Optional[BookingLedger] = None
    safe: SafeTransferProtocol = field(init=False)

    def __post_init__(self):
        if self.registry is None:
            self.registry = OwnershipRegistry(events=self.host.events)
        if self.ledger is None:
            self.ledger = BookingLedger(registry=self.registry)
        self.safe = SafeTransferProtocol(registry=self.registry, host=self.host)

    @classmethod
    def from_config(
        cls,
        address: Address,
        host: "Environment",
        config: "ContractConfig"
    ) -> "TimeMint":
        """Build a contract with metadata and booking options from config."""
        registry = OwnershipRegistry(
            events=host.events,
            token_name=config.token_name,
            token_symbol=config.token_symbol,
            token_uri_base=config.token_uri_base,
        )
        ledger = BookingLedger(
            registry=registry,
            materialize_bookings=config.materialize_bookings,
            creator_share_percent=config.creator_share_percent,
        )
        return cls(address=address, host=host, registry=registry, ledger=ledger)

    @classmethod
    def caller_methods(cls) -> FrozenSet[str]:
        return CALLER_METHODS

    @classmethod
    def payable_methods(cls) -> FrozenSet[str]:
        return PAYABLE_METHODS

    @classmethod
    def view_methods(cls) -> FrozenSet[str]:
        return VIEW_METHODS

    def entry_point(self, method: str) -> Callable:
        """Resolve a public method by name."""
        if method not in CALLER_METHODS and method not in VIEW_METHODS:
            raise UnknownMethodError(method)
        return getattr(self, method)

    # =========================================================================
    # ERC-721 reads
    # =========================================================================

    def name(self) -> str:
        return self.registry.name()

    def symbol(self) -> str:
        return self.registry.symbol()

    def token_uri(self, token_id: int) -> str:
        return self.registry.token_uri(token_id)

    def total_supply(self) -> int:
        return self.registry.total_supply

    def owner_of(self, token_id: int) -> Address:
        return self.registry.owner_of(token_id)

    def balance_of(self, account: Address) -> int:
        return self.registry.balance_of(account)

    def get_approved(self, token_id: int) -> Address:
        return self.registry.get_approved(token_id)

    def is_approved_for_all(self, owner: Address, operator: Address) -> bool:
        return self.registry.is_approved_for_all(owner, operator)

    def supports_interface(self, interface: InterfaceId) -> bool:
        return self.registry.supports_interface(interface)

    # =========================================================================
    # ERC-721 mutations
    # =========================================================================

    def approve(self, caller: Address, approved: Address, token_id: int) -> None:
        self.registry.approve(caller, approved, token_id)

    def set_approval_for_all(self, caller: Address, operator: Address, approved: bool) -> None:
        self.registry.set_approval_for_all(caller, operator, approved)

    def transfer_from(self, caller: Address, from_: Address, to: Address, token_id: int) -> None:
        self.safe.transfer_from(caller, from_, to, token_id)

    def safe_transfer_from(
        self,
        caller: Address,
        from_: Address,
        to: Address,
        token_id: int,
        data: bytes = b""
    ) -> None:
        self.safe.safe_transfer_from(caller, from_, to, token_id, data)

    def burn(self, caller: Address, from_: Address, token_id: int) -> None:
        """Burn a token, subject to the same authorization as a transfer."""
        self.registry.require_authorized_to_spend(caller, from_, token_id)
        self.registry.burn(from_, token_id)

    def on_erc721_received(
        self,
        host: "Environment",
        operator: Address,
        from_: Address,
        token_id: int,
        data: bytes
    ) -> bytes:
        """The contract accepts every token sent to it."""
        return ERC721_RECEIVER_MAGIC

    # =========================================================================
    # Booking
    # =========================================================================

    def init(self, caller: Address, admin: Address) -> None:
        self.ledger.init(admin)

    def register_site(self, caller: Address, site_id: str, creator: Address) -> None:
        self.ledger.register_site(caller, site_id, creator)

    def set_booking_fee(self, caller: Address, new_fee: int) -> None:
        self.ledger.set_booking_fee(caller, new_fee)

    def book_slot(
        self,
        caller: Address,
        site_id: str,
        start: int,
        end: int,
        payment: int = 0
    ) -> int:
        """Book a slot; returns the allocated token id."""
        return self.ledger.book_slot(caller, site_id, start, end, payment).token_id

    def withdraw(self, caller: Address) -> int:
        return self.ledger.withdraw(caller, self._payout)

    def _payout(self, to: Address, amount: int) -> None:
        try:
            self.host.transfer_value(self.address, to, amount)
        except Exception as e:
            raise PayoutFailedError(to, amount, str(e)) from e

    def booking_fee(self) -> int:
        return self.ledger.booking_fee

    def admin(self) -> Optional[Address]:
        return self.ledger.admin

    def creator_of_site(self, site_id: str) -> Address:
        return self.ledger.creator_of_site(site_id)

    def user_balance(self, account: Address) -> int:
        return self.ledger.balance_of_user(account)

    def slot_metadata(self, token_id: int) -> Tuple[Address, int, int]:
        return self.ledger.slot_metadata(token_id)

    def slots_of_creator(self, creator: Address) -> List[int]:
        return self.ledger.creator_index.slots(creator)

    def slots_of_owner(self, owner: Address) -> List[int]:
        return self.ledger.owner_index.slots(owner)

    def owner_slot_entries(self, owner: Address) -> List[int]:
        """Raw owner index positions, unpopulated zeros included."""
        return self.ledger.owner_index.entries(owner)

    # =========================================================================
    # Journaling
    # =========================================================================

    def snapshot(self) -> TimeMintSnapshot:
        return TimeMintSnapshot(
            registry=self.registry.snapshot(),
            ledger=self.ledger.snapshot(),
        )

    def restore(self, snapshot: TimeMintSnapshot) -> None:
        self.registry.restore(snapshot.registry)
        self.ledger.restore(snapshot.ledger)

    def to_dict(self) -> dict:
        """Export contract state as dictionary."""
        return {
            "address": self.address.hex(),
            "registry": self.registry.to_dict(),
            "booking": self.ledger.to_dict(),
        }

    def load_dict(self, data: dict) -> None:
        """Import contract state from dictionary."""
        self.registry.load_dict(data.get("registry", {}))
        self.ledger.load_dict(data.get("booking", {}))
        logger.info(
            f"Contract state loaded: supply={self.registry.total_supply}, "
            f"sites={len(self.ledger.site_creators)}"
        )
