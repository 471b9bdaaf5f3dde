"""
TimeMint Booking Ledger

Site-creator registry, booking fee, fee splitting and per-account
withdrawable balances.
"""

from __future__ import annotations
import logging
from dataclasses import dataclass, field
from typing import Callable, Dict, NamedTuple, Optional, Tuple

from timemint.booking.slots import SlotIndex
from timemint.constants import (
    CREATOR_SHARE_PERCENT,
    DEFAULT_BOOKING_FEE,
    PERCENT_DENOMINATOR,
)
from timemint.core.types import Address, SiteKey, ZERO_ADDRESS, derive_site_key, is_uint256
from timemint.errors import (
    AlreadyInitializedError,
    InsufficientPaymentError,
    InvalidParameterError,
    InvalidRangeError,
    NoBalanceError,
    NotAdminError,
    NotSiteCreatorError,
    SiteAlreadyRegisteredError,
    UnknownSiteError,
)
from timemint.registry.ownership import OwnershipRegistry

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SlotRecord:
    """Booked time slot attached to a token."""
    creator: Address
    start: int
    end: int

    def is_populated(self) -> bool:
        return not self.creator.is_zero() and self.start != 0 and self.end != 0


EMPTY_SLOT = SlotRecord(creator=ZERO_ADDRESS, start=0, end=0)


class FeeSplit(NamedTuple):
    """Division of a booking fee."""
    creator_share: int
    admin_share: int


class Booking(NamedTuple):
    """Result of a successful booking."""
    token_id: int
    creator: Address
    split: FeeSplit


def split_fee(fee: int, creator_percent: int = CREATOR_SHARE_PERCENT) -> FeeSplit:
    """
    Split a fee between creator and admin.

    Integer division; the rounding remainder accrues to the admin.
    """
    creator_share = fee * creator_percent // PERCENT_DENOMINATOR
    return FeeSplit(creator_share=creator_share, admin_share=fee - creator_share)


@dataclass
class BookingLedger:
    """
    Booking state of the TimeMint contract.

    Reads and advances the registry's supply counter. When
    materialize_bookings is set, a booking also mints the token to the
    booker, records its SlotRecord and appends it to both slot indexes;
    otherwise a booking only allocates an id and splits the fee.
    """
    registry: OwnershipRegistry
    creator_index: SlotIndex = field(default_factory=SlotIndex)
    owner_index: SlotIndex = field(default_factory=SlotIndex)
    materialize_bookings: bool = False
    creator_share_percent: int = CREATOR_SHARE_PERCENT

    admin: Optional[Address] = None
    booking_fee: int = DEFAULT_BOOKING_FEE
    user_balances: Dict[Address, int] = field(default_factory=dict)
    site_creators: Dict[SiteKey, Address] = field(default_factory=dict)
    slot_records: Dict[int, SlotRecord] = field(default_factory=dict)

    # =========================================================================
    # Administration
    # =========================================================================

    def init(self, admin: Address) -> None:
        """
        Set the admin identity once.

        Raises:
            AlreadyInitializedError: If an admin is already set
        """
        if self.admin is not None:
            raise AlreadyInitializedError(self.admin)
        self.admin = admin
        logger.info(f"Booking ledger initialized, admin={admin.hex()}")

    def require_admin(self, caller: Address) -> None:
        if self.admin is None or caller != self.admin:
            raise NotAdminError(caller)

    def set_booking_fee(self, caller: Address, new_fee: int) -> None:
        """Set the global booking fee (admin only)."""
        self.require_admin(caller)
        if not is_uint256(new_fee):
            raise InvalidParameterError("new_fee", "must be a uint256")
        old_fee = self.booking_fee
        self.booking_fee = new_fee
        logger.info(f"Booking fee changed: {old_fee} -> {new_fee}")

    # =========================================================================
    # Sites
    # =========================================================================

    def register_site(self, caller: Address, site_id: str, creator: Address) -> SiteKey:
        """
        Register the creator of a site. Write-once per site key.

        Raises:
            SiteAlreadyRegisteredError: If the key already has a creator
            NotSiteCreatorError: If caller registers on behalf of someone else
        """
        site_key = derive_site_key(site_id)
        existing = self.site_creators.get(site_key, ZERO_ADDRESS)
        if not existing.is_zero():
            raise SiteAlreadyRegisteredError(site_key, existing)
        if caller != creator:
            raise NotSiteCreatorError(caller, creator)

        self.site_creators[site_key] = creator
        logger.info(f"Site {site_key.label()!r} registered to {creator.short()}")
        return site_key

    def creator_of_site(self, site_id: str) -> Address:
        return self.site_creators.get(derive_site_key(site_id), ZERO_ADDRESS)

    # =========================================================================
    # Booking
    # =========================================================================

    def credit(self, account: Address, amount: int) -> None:
        if amount:
            self.user_balances[account] = self.user_balances.get(account, 0) + amount

    def book_slot(
        self,
        caller: Address,
        site_id: str,
        start: int,
        end: int,
        payment: int
    ) -> Booking:
        """
        Book a slot on a site and split the fee.

        Args:
            caller: Booking account
            site_id: Site identifier (canonicalized to a site key)
            start: Slot start, exclusive lower bound 0
            end: Slot end, must exceed start
            payment: Value attached to the call

        Returns:
            Booking with the allocated token id and the fee split

        Raises:
            InvalidRangeError: Unless 0 < start < end within uint256
            InvalidParameterError: If payment is not a uint256
            UnknownSiteError: If the site has no creator
            InsufficientPaymentError: If payment < booking fee
        """
        if not (is_uint256(start) and is_uint256(end)) or not 0 < start < end:
            raise InvalidRangeError(start, end)
        if not is_uint256(payment):
            raise InvalidParameterError("payment", "must be a uint256")

        site_key = derive_site_key(site_id)
        creator = self.site_creators.get(site_key, ZERO_ADDRESS)
        if creator.is_zero():
            raise UnknownSiteError(site_key)

        fee = self.booking_fee
        if payment < fee:
            raise InsufficientPaymentError(payment, fee)

        split = split_fee(fee, self.creator_share_percent)
        self.credit(creator, split.creator_share)
        if self.admin is not None:
            self.credit(self.admin, split.admin_share)

        if self.materialize_bookings:
            token_id = self.registry.mint(caller)
            self.slot_records[token_id] = SlotRecord(creator=creator, start=start, end=end)
            self.creator_index.append(creator, token_id)
            self.owner_index.append(caller, token_id)
        else:
            token_id = self.registry.allocate_token_id()

        logger.debug(
            f"Booked slot {token_id} on {site_key.label()!r} [{start}, {end}) "
            f"by {caller.short()}: creator+{split.creator_share}, admin+{split.admin_share}"
        )

        return Booking(token_id=token_id, creator=creator, split=split)

    def slot_metadata(self, token_id: int) -> Tuple[Address, int, int]:
        """(creator, start, end), or all zero when not populated."""
        record = self.slot_records.get(token_id, EMPTY_SLOT)
        if not record.is_populated():
            record = EMPTY_SLOT
        return record.creator, record.start, record.end

    # =========================================================================
    # Withdrawal
    # =========================================================================

    def balance_of_user(self, account: Address) -> int:
        return self.user_balances.get(account, 0)

    def withdraw(self, caller: Address, payout: Callable[[Address, int], None]) -> int:
        """
        Pay out caller's accumulated balance.

        The balance is zeroed before payout is invoked, so a reentrant
        withdrawal during the payment step finds nothing to take.

        Args:
            caller: Withdrawing account
            payout: Sends value to an account; raises on failure

        Returns:
            Amount paid out

        Raises:
            NoBalanceError: If caller has nothing to withdraw
        """
        amount = self.user_balances.get(caller, 0)
        if amount == 0:
            raise NoBalanceError(caller)

        self.user_balances.pop(caller, None)
        payout(caller, amount)

        logger.info(f"Withdrawal of {amount} to {caller.short()}")
        return amount

    # =========================================================================
    # Snapshots
    # =========================================================================

    def snapshot(self) -> "BookingLedger":
        """Copy of booking state; the registry reference is shared."""
        return BookingLedger(
            registry=self.registry,
            creator_index=self.creator_index.snapshot(),
            owner_index=self.owner_index.snapshot(),
            materialize_bookings=self.materialize_bookings,
            creator_share_percent=self.creator_share_percent,
            admin=self.admin,
            booking_fee=self.booking_fee,
            user_balances=dict(self.user_balances),
            site_creators=dict(self.site_creators),
            slot_records=dict(self.slot_records),
        )

    def restore(self, snapshot: "BookingLedger") -> None:
        self.creator_index.restore(snapshot.creator_index)
        self.owner_index.restore(snapshot.owner_index)
        self.admin = snapshot.admin
        self.booking_fee = snapshot.booking_fee
        self.user_balances = dict(snapshot.user_balances)
        self.site_creators = dict(snapshot.site_creators)
        self.slot_records = dict(snapshot.slot_records)

    def to_dict(self) -> dict:
        return {
            "admin": self.admin.hex() if self.admin is not None else None,
            "booking_fee": self.booking_fee,
            "user_balances": {a.hex(): v for a, v in self.user_balances.items()},
            "site_creators": {k.hex(): c.hex() for k, c in self.site_creators.items()},
            "slot_records": {
                str(tid): [r.creator.hex(), r.start, r.end]
                for tid, r in self.slot_records.items()
            },
            "creator_index": self.creator_index.to_dict(),
            "owner_index": self.owner_index.to_dict(),
        }

    def load_dict(self, data: dict) -> None:
        admin = data.get("admin")
        self.admin = Address.from_hex(admin) if admin else None
        self.booking_fee = data.get("booking_fee", DEFAULT_BOOKING_FEE)
        self.user_balances = {
            Address.from_hex(a): v for a, v in data.get("user_balances", {}).items()
        }
        self.site_creators = {
            SiteKey.from_hex(k): Address.from_hex(c)
            for k, c in data.get("site_creators", {}).items()
        }
        self.slot_records = {
            int(tid): SlotRecord(creator=Address.from_hex(c), start=s, end=e)
            for tid, (c, s, e) in data.get("slot_records", {}).items()
        }
        self.creator_index = SlotIndex.from_dict(data.get("creator_index", {}))
        self.owner_index = SlotIndex.from_dict(data.get("owner_index", {}))
