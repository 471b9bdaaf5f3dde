"""
TimeMint Ownership Registry

Generic ERC-721 ledger: owner-of, balance-of, approvals, mint, burn and
the unchecked transfer primitive.
"""

from __future__ import annotations
import logging
from dataclasses import dataclass, field
from typing import Dict, Tuple

from timemint.constants import (
    INTERFACE_INVALID,
    SUPPORTED_INTERFACES,
    TOKEN_NAME,
    TOKEN_SYMBOL,
    TOKEN_URI_BASE,
    TOKEN_URI_SUFFIX,
)
from timemint.core.events import (
    ApprovalEvent,
    ApprovalForAllEvent,
    EventLog,
    TransferEvent,
)
from timemint.core.types import Address, InterfaceId, ZERO_ADDRESS
from timemint.errors import (
    InvalidTokenError,
    NotApprovedError,
    NotOwnerError,
)

logger = logging.getLogger(__name__)


@dataclass
class OwnershipRegistry:
    """
    Non-fungible token ownership ledger.

    Zero address semantics:
    - owners[id] absent (or zero) means the token is not minted-and-held
    - the zero address is the source of mints and the sink of burns and
      never accumulates a balance
    """
    events: EventLog = field(default_factory=EventLog)

    token_name: str = TOKEN_NAME
    token_symbol: str = TOKEN_SYMBOL
    token_uri_base: str = TOKEN_URI_BASE

    owners: Dict[int, Address] = field(default_factory=dict)
    balances: Dict[Address, int] = field(default_factory=dict)
    token_approvals: Dict[int, Address] = field(default_factory=dict)
    operator_approvals: Dict[Tuple[Address, Address], bool] = field(default_factory=dict)
    total_supply: int = 0

    # =========================================================================
    # Reads
    # =========================================================================

    def owner_of(self, token_id: int) -> Address:
        """
        Get current owner of a token.

        Raises:
            InvalidTokenError: If the token is not currently held
        """
        owner = self.owners.get(token_id, ZERO_ADDRESS)
        if owner.is_zero():
            raise InvalidTokenError(token_id)
        return owner

    def balance_of(self, account: Address) -> int:
        return self.balances.get(account, 0)

    def get_approved(self, token_id: int) -> Address:
        return self.token_approvals.get(token_id, ZERO_ADDRESS)

    def is_approved_for_all(self, owner: Address, operator: Address) -> bool:
        return self.operator_approvals.get((owner, operator), False)

    def name(self) -> str:
        return self.token_name

    def symbol(self) -> str:
        return self.token_symbol

    def token_uri(self, token_id: int) -> str:
        """Metadata URI of an existing token."""
        self.owner_of(token_id)
        return f"{self.token_uri_base}{token_id}{TOKEN_URI_SUFFIX}"

    @staticmethod
    def supports_interface(interface: InterfaceId) -> bool:
        """
        ERC-165 introspection.

        0xffffffff is rejected explicitly even though it is a
        well-formed identifier.
        """
        value = int(interface)
        if value == INTERFACE_INVALID:
            return False
        return value in SUPPORTED_INTERFACES

    # =========================================================================
    # Mutations
    # =========================================================================

    def transfer(self, token_id: int, from_: Address, to: Address) -> None:
        """
        Move a token without any access check.

        Verifies the current owner, reassigns ownership, adjusts balances,
        clears the single-token approval and emits Transfer.

        Raises:
            NotOwnerError: If from_ is not the current owner
        """
        previous_owner = self.owners.get(token_id, ZERO_ADDRESS)
        if previous_owner != from_:
            raise NotOwnerError(from_, token_id, previous_owner)

        if to.is_zero():
            self.owners.pop(token_id, None)
        else:
            self.owners[token_id] = to

        if not from_.is_zero():
            remaining = self.balances.get(from_, 0) - 1
            if remaining:
                self.balances[from_] = remaining
            else:
                self.balances.pop(from_, None)
        if not to.is_zero():
            self.balances[to] = self.balances.get(to, 0) + 1

        self.token_approvals.pop(token_id, None)

        self.events.emit(TransferEvent(from_=from_, to=to, token_id=token_id))

        logger.debug(
            f"Transferred token {token_id}: {from_.short()} -> {to.short()}"
        )

    def allocate_token_id(self) -> int:
        """Reserve the next token id by advancing total supply."""
        token_id = self.total_supply
        self.total_supply = token_id + 1
        return token_id

    def mint(self, to: Address) -> int:
        """
        Mint a new token to an account.

        Returns:
            The new token id
        """
        token_id = self.allocate_token_id()
        self.transfer(token_id, ZERO_ADDRESS, to)
        return token_id

    def burn(self, from_: Address, token_id: int) -> None:
        """Destroy a token. Total supply is not decremented."""
        self.transfer(token_id, from_, ZERO_ADDRESS)

    # =========================================================================
    # Authorization
    # =========================================================================

    def require_authorized_to_spend(
        self,
        caller: Address,
        from_: Address,
        token_id: int
    ) -> None:
        """
        Gate for every caller-facing transfer.

        Allowed when caller is the owner, an operator of the owner, or the
        token's approved spender.

        Raises:
            InvalidTokenError: If the token is not held
            NotOwnerError: If from_ is not the owner
            NotApprovedError: If caller has no right to move the token
        """
        owner = self.owner_of(token_id)
        if from_ != owner:
            raise NotOwnerError(from_, token_id, owner)

        if caller == owner:
            return
        if self.is_approved_for_all(owner, caller):
            return
        approved = self.get_approved(token_id)
        if not approved.is_zero() and caller == approved:
            return

        raise NotApprovedError(owner, caller, token_id)

    def approve(self, caller: Address, approved: Address, token_id: int) -> None:
        """
        Set the single approved spender of a token.

        Raises:
            InvalidTokenError: If the token is not held
            NotApprovedError: If caller is neither owner nor operator
        """
        owner = self.owner_of(token_id)
        if caller != owner and not self.is_approved_for_all(owner, caller):
            raise NotApprovedError(owner, caller, token_id)

        if approved.is_zero():
            self.token_approvals.pop(token_id, None)
        else:
            self.token_approvals[token_id] = approved

        self.events.emit(ApprovalEvent(owner=owner, approved=approved, token_id=token_id))

    def set_approval_for_all(
        self,
        caller: Address,
        operator: Address,
        approved: bool
    ) -> None:
        """Grant or revoke an operator over all of caller's tokens."""
        if approved:
            self.operator_approvals[(caller, operator)] = True
        else:
            self.operator_approvals.pop((caller, operator), None)

        self.events.emit(
            ApprovalForAllEvent(owner=caller, operator=operator, approved=approved)
        )

    # =========================================================================
    # Snapshots
    # =========================================================================

    def snapshot(self) -> "OwnershipRegistry":
        """Copy of all ledger state. The event log is shared, not copied."""
        return OwnershipRegistry(
            events=self.events,
            token_name=self.token_name,
            token_symbol=self.token_symbol,
            token_uri_base=self.token_uri_base,
            owners=dict(self.owners),
            balances=dict(self.balances),
            token_approvals=dict(self.token_approvals),
            operator_approvals=dict(self.operator_approvals),
            total_supply=self.total_supply,
        )

    def restore(self, snapshot: "OwnershipRegistry") -> None:
        """Restore ledger state in place from a snapshot."""
        self.owners = dict(snapshot.owners)
        self.balances = dict(snapshot.balances)
        self.token_approvals = dict(snapshot.token_approvals)
        self.operator_approvals = dict(snapshot.operator_approvals)
        self.total_supply = snapshot.total_supply

    def to_dict(self) -> dict:
        """Export ledger state as dictionary."""
        return {
            "owners": {str(tid): owner.hex() for tid, owner in self.owners.items()},
            "balances": {acct.hex(): count for acct, count in self.balances.items()},
            "token_approvals": {
                str(tid): spender.hex() for tid, spender in self.token_approvals.items()
            },
            "operator_approvals": [
                [owner.hex(), operator.hex()]
                for (owner, operator), flag in self.operator_approvals.items() if flag
            ],
            "total_supply": self.total_supply,
        }

    def load_dict(self, data: dict) -> None:
        """Import ledger state from dictionary."""
        self.owners = {
            int(tid): Address.from_hex(owner) for tid, owner in data.get("owners", {}).items()
        }
        self.balances = {
            Address.from_hex(acct): count for acct, count in data.get("balances", {}).items()
        }
        self.token_approvals = {
            int(tid): Address.from_hex(spender)
            for tid, spender in data.get("token_approvals", {}).items()
        }
        self.operator_approvals = {
            (Address.from_hex(owner), Address.from_hex(operator)): True
            for owner, operator in data.get("operator_approvals", [])
        }
        self.total_supply = data.get("total_supply", 0)
