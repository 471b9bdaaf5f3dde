"""
TimeMint Host Execution Environment

Supplies what a contract cannot provide for itself: caller identity,
attached value, native value balances, code presence for accounts, and
the transactional boundary around every call.

Each call or subcall runs in a frame. A frame snapshots every journaled
contract, the value balances and the event log position on entry; if the
call raises, all three are restored before the exception propagates.
Nested frames roll back independently, so a failed receiver callback
discards only its own effects.
"""

from __future__ import annotations
import logging
from contextlib import contextmanager
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Iterator, List, Optional, Protocol, runtime_checkable

from timemint.core.events import EventLog
from timemint.core.types import Address, is_uint256
from timemint.errors import (
    CallDepthExceededError,
    InsufficientFundsError,
    InvalidParameterError,
    NotPayableError,
    UnknownMethodError,
)

logger = logging.getLogger(__name__)

DEFAULT_MAX_CALL_DEPTH = 64


@runtime_checkable
class Journaled(Protocol):
    """Code whose state is rolled back with the host frame."""

    def snapshot(self) -> Any: ...

    def restore(self, snapshot: Any) -> None: ...


@dataclass
class HostSnapshot:
    """State captured on frame entry."""
    event_mark: int
    value_balances: Dict[Address, int]
    contracts: Dict[Address, Any]


@dataclass
class CallStats:
    """Counters for host activity."""
    calls: int = 0
    reverted: int = 0
    max_depth_seen: int = 0


@dataclass
class Environment:
    """
    Simulated host chain for one TimeMint deployment.

    Accounts holding code are registered with deploy(); everything else is
    a plain account. The primary contract receives calls made through
    call().
    """
    events: EventLog = field(default_factory=EventLog)
    value_balances: Dict[Address, int] = field(default_factory=dict)
    max_call_depth: int = DEFAULT_MAX_CALL_DEPTH

    contract: Optional[Any] = None
    stats: CallStats = field(default_factory=CallStats)

    _code: Dict[Address, Any] = field(default_factory=dict)
    _depth: int = 0

    # =========================================================================
    # Accounts
    # =========================================================================

    def deploy(self, address: Address, code: Any, primary: bool = False) -> None:
        """
        Place code at an address.

        Args:
            address: Account that will hold the code
            code: Contract or receiver object
            primary: Route call() to this contract
        """
        if address.is_zero():
            raise InvalidParameterError("address", "cannot deploy to the zero address")
        self._code[address] = code
        if primary:
            self.contract = code
        logger.info(f"Deployed {type(code).__name__} at {address.hex()}")

    def get_code(self, address: Address) -> Optional[Any]:
        return self._code.get(address)

    def has_code(self, address: Address) -> bool:
        return address in self._code

    def value_balance(self, account: Address) -> int:
        return self.value_balances.get(account, 0)

    def fund(self, account: Address, amount: int) -> None:
        """Mint native value to an account (test and genesis helper)."""
        if amount < 0:
            raise InvalidParameterError("amount", "must be non-negative")
        self.value_balances[account] = self.value_balance(account) + amount

    def transfer_value(self, sender: Address, recipient: Address, amount: int) -> None:
        """
        Move native value, notifying a recipient that holds code.

        The recipient's receive_value hook runs in a subcall and may call
        back into the primary contract.

        Raises:
            InsufficientFundsError: If sender cannot cover amount
            InvalidParameterError: If amount is negative
            Exception: Whatever the recipient hook raises
        """
        if amount < 0:
            raise InvalidParameterError("amount", "must be non-negative")
        balance = self.value_balance(sender)
        if balance < amount:
            raise InsufficientFundsError(sender, balance, amount)

        self.value_balances[sender] = balance - amount
        self.value_balances[recipient] = self.value_balance(recipient) + amount

        code = self.get_code(recipient)
        hook = getattr(code, "receive_value", None) if code is not None else None
        if hook is not None:
            self.subcall(hook, self, sender, amount)

    # =========================================================================
    # Frames
    # =========================================================================

    def _snapshot(self) -> HostSnapshot:
        return HostSnapshot(
            event_mark=self.events.mark(),
            value_balances=dict(self.value_balances),
            contracts={
                addr: code.snapshot()
                for addr, code in self._code.items()
                if isinstance(code, Journaled)
            },
        )

    def _restore(self, snapshot: HostSnapshot) -> None:
        self.events.truncate(snapshot.event_mark)
        self.value_balances = dict(snapshot.value_balances)
        for addr, state in snapshot.contracts.items():
            self._code[addr].restore(state)

    @contextmanager
    def frame(self, label: str) -> Iterator[None]:
        """
        Transactional scope: commit on success, restore on any exception.
        """
        if self._depth >= self.max_call_depth:
            raise CallDepthExceededError(self._depth + 1, self.max_call_depth)

        snapshot = self._snapshot()
        self._depth += 1
        self.stats.calls += 1
        self.stats.max_depth_seen = max(self.stats.max_depth_seen, self._depth)
        try:
            yield
        except Exception as e:
            self._restore(snapshot)
            self.stats.reverted += 1
            logger.debug(f"Reverted {label} at depth {self._depth}: {e}")
            raise
        finally:
            self._depth -= 1

    @property
    def depth(self) -> int:
        return self._depth

    def subcall(self, fn: Callable, *args, **kwargs) -> Any:
        """Run an external callable in its own frame."""
        with self.frame(getattr(fn, "__qualname__", repr(fn))):
            return fn(*args, **kwargs)

    def call(self, caller: Address, method: str, *args, value: int = 0, **kwargs) -> Any:
        """
        Invoke an entry point of the primary contract.

        Args:
            caller: Account making the call
            method: Entry point name
            *args: Entry point arguments after the caller
            value: Native value attached to the call

        Returns:
            The entry point's result

        Raises:
            TimeMintError: Any contract failure, after rollback
        """
        if self.contract is None:
            raise UnknownMethodError(method)

        if not is_uint256(value):
            raise InvalidParameterError("value", "must be a uint256")
        handler = self.contract.entry_point(method)
        payable = method in type(self.contract).payable_methods()
        if value and not payable:
            raise NotPayableError(method, value)

        with self.frame(method):
            logger.debug(f"Call {method} from {caller.short()} value={value}")
            if value:
                self.transfer_value(caller, self.contract.address, value)
            if method in type(self.contract).caller_methods():
                if payable:
                    kwargs["payment"] = value
                return handler(caller, *args, **kwargs)
            return handler(*args, **kwargs)

    def view(self, method: str, *args, **kwargs) -> Any:
        """Read-only query; no frame, no caller."""
        if self.contract is None or method not in type(self.contract).view_methods():
            raise UnknownMethodError(method)
        return self.contract.entry_point(method)(*args, **kwargs)

    # =========================================================================
    # Persistence helpers
    # =========================================================================

    def accounts_with_code(self) -> List[Address]:
        return list(self._code.keys())

    def to_dict(self) -> dict:
        return {
            "value_balances": {a.hex(): v for a, v in self.value_balances.items()},
        }

    def load_dict(self, data: dict) -> None:
        self.value_balances = {
            Address.from_hex(a): v for a, v in data.get("value_balances", {}).items()
        }
