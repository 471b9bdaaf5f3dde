"""
TimeMint JSON-RPC Methods

All RPC methods for the API server. Argument marshaling happens here:
addresses travel as 0x-prefixed hex, token ids and amounts as integers or
decimal/0x-hex strings, opaque data as 0x-hex.

State-changing methods take the calling account explicitly; the node is
a simulated host, so caller identity is asserted, not signed.
"""

from __future__ import annotations
import logging
from functools import wraps
from typing import Any, Callable, Dict, List, Optional, TYPE_CHECKING

from timemint.core.types import Address, InterfaceId, is_uint256
from timemint.errors import TimeMintError

if TYPE_CHECKING:
    from timemint.node.node import Node

logger = logging.getLogger(__name__)


class RPCError(Exception):
    """RPC error with code and message."""
    def __init__(self, code: int, message: str, data: Any = None):
        self.code = code
        self.message = message
        self.data = data
        super().__init__(message)


# Error codes
ERROR_PARSE = -32700
ERROR_INVALID_REQUEST = -32600
ERROR_METHOD_NOT_FOUND = -32601
ERROR_INVALID_PARAMS = -32602
ERROR_INTERNAL = -32603
ERROR_CONTRACT = -32000


# ==============================================================================
# Marshaling
# ==============================================================================

def parse_address(value: Any, param: str) -> Address:
    if not isinstance(value, str):
        raise RPCError(ERROR_INVALID_PARAMS, f"{param} must be a hex address")
    try:
        return Address.from_hex(value)
    except ValueError as e:
        raise RPCError(ERROR_INVALID_PARAMS, f"Invalid {param}: {e}")


def parse_uint(value: Any, param: str) -> int:
    if isinstance(value, str):
        try:
            value = int(value, 16) if value.startswith(("0x", "0X")) else int(value)
        except ValueError:
            raise RPCError(ERROR_INVALID_PARAMS, f"Invalid {param}: {value!r}")
    if not is_uint256(value):
        raise RPCError(ERROR_INVALID_PARAMS, f"{param} must be a uint256")
    return value


def parse_bytes(value: Any, param: str) -> bytes:
    if value is None:
        return b""
    if not isinstance(value, str):
        raise RPCError(ERROR_INVALID_PARAMS, f"{param} must be hex data")
    if value.startswith(("0x", "0X")):
        value = value[2:]
    try:
        return bytes.fromhex(value)
    except ValueError:
        raise RPCError(ERROR_INVALID_PARAMS, f"Invalid {param}: not hex")


def parse_interface(value: Any) -> InterfaceId:
    if isinstance(value, int):
        if not 0 <= value <= 0xFFFFFFFF:
            raise RPCError(ERROR_INVALID_PARAMS, "interface_id out of range")
        return InterfaceId.from_int(value)
    data = parse_bytes(value, "interface_id")
    if len(data) != 4:
        raise RPCError(ERROR_INVALID_PARAMS, "interface_id must be 4 bytes")
    return InterfaceId(data)


def parse_bool(value: Any, param: str) -> bool:
    if not isinstance(value, bool):
        raise RPCError(ERROR_INVALID_PARAMS, f"{param} must be a boolean")
    return value


def parse_str(value: Any, param: str) -> str:
    if not isinstance(value, str):
        raise RPCError(ERROR_INVALID_PARAMS, f"{param} must be a string")
    return value


def contract_call(fn: Callable) -> Callable:
    """Translate contract failures into RPC errors."""
    @wraps(fn)
    async def wrapper(*args, **kwargs):
        try:
            return await fn(*args, **kwargs)
        except TimeMintError as e:
            logger.debug(f"{fn.__name__} failed: {e}")
            raise RPCError(ERROR_CONTRACT, e.message, e.to_dict())
    return wrapper


# ==============================================================================
# Status Methods
# ==============================================================================

async def get_status(node: "Node") -> dict:
    """Get node status."""
    return node.get_status()


async def get_events(node: "Node", name: Optional[str] = None, limit: int = 100) -> List[dict]:
    """
    Get the most recent events.

    Args:
        name: Only events with this name (Transfer, Approval, ApprovalForAll)
        limit: Maximum number to return
    """
    events = node.env.events.events(name)
    return [e.to_dict() for e in events[-limit:]] if limit > 0 else []


# ==============================================================================
# ERC-721 Read Methods
# ==============================================================================

async def name(node: "Node") -> str:
    return node.contract.name()


async def symbol(node: "Node") -> str:
    return node.contract.symbol()


async def total_supply(node: "Node") -> int:
    return node.contract.total_supply()


@contract_call
async def token_uri(node: "Node", token_id: Any) -> str:
    return node.contract.token_uri(parse_uint(token_id, "token_id"))


@contract_call
async def owner_of(node: "Node", token_id: Any) -> str:
    return node.contract.owner_of(parse_uint(token_id, "token_id")).hex()


async def balance_of(node: "Node", account: str) -> int:
    return node.contract.balance_of(parse_address(account, "account"))


async def get_approved(node: "Node", token_id: Any) -> str:
    return node.contract.get_approved(parse_uint(token_id, "token_id")).hex()


async def is_approved_for_all(node: "Node", owner: str, operator: str) -> bool:
    return node.contract.is_approved_for_all(
        parse_address(owner, "owner"), parse_address(operator, "operator")
    )


async def supports_interface(node: "Node", interface_id: Any) -> bool:
    return node.contract.supports_interface(parse_interface(interface_id))


# ==============================================================================
# ERC-721 Write Methods
# ==============================================================================

@contract_call
async def approve(node: "Node", caller: str, approved: str, token_id: Any) -> bool:
    node.env.call(
        parse_address(caller, "caller"), "approve",
        parse_address(approved, "approved"), parse_uint(token_id, "token_id"),
    )
    return True


@contract_call
async def set_approval_for_all(node: "Node", caller: str, operator: str, approved: Any) -> bool:
    node.env.call(
        parse_address(caller, "caller"), "set_approval_for_all",
        parse_address(operator, "operator"), parse_bool(approved, "approved"),
    )
    return True


@contract_call
async def transfer_from(node: "Node", caller: str, from_: str, to: str, token_id: Any) -> bool:
    node.env.call(
        parse_address(caller, "caller"), "transfer_from",
        parse_address(from_, "from"), parse_address(to, "to"),
        parse_uint(token_id, "token_id"),
    )
    return True


@contract_call
async def safe_transfer_from(
    node: "Node",
    caller: str,
    from_: str,
    to: str,
    token_id: Any,
    data: Optional[str] = None
) -> bool:
    node.env.call(
        parse_address(caller, "caller"), "safe_transfer_from",
        parse_address(from_, "from"), parse_address(to, "to"),
        parse_uint(token_id, "token_id"), parse_bytes(data, "data"),
    )
    return True


@contract_call
async def burn(node: "Node", caller: str, from_: str, token_id: Any) -> bool:
    node.env.call(
        parse_address(caller, "caller"), "burn",
        parse_address(from_, "from"), parse_uint(token_id, "token_id"),
    )
    return True


# ==============================================================================
# Booking Methods
# ==============================================================================

@contract_call
async def init(node: "Node", caller: str, admin: str) -> bool:
    node.env.call(parse_address(caller, "caller"), "init", parse_address(admin, "admin"))
    return True


@contract_call
async def register_site(node: "Node", caller: str, site_id: str, creator: str) -> bool:
    node.env.call(
        parse_address(caller, "caller"), "register_site",
        parse_str(site_id, "site_id"), parse_address(creator, "creator"),
    )
    return True


@contract_call
async def set_booking_fee(node: "Node", caller: str, fee: Any) -> bool:
    node.env.call(
        parse_address(caller, "caller"), "set_booking_fee", parse_uint(fee, "fee")
    )
    return True


@contract_call
async def book_slot(
    node: "Node",
    caller: str,
    site_id: str,
    start: Any,
    end: Any,
    value: Any = 0
) -> int:
    """
    Book a slot.

    Returns:
        Allocated token id
    """
    return node.env.call(
        parse_address(caller, "caller"), "book_slot",
        parse_str(site_id, "site_id"),
        parse_uint(start, "start"), parse_uint(end, "end"),
        value=parse_uint(value, "value"),
    )


@contract_call
async def withdraw(node: "Node", caller: str) -> int:
    """
    Withdraw caller's balance.

    Returns:
        Amount paid out
    """
    return node.env.call(parse_address(caller, "caller"), "withdraw")


async def booking_fee(node: "Node") -> int:
    return node.contract.booking_fee()


async def user_balance(node: "Node", account: str) -> int:
    return node.contract.user_balance(parse_address(account, "account"))


async def creator_of_site(node: "Node", site_id: str) -> str:
    return node.contract.creator_of_site(parse_str(site_id, "site_id")).hex()


async def slot_metadata(node: "Node", token_id: Any) -> dict:
    creator, start, end = node.contract.slot_metadata(parse_uint(token_id, "token_id"))
    return {"creator": creator.hex(), "start": start, "end": end}


async def slots_of_creator(node: "Node", creator: str) -> List[int]:
    return node.contract.slots_of_creator(parse_address(creator, "creator"))


async def slots_of_owner(node: "Node", owner: str) -> List[int]:
    return node.contract.slots_of_owner(parse_address(owner, "owner"))


async def value_balance(node: "Node", account: str) -> int:
    """Native value held by an account in the host."""
    return node.env.value_balance(parse_address(account, "account"))


# ==============================================================================
# Method Registry
# ==============================================================================

METHOD_REGISTRY: Dict[str, Callable] = {
    # Status
    "tm_status": get_status,
    "tm_getEvents": get_events,
    # ERC-721 reads
    "tm_name": name,
    "tm_symbol": symbol,
    "tm_totalSupply": total_supply,
    "tm_tokenURI": token_uri,
    "tm_ownerOf": owner_of,
    "tm_balanceOf": balance_of,
    "tm_getApproved": get_approved,
    "tm_isApprovedForAll": is_approved_for_all,
    "tm_supportsInterface": supports_interface,
    # ERC-721 writes
    "tm_approve": approve,
    "tm_setApprovalForAll": set_approval_for_all,
    "tm_transferFrom": transfer_from,
    "tm_safeTransferFrom": safe_transfer_from,
    "tm_burn": burn,
    # Booking
    "tm_init": init,
    "tm_registerSite": register_site,
    "tm_setBookingFee": set_booking_fee,
    "tm_bookSlot": book_slot,
    "tm_withdraw": withdraw,
    "tm_bookingFee": booking_fee,
    "tm_userBalance": user_balance,
    "tm_creatorOfSite": creator_of_site,
    "tm_slotMetadata": slot_metadata,
    "tm_slotsOfCreator": slots_of_creator,
    "tm_slotsOfOwner": slots_of_owner,
    "tm_valueBalance": value_balance,
}
