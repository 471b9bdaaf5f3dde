"""
TimeMint Ledger Keccak Helpers

Keccak-256 (pre-standard SHA-3 padding, as used by the EVM ABI) for
function selectors, ERC-165 interface ids and event topics.
"""

from __future__ import annotations
from functools import reduce
from typing import Iterable

from Crypto.Hash import keccak

from timemint.constants import INTERFACE_ID_SIZE, KECCAK_SIZE
from timemint.core.types import InterfaceId


def keccak256(data: bytes) -> bytes:
    """Keccak-256 digest of data."""
    h = keccak.new(digest_bits=KECCAK_SIZE * 8)
    h.update(data)
    return h.digest()


def function_selector(signature: str) -> InterfaceId:
    """First four bytes of keccak256(signature)."""
    return InterfaceId(keccak256(signature.encode("ascii"))[:INTERFACE_ID_SIZE])


def interface_id(signatures: Iterable[str]) -> InterfaceId:
    """
    ERC-165 interface id: XOR of all function selectors.

    Args:
        signatures: Canonical function signatures, e.g. "ownerOf(uint256)"

    Returns:
        Combined 4-byte identifier
    """
    value = reduce(
        lambda acc, sig: acc ^ int(function_selector(sig)),
        signatures,
        0,
    )
    return InterfaceId.from_int(value)


def event_topic(signature: str) -> bytes:
    """Topic 0 of an event log: keccak256 of the event signature."""
    return keccak256(signature.encode("ascii"))
