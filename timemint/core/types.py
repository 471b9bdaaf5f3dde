"""
TimeMint Ledger Primitive Types

Addresses, interface ids and site keys. All multi-byte integers are
BIG-ENDIAN.
"""

from __future__ import annotations
from dataclasses import dataclass, field
from typing import Union

from timemint.constants import (
    ADDRESS_SIZE,
    INTERFACE_ID_SIZE,
    SITE_KEY_SIZE,
    UINT256_MAX,
)


@dataclass(frozen=True, slots=True)
class Address:
    """
    Account address.

    SIZE: 20 bytes
    SERIALIZATION: raw bytes, "0x"-prefixed hex in text form
    """
    data: bytes = field(default_factory=lambda: bytes(ADDRESS_SIZE))

    def __post_init__(self):
        if len(self.data) != ADDRESS_SIZE:
            raise ValueError(f"Address must be {ADDRESS_SIZE} bytes, got {len(self.data)}")

    def __bytes__(self) -> bytes:
        return self.data

    def __eq__(self, other: object) -> bool:
        if isinstance(other, Address):
            return self.data == other.data
        if isinstance(other, bytes):
            return self.data == other
        return False

    def __hash__(self) -> int:
        return hash(self.data)

    def __repr__(self) -> str:
        return f"Address({self.hex()})"

    def __str__(self) -> str:
        return self.hex()

    def hex(self) -> str:
        return "0x" + self.data.hex()

    def short(self) -> str:
        """Abbreviated form for log lines."""
        return "0x" + self.data.hex()[:8]

    def is_zero(self) -> bool:
        return self.data == bytes(ADDRESS_SIZE)

    @classmethod
    def from_hex(cls, hex_string: str) -> Address:
        if hex_string.startswith(("0x", "0X")):
            hex_string = hex_string[2:]
        return cls(bytes.fromhex(hex_string))

    @classmethod
    def zero(cls) -> Address:
        return cls(bytes(ADDRESS_SIZE))

    @classmethod
    def from_int(cls, value: int) -> Address:
        """Build an address from its integer value (handy for fixtures)."""
        return cls(value.to_bytes(ADDRESS_SIZE, "big"))

    @classmethod
    def coerce(cls, value: Union["Address", str, bytes]) -> Address:
        """Accept an Address, a hex string or raw bytes."""
        if isinstance(value, Address):
            return value
        if isinstance(value, str):
            return cls.from_hex(value)
        if isinstance(value, (bytes, bytearray)):
            return cls(bytes(value))
        raise TypeError(f"Cannot interpret {type(value).__name__} as Address")


ZERO_ADDRESS = Address.zero()


@dataclass(frozen=True, slots=True)
class InterfaceId:
    """
    ERC-165 interface identifier / 4-byte function selector.

    SIZE: 4 bytes
    """
    data: bytes = field(default_factory=lambda: bytes(INTERFACE_ID_SIZE))

    def __post_init__(self):
        if len(self.data) != INTERFACE_ID_SIZE:
            raise ValueError(
                f"InterfaceId must be {INTERFACE_ID_SIZE} bytes, got {len(self.data)}"
            )

    def __bytes__(self) -> bytes:
        return self.data

    def __int__(self) -> int:
        return int.from_bytes(self.data, "big")

    def __repr__(self) -> str:
        return f"InterfaceId({self.hex()})"

    def hex(self) -> str:
        return "0x" + self.data.hex()

    @classmethod
    def from_int(cls, value: int) -> InterfaceId:
        return cls(value.to_bytes(INTERFACE_ID_SIZE, "big"))

    @classmethod
    def from_hex(cls, hex_string: str) -> InterfaceId:
        if hex_string.startswith(("0x", "0X")):
            hex_string = hex_string[2:]
        return cls(bytes.fromhex(hex_string))


@dataclass(frozen=True, slots=True)
class SiteKey:
    """
    Fixed-width canonical site identifier.

    SIZE: 32 bytes
    """
    data: bytes = field(default_factory=lambda: bytes(SITE_KEY_SIZE))

    def __post_init__(self):
        if len(self.data) != SITE_KEY_SIZE:
            raise ValueError(f"SiteKey must be {SITE_KEY_SIZE} bytes, got {len(self.data)}")

    def __bytes__(self) -> bytes:
        return self.data

    def __repr__(self) -> str:
        return f"SiteKey({self.label()!r})"

    def hex(self) -> str:
        return self.data.hex()

    def label(self) -> str:
        """Readable form with the zero padding stripped."""
        return self.data.rstrip(b"\x00").decode("utf-8", errors="replace")

    @classmethod
    def from_hex(cls, hex_string: str) -> SiteKey:
        return cls(bytes.fromhex(hex_string))


def derive_site_key(site_id: str) -> SiteKey:
    """
    Canonicalize a site identifier into a SiteKey.

    The UTF-8 encoding of ``site_id`` is truncated to SITE_KEY_SIZE bytes
    and right-padded with zero bytes. Distinct identifiers that share their
    first SITE_KEY_SIZE bytes map to the same key, as do identifiers that
    differ only by trailing NUL characters.
    """
    raw = site_id.encode("utf-8")[:SITE_KEY_SIZE]
    return SiteKey(raw.ljust(SITE_KEY_SIZE, b"\x00"))


def is_uint256(value: object) -> bool:
    """Check that value is an int in [0, 2**256)."""
    return isinstance(value, int) and not isinstance(value, bool) and 0 <= value <= UINT256_MAX
