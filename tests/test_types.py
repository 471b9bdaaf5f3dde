"""
TimeMint Type and Hashing Tests
"""

import pytest

from timemint.constants import (
    ERC165_SIGNATURES,
    ERC721_METADATA_SIGNATURES,
    ERC721_RECEIVER_MAGIC,
    ERC721_RECEIVER_SIGNATURE,
    ERC721_SIGNATURES,
    INTERFACE_ERC165,
    INTERFACE_ERC721,
    INTERFACE_ERC721_METADATA,
    SITE_KEY_SIZE,
    UINT256_MAX,
)
from timemint.core.events import ApprovalEvent, ApprovalForAllEvent, TransferEvent
from timemint.core.types import (
    Address,
    InterfaceId,
    SiteKey,
    ZERO_ADDRESS,
    derive_site_key,
    is_uint256,
)
from timemint.crypto.keccak import event_topic, function_selector, interface_id, keccak256


class TestAddress:
    """Tests for Address."""

    def test_hex_roundtrip(self):
        """Test hex encoding with and without prefix."""
        addr = Address.from_hex("0x" + "ab" * 20)
        assert addr.hex() == "0x" + "ab" * 20
        assert Address.from_hex("ab" * 20) == addr

    def test_invalid_length(self):
        """Test wrong-size address is rejected."""
        with pytest.raises(ValueError):
            Address(bytes(19))
        with pytest.raises(ValueError):
            Address.from_hex("0x1234")

    def test_zero(self):
        """Test zero address."""
        assert ZERO_ADDRESS.is_zero()
        assert Address.zero() == ZERO_ADDRESS
        assert not Address.from_int(1).is_zero()

    def test_hashable(self):
        """Test addresses work as dict keys."""
        a = Address.from_int(7)
        b = Address.from_int(7)
        assert {a: 1}[b] == 1

    def test_coerce(self):
        """Test coercion from string and bytes."""
        addr = Address.from_int(0xFF)
        assert Address.coerce(addr.hex()) == addr
        assert Address.coerce(bytes(addr)) == addr
        assert Address.coerce(addr) is addr
        with pytest.raises(TypeError):
            Address.coerce(255)


class TestSiteKey:
    """Tests for site key derivation."""

    def test_padding(self):
        """Test short identifiers are zero-padded."""
        key = derive_site_key("alice-cal")
        assert len(bytes(key)) == SITE_KEY_SIZE
        assert bytes(key).startswith(b"alice-cal")
        assert bytes(key)[9:] == bytes(SITE_KEY_SIZE - 9)
        assert key.label() == "alice-cal"

    def test_truncation_collides(self):
        """Identifiers sharing a 32-byte prefix map to the same key."""
        prefix = "s" * SITE_KEY_SIZE
        assert derive_site_key(prefix + "one") == derive_site_key(prefix + "two")
        assert derive_site_key(prefix) == derive_site_key(prefix + "three")

    def test_trailing_nul_collides(self):
        """Trailing NUL characters are indistinguishable from padding."""
        assert derive_site_key("cal") == derive_site_key("cal\x00")

    def test_utf8_bytes(self):
        """Truncation counts UTF-8 bytes, not characters."""
        key = derive_site_key("é" * 20)
        assert bytes(key) == ("é" * 16).encode("utf-8")

    def test_hex_roundtrip(self):
        """Test hex form used in snapshots."""
        key = derive_site_key("alice-cal")
        assert SiteKey.from_hex(key.hex()) == key


class TestUint256:
    """Tests for uint256 range checks."""

    def test_bounds(self):
        """Test range boundaries."""
        assert is_uint256(0)
        assert is_uint256(UINT256_MAX)
        assert not is_uint256(-1)
        assert not is_uint256(UINT256_MAX + 1)

    def test_rejects_non_int(self):
        """Test bools and strings are not uint256."""
        assert not is_uint256(True)
        assert not is_uint256("1")


class TestKeccak:
    """Tests for selectors, interface ids and topics."""

    def test_empty_digest(self):
        """Test Keccak-256 (not SHA3-256) of empty input."""
        assert keccak256(b"").hex() == (
            "c5d2460186f7233c927e7db2dcc703c0e500b653ca82273b7bfad8045d85a470"
        )

    def test_known_selector(self):
        """Test well-known ERC-20 transfer selector."""
        assert function_selector("transfer(address,uint256)").hex() == "0xa9059cbb"

    def test_erc165_interface(self):
        assert int(interface_id(ERC165_SIGNATURES)) == INTERFACE_ERC165

    def test_erc721_interface(self):
        """Both safeTransferFrom overloads contribute to the id."""
        assert int(interface_id(ERC721_SIGNATURES)) == INTERFACE_ERC721

    def test_erc721_metadata_interface(self):
        assert int(interface_id(ERC721_METADATA_SIGNATURES)) == INTERFACE_ERC721_METADATA

    def test_receiver_magic(self):
        """Receiver magic value is the selector of onERC721Received."""
        assert bytes(function_selector(ERC721_RECEIVER_SIGNATURE)) == ERC721_RECEIVER_MAGIC

    def test_interface_id_int_roundtrip(self):
        iid = InterfaceId.from_int(0x80AC58CD)
        assert iid.hex() == "0x80ac58cd"
        assert InterfaceId.from_hex("80ac58cd") == iid

    def test_event_topics(self):
        """Test standard ERC-721 event topics."""
        assert event_topic("Transfer(address,address,uint256)").hex() == (
            "ddf252ad1be2c89b69c2b068fc378daa952ba7f163c4a11628f55a4df523b3ef"
        )
        assert event_topic("Approval(address,address,uint256)").hex() == (
            "8c5be1e5ebec7d5bd14f71427d1e84f3dd0314c0f7b2291e5b200ac8c7c3b925"
        )
        assert event_topic("ApprovalForAll(address,address,bool)").hex() == (
            "17307eab39ab6107e8899845ad3d59bd9653f200f220920489ca2b5937696c31"
        )


class TestEvents:
    """Tests for event records."""

    def test_transfer_to_dict(self):
        """Test Transfer event export."""
        event = TransferEvent(from_=ZERO_ADDRESS, to=Address.from_int(1), token_id=3)
        d = event.to_dict()
        assert d["event"] == "Transfer"
        assert d["topic"].startswith("0xddf252ad")
        assert d["args"] == {
            "from": ZERO_ADDRESS.hex(),
            "to": Address.from_int(1).hex(),
            "token_id": 3,
        }

    def test_event_names(self):
        assert ApprovalEvent(ZERO_ADDRESS, ZERO_ADDRESS, 0).NAME == "Approval"
        assert ApprovalForAllEvent(ZERO_ADDRESS, ZERO_ADDRESS, True).NAME == "ApprovalForAll"
