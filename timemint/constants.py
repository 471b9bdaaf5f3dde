"""
TimeMint Ledger Constants

All protocol constants defined here for single source of truth.
"""

from typing import Final, FrozenSet

# ==============================================================================
# PRIMITIVE SIZES
# ==============================================================================

ADDRESS_SIZE: Final[int] = 20                   # Account address width
SITE_KEY_SIZE: Final[int] = 32                  # Canonical site key width
INTERFACE_ID_SIZE: Final[int] = 4               # ERC-165 interface id width
KECCAK_SIZE: Final[int] = 32                    # Keccak-256 digest width

UINT256_MAX: Final[int] = 2**256 - 1

# ==============================================================================
# TOKEN METADATA
# ==============================================================================

TOKEN_NAME: Final[str] = "TimeMint Slot"
TOKEN_SYMBOL: Final[str] = "TMSLOT"
TOKEN_URI_BASE: Final[str] = "https://timemint.xyz/api/slot/"
TOKEN_URI_SUFFIX: Final[str] = ".json"

# ==============================================================================
# ERC-165 / ERC-721 INTERFACES
# ==============================================================================

INTERFACE_ERC165: Final[int] = 0x01FFC9A7
INTERFACE_ERC721: Final[int] = 0x80AC58CD
INTERFACE_ERC721_METADATA: Final[int] = 0x5B5E139F
INTERFACE_INVALID: Final[int] = 0xFFFFFFFF      # Reserved "not supported" id

SUPPORTED_INTERFACES: Final[FrozenSet[int]] = frozenset({
    INTERFACE_ERC165,
    INTERFACE_ERC721,
    INTERFACE_ERC721_METADATA,
})

# bytes4(keccak256("onERC721Received(address,address,uint256,bytes)"))
ERC721_RECEIVER_MAGIC: Final[bytes] = bytes.fromhex("150b7a02")
RECEIVER_CALL_FAILED: Final[bytes] = bytes(INTERFACE_ID_SIZE)

# Canonical signatures used to derive selectors and event topics
ERC165_SIGNATURES: Final[tuple] = (
    "supportsInterface(bytes4)",
)

ERC721_SIGNATURES: Final[tuple] = (
    "balanceOf(address)",
    "ownerOf(uint256)",
    "safeTransferFrom(address,address,uint256,bytes)",
    "safeTransferFrom(address,address,uint256)",
    "transferFrom(address,address,uint256)",
    "approve(address,uint256)",
    "setApprovalForAll(address,bool)",
    "getApproved(uint256)",
    "isApprovedForAll(address,address)",
)

ERC721_METADATA_SIGNATURES: Final[tuple] = (
    "name()",
    "symbol()",
    "tokenURI(uint256)",
)

ERC721_RECEIVER_SIGNATURE: Final[str] = "onERC721Received(address,address,uint256,bytes)"

EVENT_TRANSFER_SIGNATURE: Final[str] = "Transfer(address,address,uint256)"
EVENT_APPROVAL_SIGNATURE: Final[str] = "Approval(address,address,uint256)"
EVENT_APPROVAL_FOR_ALL_SIGNATURE: Final[str] = "ApprovalForAll(address,address,bool)"

# ==============================================================================
# BOOKING
# ==============================================================================

CREATOR_SHARE_PERCENT: Final[int] = 95          # Creator's cut of the booking fee
PERCENT_DENOMINATOR: Final[int] = 100
DEFAULT_BOOKING_FEE: Final[int] = 0

# ==============================================================================
# HOST / NODE
# ==============================================================================

DEFAULT_CONTRACT_ADDRESS: Final[str] = "0x00000000000000000000000000000000000071e7"
DEFAULT_API_PORT: Final[int] = 8547
MAX_EVENT_LOG: Final[int] = 100_000             # Retained events before trimming
SNAPSHOT_SCHEMA_VERSION: Final[int] = 1
