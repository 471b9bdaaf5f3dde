"""
TimeMint Ledger Error Handling

All error codes and exception classes.
"""

from enum import IntEnum
from typing import Optional, Any


class ErrorCode(IntEnum):
    """Ledger error codes."""

    # 1xxx - General errors
    UNKNOWN_ERROR = 1000
    INVALID_PARAMETER = 1001
    UNKNOWN_METHOD = 1002

    # 2xxx - Ownership registry errors
    INVALID_TOKEN = 2001
    NOT_OWNER = 2002
    NOT_APPROVED = 2003
    TRANSFER_TO_ZERO = 2004
    RECEIVER_REFUSED = 2005

    # 3xxx - Booking errors
    ALREADY_INITIALIZED = 3001
    INVALID_RANGE = 3002
    INSUFFICIENT_PAYMENT = 3003
    NOT_ADMIN = 3004
    NO_BALANCE = 3005
    PAYOUT_FAILED = 3006
    SITE_ALREADY_REGISTERED = 3007
    NOT_SITE_CREATOR = 3008
    UNKNOWN_SITE = 3009

    # 4xxx - Host errors
    INSUFFICIENT_FUNDS = 4001
    CALL_DEPTH_EXCEEDED = 4002
    NOT_PAYABLE = 4003


class TimeMintError(Exception):
    """Base exception for all ledger errors."""

    def __init__(
        self,
        code: ErrorCode,
        message: str,
        details: Optional[Any] = None
    ):
        self.code = code
        self.message = message
        self.details = details
        super().__init__(f"[{code.value}] {message}")

    def to_dict(self) -> dict:
        """Convert to JSON-serializable dict for API responses."""
        result = {
            "code": self.code.value,
            "name": self.code.name,
            "message": self.message,
        }
        if self.details is not None:
            result["details"] = self.details
        return result


def _addr(address) -> str:
    return address.hex() if hasattr(address, "hex") else str(address)


# ==============================================================================
# General Errors (1xxx)
# ==============================================================================

class InvalidParameterError(TimeMintError):
    def __init__(self, param: str, message: str = ""):
        msg = f"Invalid parameter: {param}"
        if message:
            msg += f" - {message}"
        super().__init__(ErrorCode.INVALID_PARAMETER, msg, {"parameter": param})


class UnknownMethodError(TimeMintError):
    def __init__(self, method: str):
        super().__init__(
            ErrorCode.UNKNOWN_METHOD,
            f"Unknown contract method: {method}",
            {"method": method}
        )


# ==============================================================================
# Ownership Registry Errors (2xxx)
# ==============================================================================

class InvalidTokenError(TimeMintError):
    def __init__(self, token_id: int):
        self.token_id = token_id
        super().__init__(
            ErrorCode.INVALID_TOKEN,
            f"Invalid token id: {token_id}",
            {"token_id": token_id}
        )


class NotOwnerError(TimeMintError):
    def __init__(self, claimed, token_id: int, actual):
        self.claimed = claimed
        self.token_id = token_id
        self.actual = actual
        super().__init__(
            ErrorCode.NOT_OWNER,
            f"{_addr(claimed)} does not own token {token_id} (owner is {_addr(actual)})",
            {"from": _addr(claimed), "token_id": token_id, "real_owner": _addr(actual)}
        )


class NotApprovedError(TimeMintError):
    def __init__(self, owner, spender, token_id: int):
        self.owner = owner
        self.spender = spender
        self.token_id = token_id
        super().__init__(
            ErrorCode.NOT_APPROVED,
            f"{_addr(spender)} is not approved for token {token_id} of {_addr(owner)}",
            {"owner": _addr(owner), "spender": _addr(spender), "token_id": token_id}
        )


class TransferToZeroError(TimeMintError):
    def __init__(self, token_id: int):
        self.token_id = token_id
        super().__init__(
            ErrorCode.TRANSFER_TO_ZERO,
            f"Transfer of token {token_id} to the zero address",
            {"token_id": token_id}
        )


class ReceiverRefusedError(TimeMintError):
    def __init__(self, receiver, token_id: int, returned: bytes):
        self.receiver = receiver
        self.token_id = token_id
        self.returned = returned
        super().__init__(
            ErrorCode.RECEIVER_REFUSED,
            f"Receiver {_addr(receiver)} refused token {token_id} "
            f"(returned 0x{returned.hex()})",
            {"receiver": _addr(receiver), "token_id": token_id,
             "returned": "0x" + returned.hex()}
        )


# ==============================================================================
# Booking Errors (3xxx)
# ==============================================================================

class AlreadyInitializedError(TimeMintError):
    def __init__(self, admin):
        self.admin = admin
        super().__init__(
            ErrorCode.ALREADY_INITIALIZED,
            f"Already initialized with admin {_addr(admin)}",
            {"admin": _addr(admin)}
        )


class InvalidRangeError(TimeMintError):
    def __init__(self, start: int, end: int):
        self.start = start
        self.end = end
        super().__init__(
            ErrorCode.INVALID_RANGE,
            f"Invalid slot time range: [{start}, {end})",
            {"start": start, "end": end}
        )


class InsufficientPaymentError(TimeMintError):
    def __init__(self, sent: int, required: int):
        self.sent = sent
        self.required = required
        super().__init__(
            ErrorCode.INSUFFICIENT_PAYMENT,
            f"Insufficient booking fee: {sent} < {required}",
            {"sent": sent, "required": required}
        )


class NotAdminError(TimeMintError):
    def __init__(self, caller):
        self.caller = caller
        super().__init__(
            ErrorCode.NOT_ADMIN,
            f"{_addr(caller)} is not the admin",
            {"caller": _addr(caller)}
        )


class NoBalanceError(TimeMintError):
    def __init__(self, account):
        self.account = account
        super().__init__(
            ErrorCode.NO_BALANCE,
            f"No balance to withdraw for {_addr(account)}",
            {"account": _addr(account)}
        )


class PayoutFailedError(TimeMintError):
    def __init__(self, account, amount: int, reason: str = ""):
        self.account = account
        self.amount = amount
        msg = f"Payout of {amount} to {_addr(account)} failed"
        if reason:
            msg += f": {reason}"
        super().__init__(
            ErrorCode.PAYOUT_FAILED,
            msg,
            {"account": _addr(account), "amount": amount}
        )


class SiteAlreadyRegisteredError(TimeMintError):
    def __init__(self, site_key, creator):
        self.site_key = site_key
        self.creator = creator
        super().__init__(
            ErrorCode.SITE_ALREADY_REGISTERED,
            f"Creator already set for site {site_key.label()!r}",
            {"site_key": site_key.hex(), "creator": _addr(creator)}
        )


class NotSiteCreatorError(TimeMintError):
    def __init__(self, caller, creator):
        self.caller = caller
        self.creator = creator
        super().__init__(
            ErrorCode.NOT_SITE_CREATOR,
            "Only the creator can register their own site",
            {"caller": _addr(caller), "creator": _addr(creator)}
        )


class UnknownSiteError(TimeMintError):
    def __init__(self, site_key):
        self.site_key = site_key
        super().__init__(
            ErrorCode.UNKNOWN_SITE,
            f"No creator registered for site {site_key.label()!r}",
            {"site_key": site_key.hex()}
        )


# ==============================================================================
# Host Errors (4xxx)
# ==============================================================================

class InsufficientFundsError(TimeMintError):
    def __init__(self, account, balance: int, required: int):
        self.account = account
        super().__init__(
            ErrorCode.INSUFFICIENT_FUNDS,
            f"Insufficient funds for {_addr(account)}: {balance} < {required}",
            {"account": _addr(account), "balance": balance, "required": required}
        )


class CallDepthExceededError(TimeMintError):
    def __init__(self, depth: int, limit: int):
        super().__init__(
            ErrorCode.CALL_DEPTH_EXCEEDED,
            f"Call depth {depth} exceeds limit {limit}",
            {"depth": depth, "limit": limit}
        )


class NotPayableError(TimeMintError):
    def __init__(self, method: str, value: int):
        super().__init__(
            ErrorCode.NOT_PAYABLE,
            f"Method {method} does not accept value (sent {value})",
            {"method": method, "value": value}
        )
