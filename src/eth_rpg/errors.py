"""Error taxonomy shared by the battle, cache and ranking layers.

Every user-visible failure carries a stable :class:`ErrorCode` plus a
human-readable message.  Transient store failures never surface here: the
cache, rate-limit and ranking layers swallow them and degrade instead.
"""

from __future__ import annotations

from enum import Enum
from typing import Any


class ErrorCode(str, Enum):
    """Stable error codes returned to API clients."""

    INVALID_ADDRESS = "INVALID_ADDRESS"
    INVALID_NONCE = "INVALID_NONCE"
    SAME_ADDRESS = "SAME_ADDRESS"
    INVALID_QUERY = "INVALID_QUERY"
    NO_TRANSACTIONS = "NO_TRANSACTIONS"
    RATE_LIMITED = "RATE_LIMITED"
    NO_SEASON = "NO_SEASON"
    UNAUTHORIZED = "UNAUTHORIZED"
    TIMEOUT = "TIMEOUT"
    API_ERROR = "API_ERROR"


ERROR_MESSAGES: dict[ErrorCode, str] = {
    ErrorCode.INVALID_ADDRESS: "Please enter a valid Ethereum address.",
    ErrorCode.INVALID_NONCE: "Invalid battle nonce format.",
    ErrorCode.SAME_ADDRESS: "Cannot battle yourself. Please enter two different addresses.",
    ErrorCode.INVALID_QUERY: "Invalid leaderboard query.",
    ErrorCode.NO_TRANSACTIONS: (
        "This wallet has no transactions. "
        "Please enter an address with activity history."
    ),
    ErrorCode.RATE_LIMITED: "Too many requests. Please try again later.",
    ErrorCode.NO_SEASON: "No active season found. Rankings have not been initialized.",
    ErrorCode.UNAUTHORIZED: "Invalid cron secret.",
    ErrorCode.TIMEOUT: "Analysis is taking too long. Please try again.",
    ErrorCode.API_ERROR: "A temporary server error occurred. Please try again later.",
}


class EthRpgError(Exception):
    """Base class for errors that map onto an API error response."""

    code: ErrorCode = ErrorCode.API_ERROR

    def __init__(self, message: str | None = None, *, code: ErrorCode | None = None) -> None:
        if code is not None:
            self.code = code
        self.message = message or ERROR_MESSAGES[self.code]
        super().__init__(self.message)

    def to_dict(self) -> dict[str, Any]:
        return {"error": {"code": self.code.value, "message": self.message}}


class InvalidInputError(EthRpgError):
    """Request rejected before any engine work.  Never retried."""

    code = ErrorCode.INVALID_ADDRESS


class EmptyWalletError(EthRpgError):
    """The wallet exists but has no on-chain activity to build a character from."""

    code = ErrorCode.NO_TRANSACTIONS

    def __init__(self, address: str) -> None:
        self.address = address
        super().__init__()


class RateLimitedError(EthRpgError):
    code = ErrorCode.RATE_LIMITED


class NoSeasonError(EthRpgError):
    code = ErrorCode.NO_SEASON


class UnauthorizedError(EthRpgError):
    code = ErrorCode.UNAUTHORIZED


class OperationTimeoutError(EthRpgError, TimeoutError):
    """An awaited operation exceeded its deadline.

    Kept distinct from other failures so retry logic can skip it: a slow
    dependency is assumed to stay slow.
    """

    code = ErrorCode.TIMEOUT

    def __init__(self, seconds: float) -> None:
        self.seconds = seconds
        super().__init__(f"Operation timed out after {seconds:g}s")
