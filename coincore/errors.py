"""Error taxonomy for the coin engine.

Every error names the check that failed and, where one applies, the coin
version and stamp it failed on. Extra context is redacted before it is
stored so secret material never reaches error text.
"""

from __future__ import annotations

from typing import Any, Optional

from .redact import redact_state


class CoinError(Exception):
    """Base error."""

    def __init__(
        self,
        message: str,
        *,
        check: Optional[str] = None,
        version: Optional[int] = None,
        stamp: Optional[str] = None,
        **context: Any,
    ) -> None:
        self.check = check
        self.version = version
        self.stamp = stamp
        self.context: dict[str, Any] = redact_state(context)
        super().__init__(message)

    def to_dict(self) -> dict[str, Any]:
        """Structured form for the orchestration layer."""
        return {
            "error": type(self).__name__,
            "message": str(self),
            "check": self.check,
            "version": self.version,
            "stamp": self.stamp,
            "context": self.context,
        }


class InvalidArgument(CoinError, ValueError):
    """Null/empty input or out-of-range value, raised before any crypto runs."""


class InvalidPassword(InvalidArgument):
    pass


class InvalidStamp(InvalidArgument):
    pass


class InvalidAmount(InvalidArgument):
    pass


class CryptoFailure(CoinError):
    """Curve arithmetic or libsodium call failed."""


class InvalidScalar(CryptoFailure, InvalidArgument):
    pass


class InvalidPoint(CryptoFailure, InvalidArgument):
    pass


class ChainMismatch(CoinError):
    """Two coins cannot be reconciled as one hash chain."""


class SwapAborted(CoinError):
    """Counterpart contribution failed verification; nothing was applied."""


class CoinStateError(CoinError):
    """Lifecycle transition not allowed from the coin's current state."""
