"""Exception types shared across FinIQ components."""

from __future__ import annotations


class FinIQError(RuntimeError):
    """Base class for all FinIQ errors."""


class BackendUnavailableError(FinIQError):
    """Raised when no backend session is established.

    Reads and writes fail fast with this error instead of hanging or
    returning empty data.
    """

    def __init__(self, message: str = "Backend actor not available") -> None:
        super().__init__(message)


class BackendCallError(FinIQError):
    """Raised when the backend rejects a call or cannot be reached."""

    def __init__(self, method: str, message: str, code: int | None = None) -> None:
        super().__init__(f"{method}: {message}")
        self.method = method
        self.code = code


class UnknownSymbolError(FinIQError, LookupError):
    """Raised when a symbol is not part of the demo dataset."""

    def __init__(self, symbol: str) -> None:
        super().__init__(f"Unknown symbol: {symbol}")
        self.symbol = symbol
