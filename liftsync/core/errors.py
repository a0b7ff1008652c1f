"""
Error kinds surfaced by the network client and the sync layer.

Every failure is returned as a value (see ``liftsync.core.result``); these
classes are exceptions so callers may still ``raise`` them via ``unwrap()``.
"""

from __future__ import annotations

from typing import Optional


class NetworkError(Exception):
    """Base class for every failure reported by the client core."""

    requires_reauthentication = False
    default_message = "Something went wrong. Please try again."

    def __init__(self, message: Optional[str] = None) -> None:
        self.message = message or self.default_message
        super().__init__(self.message)


class Unauthorized(NetworkError):
    """No access credential is on file; no request was sent."""

    requires_reauthentication = True
    default_message = "Authentication required. Please log in again."


class RequestFailed(NetworkError):
    """Transport failure or a server error without a structured envelope."""

    def __init__(
        self,
        underlying: Optional[BaseException] = None,
        *,
        status_code: Optional[int] = None,
    ) -> None:
        self.underlying = underlying
        self.status_code = status_code
        detail = str(underlying) if underlying is not None else f"HTTP {status_code}"
        super().__init__(f"Network request failed: {detail}")


class ApiError(NetworkError):
    """Structured business error reported by the server."""

    def __init__(self, code: str, message: str, field: Optional[str] = None) -> None:
        self.code = code
        self.field = field
        super().__init__(message)

    def __repr__(self) -> str:
        return f"ApiError(code={self.code!r}, message={self.message!r})"


class TokenRefreshFailed(NetworkError):
    """Refreshing the access credential did not succeed."""

    default_message = "Session expired. Please log in again."


class RefreshTokenExpired(TokenRefreshFailed):
    """The server rejected the refresh credential itself."""

    requires_reauthentication = True
    default_message = "Refresh token expired. Please log in again."


class NoRefreshToken(TokenRefreshFailed):
    """A refresh was needed but no refresh credential is on file."""

    requires_reauthentication = True
    default_message = "No refresh token available. Please log in again."


class CacheError(NetworkError):
    """Reading from or writing to the local cache failed."""

    def __init__(self, underlying: BaseException) -> None:
        self.underlying = underlying
        super().__init__(str(underlying) or type(underlying).__name__)


__all__ = [
    "ApiError",
    "CacheError",
    "NetworkError",
    "NoRefreshToken",
    "RefreshTokenExpired",
    "RequestFailed",
    "TokenRefreshFailed",
    "Unauthorized",
]
