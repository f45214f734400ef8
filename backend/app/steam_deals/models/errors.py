"""Error types raised by the upstream retrievers."""

from __future__ import annotations

from enum import Enum
from typing import Optional

from fastapi import status


class UpstreamError(RuntimeError):
    """Raised when an upstream source cannot complete a request."""

    def __init__(
        self, source: str, message: str, status_code: Optional[int] = None
    ) -> None:
        super().__init__(message)
        self.source = source
        self.message = message
        self.status_code = status_code


class DealsSourceError(UpstreamError):
    """CheapShark answered with an error, or could not be reached."""

    def __init__(self, message: str, status_code: Optional[int] = None) -> None:
        super().__init__("cheapshark", message, status_code)


class LibraryErrorKind(str, Enum):
    """Why a user's owned games could not be listed."""

    ACCESS_DENIED = "access_denied"
    UNAVAILABLE = "unavailable"


class LibraryError(UpstreamError):
    """The Steam library of the requested user could not be retrieved."""

    def __init__(
        self,
        kind: LibraryErrorKind,
        message: str,
        status_code: Optional[int] = None,
    ) -> None:
        super().__init__("steam", message, status_code)
        self.kind = kind


def status_for_error(exc: UpstreamError) -> int:
    """Map an upstream failure to the HTTP status returned to the client."""
    if isinstance(exc, LibraryError) and exc.kind is LibraryErrorKind.ACCESS_DENIED:
        return status.HTTP_403_FORBIDDEN
    return status.HTTP_502_BAD_GATEWAY


def error_priority(exc: UpstreamError) -> int:
    """Rank errors when several retrievals fail; lower is more relevant."""
    if isinstance(exc, LibraryError) and exc.kind is LibraryErrorKind.ACCESS_DENIED:
        return 0
    if isinstance(exc, DealsSourceError):
        return 1
    return 2
