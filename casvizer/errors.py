"""Error taxonomy shared by the core services."""

from __future__ import annotations


class CasvizerError(RuntimeError):
    """Base error for failures surfaced to the UI layer."""


class InvalidArgument(CasvizerError, ValueError):
    """Raised when a caller passes a bad limit, offset or identifier."""


class OffsetTooLarge(InvalidArgument):
    """Raised when a paginated query asks for an offset past the guard."""


class UnsupportedBackend(CasvizerError):
    """Raised when a backend kind is blank or unknown."""


class InvalidProfile(CasvizerError):
    """Raised when a profile lacks the fields its backend requires."""


class ConnectionFailed(CasvizerError):
    """Raised when the driver cannot open or close a connection."""


class QueryFailed(CasvizerError):
    """Raised when the driver rejects a statement."""


class DecryptionFailure(CasvizerError):
    """Raised when a stored secret cannot be decrypted."""


class CorruptStore(CasvizerError):
    """Raised when the profile store exists but cannot be parsed."""


class StoreInitFailure(CasvizerError):
    """Raised when the profile store directory cannot be prepared."""


__all__ = [
    "CasvizerError",
    "ConnectionFailed",
    "CorruptStore",
    "DecryptionFailure",
    "InvalidArgument",
    "InvalidProfile",
    "OffsetTooLarge",
    "QueryFailed",
    "StoreInitFailure",
    "UnsupportedBackend",
]
