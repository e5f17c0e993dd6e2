"""Error definitions for the Lingo.dev SDK."""

from __future__ import annotations

from typing import Optional


class LingoDotDevError(Exception):
    """Base exception for all SDK errors."""


class ArgumentError(LingoDotDevError):
    """Raised for invalid arguments."""


class ValidationError(ArgumentError):
    """Raised when input or configuration is invalid."""


class APIError(LingoDotDevError):
    """Raised when a request to the localization service fails."""

    def __init__(self, message: str, status_code: Optional[int] = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class ServerError(APIError):
    """Raised for server-side failures (5xx responses)."""


class AuthenticationError(APIError):
    """Raised when the service rejects the API key."""


class UnsupportedFileTypeError(LingoDotDevError):
    """Raised when a given file extension is not supported."""


class OverwriteRefusedError(LingoDotDevError):
    """Raised when attempting to overwrite an output without consent."""
