"""Python SDK for the Lingo.dev localization API."""

__version__ = "0.1.0"

from .engine import Engine
from .errors import (
    APIError,
    ArgumentError,
    AuthenticationError,
    LingoDotDevError,
    ServerError,
    ValidationError,
)

__all__ = [
    "APIError",
    "ArgumentError",
    "AuthenticationError",
    "Engine",
    "LingoDotDevError",
    "ServerError",
    "ValidationError",
]
