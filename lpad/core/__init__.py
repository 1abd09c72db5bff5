"""
Core layer - The dynamic Value, sessions and HTTP transport.

This layer provides:
- Location resolution and link traversal without I/O
- GET/POST/PATCH with signing and explicit redirect handling
- Paginated collection iteration
- The error taxonomy surfaced to callers
"""

from lpad.core.client import (
    ContentTypeError,
    HTTPError,
    LpadError,
    MissingLocationError,
    NoEntriesError,
    ProtocolError,
    TooManyRedirectsError,
    Transport,
)
from lpad.core.session import PRODUCTION, STAGING, Auth, OAuth, Session
from lpad.core.value import Params, Value, resolve

__all__ = [
    "PRODUCTION",
    "STAGING",
    "Auth",
    "ContentTypeError",
    "HTTPError",
    "LpadError",
    "MissingLocationError",
    "NoEntriesError",
    "OAuth",
    "Params",
    "ProtocolError",
    "Session",
    "TooManyRedirectsError",
    "Transport",
    "Value",
    "resolve",
]
