"""Structural classification of requested identifiers.

Every identifier handed to the document loader is classified exactly once,
by shape alone, into one of four kinds. Callers match on the kind instead of
repeating prefix checks.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Any, Collection

DID_PREFIX = "did:"
WEB_SCHEMES = ("http", "https")


class IdentifierKind(str, Enum):
    STATIC = "static"
    DID = "did"
    WEB = "web"
    UNKNOWN = "unknown"


@dataclass(frozen=True)
class ClassifiedIdentifier:
    """An identifier together with the resolution path it routes to."""

    value: str
    kind: IdentifierKind


def is_web_url(identifier: str) -> bool:
    """Check for an http:// or https:// URL (scheme is case-insensitive)."""
    scheme, sep, rest = identifier.partition("://")
    return bool(sep) and bool(rest) and scheme.lower() in WEB_SCHEMES


def classify(identifier: Any, static_urls: Collection[str] = ()) -> ClassifiedIdentifier:
    """Classify an identifier.

    Order matters: an exact static-table match wins over the generic
    http(s) rule, so bundled contexts never reach the network.

    Args:
        identifier: The requested identifier.
        static_urls: Keys of the static context table.

    Returns:
        ClassifiedIdentifier. Empty or non-string input is UNKNOWN.
    """
    if not isinstance(identifier, str) or not identifier:
        return ClassifiedIdentifier(value=str(identifier), kind=IdentifierKind.UNKNOWN)

    if identifier in static_urls:
        kind = IdentifierKind.STATIC
    elif identifier.startswith(DID_PREFIX):
        kind = IdentifierKind.DID
    elif is_web_url(identifier):
        kind = IdentifierKind.WEB
    else:
        kind = IdentifierKind.UNKNOWN

    return ClassifiedIdentifier(value=identifier, kind=kind)
