"""DID and DID URL parsing."""

import re
from dataclasses import dataclass
from typing import Optional

from docloader.core.exceptions import InvalidDid

# did:<method>:<method-specific-id>, method-specific-id may contain ':' and
# percent-encoded octets (did:web ports and paths).
DID_PATTERN = re.compile(
    r"^did:(?P<method>[a-z0-9]+):(?P<msid>(?:[A-Za-z0-9._-]|%[0-9A-Fa-f]{2}|:)*"
    r"(?:[A-Za-z0-9._-]|%[0-9A-Fa-f]{2}))$"
)


@dataclass(frozen=True)
class ParsedDid:
    """A DID, optionally with the fragment of the DID URL it came from.

    Attributes:
        did: Base DID, without fragment.
        method: DID method name (e.g. "key", "web").
        method_specific_id: Everything after did:<method>:.
        fragment: DID URL fragment without '#', or None.
    """

    did: str
    method: str
    method_specific_id: str
    fragment: Optional[str] = None

    @property
    def url(self) -> str:
        return f"{self.did}#{self.fragment}" if self.fragment is not None else self.did


def parse_did_url(value: str) -> ParsedDid:
    """Parse a DID or a DID URL with a fragment.

    Raises:
        InvalidDid: Not a syntactically valid DID.
    """
    did, sep, fragment = value.partition("#")
    match = DID_PATTERN.match(did)
    if not match:
        raise InvalidDid(f"Malformed DID: {value}")
    if sep and not fragment:
        raise InvalidDid(f"Empty DID URL fragment: {value}")

    return ParsedDid(
        did=did,
        method=match.group("method"),
        method_specific_id=match.group("msid"),
        fragment=fragment if sep else None,
    )
