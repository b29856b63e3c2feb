"""Historical-tracking classification for DIDs.

Self-contained DID methods derive the whole document from the identifier,
so the document a signature was made against is the document resolved
today. Every other method (did:web, ...) keeps its document in mutable
external state; verifying an old signature may need the document as it
was at signing time (see OverrideDidResolver).
"""

import re
from typing import Tuple

from docloader.core.config import SELF_CONTAINED_DID_METHODS

# DID methods where all cryptographic material is self-contained
SELF_CONTAINED_DID_PATTERNS: Tuple[re.Pattern, ...] = tuple(
    re.compile(rf"^did:({re.escape(method)}):") for method in SELF_CONTAINED_DID_METHODS
)


def requires_historical_tracking(did: str) -> bool:
    """Check whether a DID's document may change over time.

    Structural check only; never resolves the DID.

    Args:
        did: A DID or DID URL.

    Returns:
        False for self-contained methods (did:key, did:jwk), True otherwise.
    """
    return not any(pattern.match(did) for pattern in SELF_CONTAINED_DID_PATTERNS)
