"""Static JSON-LD context table.

Bundled context documents are loaded from JSON files in the contexts/
subdirectory and served without touching the network. A StaticContextTable
is immutable once built: entries are never replaced or evicted, and every
lookup hands back a private copy so callers cannot alter the table.

Context Sources:
- W3C DID Core / VC Data Model v1.1
- W3C CCG security suites (ed25519-2020, x25519-2020, data-integrity, multikey)
- W3C CCG status list 2021
- ISO 18013-5 vDL and AAMVA extension vocabularies
"""

import copy
import json
import logging
from pathlib import Path
from types import MappingProxyType
from typing import Any, Dict, Iterator, Mapping, Optional

log = logging.getLogger(__name__)

# Directory containing bundled context JSON files
CONTEXTS_DIR = Path(__file__).parent / "contexts"

# Context URL -> bundled file name
ED25519_2020_CONTEXT_URL = "https://w3id.org/security/suites/ed25519-2020/v1"
X25519_2020_CONTEXT_URL = "https://w3id.org/security/suites/x25519-2020/v1"
DATA_INTEGRITY_CONTEXT_URL = "https://w3id.org/security/data-integrity/v1"
MULTIKEY_CONTEXT_URL = "https://w3id.org/security/multikey/v1"
DID_CONTEXT_URL = "https://www.w3.org/ns/did/v1"
CREDENTIALS_CONTEXT_URL = "https://www.w3.org/2018/credentials/v1"
STATUS_LIST_2021_CONTEXT_URL = "https://w3id.org/vc/status-list/2021/v1"
VDL_CONTEXT_URL = "https://w3id.org/vdl/v1"
VDL_AAMVA_CONTEXT_URL = "https://w3id.org/vdl/aamva/v1"

BUNDLED_CONTEXT_FILES: Dict[str, str] = {
    ED25519_2020_CONTEXT_URL: "ed25519-2020-v1.json",
    X25519_2020_CONTEXT_URL: "x25519-2020-v1.json",
    DATA_INTEGRITY_CONTEXT_URL: "data-integrity-v1.json",
    MULTIKEY_CONTEXT_URL: "multikey-v1.json",
    DID_CONTEXT_URL: "did-v1.json",
    CREDENTIALS_CONTEXT_URL: "credentials-v1.json",
    STATUS_LIST_2021_CONTEXT_URL: "status-list-2021-v1.json",
    VDL_CONTEXT_URL: "vdl-v1.json",
    VDL_AAMVA_CONTEXT_URL: "vdl-aamva-v1.json",
}

# Parsed bundled documents (file contents never change at runtime)
_bundled_contexts: Dict[str, Dict[str, Any]] = {}
_contexts_loaded = False


def _load_bundled_contexts() -> None:
    """Load every bundled context file into memory, once.

    A missing or unreadable file is a packaging defect: it is raised rather
    than skipped, since a loader silently lacking a context would fall back
    to fetching it from the network.
    """
    global _contexts_loaded

    if _contexts_loaded:
        return

    for url, file_name in BUNDLED_CONTEXT_FILES.items():
        path = CONTEXTS_DIR / file_name
        with open(path, "r", encoding="utf-8") as f:
            _bundled_contexts[url] = json.load(f)
        log.debug(f"Loaded bundled context {url} from {file_name}")

    _contexts_loaded = True
    log.info(f"Loaded {len(_bundled_contexts)} bundled contexts from {CONTEXTS_DIR}")


def get_bundled_context(url: str) -> Optional[Dict[str, Any]]:
    """Get a copy of a bundled context document by URL.

    Returns:
        The context document if bundled, None otherwise.
    """
    _load_bundled_contexts()
    doc = _bundled_contexts.get(url)
    return copy.deepcopy(doc) if doc is not None else None


def bundled_contexts() -> Dict[str, Dict[str, Any]]:
    """Copies of all bundled context documents, keyed by URL."""
    _load_bundled_contexts()
    return copy.deepcopy(_bundled_contexts)


class StaticContextTable:
    """Read-only URL -> document mapping used to short-circuit network access.

    Built once by DocumentLoaderBuilder; presence and match are the same
    check, so a lookup for a key in the table cannot fail.
    """

    def __init__(self, entries: Mapping[str, Any]):
        self._entries = MappingProxyType(copy.deepcopy(dict(entries)))

    def __contains__(self, url: object) -> bool:
        return url in self._entries

    def __len__(self) -> int:
        return len(self._entries)

    def __iter__(self) -> Iterator[str]:
        return iter(self._entries)

    @property
    def urls(self) -> Mapping[str, Any]:
        """Key view used by identifier classification."""
        return self._entries

    def get(self, url: str) -> Any:
        """Return a copy of the stored document for url.

        Raises:
            KeyError: url is not in the table.
        """
        return copy.deepcopy(self._entries[url])
