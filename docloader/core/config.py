"""
Document loader configuration constants.

Constants are organized into:
- NORMATIVE: Fixed behaviour of the resolution policy
- POLICY: Bounds the loader enforces; values may be overridden per deployment
- OPERATIONAL: Deployment-specific settings (env vars)

All values are read once at import time. Bounds are not per-request
configurable.
"""

import logging as _config_logging
import os

_config_log = _config_logging.getLogger(__name__)

# =============================================================================
# NORMATIVE CONSTANTS
# =============================================================================

# DID methods whose documents are derived entirely from the identifier.
# Documents for these methods can never change, so signatures made against
# them never need a historical snapshot.
SELF_CONTAINED_DID_METHODS: tuple[str, ...] = ("jwk", "key")

# Headers sent on every web fetch. Documents may change upstream and must
# not be served stale by an intermediary cache.
NO_CACHE_HEADERS: dict[str, str] = {
    "Cache-Control": "no-cache",
    "Pragma": "no-cache",
}

# Accept header for web fetches (JSON-LD first, plain JSON for compatibility)
ACCEPT_HEADER: str = "application/ld+json, application/json"

# =============================================================================
# POLICY CONSTANTS (fetch bounds)
# =============================================================================

# Maximum size for any fetched JSON document (bytes, ~8 KiB)
FETCH_MAX_BYTES: int = int(os.getenv("DOCLOADER_FETCH_MAX_BYTES", "8192"))

# Wall-clock timeout for fetching any document (milliseconds)
FETCH_TIMEOUT_MS: int = int(os.getenv("DOCLOADER_FETCH_TIMEOUT_MS", "5000"))

# Redirects followed before a fetch is abandoned
FETCH_MAX_REDIRECTS: int = int(os.getenv("DOCLOADER_FETCH_MAX_REDIRECTS", "3"))

if FETCH_MAX_BYTES <= 0 or FETCH_TIMEOUT_MS <= 0:
    _config_log.warning(
        "Non-positive fetch bounds configured "
        f"(max_bytes={FETCH_MAX_BYTES}, timeout_ms={FETCH_TIMEOUT_MS}); "
        "every web fetch will fail"
    )

# =============================================================================
# DID RESOLUTION CACHE
# =============================================================================

# Maximum cached DID documents before LRU eviction
DID_CACHE_MAX_ENTRIES: int = int(os.getenv("DOCLOADER_DID_CACHE_MAX_ENTRIES", "100"))

# Age after which a cached DID document is resolved again (seconds)
# Short on purpose: did:web documents can rotate keys at any time.
DID_CACHE_TTL_SECONDS: float = float(
    os.getenv("DOCLOADER_DID_CACHE_TTL_SECONDS", "5.0")
)

# =============================================================================
# OPERATIONAL SETTINGS (deployment-specific, via environment variables)
# =============================================================================

# Controls whether /admin returns configuration and metrics
ADMIN_ENDPOINT_ENABLED: bool = os.getenv(
    "DOCLOADER_ADMIN_ENDPOINT_ENABLED", "true"
).lower() == "true"
