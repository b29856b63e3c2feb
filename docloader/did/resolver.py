"""DID resolution facade and override resolver.

CachedDidResolver resolves DIDs and DID URLs through the driver registered
for the DID's method and caches successful results. OverrideDidResolver sits
in front of it for a single verification operation, substituting caller
supplied documents, e.g. the document a DID had when an old presentation
was signed.

Resolution order (CachedDidResolver):
1. Parse the DID / DID URL (malformed -> InvalidDid)
2. Look up the method driver (unknown -> UnsupportedDidMethod)
3. Cache lookup by base DID
4. Driver resolution, result cached
5. Fragment dereference when the input was a DID URL
"""

import copy
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from types import MappingProxyType
from typing import Any, Dict, Mapping, Optional

from docloader.core.exceptions import DidNotFound, DidResolutionError
from docloader.did.cache import DidDocumentCache
from docloader.did.did_url import ParsedDid, parse_did_url
from docloader.did.drivers import DidWebDriver
from docloader.did.multikey import (
    ED25519_MULTIKEY_HEADER,
    P256_MULTIKEY_HEADER,
    ed25519_key_from_jwk,
    ed25519_key_from_multibase,
    p256_multikey_from_jwk,
    p256_multikey_from_multibase,
)
from docloader.did.registry import DidResolverBuilder, DriverRegistry
from docloader.loader.web_fetcher import BoundedWebFetcher

log = logging.getLogger(__name__)

# Document members searched when dereferencing a DID URL fragment
DEREFERENCEABLE_MEMBERS = (
    "verificationMethod",
    "authentication",
    "assertionMethod",
    "capabilityDelegation",
    "capabilityInvocation",
    "keyAgreement",
    "service",
)


def dereference_fragment(document: Mapping[str, Any], parsed: ParsedDid) -> Dict[str, Any]:
    """Find the resource a DID URL fragment identifies within a DID document.

    Matches absolute ids (did:...#frag) and relative ids (#frag). The result
    carries the document's @context and its absolute id.

    Raises:
        DidNotFound: Nothing in the document has that id.
    """
    targets = {parsed.url, f"#{parsed.fragment}"}
    for member in DEREFERENCEABLE_MEMBERS:
        for entry in document.get(member) or []:
            if isinstance(entry, dict) and entry.get("id") in targets:
                resource = copy.deepcopy(entry)
                resource["id"] = parsed.url
                if "@context" in document:
                    resource = {"@context": copy.deepcopy(document["@context"]), **resource}
                return resource

    raise DidNotFound(f"{parsed.url} not found in DID document for {parsed.did}")


class BaseDidResolver(ABC):
    """Anything that turns a DID or DID URL into a document."""

    @abstractmethod
    async def resolve(self, did: str) -> Dict[str, Any]:
        """Resolve a DID or DID URL.

        Raises:
            DidResolutionError: Resolution failed.
        """


@dataclass
class DidResolverMetrics:
    """Metrics for DID resolution operations.

    Attributes:
        attempts: Number of resolution attempts.
        successes: Number of successful resolutions.
        failures: Number of failed resolutions.
        cache_hits: Number of resolutions served from cache.
        driver_resolutions: Number of resolutions performed by a driver.
    """

    attempts: int = 0
    successes: int = 0
    failures: int = 0
    cache_hits: int = 0
    driver_resolutions: int = 0

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "attempts": self.attempts,
            "successes": self.successes,
            "failures": self.failures,
            "cache_hits": self.cache_hits,
            "driver_resolutions": self.driver_resolutions,
            "success_rate": (
                round(self.successes / self.attempts, 4)
                if self.attempts > 0
                else 0.0
            ),
        }

    def reset(self) -> None:
        """Reset all metrics to zero."""
        self.attempts = 0
        self.successes = 0
        self.failures = 0
        self.cache_hits = 0
        self.driver_resolutions = 0


class CachedDidResolver(BaseDidResolver):
    """DID resolution facade over a frozen DriverRegistry.

    Concurrent requests for the same DID are not de-duplicated; both may
    reach the driver, and the later result replaces the earlier in cache.
    """

    def __init__(
        self,
        registry: DriverRegistry,
        cache: Optional[DidDocumentCache] = None,
    ):
        """Initialize the resolver.

        Args:
            registry: Frozen method -> driver registry.
            cache: Optional cache. A fresh cache with configured bounds is
                created if not provided.
        """
        self._registry = registry
        self._cache = cache or DidDocumentCache()
        self._metrics = DidResolverMetrics()

    @property
    def registry(self) -> DriverRegistry:
        return self._registry

    @property
    def cache(self) -> DidDocumentCache:
        return self._cache

    @property
    def metrics(self) -> DidResolverMetrics:
        return self._metrics

    async def resolve(self, did: str) -> Dict[str, Any]:
        """Resolve a DID to its document, or a DID URL to the resource it names.

        Raises:
            InvalidDid: Malformed DID or key encoding.
            ResolutionFailed: Driver failure.
            UnsupportedDidMethod: No driver for the DID's method.
            DidNotFound: DID URL fragment not present in the document.
        """
        self._metrics.attempts += 1
        try:
            parsed = parse_did_url(did)
            document = await self._resolve_document(parsed)
            if parsed.fragment is not None:
                document = dereference_fragment(document, parsed)
        except DidResolutionError as e:
            self._metrics.failures += 1
            log.warning(f"DID resolution failed for {did[:48]}: {e.message}")
            raise

        self._metrics.successes += 1
        return document

    async def _resolve_document(self, parsed: ParsedDid) -> Dict[str, Any]:
        driver = self._registry.get(parsed.method)

        cached = await self._cache.get(parsed.did)
        if cached is not None:
            self._metrics.cache_hits += 1
            log.debug(f"Cache hit for {parsed.did[:48]}")
            return cached

        document = await driver.resolve(parsed)
        self._metrics.driver_resolutions += 1
        await self._cache.put(parsed.did, document, parsed.method)
        return document


class OverrideDidResolver(BaseDidResolver):
    """Resolver giving caller-supplied DID documents precedence.

    Lives for one verification operation. Overridden DIDs never reach the
    facade, the network or the cache; every other DID is resolved live.
    """

    def __init__(self, overrides: Mapping[str, Dict[str, Any]], resolver: BaseDidResolver):
        self._overrides = MappingProxyType(copy.deepcopy(dict(overrides)))
        self._resolver = resolver

    @property
    def overrides(self) -> Mapping[str, Dict[str, Any]]:
        return self._overrides

    async def resolve(self, did: str) -> Dict[str, Any]:
        if did in self._overrides:
            log.info(f"Using override document for {did[:48]}")
            return copy.deepcopy(self._overrides[did])

        base_did, sep, _ = did.partition("#")
        if sep and base_did in self._overrides:
            log.info(f"Dereferencing {did[:48]} in override document")
            return dereference_fragment(self._overrides[base_did], parse_did_url(did))

        return await self._resolver.resolve(did)


def make_override_resolver(
    overrides: Mapping[str, Dict[str, Any]],
    resolver: BaseDidResolver,
) -> OverrideDidResolver:
    """Resolver using overrides in tandem with a live resolver.

    Needed for auditing presentations signed against old DID documents.
    """
    return OverrideDidResolver(overrides, resolver)


def create_did_resolver(
    cache: Optional[DidDocumentCache] = None,
    web_fetcher: Optional[BoundedWebFetcher] = None,
) -> CachedDidResolver:
    """Default resolver: did:key, did:jwk (Ed25519 and P-256) and did:web.

    Args:
        cache: Optional cache for the facade.
        web_fetcher: Optional fetcher used by the did:web driver.
    """
    return (
        DidResolverBuilder()
        .use_key_handler("key", ED25519_MULTIKEY_HEADER, ed25519_key_from_multibase, name="Ed25519")
        .use_key_handler("key", P256_MULTIKEY_HEADER, p256_multikey_from_multibase, name="P-256")
        .use_key_handler("jwk", "EdDSA", ed25519_key_from_jwk, name="Ed25519")
        .use_key_handler("jwk", "P-256", p256_multikey_from_jwk, name="P-256")
        .use_driver(DidWebDriver(web_fetcher))
        .build(cache=cache)
    )
