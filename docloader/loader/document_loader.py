"""Document resolution policy.

DocumentLoader maps any URL-shaped reference found in a signed document to
a JSON document, choosing exactly one path per identifier:

1. Static context table (exact URL match) - never touches the network
2. DID resolver (did: prefix) - never touches the web fetcher directly
3. Bounded web fetcher (http:// or https://)
4. Anything else - UnsupportedIdentifier

Loaders are built explicitly (DocumentLoaderBuilder, create_document_loader)
and passed to whatever needs them; there is no process-wide instance.
Errors from the chosen path propagate unchanged.
"""

import logging
from dataclasses import dataclass
from typing import Any, Dict, Iterable, Mapping, Optional

from docloader.core.exceptions import (
    DocumentLoaderError,
    DuplicateStaticContext,
    UnsupportedIdentifier,
)
from docloader.did.resolver import (
    BaseDidResolver,
    create_did_resolver,
    make_override_resolver,
)
from docloader.loader.identifiers import ClassifiedIdentifier, IdentifierKind, classify
from docloader.loader.static_store import StaticContextTable, bundled_contexts
from docloader.loader.web_fetcher import BoundedWebFetcher

log = logging.getLogger(__name__)


@dataclass
class LoaderMetrics:
    """Metrics for document loader operations.

    Attributes:
        static_hits: Identifiers served from the static context table.
        did_resolutions: Identifiers routed to the DID resolver.
        web_fetches: Identifiers routed to the web fetcher.
        failures: Resolutions that raised.
    """

    static_hits: int = 0
    did_resolutions: int = 0
    web_fetches: int = 0
    failures: int = 0

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "static_hits": self.static_hits,
            "did_resolutions": self.did_resolutions,
            "web_fetches": self.web_fetches,
            "failures": self.failures,
        }

    def reset(self) -> None:
        """Reset all metrics to zero."""
        self.static_hits = 0
        self.did_resolutions = 0
        self.web_fetches = 0
        self.failures = 0


class DocumentLoader:
    """Resolves identifiers to documents for JSON-LD and signature processing.

    Safe for concurrent use: the static table is read-only and the
    resolution paths hold no per-request state.
    """

    def __init__(
        self,
        static_contexts: StaticContextTable,
        did_resolver: Optional[BaseDidResolver] = None,
        web_fetcher: Optional[BoundedWebFetcher] = None,
        metrics: Optional[LoaderMetrics] = None,
    ):
        """Initialize the loader.

        Args:
            static_contexts: Immutable static context table.
            did_resolver: Resolver for did: identifiers; DIDs are
                unsupported without one.
            web_fetcher: Fetcher for http(s) identifiers; URLs outside the
                static table are unsupported without one.
            metrics: Shared metrics (loaders derived with with_overrides
                report into their parent's metrics).
        """
        self._static = static_contexts
        self._did_resolver = did_resolver
        self._web_fetcher = web_fetcher
        self._metrics = metrics or LoaderMetrics()

    @property
    def static_contexts(self) -> StaticContextTable:
        return self._static

    @property
    def did_resolver(self) -> Optional[BaseDidResolver]:
        return self._did_resolver

    @property
    def web_fetcher(self) -> Optional[BoundedWebFetcher]:
        return self._web_fetcher

    @property
    def metrics(self) -> LoaderMetrics:
        return self._metrics

    def classify(self, identifier: Any) -> ClassifiedIdentifier:
        return classify(identifier, self._static.urls)

    async def resolve(self, identifier: str) -> Any:
        """Resolve an identifier to a document.

        Raises:
            UnsupportedIdentifier: Identifier matches no resolution path.
            DidResolutionError: From the DID resolver, unchanged.
            FetchError: From the web fetcher, unchanged.
        """
        classified = self.classify(identifier)
        try:
            return await self._dispatch(classified)
        except DocumentLoaderError as e:
            self._metrics.failures += 1
            log.info(
                f"Resolution failed: {e.code}",
                extra={"identifier": classified.value[:128]},
            )
            raise

    async def _dispatch(self, classified: ClassifiedIdentifier) -> Any:
        kind = classified.kind
        identifier = classified.value

        if kind is IdentifierKind.STATIC:
            self._metrics.static_hits += 1
            return self._static.get(identifier)

        if kind is IdentifierKind.DID:
            if self._did_resolver is None:
                raise UnsupportedIdentifier(
                    f"DID resolution is not configured: {identifier[:64]}"
                )
            self._metrics.did_resolutions += 1
            return await self._did_resolver.resolve(identifier)

        if kind is IdentifierKind.WEB:
            if self._web_fetcher is None:
                raise UnsupportedIdentifier(
                    f"Web fetching is not configured: {identifier[:64]}"
                )
            self._metrics.web_fetches += 1
            return await self._web_fetcher.fetch(identifier)

        raise UnsupportedIdentifier(f"Unsupported identifier: {identifier[:64]!r}")

    async def load(self, url: str) -> Dict[str, Any]:
        """Resolve url into a JSON-LD remote document."""
        document = await self.resolve(url)
        return {"contextUrl": None, "documentUrl": url, "document": document}

    async def __call__(self, url: str) -> Dict[str, Any]:
        return await self.load(url)

    def with_overrides(self, overrides: Mapping[str, Dict[str, Any]]) -> "DocumentLoader":
        """Loader for one verification operation with DID document overrides.

        Shares this loader's static table, fetcher and metrics. DIDs present
        in overrides resolve to the given documents; others resolve live.
        """
        if self._did_resolver is None:
            raise UnsupportedIdentifier("DID resolution is not configured")
        return DocumentLoader(
            self._static,
            did_resolver=make_override_resolver(overrides, self._did_resolver),
            web_fetcher=self._web_fetcher,
            metrics=self._metrics,
        )


class DocumentLoaderBuilder:
    """Collects static contexts and resolution paths, then builds a loader.

    Usage:
        loader = (
            DocumentLoaderBuilder()
            .add_bundled_contexts()
            .set_did_resolver(create_did_resolver())
            .set_web_fetcher(BoundedWebFetcher())
            .build()
        )
    """

    def __init__(self):
        self._static: Dict[str, Any] = {}
        self._did_resolver: Optional[BaseDidResolver] = None
        self._web_fetcher: Optional[BoundedWebFetcher] = None

    def add_static(self, url: str, document: Any) -> "DocumentLoaderBuilder":
        """Add a static (url, document) entry.

        Raises:
            DuplicateStaticContext: url was already added.
            ValueError: url is empty or document is not a JSON object/array.
        """
        if not isinstance(url, str) or not url:
            raise ValueError("Static context URL must be a non-empty string")
        if not isinstance(document, (dict, list)):
            raise ValueError(f"Static context for {url} must be a JSON object or array")
        if url in self._static:
            raise DuplicateStaticContext(f"Static context already added for {url}")
        self._static[url] = document
        return self

    def add_bundled_contexts(self, urls: Optional[Iterable[str]] = None) -> "DocumentLoaderBuilder":
        """Add the bundled contexts (all of them, or only those in urls).

        Raises:
            KeyError: A requested URL is not bundled.
        """
        available = bundled_contexts()
        for url in (list(urls) if urls is not None else list(available)):
            self.add_static(url, available[url])
        return self

    def set_did_resolver(self, resolver: BaseDidResolver) -> "DocumentLoaderBuilder":
        self._did_resolver = resolver
        return self

    def set_web_fetcher(self, fetcher: BoundedWebFetcher) -> "DocumentLoaderBuilder":
        self._web_fetcher = fetcher
        return self

    def build(self) -> DocumentLoader:
        loader = DocumentLoader(
            StaticContextTable(self._static),
            did_resolver=self._did_resolver,
            web_fetcher=self._web_fetcher,
        )
        log.info(
            f"Document loader built: {len(self._static)} static contexts, "
            f"did={'on' if self._did_resolver else 'off'}, "
            f"web={'on' if self._web_fetcher else 'off'}"
        )
        return loader


def create_document_loader(
    did_resolver: Optional[BaseDidResolver] = None,
    web_fetcher: Optional[BoundedWebFetcher] = None,
) -> DocumentLoader:
    """Default loader: bundled contexts, default DID resolver, bounded web fetch.

    Args:
        did_resolver: Optional DID resolver. Defaults to create_did_resolver(),
            whose did:web driver shares web_fetcher.
        web_fetcher: Optional fetcher. Defaults to configured bounds.
    """
    fetcher = web_fetcher or BoundedWebFetcher()
    return (
        DocumentLoaderBuilder()
        .add_bundled_contexts()
        .set_did_resolver(did_resolver or create_did_resolver(web_fetcher=fetcher))
        .set_web_fetcher(fetcher)
        .build()
    )
