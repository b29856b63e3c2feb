"""Document loader for verifiable credential and presentation verification.

Resolves JSON-LD context URLs, DIDs / DID URLs and generic HTTP(S) URLs to
JSON documents under one policy: bundled contexts first, DIDs through the
DID resolver, everything else through a bounded web fetch.
"""

__version__ = "0.1.0"

from docloader.core.exceptions import (
    DocumentLoaderError,
    UnsupportedIdentifier,
    DidResolutionError,
    UnsupportedDidMethod,
    ResolutionFailed,
    DidNotFound,
    InvalidDid,
    FetchError,
    FetchFailed,
    FetchTimeout,
    ResponseTooLarge,
    InvalidDocument,
    ConfigurationError,
    DuplicateDriverRegistration,
    DuplicateStaticContext,
)
from docloader.loader.identifiers import IdentifierKind, ClassifiedIdentifier, classify
from docloader.loader.static_store import StaticContextTable
from docloader.loader.web_fetcher import BoundedWebFetcher, FetchBounds
from docloader.loader.history import requires_historical_tracking
from docloader.did.cache import DidDocumentCache, DidCacheConfig
from docloader.did.registry import DidResolverBuilder, DriverRegistry
from docloader.did.resolver import (
    BaseDidResolver,
    CachedDidResolver,
    OverrideDidResolver,
    make_override_resolver,
    create_did_resolver,
)
from docloader.loader.document_loader import (
    DocumentLoader,
    DocumentLoaderBuilder,
    LoaderMetrics,
    create_document_loader,
)

__all__ = [
    "__version__",
    # Errors
    "DocumentLoaderError",
    "UnsupportedIdentifier",
    "DidResolutionError",
    "UnsupportedDidMethod",
    "ResolutionFailed",
    "DidNotFound",
    "InvalidDid",
    "FetchError",
    "FetchFailed",
    "FetchTimeout",
    "ResponseTooLarge",
    "InvalidDocument",
    "ConfigurationError",
    "DuplicateDriverRegistration",
    "DuplicateStaticContext",
    # Loader
    "IdentifierKind",
    "ClassifiedIdentifier",
    "classify",
    "StaticContextTable",
    "BoundedWebFetcher",
    "FetchBounds",
    "requires_historical_tracking",
    "DocumentLoader",
    "DocumentLoaderBuilder",
    "LoaderMetrics",
    "create_document_loader",
    # DID
    "DidDocumentCache",
    "DidCacheConfig",
    "DidResolverBuilder",
    "DriverRegistry",
    "BaseDidResolver",
    "CachedDidResolver",
    "OverrideDidResolver",
    "make_override_resolver",
    "create_did_resolver",
]
