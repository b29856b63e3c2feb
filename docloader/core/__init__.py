# Document loader core - configuration, exceptions, and logging

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
from docloader.core.logging import configure_logging, JsonFormatter

__all__ = [
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
    "configure_logging",
    "JsonFormatter",
]
