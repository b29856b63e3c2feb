"""Document loader exceptions mapped to error codes.

Every failure surfaces to the caller unchanged: the loader performs no
local recovery and never returns a partial document.

- Network-class failures (timeout, transport, HTTP status) are recoverable
- Shape failures (unsupported identifier, oversize or malformed document)
  are not
- Configuration failures are raised once, while building a loader, and
  prevent it from ever being constructed
"""

from docloader.api_models import ERROR_RECOVERABILITY, ErrorCode


class DocumentLoaderError(Exception):
    """Base exception for document loader operations.

    Carries an error code from ErrorCode.
    """

    def __init__(self, code: str, message: str):
        self.code = code
        self.message = message
        super().__init__(message)

    @property
    def recoverable(self) -> bool:
        return ERROR_RECOVERABILITY.get(self.code, False)


class UnsupportedIdentifier(DocumentLoaderError):
    """Identifier is neither a static context URL, a DID nor an http(s) URL."""

    def __init__(self, message: str = "Unsupported identifier"):
        super().__init__(ErrorCode.UNSUPPORTED_IDENTIFIER, message)


# =============================================================================
# DID resolution
# =============================================================================

class DidResolutionError(DocumentLoaderError):
    """Base exception for DID resolution failures."""


class UnsupportedDidMethod(DidResolutionError):
    """No driver is registered for the DID's method."""

    def __init__(self, message: str = "Unsupported DID method"):
        super().__init__(ErrorCode.UNSUPPORTED_DID_METHOD, message)


class ResolutionFailed(DidResolutionError):
    """A driver could not produce a DID document.

    Used when a did:web host is unreachable or returns a bad document.
    """

    def __init__(self, message: str = "DID resolution failed", code: str = None):
        super().__init__(code or ErrorCode.DID_RESOLUTION_FAILED, message)


class DidNotFound(ResolutionFailed):
    """DID URL fragment does not identify anything in the DID document."""

    def __init__(self, message: str = "DID not found"):
        super().__init__(message, code=ErrorCode.DID_NOT_FOUND)


class InvalidDid(ResolutionFailed):
    """DID cannot be resolved by construction; retrying never helps.

    Used when:
    - DID or DID URL is malformed
    - Key encoding is unknown, unregistered or invalid
    - did:web domain does not name a single host
    """

    def __init__(self, message: str = "Invalid DID"):
        super().__init__(message, code=ErrorCode.INVALID_DID)


# =============================================================================
# Web fetch
# =============================================================================

class FetchError(DocumentLoaderError):
    """Base exception for bounded web fetch failures."""


class FetchFailed(FetchError):
    """HTTP error status, too many redirects or transport failure."""

    def __init__(self, message: str = "Document fetch failed"):
        super().__init__(ErrorCode.FETCH_FAILED, message)


class FetchTimeout(FetchError):
    """Fetch did not complete within the configured wall-clock timeout."""

    def __init__(self, message: str = "Document fetch timed out"):
        super().__init__(ErrorCode.FETCH_TIMEOUT, message)


class ResponseTooLarge(FetchError):
    """Response body exceeds the configured byte ceiling.

    The body is never truncated; a truncated JSON document is corrupt.
    """

    def __init__(self, message: str = "Response too large"):
        super().__init__(ErrorCode.RESPONSE_TOO_LARGE, message)


class InvalidDocument(FetchError):
    """Response body is not a JSON document."""

    def __init__(self, message: str = "Invalid document"):
        super().__init__(ErrorCode.INVALID_DOCUMENT, message)


# =============================================================================
# Configuration (startup only)
# =============================================================================

class ConfigurationError(DocumentLoaderError):
    """Base exception for loader configuration errors."""


class DuplicateDriverRegistration(ConfigurationError):
    """Same DID method, or same (method, key encoding) pair, registered twice."""

    def __init__(self, message: str = "Duplicate driver registration"):
        super().__init__(ErrorCode.DUPLICATE_DRIVER_REGISTRATION, message)


class DuplicateStaticContext(ConfigurationError):
    """Same static context URL added twice."""

    def __init__(self, message: str = "Duplicate static context"):
        super().__init__(ErrorCode.DUPLICATE_STATIC_CONTEXT, message)
