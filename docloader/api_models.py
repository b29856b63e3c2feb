"""
Document loader API models.
"""

from typing import Any, Dict, Optional, Union

from pydantic import BaseModel, Field


# =============================================================================
# Request Models
# =============================================================================

class ResolveRequest(BaseModel):
    """Request body for POST /resolve.

    overrides maps a DID to the document it had when a signature was made;
    they apply to this request only.
    """
    identifier: str
    overrides: Dict[str, Dict[str, Any]] = Field(default_factory=dict)


class LogLevelRequest(BaseModel):
    level: str


# =============================================================================
# Error Models
# =============================================================================

class ErrorDetail(BaseModel):
    """Error detail returned for every failed resolution"""
    code: str
    message: str
    recoverable: bool


class ErrorCode:
    """Error code registry"""
    # Identifier layer
    UNSUPPORTED_IDENTIFIER = "UNSUPPORTED_IDENTIFIER"

    # DID layer
    UNSUPPORTED_DID_METHOD = "UNSUPPORTED_DID_METHOD"
    DID_RESOLUTION_FAILED = "DID_RESOLUTION_FAILED"
    DID_NOT_FOUND = "DID_NOT_FOUND"
    INVALID_DID = "INVALID_DID"

    # Web layer
    FETCH_FAILED = "FETCH_FAILED"
    FETCH_TIMEOUT = "FETCH_TIMEOUT"
    RESPONSE_TOO_LARGE = "RESPONSE_TOO_LARGE"
    INVALID_DOCUMENT = "INVALID_DOCUMENT"

    # Startup
    DUPLICATE_DRIVER_REGISTRATION = "DUPLICATE_DRIVER_REGISTRATION"
    DUPLICATE_STATIC_CONTEXT = "DUPLICATE_STATIC_CONTEXT"

    INTERNAL_ERROR = "INTERNAL_ERROR"


# Network-class failures may succeed when retried by the caller
ERROR_RECOVERABILITY: Dict[str, bool] = {
    ErrorCode.UNSUPPORTED_IDENTIFIER: False,
    ErrorCode.UNSUPPORTED_DID_METHOD: False,
    ErrorCode.DID_RESOLUTION_FAILED: True,   # Recoverable
    ErrorCode.DID_NOT_FOUND: False,
    ErrorCode.INVALID_DID: False,
    ErrorCode.FETCH_FAILED: True,            # Recoverable
    ErrorCode.FETCH_TIMEOUT: True,           # Recoverable
    ErrorCode.RESPONSE_TOO_LARGE: False,
    ErrorCode.INVALID_DOCUMENT: False,
    ErrorCode.DUPLICATE_DRIVER_REGISTRATION: False,
    ErrorCode.DUPLICATE_STATIC_CONTEXT: False,
    ErrorCode.INTERNAL_ERROR: True,          # Recoverable
}


# =============================================================================
# Response Models
# =============================================================================

class RemoteDocumentResponse(BaseModel):
    """JSON-LD remote document, as handed to JSON-LD processors"""
    contextUrl: Optional[str] = None
    documentUrl: str
    document: Union[Dict[str, Any], list]


class HistoricalTrackingResponse(BaseModel):
    did: str
    requires_historical_tracking: bool


class ErrorResponse(BaseModel):
    error: ErrorDetail
