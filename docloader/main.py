import logging
import os
import time
from typing import Optional

from fastapi import Depends, FastAPI, Request
from fastapi.responses import JSONResponse

from docloader import __version__
from docloader.api_models import (
    ErrorCode,
    ErrorDetail,
    ErrorResponse,
    HistoricalTrackingResponse,
    LogLevelRequest,
    RemoteDocumentResponse,
    ResolveRequest,
)
from docloader.core import config
from docloader.core.exceptions import DocumentLoaderError
from docloader.core.logging import configure_logging
from docloader.did.resolver import CachedDidResolver
from docloader.loader.document_loader import DocumentLoader, create_document_loader
from docloader.loader.history import requires_historical_tracking

configure_logging()
log = logging.getLogger("docloader")

# HTTP status per error code; anything unlisted is a 500
ERROR_HTTP_STATUS = {
    ErrorCode.UNSUPPORTED_IDENTIFIER: 400,
    ErrorCode.UNSUPPORTED_DID_METHOD: 400,
    ErrorCode.INVALID_DID: 400,
    ErrorCode.DID_NOT_FOUND: 404,
    ErrorCode.DID_RESOLUTION_FAILED: 502,
    ErrorCode.FETCH_FAILED: 502,
    ErrorCode.RESPONSE_TOO_LARGE: 502,
    ErrorCode.INVALID_DOCUMENT: 502,
    ErrorCode.FETCH_TIMEOUT: 504,
}


def error_response(exc: DocumentLoaderError) -> JSONResponse:
    detail = ErrorDetail(code=exc.code, message=exc.message, recoverable=exc.recoverable)
    return JSONResponse(
        status_code=ERROR_HTTP_STATUS.get(exc.code, 500),
        content=ErrorResponse(error=detail).model_dump(),
    )


def get_document_loader(request: Request) -> DocumentLoader:
    return request.app.state.document_loader


def create_app(loader: Optional[DocumentLoader] = None) -> FastAPI:
    """Build the service around one document loader.

    Args:
        loader: Loader to serve. Defaults to create_document_loader().
    """
    app = FastAPI(title="VC Document Loader", version=__version__)
    app.state.document_loader = loader or create_document_loader()

    @app.exception_handler(DocumentLoaderError)
    async def loader_error_handler(request: Request, exc: DocumentLoaderError):
        log.info(
            f"resolve_failed code={exc.code}",
            extra={"route": request.url.path},
        )
        return error_response(exc)

    @app.middleware("http")
    async def req_log(request: Request, call_next):
        start = time.time()
        route = request.url.path
        remote = request.client.host if request.client else "-"
        resp = await call_next(request)
        duration_ms = int((time.time() - start) * 1000)
        log.info(f"request_complete status={resp.status_code} duration_ms={duration_ms}",
                 extra={"request_id": "-", "route": route, "remote_addr": remote})
        return resp

    @app.get("/healthz")
    def healthz():
        return {"ok": True}

    @app.get("/version")
    def version():
        # GIT_SHA is injected at deploy time
        return {"version": __version__, "git_sha": os.getenv("GIT_SHA", "unknown")}

    @app.get("/resolve", response_model=RemoteDocumentResponse)
    async def resolve(identifier: str, loader: DocumentLoader = Depends(get_document_loader)):
        return await loader.load(identifier)

    @app.post("/resolve", response_model=RemoteDocumentResponse)
    async def resolve_with_overrides(
        req: ResolveRequest,
        loader: DocumentLoader = Depends(get_document_loader),
    ):
        """Resolve an identifier, giving req.overrides precedence for DIDs.

        Overrides apply to this request only; they never reach the DID cache.
        """
        if req.overrides:
            log.info(f"resolve_with_overrides count={len(req.overrides)}")
            loader = loader.with_overrides(req.overrides)
        return await loader.load(req.identifier)

    @app.get("/did/historical-tracking", response_model=HistoricalTrackingResponse)
    def historical_tracking(did: str):
        return HistoricalTrackingResponse(
            did=did, requires_historical_tracking=requires_historical_tracking(did)
        )

    @app.get("/admin")
    async def admin(loader: DocumentLoader = Depends(get_document_loader)):
        """Return configuration and metrics for operator visibility.

        Gated by ADMIN_ENDPOINT_ENABLED.
        """
        if not config.ADMIN_ENDPOINT_ENABLED:
            return JSONResponse(
                status_code=404,
                content={"detail": "Admin endpoint disabled"}
            )

        fetcher = loader.web_fetcher
        resolver = loader.did_resolver
        data = {
            "normative": {
                "self_contained_did_methods": list(config.SELF_CONTAINED_DID_METHODS),
                "request_headers": dict(config.NO_CACHE_HEADERS),
            },
            "policy": {
                "fetch_max_bytes": fetcher.bounds.max_bytes if fetcher else None,
                "fetch_timeout_ms": fetcher.bounds.timeout_ms if fetcher else None,
                "fetch_max_redirects": fetcher.bounds.max_redirects if fetcher else None,
            },
            "static_contexts": sorted(loader.static_contexts),
            "features": {
                "admin_endpoint_enabled": config.ADMIN_ENDPOINT_ENABLED,
                "did_resolution_enabled": resolver is not None,
                "web_fetch_enabled": fetcher is not None,
            },
            "environment": {
                "log_level": logging.getLogger().getEffectiveLevel(),
                "log_level_name": logging.getLevelName(logging.getLogger().getEffectiveLevel()),
            },
            "loader_metrics": loader.metrics.to_dict(),
        }

        if isinstance(resolver, CachedDidResolver):
            data["did_methods"] = resolver.registry.describe()
            data["cache_config"] = {
                "did_cache_ttl_seconds": resolver.cache.config.ttl_seconds,
                "did_cache_max_entries": resolver.cache.config.max_entries,
            }
            data["cache_metrics"] = {
                "did": resolver.cache.metrics.to_dict(),
                "entries": await resolver.cache.size(),
            }
            data["resolver_metrics"] = resolver.metrics.to_dict()
        return data

    @app.post("/admin/metrics/reset")
    def reset_metrics(loader: DocumentLoader = Depends(get_document_loader)):
        """Zero loader, resolver and DID cache metrics.

        Gated by ADMIN_ENDPOINT_ENABLED. Cached documents are kept.
        """
        if not config.ADMIN_ENDPOINT_ENABLED:
            return JSONResponse(
                status_code=404,
                content={"detail": "Admin endpoint disabled"}
            )

        loader.metrics.reset()
        resolver = loader.did_resolver
        if isinstance(resolver, CachedDidResolver):
            resolver.metrics.reset()
            resolver.cache.metrics.reset()

        log.info("Metrics reset")
        return {"success": True}

    @app.post("/admin/log-level")
    def set_log_level(req: LogLevelRequest):
        """Change log level at runtime (DEBUG, INFO, WARNING, ERROR, CRITICAL).

        Gated by ADMIN_ENDPOINT_ENABLED.
        """
        if not config.ADMIN_ENDPOINT_ENABLED:
            return JSONResponse(
                status_code=404,
                content={"detail": "Admin endpoint disabled"}
            )

        valid_levels = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
        level_upper = req.level.upper()

        if level_upper not in valid_levels:
            return JSONResponse(
                status_code=400,
                content={"detail": f"Invalid log level. Must be one of: {valid_levels}"}
            )

        logging.getLogger().setLevel(getattr(logging, level_upper))
        logging.getLogger("docloader").setLevel(getattr(logging, level_upper))

        log.info(f"Log level changed to {level_upper}")

        return {
            "success": True,
            "log_level": level_upper,
            "message": f"Log level set to {level_upper}"
        }

    return app


app = create_app()
