"""Tests for the document resolution policy."""

import json

import pytest

from conftest import WEB_DID, WEB_DID_URL, b64url
from docloader.core.exceptions import (
    DuplicateStaticContext,
    FetchTimeout,
    InvalidDid,
    InvalidDocument,
    ResolutionFailed,
    ResponseTooLarge,
    UnsupportedDidMethod,
    UnsupportedIdentifier,
)
from docloader.loader.document_loader import DocumentLoaderBuilder, create_document_loader
from docloader.loader.static_store import (
    BUNDLED_CONTEXT_FILES,
    CREDENTIALS_CONTEXT_URL,
    get_bundled_context,
)
from docloader.loader.web_fetcher import BoundedWebFetcher, FetchBounds

CONTEXT_URL = "https://example.com/contexts/v1"


class TestStaticResolution:
    """Static contexts are served without network access."""

    @pytest.mark.asyncio
    async def test_every_bundled_context_without_network(self, loader, transport):
        for url in BUNDLED_CONTEXT_FILES:
            assert await loader.resolve(url) == get_bundled_context(url)
        assert transport.requests == []
        assert loader.metrics.static_hits == len(BUNDLED_CONTEXT_FILES)

    @pytest.mark.asyncio
    async def test_static_wins_even_if_served_remotely(self, loader, transport):
        transport.routes[CREDENTIALS_CONTEXT_URL] = (200, {"@context": "remote"})
        doc = await loader.resolve(CREDENTIALS_CONTEXT_URL)
        assert doc != {"@context": "remote"}
        assert transport.requests == []

    @pytest.mark.asyncio
    async def test_callers_cannot_mutate_table(self, loader):
        doc = await loader.resolve(CREDENTIALS_CONTEXT_URL)
        doc["@context"] = None
        assert (await loader.resolve(CREDENTIALS_CONTEXT_URL))["@context"] is not None


class TestDidResolution:
    @pytest.mark.asyncio
    async def test_did_key(self, loader, transport, did_key):
        doc = await loader.resolve(did_key)
        assert doc["id"] == did_key
        assert transport.requests == []
        assert loader.metrics.did_resolutions == 1

    @pytest.mark.asyncio
    async def test_did_web_goes_through_resolver(self, loader, transport, web_did_document):
        transport.routes[WEB_DID_URL] = (200, web_did_document)
        assert await loader.resolve(WEB_DID) == web_did_document
        assert loader.metrics.did_resolutions == 1
        assert loader.metrics.web_fetches == 0

    @pytest.mark.asyncio
    async def test_resolver_errors_propagate(self, loader):
        with pytest.raises(UnsupportedDidMethod):
            await loader.resolve("did:example:123")
        assert loader.metrics.failures == 1

    @pytest.mark.asyncio
    async def test_did_without_resolver(self):
        loader = DocumentLoaderBuilder().build()
        with pytest.raises(UnsupportedIdentifier):
            await loader.resolve("did:example:123")


class TestWebResolution:
    @pytest.mark.asyncio
    async def test_fetches_unknown_context(self, loader, transport):
        transport.routes[CONTEXT_URL] = (200, {"@context": {"name": "http://schema.org/name"}})
        doc = await loader.resolve(CONTEXT_URL)
        assert doc["@context"]["name"] == "http://schema.org/name"
        assert loader.metrics.web_fetches == 1

    @pytest.mark.asyncio
    async def test_oversize_not_retried(self, loader, transport):
        transport.routes[CONTEXT_URL] = (200, b"[" + b" " * 9000 + b"]")
        with pytest.raises(ResponseTooLarge):
            await loader.resolve(CONTEXT_URL)
        assert len(transport.requests) == 1

    @pytest.mark.asyncio
    async def test_slow_server_times_out(self):
        import asyncio

        import httpx

        async def handler(request):
            await asyncio.sleep(1.0)
            return httpx.Response(200, json={})

        fetcher = BoundedWebFetcher(FetchBounds(timeout_ms=20), transport=httpx.MockTransport(handler))
        loader = create_document_loader(web_fetcher=fetcher)
        with pytest.raises(FetchTimeout):
            await loader.resolve(CONTEXT_URL)

    @pytest.mark.asyncio
    async def test_web_without_fetcher(self):
        loader = DocumentLoaderBuilder().add_bundled_contexts().build()
        with pytest.raises(UnsupportedIdentifier):
            await loader.resolve(CONTEXT_URL)
        assert await loader.resolve(CREDENTIALS_CONTEXT_URL)


class TestUnsupported:
    @pytest.mark.asyncio
    @pytest.mark.parametrize("identifier", ["", "urn:uuid:123", "ftp://example.com/a", "context.json"])
    async def test_unsupported_identifier(self, loader, transport, identifier):
        with pytest.raises(UnsupportedIdentifier) as exc_info:
            await loader.resolve(identifier)
        assert exc_info.value.recoverable is False
        assert transport.requests == []


class TestLoad:
    @pytest.mark.asyncio
    async def test_remote_document_shape(self, loader):
        remote = await loader.load(CREDENTIALS_CONTEXT_URL)
        assert remote == {
            "contextUrl": None,
            "documentUrl": CREDENTIALS_CONTEXT_URL,
            "document": get_bundled_context(CREDENTIALS_CONTEXT_URL),
        }

    @pytest.mark.asyncio
    async def test_loader_is_callable(self, loader):
        assert await loader(CREDENTIALS_CONTEXT_URL) == await loader.load(CREDENTIALS_CONTEXT_URL)


class TestWithOverrides:
    @pytest.mark.asyncio
    async def test_override_scoped_to_derived_loader(self, loader, transport, web_did_document):
        old = {**web_did_document, "verificationMethod": []}
        scoped = loader.with_overrides({WEB_DID: old})

        assert await scoped.resolve(WEB_DID) == old
        assert transport.requests == []

        with pytest.raises(ResolutionFailed):
            await loader.resolve(WEB_DID)

    @pytest.mark.asyncio
    async def test_derived_loader_shares_static_table(self, loader, transport):
        scoped = loader.with_overrides({})
        assert scoped.static_contexts is loader.static_contexts
        assert await scoped.resolve(CREDENTIALS_CONTEXT_URL)
        assert loader.metrics.static_hits == 1


class TestDocumentLoaderBuilder:
    def test_duplicate_static_context(self):
        builder = DocumentLoaderBuilder().add_static(CONTEXT_URL, {"@context": {}})
        with pytest.raises(DuplicateStaticContext):
            builder.add_static(CONTEXT_URL, {"@context": {"other": "x"}})

    def test_duplicate_bundled_context(self):
        builder = DocumentLoaderBuilder().add_bundled_contexts()
        with pytest.raises(DuplicateStaticContext):
            builder.add_static(CREDENTIALS_CONTEXT_URL, {"@context": {}})

    def test_selected_bundled_contexts(self):
        loader = DocumentLoaderBuilder().add_bundled_contexts([CREDENTIALS_CONTEXT_URL]).build()
        assert list(loader.static_contexts) == [CREDENTIALS_CONTEXT_URL]

    def test_rejects_scalar_documents(self):
        with pytest.raises(ValueError):
            DocumentLoaderBuilder().add_static(CONTEXT_URL, "not a document")

    @pytest.mark.asyncio
    async def test_custom_static_context(self, transport):
        loader = (
            DocumentLoaderBuilder()
            .add_static(CONTEXT_URL, {"@context": {"a": "b"}})
            .set_web_fetcher(BoundedWebFetcher(FetchBounds(), transport=transport))
            .build()
        )
        assert await loader.resolve(CONTEXT_URL) == {"@context": {"a": "b"}}
        assert transport.requests == []

    def test_independent_loaders(self):
        """Each built loader has its own state."""
        first = create_document_loader()
        second = create_document_loader()
        assert first.did_resolver is not second.did_resolver
        assert first.did_resolver.cache is not second.did_resolver.cache


class TestMalformedInput:
    """Hostile documents and identifiers fail with loader errors."""

    @pytest.mark.asyncio
    async def test_deeply_nested_context(self, transport):
        body = b"[" * 50000 + b"]" * 50000
        transport.routes[CONTEXT_URL] = (200, body)
        fetcher = BoundedWebFetcher(FetchBounds(max_bytes=len(body)), transport=transport)
        loader = create_document_loader(web_fetcher=fetcher)

        with pytest.raises(InvalidDocument):
            await loader.resolve(CONTEXT_URL)
        assert loader.metrics.failures == 1

    @pytest.mark.asyncio
    @pytest.mark.parametrize("jwk", [
        {"kty": "EC", "crv": ["P-256"]},
        {"kty": "OKP", "crv": "Ed25519", "x": 5},
        {"kty": {"a": 1}},
        {"kty": "EC", "crv": "P-256", "x": "AA", "y": None},
    ])
    async def test_mistyped_jwk_members(self, loader, jwk):
        did = "did:jwk:" + b64url(json.dumps(jwk).encode())
        with pytest.raises(InvalidDid) as exc_info:
            await loader.resolve(did)
        assert exc_info.value.recoverable is False
        assert loader.metrics.failures == 1
