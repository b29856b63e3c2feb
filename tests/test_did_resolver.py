"""Tests for the caching DID resolution facade."""

import pytest

from conftest import WEB_DID, WEB_DID_URL
from docloader.core.exceptions import (
    DidNotFound,
    InvalidDid,
    ResolutionFailed,
    UnsupportedDidMethod,
)
from docloader.did.did_url import parse_did_url
from docloader.did.resolver import dereference_fragment


class TestCachedDidResolver:
    """Tests for CachedDidResolver.resolve()."""

    @pytest.mark.asyncio
    async def test_unsupported_method(self, did_resolver):
        with pytest.raises(UnsupportedDidMethod):
            await did_resolver.resolve("did:example:123")
        assert did_resolver.metrics.failures == 1

    @pytest.mark.asyncio
    async def test_malformed_did(self, did_resolver):
        with pytest.raises(InvalidDid, match="Malformed") as exc_info:
            await did_resolver.resolve("did:key")
        assert exc_info.value.recoverable is False

    @pytest.mark.asyncio
    async def test_did_key_needs_no_network(self, did_resolver, transport, did_key):
        doc = await did_resolver.resolve(did_key)
        assert doc["id"] == did_key
        assert transport.requests == []

    @pytest.mark.asyncio
    async def test_web_document_cached(self, did_resolver, transport, web_did_document):
        transport.routes[WEB_DID_URL] = (200, web_did_document)

        first = await did_resolver.resolve(WEB_DID)
        second = await did_resolver.resolve(WEB_DID)

        assert first == second == web_did_document
        assert len(transport.requests) == 1
        assert did_resolver.metrics.cache_hits == 1
        assert did_resolver.metrics.driver_resolutions == 1

    @pytest.mark.asyncio
    async def test_failures_not_cached(self, did_resolver, transport, web_did_document):
        with pytest.raises(ResolutionFailed) as exc_info:
            await did_resolver.resolve(WEB_DID)
        assert not isinstance(exc_info.value, InvalidDid)
        assert exc_info.value.recoverable is True

        transport.routes[WEB_DID_URL] = (200, web_did_document)
        assert await did_resolver.resolve(WEB_DID) == web_did_document
        assert len(transport.requests) == 2

    @pytest.mark.asyncio
    async def test_fragment_shares_base_cache_entry(self, did_resolver, transport, web_did_document):
        transport.routes[WEB_DID_URL] = (200, web_did_document)

        await did_resolver.resolve(WEB_DID)
        method = await did_resolver.resolve(f"{WEB_DID}#key-1")

        assert method["id"] == f"{WEB_DID}#key-1"
        assert method["@context"] == web_did_document["@context"]
        assert len(transport.requests) == 1

    @pytest.mark.asyncio
    async def test_did_key_verification_method(self, did_resolver, did_key):
        fingerprint = did_key.split(":")[-1]
        method = await did_resolver.resolve(f"{did_key}#{fingerprint}")

        assert method["type"] == "Ed25519VerificationKey2020"
        assert method["controller"] == did_key
        assert method["publicKeyMultibase"] == fingerprint

    @pytest.mark.asyncio
    async def test_did_jwk_verification_method(self, did_resolver, ed25519_did_jwk):
        method = await did_resolver.resolve(f"{ed25519_did_jwk}#0")
        assert method["id"] == f"{ed25519_did_jwk}#0"

    @pytest.mark.asyncio
    async def test_fragment_not_found(self, did_resolver, did_key):
        with pytest.raises(DidNotFound):
            await did_resolver.resolve(f"{did_key}#missing")

    @pytest.mark.asyncio
    async def test_resolved_documents_are_private_copies(self, did_resolver, transport, web_did_document):
        transport.routes[WEB_DID_URL] = (200, web_did_document)

        first = await did_resolver.resolve(WEB_DID)
        first["verificationMethod"].clear()
        second = await did_resolver.resolve(WEB_DID)
        assert len(second["verificationMethod"]) == 1


class TestDereferenceFragment:
    def test_relative_id(self):
        document = {"id": "did:web:a.example", "service": [{"id": "#hub", "type": "Hub"}]}
        resource = dereference_fragment(document, parse_did_url("did:web:a.example#hub"))
        assert resource == {"id": "did:web:a.example#hub", "type": "Hub"}

    def test_string_references_skipped(self):
        document = {"id": "did:web:a.example", "assertionMethod": ["#key-1"]}
        with pytest.raises(DidNotFound):
            dereference_fragment(document, parse_did_url("did:web:a.example#key-1"))
