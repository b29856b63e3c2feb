"""Shared fixtures for document loader tests."""

import base64
import json

import httpx
import pytest

from docloader.did.cache import DidCacheConfig, DidDocumentCache
from docloader.did.multikey import ED25519_PUB_CODEC, encode_multikey
from docloader.did.resolver import create_did_resolver
from docloader.loader.document_loader import create_document_loader
from docloader.loader.web_fetcher import BoundedWebFetcher, FetchBounds


class RecordingTransport(httpx.MockTransport):
    """MockTransport serving url -> (status, body) routes and recording requests."""

    def __init__(self, routes=None):
        self.routes = dict(routes or {})
        self.requests = []
        super().__init__(self._handle)

    def _handle(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        route = self.routes.get(str(request.url))
        if route is None:
            return httpx.Response(404)
        status, body = route
        if isinstance(body, (dict, list)):
            return httpx.Response(status, json=body)
        return httpx.Response(status, content=body)


def b64url(data: bytes) -> str:
    return base64.urlsafe_b64encode(data).rstrip(b"=").decode("ascii")


@pytest.fixture
def transport():
    """Empty recording transport; tests add routes."""
    return RecordingTransport()


@pytest.fixture
def fetcher(transport):
    """Web fetcher with default bounds over the recording transport."""
    return BoundedWebFetcher(FetchBounds(), transport=transport)


@pytest.fixture
def did_cache():
    return DidDocumentCache(DidCacheConfig(ttl_seconds=60, max_entries=10))


@pytest.fixture
def did_resolver(fetcher, did_cache):
    return create_did_resolver(cache=did_cache, web_fetcher=fetcher)


@pytest.fixture
def loader(did_resolver, fetcher):
    """Default loader whose network access goes to the recording transport."""
    return create_document_loader(did_resolver=did_resolver, web_fetcher=fetcher)


@pytest.fixture
def ed25519_public_key():
    """Fresh Ed25519 public key."""
    import pysodium

    pk, _sk = pysodium.crypto_sign_keypair()
    return pk


@pytest.fixture
def did_key(ed25519_public_key):
    """did:key for a fresh Ed25519 key."""
    return "did:key:" + encode_multikey(ED25519_PUB_CODEC, ed25519_public_key)


@pytest.fixture
def ed25519_did_jwk(ed25519_public_key):
    """did:jwk for a fresh Ed25519 key."""
    jwk = {"kty": "OKP", "crv": "Ed25519", "x": b64url(ed25519_public_key)}
    return "did:jwk:" + b64url(json.dumps(jwk).encode())


WEB_DID = "did:web:issuer.example.com"
WEB_DID_URL = "https://issuer.example.com/.well-known/did.json"


@pytest.fixture
def web_did_document():
    return {
        "@context": ["https://www.w3.org/ns/did/v1"],
        "id": WEB_DID,
        "verificationMethod": [
            {
                "id": f"{WEB_DID}#key-1",
                "type": "Ed25519VerificationKey2020",
                "controller": WEB_DID,
                "publicKeyMultibase": "z6MkhaXgBZDvotDkL5257faiztiGiC2QtKLGpbnnEGta2doK",
            }
        ],
        "assertionMethod": ["#key-1"],
    }
