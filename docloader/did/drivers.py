"""DID method drivers.

A driver turns a base DID of one method into a DID document. Drivers do not
cache; CachedDidResolver owns caching and DID URL dereferencing.

- did:key and did:jwk are self-contained: the document is computed from the
  identifier, dispatching on the key encoding to a registered key handler.
- did:web is web-hosted: the document is fetched from the DID's domain
  through the driver's own BoundedWebFetcher.
"""

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from types import MappingProxyType
from typing import Any, Callable, Dict, List, Mapping, Optional, Sequence
from urllib.parse import unquote

import httpx

from docloader.core.exceptions import FetchError, InvalidDid, ResolutionFailed
from docloader.did.did_url import ParsedDid
from docloader.did.multikey import (
    VerificationKey,
    decode_jwk,
    x25519_key_agreement_key,
)
from docloader.loader.static_store import DID_CONTEXT_URL
from docloader.loader.web_fetcher import BoundedWebFetcher

log = logging.getLogger(__name__)

SIGNING_RELATIONSHIPS = (
    "authentication",
    "assertionMethod",
    "capabilityDelegation",
    "capabilityInvocation",
)


@dataclass(frozen=True)
class KeyHandler:
    """Turns one key encoding into a VerificationKey.

    Attributes:
        scheme: Key-encoding scheme the handler answers for: the multikey
            header for did:key (e.g. "z6Mk"), the JOSE algorithm for did:jwk
            (e.g. "EdDSA", "P-256").
        load: Callable taking the encoded key (multibase string for did:key,
            JWK dict for did:jwk) and returning a VerificationKey.
        name: Optional label for logs.
    """

    scheme: str
    load: Callable[[Any], VerificationKey]
    name: str = ""


class DidMethodDriver(ABC):
    """DID method driver interface."""

    method: str = ""

    @abstractmethod
    async def resolve(self, parsed: ParsedDid) -> Dict[str, Any]:
        """Produce the DID document for parsed.did.

        Raises:
            ResolutionFailed: The DID cannot be resolved by this driver.
        """


def _key_document(
    did: str,
    key: VerificationKey,
    key_id: str,
    relationships: Sequence[str] = SIGNING_RELATIONSHIPS,
    key_agreement: Optional[VerificationKey] = None,
    key_agreement_id: Optional[str] = None,
) -> Dict[str, Any]:
    """DID document for a single-key DID.

    The key agreement key, when given, is embedded in keyAgreement rather
    than listed in verificationMethod.
    """
    contexts: List[str] = [DID_CONTEXT_URL, key.context_url]
    document: Dict[str, Any] = {
        "@context": contexts,
        "id": did,
        "verificationMethod": [key.export(key_id, did)],
    }
    for relationship in relationships:
        document[relationship] = [key_id]

    if key_agreement is not None:
        contexts.append(key_agreement.context_url)
        document["keyAgreement"] = [key_agreement.export(key_agreement_id, did)]
    return document


class _KeyHandlerDriver(DidMethodDriver):
    """Driver dispatching on registered key handlers."""

    def __init__(self, handlers: Mapping[str, KeyHandler]):
        self._handlers = MappingProxyType(dict(handlers))

    @property
    def handlers(self) -> Mapping[str, KeyHandler]:
        return self._handlers


class DidKeyDriver(_KeyHandlerDriver):
    """did:key driver.

    The method-specific id is the multibase multikey fingerprint; the
    verification method id is did:key:<fp>#<fp>. Ed25519 keys also get an
    X25519 key-agreement method derived from the signing key.
    """

    method = "key"

    def _handler_for(self, fingerprint: str) -> KeyHandler:
        for header, handler in self._handlers.items():
            if fingerprint.startswith(header):
                return handler
        raise InvalidDid(
            f"No key handler registered for did:key header {fingerprint[:4]}"
        )

    async def resolve(self, parsed: ParsedDid) -> Dict[str, Any]:
        fingerprint = parsed.method_specific_id
        handler = self._handler_for(fingerprint)
        key = handler.load(fingerprint)

        key_agreement = None
        key_agreement_id = None
        if key.type == "Ed25519VerificationKey2020":
            key_agreement = x25519_key_agreement_key(key)
            key_agreement_id = f"{parsed.did}#{key_agreement.fingerprint}"

        log.debug(f"Computed did:key document for {parsed.did[:24]}...")
        return _key_document(
            parsed.did,
            key,
            key_id=f"{parsed.did}#{fingerprint}",
            key_agreement=key_agreement,
            key_agreement_id=key_agreement_id,
        )


def jwk_algorithm(jwk: Mapping[str, Any]) -> str:
    """Key-encoding scheme of a JWK, as registered with DidJwkDriver.

    OKP/Ed25519 keys are "EdDSA"; EC keys are named by their curve.
    """
    if jwk.get("kty") == "OKP" and jwk.get("crv") == "Ed25519":
        return "EdDSA"
    if jwk.get("kty") == "EC" and jwk.get("crv"):
        return jwk["crv"]
    return jwk.get("alg") or jwk.get("kty", "")


class DidJwkDriver(_KeyHandlerDriver):
    """did:jwk driver.

    The method-specific id is a base64url JWK; the verification method id is
    did:jwk:<jwk>#0. The JWK's "use" member restricts the document to
    signing ("sig") or key agreement ("enc") relationships.
    """

    method = "jwk"

    async def resolve(self, parsed: ParsedDid) -> Dict[str, Any]:
        jwk = decode_jwk(parsed.method_specific_id)
        algorithm = jwk_algorithm(jwk)
        handler = self._handlers.get(algorithm)
        if handler is None:
            raise InvalidDid(
                f"No key handler registered for did:jwk algorithm {algorithm!r}"
            )
        key = handler.load(jwk)

        relationships = ("keyAgreement",) if jwk.get("use") == "enc" else SIGNING_RELATIONSHIPS
        log.debug(f"Computed did:jwk document for {parsed.did[:24]}...")
        return _key_document(
            parsed.did,
            key,
            key_id=f"{parsed.did}#0",
            relationships=relationships,
        )


# Decoded characters that would move text out of its URL component
DOMAIN_DELIMITERS = frozenset("/?#@\\")
PATH_DELIMITERS = frozenset("?#\\")


def _has_url_delimiter(value: str, delimiters: frozenset) -> bool:
    return any(c in delimiters or c.isspace() for c in value)


def did_web_to_url(parsed: ParsedDid) -> str:
    """Transform a did:web into the HTTPS URL of its DID document.

    did:web:example.com -> https://example.com/.well-known/did.json
    did:web:example.com:user:alice -> https://example.com/user/alice/did.json
    did:web:example.com%3A8443 -> https://example.com:8443/.well-known/did.json
    """
    parts = parsed.method_specific_id.split(":")
    domain = unquote(parts[0])
    if not domain or _has_url_delimiter(domain, DOMAIN_DELIMITERS):
        raise InvalidDid(f"Invalid did:web domain: {parsed.did}")

    segments = [unquote(p) for p in parts[1:]]
    if any(not s or _has_url_delimiter(s, PATH_DELIMITERS) for s in segments):
        raise InvalidDid(f"Invalid did:web path: {parsed.did}")

    if segments:
        path = "/".join(segments) + "/did.json"
    else:
        path = ".well-known/did.json"
    url = f"https://{domain}/{path}"

    # httpx rejects hosts and ports that do not parse
    try:
        host = httpx.URL(url).host
    except httpx.InvalidURL as e:
        raise InvalidDid(f"Invalid did:web domain: {parsed.did}") from e
    if not host:
        raise InvalidDid(f"Invalid did:web domain: {parsed.did}")
    return url


class DidWebDriver(DidMethodDriver):
    """did:web driver."""

    method = "web"

    def __init__(self, fetcher: Optional[BoundedWebFetcher] = None):
        self._fetcher = fetcher or BoundedWebFetcher()

    async def resolve(self, parsed: ParsedDid) -> Dict[str, Any]:
        url = did_web_to_url(parsed)
        log.info(f"Fetching did:web document for {parsed.did} from {url}")
        try:
            document = await self._fetcher.fetch(url)
        except FetchError as e:
            raise ResolutionFailed(f"Failed to resolve {parsed.did}: {e.message}") from e

        if not isinstance(document, dict):
            raise ResolutionFailed(f"DID document for {parsed.did} is not a JSON object")
        if document.get("id") != parsed.did:
            raise ResolutionFailed(
                f"DID document id mismatch: expected {parsed.did}, "
                f"got {document.get('id')}"
            )
        return document
