"""Key encodings used by self-contained DID methods.

did:key carries a multibase (base58btc, 'z' prefix) multicodec-tagged public
key; did:jwk carries a base64url JSON Web Key. Both are rendered into DID
document verification methods through VerificationKey.

Note: pysodium is imported lazily inside ed25519_to_x25519 so documents for
P-256 keys can be produced where libsodium is unavailable.
"""

import base64
import json
from dataclasses import dataclass
from typing import Any, Dict

import base58

from docloader.core.exceptions import InvalidDid
from docloader.loader.static_store import (
    ED25519_2020_CONTEXT_URL,
    MULTIKEY_CONTEXT_URL,
    X25519_2020_CONTEXT_URL,
)

MULTIBASE_BASE58BTC = "z"

# Multicodec varint headers
ED25519_PUB_CODEC = b"\xed\x01"
X25519_PUB_CODEC = b"\xec\x01"
P256_PUB_CODEC = b"\x80\x24"

# Multibase prefixes of the encoded keys (what a did:key starts with)
ED25519_MULTIKEY_HEADER = "z6Mk"
P256_MULTIKEY_HEADER = "zDna"

ED25519_KEY_LENGTH = 32
P256_COMPRESSED_KEY_LENGTH = 33
P256_COORDINATE_LENGTH = 32

# JWK members that must be strings when present
JWK_STRING_MEMBERS = ("kty", "crv", "alg", "use", "x", "y")


@dataclass(frozen=True)
class VerificationKey:
    """Public key ready to be placed in a DID document.

    Attributes:
        type: Verification method type (e.g. Ed25519VerificationKey2020).
        public_key_multibase: Multibase multikey encoding of the public key.
        context_url: JSON-LD context defining the type.
        raw: Raw public key bytes, without multicodec header.
    """

    type: str
    public_key_multibase: str
    context_url: str
    raw: bytes

    @property
    def fingerprint(self) -> str:
        return self.public_key_multibase

    def export(self, id: str, controller: str) -> Dict[str, Any]:
        """Render as a verification method."""
        return {
            "id": id,
            "type": self.type,
            "controller": controller,
            "publicKeyMultibase": self.public_key_multibase,
        }


# =============================================================================
# Codecs
# =============================================================================

def encode_multikey(codec: bytes, key: bytes) -> str:
    return MULTIBASE_BASE58BTC + base58.b58encode(codec + key).decode("ascii")


def decode_multikey(value: str, codec: bytes, key_length: int) -> bytes:
    """Decode a base58btc multikey and strip its multicodec header.

    Raises:
        InvalidDid: Wrong multibase prefix, codec or key length.
    """
    if not value.startswith(MULTIBASE_BASE58BTC):
        raise InvalidDid(f"Unsupported multibase encoding: {value[:8]}...")
    try:
        decoded = base58.b58decode(value[1:])
    except ValueError as e:
        raise InvalidDid(f"Invalid base58btc key: {e}")

    if not decoded.startswith(codec):
        raise InvalidDid(f"Unexpected multicodec header in {value[:8]}...")
    key = decoded[len(codec):]
    if len(key) != key_length:
        raise InvalidDid(
            f"Key length {len(key)} bytes, expected {key_length} ({value[:8]}...)"
        )
    return key


def b64url_decode(data: str) -> bytes:
    """Decode unpadded base64url."""
    if not isinstance(data, str):
        raise InvalidDid(f"Expected base64url string, got {type(data).__name__}")
    padding = "=" * (-len(data) % 4)
    try:
        return base64.urlsafe_b64decode(data + padding)
    except ValueError as e:
        raise InvalidDid(f"Invalid base64url: {e}")


def decode_jwk(value: str) -> Dict[str, Any]:
    """Decode the base64url JSON Web Key carried by a did:jwk.

    Raises:
        InvalidDid: Not a JSON object, a member has the wrong type, or
            it carries private key material.
    """
    try:
        jwk = json.loads(b64url_decode(value))
    except (ValueError, RecursionError) as e:
        raise InvalidDid(f"Invalid JWK encoding: {e}")
    if not isinstance(jwk, dict) or "kty" not in jwk:
        raise InvalidDid("Decoded JWK is not a JSON Web Key object")
    for member in JWK_STRING_MEMBERS:
        if member in jwk and not isinstance(jwk[member], str):
            raise InvalidDid(f"JWK member {member!r} must be a string")
    if "d" in jwk:
        raise InvalidDid("did:jwk must not contain private key material")
    return jwk


def ed25519_to_x25519(public_key: bytes) -> bytes:
    """Convert an Ed25519 public key to its X25519 (Curve25519) counterpart."""
    import pysodium
    try:
        return pysodium.crypto_sign_pk_to_box_pk(public_key)
    except ValueError as e:
        raise InvalidDid(f"Ed25519 key cannot be converted to X25519: {e}")


def compress_p256_point(x: bytes, y: bytes) -> bytes:
    """SEC1 compressed form of a P-256 public point."""
    if len(x) != P256_COORDINATE_LENGTH or len(y) != P256_COORDINATE_LENGTH:
        raise InvalidDid("P-256 JWK coordinates must be 32 bytes")
    prefix = b"\x03" if y[-1] & 1 else b"\x02"
    return prefix + x


# =============================================================================
# Key handlers
# =============================================================================

def _ed25519_key(raw: bytes) -> VerificationKey:
    return VerificationKey(
        type="Ed25519VerificationKey2020",
        public_key_multibase=encode_multikey(ED25519_PUB_CODEC, raw),
        context_url=ED25519_2020_CONTEXT_URL,
        raw=raw,
    )


def _p256_multikey(raw: bytes) -> VerificationKey:
    if raw[:1] not in (b"\x02", b"\x03"):
        raise InvalidDid("P-256 multikey must be a compressed point")
    return VerificationKey(
        type="Multikey",
        public_key_multibase=encode_multikey(P256_PUB_CODEC, raw),
        context_url=MULTIKEY_CONTEXT_URL,
        raw=raw,
    )


def ed25519_key_from_multibase(value: str) -> VerificationKey:
    """Ed25519VerificationKey2020 from a z6Mk... multikey."""
    return _ed25519_key(decode_multikey(value, ED25519_PUB_CODEC, ED25519_KEY_LENGTH))


def p256_multikey_from_multibase(value: str) -> VerificationKey:
    """Multikey (P-256) from a zDna... multikey."""
    return _p256_multikey(
        decode_multikey(value, P256_PUB_CODEC, P256_COMPRESSED_KEY_LENGTH)
    )


def ed25519_key_from_jwk(jwk: Dict[str, Any]) -> VerificationKey:
    """Ed25519VerificationKey2020 from an OKP / Ed25519 JWK."""
    if jwk.get("kty") != "OKP" or jwk.get("crv") != "Ed25519":
        raise InvalidDid("EdDSA JWK must have kty OKP and crv Ed25519")
    raw = b64url_decode(jwk.get("x", ""))
    if len(raw) != ED25519_KEY_LENGTH:
        raise InvalidDid(f"Ed25519 JWK x is {len(raw)} bytes, expected 32")
    return _ed25519_key(raw)


def p256_multikey_from_jwk(jwk: Dict[str, Any]) -> VerificationKey:
    """Multikey (P-256) from an EC / P-256 JWK."""
    if jwk.get("kty") != "EC" or jwk.get("crv") != "P-256":
        raise InvalidDid("P-256 JWK must have kty EC and crv P-256")
    x = b64url_decode(jwk.get("x", ""))
    y = b64url_decode(jwk.get("y", ""))
    return _p256_multikey(compress_p256_point(x, y))


def x25519_key_agreement_key(key: VerificationKey) -> VerificationKey:
    """X25519KeyAgreementKey2020 derived from an Ed25519 verification key."""
    raw = ed25519_to_x25519(key.raw)
    return VerificationKey(
        type="X25519KeyAgreementKey2020",
        public_key_multibase=encode_multikey(X25519_PUB_CODEC, raw),
        context_url=X25519_2020_CONTEXT_URL,
        raw=raw,
    )
