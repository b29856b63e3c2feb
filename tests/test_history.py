"""Tests for historical-tracking classification."""

import pytest

from docloader.loader.history import requires_historical_tracking


class TestRequiresHistoricalTracking:
    """Self-contained DID methods never need a historical snapshot."""

    @pytest.mark.parametrize("did", [
        "did:key:z6MkhaXgBZDvotDkL5257faiztiGiC2QtKLGpbnnEGta2doK",
        "did:key:z6MkhaXgBZDvotDkL5257faiztiGiC2QtKLGpbnnEGta2doK#z6Mkha",
        "did:jwk:eyJrdHkiOiJPS1AifQ",
    ])
    def test_self_contained_methods(self, did):
        assert requires_historical_tracking(did) is False

    @pytest.mark.parametrize("did", [
        "did:web:example.com",
        "did:ion:EiAbc",
        "did:example:123",
    ])
    def test_other_methods(self, did):
        assert requires_historical_tracking(did) is True

    def test_method_must_be_exact(self):
        """did:keys: is not did:key:."""
        assert requires_historical_tracking("did:keys:abc") is True

    def test_prefix_match_only(self):
        """did:key: appearing later in the string does not count."""
        assert requires_historical_tracking("did:web:example.com:did:key:abc") is True

    def test_structural_only(self):
        """Malformed did:key is still classified, never resolved."""
        assert requires_historical_tracking("did:key:") is False
