"""DID driver registration.

Registrations are collected by DidResolverBuilder and frozen into a
DriverRegistry before any resolver exists, so duplicate registrations fail
deterministically at startup instead of depending on import order:

- one driver per DID method
- one key handler per (method, key-encoding scheme) pair
"""

import logging
from types import MappingProxyType
from typing import TYPE_CHECKING, Any, Callable, Dict, List, Mapping, Optional

from docloader.core.exceptions import DuplicateDriverRegistration, UnsupportedDidMethod
from docloader.did.drivers import (
    DidJwkDriver,
    DidKeyDriver,
    DidMethodDriver,
    KeyHandler,
)
from docloader.did.multikey import VerificationKey

if TYPE_CHECKING:
    from docloader.did.cache import DidDocumentCache
    from docloader.did.resolver import CachedDidResolver

log = logging.getLogger(__name__)

# Methods whose drivers are assembled from registered key handlers
KEY_HANDLER_DRIVERS = {
    DidKeyDriver.method: DidKeyDriver,
    DidJwkDriver.method: DidJwkDriver,
}


class DriverRegistry:
    """Immutable DID method -> driver mapping."""

    def __init__(self, drivers: Mapping[str, DidMethodDriver]):
        self._drivers = MappingProxyType(dict(drivers))

    @property
    def methods(self) -> List[str]:
        return sorted(self._drivers)

    def __contains__(self, method: object) -> bool:
        return method in self._drivers

    def get(self, method: str) -> DidMethodDriver:
        """Driver for a DID method.

        Raises:
            UnsupportedDidMethod: No driver registered for method.
        """
        driver = self._drivers.get(method)
        if driver is None:
            raise UnsupportedDidMethod(
                f"No driver registered for DID method {method!r} "
                f"(supported: {', '.join(self.methods) or 'none'})"
            )
        return driver

    def describe(self) -> Dict[str, Any]:
        """Registered methods and key-encoding schemes, for /admin."""
        described: Dict[str, Any] = {}
        for method, driver in self._drivers.items():
            handlers = getattr(driver, "handlers", None)
            described[method] = sorted(handlers) if handlers is not None else []
        return described


class DidResolverBuilder:
    """Collects driver and key handler registrations.

    Usage:
        registry = (
            DidResolverBuilder()
            .use_key_handler("key", "z6Mk", ed25519_key_from_multibase)
            .use_driver(DidWebDriver())
            .build_registry()
        )
    """

    def __init__(self):
        self._drivers: Dict[str, DidMethodDriver] = {}
        self._key_handlers: Dict[str, Dict[str, KeyHandler]] = {}

    def _check_method_free(self, method: str) -> None:
        if method in self._drivers:
            raise DuplicateDriverRegistration(
                f"A driver for DID method {method!r} is already registered"
            )

    def use_driver(self, driver: DidMethodDriver) -> "DidResolverBuilder":
        """Register a complete driver for its method.

        Raises:
            DuplicateDriverRegistration: Method already has a driver or
                key handlers.
        """
        method = driver.method
        if not method:
            raise ValueError(f"{type(driver).__name__} does not declare a DID method")
        self._check_method_free(method)
        if method in self._key_handlers:
            raise DuplicateDriverRegistration(
                f"DID method {method!r} already has key handlers registered"
            )
        self._drivers[method] = driver
        log.debug(f"Registered driver for did:{method}")
        return self

    def use_key_handler(
        self,
        method: str,
        scheme: str,
        load: Callable[[Any], VerificationKey],
        name: str = "",
    ) -> "DidResolverBuilder":
        """Register a key handler for a self-contained DID method.

        Args:
            method: "key" or "jwk".
            scheme: Multikey header (did:key) or JOSE algorithm (did:jwk).
            load: Callable producing a VerificationKey from the encoded key.
            name: Optional label for logs.

        Raises:
            DuplicateDriverRegistration: (method, scheme) already registered,
                or method already has a complete driver.
            ValueError: method does not take key handlers.
        """
        if method not in KEY_HANDLER_DRIVERS:
            raise ValueError(f"DID method {method!r} does not take key handlers")
        self._check_method_free(method)

        handlers = self._key_handlers.setdefault(method, {})
        if scheme in handlers:
            raise DuplicateDriverRegistration(
                f"A key handler for did:{method} scheme {scheme!r} is already registered"
            )
        handlers[scheme] = KeyHandler(scheme=scheme, load=load, name=name or scheme)
        log.debug(f"Registered did:{method} key handler {name or scheme}")
        return self

    def build_registry(self) -> DriverRegistry:
        """Freeze registrations into a DriverRegistry."""
        drivers = dict(self._drivers)
        for method, handlers in self._key_handlers.items():
            drivers[method] = KEY_HANDLER_DRIVERS[method](handlers)
        registry = DriverRegistry(drivers)
        log.info(f"DID driver registry built for methods: {registry.methods}")
        return registry

    def build(self, cache: Optional["DidDocumentCache"] = None) -> "CachedDidResolver":
        """Build a CachedDidResolver over the frozen registry."""
        from docloader.did.resolver import CachedDidResolver

        return CachedDidResolver(self.build_registry(), cache=cache)
