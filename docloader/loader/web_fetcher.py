"""Bounded HTTP(S) document fetch.

Every fetch is subject to the same bounds:
- Wall-clock timeout over the whole request (default 5000 ms)
- Response size limit (default 8192 bytes), never truncated
- Redirect limit (default 3)
- no-cache request headers, so no intermediary serves a stale document

http and https are handled identically. A failed or timed-out fetch is not
retried; retry policy belongs to the caller.
"""

import asyncio
import json
import logging
from dataclasses import dataclass
from typing import Any, Optional

import httpx

from docloader.core import config
from docloader.core.exceptions import (
    FetchError,
    FetchFailed,
    FetchTimeout,
    InvalidDocument,
    ResponseTooLarge,
)

log = logging.getLogger(__name__)

REQUEST_HEADERS = {
    **config.NO_CACHE_HEADERS,
    "Accept": config.ACCEPT_HEADER,
}


@dataclass(frozen=True)
class FetchBounds:
    """Size and time bounds applied uniformly to every web fetch.

    Attributes:
        max_bytes: Largest accepted response body.
        timeout_ms: Wall-clock budget for the whole request.
        max_redirects: Redirects followed before giving up.
    """

    max_bytes: int = 8192
    timeout_ms: int = 5000
    max_redirects: int = 3

    @property
    def timeout_seconds(self) -> float:
        return self.timeout_ms / 1000.0

    @classmethod
    def from_config(cls) -> "FetchBounds":
        return cls(
            max_bytes=config.FETCH_MAX_BYTES,
            timeout_ms=config.FETCH_TIMEOUT_MS,
            max_redirects=config.FETCH_MAX_REDIRECTS,
        )


def parse_json_document(body: bytes, url: str) -> Any:
    """Parse a response body as a JSON document (object or array).

    Raises:
        InvalidDocument: Body is not UTF-8 JSON, nests too deeply to parse,
            or is a bare scalar.
    """
    try:
        document = json.loads(body)
    except (ValueError, RecursionError) as e:
        raise InvalidDocument(f"Response from {url} is not valid JSON: {e}")

    if not isinstance(document, (dict, list)):
        raise InvalidDocument(
            f"Response from {url} is JSON {type(document).__name__}, "
            f"expected an object or array"
        )
    return document


class BoundedWebFetcher:
    """Fetches JSON documents over HTTP(S) within fixed bounds.

    Holds no per-request state, so one instance may serve concurrent
    fetches. Concurrent fetches of the same URL are not de-duplicated.
    """

    def __init__(
        self,
        bounds: Optional[FetchBounds] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        """Initialize the fetcher.

        Args:
            bounds: Fetch bounds. Uses configured values if not provided.
            transport: Optional httpx transport (e.g. httpx.MockTransport).
        """
        self._bounds = bounds or FetchBounds.from_config()
        self._transport = transport

    @property
    def bounds(self) -> FetchBounds:
        return self._bounds

    async def fetch(self, url: str) -> Any:
        """Fetch url and return its parsed JSON body.

        Raises:
            FetchTimeout: Not completed within bounds.timeout_ms.
            ResponseTooLarge: Body exceeds bounds.max_bytes.
            InvalidDocument: Body is not a JSON document.
            FetchFailed: HTTP error status, redirects exhausted, network error.
        """
        try:
            body = await asyncio.wait_for(
                self._fetch_body(url), timeout=self._bounds.timeout_seconds
            )
        except asyncio.TimeoutError:
            log.warning(f"Timeout after {self._bounds.timeout_ms}ms fetching {url}")
            raise FetchTimeout(
                f"Timeout after {self._bounds.timeout_ms}ms fetching {url}"
            )

        document = parse_json_document(body, url)
        log.debug(f"Fetched {len(body)} bytes from {url}")
        return document

    async def _fetch_body(self, url: str) -> bytes:
        max_bytes = self._bounds.max_bytes
        try:
            async with httpx.AsyncClient(
                timeout=self._bounds.timeout_seconds,
                max_redirects=self._bounds.max_redirects,
                follow_redirects=True,
                transport=self._transport,
            ) as client:
                async with client.stream("GET", url, headers=REQUEST_HEADERS) as response:
                    response.raise_for_status()

                    # Reject early when the server declares an oversize body
                    declared = response.headers.get("content-length", "")
                    if declared.isdigit() and int(declared) > max_bytes:
                        raise ResponseTooLarge(
                            f"Declared size {declared} bytes exceeds limit "
                            f"of {max_bytes} bytes ({url})"
                        )

                    body = bytearray()
                    async for chunk in response.aiter_bytes():
                        body.extend(chunk)
                        if len(body) > max_bytes:
                            raise ResponseTooLarge(
                                f"Response exceeds limit of {max_bytes} bytes ({url})"
                            )
                    return bytes(body)

        except FetchError:
            raise
        except httpx.TimeoutException:
            raise FetchTimeout(
                f"Timeout after {self._bounds.timeout_ms}ms fetching {url}"
            )
        except httpx.TooManyRedirects:
            raise FetchFailed(
                f"Exceeded {self._bounds.max_redirects} redirects fetching {url}"
            )
        except httpx.HTTPStatusError as e:
            raise FetchFailed(
                f"HTTP {e.response.status_code}: {e.response.reason_phrase} ({url})"
            )
        except httpx.RequestError as e:
            raise FetchFailed(f"Request failed for {url}: {e}")
        except httpx.InvalidURL as e:
            raise FetchFailed(f"Invalid URL {url}: {e}")
