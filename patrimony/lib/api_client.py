"""Async HTTP client that walks an ordered chain of relay passthroughs."""

import asyncio
import json
from dataclasses import dataclass
from typing import Any, Callable, Optional, Sequence
from urllib.parse import quote, urlencode

import aiohttp

from patrimony.lib.config import ALLORIGINS_URL, CORSPROXY_URL, THINGPROXY_URL
from patrimony.lib.errors import (
    QuoteForbiddenError,
    QuoteNetworkError,
    QuoteNotFoundError,
    QuoteRateLimitError,
    QuoteSourceError,
)
from patrimony.lib.logging_config import get_logger

logger = get_logger(__name__)

DEFAULT_HEADERS = {
    "Accept": "application/json",
    "User-Agent": "Mozilla/5.0 (compatible; patrimony/0.1)",
}


@dataclass(frozen=True)
class RelayStrategy:
    """One way of reaching a target URL: directly or through a public relay.

    Attributes:
        name: Short name used in logs and error details
        prefix: Relay URL the target is appended to (empty for direct access)
        encode: Whether the target must be percent-encoded when appended
    """

    name: str
    prefix: str = ""
    encode: bool = True

    def build_url(self, target_url: str) -> str:
        if not self.prefix:
            return target_url
        if self.encode:
            return f"{self.prefix}{quote(target_url, safe='')}"
        return f"{self.prefix}{target_url}"


DIRECT = RelayStrategy("direct")
CORSPROXY = RelayStrategy("corsproxy", CORSPROXY_URL)
ALLORIGINS = RelayStrategy("allorigins", ALLORIGINS_URL)
THINGPROXY = RelayStrategy("thingproxy", THINGPROXY_URL, encode=False)

# Ordered chains; the first strategy returning a well-formed response wins
DIRECT_ONLY: tuple[RelayStrategy, ...] = (DIRECT,)
DIRECT_THEN_RELAYS: tuple[RelayStrategy, ...] = (DIRECT, CORSPROXY, ALLORIGINS)
RELAYS_ONLY: tuple[RelayStrategy, ...] = (CORSPROXY, ALLORIGINS, THINGPROXY)
SEARCH_RELAYS: tuple[RelayStrategy, ...] = (CORSPROXY, ALLORIGINS)


def with_query(url: str, params: Optional[dict[str, Any]]) -> str:
    """Append query parameters to a URL (relays need the complete target URL)."""
    if not params:
        return url
    separator = "&" if "?" in url else "?"
    return f"{url}{separator}{urlencode(params)}"


def unwrap_relay_payload(data: Any) -> Any:
    """Unwrap relays that return the target body as a JSON string under 'contents'."""
    if isinstance(data, dict) and isinstance(data.get("contents"), str):
        return json.loads(data["contents"])
    return data


def error_for_status(source: str, status: int, details: str = "") -> QuoteSourceError:
    """
    Map an HTTP status to a typed quote failure.

    Args:
        source: Provider name
        status: HTTP status code
        details: Extra context for the message

    Returns:
        Matching QuoteSourceError subclass instance
    """
    detail = f"HTTP {status}" + (f" via {details}" if details else "")
    if status == 404:
        return QuoteNotFoundError(source, detail)
    if status == 429:
        return QuoteRateLimitError(source, detail)
    if status in (401, 403):
        return QuoteForbiddenError(source, detail)
    return QuoteNetworkError(source, detail)


class APIClient:
    """Async HTTP client for quote providers.

    Features:
    - Single pass over an ordered relay chain, first success wins
    - HTTP status mapped to typed quote failures
    - Relay payload unwrapping
    - Re-entrant context manager so concurrent lookups share one session

    No retries and no explicit timeout: a failing provider is abandoned for
    the next one by the caller.

    Example:
        async with APIClient() as client:
            data = await client.get_json("https://api.example.com/price", source="example")
    """

    def __init__(self, timeout: Optional[float] = None, headers: Optional[dict[str, str]] = None):
        """Initialize API client.

        Args:
            timeout: Total request timeout in seconds (None keeps aiohttp's default)
            headers: Headers sent with every request
        """
        self.timeout = timeout
        self.headers = {**DEFAULT_HEADERS, **(headers or {})}
        self.session: Optional[aiohttp.ClientSession] = None
        self._depth = 0

    async def __aenter__(self) -> "APIClient":
        """Enter async context manager, opening the session on first entry."""
        if self.session is None or self.session.closed:
            timeout = (
                aiohttp.ClientTimeout(total=self.timeout)
                if self.timeout is not None
                else aiohttp.ClientTimeout()
            )
            self.session = aiohttp.ClientSession(headers=self.headers, timeout=timeout)
        self._depth += 1
        return self

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        """Exit async context manager, closing the session on last exit."""
        self._depth = max(0, self._depth - 1)
        if self._depth == 0 and self.session and not self.session.closed:
            await self.session.close()

    async def get_json(
        self,
        url: str,
        params: Optional[dict[str, Any]] = None,
        headers: Optional[dict[str, str]] = None,
        relays: Sequence[RelayStrategy] = DIRECT_ONLY,
        source: str = "http",
        is_valid: Optional[Callable[[Any], bool]] = None,
    ) -> Any:
        """Fetch JSON from a URL, walking the relay chain until one succeeds.

        Args:
            url: Target URL
            params: Query parameters
            headers: Extra request headers
            relays: Ordered relay strategies to try
            source: Provider name used in errors
            is_valid: Predicate a decoded payload must satisfy to count as success

        Returns:
            Decoded JSON payload

        Raises:
            QuoteSourceError: The failure of the last strategy tried
        """
        target = with_query(url, params)
        last_error: Optional[QuoteSourceError] = None

        for relay in relays:
            try:
                data = await self._make_request(relay.build_url(target), headers)
                data = unwrap_relay_payload(data)
            except aiohttp.ClientResponseError as e:
                last_error = error_for_status(source, e.status, relay.name)
                logger.debug(f"{source} via {relay.name} failed: HTTP {e.status}")
                continue
            except (aiohttp.ClientError, asyncio.TimeoutError, ValueError) as e:
                last_error = QuoteNetworkError(source, f"{relay.name}: {e}")
                logger.debug(f"{source} via {relay.name} failed: {e}")
                continue

            if is_valid is not None and not is_valid(data):
                last_error = QuoteNotFoundError(source, f"unusable response via {relay.name}")
                continue

            return data

        if last_error is None:
            last_error = QuoteNetworkError(source, "no relay strategy configured")
        raise last_error

    async def _make_request(self, url: str, headers: Optional[dict[str, str]]) -> Any:
        """Make single HTTP request.

        Raises:
            aiohttp.ClientResponseError: HTTP error
            aiohttp.ClientError: Network error
            ValueError: Body is not JSON
        """
        if self.session is None or self.session.closed:
            raise RuntimeError("APIClient session not initialized. Use async with context manager.")

        async with self.session.get(url, headers=headers) as response:
            response.raise_for_status()
            # Relays often serve JSON as text/plain
            return await response.json(content_type=None)
