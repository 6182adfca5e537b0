"""In-memory quote cache with a short TTL and an injectable clock."""

import time
from dataclasses import dataclass
from typing import Callable, Generic, Optional, TypeVar

from patrimony.lib.config import QUOTE_CACHE_TTL

T = TypeVar("T")


@dataclass(frozen=True)
class CacheEntry(Generic[T]):
    value: T
    stored_at: float


class QuoteCache(Generic[T]):
    """Caches resolved quotes keyed by (source kind, normalized symbol).

    Owned by one resolution engine instance. Writes overwrite; nothing is
    mutated in place. Expired entries are dropped lazily on read.

    Example:
        cache = QuoteCache(ttl_seconds=10, clock=fake_clock)
        cache.set("crypto", "BTC", quote)
        cache.get("crypto", "btc")  # same entry, symbols are normalized
    """

    def __init__(
        self,
        ttl_seconds: float = QUOTE_CACHE_TTL,
        clock: Callable[[], float] = time.monotonic,
    ):
        """
        Initialize quote cache.

        Args:
            ttl_seconds: Entry lifetime in seconds
            clock: Monotonic time source in seconds
        """
        self.ttl_seconds = ttl_seconds
        self.clock = clock
        self._entries: dict[tuple[str, str], CacheEntry[T]] = {}

    @staticmethod
    def _key(kind: str, symbol: str) -> tuple[str, str]:
        return kind, symbol.strip().upper()

    def get(self, kind: str, symbol: str) -> Optional[T]:
        """
        Return the cached value if still fresh.

        Args:
            kind: Source kind (e.g. 'crypto', 'stock', 'fx')
            symbol: Symbol or ticker, any case

        Returns:
            Cached value or None on miss/expiry
        """
        key = self._key(kind, symbol)
        entry = self._entries.get(key)
        if entry is None:
            return None

        if self.clock() - entry.stored_at >= self.ttl_seconds:
            del self._entries[key]
            return None

        return entry.value

    def set(self, kind: str, symbol: str, value: T) -> None:
        """Store a value, replacing any previous entry for the key."""
        self._entries[self._key(kind, symbol)] = CacheEntry(value=value, stored_at=self.clock())

    def clear(self) -> None:
        """Drop all entries."""
        self._entries.clear()

    def __len__(self) -> int:
        return len(self._entries)
