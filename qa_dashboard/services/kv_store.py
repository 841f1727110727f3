"""In-memory key-value store with optional TTL and size bound."""

import logging
import time
from collections import OrderedDict
from typing import Callable, Dict, Generic, Iterator, Optional, Tuple, TypeVar

logger = logging.getLogger(__name__)

V = TypeVar("V")


class KeyValueStore(Generic[V]):
    """
    Process-local store shared across requests.

    Entries expire ``ttl_seconds`` after their last write. When
    ``max_entries`` is reached the least recently written entry is
    evicted. Both limits are optional.
    """

    def __init__(
        self,
        name: str,
        ttl_seconds: Optional[float] = None,
        max_entries: Optional[int] = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.name = name
        self.ttl_seconds = ttl_seconds
        self.max_entries = max_entries
        self._clock = clock
        self._entries: "OrderedDict[str, Tuple[float, V]]" = OrderedDict()

    def get(self, key: str) -> Optional[V]:
        entry = self._entries.get(key)
        if entry is None:
            return None
        written_at, value = entry
        if self._expired(written_at):
            del self._entries[key]
            logger.debug(f"[{self.name}] Expired {key}")
            return None
        return value

    def set(self, key: str, value: V) -> None:
        self._entries.pop(key, None)
        self._entries[key] = (self._clock(), value)
        self._evict()

    def delete(self, key: str) -> bool:
        return self._entries.pop(key, None) is not None

    def __contains__(self, key: str) -> bool:
        return self.get(key) is not None

    def __len__(self) -> int:
        self.purge()
        return len(self._entries)

    def items(self) -> Iterator[Tuple[str, V]]:
        self.purge()
        for key, (_, value) in list(self._entries.items()):
            yield key, value

    def values(self) -> Iterator[V]:
        for _, value in self.items():
            yield value

    def snapshot(self) -> Dict[str, V]:
        return dict(self.items())

    def clear(self) -> None:
        self._entries.clear()

    def purge(self) -> int:
        """Drop expired entries. Returns how many were removed."""
        if self.ttl_seconds is None:
            return 0
        expired = [k for k, (written_at, _) in self._entries.items() if self._expired(written_at)]
        for key in expired:
            del self._entries[key]
        if expired:
            logger.info(f"[{self.name}] Purged {len(expired)} expired entries")
        return len(expired)

    def _expired(self, written_at: float) -> bool:
        return self.ttl_seconds is not None and self._clock() - written_at > self.ttl_seconds

    def _evict(self) -> None:
        if self.max_entries is None:
            return
        self.purge()
        while len(self._entries) > self.max_entries:
            key, _ = self._entries.popitem(last=False)
            logger.info(f"[{self.name}] Evicted {key} (max_entries={self.max_entries})")
