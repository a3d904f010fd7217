"""Content-addressed cache for generated payloads.

Process-local and in-memory. Entries are copied on the way in and on the way
out, so a caller mutating what it got back can never change what the next
caller sees. The cache itself is not synchronized; `RequestGovernor` guards
it with its own lock.
"""

from collections import OrderedDict
import copy
import dataclasses
import hashlib
import json
import logging
import time
from typing import Any

from quote_assist.constants import CACHE_KEY_MAX_CHARS

log = logging.getLogger(__name__)


@dataclasses.dataclass(frozen=True, slots=True)
class CacheEntry:
    """A stored payload and when it was stored (epoch seconds)."""

    key: str
    value: Any
    created_at: float


def _normalize_fragment(text: str) -> str:
    return " ".join(text.lower().split())


def build_cache_key(
    context: str,
    text: str,
    item_count: int | None = None,
    *,
    max_chars: int = CACHE_KEY_MAX_CHARS,
) -> str:
    """Deterministic key for a (context, input text, item count) request.

    Case and whitespace differences do not change the key, and only the
    first `max_chars` characters of the normalized text take part in it.
    """
    signature = {
        "context": _normalize_fragment(context),
        "text": _normalize_fragment(text)[:max_chars],
        "items": item_count,
    }
    data = json.dumps(signature, sort_keys=True, separators=(",", ":")).encode()
    return hashlib.sha256(data).hexdigest()


class ResponseCache:
    """Key to payload mapping with optional LRU bound.

    Args:
        max_entries: Maximum number of entries kept. ``None`` (the default)
            never evicts.
    """

    def __init__(self, max_entries: int | None = None) -> None:  # noqa: D107
        if max_entries is not None and max_entries < 1:
            raise ValueError(f"max_entries must be >= 1 or None, got {max_entries}")
        self.max_entries = max_entries
        self._entries: OrderedDict[str, CacheEntry] = OrderedDict()
        self.hits = 0
        self.misses = 0
        self.evictions = 0

    def __contains__(self, key: object) -> bool:
        return key in self._entries

    def __len__(self) -> int:
        return len(self._entries)

    def get(self, key: str, default: Any = None) -> Any:
        """Return a deep copy of the payload for `key`, or `default`."""
        entry = self._entries.get(key)
        if entry is None:
            self.misses += 1
            return default
        self.hits += 1
        self._entries.move_to_end(key)
        return copy.deepcopy(entry.value)

    def entry(self, key: str) -> CacheEntry | None:
        """Return the stored entry without touching counters or recency."""
        return self._entries.get(key)

    def snapshot(self, key: str) -> Any:
        """Deep copy of the payload for `key` without counting a hit.

        Raises:
            KeyError: If `key` is not cached.
        """
        return copy.deepcopy(self._entries[key].value)

    def put(self, key: str, value: Any, *, created_at: float | None = None) -> bool:
        """Store a copy of `value` unless `key` is already present.

        Returns:
            True if the value was stored, False if an earlier entry was kept.
        """
        if key in self._entries:
            return False
        self._entries[key] = CacheEntry(
            key=key,
            value=copy.deepcopy(value),
            created_at=time.time() if created_at is None else created_at,
        )
        if self.max_entries is not None and len(self._entries) > self.max_entries:
            evicted, _ = self._entries.popitem(last=False)
            self.evictions += 1
            log.debug("Evicted cache entry %s.", evicted[:12])
        return True

    def clear(self) -> None:
        self._entries.clear()

    def stats(self) -> dict[str, int | None]:
        return {
            "size": len(self._entries),
            "max_entries": self.max_entries,
            "hits": self.hits,
            "misses": self.misses,
            "evictions": self.evictions,
        }
