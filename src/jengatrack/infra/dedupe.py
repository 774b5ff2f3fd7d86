"""In-process cache of recently seen provider message ids.

Twilio retries a webhook when it does not get a timely 2xx; a retried
MessageSid seen within the TTL is dropped. Bounded by max_entries; the oldest
entries are evicted first. Not shared across processes.
"""

import os
import threading
import time
from collections import OrderedDict
from typing import Callable

DEFAULT_TTL_SECONDS = 600
DEFAULT_MAX_ENTRIES = 10_000


class RecentMessageCache:
    def __init__(
        self,
        ttl_seconds: float = DEFAULT_TTL_SECONDS,
        max_entries: int = DEFAULT_MAX_ENTRIES,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.ttl_seconds = ttl_seconds
        self.max_entries = max_entries
        self._clock = clock
        self._seen: OrderedDict[str, float] = OrderedDict()
        self._lock = threading.Lock()

    @property
    def enabled(self) -> bool:
        return self.ttl_seconds > 0

    def _evict(self, now: float) -> None:
        while self._seen:
            key, seen_at = next(iter(self._seen.items()))
            if now - seen_at < self.ttl_seconds and len(self._seen) <= self.max_entries:
                break
            del self._seen[key]

    def check_and_add(self, message_id: str | None) -> bool:
        """Record message_id. Returns True if it was already seen (a duplicate)."""
        if not message_id or not self.enabled:
            return False

        with self._lock:
            now = self._clock()
            self._evict(now)
            if message_id in self._seen:
                return True
            self._seen[message_id] = now
            self._evict(now)
            return False

    def clear(self) -> None:
        with self._lock:
            self._seen.clear()

    def __len__(self) -> int:
        return len(self._seen)


def ttl_from_env() -> float:
    """WHATSAPP_DEDUPE_TTL_SECONDS; 0 disables dedupe. Invalid values use the default."""
    raw = os.environ.get("WHATSAPP_DEDUPE_TTL_SECONDS")
    if raw is None or raw.strip() == "":
        return DEFAULT_TTL_SECONDS
    try:
        return max(0.0, float(raw))
    except ValueError:
        return DEFAULT_TTL_SECONDS
