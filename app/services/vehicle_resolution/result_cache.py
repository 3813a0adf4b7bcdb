import copy
import logging
import threading
import time
from collections import OrderedDict
from typing import Any, Callable, Optional

logger = logging.getLogger(__name__)

DEFAULT_TTL_SECONDS = 24 * 60 * 60
DEFAULT_MAX_ENTRIES = 1024


class ResultCache:
    """
    Time-bounded memo of resolved results keyed by VIN.

    Entries expire `ttl_seconds` after they were stored and are dropped when
    read after that. When more than `max_entries` are held, the oldest are
    evicted. Values are deep-copied in and out so callers cannot mutate a
    cached result.
    """

    def __init__(
        self,
        ttl_seconds: float = DEFAULT_TTL_SECONDS,
        max_entries: int = DEFAULT_MAX_ENTRIES,
        clock: Callable[[], float] = time.monotonic,
    ):
        if max_entries < 1:
            raise ValueError("max_entries must be at least 1")
        self.ttl_seconds = ttl_seconds
        self.max_entries = max_entries
        self._clock = clock
        self._entries: "OrderedDict[str, tuple]" = OrderedDict()
        self._lock = threading.Lock()

    def get(self, vin: str) -> Optional[Any]:
        with self._lock:
            entry = self._entries.get(vin)
            if entry is None:
                return None
            value, stored_at = entry
            if self._clock() - stored_at >= self.ttl_seconds:
                del self._entries[vin]
                logger.debug(f"Cache entry for {vin} expired")
                return None
            return copy.deepcopy(value)

    def set(self, vin: str, value: Any) -> None:
        with self._lock:
            self._entries.pop(vin, None)
            self._entries[vin] = (copy.deepcopy(value), self._clock())
            while len(self._entries) > self.max_entries:
                evicted, _ = self._entries.popitem(last=False)
                logger.debug(f"Cache full, evicted {evicted}")

    def __len__(self) -> int:
        return len(self._entries)
