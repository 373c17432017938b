# codeforge/core/cache.py
import logging
import time
from collections import OrderedDict
from typing import Any, Optional

from codeforge.utils.config import CACHE_MAX_ENTRIES, CACHE_TTL

logger = logging.getLogger(__name__)


class TTLResultCache:
    """
    In-process ResultCache. Entries are {"value", "ts"} and expire after ttl
    seconds; past max_entries the oldest entry is evicted.
    """

    def __init__(self, ttl: int = CACHE_TTL, max_entries: int = CACHE_MAX_ENTRIES, clock=time.time):
        self.ttl = ttl
        self.max_entries = max(1, max_entries)
        self._clock = clock
        self._entries: "OrderedDict[str, dict]" = OrderedDict()

    async def get(self, key: str) -> Optional[Any]:
        entry = self._entries.get(key)
        if entry is None:
            return None
        if self._clock() - entry["ts"] >= self.ttl:
            logger.debug("cache entry %s expired", key)
            self._entries.pop(key, None)
            return None
        return entry["value"]

    async def set(self, key: str, value: Any, ttl: Optional[int] = None) -> None:
        # per-call ttl shifts the timestamp so expiry still uses one comparison
        ts = self._clock()
        if ttl is not None:
            ts -= self.ttl - ttl
        self._entries.pop(key, None)
        self._entries[key] = {"value": value, "ts": ts}
        while len(self._entries) > self.max_entries:
            evicted, _ = self._entries.popitem(last=False)
            logger.debug("cache full, evicted %s", evicted)

    def __len__(self) -> int:
        return len(self._entries)
