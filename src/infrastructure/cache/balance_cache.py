import time
from typing import Callable, Dict, Optional, Tuple

from src.core.entities.account import AccountState

CacheKey = Tuple[str, str]  # (chain, address)


class BalanceCache:
    """
    Process-local TTL cache for account balance lookups.

    Entries expire by wall-clock age. Reads never mutate; writes replace
    the whole entry, so concurrent sessions see last-write-wins.
    """

    def __init__(self, ttl_seconds: float = 30.0, clock: Callable[[], float] = time.time):
        self.ttl_seconds = ttl_seconds
        self._clock = clock
        self._entries: Dict[CacheKey, Tuple[AccountState, float]] = {}

    def get(self, key: CacheKey) -> Optional[AccountState]:
        entry = self._entries.get(key)
        if entry is None:
            return None
        value, stored_at = entry
        if self._clock() - stored_at >= self.ttl_seconds:
            return None
        return value

    def set(self, key: CacheKey, value: AccountState, timestamp: Optional[float] = None) -> None:
        self._entries[key] = (value, self._clock() if timestamp is None else timestamp)
