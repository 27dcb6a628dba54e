"""Repository for expiring key/value entries ({key: {data, expiry}})."""
import time
from typing import Any, Callable, Dict, Optional

from .base import BaseRepository

# Default lifetime of a cache entry, in seconds (one hour)
DEFAULT_TTL = 60 * 60


class CacheRepository(BaseRepository):
    """Durable key/value store whose entries may expire.

    Schema::

        {"<key>": {"data": <any JSON value>, "expiry": <unix time> | null}, ...}

    An ``expiry`` of ``None`` means the entry never expires.  Expiry is
    checked lazily in :meth:`load`; there is no background eviction.  A
    write failure is logged and the in-memory copy stays authoritative for
    the rest of the process.
    """

    def __init__(self, file_path: str = '.filmfrenzy_store.json',
                 clock: Callable[[], float] = time.time) -> None:
        super().__init__(file_path)
        self._clock = clock
        raw: Dict = self._load({})
        self.data: Dict[str, Dict[str, Any]] = {
            k: v for k, v in raw.items()
            if isinstance(v, dict) and 'data' in v
        }

    def save(self, key: str, value: Any, ttl: Optional[float] = DEFAULT_TTL) -> None:
        """Store *value* under *key* for *ttl* seconds (``None`` = forever)."""
        expiry = None if ttl is None else self._clock() + ttl
        self.data[key] = {'data': value, 'expiry': expiry}
        self._persist()

    def load(self, key: str) -> Optional[Any]:
        """Return the value stored under *key*.

        Returns ``None`` when the key is unknown.  An expired entry is
        removed from the store and also yields ``None``.
        """
        item = self.data.get(key)
        if item is None:
            return None
        expiry = item.get('expiry')
        if expiry is not None and self._clock() > expiry:
            self._log.debug("Cache entry %s expired", key)
            del self.data[key]
            self._persist()
            return None
        return item['data']

    def clear(self, key: str) -> bool:
        """Remove *key*; returns ``True`` if it existed."""
        if key not in self.data:
            return False
        del self.data[key]
        self._persist()
        return True

    def clear_all(self) -> None:
        """Remove every entry."""
        self.data.clear()
        self._persist()

    def __contains__(self, key: str) -> bool:
        return key in self.data

    def _persist(self) -> None:
        try:
            self._save(self.data)
        except (IOError, OSError) as exc:
            self._log.error("Error saving %s: %s", self._path, exc)
