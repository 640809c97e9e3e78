"""In-memory TTL cache and fixed-window cooldown limiters.

The in-memory variants are plain dictionaries owned by the service instance.
They are not locked: mutations never await, so a single event loop cannot
interleave them. ``JsonCooldownLimiter`` keeps its marks in a JSON file so
separate CLI processes share one window.
"""

from __future__ import annotations

import json
import logging
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Dict, Generic, Optional, TypeVar

logger = logging.getLogger(__name__)

V = TypeVar("V")

Clock = Callable[[], float]


@dataclass(frozen=True)
class CacheEntry(Generic[V]):
    value: V
    expires_at: float


class TTLCache(Generic[V]):
    """Key/value store whose entries expire ``ttl`` seconds after ``set``.

    Expired entries are evicted lazily on lookup. There is no capacity bound.
    """

    def __init__(self, ttl: float, clock: Clock = time.time) -> None:
        self.ttl = ttl
        self._clock = clock
        self._store: Dict[str, CacheEntry[V]] = {}

    def get(self, key: str) -> Optional[V]:
        entry = self._store.get(key)
        if entry is None:
            return None
        if self._clock() > entry.expires_at:
            del self._store[key]
            return None
        return entry.value

    def set(self, key: str, value: V) -> None:
        self._store[key] = CacheEntry(value=value, expires_at=self._clock() + self.ttl)

    def clear(self) -> None:
        self._store.clear()

    def __contains__(self, key: object) -> bool:
        return isinstance(key, str) and self.get(key) is not None

    def __len__(self) -> int:
        return len(self._store)


class CooldownLimiter:
    """Per-key minimum interval between admitted operations."""

    def __init__(self, window: float, clock: Clock = time.time) -> None:
        self.window = window
        self._clock = clock
        self._last: Dict[str, float] = {}

    def try_admit(self, key: str) -> bool:
        now = self._clock()
        last = self._last.get(key)
        if last is not None and now - last < self.window:
            return False
        self._last[key] = now
        return True

    def remaining(self, key: str) -> float:
        last = self._last.get(key)
        if last is None:
            return 0.0
        return max(0.0, self.window - (self._clock() - last))

    def clear(self) -> None:
        self._last.clear()


class JsonCooldownLimiter(CooldownLimiter):
    """Cooldown marks persisted as ``{key: admitted_at}`` (epoch seconds).

    The file is re-read on every call; a corrupt file is treated as empty.
    Marks older than the window are dropped when the file is rewritten.
    """

    def __init__(self, path: Path, window: float, clock: Clock = time.time) -> None:
        super().__init__(window, clock=clock)
        self.path = Path(path)

    def _load(self) -> Dict[str, float]:
        if not self.path.exists():
            return {}
        try:
            data = json.loads(self.path.read_text(encoding="utf-8"))
        except json.JSONDecodeError:
            logger.warning("cooldown file %s is not valid JSON; ignoring it", self.path)
            return {}
        if not isinstance(data, dict):
            return {}
        return {str(k): float(v) for k, v in data.items() if isinstance(v, (int, float))}

    def _save(self) -> None:
        now = self._clock()
        live = {k: v for k, v in self._last.items() if now - v < self.window}
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self.path.write_text(json.dumps(live, indent=2), encoding="utf-8")

    def try_admit(self, key: str) -> bool:
        self._last = self._load()
        if not super().try_admit(key):
            return False
        self._save()
        return True

    def remaining(self, key: str) -> float:
        self._last = self._load()
        return super().remaining(key)

    def clear(self) -> None:
        super().clear()
        if self.path.exists():
            self.path.unlink()


__all__ = ["CacheEntry", "TTLCache", "CooldownLimiter", "JsonCooldownLimiter"]
