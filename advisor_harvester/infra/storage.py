"""Response cache backends with per-entry expiry."""

from __future__ import annotations

import json
import time
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Any, Callable, Dict
from urllib.parse import quote

CACHE_SUFFIX = ".cache"


def _encode(value: Any, expires_at: float) -> dict[str, Any]:
    if isinstance(value, str):
        return {"type": "string", "value": value, "expires_at": expires_at}
    return {"type": "json", "value": json.dumps(value, ensure_ascii=False), "expires_at": expires_at}


def _decode(entry: dict[str, Any]) -> Any:
    kind = entry["type"]
    if kind == "string":
        return entry["value"]
    if kind == "json":
        return json.loads(entry["value"])
    raise ValueError(f"Unknown cache entry type: {kind!r}")


class BaseCache(ABC):
    """Key/value store where every entry carries an expiry timestamp.

    An ``expires_at`` of ``0`` means no expiry is tracked. Values are written
    only for a positive TTL.
    """

    def __init__(self, clock: Callable[[], float] | None = None) -> None:
        self._clock = clock or time.time

    def _expired(self, expires_at: float) -> bool:
        return bool(expires_at) and self._clock() > expires_at

    @abstractmethod
    def get(self, key: str) -> Any | None:
        """Return the live value for ``key`` or ``None``."""

    @abstractmethod
    def set(self, key: str, value: Any, ttl_seconds: float = 0) -> None:
        """Store ``value`` for ``ttl_seconds``; no-op when the TTL is not positive."""

    @abstractmethod
    def delete(self, key: str) -> bool:
        """Remove ``key``; return whether it existed."""

    @abstractmethod
    def purge_expired(self) -> int:
        """Drop every expired entry and return how many were removed."""

    @abstractmethod
    def clear(self) -> None:
        """Remove all entries."""


class FileCache(BaseCache):
    """One JSON file per key inside ``directory``."""

    def __init__(self, directory: Path, clock: Callable[[], float] | None = None) -> None:
        super().__init__(clock)
        self.directory = directory
        self.directory.mkdir(parents=True, exist_ok=True)

    def path_for(self, key: str) -> Path:
        return self.directory / f"{quote(key, safe='')}{CACHE_SUFFIX}"

    def get(self, key: str) -> Any | None:
        path = self.path_for(key)
        if not path.exists():
            return None
        try:
            entry = json.loads(path.read_text(encoding="utf-8"))
            if self._expired(float(entry.get("expires_at") or 0)):
                path.unlink(missing_ok=True)
                return None
            return _decode(entry)
        except (OSError, ValueError, KeyError, TypeError, AttributeError):
            # Corrupted entry: drop it and report a miss.
            try:
                path.unlink(missing_ok=True)
            except OSError:
                pass
            return None

    def set(self, key: str, value: Any, ttl_seconds: float = 0) -> None:
        if ttl_seconds <= 0:
            return
        entry = _encode(value, self._clock() + ttl_seconds)
        self.path_for(key).write_text(json.dumps(entry, ensure_ascii=False), encoding="utf-8")

    def delete(self, key: str) -> bool:
        path = self.path_for(key)
        if path.exists():
            path.unlink()
            return True
        return False

    def purge_expired(self) -> int:
        removed = 0
        for path in self.directory.glob(f"*{CACHE_SUFFIX}"):
            try:
                entry = json.loads(path.read_text(encoding="utf-8"))
                expires_at = float(entry.get("expires_at") or 0)
            except (OSError, ValueError, TypeError, AttributeError):
                continue
            if self._expired(expires_at):
                path.unlink(missing_ok=True)
                removed += 1
        return removed

    def clear(self) -> None:
        for path in self.directory.glob(f"*{CACHE_SUFFIX}"):
            path.unlink(missing_ok=True)

    def __len__(self) -> int:
        return sum(1 for _ in self.directory.glob(f"*{CACHE_SUFFIX}"))


class MemoryCache(BaseCache):
    """Process-local cache; contents vanish with the process."""

    def __init__(self, clock: Callable[[], float] | None = None) -> None:
        super().__init__(clock)
        self._store: Dict[str, tuple[Any, float]] = {}

    def get(self, key: str) -> Any | None:
        entry = self._store.get(key)
        if entry is None:
            return None
        value, expires_at = entry
        if self._expired(expires_at):
            del self._store[key]
            return None
        return value

    def set(self, key: str, value: Any, ttl_seconds: float = 0) -> None:
        if ttl_seconds <= 0:
            return
        self._store[key] = (value, self._clock() + ttl_seconds)

    def delete(self, key: str) -> bool:
        return self._store.pop(key, None) is not None

    def purge_expired(self) -> int:
        expired = [key for key, (_, expires_at) in self._store.items() if self._expired(expires_at)]
        for key in expired:
            del self._store[key]
        return len(expired)

    def clear(self) -> None:
        self._store.clear()

    def __len__(self) -> int:
        return len(self._store)


__all__ = ["BaseCache", "FileCache", "MemoryCache", "CACHE_SUFFIX"]
