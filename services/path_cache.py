"""
Path-based listing cache for the browse client.

Listings are cached per ``(path, content type)`` on a key-value store with two
freshness tiers:

- stale (soft TTL): still served, but a background refresh should be fired;
- expired (hard TTL): never served.

The root listing (departments) changes rarely, so it gets longer TTLs.

The cache is an optimization only. Every store failure (corrupt JSON, quota,
unreachable backend) degrades to "cache miss" and is logged, never raised.
"""

import json
import logging
import math
import time
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional

from cache import StorageError, StorageQuotaExceededError

logger = logging.getLogger("curb.path_cache")

HOUR = 60 * 60
DAY = 24 * HOUR

DEFAULT_TTL = 6 * HOUR
ROOT_TTL = 24 * HOUR
DEFAULT_HARD_EXPIRY = 24 * HOUR
ROOT_HARD_EXPIRY = 7 * DAY

STORAGE_PREFIX = "curb_path_"
META_KEY = "curb_cache_meta"
EVICTION_BATCH = 5


def is_root_path(path: Optional[str]) -> bool:
    return not (path or "").strip("/")


@dataclass
class CacheEntry:
    path: str
    content_type: str
    data: Any
    timestamp: float
    is_stale: bool
    is_expired: bool
    age: float


class PathCache:
    def __init__(self, store, clock: Callable[[], float] = time.time):
        self.store = store
        self.clock = clock

    @staticmethod
    def get_key(path: Optional[str], content_type: str = "folders") -> str:
        normalized = (path or "").strip("/").replace("/", "__")
        return f"{STORAGE_PREFIX}{normalized}_{content_type}"

    def is_stale(self, timestamp: float, path: Optional[str] = "") -> bool:
        ttl = ROOT_TTL if is_root_path(path) else DEFAULT_TTL
        return self.clock() - timestamp > ttl

    def is_expired(self, timestamp: float, path: Optional[str] = "") -> bool:
        hard_expiry = ROOT_HARD_EXPIRY if is_root_path(path) else DEFAULT_HARD_EXPIRY
        return self.clock() - timestamp > hard_expiry

    def _read_raw(self, key: str) -> Optional[Dict[str, Any]]:
        raw = self.store.get_item(key)
        if not raw:
            return None
        entry = json.loads(raw)
        if not isinstance(entry, dict) or "timestamp" not in entry:
            raise ValueError("cache entry has no timestamp")
        timestamp = float(entry["timestamp"])
        # NaN or infinity would never age out
        if not math.isfinite(timestamp):
            raise ValueError("cache entry timestamp is not finite")
        entry["timestamp"] = timestamp
        return entry

    def get(self, path: Optional[str], content_type: str = "folders") -> Optional[CacheEntry]:
        key = self.get_key(path, content_type)
        try:
            entry = self._read_raw(key)
            if entry is None:
                return None
            timestamp = entry["timestamp"]
            entry_path = entry.get("path", path)
            return CacheEntry(
                path=entry_path,
                content_type=entry.get("type", content_type),
                data=entry.get("data"),
                timestamp=timestamp,
                is_stale=self.is_stale(timestamp, entry_path),
                is_expired=self.is_expired(timestamp, entry_path),
                age=self.clock() - timestamp,
            )
        except (StorageError, ValueError, TypeError) as e:
            # Corrupt entries are left in place; the next set() overwrites them.
            logger.warning("Failed to read path cache entry", extra={"key": key, "error": str(e)})
            return None

    def set(self, path: Optional[str], content_type: str, data: Any) -> bool:
        key = self.get_key(path, content_type)
        serialized = json.dumps({
            "data": data,
            "timestamp": self.clock(),
            "path": path,
            "type": content_type,
        })
        try:
            self.store.set_item(key, serialized)
        except StorageQuotaExceededError as e:
            logger.warning("Path cache quota exceeded, evicting oldest entries", extra={"key": key, "error": str(e)})
            self.clear_oldest_entries(EVICTION_BATCH)
            try:
                self.store.set_item(key, serialized)
            except StorageError as retry_error:
                logger.warning("Path cache write dropped after eviction", extra={"key": key, "error": str(retry_error)})
                return False
        except StorageError as e:
            logger.warning("Failed to write path cache entry", extra={"key": key, "error": str(e)})
            return False

        self.update_meta({"lastUpdated": self.clock()})
        return True

    def has(self, path: Optional[str], content_type: str = "folders") -> bool:
        entry = self.get(path, content_type)
        return entry is not None and not entry.is_expired

    def has_fresh(self, path: Optional[str], content_type: str = "folders") -> bool:
        entry = self.get(path, content_type)
        return entry is not None and not entry.is_stale

    def remove(self, path: Optional[str], content_type: str = "folders") -> None:
        key = self.get_key(path, content_type)
        try:
            self.store.remove_item(key)
        except StorageError as e:
            logger.warning("Failed to remove path cache entry", extra={"key": key, "error": str(e)})

    def invalidate(self, path: Optional[str]) -> None:
        """Drop both the folders and the files listing of ``path``."""
        self.remove(path, "folders")
        self.remove(path, "files")

    def _owned_keys(self) -> List[str]:
        return [key for key in self.store.keys() if key.startswith(STORAGE_PREFIX)]

    def clear_all(self) -> bool:
        """Remove every cached listing; keys outside the cache prefix are left alone."""
        try:
            for key in self._owned_keys():
                self.store.remove_item(key)
        except StorageError as e:
            logger.warning("Failed to clear path cache", extra={"error": str(e)})
            return False
        self.update_meta({"lastCleared": self.clock()})
        return True

    def clear_oldest_entries(self, count: int = EVICTION_BATCH) -> int:
        entries = []
        try:
            for key in self._owned_keys():
                try:
                    timestamp = float(self._read_raw(key)["timestamp"])
                except (ValueError, TypeError):
                    # Unreadable entries go first
                    timestamp = 0.0
                entries.append((timestamp, key))
            entries.sort()
            removed = entries[:count]
            for _, key in removed:
                self.store.remove_item(key)
        except StorageError as e:
            logger.warning("Failed to clear oldest path cache entries", extra={"error": str(e)})
            return 0
        return len(removed)

    def ensure_version(self, version: str) -> bool:
        """
        Clear every cached listing when the application version changed.

        Returns True when a clear happened.
        """
        meta = self.get_meta()
        if meta.get("version") == version:
            return False
        cleared = bool(meta.get("version"))
        if cleared:
            logger.info("Application version changed, clearing path cache",
                        extra={"previous": meta.get("version"), "current": version})
            self.clear_all()
        self.update_meta({"version": version})
        return cleared

    def get_meta(self) -> Dict[str, Any]:
        try:
            raw = self.store.get_item(META_KEY)
            meta = json.loads(raw) if raw else {}
            return meta if isinstance(meta, dict) else {}
        except (StorageError, ValueError):
            return {}

    def update_meta(self, updates: Dict[str, Any]) -> None:
        meta = self.get_meta()
        meta.update(updates)
        try:
            self.store.set_item(META_KEY, json.dumps(meta))
        except StorageError as e:
            logger.warning("Failed to update path cache meta", extra={"error": str(e)})

    def cached_paths(self) -> List[Dict[str, Any]]:
        paths = []
        try:
            keys = self._owned_keys()
        except StorageError as e:
            logger.warning("Failed to list path cache entries", extra={"error": str(e)})
            return paths
        for key in keys:
            try:
                entry = self._read_raw(key)
            except (StorageError, ValueError, TypeError):
                continue
            if entry is None:
                continue
            timestamp = entry["timestamp"]
            paths.append({
                "path": entry.get("path"),
                "type": entry.get("type"),
                "timestamp": timestamp,
                "isStale": self.is_stale(timestamp, entry.get("path")),
                "age": self.clock() - timestamp,
            })
        return paths

    def total_size_kb(self) -> float:
        total = 0
        try:
            for key in self._owned_keys():
                value = self.store.get_item(key)
                if value:
                    total += len(value.encode("utf-8"))
        except StorageError as e:
            logger.warning("Failed to size path cache", extra={"error": str(e)})
        return round(total / 1024, 2)

    def status(self) -> Dict[str, Any]:
        paths = self.cached_paths()
        stale = sum(1 for p in paths if p["isStale"])
        return {
            "totalPaths": len(paths),
            "freshPaths": len(paths) - stale,
            "stalePaths": stale,
            "sizeKB": self.total_size_kb(),
        }

    def is_available(self) -> bool:
        test_key = "__storage_test__"
        try:
            self.store.set_item(test_key, test_key)
            self.store.remove_item(test_key)
            return True
        except StorageError:
            return False
