import json
import logging
import os
import time
from typing import Any, Callable, Dict, List, Optional, Tuple

import redis

from config import config


class StorageError(Exception):
    """A key-value store rejected a read or write."""

    pass


class StorageQuotaExceededError(StorageError):
    """The key-value store is out of space."""

    pass


class MemoryStore:
    """
    Dict-backed key-value store.

    ``max_bytes`` emulates a browser storage quota: a write that would push the
    total size of keys and values past it raises StorageQuotaExceededError.
    """

    def __init__(self, max_bytes: Optional[int] = None):
        self.max_bytes = max_bytes
        self._data: Dict[str, str] = {}

    def get_item(self, key: str) -> Optional[str]:
        return self._data.get(key)

    def set_item(self, key: str, value: str) -> None:
        if self.max_bytes is not None:
            current = self._data.get(key)
            size = self.size_bytes() + len(key) + len(value)
            if current is not None:
                size -= len(key) + len(current)
            if size > self.max_bytes:
                raise StorageQuotaExceededError(f"Quota of {self.max_bytes} bytes exceeded writing '{key}'")
        self._data[key] = value

    def remove_item(self, key: str) -> None:
        self._data.pop(key, None)

    def keys(self) -> List[str]:
        return list(self._data.keys())

    def size_bytes(self) -> int:
        return sum(len(k) + len(v) for k, v in self._data.items())


class JsonFileStore(MemoryStore):
    """Key-value store persisted to a single JSON file, rewritten on every change."""

    def __init__(self, path: str, max_bytes: Optional[int] = None):
        super().__init__(max_bytes=max_bytes)
        self.path = path
        self._load()

    def _load(self):
        if not os.path.exists(self.path):
            return
        with open(self.path, "r", encoding="utf-8") as f:
            try:
                loaded = json.load(f)
            except json.JSONDecodeError:
                logging.getLogger("curb.cache").warning(
                    "Cache file is not valid JSON, starting empty", extra={"cache_file": self.path}
                )
                loaded = {}
        if isinstance(loaded, dict):
            self._data = {str(k): str(v) for k, v in loaded.items()}

    def _save(self):
        directory = os.path.dirname(self.path)
        tmp_path = f"{self.path}.tmp"
        try:
            if directory:
                os.makedirs(directory, exist_ok=True)
            with open(tmp_path, "w", encoding="utf-8") as f:
                json.dump(self._data, f)
            os.replace(tmp_path, self.path)
        except OSError as e:
            raise StorageError(f"Failed to write cache file '{self.path}': {e}") from e

    def set_item(self, key: str, value: str) -> None:
        previous = self._data.get(key)
        super().set_item(key, value)
        try:
            self._save()
        except StorageError:
            # Memory must not hold what the file does not
            self._restore(key, previous)
            raise

    def remove_item(self, key: str) -> None:
        if key not in self._data:
            return
        previous = self._data[key]
        super().remove_item(key)
        try:
            self._save()
        except StorageError:
            self._restore(key, previous)
            raise

    def _restore(self, key: str, previous: Optional[str]) -> None:
        if previous is None:
            self._data.pop(key, None)
        else:
            self._data[key] = previous


class RedisStore:
    """Redis-backed key-value store for the client path cache."""

    def __init__(self, url: Optional[str] = None, client: Optional[redis.Redis] = None):
        self.url = url or config.REDIS_URL
        self._logger = logging.getLogger("curb.cache")
        self._last_failure_logged_at: Optional[float] = None
        self.client = client or redis.from_url(
            self.url,
            decode_responses=True,
            socket_connect_timeout=5,
            socket_timeout=5,
            health_check_interval=30,
            max_connections=20,
            retry_on_timeout=True,
            client_name="curb-path-cache",
        )

    def get_item(self, key: str) -> Optional[str]:
        try:
            return self.client.get(key)
        except redis.RedisError as e:
            self._log_failure(f"Redis GET error for key '{key}'", e)
            raise StorageError(str(e)) from e

    def set_item(self, key: str, value: str) -> None:
        try:
            self.client.set(key, value)
        except redis.exceptions.ResponseError as e:
            # maxmemory reached with a noeviction policy
            if str(e).startswith("OOM"):
                raise StorageQuotaExceededError(str(e)) from e
            self._log_failure(f"Redis SET error for key '{key}'", e)
            raise StorageError(str(e)) from e
        except redis.RedisError as e:
            self._log_failure(f"Redis SET error for key '{key}'", e)
            raise StorageError(str(e)) from e

    def remove_item(self, key: str) -> None:
        try:
            self.client.delete(key)
        except redis.RedisError as e:
            self._log_failure(f"Redis DELETE error for key '{key}'", e)
            raise StorageError(str(e)) from e

    def keys(self) -> List[str]:
        try:
            return list(self.client.scan_iter(match="curb_*"))
        except redis.RedisError as e:
            self._log_failure("Redis SCAN error", e)
            raise StorageError(str(e)) from e

    def _log_failure(self, message: str, exception: Exception) -> None:
        """Log failures without flooding logs."""

        now = time.time()
        if self._last_failure_logged_at is None or now - self._last_failure_logged_at > 60:
            self._last_failure_logged_at = now
            self._logger.warning(message, extra={"error": str(exception)})


def build_store(backend: Optional[str] = None):
    """Build the path cache backing store selected by PATH_CACHE_BACKEND."""
    backend = (backend or config.PATH_CACHE_BACKEND).lower()
    if backend == "memory":
        return MemoryStore()
    if backend == "redis":
        return RedisStore()
    if backend == "file":
        return JsonFileStore(config.PATH_CACHE_FILE)
    raise ValueError(f"Unknown PATH_CACHE_BACKEND '{backend}'. Allowed: memory, file, redis")


class BrowseResultCache:
    """
    Process-local TTL cache for gateway listings.

    Best-effort only: it does not survive restarts and is not shared between
    worker processes.
    """

    def __init__(self, ttl: Optional[int] = None, clock: Callable[[], float] = time.time):
        self.ttl = ttl if ttl is not None else config.BROWSE_CACHE_TTL
        self.clock = clock
        self._entries: Dict[str, Tuple[Any, float]] = {}

    def get(self, key: str) -> Optional[Tuple[Any, float]]:
        """Return ``(data, fetched_at)`` or None when absent or older than the TTL."""
        entry = self._entries.get(key)
        if entry is None:
            return None
        if self.clock() - entry[1] >= self.ttl:
            del self._entries[key]
            return None
        return entry

    def set(self, key: str, data: Any) -> float:
        fetched_at = self.clock()
        self._entries[key] = (data, fetched_at)
        return fetched_at

    def clear(self) -> None:
        self._entries.clear()

    def __len__(self) -> int:
        return len(self._entries)
