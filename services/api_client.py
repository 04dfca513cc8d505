"""
Cache-aware client for the browse gateway.

``fetch()`` is the single entry point for listings:

1. an identical ``(path, type)`` request already in flight is shared;
2. a fresh cached listing is returned without touching the network;
3. a stale (not expired) listing is returned immediately while a background
   refresh updates the cache;
4. a miss or an expired listing blocks on the gateway.

``force_refresh`` drops the cached listing first and behaves as a miss.
"""

import asyncio
import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Optional, Set, Tuple

import httpx

from config import config
from schemas.browse import ContentType
from services.errors import PathNotFoundError, UpstreamFailureError
from services.path_cache import CacheEntry, PathCache

logger = logging.getLogger("curb.api_client")


class ResultSource(str, Enum):
    NETWORK = "network"
    CACHE = "cache"
    STALE_CACHE = "stale_cache"
    FALLBACK = "fallback"


@dataclass
class BrowseResult:
    path: str
    content_type: ContentType
    data: Any
    source: ResultSource
    warning: Optional[str] = None


class BrowseApiClient:
    def __init__(
        self,
        path_cache: PathCache,
        endpoint: Optional[str] = None,
        http_client: Optional[httpx.AsyncClient] = None,
        timeout: Optional[float] = None,
    ):
        self.path_cache = path_cache
        self.endpoint = (endpoint or config.API_ENDPOINT).rstrip("/")
        self.http_client = http_client or httpx.AsyncClient(
            timeout=timeout if timeout is not None else config.API_TIMEOUT
        )
        self._in_flight: Dict[Tuple[str, str], asyncio.Task] = {}
        self._background: Set[asyncio.Task] = set()

    async def fetch(
        self,
        path: str,
        content_type: ContentType = ContentType.FOLDERS,
        force_refresh: bool = False,
    ) -> BrowseResult:
        content_type = ContentType(content_type)
        # "Dept", "/Dept" and "/Dept/" share one cache entry and one request
        path = "/" + (path or "").strip("/")
        key = (path, content_type.value)

        in_flight = self._in_flight.get(key)
        if in_flight is not None:
            data = await in_flight
            return BrowseResult(path, content_type, data, ResultSource.NETWORK)

        fallback: Optional[CacheEntry] = None
        if force_refresh:
            fallback = self.path_cache.get(path, content_type.value)
            self.path_cache.invalidate(path)
        else:
            entry = self.path_cache.get(path, content_type.value)
            if entry is not None and not entry.is_expired:
                if not entry.is_stale:
                    return BrowseResult(path, content_type, entry.data, ResultSource.CACHE)
                self._refresh_in_background(path, content_type)
                return BrowseResult(path, content_type, entry.data, ResultSource.STALE_CACHE)

        try:
            data = await self._start_request(path, content_type)
        except (PathNotFoundError, UpstreamFailureError) as e:
            if fallback is not None and not fallback.is_expired and not isinstance(e, PathNotFoundError):
                warning = "Using cached data. Could not connect to server."
                logger.warning(warning, extra={"path": path, "error": str(e)})
                return BrowseResult(path, content_type, fallback.data, ResultSource.FALLBACK, warning=warning)
            raise

        return BrowseResult(path, content_type, data, ResultSource.NETWORK)

    def _start_request(self, path: str, content_type: ContentType) -> asyncio.Task:
        key = (path, content_type.value)
        task = self._in_flight.get(key)
        if task is None:
            task = asyncio.ensure_future(self._fetch_and_store(path, content_type))
            self._in_flight[key] = task
            task.add_done_callback(lambda _: self._in_flight.pop(key, None))
        return task

    async def _fetch_and_store(self, path: str, content_type: ContentType) -> Any:
        data = await self._request(path, content_type)
        self.path_cache.set(path, content_type.value, data)
        return data

    def _refresh_in_background(self, path: str, content_type: ContentType) -> None:
        async def _refresh():
            try:
                await self._start_request(path, content_type)
            except Exception as e:
                # The caller already has stale data to show.
                logger.info("Background refresh failed", extra={"path": path, "error": str(e)})

        task = asyncio.ensure_future(_refresh())
        self._background.add(task)
        task.add_done_callback(self._background.discard)

    async def _request(self, path: str, content_type: ContentType) -> Any:
        url = f"{self.endpoint}/browse"
        params = {"path": path or "/", "type": content_type.value}
        try:
            response = await self.http_client.get(url, params=params)
        except httpx.HTTPError as e:
            raise UpstreamFailureError(f"Request to {url} failed: {e}") from e

        if response.status_code == 404:
            body = self._json_body(response)
            raise PathNotFoundError(path=body.get("path", path), message=body.get("message"))

        if response.status_code != 200:
            body = self._json_body(response)
            message = body.get("message") or f"Server error: {response.status_code}"
            raise UpstreamFailureError(message, status_code=response.status_code)

        body = self._json_body(response)
        if "data" not in body:
            raise UpstreamFailureError("Malformed browse response: missing 'data'", status_code=response.status_code)
        return body["data"]

    @staticmethod
    def _json_body(response: httpx.Response) -> Dict[str, Any]:
        try:
            body = response.json()
        except ValueError:
            return {}
        return body if isinstance(body, dict) else {}

    async def drain(self) -> None:
        """Wait for every pending background refresh to finish."""
        while self._background:
            await asyncio.gather(*list(self._background), return_exceptions=True)

    async def aclose(self) -> None:
        await self.drain()
        await self.http_client.aclose()
