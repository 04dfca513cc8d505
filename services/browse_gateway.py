"""
Remote browse gateway: resolves a logical path such as
``/Computer Science/100 Level/1st Semester`` against the Drive folder tree and
lists the children of the target folder.
"""

import asyncio
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

from cache import BrowseResultCache
from schemas.browse import ContentType
from services.department_policy import DepartmentPolicy, normalize_folder_name
from services.errors import ConfigurationError, PathNotFoundError, UpstreamFailureError
from utils.structured_logging import browse_logger

# Administrators name session folders "2024/25 Session"; the slash would break
# path splitting, so URLs and cache keys carry "2024~25 Session" instead.
SLASH_PLACEHOLDER = "~"


def split_path(path: Optional[str]) -> List[str]:
    """Path segments with empty ones dropped, so "/" and "" both mean root."""
    return [segment for segment in (path or "").split("/") if segment]


def decode_placeholder(segment: str) -> str:
    return segment.replace(SLASH_PLACEHOLDER, "/")


def view_link(file_id: str) -> str:
    return f"https://drive.google.com/file/d/{file_id}/view"


def download_link(file_id: str) -> str:
    return f"https://drive.google.com/uc?export=download&id={file_id}"


@dataclass
class BrowseListing:
    path: str
    content_type: ContentType
    data: List[Dict[str, Any]]
    cached: bool
    fetched_at: float


class BrowseGateway:
    def __init__(
        self,
        provider,
        root_folder_id: Optional[str],
        policy: Optional[DepartmentPolicy] = None,
        result_cache: Optional[BrowseResultCache] = None,
    ):
        self.provider = provider
        self.root_folder_id = root_folder_id
        self.policy = policy or DepartmentPolicy()
        self.result_cache = result_cache if result_cache is not None else BrowseResultCache()

    @staticmethod
    def cache_key(segments: List[str], content_type: ContentType) -> str:
        return "/" + "/".join(segments) + f":{content_type.value}"

    async def _call_provider(self, method, folder_id: str, path: str) -> List[Dict[str, Any]]:
        try:
            return await asyncio.to_thread(method, folder_id)
        except ConfigurationError:
            raise
        except Exception as e:
            browse_logger.error(action="provider_call", message="Drive listing failed", error=e, path=path)
            raise UpstreamFailureError(str(e)) from e

    async def resolve(self, segments: List[str], path: str) -> str:
        """Walk the segments in order and return the Drive id of the target folder."""
        current_id = self.root_folder_id
        for segment in segments:
            target = normalize_folder_name(decode_placeholder(segment))
            children = await self._call_provider(self.provider.list_folders, current_id, path)
            match = next(
                (child for child in children if normalize_folder_name(child.get("name")) == target),
                None,
            )
            if match is None:
                raise PathNotFoundError(path=path, segment=segment)
            current_id = match["id"]
        return current_id

    async def browse(self, path: Optional[str], content_type: ContentType = ContentType.FOLDERS) -> BrowseListing:
        if not self.root_folder_id:
            raise ConfigurationError("API credentials not configured.")

        path = path or "/"
        content_type = ContentType(content_type)
        segments = split_path(path)
        key = self.cache_key(segments, content_type)

        cached = self.result_cache.get(key)
        if cached is not None:
            data, fetched_at = cached
            return BrowseListing(path=path, content_type=content_type, data=data, cached=True, fetched_at=fetched_at)

        folder_id = await self.resolve(segments, path)

        if content_type is ContentType.FILES:
            files = await self._call_provider(self.provider.list_files, folder_id, path)
            data = [self._describe_file(f) for f in files]
        else:
            folders = await self._call_provider(self.provider.list_folders, folder_id, path)
            data = [
                {"id": f["id"], "name": normalize_folder_name(f.get("name")), "modifiedTime": f.get("modifiedTime")}
                for f in folders
            ]
            data = self.policy.filter_children(segments, data)

        fetched_at = self.result_cache.set(key, data)
        browse_logger.info(
            action="browse",
            message=f"Listed {len(data)} {content_type.value}",
            path=path,
            content_type=content_type.value,
            folder_id=folder_id,
        )
        return BrowseListing(path=path, content_type=content_type, data=data, cached=False, fetched_at=fetched_at)

    @staticmethod
    def _describe_file(item: Dict[str, Any]) -> Dict[str, Any]:
        size = item.get("size")
        return {
            "id": item["id"],
            "name": item.get("name"),
            "modifiedTime": item.get("modifiedTime"),
            "size": int(size) if size is not None else None,
            "webViewLink": item.get("webViewLink") or view_link(item["id"]),
            "webContentLink": item.get("webContentLink") or download_link(item["id"]),
        }
