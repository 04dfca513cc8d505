"""
Browse router: ``GET /browse?path=<path>&type=folders|files``.

Lists the subfolders or PDF files of a logical folder path. Responses are
public and advertise a 30-minute shared-cache lifetime.
"""

from functools import lru_cache

from fastapi import APIRouter, Depends, Query, Response
from fastapi.responses import JSONResponse

from config import config
from schemas.browse import BrowseErrorResponse, BrowseResponse, ContentType
from services.browse_gateway import BrowseGateway
from services.department_policy import DepartmentPolicy
from services.errors import PathNotFoundError, UpstreamFailureError
from utils.prometheus import BROWSE_REQUESTS
from utils.structured_logging import browse_logger

router = APIRouter(tags=["browse"])

CACHE_CONTROL = f"public, max-age={config.BROWSE_CACHE_TTL}"


@lru_cache(maxsize=1)
def get_gateway() -> BrowseGateway:
    """Build the gateway once per process, with the provider selected by config."""
    if config.USE_MOCK_DRIVE:
        from services.google_drive_mock import GoogleDriveService

        provider = GoogleDriveService(tree_file=config.MOCK_DRIVE_FILE)
        root_folder_id = config.DRIVE_ROOT_FOLDER_ID or provider.root_id
    else:
        from services.google_drive_real import GoogleDriveRealService

        provider = GoogleDriveRealService()
        root_folder_id = config.DRIVE_ROOT_FOLDER_ID

    return BrowseGateway(provider, root_folder_id, policy=DepartmentPolicy.from_config())


@router.get(
    "/browse",
    response_model=BrowseResponse,
    response_model_exclude_none=True,
    responses={404: {"model": BrowseErrorResponse}, 500: {"model": BrowseErrorResponse}},
)
async def browse(
    response: Response,
    path: str = Query(default="/", description="Folder path, e.g. /Computer Science/100 Level"),
    content_type: ContentType = Query(default=ContentType.FOLDERS, alias="type", description="What to list: folders or files"),
    gateway: BrowseGateway = Depends(get_gateway),
):
    try:
        listing = await gateway.browse(path, content_type)
    except PathNotFoundError as e:
        BROWSE_REQUESTS.labels(content_type=content_type.value, outcome="not_found").inc()
        browse_logger.warning(action="browse", status="not_found", message=e.message, path=path,
                              content_type=content_type.value, segment=e.segment)
        return JSONResponse(
            status_code=404,
            content={"error": "Path not found", "message": e.message, "path": path},
        )
    except UpstreamFailureError as e:
        BROWSE_REQUESTS.labels(content_type=content_type.value, outcome="error").inc()
        return JSONResponse(
            status_code=500,
            content={"error": "Failed to fetch data", "message": e.message},
        )

    BROWSE_REQUESTS.labels(content_type=content_type.value, outcome="hit" if listing.cached else "miss").inc()
    response.headers["X-Cache"] = "HIT" if listing.cached else "MISS"
    response.headers["Cache-Control"] = CACHE_CONTROL

    return {
        "path": listing.path,
        "type": listing.content_type,
        "data": listing.data,
        "cached": listing.cached,
        "timestamp": int(listing.fetched_at * 1000),
    }
