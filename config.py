import os
from typing import List


def normalize_cors_origins(origins_str: str) -> List[str]:
    """
    Normalize a comma-separated string of CORS origins.

    Handles:
    - Trim whitespace from each origin
    - Remove surrounding quotes (" and ')
    - Remove trailing slashes (/)
    - Filter out empty entries

    Args:
        origins_str: Comma-separated string of origins

    Returns:
        List of normalized, non-empty origins
    """
    if not origins_str:
        return []

    normalized = []
    for origin in origins_str.split(","):
        origin = origin.strip()

        if (origin.startswith('"') and origin.endswith('"')) or \
           (origin.startswith("'") and origin.endswith("'")):
            origin = origin[1:-1]

        origin = origin.strip().rstrip("/")

        if origin:
            normalized.append(origin)

    return normalized


class Config:
    # --- GOOGLE DRIVE ---
    # Either an API key (public folders) or a service account JSON (string or file path).
    GOOGLE_DRIVE_API_KEY = os.getenv("GOOGLE_DRIVE_API_KEY")
    GOOGLE_SERVICE_ACCOUNT_JSON = os.getenv("GOOGLE_SERVICE_ACCOUNT_JSON")
    DRIVE_ROOT_FOLDER_ID = os.getenv("GOOGLE_DRIVE_ROOT_FOLDER_ID", os.getenv("DRIVE_ROOT_FOLDER_ID"))
    USE_MOCK_DRIVE = os.getenv("USE_MOCK_DRIVE", "false").lower() == "true"
    # JSON tree served by the mock provider when USE_MOCK_DRIVE=true
    MOCK_DRIVE_FILE = os.getenv("MOCK_DRIVE_FILE", None)

    # --- GATEWAY CACHE ---
    # Process-local, best-effort. Also advertised as the shared-cache lifetime.
    BROWSE_CACHE_TTL = int(os.getenv("BROWSE_CACHE_TTL", "1800"))

    # --- DEPARTMENTS ---
    # Optional JSON override: {"default_levels": [...],
    # "level_exceptions": {...}, "shapes": {"Jupeb": ["subject", "session"]}}
    DEPARTMENT_POLICY_JSON = os.getenv("DEPARTMENT_POLICY_JSON", None)

    # --- CLIENT PATH CACHE ---
    # memory | file | redis
    PATH_CACHE_BACKEND = os.getenv("PATH_CACHE_BACKEND", "file")
    PATH_CACHE_FILE = os.getenv("PATH_CACHE_FILE", os.path.expanduser("~/.curb_path_cache.json"))
    REDIS_URL = os.getenv("REDIS_URL", "redis://localhost:6379/0")
    # A version bump clears every cached listing on the client
    APP_VERSION = os.getenv("APP_VERSION", "1.2.4")
    API_ENDPOINT = os.getenv("API_ENDPOINT", "http://localhost:8000/api")
    API_TIMEOUT = float(os.getenv("API_TIMEOUT", "20"))

    # --- CORS ---
    # The browse API is public and read-only.
    CORS_ORIGINS = os.getenv("CORS_ORIGINS", "*")
    CORS_ORIGIN_REGEX = os.getenv("CORS_ORIGIN_REGEX", None)

config = Config()
