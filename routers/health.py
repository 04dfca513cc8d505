"""
Health check endpoint for monitoring the browse gateway.
"""

from datetime import datetime, timezone

from fastapi import APIRouter

from config import config

router = APIRouter(tags=["health"])


@router.get("/health")
def health_check():
    """
    Report whether the gateway is configured to reach Drive.

    Returns:
        - status: "healthy" when a root folder and credentials are configured, else "degraded"
        - provider: "mock" or "google_drive"
        - root_configured / credentials_configured: individual configuration checks
        - timestamp: current server time
    """
    credentials_configured = config.USE_MOCK_DRIVE or bool(
        config.GOOGLE_DRIVE_API_KEY or config.GOOGLE_SERVICE_ACCOUNT_JSON
    )
    root_configured = config.USE_MOCK_DRIVE or bool(config.DRIVE_ROOT_FOLDER_ID)

    return {
        "status": "healthy" if credentials_configured and root_configured else "degraded",
        "provider": "mock" if config.USE_MOCK_DRIVE else "google_drive",
        "root_configured": root_configured,
        "credentials_configured": credentials_configured,
        "timestamp": datetime.now(timezone.utc).isoformat(),
    }
