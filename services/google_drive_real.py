from typing import List, Dict, Any, Optional

from services.errors import ConfigurationError
from services.google_auth import GoogleAuthService
from utils.prometheus import DRIVE_CALLS
from utils.retry import exponential_backoff_retry
from utils.structured_logging import drive_logger

SCOPES = ['https://www.googleapis.com/auth/drive.readonly']

FOLDER_MIME_TYPE = 'application/vnd.google-apps.folder'
DOCUMENT_MIME_TYPE = 'application/pdf'

FOLDER_FIELDS = 'nextPageToken, files(id, name, modifiedTime)'
FILE_FIELDS = 'nextPageToken, files(id, name, modifiedTime, size, webViewLink, webContentLink)'


class GoogleDriveRealService:
    """Read-only Google Drive listing provider."""

    def __init__(self, auth_service: Optional[GoogleAuthService] = None, page_size: int = 1000):
        self.auth_service = auth_service or GoogleAuthService(scopes=SCOPES)
        self.service = self.auth_service.get_service('drive', 'v3')
        self.page_size = page_size

    def _check_auth(self):
        if not self.service:
            raise ConfigurationError(
                "Drive Service configuration error: GOOGLE_DRIVE_API_KEY or GOOGLE_SERVICE_ACCOUNT_JSON is missing or invalid."
            )

    def _list_children(self, folder_id: str, mime_type: str, fields: str, operation: str) -> List[Dict[str, Any]]:
        self._check_auth()

        query = f"'{folder_id}' in parents and mimeType='{mime_type}' and trashed=false"

        @exponential_backoff_retry(max_retries=3, initial_delay=1.0)
        def _api_call(page_token: Optional[str]):
            return self.service.files().list(
                q=query,
                fields=fields,
                orderBy='name',
                pageSize=self.page_size,
                pageToken=page_token,
                supportsAllDrives=True,
                includeItemsFromAllDrives=True,
            ).execute()

        items: List[Dict[str, Any]] = []
        page_token = None
        with DRIVE_CALLS.labels(operation=operation).time():
            while True:
                results = _api_call(page_token)
                items.extend(results.get('files', []))
                page_token = results.get('nextPageToken')
                if not page_token:
                    break

        drive_logger.info(
            action=operation,
            message=f"Listed {len(items)} children",
            folder_id=folder_id,
            count=len(items),
        )
        return items

    def list_folders(self, folder_id: str) -> List[Dict[str, Any]]:
        """Immediate child folders of ``folder_id``, ordered by name."""
        return self._list_children(folder_id, FOLDER_MIME_TYPE, FOLDER_FIELDS, "list_folders")

    def list_files(self, folder_id: str) -> List[Dict[str, Any]]:
        """Immediate child PDF files of ``folder_id``, ordered by name."""
        return self._list_children(folder_id, DOCUMENT_MIME_TYPE, FILE_FIELDS, "list_files")
