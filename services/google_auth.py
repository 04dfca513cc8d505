import json
import logging
from typing import List, Optional

from google.oauth2 import service_account
from googleapiclient.discovery import build

from config import config

logger = logging.getLogger("curb.auth")


class GoogleAuthService:
    """
    Builds Google API clients for the gateway.

    Public shared folders only need an API key (GOOGLE_DRIVE_API_KEY); private
    folders use a Service Account (GOOGLE_SERVICE_ACCOUNT_JSON, inline JSON or
    a file path). The service account wins when both are set.
    """

    def __init__(self, scopes: List[str], api_key: Optional[str] = None, service_account_json: Optional[str] = None):
        self.scopes = scopes
        self.api_key = api_key if api_key is not None else config.GOOGLE_DRIVE_API_KEY
        self.service_account_json = (
            service_account_json if service_account_json is not None else config.GOOGLE_SERVICE_ACCOUNT_JSON
        )
        self.creds = None
        self._authenticate()

    def _authenticate(self):
        if not self.service_account_json:
            if not self.api_key:
                logger.warning("Neither GOOGLE_SERVICE_ACCOUNT_JSON nor GOOGLE_DRIVE_API_KEY is set")
            return

        try:
            if self.service_account_json.strip().startswith("{"):
                info = json.loads(self.service_account_json)
                self.creds = service_account.Credentials.from_service_account_info(info, scopes=self.scopes)
            else:
                self.creds = service_account.Credentials.from_service_account_file(
                    self.service_account_json, scopes=self.scopes
                )
            logger.info("Authentication: using Service Account")
        except (ValueError, OSError) as e:
            logger.error("Service account authentication failed", extra={"error": str(e)})
            self.creds = None

    @property
    def is_configured(self) -> bool:
        return bool(self.creds or self.api_key)

    def get_service(self, service_name: str, version: str):
        if self.creds:
            return build(service_name, version, credentials=self.creds, cache_discovery=False)
        if self.api_key:
            return build(service_name, version, developerKey=self.api_key, cache_discovery=False)
        return None
