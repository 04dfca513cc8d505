"""
Structured JSON logging for browse operations.
Provides consistent logging format with required fields:
- service, action, status, path, content_type, folder_id
- error_type, error_message (in case of failure)
- Masks secrets (Google API keys passed as ``key=`` query parameters)
"""

import logging
import json
import re
from datetime import datetime
from typing import Optional

# Google API keys: "AIza" followed by 35 URL-safe characters
_API_KEY_PATTERN = re.compile(r"AIza[0-9A-Za-z_\-]{35}")
_KEY_PARAM_PATTERN = re.compile(r"([?&]key=)[^&\s\"']+")


def mask_api_key(key: Optional[str]) -> Optional[str]:
    """
    Partially mask an API key for logging.
    Example: AIzaSyA...xyz -> AIza***xyz
    """
    if not key or len(key) <= 8:
        return key
    return f"{key[:4]}***{key[-3:]}"


def mask_secrets_in_text(text: str) -> str:
    """
    Find and mask API keys in a text string (error messages often echo the request URL).
    """
    text = _KEY_PARAM_PATTERN.sub(lambda m: m.group(1) + "***", text)
    return _API_KEY_PATTERN.sub(lambda m: mask_api_key(m.group(0)), text)


class StructuredLogger:
    """
    Structured logger for browse operations.
    Outputs JSON-formatted logs with consistent fields.
    """

    def __init__(self, service: str = "browse", logger_name: str = "curb.browse"):
        self.service = service
        self.logger = logging.getLogger(logger_name)

    def _log(
        self,
        level: int,
        action: str,
        status: str,
        message: str,
        path: Optional[str] = None,
        content_type: Optional[str] = None,
        folder_id: Optional[str] = None,
        error_type: Optional[str] = None,
        error_message: Optional[str] = None,
        **extra_fields
    ):
        log_data = {
            "timestamp": datetime.now().astimezone().isoformat(),
            "service": self.service,
            "action": action,
            "status": status,
            "message": mask_secrets_in_text(message),
        }

        if path is not None:
            log_data["path"] = path
        if content_type:
            log_data["content_type"] = content_type
        if folder_id:
            log_data["folder_id"] = folder_id
        if error_type:
            log_data["error_type"] = error_type
        if error_message:
            log_data["error_message"] = mask_secrets_in_text(error_message)

        for key, value in extra_fields.items():
            if isinstance(value, str):
                log_data[key] = mask_secrets_in_text(value)
            else:
                log_data[key] = value

        self.logger.log(level, json.dumps(log_data, default=str))

    def info(
        self,
        action: str,
        status: str = "success",
        message: str = "",
        path: Optional[str] = None,
        content_type: Optional[str] = None,
        **extra_fields
    ):
        """
        Log informational message.

        Args:
            action: The operation being performed (e.g., "browse", "resolve_path")
            status: Status of the operation (default: "success")
            message: Human-readable message
            path: Logical folder path
            content_type: "folders" or "files"
            **extra_fields: Additional fields to include in the log
        """
        self._log(logging.INFO, action=action, status=status, message=message,
                  path=path, content_type=content_type, **extra_fields)

    def warning(
        self,
        action: str,
        status: str = "warning",
        message: str = "",
        path: Optional[str] = None,
        content_type: Optional[str] = None,
        **extra_fields
    ):
        """Log warning message."""
        self._log(logging.WARNING, action=action, status=status, message=message,
                  path=path, content_type=content_type, **extra_fields)

    def error(
        self,
        action: str,
        message: str,
        error: Optional[Exception] = None,
        path: Optional[str] = None,
        content_type: Optional[str] = None,
        **extra_fields
    ):
        """
        Log error message.

        Args:
            action: The operation that failed
            message: Human-readable error message
            error: Exception object (if available)
            path: Logical folder path
            content_type: "folders" or "files"
            **extra_fields: Additional fields
        """
        error_type = None
        error_message = None

        if error:
            error_type = type(error).__name__
            error_message = str(error)

        self._log(logging.ERROR, action=action, status="error", message=message,
                  path=path, content_type=content_type,
                  error_type=error_type, error_message=error_message, **extra_fields)


browse_logger = StructuredLogger(service="browse")
drive_logger = StructuredLogger(service="drive", logger_name="curb.drive")
