"""
Error taxonomy shared by the browse gateway, the HTTP router and the API client.

NotFound and UpstreamFailure stay distinct all the way to the caller so the UI
can tell "this content doesn't exist" apart from "try again later".
"""

from typing import Optional


class BrowseError(Exception):
    """Base class for browse failures."""

    pass


class PathNotFoundError(BrowseError):
    """A path segment does not resolve to any child folder."""

    def __init__(self, path: str, segment: Optional[str] = None, message: Optional[str] = None):
        self.path = path
        self.segment = segment
        if message is None:
            message = f'Folder "{segment}" not found in path' if segment else "Path not found"
        self.message = message
        super().__init__(message)


class UpstreamFailureError(BrowseError):
    """The storage provider (or the gateway, seen from the client) failed."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        self.message = message
        self.status_code = status_code
        super().__init__(message)


class ConfigurationError(BrowseError):
    """Required credentials or root folder configuration is missing."""

    pass
