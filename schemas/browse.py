from enum import Enum
from typing import List, Optional, Union

from pydantic import BaseModel


class ContentType(str, Enum):
    FOLDERS = "folders"
    FILES = "files"


class FolderDescriptor(BaseModel):
    id: str
    name: str
    modifiedTime: Optional[str] = None


class FileDescriptor(BaseModel):
    id: str
    name: str
    modifiedTime: Optional[str] = None
    size: Optional[int] = None
    webViewLink: str
    webContentLink: str


class BrowseResponse(BaseModel):
    path: str
    type: ContentType
    data: List[Union[FileDescriptor, FolderDescriptor]]
    cached: bool
    timestamp: int  # epoch milliseconds


class BrowseErrorResponse(BaseModel):
    error: str
    message: str
    path: Optional[str] = None
