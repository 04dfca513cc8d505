import datetime
import json
import os
import uuid
from typing import List, Optional, Dict, Any

FOLDER_MIME_TYPE = "application/vnd.google-apps.folder"
DOCUMENT_MIME_TYPE = "application/pdf"


class GoogleDriveService:
    """
    In-memory stand-in for the Drive listing provider.

    The tree can be seeded from a JSON file (MOCK_DRIVE_FILE) shaped as nested
    nodes: ``{"name": ..., "children": [...]}`` for folders and
    ``{"name": ..., "mimeType": ..., "size": ...}`` for files.
    """

    def __init__(self, tree_file: Optional[str] = None, root_id: str = "root"):
        self.root_id = root_id
        self.db: Dict[str, Dict[str, Any]] = {
            "folders": {root_id: {"id": root_id, "name": "My Drive", "parents": []}},
            "files": {},
        }
        self.calls: List[tuple] = []
        if tree_file and os.path.exists(tree_file):
            with open(tree_file, "r", encoding="utf-8") as f:
                self.load_tree(json.load(f))

    def load_tree(self, tree: Dict[str, Any], parent_id: Optional[str] = None) -> None:
        parent_id = parent_id or self.root_id
        for child in tree.get("children", []):
            if child.get("mimeType", FOLDER_MIME_TYPE) == FOLDER_MIME_TYPE:
                folder = self.create_folder(child["name"], parent_id, folder_id=child.get("id"))
                self.load_tree(child, folder["id"])
            else:
                self.add_file(
                    child["name"],
                    parent_id,
                    mime_type=child["mimeType"],
                    size=child.get("size"),
                    file_id=child.get("id"),
                )

    def create_folder(self, name: str, parent_id: Optional[str] = None, folder_id: Optional[str] = None) -> Dict[str, Any]:
        folder_id = folder_id or str(uuid.uuid4())
        folder = {
            "id": folder_id,
            "name": name,
            "mimeType": FOLDER_MIME_TYPE,
            "parents": [parent_id or self.root_id],
            "modifiedTime": datetime.datetime.now(datetime.timezone.utc).isoformat(),
        }
        self.db["folders"][folder_id] = folder
        return folder

    def add_file(
        self,
        name: str,
        parent_id: Optional[str] = None,
        mime_type: str = DOCUMENT_MIME_TYPE,
        size: Optional[int] = None,
        file_id: Optional[str] = None,
    ) -> Dict[str, Any]:
        file_id = file_id or str(uuid.uuid4())
        file_meta = {
            "id": file_id,
            "name": name,
            "mimeType": mime_type,
            "parents": [parent_id or self.root_id],
            "modifiedTime": datetime.datetime.now(datetime.timezone.utc).isoformat(),
            "webViewLink": f"https://mock-drive.google.com/file/d/{file_id}/view",
        }
        if size is not None:
            # Drive returns sizes as strings
            file_meta["size"] = str(size)
        self.db["files"][file_id] = file_meta
        return file_meta

    def _children(self, collection: str, folder_id: str) -> List[Dict[str, Any]]:
        items = [item for item in self.db[collection].values() if folder_id in item.get("parents", [])]
        return sorted(items, key=lambda item: item["name"].casefold())

    def list_folders(self, folder_id: str) -> List[Dict[str, Any]]:
        self.calls.append(("list_folders", folder_id))
        return [
            {"id": f["id"], "name": f["name"], "modifiedTime": f["modifiedTime"]}
            for f in self._children("folders", folder_id)
        ]

    def list_files(self, folder_id: str) -> List[Dict[str, Any]]:
        self.calls.append(("list_files", folder_id))
        return [
            {k: v for k, v in f.items() if k not in ("mimeType", "parents")}
            for f in self._children("files", folder_id)
            if f.get("mimeType") == DOCUMENT_MIME_TYPE
        ]
