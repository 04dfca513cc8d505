import os
import sys

import pytest

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from cache import BrowseResultCache, MemoryStore
from services.browse_gateway import BrowseGateway
from services.department_policy import DepartmentPolicy
from services.google_drive_mock import GoogleDriveService
from services.path_cache import PathCache


class FakeClock:
    """Manually advanced clock (seconds since epoch)."""

    def __init__(self, now: float = 1_700_000_000.0):
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


SAMPLE_TREE = {
    "children": [
        {
            "id": "dept-cs",
            "name": "Computer Science ",
            "children": [
                {
                    "id": "cs-100",
                    "name": "100 Level",
                    "children": [
                        {
                            "id": "cs-100-s1",
                            "name": "1st  Semester",
                            "children": [
                                {
                                    "id": "cs-100-s1-2425",
                                    "name": "2024/25 Session",
                                    "children": [
                                        {"id": "file-csc101", "name": "CSC101.pdf", "mimeType": "application/pdf", "size": 2048},
                                        {"id": "file-csc102", "name": "CSC102.pdf", "mimeType": "application/pdf"},
                                        {"id": "file-notes", "name": "notes.docx", "mimeType": "application/msword"},
                                    ],
                                },
                                {"id": "cs-100-s1-2324", "name": "2023/24 Session", "children": []},
                            ],
                        },
                        {"id": "cs-100-s2", "name": "2nd Semester", "children": []},
                    ],
                },
                {"id": "cs-200", "name": "200 Level", "children": []},
                {"id": "cs-300", "name": "300 Level", "children": []},
                {"id": "cs-misc", "name": "Old Stuff", "children": []},
            ],
        },
        {
            "id": "dept-nursing",
            "name": "Nursing",
            "children": [
                {"id": "nur-100", "name": "100 Level", "children": []},
                {"id": "nur-200", "name": "200 Level", "children": []},
                {"id": "nur-300", "name": "300 Level", "children": []},
            ],
        },
        {
            "id": "dept-jupeb",
            "name": "Jupeb",
            "children": [
                {"id": "jup-art", "name": "Art", "children": []},
                {"id": "jup-misc", "name": "Misc", "children": []},
                {
                    "id": "jup-science",
                    "name": "Science",
                    "children": [
                        {
                            "id": "jup-science-2425",
                            "name": "2024/25 Session",
                            "children": [
                                {"id": "file-bio", "name": "BIO.pdf", "mimeType": "application/pdf", "size": 4096},
                            ],
                        },
                    ],
                },
            ],
        },
        {"id": "dept-unlisted", "name": "Zoology", "children": []},
    ]
}


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def drive():
    service = GoogleDriveService()
    service.load_tree(SAMPLE_TREE)
    return service


@pytest.fixture
def gateway(drive, clock):
    return BrowseGateway(
        drive,
        drive.root_id,
        policy=DepartmentPolicy(),
        result_cache=BrowseResultCache(ttl=1800, clock=clock),
    )


@pytest.fixture
def store():
    return MemoryStore()


@pytest.fixture
def path_cache(store, clock):
    return PathCache(store, clock=clock)
