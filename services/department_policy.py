"""
Department catalogue: which levels/subjects each department exposes and the
shape of its folder hierarchy.

Most departments are organised Level → Semester → Session. Some (Jupeb) skip
the semester layer and use subjects instead of numeric levels. Both the
gateway's level filter and the route model read the shape from here instead of
special-casing department names.
"""

import json
import re
from enum import Enum
from typing import Any, Dict, List, Optional, Sequence, Union

from config import config

LevelEntry = Union[int, str]

_NUMBER_RE = re.compile(r"(\d+)")
_WHITESPACE_RE = re.compile(r"\s+")


class LevelKind(str, Enum):
    LEVEL = "level"
    SUBJECT = "subject"
    SEMESTER = "semester"
    SESSION = "session"


STANDARD_SHAPE = (LevelKind.LEVEL, LevelKind.SEMESTER, LevelKind.SESSION)

DEFAULT_LEVELS: List[LevelEntry] = [100, 200, 300, 400]

DEFAULT_LEVEL_EXCEPTIONS: Dict[str, List[LevelEntry]] = {
    "Human Anatomy": [100],
    "Human Physiology": [100],
    "Software Engineering": [100],
    "Nursing": [100, 200],
    "Jupeb": ["Art", "Business", "Science"],
}

DEFAULT_SHAPES = {
    "Jupeb": (LevelKind.SUBJECT, LevelKind.SESSION),
}


def normalize_folder_name(name: Optional[str]) -> Optional[str]:
    """Trim and collapse internal whitespace ("Computer  Science " -> "Computer Science")."""
    if not name or not isinstance(name, str):
        return name
    return _WHITESPACE_RE.sub(" ", name.strip())


class DepartmentPolicy:
    def __init__(
        self,
        default_levels: Optional[Sequence[LevelEntry]] = None,
        level_exceptions: Optional[Dict[str, Sequence[LevelEntry]]] = None,
        shapes: Optional[Dict[str, Sequence[Union[LevelKind, str]]]] = None,
    ):
        self.default_levels = list(default_levels if default_levels is not None else DEFAULT_LEVELS)
        exceptions = level_exceptions if level_exceptions is not None else DEFAULT_LEVEL_EXCEPTIONS
        self.level_exceptions = {
            normalize_folder_name(dept): list(levels) for dept, levels in exceptions.items()
        }
        shapes = shapes if shapes is not None else DEFAULT_SHAPES
        self.shapes = {
            normalize_folder_name(dept): tuple(LevelKind(kind) for kind in shape)
            for dept, shape in shapes.items()
        }

    @classmethod
    def from_json(cls, raw: str) -> "DepartmentPolicy":
        data: Dict[str, Any] = json.loads(raw)
        return cls(
            default_levels=data.get("default_levels"),
            level_exceptions=data.get("level_exceptions"),
            shapes=data.get("shapes"),
        )

    @classmethod
    def from_config(cls) -> "DepartmentPolicy":
        if config.DEPARTMENT_POLICY_JSON:
            return cls.from_json(config.DEPARTMENT_POLICY_JSON)
        return cls()

    def levels_for(self, department: str) -> List[LevelEntry]:
        return self.level_exceptions.get(normalize_folder_name(department), self.default_levels)

    def shape_for(self, department: Optional[str]) -> tuple:
        if not department:
            return STANDARD_SHAPE
        return self.shapes.get(normalize_folder_name(department), STANDARD_SHAPE)

    def is_allowed_child(self, department: str, folder_name: str) -> bool:
        """
        A level folder is kept when its embedded number is an allowed numeric
        level, or when its whole (normalized) name is an allowed free-text entry.
        """
        allowed = self.levels_for(department)
        name = normalize_folder_name(folder_name) or ""

        match = _NUMBER_RE.search(name)
        if match and int(match.group(1)) in [lvl for lvl in allowed if isinstance(lvl, int)]:
            return True

        return name in [lvl for lvl in allowed if isinstance(lvl, str)]

    def filter_children(self, segments: Sequence[str], children: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
        """
        Apply the level allow-list to a folder listing.

        Only the listing directly under a department (one resolved segment) is
        filtered; the department list and anything deeper pass through.
        """
        if len(segments) != 1:
            return children
        department = segments[0]
        return [child for child in children if self.is_allowed_child(department, child.get("name", ""))]
