"""
Route model for the browser: turns a location hash such as
``#/Computer Science/100 Level/1st Semester/2024~25 Session`` into a route and
the ``(path, type)`` listing request that renders it.

Folder names containing "/" travel as "~" in URLs and API paths; only
``display_name`` turns them back into "/".
"""

import re
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, List, Optional, Tuple
from urllib.parse import quote, unquote

from schemas.browse import ContentType
from services.department_policy import DepartmentPolicy, LevelKind

APP_NAME = "Caleb University Resource Bank"

# Old links carry "2024/25 Session" unencoded; rewrite them to "2024~25 Session".
_LEGACY_SESSION_RE = re.compile(r"/(\d{4})/(\d{2})\s*(Session|session)")


class RouteKind(str, Enum):
    HOME = "home"
    ABOUT = "about"
    LEVELS = "levels"
    SEMESTERS = "semesters"
    SESSIONS = "sessions"
    FILES = "files"


# What the page after each hierarchy layer lists
_KIND_AFTER_LAYER = {
    LevelKind.LEVEL: RouteKind.SEMESTERS,
    LevelKind.SUBJECT: RouteKind.SESSIONS,
    LevelKind.SEMESTER: RouteKind.SESSIONS,
    LevelKind.SESSION: RouteKind.FILES,
}


def encode_segment(segment: Optional[str]) -> str:
    if not segment:
        return ""
    return quote(segment.replace("/", "~"), safe="~")


def decode_segment(segment: Optional[str]) -> str:
    if not segment:
        return ""
    return unquote(segment)


def display_name(name: Optional[str]) -> str:
    if not name:
        return ""
    return name.replace("~", "/")


@dataclass
class Route:
    kind: RouteKind = RouteKind.HOME
    department: Optional[str] = None
    level: Optional[str] = None
    semester: Optional[str] = None
    session: Optional[str] = None
    shape: Tuple[LevelKind, ...] = field(default_factory=tuple)

    def segments(self) -> List[str]:
        return [s for s in (self.department, self.level, self.semester, self.session) if s]


def parse_route(location_hash: str, policy: Optional[DepartmentPolicy] = None) -> Route:
    policy = policy or DepartmentPolicy()
    hash_value = (location_hash or "").lstrip("#")
    hash_value = _LEGACY_SESSION_RE.sub(r"/\1~\2 \3", hash_value)
    parts = [decode_segment(p) for p in hash_value.split("/") if p]

    if not parts:
        return Route()
    if len(parts) == 1 and parts[0].lower() == "about":
        return Route(kind=RouteKind.ABOUT)

    department = parts[0]
    shape = policy.shape_for(department)
    route = Route(kind=RouteKind.LEVELS, department=department, shape=shape)

    # Extra parts beyond the declared shape are ignored
    for layer, value in zip(shape, parts[1:]):
        if layer in (LevelKind.LEVEL, LevelKind.SUBJECT):
            route.level = value
        elif layer is LevelKind.SEMESTER:
            route.semester = value
        elif layer is LevelKind.SESSION:
            route.session = value
        route.kind = _KIND_AFTER_LAYER[layer]

    return route


def route_path(route: Route) -> str:
    return "/" + "/".join(route.segments())


def route_request(route: Route) -> Optional[Tuple[str, ContentType]]:
    """The listing a route renders, or None for pages with no listing (about)."""
    if route.kind is RouteKind.HOME:
        return "/", ContentType.FOLDERS
    if route.kind is RouteKind.ABOUT:
        return None
    if route.kind in (RouteKind.LEVELS, RouteKind.SEMESTERS, RouteKind.SESSIONS):
        return route_path(route), ContentType.FOLDERS
    if route.kind is RouteKind.FILES:
        return route_path(route), ContentType.FILES
    raise ValueError(f"Unhandled route kind: {route.kind}")


def breadcrumbs(route: Route) -> List[Dict[str, object]]:
    crumbs: List[Dict[str, object]] = [
        {"label": "Home", "path": "/", "active": route.kind is RouteKind.HOME}
    ]
    segments = route.segments()
    for depth, segment in enumerate(segments, start=1):
        crumbs.append({
            "label": display_name(segment),
            "path": "/" + "/".join(encode_segment(s) for s in segments[:depth]),
            "active": depth == len(segments),
        })
    return crumbs


def parent_path(route: Route) -> Optional[str]:
    """Where "back" goes: one layer up, or None on the home page."""
    segments = route.segments()
    if route.kind is RouteKind.ABOUT:
        return "/"
    if not segments:
        return None
    return "/" + "/".join(encode_segment(s) for s in segments[:-1])


def page_title(route: Route) -> str:
    if route.kind is RouteKind.HOME:
        return APP_NAME
    if route.kind is RouteKind.ABOUT:
        return f"About Us - {APP_NAME}"
    return " - ".join([APP_NAME] + route.segments())
