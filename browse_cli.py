"""
Command-line browser for the exam archive.

    python browse_cli.py "/Computer Science/100 Level"
    python browse_cli.py "/Computer Science/100 Level/1st Semester/2024~25 Session" --files
    python browse_cli.py / --refresh --endpoint https://example.org/api
"""

import argparse
import asyncio
import logging
import sys
from typing import List, Optional

from cache import JsonFileStore, build_store
from config import config
from navigation import display_name
from schemas.browse import ContentType
from services.api_client import BrowseApiClient, ResultSource
from services.errors import PathNotFoundError, UpstreamFailureError
from services.path_cache import PathCache


def format_file_size(size: Optional[int]) -> str:
    if not size:
        return "Unknown"
    kb = size / 1024
    mb = kb / 1024
    if mb >= 1:
        return f"{mb:.2f} MB"
    return f"{kb:.2f} KB"


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="curb-browse", description="Browse past exam questions")
    parser.add_argument("path", nargs="?", default="/", help="Folder path, e.g. '/Computer Science/100 Level'")
    parser.add_argument("--files", action="store_true", help="List PDF files instead of subfolders")
    parser.add_argument("--refresh", action="store_true", help="Ignore the local cache for this path")
    parser.add_argument("--endpoint", default=config.API_ENDPOINT, help="Browse API base URL")
    parser.add_argument("--cache-file", default=None, help="Local cache file (default: PATH_CACHE_FILE)")
    parser.add_argument("--clear-cache", action="store_true", help="Drop every cached listing and exit")
    parser.add_argument("-v", "--verbose", action="store_true", help="Log cache and network activity")
    return parser


async def run(args: argparse.Namespace) -> int:
    store = JsonFileStore(args.cache_file) if args.cache_file else build_store()
    path_cache = PathCache(store)
    path_cache.ensure_version(config.APP_VERSION)

    if args.clear_cache:
        path_cache.clear_all()
        print("Cache cleared.")
        return 0

    client = BrowseApiClient(path_cache, endpoint=args.endpoint)
    content_type = ContentType.FILES if args.files else ContentType.FOLDERS
    try:
        result = await client.fetch(args.path, content_type, force_refresh=args.refresh)
    except PathNotFoundError as e:
        print(f"Nothing here: {e.message}", file=sys.stderr)
        return 2
    except UpstreamFailureError as e:
        print(f"Could not load {args.path}: {e.message}. Try again later.", file=sys.stderr)
        return 1
    finally:
        await client.aclose()

    if result.warning:
        print(f"warning: {result.warning}", file=sys.stderr)

    lines: List[str] = []
    for item in result.data:
        if content_type is ContentType.FILES:
            lines.append(f"{item['name']}\t{format_file_size(item.get('size'))}\t{item.get('webViewLink', '')}")
        else:
            lines.append(display_name(item["name"]))
    print("\n".join(lines) if lines else "(empty)")

    if args.verbose:
        source = "cache" if result.source is not ResultSource.NETWORK else "network"
        print(f"[{len(result.data)} items from {source}]", file=sys.stderr)
    return 0


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    logging.basicConfig(level=logging.INFO if args.verbose else logging.WARNING)
    return asyncio.run(run(args))


if __name__ == "__main__":
    sys.exit(main())
