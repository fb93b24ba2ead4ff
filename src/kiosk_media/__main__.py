from __future__ import annotations

import argparse
import asyncio
import logging
import sys

from kiosk_media.cache.utils import format_bytes
from kiosk_media.config import YamlConfigLoader
from kiosk_media.config.models import AppConfig, ConfigLoadRequest
from kiosk_media.logging import init_logging
from kiosk_media.service import MediaSyncService

logger = logging.getLogger(__name__)


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="kiosk-media", description="WebDAV media sync and cache tools")
    parser.add_argument(
        "--config",
        default="data/config/config.yaml",
        help="Path to config.yaml (default: data/config/config.yaml)",
    )
    subparsers = parser.add_subparsers(dest="command", required=True, help="Command to run")

    subparsers.add_parser("test-connection", help="Check host and credentials with a Depth 0 PROPFIND")

    crawl_parser = subparsers.add_parser("crawl", help="List media under the configured (or given) folders")
    crawl_parser.add_argument("paths", nargs="*", help="Folders to crawl (default: webdav.paths)")

    fetch_parser = subparsers.add_parser("fetch", help="Fetch one remote item through the cache")
    fetch_parser.add_argument("url", help="Absolute URL of the remote item")
    fetch_parser.add_argument("--video", action="store_true", help="Resolve a playable file instead of image bytes")

    subparsers.add_parser("cache-size", help="Print the current disk cache size")
    subparsers.add_parser("clear-cache", help="Delete every cached file")

    list_parser = subparsers.add_parser("list-cache", help="List cached media, most recently used first")
    list_parser.add_argument("--limit", type=int, default=None)

    budget_parser = subparsers.add_parser("set-budget", help="Persist a new cache budget and evict down to it")
    budget_parser.add_argument("bytes", type=int)

    return parser


async def _load_config(args: argparse.Namespace) -> AppConfig:
    loader = YamlConfigLoader()
    request = ConfigLoadRequest(
        yaml_path=args.config,
    )
    return await loader.load(request)


async def _run_command(args: argparse.Namespace, service: MediaSyncService, config: AppConfig) -> int:
    if args.command == "test-connection":
        result = await service.test_connection()
        if result.ok:
            print("OK")
            return 0
        print(f"FAILED ({result.failure}): {result.message}")
        return 1

    if args.command == "crawl":
        result = await service.load_library(args.paths or config.webdav.paths)
        for item in result.items:
            print(f"{item.kind}\t{item.id}")
        print(f"{len(result.items)} item(s) from {len(result.paths)} folder(s)", file=sys.stderr)
        return 1 if result.any_failed and not result.items else 0

    if args.command == "fetch":
        if args.video:
            location = await service.fetch_playable_location(args.url)
            print(location.path if location.cached else location.url)
            return 0
        data = await service.fetch_image(args.url)
        if data is None:
            print("No image.", file=sys.stderr)
            return 1
        print(f"{format_bytes(len(data))}")
        return 0

    if args.command == "cache-size":
        size = await service.current_cache_size_bytes()
        print(f"{format_bytes(size)} of {format_bytes(service.cache.budget.value)}")
        return 0

    if args.command == "clear-cache":
        await service.clear_all_cache()
        return 0

    if args.command == "list-cache":
        for item in await service.list_cached_items(args.limit):
            print(f"{item.kind}\t{item.cached_path}")
        return 0

    if args.command == "set-budget":
        await service.set_cache_budget(args.bytes)
        return 0

    raise ValueError(f"Unknown command: {args.command}")


async def _main_async() -> int:
    parser = _build_parser()
    args = parser.parse_args()

    config = await _load_config(args)
    init_logging(config.logging)
    logger.info("Starting command. command=%s host=%s", args.command, config.webdav.host)

    async with MediaSyncService.from_config(config) as service:
        return await _run_command(args, service, config)


def main() -> None:
    try:
        sys.exit(asyncio.run(_main_async()))
    except KeyboardInterrupt:
        logger.info("Interrupted by user.")


if __name__ == "__main__":
    main()
