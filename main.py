#!/usr/bin/env python3
"""
Entry point for the Lightroom gallery sync tool.
"""

import argparse
import sys
import threading

from loguru import logger

from gallerysync.config import load_user_config
from gallerysync.errors import GalleryConfigError, ManifestError
from gallerysync.galleries import add_gallery, load_galleries
from gallerysync.logging import init_logging
from gallerysync.syncer import GallerySync


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Sync Adobe Lightroom galleries into a static photo site")
    parser.add_argument("-v", "--verbose", action="store_true", help="Debug logging")
    subparsers = parser.add_subparsers(dest="command", help="Commands")

    sync_parser = subparsers.add_parser("sync", help="Sync all configured galleries once (default)")
    sync_parser.add_argument("--gallery", metavar="ID", help="Only sync the gallery with this share URL or album id")

    watch_parser = subparsers.add_parser("watch", help="Sync repeatedly")
    watch_parser.add_argument("--interval", type=float, metavar="MINUTES", help="Minutes between runs")

    add_parser = subparsers.add_parser("add", help="Add a gallery to the configuration")
    add_parser.add_argument("url", nargs="?", help="Lightroom share URL or adobe.ly short link")
    add_parser.add_argument("--album-id", help="Private catalog album id")
    add_parser.add_argument("--album-name", help="Display name for a private album")
    add_parser.add_argument("--tag", help="Tag matched against the sync filter")
    add_parser.add_argument("--featured", action="store_true", help="Mark as the featured gallery")

    remove_parser = subparsers.add_parser("remove", help="Remove a gallery and its synced album")
    remove_parser.add_argument("key", help="Share URL or album id")

    subparsers.add_parser("list", help="List configured galleries")
    return parser


def run_sync(syncer: GallerySync, gallery_id=None) -> int:
    result = syncer.run(gallery_id)
    for item, reason in result.summary.skipped:
        logger.info(f"  skipped {item}: {reason}")
    return 0 if result.success else 1


def run_watch(syncer: GallerySync, interval_minutes: float) -> int:
    stop = threading.Event()
    logger.info(f"Watching: syncing every {interval_minutes:g} minutes (Ctrl+C to stop)")
    try:
        while not stop.is_set():
            result = syncer.run(cancel_event=stop)
            if not result.success and not result.cancelled:
                logger.error(f"Sync run failed: {result.error}")
            stop.wait(interval_minutes * 60)
    except KeyboardInterrupt:
        stop.set()
        logger.info("Stopped watching")
    return 0


def main(argv=None) -> int:
    args = build_parser().parse_args(argv)
    config = load_user_config()
    init_logging(config.get("logDir"), level="DEBUG" if args.verbose else "INFO")

    command = args.command or "sync"

    if command == "list":
        for entry in load_galleries():
            marker = " *" if entry.featured else ""
            kind = "private" if entry.is_private else "public"
            print(f"[{kind}] {entry.display_name}{marker}")
        return 0

    if command == "add":
        try:
            entry = add_gallery(
                url=args.url,
                album_id=args.album_id,
                album_name=args.album_name,
                tag=args.tag,
                featured=args.featured,
            )
        except GalleryConfigError as e:
            logger.error(str(e))
            return 1
        print(f"Added {entry.display_name}")
        return 0

    syncer = GallerySync(config=config)

    if command == "remove":
        try:
            removed = syncer.remove_synced_gallery(args.key)
        except ManifestError as e:
            logger.error(str(e))
            return 1
        if not removed:
            logger.error(f"Gallery not found: {args.key}")
            return 1
        print(f"Removed {args.key}")
        return 0

    if command == "watch":
        return run_watch(syncer, args.interval or float(config["syncInterval"]))

    return run_sync(syncer, getattr(args, "gallery", None))


if __name__ == "__main__":
    sys.exit(main())
