"""
Command line entry point: discover categories and/or listings and save them.
"""
import argparse
import asyncio
import logging
import os
import sys
from typing import List, Optional

from .config import FetchSettings, config
from .core import open_session
from .errors import AvitologError
from .export import load_categories_json, save_categories_json, save_output_rows
from .fallback import fallback_categories
from .models import Category, Listing
from .utils import init_logger, now_iso


logger = logging.getLogger("avitolog")


def parse_args(argv: Optional[List[str]] = None):
    ap = argparse.ArgumentParser(description="Avito category and listing crawler")
    ap.add_argument("--categories", action="store_true", help="Discover the category tree")
    ap.add_argument("--categories-out", type=str, default="avito_categories.json",
                    help="JSON file for the category tree")
    ap.add_argument("--categories-file", type=str, default="",
                    help="Use a saved category tree instead of the built-in fallback")
    ap.add_argument("--no-fallback", action="store_true",
                    help="Fail instead of using the fallback tree when the site is unreachable")
    ap.add_argument("--url", type=str, action="append", default=[],
                    help="Category, search or catalog URL to collect listings from (repeatable)")
    ap.add_argument("--limit", type=int, default=10, help="Maximum listings per URL (0 = no limit)")
    ap.add_argument("--no-details", action="store_true", help="Skip visiting listing pages")
    ap.add_argument("--out", type=str, default="avito_listings.json",
                    help="JSON/CSV/XLSX file for the listings")
    # Politeness
    ap.add_argument("--min-interval", type=float, default=None,
                    help=f"Seconds between requests (default {config.MIN_INTERVAL})")
    ap.add_argument("--max-retries", type=int, default=None,
                    help=f"Retries on HTTP 429 (default {config.MAX_RETRIES})")
    ap.add_argument("--timeout", type=float, default=None,
                    help=f"Request timeout in seconds (default {config.REQUEST_TIMEOUT})")
    ap.add_argument("--deadline", type=float, default=None,
                    help="Give up on one discovery call after this many seconds")
    # Logging
    lvl_choices = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
    ap.add_argument("--log-level", choices=lvl_choices, default=None,
                    help="Global log level for both console and file (overrides --log-console/--log-file).")
    ap.add_argument("--log-console", choices=lvl_choices, default=os.getenv("LOG_CONSOLE", config.LOG_LEVEL),
                    help="Console log level (default from env LOG_CONSOLE or INFO).")
    ap.add_argument("--log-file", choices=lvl_choices, default=os.getenv("LOG_FILE", "DEBUG"),
                    help="File log level (default from env LOG_FILE or DEBUG).")
    ap.add_argument("--log-file-path", default=os.getenv("LOG_FILE_PATH", "avitolog.log"),
                    help="Path to log file (default from env LOG_FILE_PATH or avitolog.log).")
    ap.add_argument("--no-file-log", action="store_true",
                    help="Disable file logging (only console output).")

    args = ap.parse_args(argv)
    if not args.categories and not args.url:
        ap.error("nothing to do: pass --categories and/or --url")
    return args


def _static_tree(args) -> List[Category]:
    if args.categories_file:
        return load_categories_json(args.categories_file)
    return fallback_categories()


async def run(args) -> int:
    settings = FetchSettings.from_config(
        min_interval=args.min_interval,
        max_retries=args.max_retries,
        request_timeout=args.timeout,
    )
    exit_code = 0
    async with open_session(settings) as pipeline:
        if args.categories:
            try:
                categories = await pipeline.discover_categories(use_fallback=False, deadline=args.deadline)
            except (AvitologError, asyncio.TimeoutError) as e:
                if args.no_fallback:
                    logger.error(f"Error fetching categories: {e}")
                    return 1
                logger.warning(f"Error fetching categories, using static tree: {e}")
                categories = _static_tree(args)
            if not categories and not args.no_fallback:
                logger.warning("No categories found on the site, using static tree")
                categories = _static_tree(args)
            save_categories_json(categories, args.categories_out)

        all_listings: List[Listing] = []
        for url in args.url:
            try:
                found = await pipeline.discover_listings(
                    url, limit=args.limit, enrich=not args.no_details, deadline=args.deadline
                )
            except (AvitologError, asyncio.TimeoutError) as e:
                logger.error(f"Error fetching listings from {url}: {e}")
                exit_code = 1
                continue
            logger.info(f">>> {len(found)} listings from {url}")
            all_listings.extend(found)

        if args.url:
            save_output_rows(all_listings, args.out)
    return exit_code


def main(argv: Optional[List[str]] = None) -> int:
    args = parse_args(argv)
    eff_console = args.log_level or args.log_console
    eff_file = args.log_level or args.log_file
    init_logger(
        console_level=eff_console,
        file_level=eff_file,
        log_file=None if args.no_file_log else args.log_file_path
    )
    logger.info(
        f"Logger initialized: console={eff_console}, "
        f"file={'DISABLED' if args.no_file_log else eff_file}, "
        f"path={'N/A' if args.no_file_log else args.log_file_path}"
    )
    config.validate()
    logger.info(f">>> Run started at {now_iso()}")
    return asyncio.run(run(args))


if __name__ == "__main__":
    sys.exit(main())
