"""
Generate sitemap.xml from the live database.

Usage:
    pulseearn-sitemap --output public/sitemap.xml
    python -m pulseearn.sitemap.cli --site-url https://pollpeak.com
"""

from __future__ import annotations

import argparse
import asyncio
import sys
from pathlib import Path

import structlog
from sqlalchemy.exc import SQLAlchemyError

from pulseearn.config import get_settings
from pulseearn.database import close_db, init_db, session_scope
from pulseearn.middleware.logging import setup_logging
from pulseearn.sitemap.builder import STATIC_ROUTES, build_sitemap, fetch_dynamic_entries

logger = structlog.get_logger()


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    settings = get_settings()
    parser = argparse.ArgumentParser(description="Generate the PulseEarn sitemap")
    parser.add_argument(
        "--database-url", default=settings.database_url,
        help="Database URL (default: PULSEEARN_DATABASE_URL)",
    )
    parser.add_argument(
        "--site-url", default=settings.site_url,
        help=f"Public site URL (default: {settings.site_url})",
    )
    parser.add_argument(
        "--output", "-o", default=settings.sitemap_output_path,
        help=f"Output file (default: {settings.sitemap_output_path})",
    )
    return parser.parse_args(argv)


async def generate(args: argparse.Namespace) -> int:
    """Write the sitemap. Returns the process exit code."""
    if not args.database_url:
        logger.error("sitemap_missing_database_url")
        return 1

    settings = get_settings()
    await init_db(args.database_url)
    dynamic = []
    try:
        async with session_scope() as db:
            dynamic = await fetch_dynamic_entries(db, settings.sitemap_max_polls, settings.sitemap_max_trivia_games)
    except SQLAlchemyError:
        logger.exception("sitemap_fetch_failed")
        return 1
    finally:
        await close_db()

    xml = build_sitemap(args.site_url, [*STATIC_ROUTES, *dynamic])
    output = Path(args.output)
    output.parent.mkdir(parents=True, exist_ok=True)
    output.write_text(xml, encoding="utf-8")
    logger.info("sitemap_written", path=str(output), urls=len(STATIC_ROUTES) + len(dynamic))
    return 0


def main(argv: list[str] | None = None) -> None:
    setup_logging(get_settings())
    sys.exit(asyncio.run(generate(parse_args(argv))))


if __name__ == "__main__":
    main()
