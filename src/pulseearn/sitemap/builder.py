"""Sitemap XML for the public site: static routes, active polls and trivia games."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime, timezone
from typing import TYPE_CHECKING
from xml.etree import ElementTree as ET

from sqlalchemy import select

from pulseearn.db.models import Poll, TriviaGame

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession

SITEMAP_NS = "http://www.sitemaps.org/schemas/sitemap/0.9"


@dataclass(frozen=True)
class SitemapEntry:
    path: str
    changefreq: str
    priority: float
    lastmod: date | None = None


STATIC_ROUTES: tuple[SitemapEntry, ...] = (
    SitemapEntry("/", "daily", 1.0),
    SitemapEntry("/polls", "hourly", 0.9),
    SitemapEntry("/trivia", "daily", 0.8),
    SitemapEntry("/leaderboard", "daily", 0.7),
    SitemapEntry("/rewards", "weekly", 0.6),
    SitemapEntry("/privacy-policy", "monthly", 0.5),
    SitemapEntry("/terms-of-service", "monthly", 0.5),
)


def _as_date(value: datetime | None) -> date | None:
    return value.date() if value is not None else None


def poll_entry(slug: str, updated_at: datetime | None) -> SitemapEntry:
    return SitemapEntry(f"/polls/{slug}", "daily", 0.8, _as_date(updated_at))


def game_entry(game_id: int, updated_at: datetime | None) -> SitemapEntry:
    return SitemapEntry(f"/trivia/game/{game_id}", "weekly", 0.7, _as_date(updated_at))


def build_sitemap(site_url: str, entries: list[SitemapEntry], today: date | None = None) -> str:
    """
    Render a urlset document.

    Static routes carry ``today`` as lastmod; dynamic entries carry their own
    update date when known.
    """
    today = today or datetime.now(timezone.utc).date()
    base = site_url.rstrip("/")
    urlset = ET.Element("urlset", xmlns=SITEMAP_NS)
    for entry in entries:
        url = ET.SubElement(urlset, "url")
        ET.SubElement(url, "loc").text = f"{base}{entry.path}"
        ET.SubElement(url, "lastmod").text = (entry.lastmod or today).isoformat()
        ET.SubElement(url, "changefreq").text = entry.changefreq
        ET.SubElement(url, "priority").text = f"{entry.priority:.1f}"
    ET.indent(urlset)
    return '<?xml version="1.0" encoding="UTF-8"?>\n' + ET.tostring(urlset, encoding="unicode") + "\n"


async def fetch_dynamic_entries(db: AsyncSession, max_polls: int = 1000, max_games: int = 500) -> list[SitemapEntry]:
    """Active polls and trivia games, most recently updated first."""
    polls = await db.execute(
        select(Poll.slug, Poll.updated_at)
        .where(Poll.is_active == True)  # noqa: E712
        .order_by(Poll.updated_at.desc())
        .limit(max_polls)
    )
    games = await db.execute(
        select(TriviaGame.id, TriviaGame.updated_at)
        .where(TriviaGame.is_active == True)  # noqa: E712
        .order_by(TriviaGame.updated_at.desc())
        .limit(max_games)
    )
    entries = [poll_entry(slug, updated) for slug, updated in polls.all()]
    entries.extend(game_entry(game_id, updated) for game_id, updated in games.all())
    return entries
