"""Leaderboard ranking over a fetched snapshot of profiles.

Ranks are never stored: they are derived from points on every read, highest
points first. Equal points keep the snapshot order (earliest signup first).
"""

from __future__ import annotations

from collections import Counter
from typing import Any


def rank_entries(entries: list[dict[str, Any]]) -> list[dict[str, Any]]:
    """Sort by points DESC (stable) and set a 1-based ``rank``."""
    ranked = sorted(entries, key=lambda e: -e.get("points", 0))
    for idx, entry in enumerate(ranked):
        entry["rank"] = idx + 1
    return ranked


def leaderboard_stats(entries: list[dict[str, Any]], top_n: int = 10) -> dict[str, Any]:
    """Totals, rounded average points and the countries with the most users."""
    total = len(entries)
    average = round(sum(e.get("points", 0) for e in entries) / total) if total else 0
    counts = Counter(e["country"] for e in entries if e.get("country"))
    top_countries = [
        {"country": country, "user_count": count}
        for country, count in sorted(counts.items(), key=lambda kv: (-kv[1], kv[0]))[:top_n]
    ]
    return {"total_users": total, "average_points": average, "top_countries": top_countries}
