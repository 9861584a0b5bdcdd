"""Display helpers for repository stats."""

from __future__ import annotations

from repostats.cache_key import parse_repo_url
from repostats.models import RepoStats, StatsDisplay

_OPENGRAPH_BASE = "https://opengraph.githubassets.com/1"


def format_count(n: int) -> str:
    """Compact count: 999 → "999", 1500 → "1.5k", 2_000_000 → "2M"."""
    if n >= 1_000_000:
        value, suffix = n / 1_000_000, "M"
    elif n >= 1_000:
        value, suffix = n / 1_000, "k"
    else:
        return str(n)
    text = f"{value:.1f}"
    if text.endswith(".0"):
        text = text[:-2]
    return text + suffix


def format_stats(stats: RepoStats | None) -> StatsDisplay | None:
    if stats is None:
        return None
    return StatsDisplay(stars=format_count(stats.stars), forks=format_count(stats.forks))


def preview_image_url(url: str) -> str | None:
    """GitHub social preview image for a repository URL, if it resolves."""
    try:
        owner, repo = parse_repo_url(url)
    except ValueError:
        return None
    return f"{_OPENGRAPH_BASE}/{owner}/{repo}"
