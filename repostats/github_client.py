"""
Async GitHub REST API client for repository star/fork counts.

Features:
- httpx.AsyncClient with configurable timeouts.
- Follows redirects (renamed or transferred repositories answer 301).
- 403/429 classified as rate limiting (reads X-RateLimit-Reset header).
- Every other failure surfaces as a typed ``GitHubError`` subclass.

There are no retries here: the stats cache TTL is the retry interval.
"""

from __future__ import annotations

import datetime as _dt
import logging

import httpx
from pydantic import ValidationError

from repostats.models import SourceStats
from repostats.settings import settings

logger = logging.getLogger("repostats.github_client")


# ── Custom exceptions ──────────────────────────────────────────
class GitHubError(Exception):
    """Base for GitHub-related errors."""


class RepoNotFoundError(GitHubError):
    """404 — repository doesn't exist or is private."""


class RateLimitError(GitHubError):
    """403/429 — rate limit exceeded or access forbidden."""

    def __init__(self, message: str, reset_timestamp: int | None = None):
        super().__init__(message)
        self.reset_timestamp = reset_timestamp


class UpstreamError(GitHubError):
    """Network failure, unexpected status or malformed payload."""


# ── Helpers ─────────────────────────────────────────────────────
def _rate_limit_reset(response: httpx.Response) -> int | None:
    """Extract X-RateLimit-Reset header (unix timestamp) if present."""
    val = response.headers.get("x-ratelimit-reset")
    if val:
        try:
            return int(val)
        except ValueError:
            pass
    return None


def _check_rate_limit(response: httpx.Response) -> None:
    """Raise RateLimitError if response indicates rate limiting."""
    if response.status_code not in (403, 429):
        return

    reset_ts = _rate_limit_reset(response)
    hint = " Try again later."
    if reset_ts:
        reset_dt = _dt.datetime.fromtimestamp(reset_ts, tz=_dt.timezone.utc)
        hint = f" Try again after {reset_dt.strftime('%Y-%m-%d %H:%M:%S UTC')}."

    token_hint = ""
    if not settings.github_token:
        token_hint = " Set GITHUB_TOKEN for higher limits."

    raise RateLimitError(
        f"GitHub rate limit hit ({response.status_code}).{hint}{token_hint}",
        reset_timestamp=reset_ts,
    )


def _utc_now_iso() -> str:
    return _dt.datetime.now(_dt.timezone.utc).isoformat().replace("+00:00", "Z")


# ── Client ──────────────────────────────────────────────────────
class GitHubClient:
    """Async GitHub REST API wrapper."""

    def __init__(self, client: httpx.AsyncClient | None = None) -> None:
        headers: dict[str, str] = {
            "Accept": "application/vnd.github.v3+json",
            "User-Agent": "repostats/1.0",
        }
        if settings.github_token:
            headers["Authorization"] = f"Bearer {settings.github_token}"

        self._client = client or httpx.AsyncClient(
            base_url=settings.github_api_base,
            headers=headers,
            follow_redirects=True,
            timeout=httpx.Timeout(
                connect=settings.http_connect_timeout,
                read=settings.http_read_timeout,
                write=settings.http_read_timeout,
                pool=settings.http_read_timeout,
            ),
        )

    async def _get(self, path: str) -> httpx.Response:
        """GET *path* and map every failure onto the GitHubError hierarchy."""
        try:
            resp = await self._client.get(path)
        except httpx.HTTPError as exc:
            raise UpstreamError(f"GitHub request failed for {path}: {exc}") from exc

        _check_rate_limit(resp)

        if resp.status_code == 404:
            raise RepoNotFoundError(f"Repository not found or private: {path}")

        if not resp.is_success:
            raise UpstreamError(f"GitHub returned {resp.status_code} for {path}")

        return resp

    async def fetch_repo_stats(self, owner: str, repo: str) -> SourceStats:
        """Fetch star/fork counts and the last-updated timestamp of a repository."""
        resp = await self._get(f"/repos/{owner}/{repo}")

        try:
            data = resp.json()
        except ValueError as exc:
            raise UpstreamError(f"Malformed JSON for {owner}/{repo}") from exc
        if not isinstance(data, dict):
            raise UpstreamError(f"Unexpected payload for {owner}/{repo}")

        try:
            return SourceStats(
                stars=data.get("stargazers_count") or 0,
                forks=data.get("forks_count") or 0,
                last_updated=data.get("updated_at") or _utc_now_iso(),
            )
        except ValidationError as exc:
            raise UpstreamError(f"Malformed stats for {owner}/{repo}: {exc}") from exc

    async def aclose(self) -> None:
        await self._client.aclose()
