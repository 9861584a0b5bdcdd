"""
Pydantic models for cached stats and request / response / error payloads.

  Stored document:  {"stars": 42, "forks": 7, "lastUpdated": "...", "cachedAt": 1700000000000}
  Single lookup:    {"url": "...", "key": "owner__repo", "stats": {...} | null,
                     "display": {...} | null, "preview_image": "..." | null}
  Batch lookup:     {"results": {"<url>": {"stars": 42, "forks": 7} | null}}
  Error:            {"status": "error", "message": "..."}
"""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field


class RepoStats(BaseModel):
    stars: int = Field(..., ge=0, description="Stargazer count")
    forks: int = Field(..., ge=0, description="Fork count")


class SourceStats(RepoStats):
    """Stats as returned by the stats source, before caching."""

    last_updated: str = Field(..., description="Repository updated_at timestamp")


class CacheEntry(BaseModel):
    """One persisted stats document; ``key`` is the document id."""

    model_config = ConfigDict(populate_by_name=True)

    key: str = Field(..., exclude=True)
    stars: int = Field(..., ge=0)
    forks: int = Field(..., ge=0)
    last_updated: str = Field(..., alias="lastUpdated")
    cached_at: int = Field(..., ge=0, alias="cachedAt", description="Epoch milliseconds")

    def to_stats(self) -> RepoStats:
        return RepoStats(stars=self.stars, forks=self.forks)

    def to_document(self) -> dict:
        """Flat record as written to the store (key is the document id)."""
        return self.model_dump(by_alias=True)

    @classmethod
    def from_document(cls, key: str, document: dict) -> "CacheEntry":
        return cls.model_validate({**document, "key": key})


class StatsDisplay(BaseModel):
    stars: str
    forks: str


class StatsResponse(BaseModel):
    url: str
    key: str
    stats: RepoStats | None = Field(None, description="null when stats are unavailable")
    display: StatsDisplay | None = None
    preview_image: str | None = None


class BatchStatsRequest(BaseModel):
    urls: list[str] = Field(..., description="GitHub repository URLs")
    concurrency: int | None = Field(
        None, ge=1, le=20, description="Lookups per batch group (defaults to STATS_BATCH_SIZE)"
    )


class BatchStatsResponse(BaseModel):
    results: dict[str, RepoStats | None]


class ErrorResponse(BaseModel):
    status: str = "error"
    message: str
