"""Ranked, paginated listings over the metadata catalog.

Three sort policies are supported:

* ``latest``   - upload time, newest first.
* ``popular``  - view count, highest first.
* ``trending`` - ``(views + 2 * likes) / sqrt(age_days + 1)``, highest first.

Every policy sorts the catalog's newest-first order with a stable sort, so
equal keys always come out latest-first.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from datetime import datetime
from typing import Callable, Literal, Optional

from vidhub.core.errors import InvalidQuery

from .models import ContentRecord, utcnow
from .store import MetadataCatalog

SortPolicy = Literal["latest", "popular", "trending"]
SECONDS_PER_DAY = 86400.0


@dataclass(frozen=True, slots=True)
class PreviewProjection:
    id: str
    title: str
    description: str
    thumbnail_url: Optional[str]
    streaming_url: Optional[str]
    duration_seconds: float
    views: int
    likes: int
    uploader_id: str
    upload_timestamp: datetime
    category: str
    quality: str
    rendition_kind: str

    @classmethod
    def from_record(cls, record: ContentRecord) -> "PreviewProjection":
        return cls(
            id=record.id,
            title=record.title,
            description=record.description,
            thumbnail_url=record.thumbnail_url,
            streaming_url=record.streaming_url,
            duration_seconds=record.duration_seconds,
            views=record.views,
            likes=record.likes,
            uploader_id=record.uploader_id,
            upload_timestamp=record.upload_timestamp,
            category=record.category,
            quality=record.quality.value,
            rendition_kind=record.rendition_kind,
        )


@dataclass(frozen=True, slots=True)
class PreviewPage:
    items: list[PreviewProjection]
    total: int
    page: int
    limit: int

    @property
    def total_pages(self) -> int:
        return math.ceil(self.total / self.limit)

    @property
    def has_more(self) -> bool:
        return self.page * self.limit < self.total


def trending_score(record: ContentRecord, now: datetime) -> float:
    age_days = max((now - record.upload_timestamp).total_seconds() / SECONDS_PER_DAY, 0.0)
    return (record.views + 2 * record.likes) / math.sqrt(age_days + 1)


def rank(records: list[ContentRecord], sort: str, *, now: Optional[datetime] = None) -> list[ContentRecord]:
    """Order ``records`` under ``sort``. Input order is assumed latest-first."""
    now = now or utcnow()
    keys: dict[str, Callable[[ContentRecord], float]] = {
        "latest": lambda record: record.upload_timestamp.timestamp(),
        "popular": lambda record: record.views,
        "trending": lambda record: trending_score(record, now),
    }
    key = keys.get(sort)
    if key is None:
        raise InvalidQuery(f"unknown sort '{sort}'")
    return sorted(records, key=key, reverse=True)


def list_previews(
    catalog: MetadataCatalog,
    *,
    category: Optional[str] = None,
    sort: str = "latest",
    page: int = 1,
    limit: int = 12,
    now: Optional[datetime] = None,
) -> PreviewPage:
    if page < 1:
        raise InvalidQuery("page must be >= 1")
    if limit < 1:
        raise InvalidQuery("limit must be >= 1")

    ordered = rank(catalog.list(category=category), sort, now=now)
    start = (page - 1) * limit
    window = ordered[start : start + limit]
    return PreviewPage(
        items=[PreviewProjection.from_record(record) for record in window],
        total=len(ordered),
        page=page,
        limit=limit,
    )


__all__ = [
    "PreviewPage",
    "PreviewProjection",
    "SortPolicy",
    "list_previews",
    "rank",
    "trending_score",
]
