from __future__ import annotations

import enum
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Optional

DEFAULT_CATEGORY = "uncategorized"


class ProcessingType(str, enum.Enum):
    streaming = "streaming"
    convert = "convert"


class Quality(str, enum.Enum):
    low = "low"
    medium = "medium"
    high = "high"


class RecordStatus(str, enum.Enum):
    available = "available"
    processing = "processing"
    failed = "failed"


RENDITION_KINDS = {
    ProcessingType.streaming: "segmented",
    ProcessingType.convert: "single-file",
}


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def normalize_category(category: Optional[str]) -> str:
    value = (category or "").strip()
    return value or DEFAULT_CATEGORY


@dataclass(slots=True)
class ContentRecord:
    """Metadata describing one ingested upload and its derived artifacts."""

    id: str
    title: str
    description: str
    category: str
    uploader_id: str
    upload_timestamp: datetime
    processing_type: ProcessingType
    quality: Quality
    duration_seconds: float = 0.0
    file_size_bytes: int = 0
    original_filename: str = ""
    streaming_url: Optional[str] = None
    thumbnail_url: Optional[str] = None
    views: int = 0
    likes: int = 0
    status: RecordStatus = RecordStatus.available
    last_updated: datetime = field(default_factory=utcnow)

    @property
    def rendition_kind(self) -> str:
        return RENDITION_KINDS[self.processing_type]

    def to_dict(self) -> dict[str, object]:
        return {
            "id": self.id,
            "title": self.title,
            "description": self.description,
            "category": self.category,
            "uploader_id": self.uploader_id,
            "upload_timestamp": self.upload_timestamp,
            "processing_type": self.processing_type.value,
            "quality": self.quality.value,
            "duration_seconds": self.duration_seconds,
            "file_size_bytes": self.file_size_bytes,
            "original_filename": self.original_filename,
            "streaming_url": self.streaming_url,
            "thumbnail_url": self.thumbnail_url,
            "views": self.views,
            "likes": self.likes,
            "status": self.status.value,
            "last_updated": self.last_updated,
        }


__all__ = [
    "ContentRecord",
    "DEFAULT_CATEGORY",
    "ProcessingType",
    "Quality",
    "RecordStatus",
    "RENDITION_KINDS",
    "normalize_category",
    "utcnow",
]
