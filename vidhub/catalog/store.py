from __future__ import annotations

import threading
from dataclasses import replace
from typing import Any, Iterable, Optional

from vidhub.core.logging import get_logger

from .models import ContentRecord, Quality, RecordStatus, normalize_category, utcnow

IMMUTABLE_FIELDS = frozenset({"id", "upload_timestamp", "processing_type", "last_updated"})
MUTABLE_FIELDS = frozenset(
    {
        "title",
        "description",
        "category",
        "uploader_id",
        "quality",
        "duration_seconds",
        "file_size_bytes",
        "original_filename",
        "streaming_url",
        "thumbnail_url",
        "views",
        "likes",
        "status",
    }
)
_COUNTERS = ("views", "likes")


def _newest_first(records: Iterable[ContentRecord]) -> list[ContentRecord]:
    return sorted(records, key=lambda record: record.upload_timestamp, reverse=True)


class MetadataCatalog:
    """In-process index of content records with a per-category count aggregate.

    One lock guards the records and the aggregate together, so every mutation
    moves both in a single critical section and every read sees one
    consistent snapshot. Records go in and come out as copies.
    """

    def __init__(self) -> None:
        self._records: dict[str, ContentRecord] = {}
        self._category_counts: dict[str, int] = {}
        self._lock = threading.Lock()
        self.logger = get_logger(component="metadata_catalog")

    def __len__(self) -> int:
        with self._lock:
            return len(self._records)

    def __contains__(self, content_id: object) -> bool:
        with self._lock:
            return content_id in self._records

    def put(self, content_id: str, record: ContentRecord) -> ContentRecord:
        if record.id != content_id:
            raise ValueError("content_id_mismatch")
        stored = replace(record, category=normalize_category(record.category), last_updated=utcnow())
        self._check_counters(stored)

        with self._lock:
            previous = self._records.get(content_id)
            if previous is None:
                self._increment(stored.category)
            elif previous.category != stored.category:
                self._decrement(previous.category)
                self._increment(stored.category)
            self._records[content_id] = stored
        self.logger.debug("catalog_put", content_id=content_id, replaced=previous is not None)
        return replace(stored)

    def get(self, content_id: str) -> Optional[ContentRecord]:
        with self._lock:
            record = self._records.get(content_id)
            return replace(record) if record else None

    def list(self, *, category: Optional[str] = None, uploader_id: Optional[str] = None) -> list[ContentRecord]:
        with self._lock:
            records = [replace(record) for record in self._records.values()]
        if category:
            records = [record for record in records if record.category == category]
        if uploader_id:
            records = [record for record in records if record.uploader_id == uploader_id]
        return _newest_first(records)

    def update(self, content_id: str, **fields: Any) -> Optional[ContentRecord]:
        changes = self._coerce_changes(fields)
        with self._lock:
            current = self._records.get(content_id)
            if current is None:
                return None
            updated = replace(current, **changes, last_updated=utcnow())
            self._check_counters(updated)
            if updated.category != current.category:
                self._decrement(current.category)
                self._increment(updated.category)
            self._records[content_id] = updated
        self.logger.debug("catalog_update", content_id=content_id, fields=sorted(changes))
        return replace(updated)

    def delete(self, content_id: str) -> Optional[ContentRecord]:
        with self._lock:
            removed = self._records.pop(content_id, None)
            if removed is not None:
                self._decrement(removed.category)
        if removed is None:
            self.logger.debug("catalog_delete_missing", content_id=content_id)
        return removed

    def increment_views(self, content_id: str) -> None:
        with self._lock:
            record = self._records.get(content_id)
            if record is None:
                return
            record.views += 1
            record.last_updated = utcnow()

    def categories(self) -> dict[str, int]:
        with self._lock:
            return dict(self._category_counts)

    def search(self, query: str) -> list[ContentRecord]:
        needle = (query or "").lower()
        with self._lock:
            records = [replace(record) for record in self._records.values()]
        matches = [
            record
            for record in records
            if needle in record.title.lower() or needle in record.description.lower()
        ]
        return _newest_first(matches)

    def featured(self, limit: int = 5) -> list[ContentRecord]:
        if limit < 1:
            return []
        ranked = sorted(self.list(), key=lambda record: record.views + record.likes, reverse=True)
        return ranked[:limit]

    def _increment(self, category: str) -> None:
        self._category_counts[category] = self._category_counts.get(category, 0) + 1

    def _decrement(self, category: str) -> None:
        self._category_counts[category] = max(0, self._category_counts.get(category, 0) - 1)

    @staticmethod
    def _check_counters(record: ContentRecord) -> None:
        for name in _COUNTERS:
            if getattr(record, name) < 0:
                raise ValueError(f"{name}_must_be_non_negative")

    @staticmethod
    def _coerce_changes(fields: dict[str, Any]) -> dict[str, Any]:
        frozen = IMMUTABLE_FIELDS.intersection(fields)
        if frozen:
            raise ValueError(f"immutable_fields:{','.join(sorted(frozen))}")
        unknown = set(fields) - MUTABLE_FIELDS
        if unknown:
            raise ValueError(f"unknown_fields:{','.join(sorted(unknown))}")

        changes = dict(fields)
        if "category" in changes:
            changes["category"] = normalize_category(changes["category"])
        if "quality" in changes:
            changes["quality"] = Quality(changes["quality"])
        if "status" in changes:
            changes["status"] = RecordStatus(changes["status"])
        return changes


__all__ = ["MetadataCatalog", "MUTABLE_FIELDS", "IMMUTABLE_FIELDS"]
