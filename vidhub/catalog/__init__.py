"""Metadata catalog, its category aggregate, and the ranked listing engine."""

from vidhub.catalog.models import ContentRecord, ProcessingType, Quality, RecordStatus
from vidhub.catalog.ranking import PreviewPage, PreviewProjection, list_previews, trending_score
from vidhub.catalog.store import MetadataCatalog

__all__ = [
    "ContentRecord",
    "MetadataCatalog",
    "PreviewPage",
    "PreviewProjection",
    "ProcessingType",
    "Quality",
    "RecordStatus",
    "list_previews",
    "trending_score",
]
