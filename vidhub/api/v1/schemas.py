from __future__ import annotations

from datetime import datetime, timezone
from typing import List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from vidhub.catalog.models import ContentRecord
from vidhub.catalog.ranking import PreviewPage, PreviewProjection


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class HealthResponse(BaseModel):
    status: str = Field(default="ok", description="Health status indicator.")
    time: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))


class EnvCheckResponse(BaseModel):
    ffmpeg: bool
    ffprobe: bool


class ContentRecordModel(CamelModel):
    id: str
    title: str
    description: str
    category: str
    uploader_id: str
    upload_timestamp: datetime
    processing_type: Literal["streaming", "convert"]
    quality: Literal["low", "medium", "high"]
    duration_seconds: float = Field(ge=0)
    file_size_bytes: int = Field(ge=0)
    original_filename: str
    streaming_url: Optional[str]
    thumbnail_url: Optional[str]
    views: int = Field(ge=0)
    likes: int = Field(ge=0)
    status: Literal["available", "processing", "failed"]
    last_updated: datetime

    @classmethod
    def from_record(cls, record: ContentRecord) -> "ContentRecordModel":
        return cls(**record.to_dict())


class UploadResponse(CamelModel):
    success: bool = True
    message: str = "Video processed successfully"
    video_id: str
    metadata: ContentRecordModel
    streaming_url: Optional[str]


class PreviewModel(CamelModel):
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
    rendition_kind: Literal["segmented", "single-file"]

    @classmethod
    def from_projection(cls, preview: PreviewProjection) -> "PreviewModel":
        return cls(
            id=preview.id,
            title=preview.title,
            description=preview.description,
            thumbnail_url=preview.thumbnail_url,
            streaming_url=preview.streaming_url,
            duration_seconds=preview.duration_seconds,
            views=preview.views,
            likes=preview.likes,
            uploader_id=preview.uploader_id,
            upload_timestamp=preview.upload_timestamp,
            category=preview.category,
            quality=preview.quality,
            rendition_kind=preview.rendition_kind,
        )


class Pagination(CamelModel):
    total: int
    page: int
    total_pages: int
    has_more: bool


class PreviewData(CamelModel):
    videos: List[PreviewModel]
    pagination: Pagination


class PreviewListResponse(CamelModel):
    success: bool = True
    data: PreviewData

    @classmethod
    def from_page(cls, page: PreviewPage) -> "PreviewListResponse":
        return cls(
            data=PreviewData(
                videos=[PreviewModel.from_projection(item) for item in page.items],
                pagination=Pagination(
                    total=page.total,
                    page=page.page,
                    total_pages=page.total_pages,
                    has_more=page.has_more,
                ),
            )
        )


class RecordListResponse(CamelModel):
    success: bool = True
    data: List[ContentRecordModel]


class CategoriesResponse(CamelModel):
    success: bool = True
    data: dict[str, int]


class RecordUpdateRequest(CamelModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="forbid")

    title: Optional[str] = Field(default=None, min_length=1)
    description: Optional[str] = None
    category: Optional[str] = None
    quality: Optional[Literal["low", "medium", "high"]] = None
    views: Optional[int] = Field(default=None, ge=0)
    likes: Optional[int] = Field(default=None, ge=0)
    status: Optional[Literal["available", "processing", "failed"]] = None


class ErrorResponse(BaseModel):
    error: str
    details: Optional[str] = None


__all__ = [
    "CategoriesResponse",
    "ContentRecordModel",
    "EnvCheckResponse",
    "ErrorResponse",
    "HealthResponse",
    "Pagination",
    "PreviewListResponse",
    "PreviewModel",
    "RecordListResponse",
    "RecordUpdateRequest",
    "UploadResponse",
]
