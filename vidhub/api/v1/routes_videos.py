from __future__ import annotations

from pathlib import Path
from typing import Optional
from uuid import uuid4

from fastapi import APIRouter, Depends, File, Form, HTTPException, UploadFile, status

from vidhub.api import deps
from vidhub.core.config import Settings
from vidhub.core.errors import UnsupportedFormat
from vidhub.core.logging import get_logger
from vidhub.services.ingest_service import UploadedFile, normalize_upload_fields

from . import schemas


router = APIRouter(prefix="/videos", tags=["videos"])
logger = get_logger(component="upload_route")

CHUNK_SIZE = 1024 * 1024


async def _stage_upload(file: UploadFile, target: Path, max_bytes: int) -> int:
    written = 0
    try:
        with target.open("wb") as handle:
            while chunk := await file.read(CHUNK_SIZE):
                written += len(chunk)
                if written > max_bytes:
                    raise HTTPException(status_code=status.HTTP_413_REQUEST_ENTITY_TOO_LARGE, detail="upload_too_large")
                handle.write(chunk)
    except BaseException:
        target.unlink(missing_ok=True)
        raise
    finally:
        await file.close()
    return written


@router.post("/upload", response_model=schemas.UploadResponse, summary="Upload and process a video")
async def upload_video(
    service: deps.IngestServiceDependency,
    caller: deps.CallerDependency,
    settings: Settings = Depends(deps.get_app_settings),
    file: Optional[UploadFile] = File(default=None),
    title: Optional[str] = Form(default=None),
    description: Optional[str] = Form(default=None),
    category: Optional[str] = Form(default=None),
    quality: Optional[str] = Form(default=None),
    processing_type: Optional[str] = Form(default=None, alias="processingType"),
    delete_original: Optional[str] = Form(default=None, alias="deleteOriginal"),
) -> schemas.UploadResponse:
    if file is None or not file.filename:
        raise UnsupportedFormat("No video file uploaded")

    content_id = uuid4().hex
    staged = service.store.upload_path_for(content_id, Path(file.filename).suffix)
    size = await _stage_upload(file, staged, settings.max_upload_size_bytes)
    logger.info("upload_staged", content_id=content_id, size_bytes=size, uploader_id=caller.user_id)

    fields = normalize_upload_fields(
        file.filename,
        title=title,
        description=description,
        category=category,
        quality=quality,
        processing_type=processing_type,
        delete_original=delete_original,
        settings=settings,
    )
    record = await service.ingest(
        UploadedFile(path=staged, original_filename=file.filename, size_bytes=size),
        fields,
        caller.user_id,
    )
    return schemas.UploadResponse(
        video_id=record.id,
        metadata=schemas.ContentRecordModel.from_record(record),
        streaming_url=record.streaming_url,
    )


__all__ = ["router"]
