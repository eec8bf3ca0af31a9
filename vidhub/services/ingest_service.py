from __future__ import annotations

import asyncio
import enum
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Optional, Union

from vidhub.catalog.models import ContentRecord, ProcessingType, Quality, RecordStatus, normalize_category, utcnow
from vidhub.catalog.store import MetadataCatalog
from vidhub.core.config import Settings
from vidhub.core.errors import DerivationError, InvalidProfile, ThumbnailDerivationError, UnsupportedFormat
from vidhub.core.logging import get_logger
from vidhub.core.storage import ArtifactStore
from vidhub.media.engine import DerivationEvent, DerivationExecutor
from vidhub.media.probe import probe_duration
from vidhub.media.profiles import normalize_processing_type, normalize_quality, select_profile
from vidhub.media.thumbnails import render_thumbnail


class IngestState(str, enum.Enum):
    received = "received"
    validated = "validated"
    deriving = "deriving"
    committed = "committed"
    rejected = "rejected"
    failed = "failed"


@dataclass(frozen=True, slots=True)
class UploadedFile:
    """An upload already staged on disk. Its file stem is the content id."""

    path: Path
    original_filename: str
    size_bytes: int

    @property
    def content_id(self) -> str:
        return self.path.stem


@dataclass(frozen=True, slots=True)
class UploadFields:
    title: str
    description: str
    category: str
    quality: Quality
    processing_type: str
    delete_original: bool = False


def _parse_flag(value: Union[str, bool, None]) -> bool:
    if isinstance(value, bool):
        return value
    return (value or "").strip().lower() == "true"


def normalize_upload_fields(
    original_filename: str,
    *,
    title: Optional[str] = None,
    description: Optional[str] = None,
    category: Optional[str] = None,
    quality: Optional[str] = None,
    processing_type: Optional[str] = None,
    delete_original: Union[str, bool, None] = None,
    settings: Optional[Settings] = None,
) -> UploadFields:
    """Apply every upload default in one place, before validation.

    Defaults: title is the original filename, description is empty, category is
    ``uncategorized``, quality is ``medium`` (unknown tiers fall back to it),
    processing type is ``streaming`` and the original upload is kept.
    """
    default_type = settings.default_processing_type if settings else ProcessingType.streaming.value
    default_quality = Quality(settings.default_quality) if settings else Quality.medium
    return UploadFields(
        title=(title or "").strip() or original_filename,
        description=description or "",
        category=normalize_category(category),
        quality=normalize_quality(quality, default_quality),
        processing_type=normalize_processing_type(processing_type, default_type),
        delete_original=_parse_flag(delete_original),
    )


class IngestService:
    """Validates an upload, derives its artifacts and commits a catalog record.

    The pipeline is single-pass: a failed ingestion leaves no record, no
    artifacts and no staged upload behind, and has to be resubmitted from the
    start.
    """

    def __init__(
        self,
        settings: Settings,
        catalog: MetadataCatalog,
        store: ArtifactStore,
        executor: DerivationExecutor,
    ):
        self.settings = settings
        self.catalog = catalog
        self.store = store
        self.executor = executor
        self.logger = get_logger(component="ingest_service")
        self._inflight: set[asyncio.Task[ContentRecord]] = set()

    @property
    def inflight(self) -> int:
        return len(self._inflight)

    async def ingest(self, upload: UploadedFile, fields: UploadFields, uploader_id: str) -> ContentRecord:
        """Run one ingestion to completion.

        The pipeline runs in its own task. If the awaiting caller goes away the
        task still finishes, and either commits the record or purges the
        artifacts.
        """
        task = asyncio.create_task(self._run(upload, fields, uploader_id))
        self._inflight.add(task)
        task.add_done_callback(self._inflight.discard)
        return await asyncio.shield(task)

    async def drain(self) -> None:
        if self._inflight:
            await asyncio.gather(*list(self._inflight), return_exceptions=True)

    def delete(self, content_id: str) -> Optional[ContentRecord]:
        record = self.catalog.delete(content_id)
        if record is None:
            return None
        removed = self.store.purge(content_id)
        self.logger.info("content_deleted", content_id=content_id, purged=[str(path) for path in removed])
        return record

    async def _run(self, upload: UploadedFile, fields: UploadFields, uploader_id: str) -> ContentRecord:
        content_id = upload.content_id
        log = self.logger.bind(content_id=content_id)
        self._transition(log, IngestState.received, filename=upload.original_filename)

        self._validate(upload, log)
        try:
            profile = select_profile(fields.processing_type, fields.quality.value)
        except InvalidProfile as exc:
            self._discard_upload(upload, log)
            self._transition(log, IngestState.rejected, error=exc.code, reason=exc.reason)
            raise
        self._transition(log, IngestState.validated, processing_type=profile.processing_type.value)

        duration_s = await probe_duration(self.settings.ffprobe_binary, upload.path)
        output_path, options = profile.bind(self.store, content_id)
        thumbnail_path = self.store.thumbnail_path_for(content_id)

        self._transition(log, IngestState.deriving, output_layout=profile.output_layout)
        thumbnail_task = asyncio.create_task(
            render_thumbnail(self.executor, upload.path, thumbnail_path, duration_s)
        )
        try:
            await self.executor.run(
                upload.path,
                output_path,
                options,
                label="main",
                duration_s=duration_s,
                observer=self._progress_observer(log),
            )
            has_thumbnail = await self._await_thumbnail(thumbnail_task, thumbnail_path, log)
            committed = self._commit(upload, fields, uploader_id, profile.processing_type, duration_s, has_thumbnail)
        except DerivationError as exc:
            await self._fail(upload, thumbnail_task, log, error=exc.code, reason=exc.reason)
            raise
        except asyncio.CancelledError:
            await self._fail(upload, thumbnail_task, log, error="cancelled")
            raise
        except Exception as exc:
            log.error("ingest_crashed", exc_info=True)
            await self._fail(upload, thumbnail_task, log, error=DerivationError.code, reason="unexpected_error")
            raise DerivationError("unexpected error during derivation") from exc

        self._transition(log, IngestState.committed, thumbnail=has_thumbnail)
        if fields.delete_original:
            self._discard_upload(upload, log)
        return committed

    def _commit(
        self,
        upload: UploadedFile,
        fields: UploadFields,
        uploader_id: str,
        kind: ProcessingType,
        duration_s: float,
        has_thumbnail: bool,
    ) -> ContentRecord:
        content_id = upload.content_id
        now = utcnow()
        record = ContentRecord(
            id=content_id,
            title=fields.title,
            description=fields.description,
            category=fields.category,
            uploader_id=uploader_id,
            upload_timestamp=now,
            processing_type=kind,
            quality=fields.quality,
            duration_seconds=duration_s,
            file_size_bytes=upload.size_bytes,
            original_filename=upload.original_filename,
            streaming_url=(
                self.settings.streaming_url_for(content_id)
                if kind is ProcessingType.streaming
                else self.settings.converted_url_for(content_id)
            ),
            thumbnail_url=self.settings.thumbnail_url_for(content_id) if has_thumbnail else None,
            views=0,
            likes=0,
            status=RecordStatus.available,
            last_updated=now,
        )
        return self.catalog.put(content_id, record)

    async def _fail(self, upload: UploadedFile, thumbnail_task: asyncio.Task, log: Any, **fields: Any) -> None:
        """Leave nothing behind for a failed ingestion, staged upload included."""
        await self._abandon(thumbnail_task)
        self.store.purge(upload.content_id)
        self._discard_upload(upload, log)
        self._transition(log, IngestState.failed, **fields)

    def _validate(self, upload: UploadedFile, log: Any) -> None:
        if not upload.original_filename or not upload.path.exists():
            self._discard_upload(upload, log)
            self._transition(log, IngestState.rejected, error=UnsupportedFormat.code, reason="missing_file")
            raise UnsupportedFormat("No video file uploaded")

        extension = Path(upload.original_filename).suffix.lower()
        if extension not in self.settings.supported_extensions:
            self._discard_upload(upload, log)
            self._transition(log, IngestState.rejected, error=UnsupportedFormat.code, extension=extension)
            raise UnsupportedFormat(
                "Unsupported file format. Please upload one of: " + ", ".join(self.settings.supported_extensions)
            )

    async def _await_thumbnail(self, task: asyncio.Task, thumbnail_path: Path, log: Any) -> bool:
        try:
            width, height = await asyncio.wait_for(task, timeout=self.settings.thumbnail_timeout_s)
        except asyncio.TimeoutError:
            thumbnail_path.unlink(missing_ok=True)
            log.warning("thumbnail_abandoned", timeout_s=self.settings.thumbnail_timeout_s)
            return False
        except ThumbnailDerivationError as exc:
            log.warning("thumbnail_failed", reason=exc.reason)
            return False
        except Exception:
            thumbnail_path.unlink(missing_ok=True)
            log.warning("thumbnail_failed", reason="unexpected_error", exc_info=True)
            return False
        log.info("thumbnail_ready", width=width, height=height)
        return True

    @staticmethod
    async def _abandon(task: asyncio.Task) -> None:
        task.cancel()
        await asyncio.gather(task, return_exceptions=True)

    @staticmethod
    def _discard_upload(upload: UploadedFile, log: Any) -> None:
        try:
            upload.path.unlink(missing_ok=True)
        except OSError as exc:
            log.warning("upload_cleanup_failed", error=str(exc))

    @staticmethod
    def _progress_observer(log: Any):
        def observe(event: DerivationEvent) -> None:
            log.debug("derivation_progress", kind=event.kind, label=event.label, percent=event.percent)

        return observe

    @staticmethod
    def _transition(log: Any, state: IngestState, **fields: Any) -> None:
        log.info("ingest_state", state=state.value, **fields)


__all__ = [
    "IngestService",
    "IngestState",
    "UploadFields",
    "UploadedFile",
    "normalize_upload_fields",
]
