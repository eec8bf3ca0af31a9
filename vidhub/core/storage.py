from __future__ import annotations

import shutil
from abc import ABC, abstractmethod
from pathlib import Path

from .config import Settings

PLAYLIST_NAME = "playlist.m3u8"
SEGMENT_PATTERN = "segment_%03d.ts"


def _check_content_id(content_id: str) -> str:
    if not content_id or content_id in {".", ".."} or "/" in content_id or "\\" in content_id:
        raise ValueError(f"invalid_content_id:{content_id!r}")
    return content_id


class ArtifactStore(ABC):
    """Deterministic locations for derived artifacts, keyed by content id."""

    @abstractmethod
    def streaming_dir_for(self, content_id: str) -> Path: ...

    @abstractmethod
    def converted_path_for(self, content_id: str) -> Path: ...

    @abstractmethod
    def thumbnail_path_for(self, content_id: str) -> Path: ...

    @abstractmethod
    def upload_path_for(self, content_id: str, suffix: str) -> Path: ...

    @abstractmethod
    def purge(self, content_id: str) -> list[Path]: ...

    def playlist_path_for(self, content_id: str) -> Path:
        return self.streaming_dir_for(content_id) / PLAYLIST_NAME

    def segment_pattern_for(self, content_id: str) -> Path:
        return self.streaming_dir_for(content_id) / SEGMENT_PATTERN


class LocalArtifactStore(ArtifactStore):
    """Filesystem-backed artifact layout suitable for a single node."""

    def __init__(self, processed_root: Path, thumbnails_root: Path, uploads_root: Path):
        self.processed_root = processed_root
        self.thumbnails_root = thumbnails_root
        self.uploads_root = uploads_root
        for root in (self.processed_root, self.thumbnails_root, self.uploads_root):
            root.mkdir(parents=True, exist_ok=True)

    def streaming_dir_for(self, content_id: str) -> Path:
        target = self.processed_root / _check_content_id(content_id)
        target.mkdir(parents=True, exist_ok=True)
        return target

    def converted_path_for(self, content_id: str) -> Path:
        self.processed_root.mkdir(parents=True, exist_ok=True)
        return self.processed_root / f"{_check_content_id(content_id)}.mp4"

    def thumbnail_path_for(self, content_id: str) -> Path:
        self.thumbnails_root.mkdir(parents=True, exist_ok=True)
        return self.thumbnails_root / f"{_check_content_id(content_id)}.jpg"

    def upload_path_for(self, content_id: str, suffix: str) -> Path:
        self.uploads_root.mkdir(parents=True, exist_ok=True)
        return self.uploads_root / f"{_check_content_id(content_id)}{suffix.lower()}"

    def purge(self, content_id: str) -> list[Path]:
        _check_content_id(content_id)
        removed: list[Path] = []

        streaming_dir = self.processed_root / content_id
        if streaming_dir.is_dir():
            shutil.rmtree(streaming_dir, ignore_errors=True)
            removed.append(streaming_dir)

        for path in (
            self.processed_root / f"{content_id}.mp4",
            self.thumbnails_root / f"{content_id}.jpg",
        ):
            if path.exists():
                path.unlink(missing_ok=True)
                removed.append(path)
        return removed


def get_artifact_store(settings: Settings) -> ArtifactStore:
    if settings.storage_backend == "local":
        return LocalArtifactStore(
            processed_root=settings.resolved_processed_dir,
            thumbnails_root=settings.resolved_thumbnails_dir,
            uploads_root=settings.resolved_uploads_dir,
        )
    raise ValueError(f"Unsupported storage backend: {settings.storage_backend}")


__all__ = [
    "ArtifactStore",
    "LocalArtifactStore",
    "PLAYLIST_NAME",
    "SEGMENT_PATTERN",
    "get_artifact_store",
]
