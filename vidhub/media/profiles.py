from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Literal, Optional

from vidhub.catalog.models import ProcessingType, Quality
from vidhub.core.errors import InvalidProfile
from vidhub.core.storage import ArtifactStore

OutputLayout = Literal["segmented", "single-file"]

THUMB_SIZE = "640x360"
THUMB_POSITION = 0.10

# Segment filename pattern is appended per content id by ``DerivationProfile.bind``.
HLS_OPTIONS: tuple[str, ...] = (
    "-c:v", "libx264",
    "-c:a", "aac",
    "-hls_time", "10",
    "-hls_list_size", "0",
    "-f", "hls",
)

CONVERT_OPTIONS: dict[Quality, tuple[str, ...]] = {
    Quality.low: (
        "-c:v", "libx264",
        "-preset", "medium",
        "-crf", "28",
        "-vf", "scale=-2:480",
        "-c:a", "aac",
        "-b:a", "128k",
    ),
    Quality.medium: (
        "-c:v", "libx264",
        "-preset", "medium",
        "-crf", "23",
        "-vf", "scale=-2:720",
        "-c:a", "aac",
        "-b:a", "192k",
    ),
    Quality.high: (
        "-c:v", "libx264",
        "-preset", "medium",
        "-crf", "18",
        "-vf", "scale=-2:1080",
        "-c:a", "aac",
        "-b:a", "256k",
    ),
}


@dataclass(frozen=True, slots=True)
class DerivationProfile:
    """Engine options plus the output layout for one (processing type, quality) pair.

    Streaming profiles are quality-independent: ``quality`` is ``None`` and the
    HLS option set is the same whatever tier the caller asked for.
    """

    processing_type: ProcessingType
    quality: Optional[Quality]
    options: tuple[str, ...]
    output_layout: OutputLayout

    def bind(self, store: ArtifactStore, content_id: str) -> tuple[Path, list[str]]:
        """Resolve the output path and the final option list for ``content_id``."""
        if self.output_layout == "segmented":
            options = [*self.options, "-hls_segment_filename", str(store.segment_pattern_for(content_id))]
            return store.playlist_path_for(content_id), options
        return store.converted_path_for(content_id), list(self.options)


def normalize_processing_type(value: Optional[str], default: str = ProcessingType.streaming.value) -> str:
    return (value or "").strip().lower() or default


def normalize_quality(value: Optional[str], default: Quality = Quality.medium) -> Quality:
    try:
        return Quality((value or "").strip().lower())
    except ValueError:
        return default


def select_profile(processing_type: str, quality: Optional[str] = None) -> DerivationProfile:
    try:
        kind = ProcessingType(processing_type)
    except ValueError as exc:
        raise InvalidProfile(f"unknown processing type '{processing_type}'") from exc

    if kind is ProcessingType.streaming:
        return DerivationProfile(
            processing_type=kind,
            quality=None,
            options=HLS_OPTIONS,
            output_layout="segmented",
        )

    tier = normalize_quality(quality)
    return DerivationProfile(
        processing_type=kind,
        quality=tier,
        options=CONVERT_OPTIONS[tier],
        output_layout="single-file",
    )


def thumbnail_options(duration_s: Optional[float]) -> list[str]:
    offset = max((duration_s or 0.0) * THUMB_POSITION, 0.0)
    return [
        "-ss", f"{offset:.3f}",
        "-frames:v", "1",
        "-s", THUMB_SIZE,
        "-q:v", "2",
    ]


__all__ = [
    "CONVERT_OPTIONS",
    "DerivationProfile",
    "HLS_OPTIONS",
    "normalize_processing_type",
    "normalize_quality",
    "select_profile",
    "thumbnail_options",
]
