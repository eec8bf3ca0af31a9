from __future__ import annotations

import asyncio
from pathlib import Path
from typing import Optional, Tuple

import cv2  # type: ignore

from vidhub.core.errors import DerivationError, ThumbnailDerivationError

from .engine import DerivationExecutor
from .profiles import thumbnail_options


async def render_thumbnail(
    executor: DerivationExecutor,
    video_path: Path,
    output_path: Path,
    duration_s: Optional[float],
) -> Tuple[int, int]:
    """Grab a single preview frame at 10% of the video and return its size."""
    try:
        await executor.run(
            video_path,
            output_path,
            thumbnail_options(duration_s),
            label="thumbnail",
            duration_s=duration_s,
        )
    except DerivationError as exc:
        output_path.unlink(missing_ok=True)
        raise ThumbnailDerivationError(exc.reason) from exc

    try:
        return await asyncio.to_thread(image_dimensions, output_path)
    except RuntimeError as exc:
        output_path.unlink(missing_ok=True)
        raise ThumbnailDerivationError("thumbnail is not a readable image") from exc


def image_dimensions(image_path: Path) -> Tuple[int, int]:
    image = cv2.imread(str(image_path))
    if image is None:
        raise RuntimeError(f"Failed to read generated thumbnail at {image_path}")
    height, width = image.shape[:2]
    return width, height


__all__ = ["image_dimensions", "render_thumbnail"]
