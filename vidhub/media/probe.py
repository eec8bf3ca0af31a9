from __future__ import annotations

import asyncio
import json
from pathlib import Path
from typing import Any, Dict, Optional

from vidhub.core.logging import get_logger

logger = get_logger(component="media_probe")


def parse_duration(raw: Dict[str, Any]) -> Optional[float]:
    """Extract ``format.duration`` in seconds from ffprobe JSON."""
    value = (raw.get("format") or {}).get("duration")
    if value in (None, "", "N/A"):
        return None
    try:
        duration = float(value)
    except (TypeError, ValueError):
        return None
    if duration < 0:
        return None
    return round(duration, 3)


async def probe_duration(ffprobe_binary: str, target: Path) -> float:
    """Return the media duration in seconds, or ``0.0`` when it cannot be probed."""
    command = [
        ffprobe_binary,
        "-v",
        "error",
        "-show_format",
        "-print_format",
        "json",
        str(target),
    ]
    try:
        process = await asyncio.create_subprocess_exec(
            *command,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE,
        )
        stdout, stderr = await process.communicate()
    except OSError as exc:
        logger.warning("probe_unavailable", binary=ffprobe_binary, error=str(exc))
        return 0.0

    if process.returncode != 0:
        logger.warning("probe_failed", returncode=process.returncode, stderr=stderr.decode(errors="replace").strip())
        return 0.0

    try:
        duration = parse_duration(json.loads(stdout))
    except json.JSONDecodeError:
        logger.warning("probe_output_invalid")
        return 0.0
    return duration or 0.0


__all__ = ["parse_duration", "probe_duration"]
