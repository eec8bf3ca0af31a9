from __future__ import annotations

import asyncio
from collections import deque
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Literal, Optional, Sequence

from vidhub.core.errors import DerivationError
from vidhub.core.logging import get_logger

EventKind = Literal["start", "progress", "end"]
STDERR_TAIL_LINES = 20


@dataclass(frozen=True, slots=True)
class DerivationEvent:
    kind: EventKind
    label: str
    percent: Optional[float] = None


Observer = Callable[[DerivationEvent], None]


class DerivationExecutor:
    """Runs one out-of-process media engine invocation per artifact.

    Each call to :meth:`run` resolves to the output path or raises
    :class:`DerivationError`. Start and progress events go to an optional
    observer and never influence the outcome.
    """

    def __init__(self, binary: str = "ffmpeg", *, timeout_s: Optional[float] = None):
        self.binary = binary
        self.timeout_s = timeout_s
        self.logger = get_logger(component="derivation_executor")

    def build_command(self, input_path: Path, output_path: Path, options: Sequence[str]) -> list[str]:
        return [
            self.binary,
            "-nostdin",
            "-hide_banner",
            "-v",
            "error",
            "-y",
            "-progress",
            "pipe:1",
            "-nostats",
            "-i",
            str(input_path),
            *options,
            str(output_path),
        ]

    async def run(
        self,
        input_path: Path,
        output_path: Path,
        options: Sequence[str],
        *,
        label: str = "main",
        duration_s: Optional[float] = None,
        observer: Optional[Observer] = None,
        timeout_s: Optional[float] = None,
    ) -> Path:
        command = self.build_command(input_path, output_path, options)
        logger = self.logger.bind(label=label)
        limit = timeout_s if timeout_s is not None else self.timeout_s

        try:
            process = await asyncio.create_subprocess_exec(
                *command,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
            )
        except OSError as exc:
            logger.error("derivation_engine_unavailable", binary=self.binary, error=str(exc))
            raise DerivationError("media engine unavailable") from exc

        logger.info("derivation_started", command=command)
        self._notify(observer, DerivationEvent("start", label), logger)

        stderr_tail: deque[str] = deque(maxlen=STDERR_TAIL_LINES)
        try:
            returncode = await asyncio.wait_for(
                self._communicate(process, stderr_tail, label, duration_s, observer, logger),
                timeout=limit,
            )
        except asyncio.TimeoutError as exc:
            await self._terminate(process)
            logger.error("derivation_timed_out", timeout_s=limit, command=command)
            raise DerivationError("media engine timed out") from exc
        except asyncio.CancelledError:
            await self._terminate(process)
            logger.warning("derivation_cancelled", command=command)
            raise
        except Exception as exc:
            await self._terminate(process)
            logger.error("derivation_aborted", command=command, exc_info=True)
            raise DerivationError("media engine output could not be read") from exc

        if returncode != 0:
            logger.error(
                "derivation_failed",
                returncode=returncode,
                command=command,
                stderr="\n".join(stderr_tail),
            )
            raise DerivationError(f"media engine exited with code {returncode}")

        if not output_path.exists():
            logger.error("derivation_output_missing", output=str(output_path), command=command)
            raise DerivationError("media engine produced no output")

        self._notify(observer, DerivationEvent("end", label, 100.0), logger)
        logger.info("derivation_succeeded", output=str(output_path))
        return output_path

    async def _communicate(
        self,
        process: asyncio.subprocess.Process,
        stderr_tail: deque[str],
        label: str,
        duration_s: Optional[float],
        observer: Optional[Observer],
        logger,
    ) -> int:
        async def read_progress() -> None:
            assert process.stdout is not None
            while line := await process.stdout.readline():
                percent = parse_progress_line(line.decode("utf-8", errors="replace"), duration_s)
                if percent is not None:
                    self._notify(observer, DerivationEvent("progress", label, percent), logger)

        async def read_stderr() -> None:
            assert process.stderr is not None
            while line := await process.stderr.readline():
                stderr_tail.append(line.decode("utf-8", errors="replace").rstrip())

        await asyncio.gather(read_progress(), read_stderr())
        return await process.wait()

    @staticmethod
    async def _terminate(process: asyncio.subprocess.Process) -> None:
        if process.returncode is None:
            try:
                process.kill()
            except ProcessLookupError:
                pass
            await process.wait()

    @staticmethod
    def _notify(observer: Optional[Observer], event: DerivationEvent, logger) -> None:
        if observer is None:
            return
        try:
            observer(event)
        except Exception:
            logger.warning("derivation_observer_failed", kind=event.kind, exc_info=True)


def parse_progress_line(line: str, duration_s: Optional[float]) -> Optional[float]:
    """Turn one ``-progress`` key=value line into a completion percentage."""
    key, _, value = line.strip().partition("=")
    if key == "progress" and value == "end":
        return 100.0
    if key not in {"out_time_us", "out_time_ms"} or not duration_s:
        return None
    try:
        # ffmpeg reports both keys in microseconds.
        elapsed_s = int(value) / 1_000_000
    except ValueError:
        return None
    return round(min(max(elapsed_s / duration_s * 100, 0.0), 100.0), 1)


__all__ = ["DerivationEvent", "DerivationExecutor", "Observer", "parse_progress_line"]
