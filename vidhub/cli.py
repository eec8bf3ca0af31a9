from __future__ import annotations

import argparse
import asyncio
import shutil
import subprocess
import sys
from pathlib import Path
from typing import Optional
from uuid import uuid4

from rich.console import Console

from .catalog.store import MetadataCatalog
from .core.config import get_settings
from .core.errors import VidhubError
from .core.logging import configure_logging, level_from_name
from .core.storage import get_artifact_store
from .media.engine import DerivationExecutor
from .media.profiles import select_profile
from .services.ingest_service import IngestService, UploadedFile, normalize_upload_fields

console = Console()


def main(argv: Optional[list[str]] = None) -> None:
    """The main entry point for the CLI.

    Args:
        argv: The command-line arguments.
    """
    parser = _build_parser()
    args = parser.parse_args(argv)

    if getattr(args, "check", False):
        _run_environment_check()
        return

    if not hasattr(args, "func"):
        parser.print_help()
        sys.exit(1)

    args.func(args)


def _build_parser() -> argparse.ArgumentParser:
    """Build the argument parser for the CLI.

    Returns:
        The argument parser.
    """
    parser = argparse.ArgumentParser(description="Vidhub media ingest developer CLI")
    parser.add_argument("--check", action="store_true", help="Validate presence of ffmpeg/ffprobe binaries")

    subparsers = parser.add_subparsers(dest="command")

    profile_parser = subparsers.add_parser("profile", help="Print the derivation profile for a type/quality pair")
    profile_parser.add_argument("--type", dest="processing_type", default="streaming", help="streaming or convert")
    profile_parser.add_argument("--quality", default=None, help="low, medium or high (convert only)")
    profile_parser.set_defaults(func=_cmd_profile)

    ingest_parser = subparsers.add_parser("ingest", help="Run a local file through the full ingest pipeline")
    ingest_parser.add_argument("--file", required=True, help="Path to the source media file")
    ingest_parser.add_argument("--type", dest="processing_type", default=None, help="streaming or convert")
    ingest_parser.add_argument("--quality", default=None, help="low, medium or high")
    ingest_parser.add_argument("--title", default=None)
    ingest_parser.add_argument("--description", default=None)
    ingest_parser.add_argument("--category", default=None)
    ingest_parser.add_argument("--uploader", default="cli", help="Uploader id recorded on the content record")
    ingest_parser.set_defaults(func=_cmd_ingest)
    return parser


def _cmd_profile(args: argparse.Namespace) -> None:
    """Print the resolved derivation profile as JSON.

    Args:
        args: The command-line arguments.
    """
    try:
        profile = select_profile(args.processing_type, args.quality)
    except VidhubError as exc:
        console.print(f"[red]{exc.reason}[/]")
        sys.exit(2)
    console.print_json(
        data={
            "processing_type": profile.processing_type.value,
            "quality": profile.quality.value if profile.quality else None,
            "output_layout": profile.output_layout,
            "options": list(profile.options),
        }
    )


def _cmd_ingest(args: argparse.Namespace) -> None:
    """Copy a file into the uploads area, derive its artifacts and print the record.

    Args:
        args: The command-line arguments.
    """
    source = Path(args.file).expanduser().resolve()
    if not source.exists():
        console.print(f"[red]File not found: {source}[/]")
        sys.exit(2)

    settings = get_settings()
    configure_logging(level=level_from_name(settings.log_level))
    store = get_artifact_store(settings)
    service = IngestService(
        settings,
        MetadataCatalog(),
        store,
        DerivationExecutor(settings.ffmpeg_binary, timeout_s=settings.derivation_timeout_s),
    )

    staged = store.upload_path_for(uuid4().hex, source.suffix)
    shutil.copyfile(source, staged)
    fields = normalize_upload_fields(
        source.name,
        title=args.title,
        description=args.description,
        category=args.category,
        quality=args.quality,
        processing_type=args.processing_type,
        settings=settings,
    )
    upload = UploadedFile(path=staged, original_filename=source.name, size_bytes=staged.stat().st_size)

    try:
        record = asyncio.run(service.ingest(upload, fields, args.uploader))
    except VidhubError as exc:
        console.print(f"[red]{exc.code}:[/] {exc.reason}")
        sys.exit(3)

    console.print_json(data=record.to_dict(), default=str)


def _run_environment_check() -> None:
    """Check for the presence of the media engine binaries."""
    settings = get_settings()
    checks = {
        "ffmpeg": [settings.ffmpeg_binary, "-version"],
        "ffprobe": [settings.ffprobe_binary, "-version"],
    }
    results = {}
    for label, cmd in checks.items():
        try:
            subprocess.run(cmd, stdout=subprocess.DEVNULL, stderr=subprocess.DEVNULL, check=True)
            results[label] = True
        except (OSError, subprocess.CalledProcessError):
            results[label] = False

    console.rule("[bold]Environment Check")
    for label, ok in results.items():
        console.print(f"[bold]{label}[/]: {'✅' if ok else '❌'}")

    if not all(results.values()):
        console.print("[red]Missing media engine binaries detected.[/]")
        sys.exit(1)
    console.print("[green]Environment looks good![/]")


if __name__ == "__main__":
    main()
