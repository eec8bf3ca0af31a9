import stat
import sys
from pathlib import Path
from uuid import uuid4

import cv2
import jwt
import numpy as np
import pytest
from fastapi.testclient import TestClient

from vidhub.catalog.store import MetadataCatalog
from vidhub.core.config import get_settings
from vidhub.core.storage import get_artifact_store
from vidhub.main import create_app
from vidhub.media.engine import DerivationExecutor
from vidhub.services.ingest_service import IngestService, UploadedFile

TEST_SECRET = "test-secret"

FAKE_FFMPEG = """#!{python}
import os
import shutil
import sys
import time

args = sys.argv[1:]
if "-version" in args:
    print("ffmpeg version fake")
    sys.exit(0)

output = args[-1]
is_thumbnail = output.endswith(".jpg")
mode = os.environ.get("FAKE_FFMPEG_THUMB_MODE" if is_thumbnail else "FAKE_FFMPEG_MAIN_MODE", "ok")
if not is_thumbnail:
    time.sleep(float(os.environ.get("FAKE_FFMPEG_DELAY", "0")))

if mode == "fail":
    sys.stderr.write("simulated encoder failure for " + output + "\\n")
    sys.exit(1)
if mode == "hang":
    time.sleep(30)
    sys.exit(0)
if mode == "no-output":
    sys.exit(0)

print("out_time_us=500000", flush=True)
print("progress=continue", flush=True)

if is_thumbnail:
    if mode == "garbage":
        with open(output, "wb") as handle:
            handle.write(b"not an image")
    else:
        shutil.copyfile(os.environ["FAKE_THUMBNAIL_SOURCE"], output)
else:
    if "-hls_segment_filename" in args:
        pattern = args[args.index("-hls_segment_filename") + 1]
        with open(pattern % 0, "wb") as handle:
            handle.write(b"segment")
    with open(output, "wb") as handle:
        handle.write(b"derived media")

print("out_time_us=1000000", flush=True)
print("progress=end", flush=True)
"""

FAKE_FFPROBE = """#!{python}
import json
import os
import sys

if "-version" in sys.argv:
    print("ffprobe version fake")
    sys.exit(0)
if os.environ.get("FAKE_FFPROBE_MODE") == "fail":
    sys.stderr.write("invalid data found when processing input\\n")
    sys.exit(1)
print(json.dumps({{"format": {{"duration": os.environ.get("FAKE_FFPROBE_DURATION", "12.5")}}}}))
"""


def _write_executable(path: Path, source: str) -> Path:
    path.write_text(source.format(python=sys.executable))
    path.chmod(path.stat().st_mode | stat.S_IXUSR | stat.S_IXGRP | stat.S_IXOTH)
    return path


@pytest.fixture(scope="session")
def media_tools(tmp_path_factory) -> dict[str, Path]:
    """Stand-ins for ffmpeg/ffprobe that honour FAKE_* environment toggles."""
    root = tmp_path_factory.mktemp("bin")
    thumbnail = root / "frame.jpg"
    cv2.imwrite(str(thumbnail), np.zeros((360, 640, 3), dtype=np.uint8))
    return {
        "ffmpeg": _write_executable(root / "fake-ffmpeg", FAKE_FFMPEG),
        "ffprobe": _write_executable(root / "fake-ffprobe", FAKE_FFPROBE),
        "thumbnail": thumbnail,
    }


@pytest.fixture(autouse=True)
def configure_environment(monkeypatch, tmp_path, media_tools):
    storage_root = tmp_path / "public"

    monkeypatch.setenv("VIDHUB_ENV", "test")
    monkeypatch.setenv("VIDHUB_LOG_LEVEL", "debug")
    monkeypatch.setenv("VIDHUB_ROOT", str(storage_root))
    # get_settings copies the short aliases into these; register them so they are restored.
    monkeypatch.setenv("VIDHUB_ENVIRONMENT", "test")
    monkeypatch.setenv("VIDHUB_STORAGE_ROOT", str(storage_root))
    monkeypatch.setenv("VIDHUB_FFMPEG_BINARY", str(media_tools["ffmpeg"]))
    monkeypatch.setenv("VIDHUB_FFPROBE_BINARY", str(media_tools["ffprobe"]))
    monkeypatch.setenv("VIDHUB_THUMBNAIL_TIMEOUT_S", "5")
    monkeypatch.setenv("VIDHUB_JWT_SECRET", TEST_SECRET)
    monkeypatch.setenv("VIDHUB_JWT_ISSUER", "vidhub-test")
    monkeypatch.setenv("VIDHUB_JWT_AUDIENCE", "vidhub")
    monkeypatch.setenv("FAKE_THUMBNAIL_SOURCE", str(media_tools["thumbnail"]))
    for toggle in (
        "FAKE_FFMPEG_MAIN_MODE",
        "FAKE_FFMPEG_THUMB_MODE",
        "FAKE_FFMPEG_DELAY",
        "FAKE_FFPROBE_MODE",
        "FAKE_FFPROBE_DURATION",
    ):
        monkeypatch.delenv(toggle, raising=False)

    get_settings.cache_clear()
    yield storage_root
    get_settings.cache_clear()


@pytest.fixture()
def settings(configure_environment):
    return get_settings()


@pytest.fixture()
def store(settings):
    return get_artifact_store(settings)


@pytest.fixture()
def catalog():
    return MetadataCatalog()


@pytest.fixture()
def service(settings, catalog, store):
    return IngestService(settings, catalog, store, DerivationExecutor(settings.ffmpeg_binary))


@pytest.fixture()
def client(configure_environment):
    app = create_app()
    with TestClient(app) as client:
        yield client


def stage_upload(store, filename: str, payload: bytes = b"\x00\x00\x00\x18ftypmp42") -> UploadedFile:
    path = store.upload_path_for(uuid4().hex, Path(filename).suffix)
    path.write_bytes(payload)
    return UploadedFile(path=path, original_filename=filename, size_bytes=len(payload))


def build_token(user_id: str | None, *, scopes: list[str] | None = None) -> str:
    payload: dict[str, object] = {"iss": "vidhub-test", "aud": "vidhub"}
    if user_id:
        payload["sub"] = user_id
    if scopes:
        payload["scopes"] = scopes
    return jwt.encode(payload, TEST_SECRET, algorithm="HS256")


@pytest.fixture()
def user_headers() -> dict[str, str]:
    return {"Authorization": f"Bearer {build_token('user-1')}"}


@pytest.fixture()
def admin_headers() -> dict[str, str]:
    return {"Authorization": f"Bearer {build_token('admin-1', scopes=['admin'])}"}


def set_engine_mode(monkeypatch, *, main: str | None = None, thumbnail: str | None = None) -> None:
    if main:
        monkeypatch.setenv("FAKE_FFMPEG_MAIN_MODE", main)
    if thumbnail:
        monkeypatch.setenv("FAKE_FFMPEG_THUMB_MODE", thumbnail)
