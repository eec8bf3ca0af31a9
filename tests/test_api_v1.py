from __future__ import annotations

import jwt
import pytest
from fastapi.testclient import TestClient

from tests.conftest import TEST_SECRET, build_token, set_engine_mode
from vidhub.core.config import get_settings
from vidhub.main import create_app

VIDEO_BYTES = b"\x00\x00\x00\x18ftypmp42" + b"\x00" * 64


def upload(client, headers, filename="clip.mp4", **form):
    return client.post(
        "/api/v1/videos/upload",
        files={"file": (filename, VIDEO_BYTES, "video/mp4")},
        data=form,
        headers=headers,
    )


def uploaded_files(root):
    return [path for path in (root / "uploads").iterdir()]


@pytest.fixture()
def env_client(monkeypatch, configure_environment):
    def build(**env):
        for key, value in env.items():
            monkeypatch.setenv(key, value)
        get_settings.cache_clear()
        return TestClient(create_app())

    return build


def test_v1_health_ok(client):
    resp = client.get("/api/v1/health")
    assert resp.status_code == 200
    assert resp.json()["status"] == "ok"


def test_upload_requires_bearer_token(client):
    assert upload(client, {}).status_code == 401


def test_upload_requires_subject(client):
    headers = {"Authorization": f"Bearer {build_token(None, scopes=['admin'])}"}
    resp = upload(client, headers)
    assert resp.status_code == 403
    assert resp.json()["detail"] == "subject_required"


def test_upload_rejects_bad_signature(client):
    forged = jwt.encode({"sub": "user-1", "iss": "vidhub-test", "aud": "vidhub"}, "wrong", algorithm="HS256")
    resp = upload(client, {"Authorization": f"Bearer {forged}"})
    assert resp.status_code == 401


def test_upload_flow(client, user_headers):
    resp = upload(client, user_headers, title="Holiday", category="travel", processingType="convert", quality="low")
    assert resp.status_code == 200, resp.text
    body = resp.json()

    assert body["success"] is True
    video_id = body["videoId"]
    metadata = body["metadata"]
    assert metadata["id"] == video_id
    assert metadata["title"] == "Holiday"
    assert metadata["uploaderId"] == "user-1"
    assert metadata["processingType"] == "convert"
    assert metadata["quality"] == "low"
    assert metadata["status"] == "available"
    assert metadata["thumbnailUrl"] == f"/api/v1/thumbnails/{video_id}.jpg"
    assert body["streamingUrl"] == f"/api/v1/videos/{video_id}"

    record = client.get(f"/api/v1/catalog/{video_id}")
    assert record.status_code == 200
    assert record.json()["category"] == "travel"


def test_upload_defaults(client, user_headers):
    body = upload(client, user_headers, filename="beach.mov").json()
    metadata = body["metadata"]
    assert metadata["title"] == "beach.mov"
    assert metadata["category"] == "uncategorized"
    assert metadata["processingType"] == "streaming"
    assert metadata["quality"] == "medium"
    assert body["streamingUrl"].endswith("/playlist.m3u8")


def test_upload_unsupported_format(client, user_headers, configure_environment):
    resp = upload(client, user_headers, filename="notes.txt")

    assert resp.status_code == 400
    assert resp.json()["error"] == "unsupported_format"
    assert client.get("/api/v1/catalog").json()["data"] == []
    assert uploaded_files(configure_environment) == []


def test_upload_derivation_failure(client, user_headers, monkeypatch, configure_environment):
    set_engine_mode(monkeypatch, main="fail")
    resp = upload(client, user_headers)

    assert resp.status_code == 500
    body = resp.json()
    assert body["error"] == "Failed to process video"
    assert body["details"] == "media engine exited with code 1"
    assert client.get("/api/v1/catalog/categories").json()["data"] == {}
    assert uploaded_files(configure_environment) == []


def test_upload_too_large(env_client, user_headers, configure_environment):
    with env_client(VIDHUB_MAX_UPLOAD_SIZE_BYTES="16") as client:
        resp = upload(client, user_headers)
    assert resp.status_code == 413
    assert uploaded_files(configure_environment) == []


def test_previews_pagination_and_sorting(client, user_headers):
    ids = [upload(client, user_headers, filename=f"clip{n}.mp4", category="music").json()["videoId"] for n in range(3)]
    for _ in range(2):
        client.post(f"/api/v1/catalog/{ids[0]}/views")

    resp = client.get("/api/v1/previews", params={"limit": 2, "sort": "popular"})
    assert resp.status_code == 200
    data = resp.json()["data"]
    assert [video["id"] for video in data["videos"]] == [ids[0], ids[2]]
    assert data["pagination"] == {"total": 3, "page": 1, "totalPages": 2, "hasMore": True}
    assert data["videos"][0]["renditionKind"] == "segmented"

    second = client.get("/api/v1/previews", params={"limit": 2, "page": 2}).json()["data"]
    assert second["pagination"]["hasMore"] is False
    assert len(second["videos"]) == 1


@pytest.mark.parametrize("params", [{"limit": 0}, {"page": 0}])
def test_previews_reject_out_of_range_paging(client, params):
    resp = client.get("/api/v1/previews", params=params)
    assert resp.status_code == 400
    assert resp.json()["error"] == "invalid_query"


def test_previews_reject_unknown_sort(client):
    resp = client.get("/api/v1/previews", params={"sort": "random"})
    assert resp.status_code == 400
    assert resp.json() == {"error": "invalid_query", "details": "unknown sort 'random'"}


def test_previews_unknown_category_is_empty(client):
    resp = client.get("/api/v1/previews", params={"category": "nothing-here"})
    assert resp.status_code == 200
    assert resp.json()["data"]["videos"] == []


def test_catalog_endpoints(client, user_headers):
    first = upload(client, user_headers, filename="a.mp4", title="Pasta night", category="food").json()["videoId"]
    second = upload(client, user_headers, filename="b.mp4", title="Skate", category="sports").json()["videoId"]

    assert client.get("/api/v1/catalog/categories").json()["data"] == {"food": 1, "sports": 1}
    assert [r["id"] for r in client.get("/api/v1/catalog", params={"category": "food"}).json()["data"]] == [first]
    assert [r["id"] for r in client.get("/api/v1/catalog", params={"uploaderId": "user-1"}).json()["data"]] == [second, first]
    assert [r["id"] for r in client.get("/api/v1/catalog/search", params={"q": "PASTA"}).json()["data"]] == [first]

    client.post(f"/api/v1/catalog/{first}/views")
    featured = client.get("/api/v1/catalog/featured", params={"limit": 1}).json()["data"]
    assert [r["id"] for r in featured] == [first]

    assert client.get("/api/v1/catalog/missing").status_code == 404


def test_patch_record(client, user_headers):
    video_id = upload(client, user_headers, category="food").json()["videoId"]

    assert client.patch(f"/api/v1/catalog/{video_id}", json={"likes": 4}).status_code == 401

    resp = client.patch(f"/api/v1/catalog/{video_id}", json={"category": "travel", "likes": 4}, headers=user_headers)
    assert resp.status_code == 200, resp.text
    assert resp.json()["likes"] == 4
    assert client.get("/api/v1/catalog/categories").json()["data"] == {"food": 0, "travel": 1}

    assert client.patch(f"/api/v1/catalog/{video_id}", json={"views": -1}, headers=user_headers).status_code == 422
    assert client.patch(f"/api/v1/catalog/{video_id}", json={"id": "x"}, headers=user_headers).status_code == 422
    assert client.patch("/api/v1/catalog/missing", json={"likes": 1}, headers=user_headers).status_code == 404


def test_delete_record(client, user_headers, configure_environment):
    video_id = upload(client, user_headers, category="food").json()["videoId"]

    assert client.delete(f"/api/v1/catalog/{video_id}").status_code == 401
    assert client.delete(f"/api/v1/catalog/{video_id}", headers=user_headers).status_code == 204
    assert client.get(f"/api/v1/catalog/{video_id}").status_code == 404
    assert not (configure_environment / "processed" / video_id).exists()
    assert not (configure_environment / "thumbnails" / f"{video_id}.jpg").exists()
    assert client.delete(f"/api/v1/catalog/{video_id}", headers=user_headers).status_code == 404


def test_admin_env_check_requires_scope(client, user_headers, admin_headers):
    assert client.get("/api/v1/admin/env-check", headers=user_headers).status_code == 403

    resp = client.get("/api/v1/admin/env-check", headers=admin_headers)
    assert resp.status_code == 200
    assert resp.json() == {"ffmpeg": True, "ffprobe": True}


def test_dev_token_disabled_outside_development(client):
    resp = client.post("/api/v1/admin/dev-token", json={"user_id": "someone"})
    assert resp.status_code == 403


def test_dev_token_in_development(env_client):
    with env_client(VIDHUB_ENV="development") as client:
        resp = client.post("/api/v1/admin/dev-token", json={"user_id": "dev-user", "scopes": ["admin"]})
        assert resp.status_code == 200
        token = resp.json()["token"]

        claims = jwt.decode(token, TEST_SECRET, algorithms=["HS256"], audience="vidhub", issuer="vidhub-test")
        assert claims["sub"] == "dev-user"
        assert claims["scopes"] == ["admin"]

        env_check = client.get("/api/v1/admin/env-check", headers={"Authorization": f"Bearer {token}"})
        assert env_check.status_code == 200
