from __future__ import annotations

import pytest

from vidhub.core.storage import LocalArtifactStore, get_artifact_store


def test_default_backend_is_local(settings, configure_environment):
    store = get_artifact_store(settings)
    assert isinstance(store, LocalArtifactStore)
    assert store.processed_root == configure_environment / "processed"
    assert store.thumbnails_root == configure_environment / "thumbnails"
    assert store.uploads_root.is_dir()


def test_streaming_dir_is_idempotent(store):
    first = store.streaming_dir_for("vid1")
    second = store.streaming_dir_for("vid1")
    assert first == second
    assert first.is_dir()


def test_paths_are_keyed_by_content_id(store):
    assert store.converted_path_for("vid1").name == "vid1.mp4"
    assert store.thumbnail_path_for("vid1").name == "vid1.jpg"
    assert store.playlist_path_for("vid1").parent == store.streaming_dir_for("vid1")
    assert store.upload_path_for("vid1", ".MOV").name == "vid1.mov"


def _populate(store, content_id):
    (store.streaming_dir_for(content_id) / "segment_000.ts").write_bytes(b"x")
    store.playlist_path_for(content_id).write_text("#EXTM3U")
    store.converted_path_for(content_id).write_bytes(b"mp4")
    store.thumbnail_path_for(content_id).write_bytes(b"jpg")


def test_purge_removes_every_artifact(store):
    _populate(store, "vid1")
    _populate(store, "vid2")

    removed = store.purge("vid1")

    assert len(removed) == 3
    assert not (store.processed_root / "vid1").exists()
    assert not store.converted_path_for("vid1").exists()
    assert not store.thumbnail_path_for("vid1").exists()
    assert store.converted_path_for("vid2").exists()


def test_purge_twice_is_a_no_op(store):
    _populate(store, "vid1")
    store.purge("vid1")
    snapshot = sorted(p.relative_to(store.processed_root.parent) for p in store.processed_root.parent.rglob("*"))

    assert store.purge("vid1") == []
    assert sorted(p.relative_to(store.processed_root.parent) for p in store.processed_root.parent.rglob("*")) == snapshot


def test_purge_of_unknown_id_is_tolerated(store):
    assert store.purge("never-existed") == []


@pytest.mark.parametrize("content_id", ["", "..", "../etc", "a/b", "a\\b"])
def test_rejects_ids_that_escape_the_roots(store, content_id):
    with pytest.raises(ValueError):
        store.purge(content_id)
    with pytest.raises(ValueError):
        store.thumbnail_path_for(content_id)
