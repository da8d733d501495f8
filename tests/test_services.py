from __future__ import annotations

import uuid
from types import SimpleNamespace

import pytest

from videotube.errors import Forbidden, InvalidIdentifier, ValidationFailed
from videotube.media import LocalMediaStore, MediaUploadError
from videotube.schemas import ContentIn
from videotube.services.guards import parse_id, require_owner, validate_input
from videotube.services.readmodels import video_sort_clause


def test_parse_id_normalises_uuids():
    raw = uuid.uuid4()
    assert parse_id(f" {str(raw).upper()} ", "video") == str(raw)

    with pytest.raises(InvalidIdentifier) as exc:
        parse_id("12345", "comment")
    assert exc.value.status_code == 400
    assert exc.value.message == "Invalid comment id"

    with pytest.raises(InvalidIdentifier):
        parse_id(None, "user")


def test_require_owner():
    resource = SimpleNamespace(owner_id="a")
    require_owner(resource, "a", "tweet")
    with pytest.raises(Forbidden):
        require_owner(resource, "b", "tweet")


def test_validate_input_wraps_errors():
    assert validate_input(ContentIn, content="  hi ").content == "hi"
    with pytest.raises(ValidationFailed) as exc:
        validate_input(ContentIn, content="")
    assert exc.value.errors


def test_video_sort_clause_defaults_and_rejects_unknown_fields():
    assert len(video_sort_clause(None, None)) == 2
    assert len(video_sort_clause("views", "asc")) == 3
    with pytest.raises(ValidationFailed):
        video_sort_clause("title", "asc")
    with pytest.raises(ValidationFailed):
        video_sort_clause("views", "sideways")


def test_media_store_upload_and_delete(tmp_path):
    store = LocalMediaStore(tmp_path / "media")
    source = tmp_path / "clip.MP4"
    source.write_bytes(b"data")

    asset = store.upload(source, "video")

    assert asset.kind == "video"
    assert asset.id.endswith(".mp4")
    assert asset.url == f"/media/{asset.id}"
    assert store.delete(asset.id, "video") is True
    assert store.delete(asset.id, "video") is False
    assert store.delete(None) is False


def test_media_store_refuses_paths_outside_root(tmp_path):
    outside = tmp_path / "secret.txt"
    outside.write_text("keep me")
    store = LocalMediaStore(tmp_path / "media")

    assert store.delete("../secret.txt") is False
    assert outside.exists()

    with pytest.raises(MediaUploadError):
        store.upload(tmp_path / "missing.png")
