from __future__ import annotations

import uuid

from sqlalchemy import func, select
from sqlalchemy.exc import OperationalError
from sqlalchemy.orm import Session

from videotube import models
from videotube.dependencies import get_media_store
from videotube.media import LocalMediaStore, MediaUploadError

from .conftest import API


def test_publish_video_returns_stored_media(client, make_user, publish_video, settings):
    alice = make_user()
    video = publish_video(alice, title="First upload")

    assert video["title"] == "First upload"
    assert video["ownerId"] == alice.id
    assert video["isPublished"] is True
    assert video["views"] == 0
    assert video["videoFile"]["url"].startswith("/media/video/")
    assert video["thumbnail"]["url"].startswith("/media/image/")
    assert (settings.media_root / video["videoFile"]["id"]).is_file()

    served = client.get(video["thumbnail"]["url"])
    assert served.status_code == 200


def test_publish_requires_title_and_files(client, make_user):
    alice = make_user()
    resp = client.post(
        f"{API}/videos",
        data={"title": "   ", "description": "something"},
        files={"videoFile": ("clip.mp4", b"data", "video/mp4"), "thumbnail": ("t.png", b"img", "image/png")},
        headers=alice.headers,
    )
    assert resp.status_code == 422
    body = resp.json()
    assert body["success"] is False
    assert body["errors"]

    resp = client.post(
        f"{API}/videos",
        data={"title": "Title", "description": "something"},
        files={"thumbnail": ("t.png", b"img", "image/png")},
        headers=alice.headers,
    )
    assert resp.status_code == 422
    assert resp.json()["message"] == "Video file is required"


def test_upload_failure_leaves_no_video_and_no_staged_file(app, client, make_user, settings, tmp_path):
    class VideoRejectingStore(LocalMediaStore):
        def upload(self, local_path, kind):
            if kind == "video":
                raise MediaUploadError("bucket unavailable")
            return super().upload(local_path, kind)

    store = VideoRejectingStore(tmp_path / "rejecting")
    app.dependency_overrides[get_media_store] = lambda: store
    alice = make_user()

    resp = client.post(
        f"{API}/videos",
        data={"title": "Doomed", "description": "never stored"},
        files={"videoFile": ("clip.mp4", b"data", "video/mp4"), "thumbnail": ("t.png", b"img", "image/png")},
        headers=alice.headers,
    )

    assert resp.status_code == 502
    assert resp.json()["success"] is False
    assert list(settings.staging_dir.iterdir()) == []
    assert [p for p in (tmp_path / "rejecting").rglob("*") if p.is_file()] == []

    listing = client.get(f"{API}/videos", headers=alice.headers).json()["data"]
    assert listing["totalDocs"] == 0


def test_listing_unpublished_videos_is_an_empty_page(client, make_user, publish_video):
    alice = make_user()
    video = publish_video(alice)
    client.patch(f"{API}/videos/toggle/publish/{video['id']}", headers=alice.headers)

    resp = client.get(f"{API}/videos", headers=alice.headers)

    assert resp.status_code == 200
    page = resp.json()["data"]
    assert page["docs"] == []
    assert page["totalDocs"] == 0
    assert page["totalPages"] == 1
    assert page["hasNextPage"] is False


def test_second_page_holds_records_eleven_to_fifteen(client, make_user, publish_video):
    alice = make_user()
    for i in range(15):
        publish_video(alice, title=f"clip {i + 1:02d}")

    resp = client.get(
        f"{API}/videos",
        params={"page": 2, "limit": 10, "sortBy": "createdAt", "sortType": "asc"},
        headers=alice.headers,
    )

    page = resp.json()["data"]
    assert [doc["title"] for doc in page["docs"]] == [f"clip {i:02d}" for i in range(11, 16)]
    assert page["totalDocs"] == 15
    assert page["totalPages"] == 2
    assert page["hasPrevPage"] is True
    assert page["prevPage"] == 1
    assert page["nextPage"] is None


def test_listing_filters_by_text_and_owner(client, make_user, publish_video):
    alice, bob = make_user(), make_user()
    publish_video(alice, title="Cooking pasta", description="dinner")
    publish_video(alice, title="Morning run", description="Fitness vlog")
    publish_video(bob, title="Pasta review", description="restaurant")

    found = client.get(f"{API}/videos", params={"query": "PASTA"}, headers=alice.headers).json()["data"]
    assert sorted(doc["title"] for doc in found["docs"]) == ["Cooking pasta", "Pasta review"]

    found = client.get(f"{API}/videos", params={"userId": bob.id}, headers=alice.headers).json()["data"]
    assert [doc["owner"]["username"] for doc in found["docs"]] == [bob.username]

    found = client.get(f"{API}/videos", params={"query": "fitness"}, headers=alice.headers).json()["data"]
    assert [doc["title"] for doc in found["docs"]] == ["Morning run"]


def test_listing_sorts_by_views_both_ways(client, make_user, publish_video):
    alice, bob = make_user(), make_user()
    for title, views in (("quiet", 0), ("popular", 3), ("modest", 1)):
        video = publish_video(alice, title=title)
        for _ in range(views):
            client.get(f"{API}/videos/{video['id']}", headers=bob.headers)

    ascending = client.get(
        f"{API}/videos", params={"sortBy": "views", "sortType": "asc"}, headers=alice.headers
    ).json()["data"]
    assert [doc["title"] for doc in ascending["docs"]] == ["quiet", "modest", "popular"]
    assert [doc["views"] for doc in ascending["docs"]] == [0, 1, 3]

    descending = client.get(f"{API}/videos", params={"sortBy": "views"}, headers=alice.headers).json()["data"]
    assert [doc["title"] for doc in descending["docs"]] == ["popular", "modest", "quiet"]


def test_listing_query_treats_wildcards_literally(client, make_user, publish_video):
    alice = make_user()
    publish_video(alice, title="50% off", description="sale")
    publish_video(alice, title="Full price", description="regular")

    found = client.get(f"{API}/videos", params={"query": "%"}, headers=alice.headers).json()["data"]
    assert [doc["title"] for doc in found["docs"]] == ["50% off"]

    found = client.get(f"{API}/videos", params={"query": "_"}, headers=alice.headers).json()["data"]
    assert found["docs"] == []


def test_listing_rejects_bad_sort_field_and_user_id(client, make_user):
    alice = make_user()

    resp = client.get(f"{API}/videos", params={"sortBy": "title", "sortType": "asc"}, headers=alice.headers)
    assert resp.status_code == 422

    resp = client.get(f"{API}/videos", params={"userId": "not-an-id"}, headers=alice.headers)
    assert resp.status_code == 400
    assert resp.json()["message"] == "Invalid user id"


def test_fetching_twice_counts_two_views_and_one_history_entry(client, make_user, publish_video, db):
    alice, bob = make_user(), make_user()
    video = publish_video(alice)

    first = client.get(f"{API}/videos/{video['id']}", headers=bob.headers).json()["data"]
    second = client.get(f"{API}/videos/{video['id']}", headers=bob.headers).json()["data"]

    assert second["views"] - first["views"] == 1
    db.expire_all()
    assert db.get(models.Video, video["id"]).views == 2

    history = client.get(f"{API}/users/history", headers=bob.headers).json()["data"]
    assert [item["id"] for item in history] == [video["id"]]


def test_failed_view_bookkeeping_does_not_fail_the_read(client, make_user, publish_video, monkeypatch):
    alice, bob = make_user(), make_user()
    video = publish_video(alice)

    def commit(self):
        raise OperationalError("COMMIT", {}, Exception("database is locked"))

    monkeypatch.setattr(Session, "commit", commit)
    resp = client.get(f"{API}/videos/{video['id']}", headers=bob.headers)
    monkeypatch.undo()

    assert resp.status_code == 200
    assert resp.json()["data"]["title"] == video["title"]
    assert client.get(f"{API}/users/history", headers=bob.headers).json()["data"] == []
    again = client.get(f"{API}/videos/{video['id']}", headers=bob.headers).json()["data"]
    assert again["views"] == 0


def test_video_detail_carries_owner_channel_and_like_flags(client, make_user, publish_video):
    alice, bob = make_user(), make_user()
    video = publish_video(alice)
    client.post(f"{API}/subscriptions/c/{alice.id}", headers=bob.headers)
    client.post(f"{API}/likes/toggle/v/{video['id']}", headers=bob.headers)

    detail = client.get(f"{API}/videos/{video['id']}", headers=bob.headers).json()["data"]

    assert detail["likesCount"] == 1
    assert detail["isLiked"] is True
    assert detail["owner"]["username"] == alice.username
    assert detail["owner"]["subscribersCount"] == 1
    assert detail["owner"]["isSubscribed"] is True

    own_view = client.get(f"{API}/videos/{video['id']}", headers=alice.headers).json()["data"]
    assert own_view["isLiked"] is False
    assert own_view["owner"]["isSubscribed"] is False


def test_video_detail_errors(client, make_user):
    alice = make_user()
    assert client.get(f"{API}/videos/123", headers=alice.headers).status_code == 400
    missing = client.get(f"{API}/videos/{uuid.uuid4()}", headers=alice.headers)
    assert missing.status_code == 404
    assert missing.json() == {
        "statusCode": 404,
        "message": "Video not found",
        "success": False,
        "errors": [],
    }


def test_update_video_by_non_owner_is_forbidden(client, make_user, publish_video):
    alice, bob = make_user(), make_user()
    video = publish_video(alice)

    resp = client.patch(
        f"{API}/videos/{video['id']}",
        data={"title": "Hijacked", "description": "valid payload"},
        headers=bob.headers,
    )
    assert resp.status_code == 403
    assert resp.json()["message"] == "Only the video owner can modify this video"

    assert client.delete(f"{API}/videos/{video['id']}", headers=bob.headers).status_code == 403
    toggled = client.patch(f"{API}/videos/toggle/publish/{video['id']}", headers=bob.headers)
    assert toggled.status_code == 403


def test_update_video_replaces_thumbnail(client, make_user, publish_video, settings):
    alice = make_user()
    video = publish_video(alice)
    old_thumbnail = settings.media_root / video["thumbnail"]["id"]

    resp = client.patch(
        f"{API}/videos/{video['id']}",
        data={"title": "Renamed", "description": "Better description"},
        files={"thumbnail": ("new.png", b"new-image", "image/png")},
        headers=alice.headers,
    )

    updated = resp.json()["data"]
    assert resp.status_code == 200
    assert updated["title"] == "Renamed"
    assert updated["thumbnail"]["id"] != video["thumbnail"]["id"]
    assert not old_thumbnail.exists()


def test_delete_video_cascades_to_comments_and_likes(client, make_user, publish_video, db, settings):
    alice, bob = make_user(), make_user()
    video = publish_video(alice)
    other = publish_video(alice)

    comment = client.post(
        f"{API}/comments/{video['id']}", json={"content": "Great!"}, headers=bob.headers
    ).json()["data"]
    kept_comment = client.post(
        f"{API}/comments/{other['id']}", json={"content": "Also great"}, headers=bob.headers
    ).json()["data"]
    client.post(f"{API}/likes/toggle/c/{comment['id']}", headers=alice.headers)
    client.post(f"{API}/likes/toggle/c/{kept_comment['id']}", headers=alice.headers)
    client.post(f"{API}/likes/toggle/v/{video['id']}", headers=bob.headers)
    playlist = client.post(
        f"{API}/playlist", json={"name": "Mine", "description": "stuff"}, headers=bob.headers
    ).json()["data"]
    client.patch(f"{API}/playlist/add/{video['id']}/{playlist['id']}", headers=bob.headers)
    client.get(f"{API}/videos/{video['id']}", headers=bob.headers)

    resp = client.delete(f"{API}/videos/{video['id']}", headers=alice.headers)
    assert resp.status_code == 200

    def count(stmt):
        return db.scalar(select(func.count()).select_from(stmt.subquery()))

    assert count(select(models.Comment).where(models.Comment.video_id == video["id"])) == 0
    assert count(select(models.Like).where(models.Like.video_id == video["id"])) == 0
    assert count(select(models.Like).where(models.Like.comment_id == comment["id"])) == 0
    assert count(select(models.Like).where(models.Like.comment_id == kept_comment["id"])) == 1
    assert count(select(models.PlaylistVideo).where(models.PlaylistVideo.video_id == video["id"])) == 0
    assert count(select(models.Playlist)) == 1
    assert not (settings.media_root / video["videoFile"]["id"]).exists()
    assert client.get(f"{API}/videos/{video['id']}", headers=bob.headers).status_code == 404


def test_routes_require_authentication(client):
    resp = client.get(f"{API}/videos")
    assert resp.status_code == 401
    assert resp.json()["success"] is False
