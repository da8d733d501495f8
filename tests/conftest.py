from __future__ import annotations

import itertools
from types import SimpleNamespace

import pytest
from fastapi.testclient import TestClient

from videotube.config import Settings
from videotube.main import create_app

API = "/api/v1"
PASSWORD = "secret123"


@pytest.fixture
def settings(tmp_path):
    return Settings(
        database_url="sqlite://",
        media_root=tmp_path / "media",
        staging_dir=tmp_path / "staging",
        secret_key="test-secret",
        log_level="WARNING",
    )


@pytest.fixture
def app(settings):
    return create_app(settings)


@pytest.fixture
def client(app):
    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture
def db(app, client):
    session = app.state.database.SessionLocal()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def make_user(client):
    counter = itertools.count(1)

    def _make(username=None):
        username = username or f"user{next(counter)}"
        resp = client.post(
            f"{API}/users/register",
            json={
                "username": username,
                "email": f"{username}@mail.com",
                "fullName": username.title(),
                "password": PASSWORD,
            },
        )
        assert resp.status_code == 201, resp.text
        login = client.post(f"{API}/users/login", data={"username": username, "password": PASSWORD})
        assert login.status_code == 200, login.text
        client.cookies.clear()
        token = login.json()["data"]["accessToken"]
        return SimpleNamespace(
            id=resp.json()["data"]["id"],
            username=username,
            headers={"Authorization": f"Bearer {token}"},
        )

    return _make


@pytest.fixture
def publish_video(client):
    counter = itertools.count(1)

    def _publish(user, title=None, description="A test upload"):
        title = title or f"video {next(counter)}"
        resp = client.post(
            f"{API}/videos",
            data={"title": title, "description": description},
            files={
                "videoFile": ("clip.mp4", b"\x00\x00\x00\x18ftypmp42", "video/mp4"),
                "thumbnail": ("thumb.png", b"\x89PNG\r\n", "image/png"),
            },
            headers=user.headers,
        )
        assert resp.status_code == 200, resp.text
        return resp.json()["data"]

    return _publish
