from __future__ import annotations

import uuid

from .conftest import API


def test_toggle_subscription(client, make_user):
    alice, bob = make_user(), make_user()

    first = client.post(f"{API}/subscriptions/c/{alice.id}", headers=bob.headers)
    assert first.json()["data"] == {"active": True}
    second = client.post(f"{API}/subscriptions/c/{alice.id}", headers=bob.headers)
    assert second.json()["data"] == {"active": False}

    assert client.get(f"{API}/subscriptions/c/{alice.id}", headers=bob.headers).status_code == 404


def test_cannot_subscribe_to_self_or_missing_channel(client, make_user):
    alice = make_user()

    own = client.post(f"{API}/subscriptions/c/{alice.id}", headers=alice.headers)
    assert own.status_code == 422
    assert own.json()["message"] == "You cannot subscribe to your own channel"

    missing = client.post(f"{API}/subscriptions/c/{uuid.uuid4()}", headers=alice.headers)
    assert missing.status_code == 404
    assert missing.json()["message"] == "Channel not found"


def test_subscriber_listing_flags_mutual_follows(client, make_user):
    alice, bob, carol = make_user(), make_user(), make_user()
    client.post(f"{API}/subscriptions/c/{alice.id}", headers=bob.headers)
    client.post(f"{API}/subscriptions/c/{alice.id}", headers=carol.headers)
    client.post(f"{API}/subscriptions/c/{bob.id}", headers=alice.headers)
    client.post(f"{API}/subscriptions/c/{bob.id}", headers=carol.headers)

    page = client.get(f"{API}/subscriptions/c/{alice.id}", headers=alice.headers).json()["data"]

    by_name = {doc["username"]: doc for doc in page["docs"]}
    assert page["totalDocs"] == 2
    assert by_name[bob.username]["subscribersCount"] == 2
    assert by_name[bob.username]["subscribedToSubscriber"] is True
    assert by_name[carol.username]["subscribersCount"] == 0
    assert by_name[carol.username]["subscribedToSubscriber"] is False


def test_subscribed_channels(client, make_user):
    alice, bob, carol = make_user(), make_user(), make_user()
    assert client.get(f"{API}/subscriptions/u/{carol.id}", headers=carol.headers).status_code == 404

    client.post(f"{API}/subscriptions/c/{alice.id}", headers=carol.headers)
    client.post(f"{API}/subscriptions/c/{bob.id}", headers=carol.headers)

    page = client.get(f"{API}/subscriptions/u/{carol.id}", headers=alice.headers).json()["data"]
    assert sorted(doc["username"] for doc in page["docs"]) == sorted([alice.username, bob.username])
    assert client.get(f"{API}/subscriptions/u/nope", headers=alice.headers).status_code == 400
