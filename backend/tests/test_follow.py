"""Tests for the follow graph endpoints."""

from uuid import uuid4

import pytest
from sqlalchemy.ext.asyncio import AsyncSession

from services.follow_graph import collect_follow_lists, is_following


@pytest.mark.asyncio
async def test_follow_updates_both_sides(async_client, register_user, db_session: AsyncSession):
    alice = await register_user("alice")
    bob = await register_user("bob")
    alice_id = alice["user"]["id"]
    bob_id = bob["user"]["id"]

    response = await async_client.patch(
        f"/api/v1/users/follow/{bob_id}",
        headers=alice["headers"],
    )

    assert response.status_code == 200
    body = response.json()
    assert body["detail"] == "Followed"
    assert body["following"] == [bob_id]
    assert body["followers"] == [alice_id]

    assert await is_following(db_session, follower_id=alice_id, followee_id=bob_id)
    lists = await collect_follow_lists(db_session, [alice_id, bob_id])
    assert lists[alice_id].following == [bob_id]
    assert lists[alice_id].followers == []
    assert lists[bob_id].followers == [alice_id]
    assert lists[bob_id].following == []

    profile = await async_client.get(f"/api/v1/users/{bob_id}")
    assert profile.json()["followers"] == [alice_id]


@pytest.mark.asyncio
async def test_follow_twice_is_idempotent(async_client, register_user):
    alice = await register_user("alice")
    bob = await register_user("bob")
    bob_id = bob["user"]["id"]

    await async_client.patch(f"/api/v1/users/follow/{bob_id}", headers=alice["headers"])
    response = await async_client.patch(
        f"/api/v1/users/follow/{bob_id}",
        headers=alice["headers"],
    )

    assert response.status_code == 200
    body = response.json()
    assert body["detail"] == "Already following"
    assert body["following"] == [bob_id]
    assert body["followers"] == [alice["user"]["id"]]


@pytest.mark.asyncio
async def test_unfollow_restores_both_sides(async_client, register_user, db_session: AsyncSession):
    alice = await register_user("alice")
    bob = await register_user("bob")
    alice_id = alice["user"]["id"]
    bob_id = bob["user"]["id"]

    await async_client.patch(f"/api/v1/users/follow/{bob_id}", headers=alice["headers"])
    response = await async_client.patch(
        f"/api/v1/users/unfollow/{bob_id}",
        headers=alice["headers"],
    )

    assert response.status_code == 200
    body = response.json()
    assert body["detail"] == "Unfollowed"
    assert body["following"] == []
    assert body["followers"] == []
    assert not await is_following(db_session, follower_id=alice_id, followee_id=bob_id)


@pytest.mark.asyncio
async def test_unfollow_when_not_following_is_noop(async_client, register_user):
    alice = await register_user("alice")
    bob = await register_user("bob")

    response = await async_client.patch(
        f"/api/v1/users/unfollow/{bob['user']['id']}",
        headers=alice["headers"],
    )

    assert response.status_code == 200
    assert response.json()["detail"] == "Not following"


@pytest.mark.asyncio
async def test_follow_is_directed(async_client, register_user):
    alice = await register_user("alice")
    bob = await register_user("bob")
    alice_id = alice["user"]["id"]
    bob_id = bob["user"]["id"]

    await async_client.patch(f"/api/v1/users/follow/{bob_id}", headers=alice["headers"])
    response = await async_client.patch(
        f"/api/v1/users/follow/{alice_id}",
        headers=bob["headers"],
    )

    body = response.json()
    assert body["following"] == [alice_id]
    assert body["followers"] == [bob_id]

    verify = await async_client.get("/api/v1/users/verify", headers=alice["headers"])
    assert verify.json()["following"] == [bob_id]
    assert verify.json()["followers"] == [bob_id]


@pytest.mark.asyncio
async def test_cannot_follow_self(async_client, register_user):
    alice = await register_user("alice")

    response = await async_client.patch(
        f"/api/v1/users/follow/{alice['user']['id']}",
        headers=alice["headers"],
    )

    assert response.status_code == 400
    assert response.json()["detail"] == "You cannot follow yourself"


@pytest.mark.asyncio
async def test_cannot_unfollow_self(async_client, register_user):
    alice = await register_user("alice")

    response = await async_client.patch(
        f"/api/v1/users/unfollow/{alice['user']['id']}",
        headers=alice["headers"],
    )

    assert response.status_code == 400


@pytest.mark.asyncio
async def test_follow_unknown_user_returns_404(async_client, register_user):
    alice = await register_user("alice")

    response = await async_client.patch(
        f"/api/v1/users/follow/{uuid4()}",
        headers=alice["headers"],
    )

    assert response.status_code == 404


@pytest.mark.asyncio
async def test_follow_malformed_id_returns_404(async_client, register_user):
    alice = await register_user("alice")

    response = await async_client.patch(
        "/api/v1/users/follow/12345",
        headers=alice["headers"],
    )

    assert response.status_code == 404
    assert response.json()["detail"] == "Invalid ID"


@pytest.mark.asyncio
async def test_follow_requires_auth(async_client, register_user):
    bob = await register_user("bob")

    response = await async_client.patch(f"/api/v1/users/follow/{bob['user']['id']}")

    assert response.status_code == 401
