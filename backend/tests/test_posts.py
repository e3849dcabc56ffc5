"""Tests for post creation, feeds, updates and deletion."""

from typing import Any, cast
from uuid import uuid4

import pytest
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.sql import ColumnElement

from models import Comment, Post, Vote


def _eq(column: Any, value: Any) -> ColumnElement[bool]:
    return cast(ColumnElement[bool], column == value)


@pytest.mark.asyncio
async def test_create_post(async_client, register_user, post_payload):
    alice = await register_user("alice")
    payload = post_payload(category="home")

    response = await async_client.post("/api/v1/posts", json=payload, headers=alice["headers"])

    assert response.status_code == 201
    body = response.json()
    assert body["title"] == payload["title"]
    assert body["category"] == "home"
    assert body["user_id"] == alice["user"]["id"]
    assert body["username"] == alice["user"]["username"]
    assert body["private"] is False
    assert body["before_votes"] == []
    assert body["after_votes"] == []
    assert body["comments"] == []


@pytest.mark.asyncio
async def test_create_post_defaults_category(async_client, register_user, create_post):
    alice = await register_user("alice")

    body = await create_post(alice["headers"])

    assert body["category"] == "entertainment"


@pytest.mark.asyncio
async def test_create_post_ignores_client_owner(async_client, register_user, create_post):
    alice = await register_user("alice")
    bob = await register_user("bob")

    body = await create_post(
        alice["headers"],
        user_id=bob["user"]["id"],
        username=bob["user"]["username"],
        before_votes=[bob["user"]["id"]],
    )

    assert body["user_id"] == alice["user"]["id"]
    assert body["username"] == alice["user"]["username"]
    assert body["before_votes"] == []


@pytest.mark.asyncio
async def test_create_post_rejects_unknown_category(async_client, register_user, post_payload):
    alice = await register_user("alice")

    response = await async_client.post(
        "/api/v1/posts",
        json=post_payload(category="gardening"),
        headers=alice["headers"],
    )

    assert response.status_code == 422


@pytest.mark.asyncio
async def test_create_post_rejects_blank_title(async_client, register_user, post_payload):
    alice = await register_user("alice")

    response = await async_client.post(
        "/api/v1/posts",
        json=post_payload(title="   "),
        headers=alice["headers"],
    )

    assert response.status_code == 422


@pytest.mark.asyncio
async def test_create_post_requires_auth(async_client, post_payload):
    response = await async_client.post("/api/v1/posts", json=post_payload())

    assert response.status_code == 401


@pytest.mark.asyncio
async def test_get_post_by_id(async_client, register_user, create_post):
    alice = await register_user("alice")
    post = await create_post(alice["headers"])

    response = await async_client.get(f"/api/v1/posts/{post['id']}")

    assert response.status_code == 200
    assert response.json()["id"] == post["id"]


@pytest.mark.asyncio
async def test_get_post_unknown_and_malformed_ids(async_client):
    missing = await async_client.get(f"/api/v1/posts/{uuid4()}")
    assert missing.status_code == 404
    assert missing.json()["detail"] == "Post not found"

    malformed = await async_client.get("/api/v1/posts/definitely-not-an-id")
    assert malformed.status_code == 404
    assert malformed.json()["detail"] == "Invalid ID"


@pytest.mark.asyncio
async def test_private_post_visible_only_to_owner(async_client, register_user, create_post):
    alice = await register_user("alice")
    bob = await register_user("bob")
    post = await create_post(alice["headers"], private=True)

    owner_view = await async_client.get(f"/api/v1/posts/{post['id']}", headers=alice["headers"])
    assert owner_view.status_code == 200
    assert owner_view.json()["private"] is True

    other_view = await async_client.get(f"/api/v1/posts/{post['id']}", headers=bob["headers"])
    assert other_view.status_code == 404

    anonymous_view = await async_client.get(f"/api/v1/posts/{post['id']}")
    assert anonymous_view.status_code == 404


@pytest.mark.asyncio
async def test_personal_feed_includes_private_posts(async_client, register_user, create_post):
    alice = await register_user("alice")
    bob = await register_user("bob")
    public_post = await create_post(alice["headers"])
    private_post = await create_post(alice["headers"], private=True)
    await create_post(bob["headers"])

    response = await async_client.get("/api/v1/posts/personal", headers=alice["headers"])

    assert response.status_code == 200
    assert [post["id"] for post in response.json()] == [private_post["id"], public_post["id"]]


@pytest.mark.asyncio
async def test_personal_feed_accepts_post_method(async_client, register_user, create_post):
    alice = await register_user("alice")
    post = await create_post(alice["headers"])

    response = await async_client.post("/api/v1/posts/personal", headers=alice["headers"])

    assert response.status_code == 200
    assert [item["id"] for item in response.json()] == [post["id"]]


@pytest.mark.asyncio
async def test_global_feed_is_newest_first_and_hides_private(
    async_client,
    register_user,
    create_post,
):
    alice = await register_user("alice")
    bob = await register_user("bob")
    first = await create_post(alice["headers"])
    await create_post(alice["headers"], private=True)
    second = await create_post(bob["headers"])

    anonymous = await async_client.get("/api/v1/posts/all")
    assert anonymous.status_code == 200
    assert [post["id"] for post in anonymous.json()] == [second["id"], first["id"]]

    as_bob = await async_client.get("/api/v1/posts/all", headers=bob["headers"])
    assert [post["id"] for post in as_bob.json()] == [second["id"], first["id"]]

    as_alice = await async_client.get("/api/v1/posts/all", headers=alice["headers"])
    assert len(as_alice.json()) == 3


@pytest.mark.asyncio
async def test_global_feed_rejects_invalid_token(async_client):
    response = await async_client.get(
        "/api/v1/posts/all",
        headers={"x-auth": "stale-token"},
    )

    assert response.status_code == 401


@pytest.mark.asyncio
async def test_global_feed_paginates(async_client, register_user, create_post):
    alice = await register_user("alice")
    created = [await create_post(alice["headers"]) for _ in range(3)]
    newest_first = [post["id"] for post in reversed(created)]

    first_page = await async_client.get("/api/v1/posts/all", params={"limit": 2})
    assert [post["id"] for post in first_page.json()] == newest_first[:2]
    assert first_page.headers["x-next-offset"] == "2"

    second_page = await async_client.get(
        "/api/v1/posts/all",
        params={"limit": 2, "offset": 2},
    )
    assert [post["id"] for post in second_page.json()] == newest_first[2:]
    assert "x-next-offset" not in second_page.headers


@pytest.mark.asyncio
async def test_category_feed_filters_by_category(async_client, register_user, create_post):
    alice = await register_user("alice")
    fitness = await create_post(alice["headers"], category="fitness")
    await create_post(alice["headers"], category="food")

    response = await async_client.get("/api/v1/posts/category/fitness")

    assert response.status_code == 200
    assert [post["id"] for post in response.json()] == [fitness["id"]]

    via_query = await async_client.get("/api/v1/posts/all", params={"category": "fitness"})
    assert [post["id"] for post in via_query.json()] == [fitness["id"]]


@pytest.mark.asyncio
async def test_category_feed_rejects_unknown_category(async_client):
    response = await async_client.get("/api/v1/posts/category/gardening")

    assert response.status_code == 422


@pytest.mark.asyncio
async def test_following_feed_only_shows_followed_authors(
    async_client,
    register_user,
    create_post,
):
    alice = await register_user("alice")
    bob = await register_user("bob")
    carol = await register_user("carol")
    bob_post = await create_post(bob["headers"], category="art")
    await create_post(carol["headers"], category="art")
    await create_post(bob["headers"], private=True)

    await async_client.patch(
        f"/api/v1/users/follow/{bob['user']['id']}",
        headers=alice["headers"],
    )

    response = await async_client.get(
        "/api/v1/posts/all",
        params={"following": "true"},
        headers=alice["headers"],
    )
    assert response.status_code == 200
    assert [post["id"] for post in response.json()] == [bob_post["id"]]

    by_category = await async_client.get(
        "/api/v1/posts/category/art",
        params={"following": "true"},
        headers=alice["headers"],
    )
    assert [post["id"] for post in by_category.json()] == [bob_post["id"]]


@pytest.mark.asyncio
async def test_following_feed_requires_auth(async_client):
    response = await async_client.get("/api/v1/posts/all", params={"following": "true"})

    assert response.status_code == 401


@pytest.mark.asyncio
async def test_user_posts_respect_visibility(async_client, register_user, create_post):
    alice = await register_user("alice")
    bob = await register_user("bob")
    public_post = await create_post(alice["headers"])
    await create_post(alice["headers"], private=True)

    response = await async_client.get(
        f"/api/v1/posts/user/{alice['user']['id']}",
        headers=bob["headers"],
    )

    assert response.status_code == 200
    assert [post["id"] for post in response.json()] == [public_post["id"]]


@pytest.mark.asyncio
async def test_update_post_changes_allowed_fields_only(async_client, register_user, create_post):
    alice = await register_user("alice")
    bob = await register_user("bob")
    post = await create_post(alice["headers"], category="food")

    response = await async_client.patch(
        f"/api/v1/posts/{post['id']}",
        json={
            "title": "Updated title",
            "after_img": "https://cdn.example.com/new-after.jpg",
            "category": "art",
            "private": True,
            "user_id": bob["user"]["id"],
            "after_votes": [bob["user"]["id"]],
        },
        headers=alice["headers"],
    )

    assert response.status_code == 200
    body = response.json()
    assert body["title"] == "Updated title"
    assert body["after_img"] == "https://cdn.example.com/new-after.jpg"
    assert body["description"] == post["description"]
    assert body["category"] == "food"
    assert body["private"] is False
    assert body["user_id"] == alice["user"]["id"]
    assert body["after_votes"] == []


@pytest.mark.asyncio
async def test_update_post_by_non_owner_returns_404(async_client, register_user, create_post):
    alice = await register_user("alice")
    bob = await register_user("bob")
    post = await create_post(alice["headers"])

    response = await async_client.patch(
        f"/api/v1/posts/{post['id']}",
        json={"title": "Hijacked"},
        headers=bob["headers"],
    )

    assert response.status_code == 404
    unchanged = await async_client.get(f"/api/v1/posts/{post['id']}")
    assert unchanged.json()["title"] == post["title"]


@pytest.mark.asyncio
async def test_delete_post_by_non_owner_leaves_post(async_client, register_user, create_post):
    alice = await register_user("alice")
    bob = await register_user("bob")
    post = await create_post(alice["headers"])

    response = await async_client.delete(f"/api/v1/posts/{post['id']}", headers=bob["headers"])

    assert response.status_code == 404
    still_there = await async_client.get(f"/api/v1/posts/{post['id']}")
    assert still_there.status_code == 200


@pytest.mark.asyncio
async def test_delete_post_removes_votes_and_comments(
    async_client,
    register_user,
    db_session: AsyncSession,
    create_post,
):
    alice = await register_user("alice")
    bob = await register_user("bob")
    post = await create_post(alice["headers"])
    await async_client.patch(f"/api/v1/posts/vote/after/{post['id']}", headers=bob["headers"])
    await async_client.post(
        f"/api/v1/posts/comment/{post['id']}",
        json={"text": "Looks great"},
        headers=bob["headers"],
    )

    response = await async_client.delete(f"/api/v1/posts/{post['id']}", headers=alice["headers"])

    assert response.status_code == 200
    assert response.json() == {"detail": "Deleted"}
    gone = await async_client.get(f"/api/v1/posts/{post['id']}")
    assert gone.status_code == 404

    for model in (Post, Vote, Comment):
        id_column = Post.id if model is Post else model.post_id
        result = await db_session.execute(
            select(func.count()).select_from(model).where(_eq(id_column, post["id"]))
        )
        assert result.scalar_one() == 0
