"""
Integration tests for posts, likes, comments and spot tips, including
owner-only edit and delete rules.
"""
import pytest
from sqlalchemy import select, func

from surfspots.models import Comment, PostLike


async def new_spot(c, name="Steamer Lane"):
    r = await c.post("/api/spots", json={"name": name, "latitude": 36.97, "longitude": -122.03})
    assert r.status_code == 201
    return r.json()["id"]


async def new_post(c, **body):
    payload = {"title": "Glassy morning", "content": "Chest high and clean"}
    payload.update(body)
    r = await c.post("/api/posts", json=payload)
    assert r.status_code == 201, r.text
    return r.json()


@pytest.fixture
async def alice(login_as):
    return await login_as("alice")


@pytest.fixture
async def bob(login_as):
    return await login_as("bob")


# ---------- Posts ----------

async def test_create_and_get_post(alice, client):
    spot_id = await new_spot(alice)
    post = await new_post(alice, spot_id=spot_id)

    assert post["username"] == "alice"
    assert post["spot_id"] == spot_id

    fetched = (await client.get(f"/api/posts/{post['post_id']}")).json()
    assert fetched["title"] == "Glassy morning"
    assert fetched["like_count"] == 0


async def test_create_post_requires_login(client):
    r = await client.post("/api/posts", json={"title": "t", "content": "c"})

    assert r.status_code == 403


async def test_create_post_validation(alice):
    assert (await alice.post("/api/posts", json={"title": "t"})).status_code == 400
    assert (await alice.post("/api/posts", json={"title": "  ", "content": "c"})).status_code == 400
    assert (await alice.post("/api/posts", json={"title": "t", "content": "c", "spot_id": 42})).status_code == 404


async def test_list_posts_newest_first_and_by_spot(alice, client):
    spot_id = await new_spot(alice)
    first = await new_post(alice, title="first")
    second = await new_post(alice, title="second", spot_id=spot_id)

    titles = [p["title"] for p in (await client.get("/api/posts")).json()]
    assert titles == ["second", "first"]

    by_spot = (await client.get("/api/posts", params={"spot_id": spot_id})).json()
    assert [p["post_id"] for p in by_spot] == [second["post_id"]]
    assert first["post_id"] != second["post_id"]


async def test_get_missing_post(client):
    assert (await client.get("/api/posts/404")).status_code == 404


async def test_owner_can_edit_post(alice):
    post = await new_post(alice)

    r = await alice.put(f"/api/posts/{post['post_id']}", json={"content": "Blown out by noon"})

    assert r.status_code == 200
    assert r.json()["content"] == "Blown out by noon"
    assert r.json()["title"] == "Glassy morning"


async def test_other_user_cannot_edit_or_delete_post(alice, bob, client):
    post = await new_post(alice)
    url = f"/api/posts/{post['post_id']}"

    assert (await bob.put(url, json={"title": "mine now"})).status_code == 403
    assert (await bob.delete(url)).status_code == 403
    assert (await client.get(url)).json()["title"] == "Glassy morning"


async def test_anonymous_cannot_edit_post(alice, client):
    post = await new_post(alice)

    r = await client.put(f"/api/posts/{post['post_id']}", json={"title": "x"})

    assert r.status_code == 403


async def test_owner_deletes_post(alice, client):
    post = await new_post(alice)
    url = f"/api/posts/{post['post_id']}"

    assert (await alice.delete(url)).status_code == 200
    assert (await client.get(url)).status_code == 404
    assert (await alice.delete(url)).status_code == 404


async def test_deleting_post_removes_its_comments_and_likes(alice, bob, client, sessionmaker):
    post = await new_post(alice)
    await bob.post("/api/comments", json={"post_id": post["post_id"], "content": "Nice!"})
    await bob.post(f"/api/posts/{post['post_id']}/like")

    assert (await alice.delete(f"/api/posts/{post['post_id']}")).status_code == 200

    assert (await client.get(f"/api/comments/{post['post_id']}")).json() == []
    async with sessionmaker() as session:
        assert (await session.execute(select(func.count(Comment.comment_id)))).scalar_one() == 0
        assert (await session.execute(select(func.count(PostLike.id)))).scalar_one() == 0


# ---------- Images ----------

async def test_upload_post_image(alice, client, storage):
    post = await new_post(alice)

    r = await alice.post(
        f"/api/posts/{post['post_id']}/image",
        files={"image": ("wave.png", b"\x89PNG fake", "image/png")},
    )

    assert r.status_code == 200
    url = r.json()["image_url"]
    assert url.startswith("/uploads/post-images/")
    assert (await client.get(f"/api/posts/{post['post_id']}")).json()["image_url"] == url
    assert len(list(storage.directory.iterdir())) == 1


async def test_upload_rejects_non_image(alice, storage):
    post = await new_post(alice)

    r = await alice.post(
        f"/api/posts/{post['post_id']}/image",
        files={"image": ("notes.txt", b"hello", "text/plain")},
    )

    assert r.status_code == 400


async def test_upload_rejects_oversize_image(alice, storage):
    post = await new_post(alice)

    r = await alice.post(
        f"/api/posts/{post['post_id']}/image",
        files={"image": ("big.png", b"\x89PNG" + b"0" * 2000, "image/png")},
    )

    assert r.status_code == 400
    assert not storage.directory.exists() or not any(storage.directory.iterdir())


async def test_upload_by_non_owner(alice, bob, storage):
    post = await new_post(alice)

    r = await bob.post(
        f"/api/posts/{post['post_id']}/image",
        files={"image": ("wave.png", b"\x89PNG fake", "image/png")},
    )

    assert r.status_code == 403


# ---------- Likes ----------

async def test_like_is_idempotent(alice, bob, client):
    post = await new_post(alice)
    url = f"/api/posts/{post['post_id']}/like"

    assert (await bob.post(url)).json()["like_count"] == 1
    again = (await bob.post(url)).json()
    assert again["like_count"] == 1
    assert again["note"] == "Already liked"
    assert (await alice.post(url)).json()["like_count"] == 2

    assert (await client.get(f"/api/posts/{post['post_id']}")).json()["like_count"] == 2


async def test_unlike(alice, bob):
    post = await new_post(alice)
    url = f"/api/posts/{post['post_id']}/like"
    await bob.post(url)

    assert (await bob.delete(url)).json()["like_count"] == 0
    assert (await bob.delete(url)).json()["like_count"] == 0


async def test_like_requires_login_and_post(alice, client):
    post = await new_post(alice)

    assert (await client.post(f"/api/posts/{post['post_id']}/like")).status_code == 403
    assert (await alice.post("/api/posts/999/like")).status_code == 404


# ---------- Comments ----------

async def test_comment_flow(alice, bob, client):
    post = await new_post(alice)

    r = await bob.post("/api/comments", json={"post_id": post["post_id"], "content": " Nice! "})
    assert r.status_code == 201
    comment = r.json()
    assert comment["content"] == "Nice!"
    assert comment["username"] == "bob"

    await alice.post("/api/comments", json={"post_id": post["post_id"], "content": "Thanks"})

    listed = (await client.get(f"/api/comments/{post['post_id']}")).json()
    assert [c["content"] for c in listed] == ["Nice!", "Thanks"]


async def test_comment_validation(alice):
    post = await new_post(alice)

    assert (await alice.post("/api/comments", json={"post_id": post["post_id"]})).status_code == 400
    assert (await alice.post("/api/comments", json={"content": "orphan"})).status_code == 400
    assert (await alice.post("/api/comments", json={"post_id": 999, "content": "x"})).status_code == 404


async def test_comment_ownership(alice, bob):
    post = await new_post(alice)
    comment = (await bob.post("/api/comments", json={"post_id": post["post_id"], "content": "hi"})).json()
    url = f"/api/comments/{comment['comment_id']}"

    assert (await alice.put(url, json={"content": "edited"})).status_code == 403
    assert (await alice.delete(url)).status_code == 403

    edited = await bob.put(url, json={"content": "edited"})
    assert edited.status_code == 200
    assert edited.json()["content"] == "edited"
    assert (await bob.delete(url)).status_code == 200
    assert (await bob.delete(url)).status_code == 404


async def test_comment_requires_login(alice, client):
    post = await new_post(alice)

    r = await client.post("/api/comments", json={"post_id": post["post_id"], "content": "x"})

    assert r.status_code == 403


# ---------- Spot tips ----------

async def test_tip_flow(alice, bob, client):
    spot_id = await new_spot(alice)

    r = await bob.post("/api/spot-tips", json={"spot_id": spot_id, "content": "  Paddle out by the stairs "})
    assert r.status_code == 201
    assert r.json()["content"] == "Paddle out by the stairs"

    listed = (await client.get(f"/api/spot-tips/{spot_id}")).json()
    assert len(listed) == 1
    assert listed[0]["username"] == "bob"


async def test_tip_validation(alice):
    spot_id = await new_spot(alice)

    assert (await alice.post("/api/spot-tips", json={"spot_id": spot_id, "content": "   "})).status_code == 400
    assert (await alice.post("/api/spot-tips", json={"content": "x"})).status_code == 400
    assert (await alice.post("/api/spot-tips", json={"spot_id": 999, "content": "x"})).status_code == 404


async def test_tip_ownership(alice, bob):
    spot_id = await new_spot(alice)
    tip = (await alice.post("/api/spot-tips", json={"spot_id": spot_id, "content": "Low tide only"})).json()
    url = f"/api/spot-tips/{tip['tip_id']}"

    assert (await bob.put(url, json={"content": "High tide"})).status_code == 403
    assert (await bob.delete(url)).status_code == 403

    assert (await alice.put(url, json={"content": "Mid to low tide"})).json()["content"] == "Mid to low tide"
    assert (await alice.delete(url)).status_code == 200
    assert (await alice.delete(url)).status_code == 404


async def test_tip_on_unknown_spot_list_is_empty(client):
    assert (await client.get("/api/spot-tips/12345")).json() == []
