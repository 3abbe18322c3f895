"""Videos API tests — publishing, browsing, ownership.

Learn: Every route here requires an access token. Uploads go to the
FakeMediaUploader from conftest, so tests can check exactly which
files were stored and which were cleaned up.
"""

import io
import uuid

import pytest


def _bearer(data):
    return {"Authorization": f"Bearer {data['access_token']}"}


async def _publish(client, who, title="My first video", description="About things"):
    r = await client.post(
        "/api/v1/videos",
        headers=_bearer(who),
        data={"title": title, "description": description},
        files={
            "video_file": ("clip.mp4", io.BytesIO(b"video-bytes"), "video/mp4"),
            "thumbnail": ("thumb.png", io.BytesIO(b"png-bytes"), "image/png"),
        },
    )
    assert r.status_code == 201, r.text
    return r.json()["data"]


# ═══════════════════════════════════════════════════════════
# Publish
# ═══════════════════════════════════════════════════════════


@pytest.mark.asyncio
async def test_publish_video(client, signup, media):
    owner = await signup(username="creator")
    video = await _publish(client, owner)

    assert video["title"] == "My first video"
    assert video["is_published"] is True
    assert video["views"] == 0
    assert video["duration"] == 42.5
    assert video["owner"]["username"] == "creator"
    assert media.files[video["video_file"]] == b"video-bytes"
    assert media.files[video["thumbnail"]] == b"png-bytes"


@pytest.mark.asyncio
async def test_publish_requires_auth(client):
    r = await client.post("/api/v1/videos", data={"title": "t", "description": "d"})
    assert r.status_code == 401
    assert r.json()["status_kind"] == "unauthenticated"


@pytest.mark.asyncio
async def test_publish_requires_title(client, signup):
    owner = await signup()
    r = await client.post(
        "/api/v1/videos",
        headers=_bearer(owner),
        data={"description": "no title"},
        files={
            "video_file": ("clip.mp4", io.BytesIO(b"v"), "video/mp4"),
            "thumbnail": ("thumb.png", io.BytesIO(b"t"), "image/png"),
        },
    )
    assert r.status_code == 400
    assert r.json()["message"] == "Title and description are required"


@pytest.mark.asyncio
async def test_publish_requires_thumbnail(client, signup, media):
    owner = await signup()
    r = await client.post(
        "/api/v1/videos",
        headers=_bearer(owner),
        data={"title": "t", "description": "d"},
        files={"video_file": ("clip.mp4", io.BytesIO(b"v"), "video/mp4")},
    )
    assert r.status_code == 400
    assert r.json()["message"] == "Thumbnail file is required"
    assert media.files == {}


# ═══════════════════════════════════════════════════════════
# Browse
# ═══════════════════════════════════════════════════════════


@pytest.mark.asyncio
async def test_list_pagination(client, signup):
    owner = await signup()
    for i in range(3):
        await _publish(client, owner, title=f"Video {i}")

    r = await client.get("/api/v1/videos", headers=_bearer(owner), params={"limit": 2})
    assert r.status_code == 200
    page = r.json()["data"]
    assert page["total_docs"] == 3
    assert page["total_pages"] == 2
    assert len(page["docs"]) == 2
    assert page["has_next_page"] is True
    assert page["has_prev_page"] is False

    r = await client.get(
        "/api/v1/videos", headers=_bearer(owner), params={"limit": 2, "page": 2}
    )
    page = r.json()["data"]
    assert len(page["docs"]) == 1
    assert page["has_next_page"] is False
    assert page["has_prev_page"] is True


@pytest.mark.asyncio
async def test_list_empty(client, signup):
    viewer = await signup()
    r = await client.get("/api/v1/videos", headers=_bearer(viewer))
    assert r.status_code == 200
    assert r.json()["message"] == "No videos found"
    assert r.json()["data"]["docs"] == []
    assert r.json()["data"]["total_pages"] == 0


@pytest.mark.asyncio
async def test_list_search_and_sort(client, signup):
    owner = await signup()
    await _publish(client, owner, title="Cats at play", description="fluffy")
    await _publish(client, owner, title="Dogs", description="more CATS here")
    await _publish(client, owner, title="Birds", description="tweets")

    r = await client.get(
        "/api/v1/videos",
        headers=_bearer(owner),
        params={"query": "cats", "sort_by": "title", "sort_type": "asc"},
    )
    titles = [v["title"] for v in r.json()["data"]["docs"]]
    assert titles == ["Cats at play", "Dogs"]


@pytest.mark.asyncio
async def test_list_filter_by_owner(client, signup):
    alice = await signup(username="alice")
    bob = await signup(username="bob")
    await _publish(client, alice, title="Alice's")
    await _publish(client, bob, title="Bob's")

    r = await client.get(
        "/api/v1/videos",
        headers=_bearer(alice),
        params={"user_id": bob["user"]["id"]},
    )
    docs = r.json()["data"]["docs"]
    assert [v["title"] for v in docs] == ["Bob's"]


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "params",
    [
        {"page": 0},
        {"limit": 0},
        {"limit": 1000},
        {"sort_by": "password_hash"},
        {"sort_type": "sideways"},
    ],
)
async def test_list_rejects_bad_params(client, signup, params):
    viewer = await signup()
    r = await client.get("/api/v1/videos", headers=_bearer(viewer), params=params)
    assert r.status_code == 400
    assert r.json()["status_kind"] == "validation_error"


# ═══════════════════════════════════════════════════════════
# Watch
# ═══════════════════════════════════════════════════════════


@pytest.mark.asyncio
async def test_get_video_counts_views_and_history(client, signup):
    owner = await signup()
    viewer = await signup()
    video = await _publish(client, owner)

    r = await client.get(f"/api/v1/videos/{video['id']}", headers=_bearer(viewer))
    assert r.status_code == 200
    assert r.json()["data"]["views"] == 1

    r = await client.get(f"/api/v1/videos/{video['id']}", headers=_bearer(viewer))
    assert r.json()["data"]["views"] == 2

    r = await client.get("/api/v1/users/watch-history", headers=_bearer(viewer))
    history = r.json()["data"]
    assert [v["id"] for v in history] == [video["id"]]


@pytest.mark.asyncio
async def test_watch_history_most_recent_first(client, signup):
    owner = await signup()
    viewer = await signup()
    first = await _publish(client, owner, title="First")
    second = await _publish(client, owner, title="Second")

    await client.get(f"/api/v1/videos/{first['id']}", headers=_bearer(viewer))
    await client.get(f"/api/v1/videos/{second['id']}", headers=_bearer(viewer))

    r = await client.get("/api/v1/users/watch-history", headers=_bearer(viewer))
    assert [v["title"] for v in r.json()["data"]] == ["Second", "First"]


@pytest.mark.asyncio
async def test_get_unknown_video(client, signup):
    viewer = await signup()
    r = await client.get(f"/api/v1/videos/{uuid.uuid4()}", headers=_bearer(viewer))
    assert r.status_code == 404
    assert r.json()["status_kind"] == "not_found"


@pytest.mark.asyncio
async def test_get_video_bad_id(client, signup):
    viewer = await signup()
    r = await client.get("/api/v1/videos/not-a-uuid", headers=_bearer(viewer))
    assert r.status_code == 400


# ═══════════════════════════════════════════════════════════
# Ownership
# ═══════════════════════════════════════════════════════════


@pytest.mark.asyncio
async def test_drafts_hidden_from_others(client, signup):
    owner = await signup()
    viewer = await signup()
    video = await _publish(client, owner)

    r = await client.patch(
        f"/api/v1/videos/toggle/publish/{video['id']}", headers=_bearer(owner)
    )
    assert r.status_code == 200
    assert r.json()["data"] == {"is_published": False}

    r = await client.get("/api/v1/videos", headers=_bearer(viewer))
    assert r.json()["data"]["total_docs"] == 0
    r = await client.get(f"/api/v1/videos/{video['id']}", headers=_bearer(viewer))
    assert r.status_code == 404

    # Owner still sees the draft on their own channel
    r = await client.get(
        "/api/v1/videos",
        headers=_bearer(owner),
        params={"user_id": owner["user"]["id"]},
    )
    assert r.json()["data"]["total_docs"] == 1
    r = await client.get(f"/api/v1/videos/{video['id']}", headers=_bearer(owner))
    assert r.status_code == 200


@pytest.mark.asyncio
async def test_channel_counts_only_published_for_others(client, signup):
    owner = await signup(username="studio")
    viewer = await signup()
    await _publish(client, owner, title="Public")
    draft = await _publish(client, owner, title="Draft")
    await client.patch(
        f"/api/v1/videos/toggle/publish/{draft['id']}", headers=_bearer(owner)
    )

    r = await client.get("/api/v1/users/channel/studio", headers=_bearer(viewer))
    assert r.json()["data"]["videos_count"] == 1
    r = await client.get("/api/v1/users/channel/studio", headers=_bearer(owner))
    assert r.json()["data"]["videos_count"] == 2


@pytest.mark.asyncio
async def test_update_video(client, signup, media):
    owner = await signup()
    video = await _publish(client, owner)

    r = await client.patch(
        f"/api/v1/videos/{video['id']}",
        headers=_bearer(owner),
        data={"title": "Renamed"},
        files={"thumbnail": ("new.png", io.BytesIO(b"new"), "image/png")},
    )
    assert r.status_code == 200
    updated = r.json()["data"]
    assert updated["title"] == "Renamed"
    assert updated["description"] == video["description"]
    assert updated["thumbnail"] != video["thumbnail"]
    assert media.deleted == [video["thumbnail"]]


@pytest.mark.asyncio
async def test_update_video_needs_a_field(client, signup):
    owner = await signup()
    video = await _publish(client, owner)
    r = await client.patch(f"/api/v1/videos/{video['id']}", headers=_bearer(owner))
    assert r.status_code == 400


@pytest.mark.asyncio
async def test_non_owner_cannot_modify(client, signup):
    owner = await signup()
    intruder = await signup()
    video = await _publish(client, owner)

    r = await client.patch(
        f"/api/v1/videos/{video['id']}",
        headers=_bearer(intruder),
        data={"title": "Hijacked"},
    )
    assert r.status_code == 403
    assert r.json()["status_kind"] == "forbidden"

    r = await client.patch(
        f"/api/v1/videos/toggle/publish/{video['id']}", headers=_bearer(intruder)
    )
    assert r.status_code == 403

    r = await client.delete(f"/api/v1/videos/{video['id']}", headers=_bearer(intruder))
    assert r.status_code == 403


@pytest.mark.asyncio
async def test_delete_video(client, signup, media):
    owner = await signup()
    viewer = await signup()
    video = await _publish(client, owner)
    await client.get(f"/api/v1/videos/{video['id']}", headers=_bearer(viewer))

    r = await client.delete(f"/api/v1/videos/{video['id']}", headers=_bearer(owner))
    assert r.status_code == 200
    assert r.json()["data"] == {}
    assert sorted(media.deleted) == sorted([video["video_file"], video["thumbnail"]])

    r = await client.get(f"/api/v1/videos/{video['id']}", headers=_bearer(owner))
    assert r.status_code == 404
    r = await client.get("/api/v1/users/watch-history", headers=_bearer(viewer))
    assert r.json()["data"] == []


@pytest.mark.asyncio
async def test_publish_upload_failure_cleans_up(client, signup, media):
    owner = await signup()
    media.fail_on = ".png"

    r = await client.post(
        "/api/v1/videos",
        headers=_bearer(owner),
        data={"title": "t", "description": "d"},
        files={
            "video_file": ("clip.mp4", io.BytesIO(b"v"), "video/mp4"),
            "thumbnail": ("thumb.png", io.BytesIO(b"t"), "image/png"),
        },
    )
    assert r.status_code == 500
    assert r.json()["status_kind"] == "media_upload_failed"
    assert media.files == {}
    assert [url.rsplit("-", 1)[1] for url in media.deleted] == ["clip.mp4"]

    r = await client.get("/api/v1/videos", headers=_bearer(owner))
    assert r.json()["data"]["total_docs"] == 0
