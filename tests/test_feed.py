from datetime import datetime, timedelta
from unittest.mock import patch

import pytest

from app.domain.feed.service import FeedService, subscribe_feed
from app.models import Post
from app.realtime import feed
from app.shared.errors import PermissionDeniedError, UploadError, ValidationError
from app.storage import ImageFile

UPLOAD = "app.domain.feed.service.upload_image"
IMAGE = ImageFile(b"img", "image/png", "piece.png")


@pytest.fixture
def service(db):
    return FeedService(db)


def publish(service, artist, title="Dragon sleeve"):
    with patch(UPLOAD, return_value=f"https://media.clickink.app/artwork/{title}.png"):
        return service.create_post(artist, title, "Healed, two sessions", IMAGE)


def test_create_post_denormalizes_artist(service, artist):
    post = publish(service, artist)
    assert post.artist_name == "Ada Artist"
    assert post.studio_name == "Black Lotus"
    assert post.city == "Berlin"
    assert post.likes == [] and post.comments == []


def test_only_artists_post(service, client_user):
    with pytest.raises(PermissionDeniedError):
        publish(service, client_user)


def test_post_requires_title_and_image(service, artist):
    with pytest.raises(ValidationError):
        service.create_post(artist, " ", None, IMAGE)
    with pytest.raises(ValidationError):
        service.create_post(artist, "Rose", None, None)


def test_upload_failure_creates_no_post(service, db, artist):
    with patch(UPLOAD, side_effect=UploadError("Image size must be less than 10MB")):
        with pytest.raises(UploadError):
            service.create_post(artist, "Rose", None, IMAGE)
    assert db.query(Post).count() == 0


def test_feed_shows_followed_and_own_posts(service, make_user, artist):
    followed = artist
    unfollowed = make_user("artist", "Zed Artist")
    own_artist = make_user("artist", "Me Artist", followed_artists=[followed.id])

    followed_post = publish(service, followed, "Followed")
    publish(service, unfollowed, "Unfollowed")
    own_post = publish(service, own_artist, "Own")

    posts, cursor = service.list_feed(own_artist)
    assert [p.id for p in posts] == [own_post.id, followed_post.id]
    assert cursor is None


def test_feed_cursor_pagination(service, db, make_user, artist):
    fan = make_user("client", followed_artists=[artist.id])
    base = datetime(2030, 1, 1, 12, 0)
    for i in range(5):
        post = publish(service, artist, f"Piece {i}")
        post.created_at = base + timedelta(minutes=i)
    db.commit()

    page_one, cursor = service.list_feed(fan, limit=2)
    assert [p.title for p in page_one] == ["Piece 4", "Piece 3"]
    page_two, cursor = service.list_feed(fan, limit=2, before=cursor)
    assert [p.title for p in page_two] == ["Piece 2", "Piece 1"]
    page_three, cursor = service.list_feed(fan, limit=2, before=cursor)
    assert [p.title for p in page_three] == ["Piece 0"]
    assert cursor is None


def test_feed_cursor_keeps_posts_sharing_a_timestamp(service, db, make_user, artist):
    fan = make_user("client", followed_artists=[artist.id])
    same_moment = datetime(2030, 1, 1, 12, 0)
    for title in ("p0", "p1", "p2"):
        post = publish(service, artist, title)
        post.created_at = same_moment
    db.commit()

    seen, cursor = [], None
    while True:
        page, cursor = service.list_feed(fan, limit=1, before=cursor)
        seen.extend(p.title for p in page)
        if cursor is None:
            break

    assert seen == ["p2", "p1", "p0"]


def test_http_feed_pages_through_tied_timestamps(api, login, service, db, artist):
    for title in ("Koi", "Crane"):
        post = publish(service, artist, title)
        post.created_at = datetime(2030, 1, 1, 12, 0)
    db.commit()
    login(artist)

    first = api.get("/posts/feed", params={"limit": 1}).json()
    assert [p["title"] for p in first["posts"]] == ["Crane"]
    second = api.get(
        "/posts/feed", params={"limit": 1, "before": first["nextCursor"], "beforeId": first["nextCursorId"]}
    ).json()
    assert [p["title"] for p in second["posts"]] == ["Koi"]


def test_toggle_like_has_set_semantics(service, artist, client_user):
    post = publish(service, artist)

    service.toggle_like(post.id, client_user)
    assert post.likes == [client_user.id]
    service.toggle_like(post.id, client_user)
    assert post.likes == []


def test_comments_append_in_order(service, artist, client_user):
    post = publish(service, artist)
    service.add_comment(post.id, client_user, "Stunning")
    service.add_comment(post.id, artist, "Thank you!")

    assert [c["text"] for c in post.comments] == ["Stunning", "Thank you!"]
    assert post.comments[0]["userId"] == client_user.id
    assert post.comments[0]["userName"] == "Casey Client"
    with pytest.raises(ValidationError):
        service.add_comment(post.id, client_user, "  ")


def test_delete_post_owner_only(service, db, artist, make_user):
    post = publish(service, artist)
    with pytest.raises(PermissionDeniedError):
        service.delete_post(post.id, make_user("artist"))
    service.delete_post(post.id, artist)
    assert db.query(Post).count() == 0


def test_live_feed_subscription(service, make_user, artist):
    fan = make_user("client", followed_artists=[artist.id])
    snapshots = []

    with subscribe_feed(fan.id, snapshots.append):
        assert snapshots == [[]]
        publish(service, artist, "New flash")
        assert [p["title"] for p in snapshots[-1]] == ["New flash"]

    assert feed.subscriber_count("posts") == 0


# ----------------------------------------------------------------------------
# HTTP / WebSocket
# ----------------------------------------------------------------------------


def test_http_post_like_and_comment(api, login, artist, client_user):
    login(artist)
    with patch(UPLOAD, return_value="https://media.clickink.app/artwork/a.png"):
        response = api.post(
            "/posts",
            data={"title": "Peony", "description": "Color realism"},
            files={"image": ("peony.png", b"png-bytes", "image/png")},
        )
    assert response.status_code == 201
    post_id = response.json()["id"]

    login(client_user)
    assert api.post(f"/posts/{post_id}/like").json() == {"liked": True, "likeCount": 1}
    assert api.post(f"/posts/{post_id}/like").json() == {"liked": False, "likeCount": 0}

    response = api.post(f"/posts/{post_id}/comments", json={"text": "Love it"})
    assert response.json()["comments"][0]["text"] == "Love it"

    assert [p["id"] for p in api.get(f"/posts/artist/{artist.id}").json()] == [post_id]


def test_http_clients_cannot_post(api, login, client_user):
    login(client_user)
    response = api.post(
        "/posts", data={"title": "Nope"}, files={"image": ("x.png", b"png-bytes", "image/png")}
    )
    assert response.status_code == 403


def test_websocket_feed_initial_snapshot(api, login, service, artist):
    publish(service, artist, "Mandala")
    login(artist)

    with api.websocket_connect("/ws/feed") as ws:
        frame = ws.receive_json()
        assert frame["type"] == "feed"
        assert [p["title"] for p in frame["data"]] == ["Mandala"]
