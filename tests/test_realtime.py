import asyncio
import logging

import pytest
from starlette.websockets import WebSocketDisconnect

from app.models import Post
from app.realtime import ChangeFeed, SnapshotStream, feed


def titles(db):
    return [p.title for p in db.query(Post).order_by(Post.id)]


def add_post(db, artist, title):
    post = Post(artist_id=artist.id, image_url="https://media.clickink.app/x.png", title=title, likes=[], comments=[])
    db.add(post)
    return post


def test_subscribe_delivers_initial_snapshot_and_commits(db, artist):
    snapshots = []
    with feed.subscribe("posts", titles, snapshots.append):
        assert snapshots == [[]]

        add_post(db, artist, "First")
        db.commit()
        assert snapshots[-1] == ["First"]

        # Unrelated collections do not trigger a refresh
        artist.bio = "Updated"
        db.commit()
        assert len(snapshots) == 2


def test_rollback_publishes_nothing(db, artist):
    snapshots = []
    with feed.subscribe("posts", titles, snapshots.append):
        add_post(db, artist, "Draft")
        db.flush()
        db.rollback()
        assert snapshots == [[]]


def test_close_is_idempotent_and_stops_delivery(db, artist):
    snapshots = []
    subscription = feed.subscribe("posts", titles, snapshots.append)
    subscription.close()
    subscription.close()

    add_post(db, artist, "Unseen")
    db.commit()
    assert snapshots == [[]]
    assert feed.subscriber_count() == 0


def test_failing_listener_does_not_block_others(db, artist):
    good = []

    def broken(snapshot):
        if snapshot:
            raise RuntimeError("listener crashed")

    with feed.subscribe("posts", titles, broken), feed.subscribe("posts", titles, good.append):
        add_post(db, artist, "Shared")
        db.commit()
        assert good[-1] == ["Shared"]


def test_failed_initial_snapshot_leaves_no_subscription(db):
    def query(session):
        raise RuntimeError("query failed")

    with pytest.raises(RuntimeError):
        feed.subscribe("posts", query, lambda snapshot: None)
    assert feed.subscriber_count("posts") == 0


def test_independent_feed_instance(db):
    local = ChangeFeed()
    seen = []
    subscription = local.subscribe("posts", titles, seen.append)
    local.publish(["posts", "posts"])
    assert len(seen) == 2
    subscription.close()
    assert local.subscriber_count() == 0


class UnwritableSocket:
    async def send_json(self, frame):
        raise RuntimeError("socket gone")

    async def receive_json(self):
        await asyncio.sleep(0.05)
        raise WebSocketDisconnect(code=1000)


def test_snapshot_stream_logs_send_failures(caplog):
    async def scenario():
        stream = SnapshotStream(UnwritableSocket())
        stream.push("feed", [])
        with pytest.raises(WebSocketDisconnect):
            await stream.run()

    with caplog.at_level(logging.WARNING, logger="app.realtime"):
        asyncio.run(scenario())

    assert "Stopped sending snapshots" in caplog.text
    assert "socket gone" in caplog.text
