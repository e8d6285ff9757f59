"""
Live query subscriptions over the document store.

A subscription pairs a collection name with a query function and a callback.
The callback receives the full current result set once on subscribe and again
after every committed transaction that touched that collection. Commits are
observed through SQLAlchemy session events, so services never push updates
themselves.
"""

import asyncio
import logging
import threading
from typing import Any, Awaitable, Callable, Iterable, Optional

from fastapi import WebSocket
from sqlalchemy import event
from sqlalchemy.orm import Session

from .database import SessionLocal

logger = logging.getLogger(__name__)

Snapshot = list[Any]
QueryFn = Callable[[Session], Snapshot]
Callback = Callable[[Snapshot], None]

_PENDING_KEY = "changed_collections"


class Subscription:
    """Handle for one live query. Release with close() or by leaving a with block."""

    def __init__(self, feed: "ChangeFeed", collection: str, query: QueryFn, callback: Callback):
        self.feed = feed
        self.collection = collection
        self.query = query
        self.callback = callback
        self.active = True

    def refresh(self) -> None:
        if not self.active:
            return
        db = self.feed.session_factory()
        try:
            snapshot = self.query(db)
        finally:
            db.close()
        self.callback(snapshot)

    def close(self) -> None:
        if not self.active:
            return
        self.active = False
        self.feed.remove(self)

    def __enter__(self) -> "Subscription":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()


class ChangeFeed:
    """Fan-out of committed collection changes to live subscriptions"""

    def __init__(self, session_factory: Callable[[], Session] = SessionLocal):
        self.session_factory = session_factory
        self._subscriptions: dict[str, list[Subscription]] = {}
        self._lock = threading.Lock()

    def subscribe(self, collection: str, query: QueryFn, callback: Callback) -> Subscription:
        subscription = Subscription(self, collection, query, callback)
        with self._lock:
            self._subscriptions.setdefault(collection, []).append(subscription)
        logger.debug(f"🔔 Subscribed to {collection}")
        try:
            subscription.refresh()
        except Exception:
            subscription.close()
            raise
        return subscription

    def remove(self, subscription: Subscription) -> None:
        with self._lock:
            subscribers = self._subscriptions.get(subscription.collection, [])
            if subscription in subscribers:
                subscribers.remove(subscription)
            if not subscribers:
                self._subscriptions.pop(subscription.collection, None)
        logger.debug(f"🔕 Unsubscribed from {subscription.collection}")

    def subscriber_count(self, collection: Optional[str] = None) -> int:
        with self._lock:
            if collection is not None:
                return len(self._subscriptions.get(collection, []))
            return sum(len(subs) for subs in self._subscriptions.values())

    def publish(self, collections: Iterable[str]) -> None:
        for collection in set(collections):
            with self._lock:
                subscribers = list(self._subscriptions.get(collection, []))
            for subscription in subscribers:
                try:
                    subscription.refresh()
                except Exception as e:
                    # One failing listener must not starve the others
                    logger.error(f"❌ Live query refresh failed for {collection}: {e}")


feed = ChangeFeed()


def _collections_of(instances: Iterable[Any]) -> set[str]:
    return {obj.__tablename__ for obj in instances if hasattr(obj, "__tablename__")}


@event.listens_for(SessionLocal, "after_flush")
def _track_changes(session, _flush_context):
    changed = _collections_of(session.new) | _collections_of(session.dirty) | _collections_of(
        session.deleted
    )
    session.info.setdefault(_PENDING_KEY, set()).update(changed)


@event.listens_for(SessionLocal, "after_commit")
def _publish_changes(session):
    changed = session.info.pop(_PENDING_KEY, set())
    if changed:
        feed.publish(changed)


@event.listens_for(SessionLocal, "after_rollback")
def _discard_changes(session):
    session.info.pop(_PENDING_KEY, None)


class SnapshotStream:
    """
    Forwards subscription snapshots to a WebSocket.

    Callbacks may fire on whichever thread committed the change, so they are
    handed to the event loop with call_soon_threadsafe and sent from there.
    """

    def __init__(self, websocket: WebSocket):
        self.websocket = websocket
        self.loop = asyncio.get_running_loop()
        self.queue: asyncio.Queue = asyncio.Queue()

    def push(self, kind: str, snapshot: Snapshot, **extra) -> None:
        frame = {"type": kind, **extra, "data": snapshot}
        self.loop.call_soon_threadsafe(self.queue.put_nowait, frame)

    def callback(self, kind: str, **extra) -> Callback:
        return lambda snapshot: self.push(kind, snapshot, **extra)

    async def _send_frames(self) -> None:
        while True:
            frame = await self.queue.get()
            await self.websocket.send_json(frame)

    @staticmethod
    def _log_send_failure(task: asyncio.Task) -> None:
        if task.cancelled():
            return
        error = task.exception()
        if error is not None:
            logger.warning(f"⚠️ Stopped sending snapshots: {error!r}")

    async def run(self, on_frame: Optional[Callable[[dict], Awaitable[None]]] = None) -> None:
        """Send snapshots until the peer disconnects; incoming JSON frames go to on_frame"""
        sender = asyncio.create_task(self._send_frames())
        sender.add_done_callback(self._log_send_failure)
        try:
            while True:
                frame = await self.websocket.receive_json()
                if on_frame is not None and isinstance(frame, dict):
                    await on_frame(frame)
        finally:
            sender.cancel()
