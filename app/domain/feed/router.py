"""Feed router - Post endpoints and the live feed socket"""

import logging
from datetime import datetime
from typing import Optional

from fastapi import APIRouter, Depends, File, Form, Query, UploadFile, WebSocket, WebSocketDisconnect
from sqlalchemy.orm import Session

from ...auth import get_current_artist, get_current_user, get_websocket_user
from ...database import get_db
from ...models import User
from ...realtime import SnapshotStream
from ...storage import read_upload
from .repository import FeedCursor
from .schemas import CommentCreate, FeedPage, LikeResponse, PostResponse
from .service import DEFAULT_PAGE_SIZE, MAX_PAGE_SIZE, FeedService, subscribe_feed

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/posts", tags=["Feed"])
ws_router = APIRouter(tags=["Realtime"])


def get_feed_service(db: Session = Depends(get_db)) -> FeedService:
    """Dependency injection for FeedService"""
    return FeedService(db)


@router.get("/feed", response_model=FeedPage)
async def get_feed(
    limit: int = Query(DEFAULT_PAGE_SIZE, ge=1, le=MAX_PAGE_SIZE),
    before: Optional[datetime] = Query(None, description="nextCursor from the previous page"),
    before_id: Optional[int] = Query(None, alias="beforeId", description="nextCursorId from the previous page"),
    current_user: User = Depends(get_current_user),
    service: FeedService = Depends(get_feed_service),
):
    """Posts from followed artists and the user's own, newest first"""
    cursor = FeedCursor(before, before_id) if before is not None else None
    posts, next_cursor = service.list_feed(current_user, limit, cursor)
    return FeedPage(
        posts=[PostResponse.from_model(p, current_user.id) for p in posts],
        nextCursor=next_cursor.created_at if next_cursor else None,
        nextCursorId=next_cursor.post_id if next_cursor else None,
    )


@router.get("/artist/{artist_id}", response_model=list[PostResponse])
async def list_artist_posts(
    artist_id: int,
    current_user: User = Depends(get_current_user),
    service: FeedService = Depends(get_feed_service),
):
    return [PostResponse.from_model(p, current_user.id) for p in service.list_artist_posts(artist_id)]


@router.post("", response_model=PostResponse, status_code=201)
async def create_post(
    title: str = Form(...),
    description: Optional[str] = Form(None),
    image: UploadFile = File(...),
    current_user: User = Depends(get_current_artist),
    service: FeedService = Depends(get_feed_service),
):
    post = service.create_post(current_user, title, description, await read_upload(image))
    return PostResponse.from_model(post, current_user.id)


@router.delete("/{post_id}", status_code=204)
async def delete_post(
    post_id: int,
    current_user: User = Depends(get_current_artist),
    service: FeedService = Depends(get_feed_service),
):
    service.delete_post(post_id, current_user)


@router.post("/{post_id}/like", response_model=LikeResponse)
async def toggle_like(
    post_id: int,
    current_user: User = Depends(get_current_user),
    service: FeedService = Depends(get_feed_service),
):
    post = service.toggle_like(post_id, current_user)
    return LikeResponse(liked=current_user.id in post.likes, likeCount=len(post.likes))


@router.post("/{post_id}/comments", response_model=PostResponse)
async def add_comment(
    post_id: int,
    data: CommentCreate,
    current_user: User = Depends(get_current_user),
    service: FeedService = Depends(get_feed_service),
):
    post = service.add_comment(post_id, current_user, data.text)
    return PostResponse.from_model(post, current_user.id)


@ws_router.websocket("/ws/feed")
async def feed_socket(websocket: WebSocket, user: User = Depends(get_websocket_user)):
    """Streams the first page of the user's feed on every post change"""
    await websocket.accept()
    stream = SnapshotStream(websocket)
    subscription = subscribe_feed(user.id, stream.callback("feed"))
    try:
        await stream.run()
    except WebSocketDisconnect:
        logger.debug(f"Feed socket closed for user {user.id}")
    finally:
        subscription.close()
