"""Feed service - Artist posts, likes and comments"""

import logging
from datetime import datetime
from typing import Callable, Optional

from sqlalchemy.orm import Session

from ...models import Post, User
from ...realtime import Subscription, feed
from ...shared.errors import NotFoundError, PermissionDeniedError, ValidationError
from ...shared.persistence import commit
from ...storage import ImageFile, upload_image
from .repository import FeedCursor, PostRepository
from .schemas import PostResponse

logger = logging.getLogger(__name__)

DEFAULT_PAGE_SIZE = 20
MAX_PAGE_SIZE = 50
MAX_COMMENT_LENGTH = 1000


def feed_artist_ids(user: User) -> list[int]:
    """Artists whose posts appear in the user's feed: the ones they follow plus themselves"""
    ids = list(user.followed_artists or [])
    if user.id not in ids:
        ids.append(user.id)
    return ids


class FeedService:
    """Service layer for the social feed"""

    def __init__(self, db: Session):
        self.db = db
        self.repo = PostRepository()

    def _load_user(self, user: User) -> User:
        fresh = self.repo.get_user(self.db, user.id)
        if not fresh:
            raise NotFoundError("User not found")
        return fresh

    def _get_post(self, post_id: int) -> Post:
        post = self.repo.get_post(self.db, post_id)
        if not post:
            raise NotFoundError("Post not found")
        return post

    def create_post(
        self, artist: User, title: str, description: Optional[str], image: Optional[ImageFile]
    ) -> Post:
        title = (title or "").strip()
        if not title:
            raise ValidationError("Please enter a title")
        if image is None:
            raise ValidationError("Please select an image")
        artist = self._load_user(artist)
        if artist.role != "artist":
            raise PermissionDeniedError("Only artists can publish posts")

        image_url = upload_image(image, "artwork", uploaded_by=str(artist.id))
        post = Post(
            artist_id=artist.id,
            artist_name=artist.full_name,
            studio_name=artist.studio_name,
            city=artist.city,
            image_url=image_url,
            title=title,
            description=(description or "").strip() or None,
            likes=[],
            comments=[],
            created_at=datetime.utcnow(),
        )
        self.db.add(post)
        commit(self.db, "create post", post)
        logger.info(f"🖼️ Post {post.id} published by artist {artist.id}")
        return post

    def delete_post(self, post_id: int, artist: User) -> None:
        post = self._get_post(post_id)
        if post.artist_id != artist.id:
            raise PermissionDeniedError("You can only delete your own posts")
        self.db.delete(post)
        commit(self.db, f"delete post {post_id}")
        logger.info(f"🗑️ Post {post_id} deleted by artist {artist.id}")

    def list_feed(
        self, user: User, limit: int = DEFAULT_PAGE_SIZE, before: Optional[FeedCursor] = None
    ) -> tuple[list[Post], Optional[FeedCursor]]:
        """
        One page of the user's feed, newest first.

        Returns the posts and the cursor for the next page, which is None once
        the feed is exhausted.
        """
        limit = max(1, min(limit, MAX_PAGE_SIZE))
        user = self._load_user(user)
        posts = self.repo.list_by_artists(self.db, feed_artist_ids(user), limit=limit, before=before)
        next_cursor = FeedCursor(posts[-1].created_at, posts[-1].id) if len(posts) == limit else None
        return posts, next_cursor

    def list_artist_posts(self, artist_id: int) -> list[Post]:
        return self.repo.list_by_artists(self.db, [artist_id])

    def toggle_like(self, post_id: int, user: User) -> Post:
        post = self._get_post(post_id)
        likes = list(post.likes or [])
        if user.id in likes:
            post.likes = [uid for uid in likes if uid != user.id]
        else:
            post.likes = likes + [user.id]
        commit(self.db, f"update likes on post {post_id}", post)
        return post

    def add_comment(self, post_id: int, user: User, text: str) -> Post:
        text = (text or "").strip()
        if not text:
            raise ValidationError("Comment cannot be empty")
        if len(text) > MAX_COMMENT_LENGTH:
            raise ValidationError(f"Comment must be at most {MAX_COMMENT_LENGTH} characters")
        post = self._get_post(post_id)
        comment = {
            "userId": user.id,
            "userName": user.full_name or user.email,
            "text": text,
            "timestamp": datetime.utcnow().isoformat(),
        }
        post.comments = list(post.comments or []) + [comment]
        commit(self.db, f"comment on post {post_id}", post)
        return post


def subscribe_feed(user_id: int, callback: Callable[[list], None], limit: int = DEFAULT_PAGE_SIZE) -> Subscription:
    """Live first page of the user's feed"""

    def query(db: Session) -> list:
        user = PostRepository.get_user(db, user_id)
        if not user:
            return []
        posts = PostRepository.list_by_artists(db, feed_artist_ids(user), limit=limit)
        return [PostResponse.from_model(p, user_id).model_dump(mode="json") for p in posts]

    return feed.subscribe("posts", query, callback)
