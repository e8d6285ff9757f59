"""Feed repository - Database operations for posts"""

from datetime import datetime
from typing import NamedTuple, Optional

from sqlalchemy import and_, or_
from sqlalchemy.orm import Session

from ...models import Post, User


class FeedCursor(NamedTuple):
    """Position of the last post on a page; posts sharing a timestamp are ordered by id"""

    created_at: datetime
    post_id: Optional[int] = None


class PostRepository:
    """Repository for post database operations"""

    @staticmethod
    def get_post(db: Session, post_id: int) -> Optional[Post]:
        return db.query(Post).filter(Post.id == post_id).first()

    @staticmethod
    def list_by_artists(
        db: Session, artist_ids: list[int], limit: Optional[int] = None, before: Optional[FeedCursor] = None
    ) -> list[Post]:
        """Posts by any of the given artists, newest first"""
        if not artist_ids:
            return []
        query = db.query(Post).filter(Post.artist_id.in_(artist_ids))
        if before is not None:
            older = Post.created_at < before.created_at
            if before.post_id is not None:
                older = or_(older, and_(Post.created_at == before.created_at, Post.id < before.post_id))
            query = query.filter(older)
        query = query.order_by(Post.created_at.desc(), Post.id.desc())
        if limit is not None:
            query = query.limit(limit)
        return query.all()

    @staticmethod
    def get_user(db: Session, user_id: int) -> Optional[User]:
        return db.query(User).filter(User.id == user_id).first()
