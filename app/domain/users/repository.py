"""User repository - Database operations for users and artist profiles"""

from typing import Optional

from sqlalchemy import func, or_
from sqlalchemy.orm import Session

from ...models import Post, User


class UserRepository:
    """Repository for user database operations"""

    @staticmethod
    def get_user(db: Session, user_id: int) -> Optional[User]:
        return db.query(User).filter(User.id == user_id).first()

    @staticmethod
    def get_artist(db: Session, artist_id: int) -> Optional[User]:
        return db.query(User).filter(User.id == artist_id, User.role == "artist").first()

    @staticmethod
    def get_artists(db: Session, artist_ids: list[int]) -> list[User]:
        if not artist_ids:
            return []
        return db.query(User).filter(User.id.in_(artist_ids), User.role == "artist").all()

    @staticmethod
    def search_artists_by_prefix(db: Session, prefix: str) -> list[User]:
        """Artists whose name, studio or city starts with ``prefix`` (case-insensitive)"""
        return (
            db.query(User)
            .filter(
                User.role == "artist",
                or_(
                    func.lower(User.full_name).startswith(prefix, autoescape=True),
                    func.lower(User.studio_name).startswith(prefix, autoescape=True),
                    func.lower(User.city).startswith(prefix, autoescape=True),
                ),
            )
            .order_by(User.full_name, User.id)
            .all()
        )

    @staticmethod
    def list_artists(db: Session) -> list[User]:
        return db.query(User).filter(User.role == "artist").order_by(User.full_name, User.id).all()

    @staticmethod
    def latest_post(db: Session, artist_id: int) -> Optional[Post]:
        return (
            db.query(Post)
            .filter(Post.artist_id == artist_id)
            .order_by(Post.created_at.desc(), Post.id.desc())
            .first()
        )
