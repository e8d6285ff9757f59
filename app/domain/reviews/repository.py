"""Review repository - Database operations for artist reviews"""

from typing import Optional

from sqlalchemy import func
from sqlalchemy.orm import Session

from ...models import ArtistReview, User


class ReviewRepository:
    """Repository for review database operations"""

    @staticmethod
    def get_review(db: Session, review_id: int) -> Optional[ArtistReview]:
        return db.query(ArtistReview).filter(ArtistReview.id == review_id).first()

    @staticmethod
    def get_by_pair(db: Session, artist_id: int, client_id: int) -> Optional[ArtistReview]:
        return (
            db.query(ArtistReview)
            .filter(ArtistReview.artist_id == artist_id, ArtistReview.client_id == client_id)
            .first()
        )

    @staticmethod
    def list_for_artist(db: Session, artist_id: int) -> list[ArtistReview]:
        return (
            db.query(ArtistReview)
            .filter(ArtistReview.artist_id == artist_id)
            .order_by(ArtistReview.created_at.desc(), ArtistReview.id.desc())
            .all()
        )

    @staticmethod
    def get_artist(db: Session, artist_id: int) -> Optional[User]:
        return db.query(User).filter(User.id == artist_id, User.role == "artist").first()

    @staticmethod
    def rating_totals(db: Session) -> dict[int, tuple[int, int]]:
        """{artist_id: (sum of ratings, number of reviews)} computed from the review table"""
        rows = (
            db.query(ArtistReview.artist_id, func.sum(ArtistReview.rating), func.count(ArtistReview.id))
            .group_by(ArtistReview.artist_id)
            .all()
        )
        return {artist_id: (int(total or 0), int(count)) for artist_id, total, count in rows}

    @staticmethod
    def list_artists(db: Session) -> list[User]:
        return db.query(User).filter(User.role == "artist").all()
