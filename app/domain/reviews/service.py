"""
Review service - One review per (artist, client) and the artist's rating aggregate.

Each artist carries rating_total and rating_count. They are adjusted in the
same transaction as the review write, so the average shown on a profile never
lags behind the review list. reconcile_artist_ratings() rebuilds both counters
from the review table and is the only full-scan path.
"""

import logging
from datetime import datetime
from typing import Iterable, Optional

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from ...models import ArtistReview, User
from ...shared.errors import NotFoundError, PermissionDeniedError, StoreError, ValidationError
from ...shared.persistence import commit
from .repository import ReviewRepository

logger = logging.getLogger(__name__)

MIN_RATING = 1
MAX_RATING = 5


def compute_average(ratings: Iterable[int]) -> float:
    """Arithmetic mean of the ratings, 0.0 when there are none"""
    ratings = list(ratings)
    if not ratings:
        return 0.0
    return sum(ratings) / len(ratings)


def validate_rating(rating) -> int:
    if isinstance(rating, bool) or not isinstance(rating, int):
        raise ValidationError("Rating must be a whole number between 1 and 5")
    if not MIN_RATING <= rating <= MAX_RATING:
        raise ValidationError("Rating must be a whole number between 1 and 5")
    return rating


def _adjust_counters(artist: User, total_delta: int, count_delta: int) -> None:
    # SQL-side increments so concurrent reviews for one artist do not overwrite each other
    if total_delta:
        artist.rating_total = User.rating_total + total_delta
    if count_delta:
        artist.rating_count = User.rating_count + count_delta


class ReviewService:
    """Service layer for artist reviews"""

    def __init__(self, db: Session):
        self.db = db
        self.repo = ReviewRepository()

    def _get_artist(self, artist_id: int) -> User:
        artist = self.repo.get_artist(self.db, artist_id)
        if not artist:
            raise NotFoundError("Artist not found")
        return artist

    def submit_or_update(
        self, artist_id: int, client: User, rating: int, comment: Optional[str] = None
    ) -> ArtistReview:
        """Create the client's review of the artist, or replace the rating and comment of the existing one"""
        rating = validate_rating(rating)
        comment = (comment or "").strip() or None
        if artist_id == client.id:
            raise ValidationError("You cannot review yourself")
        artist = self._get_artist(artist_id)

        review = self.repo.get_by_pair(self.db, artist_id, client.id)
        if review is None:
            review = ArtistReview(
                artist_id=artist_id,
                client_id=client.id,
                rating=rating,
                comment=comment,
                created_at=datetime.utcnow(),
            )
            self.db.add(review)
            _adjust_counters(artist, rating, 1)
            try:
                self.db.commit()
            except IntegrityError as e:
                self.db.rollback()
                # Another request from the same client inserted first
                review = self.repo.get_by_pair(self.db, artist_id, client.id)
                if review is None:
                    logger.error(f"❌ Failed to create review for artist {artist_id}: {e}")
                    raise StoreError("Failed to save review") from e
                logger.warning(f"⚠️ Concurrent review insert for artist {artist_id} by client {client.id}")
                return self._update(review, artist, rating, comment)
            except SQLAlchemyError as e:
                self.db.rollback()
                logger.error(f"❌ Failed to create review for artist {artist_id}: {e}")
                raise StoreError("Failed to save review") from e
            self.db.refresh(review)
            logger.info(f"⭐ Client {client.id} rated artist {artist_id}: {rating}")
            return review

        return self._update(review, artist, rating, comment)

    def _update(self, review: ArtistReview, artist: User, rating: int, comment: Optional[str]) -> ArtistReview:
        previous = review.rating
        review.rating = rating
        review.comment = comment
        review.updated_at = datetime.utcnow()
        _adjust_counters(artist, rating - previous, 0)
        commit(self.db, f"update review {review.id}", review)
        logger.info(f"⭐ Client {review.client_id} updated rating for artist {review.artist_id}: {previous} → {rating}")
        return review

    def delete_review(self, review_id: int, client: User, artist_id: Optional[int] = None) -> None:
        review = self.repo.get_review(self.db, review_id)
        if not review or (artist_id is not None and review.artist_id != artist_id):
            raise NotFoundError("Review not found")
        if review.client_id != client.id:
            raise PermissionDeniedError("You can only delete your own reviews")
        artist = self._get_artist(review.artist_id)
        _adjust_counters(artist, -review.rating, -1)
        self.db.delete(review)
        commit(self.db, f"delete review {review_id}")
        logger.info(f"🗑️ Review {review_id} deleted by client {client.id}")

    def list_reviews(self, artist_id: int) -> list[ArtistReview]:
        self._get_artist(artist_id)
        return self.repo.list_for_artist(self.db, artist_id)

    def get_mine(self, artist_id: int, client: User) -> Optional[ArtistReview]:
        return self.repo.get_by_pair(self.db, artist_id, client.id)

    def summary(self, artist_id: int) -> tuple[float, int]:
        """(average rating, number of reviews) from the artist's counters"""
        artist = self._get_artist(artist_id)
        return artist.average_rating, artist.rating_count or 0


def reconcile_artist_ratings(db: Session) -> int:
    """
    Rewrite every artist's rating counters from the review table.

    Returns the number of artists whose counters were corrected.
    """
    totals = ReviewRepository.rating_totals(db)
    corrected = 0
    for artist in ReviewRepository.list_artists(db):
        total, count = totals.get(artist.id, (0, 0))
        if artist.rating_total != total or artist.rating_count != count:
            logger.warning(
                f"⚠️ Artist {artist.id} rating drifted: "
                f"{artist.rating_total}/{artist.rating_count} → {total}/{count}"
            )
            artist.rating_total = total
            artist.rating_count = count
            corrected += 1
    commit(db, "reconcile artist ratings")
    logger.info(f"✅ Rating reconciliation finished, {corrected} artists corrected")
    return corrected
