"""Review router - Artist reviews and rating summaries"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from ...auth import get_current_client, get_current_user
from ...database import get_db
from ...models import User
from .schemas import RatingSummary, ReviewCreate, ReviewResponse
from .service import ReviewService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/artists/{artist_id}/reviews", tags=["Reviews"])


def get_review_service(db: Session = Depends(get_db)) -> ReviewService:
    """Dependency injection for ReviewService"""
    return ReviewService(db)


@router.get("", response_model=list[ReviewResponse])
async def list_reviews(
    artist_id: int,
    current_user: User = Depends(get_current_user),
    service: ReviewService = Depends(get_review_service),
):
    return [ReviewResponse.from_model(r) for r in service.list_reviews(artist_id)]


@router.get("/summary", response_model=RatingSummary)
async def rating_summary(
    artist_id: int,
    current_user: User = Depends(get_current_user),
    service: ReviewService = Depends(get_review_service),
):
    average, count = service.summary(artist_id)
    return RatingSummary(averageRating=average, ratingCount=count)


@router.get("/mine", response_model=Optional[ReviewResponse])
async def get_my_review(
    artist_id: int,
    current_user: User = Depends(get_current_client),
    service: ReviewService = Depends(get_review_service),
):
    """The current client's review of this artist, or null"""
    review = service.get_mine(artist_id, current_user)
    return ReviewResponse.from_model(review) if review else None


@router.put("", response_model=ReviewResponse)
async def submit_review(
    artist_id: int,
    data: ReviewCreate,
    current_user: User = Depends(get_current_client),
    service: ReviewService = Depends(get_review_service),
):
    """Create or replace the current client's review of this artist"""
    review = service.submit_or_update(artist_id, current_user, data.rating, data.comment)
    return ReviewResponse.from_model(review)


@router.delete("/{review_id}", status_code=204)
async def delete_review(
    artist_id: int,
    review_id: int,
    current_user: User = Depends(get_current_client),
    service: ReviewService = Depends(get_review_service),
):
    service.delete_review(review_id, current_user, artist_id)
