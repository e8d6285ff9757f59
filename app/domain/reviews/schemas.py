"""Review domain schemas"""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field

from ...models import ArtistReview


class ReviewCreate(BaseModel):
    rating: int = Field(ge=1, le=5)
    comment: Optional[str] = None


class ReviewResponse(BaseModel):
    id: int
    artistId: int
    clientId: int
    rating: int
    comment: Optional[str] = None
    createdAt: Optional[datetime] = None
    updatedAt: Optional[datetime] = None

    @classmethod
    def from_model(cls, review: ArtistReview) -> "ReviewResponse":
        return cls(
            id=review.id,
            artistId=review.artist_id,
            clientId=review.client_id,
            rating=review.rating,
            comment=review.comment,
            createdAt=review.created_at,
            updatedAt=review.updated_at,
        )


class RatingSummary(BaseModel):
    averageRating: float
    ratingCount: int
