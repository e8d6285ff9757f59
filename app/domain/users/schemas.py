"""User domain schemas"""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel

from ...models import Post, User


class UserResponse(BaseModel):
    """Schema for the signed-in user's own profile"""

    id: int
    email: str
    fullName: Optional[str] = None
    role: Optional[str] = None
    profileImageUrl: Optional[str] = None
    studioName: Optional[str] = None
    city: Optional[str] = None
    address: Optional[str] = None
    bio: Optional[str] = None
    styles: list[str] = []
    followedArtists: list[int] = []
    averageRating: float = 0.0
    ratingCount: int = 0
    createdAt: Optional[datetime] = None

    @classmethod
    def from_model(cls, user: User) -> "UserResponse":
        return cls(
            id=user.id,
            email=user.email,
            fullName=user.full_name,
            role=user.role,
            profileImageUrl=user.profile_image_url,
            studioName=user.studio_name,
            city=user.city,
            address=user.address,
            bio=user.bio,
            styles=list(user.styles or []),
            followedArtists=list(user.followed_artists or []),
            averageRating=user.average_rating,
            ratingCount=user.rating_count or 0,
            createdAt=user.created_at,
        )


class UserUpdate(BaseModel):
    """Schema for updating profile fields; omitted fields are left unchanged"""

    fullName: Optional[str] = None
    profileImageUrl: Optional[str] = None
    studioName: Optional[str] = None
    city: Optional[str] = None
    address: Optional[str] = None
    bio: Optional[str] = None
    styles: Optional[list[str]] = None


class RoleUpdate(BaseModel):
    role: str


class PostPreview(BaseModel):
    id: int
    imageUrl: str
    title: str
    createdAt: Optional[datetime] = None

    @classmethod
    def from_model(cls, post: Optional[Post]) -> Optional["PostPreview"]:
        if post is None:
            return None
        return cls(id=post.id, imageUrl=post.image_url, title=post.title, createdAt=post.created_at)


class ArtistProfile(BaseModel):
    """Public artist card used by profile pages and search results"""

    id: int
    fullName: Optional[str] = None
    profileImageUrl: Optional[str] = None
    studioName: Optional[str] = None
    city: Optional[str] = None
    address: Optional[str] = None
    bio: Optional[str] = None
    styles: list[str] = []
    averageRating: float = 0.0
    ratingCount: int = 0
    latestPost: Optional[PostPreview] = None

    @classmethod
    def from_model(cls, artist: User, latest_post: Optional[Post] = None) -> "ArtistProfile":
        return cls(
            id=artist.id,
            fullName=artist.full_name,
            profileImageUrl=artist.profile_image_url,
            studioName=artist.studio_name,
            city=artist.city,
            address=artist.address,
            bio=artist.bio,
            styles=list(artist.styles or []),
            averageRating=artist.average_rating,
            ratingCount=artist.rating_count or 0,
            latestPost=PostPreview.from_model(latest_post),
        )


class FollowResponse(BaseModel):
    following: bool
    followedArtists: list[int]
