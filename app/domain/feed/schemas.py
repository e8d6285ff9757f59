"""Feed domain schemas"""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel

from ...models import Post


class CommentCreate(BaseModel):
    text: str


class CommentResponse(BaseModel):
    userId: int
    userName: Optional[str] = None
    text: str
    timestamp: str


class PostResponse(BaseModel):
    id: int
    artistId: int
    artistName: Optional[str] = None
    studioName: Optional[str] = None
    city: Optional[str] = None
    imageUrl: str
    title: str
    description: Optional[str] = None
    likes: list[int]
    likeCount: int
    likedByMe: bool = False
    comments: list[CommentResponse]
    createdAt: Optional[datetime] = None

    @classmethod
    def from_model(cls, post: Post, viewer_id: Optional[int] = None) -> "PostResponse":
        likes = list(post.likes or [])
        return cls(
            id=post.id,
            artistId=post.artist_id,
            artistName=post.artist_name,
            studioName=post.studio_name,
            city=post.city,
            imageUrl=post.image_url,
            title=post.title,
            description=post.description,
            likes=likes,
            likeCount=len(likes),
            likedByMe=viewer_id in likes,
            comments=[CommentResponse(**c) for c in (post.comments or [])],
            createdAt=post.created_at,
        )


class FeedPage(BaseModel):
    posts: list[PostResponse]
    nextCursor: Optional[datetime] = None
    nextCursorId: Optional[int] = None


class LikeResponse(BaseModel):
    liked: bool
    likeCount: int
