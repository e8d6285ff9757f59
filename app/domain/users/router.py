"""User router - Profile, role, follow and artist discovery endpoints"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from ...auth import get_current_user
from ...database import get_db
from ...models import User
from .schemas import ArtistProfile, FollowResponse, RoleUpdate, UserResponse, UserUpdate
from .service import MAX_SEARCH_RESULTS, UserService

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Users"])


def get_user_service(db: Session = Depends(get_db)) -> UserService:
    """Dependency injection for UserService"""
    return UserService(db)


@router.get("/users/me", response_model=UserResponse)
async def get_me(
    current_user: User = Depends(get_current_user),
    service: UserService = Depends(get_user_service),
):
    return UserResponse.from_model(service.get_me(current_user))


@router.patch("/users/me", response_model=UserResponse)
async def update_me(
    data: UserUpdate,
    current_user: User = Depends(get_current_user),
    service: UserService = Depends(get_user_service),
):
    return UserResponse.from_model(service.update_profile(current_user, data))


@router.post("/users/me/role", response_model=UserResponse)
async def set_role(
    data: RoleUpdate,
    current_user: User = Depends(get_current_user),
    service: UserService = Depends(get_user_service),
):
    """Choose client or artist after signup; the choice is permanent"""
    return UserResponse.from_model(service.set_role(current_user, data.role))


@router.get("/users/me/following", response_model=list[ArtistProfile])
async def get_following(
    current_user: User = Depends(get_current_user),
    service: UserService = Depends(get_user_service),
):
    return service.following(current_user)


@router.post("/users/me/sign-out", status_code=204)
async def sign_out(
    current_user: User = Depends(get_current_user),
    service: UserService = Depends(get_user_service),
):
    """Revoke every session of the current account"""
    service.sign_out(current_user)


@router.get("/artists", response_model=list[ArtistProfile])
async def search_artists(
    q: Optional[str] = Query(None, description="Name, studio or city prefix, or a style"),
    limit: int = Query(20, ge=1, le=MAX_SEARCH_RESULTS),
    offset: int = Query(0, ge=0),
    current_user: User = Depends(get_current_user),
    service: UserService = Depends(get_user_service),
):
    return service.search_artists(q, limit, offset)


@router.get("/artists/{artist_id}", response_model=ArtistProfile)
async def get_artist(
    artist_id: int,
    current_user: User = Depends(get_current_user),
    service: UserService = Depends(get_user_service),
):
    return service.get_artist(artist_id)


@router.post("/artists/{artist_id}/follow", response_model=FollowResponse)
async def follow_artist(
    artist_id: int,
    current_user: User = Depends(get_current_user),
    service: UserService = Depends(get_user_service),
):
    user = service.follow(current_user, artist_id)
    return FollowResponse(following=True, followedArtists=list(user.followed_artists or []))


@router.delete("/artists/{artist_id}/follow", response_model=FollowResponse)
async def unfollow_artist(
    artist_id: int,
    current_user: User = Depends(get_current_user),
    service: UserService = Depends(get_user_service),
):
    user = service.unfollow(current_user, artist_id)
    return FollowResponse(following=False, followedArtists=list(user.followed_artists or []))
