"""User service - Profiles, roles, follows and artist search"""

import logging
from typing import Optional

from sqlalchemy.orm import Session

from ...auth import revoke_sessions
from ...models import User
from ...shared.errors import NotFoundError, PermissionDeniedError, ValidationError
from ...shared.persistence import commit
from ...shared.validators import validate_role
from .repository import UserRepository
from .schemas import ArtistProfile, UserUpdate

logger = logging.getLogger(__name__)

MAX_SEARCH_RESULTS = 50

# UserUpdate field -> User column
PROFILE_FIELDS = {
    "fullName": "full_name",
    "profileImageUrl": "profile_image_url",
    "studioName": "studio_name",
    "city": "city",
    "address": "address",
    "bio": "bio",
}


class UserService:
    """Service layer for user business logic"""

    def __init__(self, db: Session):
        self.db = db
        self.repo = UserRepository()

    def _load(self, user: User) -> User:
        fresh = self.repo.get_user(self.db, user.id)
        if not fresh:
            raise NotFoundError("User not found")
        return fresh

    def get_me(self, user: User) -> User:
        return self._load(user)

    def update_profile(self, user: User, data: UserUpdate) -> User:
        user = self._load(user)
        updates = data.model_dump(exclude_unset=True)
        for field, column in PROFILE_FIELDS.items():
            if field in updates:
                value = updates[field]
                setattr(user, column, value.strip() if isinstance(value, str) else value)
        if "styles" in updates:
            # Keep first occurrence, drop blanks and duplicates
            seen: list[str] = []
            for style in updates["styles"] or []:
                style = style.strip()
                if style and style.lower() not in (s.lower() for s in seen):
                    seen.append(style)
            user.styles = seen
        commit(self.db, f"update profile for user {user.id}", user)
        logger.info(f"✅ Profile updated for user {user.id}")
        return user

    def set_role(self, user: User, role: str) -> User:
        """Pick client or artist once, right after signup"""
        role = validate_role(role)
        user = self._load(user)
        if user.role == role:
            return user
        if user.role is not None:
            raise PermissionDeniedError("Role has already been selected")
        user.role = role
        commit(self.db, f"set role for user {user.id}", user)
        logger.info(f"👤 User {user.id} selected role '{role}'")
        return user

    # ------------------------------------------------------------------
    # Follow graph (stored on the follower)
    # ------------------------------------------------------------------

    def follow(self, user: User, artist_id: int) -> User:
        user = self._load(user)
        if user.role != "client":
            raise PermissionDeniedError("Only clients can follow artists")
        if not self.repo.get_artist(self.db, artist_id):
            raise NotFoundError("Artist not found")
        followed = list(user.followed_artists or [])
        if artist_id in followed:
            return user
        user.followed_artists = followed + [artist_id]
        commit(self.db, f"follow artist {artist_id}", user)
        logger.info(f"➕ User {user.id} followed artist {artist_id}")
        return user

    def unfollow(self, user: User, artist_id: int) -> User:
        user = self._load(user)
        followed = list(user.followed_artists or [])
        if artist_id not in followed:
            return user
        user.followed_artists = [a for a in followed if a != artist_id]
        commit(self.db, f"unfollow artist {artist_id}", user)
        logger.info(f"➖ User {user.id} unfollowed artist {artist_id}")
        return user

    def following(self, user: User) -> list[ArtistProfile]:
        user = self._load(user)
        ids = list(user.followed_artists or [])
        artists = {a.id: a for a in self.repo.get_artists(self.db, ids)}
        return [self._profile(artists[i]) for i in ids if i in artists]

    # ------------------------------------------------------------------
    # Artist discovery
    # ------------------------------------------------------------------

    def _profile(self, artist: User) -> ArtistProfile:
        return ArtistProfile.from_model(artist, self.repo.latest_post(self.db, artist.id))

    def get_artist(self, artist_id: int) -> ArtistProfile:
        artist = self.repo.get_artist(self.db, artist_id)
        if not artist:
            raise NotFoundError("Artist not found")
        return self._profile(artist)

    def search_artists(self, query: Optional[str], limit: int = 20, offset: int = 0) -> list[ArtistProfile]:
        """
        Case-insensitive prefix search over artist name, studio and city, plus
        exact style matches. Each artist appears once, with their latest post.
        """
        limit = max(1, min(limit, MAX_SEARCH_RESULTS))
        offset = max(0, offset)
        term = (query or "").strip().lower()

        if not term:
            matches = self.repo.list_artists(self.db)
        else:
            matches = self.repo.search_artists_by_prefix(self.db, term)
            seen = {a.id for a in matches}
            for artist in self.repo.list_artists(self.db):
                if artist.id in seen:
                    continue
                if term in (s.lower() for s in artist.styles or []):
                    matches.append(artist)
                    seen.add(artist.id)

        return [self._profile(a) for a in matches[offset : offset + limit]]

    def sign_out(self, user: User) -> None:
        revoke_sessions(user.firebase_uid)
        logger.info(f"👋 User {user.id} signed out everywhere")
