import base64
import json
import logging
import time
from typing import Optional

import firebase_admin
import httpx
from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.asymmetric import padding
from cryptography.x509 import load_pem_x509_certificate
from fastapi import Depends, HTTPException, Query, Request, WebSocketException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from firebase_admin import auth as firebase_auth
from firebase_admin import credentials
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from .config import FIREBASE_PROJECT_ID
from .database import SessionLocal, get_db
from .models import User

logger = logging.getLogger(__name__)

security = HTTPBearer()

GOOGLE_CERTS_URL = (
    "https://www.googleapis.com/robot/v1/metadata/x509/securetoken@system.gserviceaccount.com"
)

# Cache for Google's public keys
_cached_keys = None


def get_firebase_app():
    """Initialize the Firebase Admin SDK on first use"""
    try:
        return firebase_admin.get_app()
    except ValueError:
        try:
            cred = credentials.ApplicationDefault()
            app = firebase_admin.initialize_app(cred, {"projectId": FIREBASE_PROJECT_ID})
            logger.info("Firebase Admin initialized with default credentials")
        except Exception:
            app = firebase_admin.initialize_app(options={"projectId": FIREBASE_PROJECT_ID})
            logger.info("Firebase Admin initialized with project ID only")
        return app


def revoke_sessions(firebase_uid: str) -> None:
    """Invalidate every refresh token issued to the account"""
    try:
        firebase_auth.revoke_refresh_tokens(firebase_uid, app=get_firebase_app())
    except firebase_admin.exceptions.FirebaseError as e:
        logger.error(f"❌ Failed to revoke sessions for {firebase_uid}: {e}")
        raise HTTPException(status_code=502, detail="Failed to sign out. Please try again.") from e


async def get_google_public_keys(force_refresh: bool = False):
    """Fetch Google's public keys for Firebase token verification"""
    global _cached_keys
    if _cached_keys and not force_refresh:
        return _cached_keys

    try:
        async with httpx.AsyncClient() as client:
            response = await client.get(GOOGLE_CERTS_URL)
        if response.status_code == 200:
            _cached_keys = response.json()
            logger.info(f"✅ Fetched {len(_cached_keys)} Google public keys")
            return _cached_keys
        logger.error(f"❌ Failed to fetch Google public keys: HTTP {response.status_code}")
    except httpx.HTTPError as e:
        logger.error(f"❌ Error fetching Google public keys: {str(e)}")
    return None


def _b64decode(segment: str) -> bytes:
    return base64.urlsafe_b64decode(segment + "=" * (-len(segment) % 4))


async def verify_firebase_token(token: str) -> dict:
    """
    Verify a Firebase ID token: RS256 signature against Google's certificates,
    then audience, issuer and expiry claims.
    """
    if not FIREBASE_PROJECT_ID:
        logger.error("❌ FIREBASE_PROJECT_ID not configured")
        raise HTTPException(status_code=500, detail="Firebase not configured")

    parts = token.split(".")
    if len(parts) != 3:
        raise HTTPException(status_code=401, detail="Invalid token format")
    header_b64, payload_b64, signature_b64 = parts

    try:
        header = json.loads(_b64decode(header_b64))
        payload = json.loads(_b64decode(payload_b64))
        signature = _b64decode(signature_b64)
    except ValueError as e:
        raise HTTPException(status_code=401, detail="Invalid token encoding") from e

    kid = header.get("kid")
    if header.get("alg") != "RS256" or not kid:
        raise HTTPException(status_code=401, detail="Invalid token header")

    public_keys = await get_google_public_keys()
    if not public_keys or kid not in public_keys:
        logger.warning(f"⚠️ Key ID {kid} not found in public keys, refreshing cache")
        public_keys = await get_google_public_keys(force_refresh=True)
        if not public_keys or kid not in public_keys:
            raise HTTPException(status_code=401, detail="Unable to verify token signature")

    public_key = load_pem_x509_certificate(public_keys[kid].encode()).public_key()
    try:
        public_key.verify(
            signature, f"{header_b64}.{payload_b64}".encode(), padding.PKCS1v15(), hashes.SHA256()
        )
    except Exception as e:
        logger.error(f"❌ Token signature verification failed: {str(e)}")
        raise HTTPException(status_code=401, detail="Invalid token signature") from e

    if payload.get("aud") != FIREBASE_PROJECT_ID:
        raise HTTPException(status_code=401, detail="Invalid token audience")
    if payload.get("iss") != f"https://securetoken.google.com/{FIREBASE_PROJECT_ID}":
        raise HTTPException(status_code=401, detail="Invalid token issuer")

    now = time.time()
    if payload.get("exp", 0) < now:
        raise HTTPException(
            status_code=401,
            detail="Token has expired. Please refresh your session.",
            headers={"X-Token-Expired": "true"},
        )
    if payload.get("iat", 0) > now + 60:  # Allow 60 seconds clock skew
        raise HTTPException(status_code=401, detail="Invalid token")

    return payload


def get_or_create_user(db: Session, claims: dict) -> User:
    """Find the account for verified token claims, creating it on first sign-in"""
    firebase_uid = claims.get("sub") or claims.get("user_id") or claims.get("uid")
    if not firebase_uid:
        raise HTTPException(status_code=401, detail="Invalid token claims")

    email = claims.get("email") or ""
    name = claims.get("name", "")

    user = db.query(User).filter(User.firebase_uid == firebase_uid).first()
    if user:
        return user

    # Same email signed in with another provider (e.g. password first, Google later)
    if email:
        existing_user = db.query(User).filter(User.email == email).first()
        if existing_user:
            logger.info(f"🔄 Linking {email} to new Firebase UID")
            existing_user.firebase_uid = firebase_uid
            if name and not existing_user.full_name:
                existing_user.full_name = name
            db.commit()
            db.refresh(existing_user)
            return existing_user

    logger.info(f"🆕 Creating new user: {email}")
    user = User(
        firebase_uid=firebase_uid,
        email=email or f"{firebase_uid}@users.clickink.app",
        full_name=name,
        role=None,  # Chosen on the select-role step after signup
        styles=[],
        followed_artists=[],
    )
    db.add(user)
    try:
        db.commit()
    except IntegrityError as e:
        db.rollback()
        logger.error(f"❌ Email {email} was taken by another account (race condition)")
        raise HTTPException(
            status_code=409,
            detail="This email is already registered. Please sign in with your existing account.",
        ) from e
    db.refresh(user)
    return user


async def authenticate_token(token: str, db: Session) -> User:
    claims = await verify_firebase_token(token)
    return get_or_create_user(db, claims)


async def get_current_user(
    request: Request,
    credentials: HTTPAuthorizationCredentials = Depends(security),
    db: Session = Depends(get_db),
) -> User:
    """Get current user from Firebase token"""
    if not credentials:
        raise HTTPException(
            status_code=401,
            detail="Not authenticated. Please provide a valid Bearer token in the Authorization header.",
        )
    user = await authenticate_token(credentials.credentials, db)
    # Lets per-user rate limits key on the account instead of the IP
    request.state.user_id = user.id
    return user


async def get_current_artist(user: User = Depends(get_current_user)) -> User:
    """Current user, required to have the artist role"""
    if user.role != "artist":
        logger.warning(f"⚠️ User {user.id} attempted an artist-only action")
        raise HTTPException(status_code=403, detail="Only artists can perform this action")
    return user


async def get_current_client(user: User = Depends(get_current_user)) -> User:
    """Current user, required to have the client role"""
    if user.role != "client":
        logger.warning(f"⚠️ User {user.id} attempted a client-only action")
        raise HTTPException(status_code=403, detail="Only clients can perform this action")
    return user


async def get_websocket_user(token: Optional[str] = Query(None)) -> User:
    """
    Authenticate a WebSocket from its ?token= query parameter.

    The lookup runs in its own session, closed before the handler starts, so a
    long-lived socket never holds a pooled connection.
    """
    if not token:
        raise WebSocketException(code=status.WS_1008_POLICY_VIOLATION, reason="Missing token")
    db = SessionLocal()
    try:
        return await authenticate_token(token, db)
    except HTTPException as e:
        logger.warning(f"⚠️ WebSocket authentication failed: {e.detail}")
        raise WebSocketException(code=status.WS_1008_POLICY_VIOLATION, reason="Invalid token") from e
    finally:
        db.close()
