import asyncio
import base64
import json
import time
from unittest.mock import AsyncMock, patch

import pytest
from fastapi import HTTPException
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from app.auth import _b64decode, get_or_create_user, verify_firebase_token
from app.database import Base
from app.models import User


def test_first_sign_in_creates_user_without_role(db):
    user = get_or_create_user(db, {"sub": "firebase-1", "email": "new@example.com", "name": "New Person"})
    assert user.id is not None
    assert user.role is None
    assert user.full_name == "New Person"
    assert user.followed_artists == []

    assert get_or_create_user(db, {"sub": "firebase-1", "email": "new@example.com"}).id == user.id


def test_same_email_links_new_provider(db, client_user):
    user = get_or_create_user(db, {"sub": "google-uid", "email": client_user.email})
    assert user.id == client_user.id
    assert user.firebase_uid == "google-uid"
    assert db.query(User).count() == 1


def test_claims_without_subject_are_rejected(db):
    with pytest.raises(HTTPException) as exc_info:
        get_or_create_user(db, {"email": "x@example.com"})
    assert exc_info.value.status_code == 401


def test_b64decode_restores_padding():
    assert _b64decode("aGk") == b"hi"


def test_malformed_token_is_401():
    with pytest.raises(HTTPException) as exc_info:
        asyncio.run(verify_firebase_token("not-a-jwt"))
    assert exc_info.value.status_code == 401


def test_unknown_key_id_is_401():
    header = base64.urlsafe_b64encode(json.dumps({"alg": "RS256", "kid": "k1"}).encode()).decode().rstrip("=")
    payload = base64.urlsafe_b64encode(json.dumps({"exp": time.time() + 3600}).encode()).decode().rstrip("=")
    token = f"{header}.{payload}.c2ln"

    with patch("app.auth.get_google_public_keys", new=AsyncMock(return_value={})):
        with pytest.raises(HTTPException) as exc_info:
            asyncio.run(verify_firebase_token(token))
    assert exc_info.value.status_code == 401
    assert exc_info.value.detail == "Unable to verify token signature"


def test_websocket_requires_token(api):
    from starlette.websockets import WebSocketDisconnect

    with pytest.raises(WebSocketDisconnect) as exc_info:
        with api.websocket_connect("/ws/feed") as ws:
            ws.receive_json()
    assert exc_info.value.code == 1008


def test_open_websocket_holds_no_pooled_connection(api, tmp_path):
    auth_engine = create_engine(f"sqlite:///{tmp_path / 'auth.db'}", connect_args={"check_same_thread": False})
    Base.metadata.create_all(bind=auth_engine)
    claims = {"sub": "socket-uid", "email": "socket@example.com", "name": "Socket User"}

    with patch("app.auth.SessionLocal", sessionmaker(autoflush=False, bind=auth_engine)), patch(
        "app.auth.verify_firebase_token", new=AsyncMock(return_value=claims)
    ):
        with api.websocket_connect("/ws/feed?token=valid-token") as ws:
            assert ws.receive_json()["type"] == "feed"
            assert auth_engine.pool.checkedout() == 0

    auth_engine.dispose()
