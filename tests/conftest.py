import os

# Configure the app before it is imported
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["DB_LOG_SLOW_QUERIES"] = "false"
os.environ["FIREBASE_PROJECT_ID"] = "clickink-test"
os.environ["OPENAI_API_KEY"] = "test-openai-key"
os.environ["RESEND_API_KEY"] = "test-resend-key"

from datetime import date, timedelta  # noqa: E402
from unittest.mock import patch  # noqa: E402

import pytest  # noqa: E402
from fastapi import Depends  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402
from sqlalchemy.orm import Session  # noqa: E402

from app import rate_limiter  # noqa: E402
from app.auth import get_current_user, get_websocket_user  # noqa: E402
from app.database import Base, SessionLocal, engine, get_db  # noqa: E402
from app.main import app  # noqa: E402
from app.models import User  # noqa: E402


@pytest.fixture(autouse=True)
def database():
    Base.metadata.create_all(bind=engine)
    yield
    Base.metadata.drop_all(bind=engine)


@pytest.fixture(autouse=True)
def no_redis():
    """Rate limiting from process memory only, reset between tests"""
    rate_limiter.memory_cache.clear()
    with patch.object(rate_limiter, "get_redis_client", return_value=None):
        yield
    rate_limiter.memory_cache.clear()


@pytest.fixture
def db(database):
    session = SessionLocal()
    yield session
    session.close()


_counter = {"n": 0}


@pytest.fixture
def make_user(db):
    def _make_user(role="client", full_name=None, **fields):
        _counter["n"] += 1
        n = _counter["n"]
        user = User(
            firebase_uid=f"uid-{n}",
            email=fields.pop("email", f"user{n}@example.com"),
            full_name=full_name or f"User {n}",
            role=role,
            styles=fields.pop("styles", []),
            followed_artists=fields.pop("followed_artists", []),
            **fields,
        )
        db.add(user)
        db.commit()
        db.refresh(user)
        return user

    return _make_user


@pytest.fixture
def client_user(make_user):
    return make_user("client", "Casey Client", email="casey@example.com")


@pytest.fixture
def artist(make_user):
    return make_user("artist", "Ada Artist", studio_name="Black Lotus", city="Berlin", styles=["Blackwork"])


@pytest.fixture
def api():
    client = TestClient(app)
    yield client
    app.dependency_overrides.clear()


@pytest.fixture
def login():
    """Authenticate subsequent requests (HTTP and WebSocket) as the given user"""

    def _login(user):
        user_id = user.id

        def current_user(db: Session = Depends(get_db)):
            return db.get(User, user_id)

        def websocket_user():
            db = SessionLocal()
            try:
                return db.get(User, user_id)
            finally:
                db.close()

        app.dependency_overrides[get_current_user] = current_user
        app.dependency_overrides[get_websocket_user] = websocket_user

    yield _login
    app.dependency_overrides.clear()


@pytest.fixture
def future_day():
    return (date.today() + timedelta(days=7)).isoformat()
