import os
import tempfile
from datetime import timedelta

# Point the app at a throwaway SQLite file before any sportsmeet import reads settings
_DB_DIR = tempfile.mkdtemp(prefix="sportsmeet-tests-")
os.environ["DATABASE_URL"] = f"sqlite:///{os.path.join(_DB_DIR, 'test.sqlite')}"
os.environ["JWT_SECRET"] = "sportsmeet-test-secret-0123456789abcdef"
os.environ["NEWS_API_KEY"] = ""

import fakeredis
import pytest
from fastapi.testclient import TestClient
from sqlalchemy.orm import Session

from sportsmeet.core.security import create_access_token
from sportsmeet.database.db import Base, SessionLocal, engine, init_db
from sportsmeet.main import app
from sportsmeet.models.events import Category, Event, utcnow
from sportsmeet.models.users import Role, User


@pytest.fixture(autouse=True)
def setup_database():
    """Fresh tables for every test."""
    init_db()
    yield
    Base.metadata.drop_all(bind=engine)


@pytest.fixture
def db_session():
    db: Session = SessionLocal()
    try:
        yield db
    finally:
        db.close()


@pytest.fixture
def fake_redis():
    return fakeredis.FakeRedis(decode_responses=True)


@pytest.fixture(autouse=True)
def redis_client(fake_redis, monkeypatch: pytest.MonkeyPatch):
    """Every per-event lock goes through fakeredis."""
    monkeypatch.setattr("sportsmeet.services.locks.get_redis_client", lambda: fake_redis)
    return fake_redis


@pytest.fixture
def client():
    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture
def notifications():
    return app.state.notifications


def make_user(db: Session, name: str, role: Role = Role.PARTICIPANT) -> User:
    user = User(name=name, email=f"{name.lower().replace(' ', '.')}@example.com", role=role.value)
    db.add(user)
    db.commit()
    db.refresh(user)
    return user


def make_event(db: Session, host: User, **fields) -> Event:
    values = {
        "title": "Sunday Cricket",
        "description": "Friendly tape-ball match",
        "date": utcnow() + timedelta(days=7),
        "longitude": 77.5946,
        "latitude": 12.9716,
        "category": Category.CRICKET.value,
        "skill_level": "Beginner",
        "entry_fee": 100,
    }
    values.update(fields)
    event = Event(host_id=host.id, **values)
    db.add(event)
    db.commit()
    db.refresh(event)
    return event


@pytest.fixture
def host(db_session: Session) -> User:
    return make_user(db_session, "Hana Host", Role.HOST)


@pytest.fixture
def other_host(db_session: Session) -> User:
    return make_user(db_session, "Omar Organizer", Role.HOST)


@pytest.fixture
def player(db_session: Session) -> User:
    return make_user(db_session, "Uma User")


@pytest.fixture
def event(db_session: Session, host: User) -> Event:
    return make_event(db_session, host)


@pytest.fixture
def auth_headers():
    def _headers(user: User) -> dict[str, str]:
        return {"Authorization": f"Bearer {create_access_token(user.id)}"}

    return _headers


@pytest.fixture
def user_factory(db_session: Session):
    def _make(name: str, role: Role = Role.PARTICIPANT) -> User:
        return make_user(db_session, name, role)

    return _make


@pytest.fixture
def event_factory(db_session: Session):
    def _make(host: User, **fields) -> Event:
        return make_event(db_session, host, **fields)

    return _make
