import os

os.environ.setdefault("DATABASE_URL", "sqlite+pysqlite:///:memory:")

import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402
from sqlalchemy import create_engine  # noqa: E402
from sqlalchemy.orm import sessionmaker  # noqa: E402
from sqlalchemy.pool import StaticPool  # noqa: E402

from portal.api.deps import get_db  # noqa: E402
from portal.db.base import Base  # noqa: E402
from portal.main import app  # noqa: E402
from portal.services import realtime  # noqa: E402


@pytest.fixture()
def session_factory():
    engine = create_engine(
        "sqlite+pysqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    yield sessionmaker(autocommit=False, autoflush=False, bind=engine)
    engine.dispose()


@pytest.fixture()
def db(session_factory):
    session = session_factory()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture()
def client(session_factory):
    def override_get_db():
        db = session_factory()
        try:
            yield db
        finally:
            db.close()

    app.dependency_overrides[get_db] = override_get_db

    with TestClient(app) as test_client:
        yield test_client

    app.dependency_overrides.clear()


@pytest.fixture()
def emitted_events(monkeypatch):
    """Collects broadcast topics instead of sending them to the hub."""
    events: list[tuple[str, dict]] = []
    monkeypatch.setattr(realtime, "emit_event", lambda topic, payload: events.append((topic, payload)))
    return events


@pytest.fixture()
def pushed_notifications(monkeypatch):
    """Collects per-user pushes as (user_id, event) pairs."""
    pushes: list[tuple[str, str]] = []
    monkeypatch.setattr(realtime, "push_to_user", lambda user_id, payload: pushes.append((user_id, payload["event"])))
    return pushes
