import os
from datetime import datetime

import pytest

# Settings are read at import time; configure before any app module loads
os.environ["DATABASE_URL"] = "sqlite:///:memory:"
os.environ["RATE_LIMIT_ENABLED"] = "false"
os.environ["ADMIN_API_KEY"] = "test-admin-key"
os.environ["STREAK_TIMEZONE"] = "UTC"

from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from app.database import Base
import app.models  # noqa: F401
from app.services.streak_engine import StreakEngine
from app.utils.clock import FixedClock


@pytest.fixture
def db_engine():
    engine = create_engine(
        "sqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    yield engine
    Base.metadata.drop_all(bind=engine)
    engine.dispose()


@pytest.fixture
def db_session(db_engine):
    SessionLocal = sessionmaker(autocommit=False, autoflush=False, expire_on_commit=False, bind=db_engine)
    session = SessionLocal()
    yield session
    session.close()


@pytest.fixture
def clock():
    # Tuesday morning; tests move it forward day by day
    return FixedClock(datetime(2026, 3, 10, 9, 0), tz_name="UTC")


@pytest.fixture
def streak_engine(clock):
    return StreakEngine(clock, warning_hours=2, max_retries=3)


@pytest.fixture
def client(db_session, streak_engine):
    from fastapi.testclient import TestClient
    from app.database import get_db
    from app.dependencies import get_streak_engine
    from app.main import app

    def override_get_db():
        yield db_session

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_streak_engine] = lambda: streak_engine
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()
