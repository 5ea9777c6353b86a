"""Shared pytest fixtures for the stats sync tests."""
import os
from datetime import datetime
from typing import AsyncGenerator, Generator
from unittest.mock import AsyncMock, Mock

# Settings are read at import time; point them at a throwaway database
os.environ.setdefault("ENVIRONMENT", "test")
os.environ.setdefault("DATABASE_URL", "sqlite:///:memory:")
os.environ.setdefault("SCHEDULER_ENABLED", "false")
os.environ.setdefault("RATE_LIMIT_ENABLED", "false")
os.environ.setdefault("LOG_JSON", "false")

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker, Session
from sqlalchemy.pool import StaticPool
from httpx import AsyncClient, ASGITransport

from app.core.config import settings
from app.models import Athlete, Base, SPORT_BASKETBALL, SPORT_FOOTBALL, UserRole
from app.services.core.circuit_breaker import ALL_BREAKERS, reset_breaker

WEBHOOK_SECRET = "test-webhook-secret-value"


@pytest.fixture(scope="function")
def db_session() -> Generator[Session, None, None]:
    """Create fresh test database session with isolated in-memory database."""
    # StaticPool keeps one connection so every session sees the same tables
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)

    TestSessionLocal = sessionmaker(bind=engine, autoflush=False)
    session = TestSessionLocal()

    yield session

    session.close()
    engine.dispose()


@pytest.fixture(autouse=True)
def webhook_secret(monkeypatch) -> str:
    """Every test runs with a known webhook secret."""
    monkeypatch.setattr(settings, "STATS_WEBHOOK_SECRET", WEBHOOK_SECRET)
    return WEBHOOK_SECRET


@pytest.fixture(autouse=True)
def closed_breakers() -> Generator[None, None, None]:
    """Breakers are module-level; failures in one test must not open them for the next."""
    yield
    for breaker in ALL_BREAKERS:
        reset_breaker(breaker)


@pytest.fixture
def webhook_headers() -> dict:
    return {"x-webhook-secret": WEBHOOK_SECRET}


@pytest.fixture(scope="function")
async def async_client(db_session: Session) -> AsyncGenerator[AsyncClient, None]:
    """Create async HTTP client for testing FastAPI endpoints."""
    from app.main import app
    from app.core.database import get_db

    # Override database dependency to use test session
    def override_get_db():
        yield db_session

    app.dependency_overrides[get_db] = override_get_db

    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test"
    ) as client:
        yield client

    app.dependency_overrides.clear()


# =============================================================================
# Athletes
# =============================================================================

def create_athlete(db: Session, **kwargs) -> Athlete:
    """Insert an athlete with sensible defaults."""
    values = {
        "name": "Test Athlete",
        "slug": "test-athlete",
        "sport": SPORT_FOOTBALL,
        "created_at": datetime.utcnow(),
        "updated_at": datetime.utcnow(),
    }
    values.update(kwargs)
    athlete = Athlete(**values)
    db.add(athlete)
    db.commit()
    return athlete


@pytest.fixture
def arda(db_session: Session) -> Athlete:
    return create_athlete(
        db_session,
        name="Arda Güler",
        slug="arda-guler",
        sport=SPORT_FOOTBALL,
        team="Real Madrid",
        league="La Liga",
    )


@pytest.fixture
def kenan(db_session: Session) -> Athlete:
    return create_athlete(
        db_session,
        name="Kenan Yıldız",
        slug="kenan-yildiz",
        sport=SPORT_FOOTBALL,
        team="Juventus",
        league="Serie A",
    )


@pytest.fixture
def sengun(db_session: Session) -> Athlete:
    return create_athlete(
        db_session,
        name="Alperen Şengün",
        slug="alperen-sengun",
        sport=SPORT_BASKETBALL,
        team="Houston Rockets",
        league="NBA",
    )


@pytest.fixture
def admin_user_id(db_session: Session) -> str:
    user_id = "11111111-2222-3333-4444-555555555555"
    db_session.add(UserRole(user_id=user_id, role="admin"))
    db_session.commit()
    return user_id


# =============================================================================
# Fake adapters
# =============================================================================

def _fake_adapter(**methods) -> Mock:
    adapter = Mock()
    adapter.require_configured = Mock()
    adapter.polite_delay = AsyncMock()
    adapter.close = AsyncMock()
    for name, value in methods.items():
        setattr(adapter, name, AsyncMock(return_value=value))
    return adapter


@pytest.fixture
def fake_adapter():
    """
    Factory for adapter doubles: require_configured passes, delays are
    instant, and each keyword becomes an AsyncMock with that return value.
    """
    return _fake_adapter
