"""Pytest configuration and fixtures."""

import pytest
from fakes import parse_frames
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

import coachflow.models  # noqa: F401
from coachflow.database import Base


@pytest.fixture(scope="function")
def engine():
    """In-memory SQLite shared by every session and thread of one test."""
    engine = create_engine(
        "sqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(engine)

    yield engine

    engine.dispose()


@pytest.fixture(scope="function")
def session_factory(engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture(scope="function")
def test_db(session_factory):
    """Create a test database session for each test."""
    db = session_factory()

    yield db

    db.close()


@pytest.fixture
def read_frames():
    """Drain a closed FrameChannel into decoded frames."""
    return lambda channel: parse_frames(channel.iter_bytes())
