"""Shared test fixtures and configuration."""
import asyncio
import os
from typing import List, Optional, Sequence
from unittest.mock import AsyncMock, Mock

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.ext.asyncio import create_async_engine, AsyncSession, async_sessionmaker
from sqlalchemy.pool import StaticPool

# Set test environment variables before importing app
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")
os.environ["OPENAI_API_KEY"] = ""

from app.main import app
from app.db.database import get_db
from app.db.models import Base
from app.core.dependencies import get_content_generator, get_timer_factory
from app.services.call_session.manager import CallSessionManager
from app.services.call_session.media import PermissionReportedMediaDevices
from app.services.call_session.models import Participant
from app.services.call_session.timer import CallTimer
from app.services.teaching.fetcher import TeachingAidFetcher
from app.services.teaching.generator import ContentGenerator
from app.services.teaching.models import (
    Difficulty,
    GenerationError,
    GenerationOk,
    GenerationResult,
    TeachingPrompt,
)


# Test database URL (in-memory SQLite)
TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"


class ManualCallTimer(CallTimer):
    """Call timer that only moves when a test calls advance()."""

    def _schedule(self) -> None:
        pass


class FakeGenerator(ContentGenerator):
    """Content generator returning canned questions in order."""

    def __init__(
        self,
        questions: Optional[List[str]] = None,
        error: Optional[Exception] = None,
        delay: Optional[float] = None,
    ):
        self.questions = list(questions or [])
        self.error = error
        self.delay = delay
        self.calls = []

    async def generate_prompt(
        self,
        interests: List[str],
        difficulty: Difficulty,
        excluding: Sequence[str] = (),
    ) -> GenerationResult:
        self.calls.append(
            {"interests": list(interests), "difficulty": difficulty, "excluding": list(excluding)}
        )
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.error:
            raise self.error
        if not self.questions:
            return GenerationError(reason="no questions left")
        question = self.questions.pop(0)
        return GenerationOk(
            prompt=TeachingPrompt(
                question=question,
                context="Follow up on the details.",
                difficulty=difficulty,
            )
        )


@pytest.fixture
def initiator():
    return Participant(user_id="user-ana", display_name="Ana", interests=["cooking", "travel"])


@pytest.fixture
def receiver():
    return Participant(user_id="user-ben", display_name="Ben", interests=["football"])


@pytest.fixture
async def test_db_engine():
    """Create test database engine."""
    engine = create_async_engine(
        TEST_DATABASE_URL,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )

    # Create all tables
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    # Drop all tables
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)

    await engine.dispose()


@pytest.fixture
async def test_db(test_db_engine):
    """Create test database session."""
    async_session = async_sessionmaker(
        test_db_engine,
        class_=AsyncSession,
        expire_on_commit=False,
    )

    async with async_session() as session:
        yield session


@pytest.fixture
def make_generator():
    """Build a FakeGenerator with custom behaviour."""
    return FakeGenerator


@pytest.fixture
def fake_generator():
    """Generator with a few distinct questions queued."""
    return FakeGenerator(
        questions=[
            "What is your favourite dish to cook?",
            "Where did you travel last year?",
            "Which market do you like to shop at?",
        ]
    )


@pytest.fixture
def fetcher(fake_generator):
    return TeachingAidFetcher(fake_generator, timeout_seconds=1.0)


@pytest.fixture
def manual_timer_factory():
    """Timer factory that records every timer it builds."""
    timers = []

    def _factory() -> CallTimer:
        timer = ManualCallTimer()
        timers.append(timer)
        return timer

    _factory.timers = timers
    return _factory


@pytest.fixture
def session_manager(test_db, fetcher, manual_timer_factory):
    """Call session manager backed by the test database and a manual clock."""
    return CallSessionManager(
        test_db,
        fetcher,
        PermissionReportedMediaDevices(),
        timer_factory=manual_timer_factory,
    )


@pytest.fixture
def override_get_db():
    """Override get_db with a private in-memory database."""
    engine = create_async_engine(
        TEST_DATABASE_URL,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    session_factory = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)
    tables_ready = False

    async def _override_get_db():
        nonlocal tables_ready
        if not tables_ready:
            async with engine.begin() as conn:
                await conn.run_sync(Base.metadata.create_all)
            tables_ready = True
        async with session_factory() as session:
            yield session

    return _override_get_db


@pytest.fixture
def test_client(override_get_db, fake_generator, manual_timer_factory):
    """Create FastAPI test client with overrides."""
    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_content_generator] = lambda: fake_generator
    app.dependency_overrides[get_timer_factory] = lambda: manual_timer_factory

    with TestClient(app) as client:
        yield client

    # Clear overrides
    app.dependency_overrides.clear()


@pytest.fixture
def mock_openai():
    """Mock OpenAI API client."""
    mock_client = Mock()
    mock_completion = Mock()
    mock_completion.choices = [
        Mock(
            message=Mock(
                content='{"question": "What do you cook on weekends?", '
                '"context": "Ask about family recipes.", "difficulty": "intermediate"}'
            )
        )
    ]
    mock_client.chat.completions.create = AsyncMock(return_value=mock_completion)
    return mock_client


@pytest.fixture(autouse=True)
def clean_call_sessions():
    """Clean up call sessions before and after tests."""
    from app.services.call_session import manager
    manager._sessions.clear()
    yield
    for session in manager._sessions.values():
        session.timer.stop()
    manager._sessions.clear()


# Pytest configuration
def pytest_configure(config):
    """Configure pytest."""
    config.addinivalue_line(
        "markers", "asyncio: mark test as an asyncio test"
    )
