from __future__ import annotations

import os
from datetime import date
from typing import AsyncIterator

import pytest
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

# Ensure deterministic environment for tests
os.environ.setdefault("DATABASE_URL_OVERRIDE", "sqlite+aiosqlite:///:memory:")
os.environ.setdefault("SECRETS_KEY", "Xh4O8zJS1-WxxFjNV8iP-9e1X2-b4PqQjLTrBqkHqBw=")
os.environ.setdefault("ENVIRONMENT", "test")
os.environ.setdefault("COORDINATOR_EMAILS", "coordinator@example.com")
os.environ.setdefault("PUBLIC_BASE_URL", "https://roundtable.test")

from core import config as config_module

config_module.get_settings.cache_clear()

from core import db as db_module
from core.models import Base, Trainer
from orchestrator.engine import RoundtableEngine, build_engine
from orchestrator.notifications import RecordingNotifier
from roundtable.models import ScheduleOptions
from tests.factories import topic_drafts

settings = config_module.get_settings()


@pytest.fixture
async def database(monkeypatch) -> AsyncIterator[async_sessionmaker]:
    test_engine = create_async_engine(
        settings.database_url,
        future=True,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    async_session = async_sessionmaker(test_engine, expire_on_commit=False, class_=AsyncSession)

    monkeypatch.setattr(db_module, "async_engine", test_engine)
    monkeypatch.setattr(db_module, "AsyncSessionMaker", async_session)

    async with test_engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield async_session

    await test_engine.dispose()


@pytest.fixture
async def db_session(database) -> AsyncIterator[AsyncSession]:
    async with database() as session:
        yield session


@pytest.fixture
def notifier() -> RecordingNotifier:
    return RecordingNotifier()


@pytest.fixture
def engine(db_session, notifier) -> RoundtableEngine:
    return build_engine(db_session, settings, notifier)


@pytest.fixture
def make_roundtable(engine):
    async def _make(participants: int = 0, max_participants: int = 20, **kwargs):
        client = await engine.lifecycle.create_client("Acme", company="Acme Ltd")
        roundtable = await engine.lifecycle.create_roundtable(
            client.id,
            kwargs.pop("name", "Leadership cohort"),
            topic_drafts(),
            max_participants,
            **kwargs,
        )
        for index in range(participants):
            await engine.lifecycle.add_participant(roundtable.id, f"Person {index}", f"person{index}@example.com")
        return roundtable

    return _make


@pytest.fixture
def make_scheduled_roundtable(engine, make_roundtable):
    """A roundtable with finalized topics and a weekly calendar from Monday 2025-03-03."""

    async def _make(start: date = date(2025, 3, 3), **kwargs):
        roundtable = await make_roundtable(participants=1, **kwargs)
        await engine.lifecycle.open_voting(roundtable.id)
        topic_ids = [topic.id for topic in roundtable.topics]
        await engine.voting.submit_votes(roundtable.id, "person0@example.com", topic_ids[:8])
        await engine.lifecycle.finalize_voting(roundtable.id)
        await engine.lifecycle.schedule_sessions(roundtable.id, ScheduleOptions(start_date=start))
        return roundtable

    return _make


@pytest.fixture
def make_trainer(db_session):
    async def _make(name: str = "Trainer", email: str | None = None, is_active: bool = True) -> Trainer:
        trainer = Trainer(
            name=name,
            email=email or f"{name.lower().replace(' ', '.')}@example.com",
            is_active=is_active,
        )
        db_session.add(trainer)
        await db_session.flush()
        return trainer

    return _make
