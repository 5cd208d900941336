"""Shared fixtures and in-memory collaborators for the Power Hour tests."""

from __future__ import annotations

import asyncio
from datetime import datetime, timedelta, timezone
from typing import Any

import pytest

from powerhour.components.engine import PowerHourEngine
from powerhour.core.config import DEMO_SCHEDULED_STAGE, EngineConfig
from shared.models.session import ActivityEvent, ActivityKind, SessionSnapshot

START = datetime(2026, 10, 19, 15, 0, tzinfo=timezone.utc)


class FakeClock:
    def __init__(self, now: datetime = START) -> None:
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, minutes: float = 0, seconds: float = 0) -> datetime:
        self.now += timedelta(minutes=minutes, seconds=seconds)
        return self.now


class FakeMessenger:
    def __init__(self) -> None:
        self.posts: list[tuple[str, str, str | None]] = []
        self.updates: list[tuple[str, str, str]] = []
        self.fail_posts = False
        self.delay = 0.0
        self._counter = 0

    async def post_message(self, channel_id: str, text: str, media_url: str | None = None) -> str | None:
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.fail_posts:
            raise ConnectionError("slack down")
        self._counter += 1
        self.posts.append((channel_id, text, media_url))
        return f"ts-{self._counter}"

    async def update_message(self, channel_id: str, message_ts: str, text: str) -> bool:
        if self.delay:
            await asyncio.sleep(self.delay)
        self.updates.append((channel_id, message_ts, text))
        return True

    def texts(self, channel_id: str | None = None) -> list[str]:
        return [text for channel, text, _ in self.posts if channel_id in (None, channel)]

    def count(self, fragment: str, channel_id: str | None = None) -> int:
        return sum(1 for text in self.texts(channel_id) if fragment in text)


class FakeGifs:
    def __init__(self, url: str | None = "https://gifs.example/party.gif", fail: bool = False) -> None:
        self.url = url
        self.fail = fail
        self.terms: list[str] = []

    async def random_gif(self, search_term: str) -> str | None:
        self.terms.append(search_term)
        if self.fail:
            raise TimeoutError("giphy timeout")
        return self.url


class FakeOwners:
    def __init__(self, owners: dict[str, str] | None = None, fail: bool = False) -> None:
        self.owners = owners or {}
        self.fail = fail

    async def get_owners(self) -> dict[str, str]:
        if self.fail:
            raise ConnectionError("hubspot down")
        return self.owners


class FakeDeals:
    def __init__(self, deals: dict[str, dict[str, Any]] | None = None) -> None:
        self.deals = deals or {}
        self.requested: list[str] = []

    async def get_deal(self, deal_id: str) -> dict[str, Any] | None:
        self.requested.append(deal_id)
        return self.deals.get(deal_id)


class FakeResults:
    def __init__(self) -> None:
        self.snapshots: list[SessionSnapshot] = []

    async def log_session(self, snapshot: SessionSnapshot) -> None:
        self.snapshots.append(snapshot)


def make_deal(deal_id: str, owner_id: str, name: str = "Acme Corp", stage: str = DEMO_SCHEDULED_STAGE) -> dict:
    return {
        "id": deal_id,
        "properties": {"dealname": name, "hubspot_owner_id": owner_id, "dealstage": stage},
    }


def event(actor: str, kind: ActivityKind, at: datetime, **kwargs: Any) -> ActivityEvent:
    return ActivityEvent(actor=actor, kind=kind, timestamp=at, **kwargs)


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def config() -> EngineConfig:
    return EngineConfig(announce_dials=False)


@pytest.fixture
def messenger() -> FakeMessenger:
    return FakeMessenger()


@pytest.fixture
def results() -> FakeResults:
    return FakeResults()


@pytest.fixture
def gifs() -> FakeGifs:
    return FakeGifs()


@pytest.fixture
async def engine(config, messenger, results, gifs, clock):
    engine = PowerHourEngine(config, messenger, gifs=gifs, results=results, clock=clock)
    yield engine
    await engine.close()
