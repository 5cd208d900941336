"""Tests for the session registry."""

from __future__ import annotations

import asyncio

import pytest

from powerhour.core.config import EngineConfig
from powerhour.core.errors import AlreadyActiveError, NoActiveSessionError
from powerhour.core.registry import SessionRegistry
from powerhour.core.scheduler import ScheduledTask
from shared.models.session import ActivityKind

from .conftest import START, event


def _names(session, name, stats, ev):
    return name


@pytest.fixture
def registry() -> SessionRegistry:
    return SessionRegistry(EngineConfig())


class TestStartStop:
    async def test_start_creates_empty_session(self, registry):
        session = await registry.start("C1", 45, START)
        assert session.duration_minutes == 45
        assert session.rep_stats == {}
        assert registry.get("C1") is session
        assert len(registry) == 1

    async def test_second_start_is_rejected(self, registry):
        await registry.start("C1", 60, START)
        with pytest.raises(AlreadyActiveError) as exc:
            await registry.start("C1", 30, START)
        assert exc.value.channel_id == "C1"
        assert registry.get("C1").duration_minutes == 60

    async def test_channels_are_independent(self, registry):
        await registry.start("C1", 60, START)
        await registry.start("C2", 30, START)
        assert len(registry) == 2

    async def test_stop_without_session(self, registry):
        with pytest.raises(NoActiveSessionError):
            await registry.stop("C1", START)

    async def test_stop_returns_snapshot(self, registry):
        await registry.start("C1", 60, START)
        await registry.apply_event(event("Alice", ActivityKind.DEMO, START), _names)
        snapshot = await registry.stop("C1", START, reason="timer")

        assert registry.get("C1") is None
        assert snapshot.reason == "timer"
        assert snapshot.winner == "Alice"
        assert snapshot.winner_score == 5
        assert snapshot.team_demos == 1

    async def test_stop_cancels_tasks_and_deactivates(self, registry):
        session = await registry.start("C1", 60, START)
        task = ScheduledTask("refresh", "interval", 600)
        session.tasks.append(task)

        await registry.stop("C1", START)

        assert task.cancelled
        assert not session.active
        assert not registry.is_current(session)

    async def test_stop_expected_leaves_newer_session(self, registry):
        old = await registry.start("C1", 60, START)
        await registry.stop("C1", START)
        new = await registry.start("C1", 60, START)

        with pytest.raises(NoActiveSessionError):
            await registry.stop("C1", START, expected=old)
        assert registry.get("C1") is new

    async def test_concurrent_starts_only_one_wins(self, registry):
        results = await asyncio.gather(
            *(registry.start("C1", 60, START) for _ in range(5)), return_exceptions=True
        )
        assert sum(1 for r in results if isinstance(r, AlreadyActiveError)) == 4
        assert len(registry) == 1

    async def test_snapshot_is_detached(self, registry):
        session = await registry.start("C1", 60, START)
        await registry.apply_event(event("Alice", ActivityKind.CONNECTION, START), _names)
        snapshot = await registry.stop("C1", START)
        session.rep_stats["Alice"].connections += 10
        assert snapshot.rep_stats["Alice"].connections == 1


class TestApplyEvent:
    async def test_no_sessions_is_a_noop(self, registry):
        assert await registry.apply_event(event("Alice", ActivityKind.DIAL, START), _names) == []

    async def test_event_goes_to_every_active_session(self, registry):
        await registry.start("C1", 60, START)
        await registry.start("C2", 60, START)

        applied = await registry.apply_event(event("Alice", ActivityKind.CONNECTION, START), _names)

        assert sorted(s.channel_id for s, _ in applied) == ["C1", "C2"]
        for channel in ("C1", "C2"):
            stats = registry.get(channel).rep_stats["Alice"]
            assert (stats.connections, stats.dials) == (1, 1)

    async def test_names_are_merged_case_insensitively(self, registry):
        session = await registry.start("C1", 60, START)
        await registry.apply_event(event("Alice", ActivityKind.DIAL, START), _names)
        applied = await registry.apply_event(event("ALICE", ActivityKind.DIAL, START), _names)

        assert applied[0][1] == "Alice"
        assert list(session.rep_stats) == ["Alice"]
        assert session.rep_stats["Alice"].dials == 2

    async def test_demo_counts_toward_team(self, registry):
        session = await registry.start("C1", 60, START)
        await registry.apply_event(event("Alice", ActivityKind.DEMO, START), _names)
        await registry.apply_event(event("Bob", ActivityKind.DEMO, START), _names)
        assert session.team_demos == 2

    async def test_last_activity_tracks_event_time(self, registry):
        session = await registry.start("C1", 60, START)
        await registry.apply_event(event("Alice", ActivityKind.DIAL, START), _names)
        assert session.rep_stats["Alice"].last_activity == START

    async def test_off_roster_actor_is_skipped(self):
        registry = SessionRegistry(EngineConfig(roster=("Alice",)))
        session = await registry.start("C1", 60, START)
        assert await registry.apply_event(event("Mallory", ActivityKind.DEMO, START), _names) == []
        assert session.rep_stats == {}
        assert session.team_demos == 0

    async def test_stopped_session_gets_nothing(self, registry):
        session = await registry.start("C1", 60, START)
        await registry.stop("C1", START)
        await registry.apply_event(event("Alice", ActivityKind.DIAL, START), _names)
        assert session.rep_stats == {}


class TestConcurrency:
    async def test_gathered_events_are_all_counted(self, registry):
        await registry.start("C1", 60, START)
        await registry.start("C2", 60, START)

        await asyncio.gather(
            *(registry.apply_event(event("Alice", ActivityKind.CONNECTION, START), _names) for _ in range(50)),
            *(registry.apply_event(event("Alice", ActivityKind.DIAL, START), _names) for _ in range(20)),
        )

        for channel in ("C1", "C2"):
            stats = registry.get(channel).rep_stats["Alice"]
            assert stats.connections == 50
            assert stats.dials >= stats.connections

    async def test_stop_during_events_keeps_snapshot_consistent(self, registry):
        session = await registry.start("C1", 60, START)

        async def stop_soon():
            await asyncio.sleep(0)
            return await registry.stop("C1", START)

        results = await asyncio.gather(
            *(registry.apply_event(event("Alice", ActivityKind.DEMO, START), _names) for _ in range(30)),
            stop_soon(),
        )

        snapshot = results[-1]
        applied = sum(len(r) for r in results[:-1])
        assert len(registry) == 0
        assert snapshot.team_demos == applied
        assert session.team_demos == applied
        if applied:
            assert snapshot.rep_stats["Alice"].demos == applied
