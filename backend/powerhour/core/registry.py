"""Active Power Hour sessions, one per channel."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable
from datetime import datetime
from typing import TypeVar

from powerhour.core.config import EngineConfig
from powerhour.core.errors import AlreadyActiveError, NoActiveSessionError
from powerhour.core.scoring import leaderboard
from shared.models.session import (
    ActivityEvent,
    ActivityKind,
    RepStats,
    Session,
    SessionSnapshot,
)

LOGGER = logging.getLogger("SessionRegistry")

T = TypeVar("T")

# Runs under the session lock right after an event was recorded
OnApplied = Callable[[Session, str, RepStats, ActivityEvent], T]


class SessionRegistry:
    """Owns the active sessions and is the only place that mutates them.

    The registry lock only guards the channel map. Session state is guarded
    by each session's own lock, and no two session locks are ever held at
    the same time.
    """

    def __init__(self, config: EngineConfig) -> None:
        self.config = config
        self._sessions: dict[str, Session] = {}
        self._lock = asyncio.Lock()

    async def start(self, channel_id: str, duration_minutes: int, now: datetime) -> Session:
        async with self._lock:
            if channel_id in self._sessions:
                raise AlreadyActiveError(channel_id)
            session = Session(
                channel_id=channel_id,
                started_at=now,
                duration_minutes=duration_minutes,
                team_goal_threshold=self.config.team_goal_threshold,
            )
            self._sessions[channel_id] = session

        LOGGER.info(f"[{channel_id}] Power Hour started ({duration_minutes} min)")
        return session

    async def stop(
        self,
        channel_id: str,
        now: datetime,
        reason: str = "manual",
        expected: Session | None = None,
    ) -> SessionSnapshot:
        """Remove the session, cancel its tasks and return the final snapshot.

        With *expected*, only that exact session is stopped; a newer session
        in the same channel is left alone.
        """
        async with self._lock:
            session = self._sessions.get(channel_id)
            if session is None or (expected is not None and session is not expected):
                raise NoActiveSessionError(channel_id)
            del self._sessions[channel_id]

        async with session.lock:
            session.active = False
            for task in session.tasks:
                task.cancel()
            snapshot = SessionSnapshot(
                channel_id=channel_id,
                started_at=session.started_at,
                ended_at=now,
                duration_minutes=session.duration_minutes,
                rep_stats={name: stats.copy() for name, stats in session.rep_stats.items()},
                leaderboard=leaderboard(session.rep_stats),
                team_demos=session.team_demos,
                team_goal_threshold=session.team_goal_threshold,
                reason=reason,
            )

        LOGGER.info(f"[{channel_id}] Power Hour stopped ({reason})")
        return snapshot

    def get(self, channel_id: str) -> Session | None:
        return self._sessions.get(channel_id)

    def is_current(self, session: Session) -> bool:
        """True while *session* is still the live one for its channel."""
        return session.active and self._sessions.get(session.channel_id) is session

    def active_sessions(self) -> list[Session]:
        return list(self._sessions.values())

    def __len__(self) -> int:
        return len(self._sessions)

    async def apply_event(
        self, event: ActivityEvent, on_applied: OnApplied[T]
    ) -> list[tuple[Session, T]]:
        """Record *event* in every active session whose roster takes the actor."""
        if not self.config.accepts(event.actor):
            LOGGER.debug(f"{event.actor} not on roster, event skipped")
            return []

        results: list[tuple[Session, T]] = []
        for session in self.active_sessions():
            async with session.lock:
                if not self.is_current(session):
                    continue
                name = session.resolve_name(event.actor)
                stats = session.stats_for(name)
                stats.record(event.kind, event.timestamp)
                if event.kind is ActivityKind.DEMO:
                    session.team_demos += 1
                results.append((session, on_applied(session, name, stats, event)))
        return results
