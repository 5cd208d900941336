"""Power Hour session data models."""

from __future__ import annotations

import asyncio
from collections import deque
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from powerhour.core.scheduler import ScheduledTask

# Demos and conversations kept per rep for hot streak detection
RECENT_ACTIVITY_MAXLEN = 50


class ActivityKind(str, Enum):
    DIAL = "dial"
    CONNECTION = "connection"
    CONVERSATION = "conversation"
    DEMO = "demo"


# Dials and connections never streak, so they would only crowd out demos
STREAK_KINDS = frozenset({ActivityKind.DEMO, ActivityKind.CONVERSATION})


@dataclass(frozen=True)
class ActivityEvent:
    """A single normalized activity coming from telephony or CRM."""

    actor: str
    kind: ActivityKind
    timestamp: datetime
    event_id: str | None = None
    duration_minutes: int | None = None
    deal_name: str | None = None


@dataclass
class RepStats:
    """Per-rep counters within one session. Counters only ever go up."""

    connections: int = 0
    conversations: int = 0
    demos: int = 0
    dials: int = 0
    last_activity: datetime | None = None
    recent: deque[tuple[ActivityKind, datetime]] = field(
        default_factory=lambda: deque(maxlen=RECENT_ACTIVITY_MAXLEN)
    )

    def record(self, kind: ActivityKind, at: datetime) -> None:
        if kind is ActivityKind.DIAL:
            self.dials += 1
        elif kind is ActivityKind.CONNECTION:
            self.connections += 1
            # A connection whose dial was never delivered still counts as a dial
            self.dials = max(self.dials, self.connections)
        elif kind is ActivityKind.CONVERSATION:
            self.conversations += 1
        elif kind is ActivityKind.DEMO:
            self.demos += 1

        if kind in STREAK_KINDS:
            self.recent.append((kind, at))
        self.last_activity = at

    @property
    def has_activity(self) -> bool:
        return bool(self.dials or self.connections or self.conversations or self.demos)

    def copy(self) -> RepStats:
        return RepStats(
            connections=self.connections,
            conversations=self.conversations,
            demos=self.demos,
            dials=self.dials,
            last_activity=self.last_activity,
            recent=deque(self.recent, maxlen=RECENT_ACTIVITY_MAXLEN),
        )


@dataclass(frozen=True)
class LeaderboardEntry:
    name: str
    score: int
    connections: int = 0
    conversations: int = 0
    demos: int = 0
    dials: int = 0


@dataclass
class Session:
    """A running Power Hour in one channel."""

    channel_id: str
    started_at: datetime
    duration_minutes: int
    team_goal_threshold: int = 0
    rep_stats: dict[str, RepStats] = field(default_factory=dict)
    previous_leaderboard: list[LeaderboardEntry] = field(default_factory=list)
    team_demos: int = 0
    team_goal_announced: bool = False
    message_ts: str | None = None
    active: bool = True
    tasks: list[ScheduledTask] = field(default_factory=list)
    lock: asyncio.Lock = field(default_factory=asyncio.Lock, repr=False)

    def resolve_name(self, actor: str) -> str:
        """Name already used for this rep, matched case-insensitively."""
        if actor in self.rep_stats:
            return actor
        lowered = actor.lower()
        for name in self.rep_stats:
            if name.lower() == lowered:
                return name
        return actor

    def stats_for(self, actor: str) -> RepStats:
        """Return the rep's stats, creating them on first activity."""
        return self.rep_stats.setdefault(self.resolve_name(actor), RepStats())


@dataclass(frozen=True)
class SessionSnapshot:
    """Immutable summary of a finished session, handed to reporting."""

    channel_id: str
    started_at: datetime
    ended_at: datetime
    duration_minutes: int
    rep_stats: dict[str, RepStats]
    leaderboard: list[LeaderboardEntry]
    team_demos: int
    team_goal_threshold: int
    reason: str = "manual"

    @property
    def winner(self) -> str | None:
        return self.leaderboard[0].name if self.leaderboard else None

    @property
    def winner_score(self) -> int:
        return self.leaderboard[0].score if self.leaderboard else 0

    @property
    def team_goal_met(self) -> bool:
        return self.team_goal_threshold > 0 and self.team_demos >= self.team_goal_threshold

    @property
    def total_connections(self) -> int:
        return sum(s.connections for s in self.rep_stats.values())

    @property
    def total_conversations(self) -> int:
        return sum(s.conversations for s in self.rep_stats.values())

    @property
    def total_demos(self) -> int:
        return sum(s.demos for s in self.rep_stats.values())

    def to_record(self) -> dict[str, Any]:
        return {
            "channel_id": self.channel_id,
            "date": self.ended_at.strftime("%b %d, %Y"),
            "started_at": self.started_at.isoformat(),
            "ended_at": self.ended_at.isoformat(),
            "duration_minutes": self.duration_minutes,
            "connections": self.total_connections,
            "conversations": self.total_conversations,
            "demos": self.total_demos,
            "winner": self.winner or "N/A",
            "winner_score": self.winner_score,
            "team_goal_met": self.team_goal_met,
            "reason": self.reason,
            "reps": {
                name: {
                    "connections": s.connections,
                    "conversations": s.conversations,
                    "demos": s.demos,
                    "dials": s.dials,
                }
                for name, s in self.rep_stats.items()
            },
        }


@dataclass(frozen=True)
class Notice:
    """An outbound narrative message (commentary or alert)."""

    kind: str
    text: str
    gif_term: str | None = None
