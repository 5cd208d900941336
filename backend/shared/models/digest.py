"""Daily digest data models."""

from __future__ import annotations

from dataclasses import dataclass, field


@dataclass
class DigestRepStats:
    """Per-rep totals for one day, scored with the digest point table."""

    name: str
    demos_booked: int = 0
    demos_completed: int = 0
    conversations: int = 0
    connections: int = 0
    score: int = 0


@dataclass
class LongestCall:
    duration_minutes: int
    user: str
    contact: str


@dataclass
class MostActiveHour:
    hour: int
    count: int
    formatted: str


@dataclass
class CallMetrics:
    total_calls: int = 0
    total_minutes: int = 0
    average_duration: int = 0
    longest_call: LongestCall | None = None
    most_active_hour: MostActiveHour | None = None


@dataclass
class DigestComparison:
    """Day-over-same-day-last-week deltas."""

    demos_booked: int
    demos_completed: int
    calls: int


@dataclass
class DailyDigest:
    date_label: str
    demos_booked: int
    demos_completed: int
    calls: int
    time_on_phone: int
    conversion_rate: float
    metrics: CallMetrics
    leaderboard: list[DigestRepStats] = field(default_factory=list)
    comparison: DigestComparison | None = None
