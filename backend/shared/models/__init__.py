"""Shared data models for the Power Hour backend."""

from .digest import (
    CallMetrics,
    DailyDigest,
    DigestComparison,
    DigestRepStats,
    LongestCall,
    MostActiveHour,
)
from .session import (
    ActivityEvent,
    ActivityKind,
    LeaderboardEntry,
    Notice,
    RepStats,
    Session,
    SessionSnapshot,
)

__all__ = [
    "ActivityEvent",
    "ActivityKind",
    "CallMetrics",
    "DailyDigest",
    "DigestComparison",
    "DigestRepStats",
    "LeaderboardEntry",
    "LongestCall",
    "MostActiveHour",
    "Notice",
    "RepStats",
    "Session",
    "SessionSnapshot",
]
