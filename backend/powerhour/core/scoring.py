"""Leaderboard scoring. Pure functions, safe to call any number of times."""

from __future__ import annotations

from collections.abc import Mapping

from shared.models.session import LeaderboardEntry, RepStats

CONNECTION_POINTS = 1
CONVERSATION_POINTS = 2
DEMO_POINTS = 5


def score(stats: RepStats) -> int:
    return (
        stats.connections * CONNECTION_POINTS
        + stats.conversations * CONVERSATION_POINTS
        + stats.demos * DEMO_POINTS
    )


def leaderboard(rep_stats: Mapping[str, RepStats]) -> list[LeaderboardEntry]:
    """Entries for every rep with activity, best score first.

    Equal scores are ordered by name so repeated calls give identical output.
    """
    entries = [
        LeaderboardEntry(
            name=name,
            score=score(stats),
            connections=stats.connections,
            conversations=stats.conversations,
            demos=stats.demos,
            dials=stats.dials,
        )
        for name, stats in rep_stats.items()
        if stats.has_activity
    ]
    entries.sort(key=lambda e: (-e.score, e.name.lower(), e.name))
    return entries


def score_gap(board: list[LeaderboardEntry]) -> int | None:
    """Points between 1st and 2nd place, None with fewer than two reps."""
    if len(board) < 2:
        return None
    return board[0].score - board[1].score


def conversion_rate(demos_booked: int, total_calls: int) -> float:
    """Demos per call as a percentage, one decimal."""
    if total_calls <= 0:
        return 0.0
    return round(demos_booked / total_calls * 100, 1)
