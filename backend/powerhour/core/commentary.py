"""Dynamic commentary derived from leaderboard and activity changes.

Each check announces a condition once: the board diff only looks at the
leader, streaks purge the activity they matched, and the team goal sets a
flag on the session.
"""

from __future__ import annotations

import logging
from collections import deque
from datetime import datetime, timedelta

from powerhour.core.config import EngineConfig
from shared.models.session import (
    ActivityKind,
    LeaderboardEntry,
    Notice,
    RepStats,
    Session,
)

LOGGER = logging.getLogger("Commentary")

FIRST_SCORE = "first_score"
LEAD_CHANGE = "lead_change"
HOT_STREAK = "hot_streak"
TEAM_GOAL = "team_goal"


def board_commentary(
    current: list[LeaderboardEntry], previous: list[LeaderboardEntry]
) -> list[Notice]:
    """First score of the game, or a new name at #1.

    Reps with dials but no points yet are not on the board for commentary.
    """
    current = [e for e in current if e.score > 0]
    previous = [e for e in previous if e.score > 0]
    if not current:
        return []

    if not previous:
        return [Notice(FIRST_SCORE, f"🚀 *{current[0].name}* is the first on the board!")]

    if current[0].name != previous[0].name:
        return [Notice(LEAD_CHANGE, f"🏆 *{current[0].name}* has just taken the lead!")]
    return []


def _streak_rule(kind: ActivityKind, config: EngineConfig) -> tuple[int, int] | None:
    if kind is ActivityKind.DEMO:
        return config.demo_streak_count, config.demo_streak_window_minutes
    if kind is ActivityKind.CONVERSATION:
        return config.conversation_streak_count, config.conversation_streak_window_minutes
    return None


def check_hot_streak(
    actor: str,
    stats: RepStats,
    kind: ActivityKind,
    now: datetime,
    config: EngineConfig,
) -> Notice | None:
    """Fire when the rep has enough of *kind* inside the trailing window.

    Matched entries are removed so the same activity never fires twice.
    """
    rule = _streak_rule(kind, config)
    if rule is None:
        return None
    count, window_minutes = rule
    if count <= 0:
        return None

    cutoff = now - timedelta(minutes=window_minutes)
    matched = [(k, at) for k, at in stats.recent if k is kind and at >= cutoff]
    if len(matched) < count:
        return None

    keep = [entry for entry in stats.recent if not (entry[0] is kind and entry[1] >= cutoff)]
    stats.recent = deque(keep, maxlen=stats.recent.maxlen)

    if kind is ActivityKind.DEMO:
        text = (
            f"🔥🔥 *{actor}* is ON FIRE! {len(matched)} demos booked "
            f"in the last {window_minutes} minutes!"
        )
    else:
        text = (
            f"📞🔥 *{actor}* is on a hot streak! {len(matched)} conversations "
            f"in the last {window_minutes} minutes!"
        )
    LOGGER.info(f"Hot streak: {actor} ({kind.value} x{len(matched)})")
    return Notice(HOT_STREAK, text, gif_term="on fire")


def check_team_goal(session: Session, config: EngineConfig) -> Notice | None:
    """One-shot announcement when the team demo count reaches the goal."""
    if session.team_goal_announced:
        return None
    if not config.team_goal_reward or config.team_goal_threshold <= 0:
        return None
    if session.team_demos < config.team_goal_threshold:
        return None

    session.team_goal_announced = True
    LOGGER.info(f"[{session.channel_id}] Team goal reached: {session.team_demos} demos")
    return Notice(
        TEAM_GOAL,
        f"🎉 *TEAM GOAL ACHIEVED!* {session.team_demos} demos booked! "
        f"The team has earned: *{config.team_goal_reward}* 🏆",
        gif_term="team celebration",
    )
