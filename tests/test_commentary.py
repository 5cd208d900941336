"""Tests for board commentary, hot streaks and the team goal."""

from __future__ import annotations

from datetime import timedelta

from powerhour.core.commentary import (
    FIRST_SCORE,
    HOT_STREAK,
    LEAD_CHANGE,
    TEAM_GOAL,
    board_commentary,
    check_hot_streak,
    check_team_goal,
)
from powerhour.core.config import EngineConfig
from shared.models.session import ActivityKind, LeaderboardEntry, RepStats, Session

from .conftest import START


def _entry(name: str, score: int) -> LeaderboardEntry:
    return LeaderboardEntry(name=name, score=score)


class TestBoardCommentary:
    def test_first_score(self):
        notices = board_commentary([_entry("Alice", 1)], [])
        assert [n.kind for n in notices] == [FIRST_SCORE]
        assert "*Alice*" in notices[0].text

    def test_lead_change(self):
        notices = board_commentary(
            [_entry("Bob", 5), _entry("Alice", 1)], [_entry("Alice", 1)]
        )
        assert [n.kind for n in notices] == [LEAD_CHANGE]
        assert notices[0].text == "🏆 *Bob* has just taken the lead!"

    def test_same_leader_is_quiet(self):
        assert board_commentary([_entry("Alice", 3)], [_entry("Alice", 1)]) == []

    def test_empty_board_is_quiet(self):
        assert board_commentary([], []) == []

    def test_zero_point_reps_do_not_count(self):
        assert board_commentary([_entry("Dialer", 0)], []) == []
        notices = board_commentary([_entry("Alice", 1)], [_entry("Dialer", 0)])
        assert [n.kind for n in notices] == [FIRST_SCORE]


class TestHotStreak:
    def _stats(self, kind: ActivityKind, minutes_ago: list[int]) -> RepStats:
        stats = RepStats()
        for offset in sorted(minutes_ago, reverse=True):
            stats.record(kind, START - timedelta(minutes=offset))
        return stats

    def test_two_demos_inside_window(self):
        stats = self._stats(ActivityKind.DEMO, [10, 0])
        notice = check_hot_streak("Alice", stats, ActivityKind.DEMO, START, EngineConfig())
        assert notice is not None
        assert notice.kind == HOT_STREAK
        assert notice.gif_term == "on fire"
        assert "2 demos" in notice.text

    def test_matched_activity_is_purged(self):
        stats = self._stats(ActivityKind.DEMO, [10, 0])
        config = EngineConfig()
        assert check_hot_streak("Alice", stats, ActivityKind.DEMO, START, config)
        assert check_hot_streak("Alice", stats, ActivityKind.DEMO, START, config) is None
        assert stats.demos == 2

    def test_demo_outside_window_does_not_count(self):
        stats = self._stats(ActivityKind.DEMO, [25, 0])
        assert check_hot_streak("Alice", stats, ActivityKind.DEMO, START, EngineConfig()) is None

    def test_conversation_streak(self):
        stats = self._stats(ActivityKind.CONVERSATION, [25, 20, 10, 5, 0])
        notice = check_hot_streak("Bob", stats, ActivityKind.CONVERSATION, START, EngineConfig())
        assert notice is not None
        assert "5 conversations" in notice.text

    def test_connections_never_streak(self):
        stats = self._stats(ActivityKind.CONNECTION, [3, 2, 1, 0])
        assert check_hot_streak("Bob", stats, ActivityKind.CONNECTION, START, EngineConfig()) is None

    def test_dial_burst_does_not_push_out_demos(self):
        stats = RepStats()
        stats.record(ActivityKind.DEMO, START - timedelta(minutes=10))
        for i in range(200):
            stats.record(ActivityKind.DIAL, START - timedelta(minutes=9, seconds=-i))
            stats.record(ActivityKind.CONNECTION, START - timedelta(minutes=9, seconds=-i))
        stats.record(ActivityKind.DEMO, START)
        assert check_hot_streak("Alice", stats, ActivityKind.DEMO, START, EngineConfig())

    def test_other_kinds_are_kept_after_purge(self):
        stats = self._stats(ActivityKind.DEMO, [10, 0])
        stats.record(ActivityKind.CONVERSATION, START)
        check_hot_streak("Alice", stats, ActivityKind.DEMO, START, EngineConfig())
        assert [kind for kind, _ in stats.recent] == [ActivityKind.CONVERSATION]


class TestTeamGoal:
    def _session(self, demos: int) -> Session:
        return Session(channel_id="C1", started_at=START, duration_minutes=60, team_demos=demos)

    def test_fires_once_at_threshold(self):
        config = EngineConfig(team_goal_threshold=2, team_goal_reward="Lunch")
        session = self._session(2)
        notice = check_team_goal(session, config)
        assert notice is not None
        assert notice.kind == TEAM_GOAL
        assert "*Lunch*" in notice.text
        assert session.team_goal_announced

        session.team_demos = 3
        assert check_team_goal(session, config) is None

    def test_below_threshold(self):
        config = EngineConfig(team_goal_threshold=2, team_goal_reward="Lunch")
        assert check_team_goal(self._session(1), config) is None

    def test_no_reward_disables_goal(self):
        assert check_team_goal(self._session(50), EngineConfig(team_goal_threshold=2)) is None
