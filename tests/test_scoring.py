"""Tests for leaderboard scoring."""

from __future__ import annotations

from powerhour.core.scoring import conversion_rate, leaderboard, score, score_gap
from shared.models.session import RepStats


def _stats(connections=0, conversations=0, demos=0, dials=0) -> RepStats:
    return RepStats(
        connections=connections, conversations=conversations, demos=demos, dials=max(dials, connections)
    )


class TestScore:
    def test_point_table(self):
        assert score(_stats(connections=3, conversations=2, demos=1)) == 3 + 4 + 5

    def test_dials_are_worth_nothing(self):
        assert score(_stats(dials=7)) == 0


class TestLeaderboard:
    def test_sorted_by_score_descending(self):
        board = leaderboard(
            {
                "Alice": _stats(connections=1),
                "Bob": _stats(demos=1),
                "Cara": _stats(conversations=1),
            }
        )
        assert [(e.name, e.score) for e in board] == [("Bob", 5), ("Cara", 2), ("Alice", 1)]

    def test_equal_scores_ordered_by_name(self):
        reps = {
            "zed": _stats(connections=2),
            "Amy": _stats(conversations=1),
            "bob": _stats(connections=2),
        }
        first = leaderboard(reps)
        second = leaderboard(dict(reversed(list(reps.items()))))
        assert [e.name for e in first] == ["Amy", "bob", "zed"]
        assert first == second

    def test_reps_without_activity_are_left_out(self):
        board = leaderboard({"Idle": RepStats(), "Dialer": _stats(dials=1)})
        assert [e.name for e in board] == ["Dialer"]
        assert board[0].score == 0

    def test_entries_carry_raw_counters(self):
        entry = leaderboard({"Alice": _stats(connections=2, conversations=1, demos=3, dials=5)})[0]
        assert (entry.connections, entry.conversations, entry.demos, entry.dials) == (2, 1, 3, 5)
        assert entry.score == entry.connections + 2 * entry.conversations + 5 * entry.demos

    def test_empty(self):
        assert leaderboard({}) == []


class TestScoreGap:
    def test_gap_between_first_and_second(self):
        board = leaderboard({"A": _stats(demos=2), "B": _stats(demos=1), "C": _stats()})
        assert score_gap(board) == 5

    def test_single_rep_has_no_gap(self):
        assert score_gap(leaderboard({"A": _stats(demos=1)})) is None


class TestConversionRate:
    def test_one_decimal(self):
        assert conversion_rate(1, 3) == 33.3
        assert conversion_rate(2, 8) == 25.0

    def test_no_calls(self):
        assert conversion_rate(4, 0) == 0.0
