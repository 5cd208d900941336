"""Tests for the finished-session results sinks."""

from __future__ import annotations

import json
from datetime import timedelta

from powerhour.app import build_results_sink
from powerhour.core.config import PowerHourSettings
from powerhour.core.scoring import leaderboard
from powerhour.services.results_log import GoogleSheetsResultsLog, JsonlResultsLog, sheet_row
from shared.models.session import ActivityKind, RepStats, SessionSnapshot

from .conftest import START


class FakeWorksheet:
    def __init__(self, fail: bool = False):
        self.rows: list[tuple[list, str]] = []
        self.fail = fail

    def append_row(self, values, value_input_option="RAW"):
        if self.fail:
            raise RuntimeError("quota exceeded")
        self.rows.append((values, value_input_option))


def _snapshot(team_demos: int = 2) -> SessionSnapshot:
    alice, bob = RepStats(), RepStats()
    for kind in (ActivityKind.CONNECTION, ActivityKind.CONVERSATION, ActivityKind.DEMO):
        alice.record(kind, START)
    bob.record(ActivityKind.DEMO, START)
    reps = {"Alice": alice, "Bob": bob}
    return SessionSnapshot(
        channel_id="C1",
        started_at=START,
        ended_at=START + timedelta(minutes=60),
        duration_minutes=60,
        rep_stats=reps,
        leaderboard=leaderboard(reps),
        team_demos=team_demos,
        team_goal_threshold=2,
        reason="auto",
    )


class TestSheetRow:
    def test_columns(self):
        assert sheet_row(_snapshot()) == ["Oct 19, 2026", 60, 1, 1, 2, "Alice", 8, "Yes"]

    def test_goal_missed(self):
        assert sheet_row(_snapshot(team_demos=1))[-1] == "No"


class TestGoogleSheetsResultsLog:
    async def test_appends_one_row(self):
        worksheet = FakeWorksheet()
        await GoogleSheetsResultsLog("sheet-1", worksheet=worksheet).log_session(_snapshot())
        assert worksheet.rows == [(sheet_row(_snapshot()), "USER_ENTERED")]

    async def test_failure_is_logged_not_raised(self):
        worksheet = FakeWorksheet(fail=True)
        await GoogleSheetsResultsLog("sheet-1", worksheet=worksheet).log_session(_snapshot())
        assert worksheet.rows == []


class TestJsonlResultsLog:
    async def test_appends_records(self, tmp_path):
        path = tmp_path / "nested" / "results.jsonl"
        log = JsonlResultsLog(path)
        await log.log_session(_snapshot())
        await log.log_session(_snapshot(team_demos=0))

        records = [json.loads(line) for line in path.read_text(encoding="utf-8").splitlines()]
        assert len(records) == 2
        assert records[0]["winner"] == "Alice"
        assert records[0]["reason"] == "auto"
        assert records[0]["reps"]["Bob"]["demos"] == 1
        assert records[1]["team_goal_met"] is False


class TestBuildResultsSink:
    def test_sheet_when_configured(self):
        settings = PowerHourSettings(
            _env_file=None, google_sheet_id="sheet-1", google_credentials='{"type": "service_account"}'
        )
        sink = build_results_sink(settings)
        assert isinstance(sink, GoogleSheetsResultsLog)
        assert sink.credentials == {"type": "service_account"}

    def test_local_file_otherwise(self, tmp_path):
        settings = PowerHourSettings(_env_file=None, results_path=tmp_path / "r.jsonl")
        sink = build_results_sink(settings)
        assert isinstance(sink, JsonlResultsLog)
        assert sink.path == tmp_path / "r.jsonl"
