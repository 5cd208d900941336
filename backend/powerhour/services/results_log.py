"""Finished-session results: a Google Sheets row, or a local JSON lines file.

The sheet gets one row per session, columns A:H:
    Date | Duration | Connections | Conversations | Demos | Winner | Winner Score | Team Goal Met
"""

import asyncio
import json
import logging
from pathlib import Path
from typing import Any

import gspread

from shared.models.session import SessionSnapshot

logger = logging.getLogger(__name__)


def sheet_row(snapshot: SessionSnapshot) -> list[Any]:
    record = snapshot.to_record()
    return [
        record["date"],
        record["duration_minutes"],
        record["connections"],
        record["conversations"],
        record["demos"],
        record["winner"],
        record["winner_score"],
        "Yes" if record["team_goal_met"] else "No",
    ]


class GoogleSheetsResultsLog:
    """Appends a row to the first worksheet of a spreadsheet via gspread.

    gspread is synchronous, so every call runs in a worker thread.
    """

    def __init__(
        self,
        sheet_id: str,
        credentials: dict[str, Any] | None = None,
        credentials_file: Path | None = None,
        worksheet: gspread.Worksheet | None = None,
    ):
        self.sheet_id = sheet_id
        self.credentials = credentials
        self.credentials_file = credentials_file
        self._worksheet = worksheet

    def _open_worksheet(self) -> gspread.Worksheet:
        if self._worksheet is None:
            if self.credentials:
                client = gspread.service_account_from_dict(self.credentials)
            elif self.credentials_file:
                client = gspread.service_account(filename=str(self.credentials_file))
            else:
                client = gspread.service_account()
            self._worksheet = client.open_by_key(self.sheet_id).sheet1
        return self._worksheet

    def _append(self, row: list[Any]) -> None:
        self._open_worksheet().append_row(row, value_input_option="USER_ENTERED")

    async def log_session(self, snapshot: SessionSnapshot) -> None:
        try:
            await asyncio.to_thread(self._append, sheet_row(snapshot))
            logger.info("Power Hour results logged to Google Sheets")
        except Exception as e:
            logger.error(f"Error logging to Google Sheets: {e}")


class JsonlResultsLog:
    """Local fallback when no spreadsheet is configured."""

    def __init__(self, path: Path):
        self.path = Path(path)

    async def log_session(self, snapshot: SessionSnapshot) -> None:
        record = snapshot.to_record()
        try:
            await asyncio.to_thread(self._append, record)
            logger.info(f"Power Hour results logged to {self.path}")
        except OSError as e:
            logger.error(f"Error logging Power Hour results: {e}")

    def _append(self, record: dict) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        with open(self.path, "a", encoding="utf-8") as f:
            f.write(json.dumps(record, ensure_ascii=False) + "\n")
