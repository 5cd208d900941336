"""Slack slash commands: /powerhour, /leaderboard, /dailysummary

    /powerhour start [minutes]   Start a Power Hour in this channel
    /powerhour stop              Stop it and post the final results
    /leaderboard                 Current standings (only you see them)
    /dailysummary [YYYY-MM-DD]   Post the daily sales digest
"""

from __future__ import annotations

import logging
from datetime import date
from urllib.parse import parse_qs

from fastapi import APIRouter, BackgroundTasks, Depends

from powerhour.components.engine import PowerHourEngine
from powerhour.core.dependencies import get_engine, verify_slack_request
from powerhour.core.errors import AlreadyActiveError, NoActiveSessionError

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/slack", tags=["slack"])

USAGE = "Usage: `/powerhour start [minutes]` or `/powerhour stop`"
MAX_DURATION_MINUTES = 8 * 60


def _ephemeral(text: str) -> dict[str, str]:
    return {"response_type": "ephemeral", "text": text}


def _parse_form(body: bytes) -> dict[str, str]:
    parsed = parse_qs(body.decode("utf-8"), keep_blank_values=True)
    return {key: values[0] for key, values in parsed.items()}


@router.post("/commands")
async def slash_command(
    background: BackgroundTasks,
    body: bytes = Depends(verify_slack_request),
    engine: PowerHourEngine = Depends(get_engine),
) -> dict[str, str]:
    form = _parse_form(body)
    command = form.get("command", "").lstrip("/").lower()
    text = form.get("text", "").strip()
    channel_id = form.get("channel_id", "")

    if not channel_id:
        return _ephemeral("Missing channel.")

    logger.info(f"[{channel_id}] /{command} {text}".rstrip())

    if command == "powerhour":
        return await _powerhour(engine, channel_id, text)
    if command == "leaderboard":
        try:
            return _ephemeral(await engine.leaderboard(channel_id))
        except NoActiveSessionError:
            return _ephemeral("There is no active Power Hour running in this channel.")
    if command in ("dailysummary", "daily-summary", "digest"):
        return _daily_summary(engine, channel_id, text, background)

    return _ephemeral(f"Unknown command: /{command}")


async def _powerhour(engine: PowerHourEngine, channel_id: str, text: str) -> dict[str, str]:
    parts = text.lower().split()
    action = parts[0] if parts else ""

    if action == "start":
        duration: int | None = None
        if len(parts) > 1:
            try:
                duration = int(parts[1])
            except ValueError:
                return _ephemeral(f"Duration must be a whole number of minutes. {USAGE}")
            if not 0 < duration <= MAX_DURATION_MINUTES:
                return _ephemeral(f"Duration must be between 1 and {MAX_DURATION_MINUTES} minutes.")
        try:
            session = await engine.start(channel_id, duration)
        except AlreadyActiveError:
            return _ephemeral("A Power Hour is already running in this channel!")
        return _ephemeral(f"Power Hour started for {session.duration_minutes} minutes. Go get 'em!")

    if action == "stop":
        try:
            await engine.stop(channel_id)
        except NoActiveSessionError:
            return _ephemeral("There's no active Power Hour to stop in this channel.")
        return _ephemeral("Power Hour stopped.")

    return _ephemeral(USAGE)


def _daily_summary(
    engine: PowerHourEngine, channel_id: str, text: str, background: BackgroundTasks
) -> dict[str, str]:
    day: date | None = None
    if text:
        try:
            day = date.fromisoformat(text)
        except ValueError:
            return _ephemeral("Date must look like YYYY-MM-DD.")

    background.add_task(engine.post_daily_summary, channel_id, day)
    return _ephemeral("Generating the daily digest...")
