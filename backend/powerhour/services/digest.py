"""Daily sales digest: demos, calls and a day-long leaderboard.

Digest scoring differs from the live Power Hour:
    5 pts per demo completed, 3 per demo booked,
    2 per conversation (>= 2 min), 1 per shorter connection
"""

from __future__ import annotations

import asyncio
import logging
from collections import Counter
from datetime import date, datetime, time, timedelta, tzinfo
from typing import Any

from powerhour.core.scoring import conversion_rate
from powerhour.services.aircall_api import AircallAPIClient
from powerhour.services.hubspot_api import HubSpotAPIClient
from shared.models.digest import (
    CallMetrics,
    DailyDigest,
    DigestComparison,
    DigestRepStats,
    LongestCall,
    MostActiveHour,
)

logger = logging.getLogger(__name__)

DEMO_COMPLETED_POINTS = 5
DEMO_BOOKED_POINTS = 3
CONVERSATION_POINTS = 2
CONNECTION_POINTS = 1
CONVERSATION_SECONDS = 120


def day_range(day: date, tz: tzinfo | None = None) -> tuple[datetime, datetime]:
    """First and last instant of *day* in *tz* (local time when None)."""
    start = datetime.combine(day, time.min, tzinfo=tz)
    end = datetime.combine(day, time.max, tzinfo=tz)
    if tz is None:
        start, end = start.astimezone(), end.astimezone()
    return start, end


def format_hour(hour: int) -> str:
    period = "PM" if hour >= 12 else "AM"
    display = hour - 12 if hour > 12 else (12 if hour == 0 else hour)
    return f"{display}{period}"


def _duration(call: dict[str, Any]) -> int:
    try:
        return int(call.get("duration") or 0)
    except (TypeError, ValueError):
        return 0


def analyze_call_metrics(calls: list[dict[str, Any]], tz: tzinfo | None = None) -> CallMetrics:
    if not calls:
        return CallMetrics()

    total_seconds = sum(_duration(c) for c in calls)
    longest = max(calls, key=_duration)
    contact = longest.get("contact") or {}

    hours: Counter[int] = Counter()
    for call in calls:
        started = call.get("started_at")
        if started:
            hours[datetime.fromtimestamp(int(started), tz=tz).hour] += 1

    most_active = None
    if hours:
        hour, count = max(hours.items(), key=lambda item: (item[1], -item[0]))
        most_active = MostActiveHour(hour=hour, count=count, formatted=format_hour(hour))

    return CallMetrics(
        total_calls=len(calls),
        total_minutes=round(total_seconds / 60),
        average_duration=round(total_seconds / len(calls) / 60),
        longest_call=LongestCall(
            duration_minutes=round(_duration(longest) / 60),
            user=(longest.get("user") or {}).get("name") or "Unknown",
            contact=contact.get("company_name")
            or contact.get("name")
            or longest.get("raw_digits")
            or "Unknown",
        ),
        most_active_hour=most_active,
    )


def build_digest_leaderboard(
    demos_booked: list[dict[str, Any]],
    demos_completed: list[dict[str, Any]],
    calls: list[dict[str, Any]],
    owners: dict[str, str],
) -> list[DigestRepStats]:
    reps: dict[str, DigestRepStats] = {}

    def rep(name: str) -> DigestRepStats:
        return reps.setdefault(name, DigestRepStats(name=name))

    def owner_name(deal: dict[str, Any]) -> str:
        owner_id = (deal.get("properties") or {}).get("hubspot_owner_id")
        return owners.get(str(owner_id)) or f"Owner {owner_id}"

    for deal in demos_booked:
        rep(owner_name(deal)).demos_booked += 1
    for deal in demos_completed:
        rep(owner_name(deal)).demos_completed += 1
    for call in calls:
        stats = rep((call.get("user") or {}).get("name") or "Unknown")
        if _duration(call) >= CONVERSATION_SECONDS:
            stats.conversations += 1
        else:
            stats.connections += 1

    for stats in reps.values():
        stats.score = (
            stats.demos_completed * DEMO_COMPLETED_POINTS
            + stats.demos_booked * DEMO_BOOKED_POINTS
            + stats.conversations * CONVERSATION_POINTS
            + stats.connections * CONNECTION_POINTS
        )

    return sorted(reps.values(), key=lambda s: (-s.score, s.name.lower()))


class DigestService:
    """Builds the daily digest from HubSpot and Aircall."""

    def __init__(
        self,
        hubspot: HubSpotAPIClient,
        aircall: AircallAPIClient,
        tz: tzinfo | None = None,
    ):
        self.hubspot = hubspot
        self.aircall = aircall
        self.tz = tz

    async def _owners(self) -> dict[str, str]:
        try:
            return await self.hubspot.get_owners()
        except Exception as e:
            logger.warning(f"Owner directory unavailable for digest: {e}")
            return {}

    async def _fetch_day(self, day: date) -> tuple[list, list, list]:
        start, end = day_range(day, self.tz)
        start_ms, end_ms = int(start.timestamp() * 1000), int(end.timestamp() * 1000)
        booked, completed, calls = await asyncio.gather(
            self.hubspot.demos_booked_between(start_ms, end_ms),
            self.hubspot.demos_completed_on(day.isoformat()),
            self.aircall.answered_calls_between(int(start.timestamp()), int(end.timestamp())),
        )
        return booked, completed, calls

    async def generate(self, day: date | None = None, include_comparison: bool = True) -> DailyDigest:
        day = day or datetime.now(self.tz).date()

        booked, completed, calls = await self._fetch_day(day)

        comparison = None
        if include_comparison:
            last_booked, last_completed, last_calls = await self._fetch_day(day - timedelta(days=7))
            comparison = DigestComparison(
                demos_booked=len(booked) - len(last_booked),
                demos_completed=len(completed) - len(last_completed),
                calls=len(calls) - len(last_calls),
            )

        metrics = analyze_call_metrics(calls, self.tz)
        owners = await self._owners()

        return DailyDigest(
            date_label=day.strftime("%A, %B %d, %Y").replace(" 0", " "),
            demos_booked=len(booked),
            demos_completed=len(completed),
            calls=len(calls),
            time_on_phone=metrics.total_minutes,
            conversion_rate=conversion_rate(len(booked), len(calls)),
            metrics=metrics,
            leaderboard=build_digest_leaderboard(booked, completed, calls, owners),
            comparison=comparison,
        )


def _delta(value: int) -> str:
    if value == 0:
        return ""
    arrow = "📈" if value > 0 else "📉"
    sign = "+" if value > 0 else ""
    return f" {arrow} {sign}{value} vs last week"


def format_digest(digest: DailyDigest) -> str:
    cmp = digest.comparison
    lines = [
        "📊 *DAILY SALES DIGEST*",
        f"_{digest.date_label}_",
        "",
        "*📈 KEY METRICS*",
        f"> • Demos Booked: *{digest.demos_booked}*{_delta(cmp.demos_booked) if cmp else ''}",
        f"> • Demos Completed: *{digest.demos_completed}*{_delta(cmp.demos_completed) if cmp else ''}",
        f"> • Total Calls: *{digest.calls}*{_delta(cmp.calls) if cmp else ''}",
        f"> • Time on Phone: *{digest.time_on_phone} mins*",
        f"> • Conversion Rate: *{digest.conversion_rate}%*",
        "",
    ]

    metrics = digest.metrics
    if metrics.average_duration > 0:
        lines.append("*💡 INSIGHTS*")
        lines.append(f"> • Average Call: *{metrics.average_duration} mins*")
        if metrics.longest_call:
            lc = metrics.longest_call
            lines.append(
                f"> • Longest Call: *{lc.duration_minutes} mins* by {lc.user} with {lc.contact}"
            )
        if metrics.most_active_hour:
            mah = metrics.most_active_hour
            lines.append(f"> • Most Active Hour: *{mah.formatted}* ({mah.count} calls)")
        lines.append("")

    lines.append("*🏆 DAILY LEADERBOARD*")
    lines.append(
        "_5 pts per demo completed • 3 pts per demo booked • "
        "2 pts per conversation • 1 pt per connection_"
    )
    lines.append("")

    if not digest.leaderboard:
        lines.append("> _No activity today_")
    for index, rep in enumerate(digest.leaderboard):
        medal = {0: "🥇", 1: "🥈", 2: "🥉"}.get(index, f"   {index + 1}.")
        lines.append(f"> {medal} *{rep.name}* - {rep.score} pts")
        lines.append(
            f">       {rep.conversations} conversations • {rep.connections} connections • "
            f"{rep.demos_booked} demos booked • {rep.demos_completed} demos completed"
        )

    return "\n".join(lines)
