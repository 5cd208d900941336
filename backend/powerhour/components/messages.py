"""Slack message text for Power Hour sessions."""

from __future__ import annotations

from datetime import datetime

from powerhour.core.scoring import score_gap
from shared.models.session import LeaderboardEntry

SCORING_RULES = (
    ">*Scoring Rules:*\n"
    "> • *5 points* per Demo Booked\n"
    "> • *2 points* per Conversation (over 2 mins)\n"
    "> • *1 point* per Connection"
)
TIP_TEXT = "💡 Tip: Use `/leaderboard` at any time to see the current standings."
WAITING = "> _Waiting for activity..._"


def medal(index: int) -> str:
    if index == 0:
        return "🥇"
    if index == 1:
        return "🥈"
    if index == 2:
        return "🥉"
    return f"   {index + 1}."


def ordinal(n: int) -> str:
    """1 -> 1st, 2 -> 2nd, 11 -> 11th, 22 -> 22nd."""
    if n <= 0:
        return "1st"
    if 10 <= n % 100 <= 20:
        suffix = "th"
    else:
        suffix = {1: "st", 2: "nd", 3: "rd"}.get(n % 10, "th")
    return f"{n}{suffix}"


def plural(count: int, word: str) -> str:
    return f"{count} {word}" if count == 1 else f"{count} {word}s"


def standings(board: list[LeaderboardEntry]) -> str:
    if not board:
        return WAITING
    lines = [
        f"> {medal(i)} *{rep.name}* - {rep.score} pts "
        f"_({plural(rep.connections, 'connection')}, "
        f"{plural(rep.conversations, 'conversation')}, "
        f"{plural(rep.demos, 'demo')})_"
        for i, rep in enumerate(board)
    ]
    return "\n".join(lines)


def start_message(started_at: datetime, duration_minutes: int) -> str:
    date_label = started_at.strftime("%A, %B %d").replace(" 0", " ")
    return (
        f"⚡ *POWER HOUR STARTED for {date_label}!* ⚡\n"
        f"Tracking activity in real-time for {duration_minutes} minutes...\n\n"
        f"{SCORING_RULES}\n\n{TIP_TEXT}\n\n"
        f"📊 *LIVE LEADERBOARD*\n{WAITING}"
    )


def leaderboard_message(
    board: list[LeaderboardEntry], *, final: bool = False, updated_at: datetime | None = None
) -> str:
    title = "FINAL" if final else "LIVE"
    message = f"📊 *{title} LEADERBOARD* 📊\n\n{standings(board)}"
    if not final and updated_at is not None:
        message += f"\n> \n> _Updated: {updated_at.strftime('%H:%M:%S')}_"
    return message


def requester_leaderboard(board: list[LeaderboardEntry]) -> str:
    if not board:
        return "Here is the current leaderboard:\n> _No activity yet..._"
    return f"Here is the current leaderboard:\n\n{standings(board)}"


def dial_message(actor: str, dials: int) -> str:
    return f"🤙 *{actor}* is making their *{ordinal(dials)} call* of the hour!"


def demo_message(actor: str, deal_name: str | None) -> str:
    return f"🔥 *{actor}* just booked a demo with *{deal_name or 'a new client'}*! 🎯"


def halfway_message(elapsed: int, remaining: int, board: list[LeaderboardEntry]) -> str:
    return (
        f"⏱️ *HALFWAY THERE!* {plural(elapsed, 'minute')} down, "
        f"{plural(remaining, 'minute')} to go!\n\n{standings(board)}"
    )


def final_push_message(
    minutes_left: int, board: list[LeaderboardEntry], close_race_points: int
) -> str:
    message = f"🚨 *{minutes_left} MINUTES LEFT!* Time for the final push! 🚨\n\n{standings(board)}"
    gap = score_gap(board)
    if gap is not None:
        first, second = board[0], board[1]
        if gap <= close_race_points:
            message += (
                f"\n\n🔥 *Close race!* Only {plural(gap, 'point')} between "
                f"*{first.name}* and *{second.name}*!"
            )
        else:
            message += f"\n\n*{first.name}* leads *{second.name}* by {plural(gap, 'point')}."
    return message


def inactivity_message(actor: str, idle_minutes: int) -> str:
    return (
        f"👀 *{actor}*, it's been {plural(idle_minutes, 'minute')} since your last activity. "
        f"Time to pick up the phone! 📞"
    )


def complete_message() -> str:
    return "🏁 *Power Hour Complete!* Generating final results..."


def winner_message(board: list[LeaderboardEntry]) -> str | None:
    if not board:
        return None
    return f"👑 Congratulations *{board[0].name}* with {plural(board[0].score, 'point')}!"
