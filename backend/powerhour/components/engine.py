"""Power Hour engine: sessions, live leaderboard, commentary and alerts.

Every channel can run one Power Hour. Activity from Aircall and HubSpot is
applied to every running session, and each session gets five scheduled
tasks (refresh, inactivity sweep, halfway, final push, auto-stop) that are
cancelled together when it ends.

Session state is only touched under the session lock; Slack and Giphy calls
always happen after the lock is released.
"""

from __future__ import annotations

import logging
from collections.abc import Awaitable, Callable, Mapping
from dataclasses import dataclass, field
from datetime import date, datetime, timedelta
from typing import Any

from powerhour.components import messages
from powerhour.core.classifier import ActivityClassifier, utcnow
from powerhour.core.commentary import board_commentary, check_hot_streak, check_team_goal
from powerhour.core.config import EngineConfig
from powerhour.core.errors import NoActiveSessionError
from powerhour.core.registry import SessionRegistry
from powerhour.core.scheduler import (
    AUTO_STOP,
    FINAL_PUSH,
    HALFWAY,
    INACTIVITY_SWEEP,
    REFRESH,
    TaskScheduler,
    plan_alerts,
)
from powerhour.core.scoring import leaderboard
from powerhour.services.digest import format_digest
from powerhour.services.protocols import (
    DealSource,
    DigestProvider,
    GifProvider,
    Messenger,
    OwnerDirectory,
    ResultsSink,
)
from shared.models.session import (
    ActivityEvent,
    ActivityKind,
    Notice,
    RepStats,
    Session,
    SessionSnapshot,
)

LOGGER = logging.getLogger("PowerHour")

DEAL_PROPERTY_CHANGE = "deal.propertyChange"


@dataclass
class _Outbound:
    """Messages collected under the session lock, sent after release."""

    notices: list[Notice] = field(default_factory=list)
    board_text: str | None = None
    message_ts: str | None = None


class PowerHourEngine:
    def __init__(
        self,
        config: EngineConfig,
        messenger: Messenger,
        *,
        gifs: GifProvider | None = None,
        owners: OwnerDirectory | None = None,
        deals: DealSource | None = None,
        results: ResultsSink | None = None,
        digest: DigestProvider | None = None,
        scheduler: TaskScheduler | None = None,
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        self.config = config
        self.messenger = messenger
        self.gifs = gifs
        self.owners = owners
        self.deals = deals
        self.results = results
        self.digest = digest
        self.scheduler = scheduler or TaskScheduler()
        self.clock = clock
        self.registry = SessionRegistry(config)
        self.classifier = ActivityClassifier(config, clock)

    # ============================================
    # Commands
    # ============================================

    async def start(self, channel_id: str, duration_minutes: int | None = None) -> Session:
        """Start a Power Hour. Raises AlreadyActiveError if one is running."""
        duration = self.config.default_duration_minutes if duration_minutes is None else duration_minutes
        now = self.clock()
        session = await self.registry.start(channel_id, duration, now)

        message_ts = await self._post(channel_id, messages.start_message(now, duration))

        async with session.lock:
            if not self.registry.is_current(session):
                # stopped while the start message was in flight
                return session
            session.message_ts = message_ts
            session.tasks = [
                self.scheduler.schedule(plan, self._task_body(plan.name, session))
                for plan in plan_alerts(duration, self.config)
            ]
            LOGGER.info(
                f"[{channel_id}] Scheduled: "
                + ", ".join(f"{t.name}@{int(t.seconds)}s" for t in session.tasks)
            )
        return session

    async def stop(self, channel_id: str) -> SessionSnapshot:
        """Stop the Power Hour. Raises NoActiveSessionError if none is running."""
        return await self._finalize(channel_id, reason="manual")

    async def leaderboard(self, channel_id: str) -> str:
        """Current standings for the requester, without side effects."""
        session = self.registry.get(channel_id)
        if session is None:
            raise NoActiveSessionError(channel_id)
        async with session.lock:
            board = leaderboard(session.rep_stats)
        return messages.requester_leaderboard(board)

    async def daily_summary(self, day: date | None = None) -> str:
        if self.digest is None:
            return "The daily digest is not configured."
        try:
            digest = await self.digest.generate(day)
        except Exception as e:
            LOGGER.exception(f"Daily digest failed: {e}")
            return "Couldn't build the daily digest right now. Please try again later."
        return format_digest(digest)

    async def post_daily_summary(self, channel_id: str, day: date | None = None) -> None:
        await self._post(channel_id, await self.daily_summary(day))

    async def close(self) -> None:
        """Cancel every session's tasks on shutdown. Sessions are not persisted."""
        for session in self.registry.active_sessions():
            try:
                await self.registry.stop(session.channel_id, self.clock(), "shutdown", session)
            except NoActiveSessionError:
                continue

    # ============================================
    # Inbound activity
    # ============================================

    async def handle_call_webhook(self, payload: Mapping[str, Any]) -> int:
        """Apply an Aircall notification. Returns the number of events applied."""
        events = self.classifier.classify_call(payload)
        for event in events:
            await self.handle_event(event)
        return len(events)

    async def handle_deal_webhook(self, notifications: list[Mapping[str, Any]]) -> int:
        """Apply HubSpot dealstage notifications. Returns the number of demos."""
        applied = 0
        for notification in notifications:
            if not isinstance(notification, Mapping):
                LOGGER.warning(f"Skipping malformed HubSpot notification: {notification!r}")
                continue
            if notification.get("subscriptionType", DEAL_PROPERTY_CHANGE) != DEAL_PROPERTY_CHANGE:
                continue
            if notification.get("propertyName") != "dealstage":
                continue
            new_value = notification.get("propertyValue", notification.get("newValue"))
            if new_value is not None and new_value != self.config.demo_stage_id:
                continue

            deal_id = notification.get("objectId", notification.get("dealId"))
            if deal_id is None:
                LOGGER.warning("HubSpot notification without a deal id")
                continue

            deal = await self._fetch_deal(str(deal_id))
            if deal is None:
                continue
            deal.setdefault("id", str(deal_id))

            event_id = notification.get("eventId")
            owners = await self._owner_names()
            for event in self.classifier.classify_deal(
                deal, owners, str(event_id) if event_id is not None else None
            ):
                await self.handle_event(event)
                applied += 1
        return applied

    async def handle_event(self, event: ActivityEvent) -> None:
        """Record one event in every active session and announce the results."""
        outcomes = await self.registry.apply_event(event, self._react)
        for session, outbound in outcomes:
            await self._send(session.channel_id, outbound)

    def _react(
        self, session: Session, actor: str, stats: RepStats, event: ActivityEvent
    ) -> _Outbound:
        """Runs under the session lock right after the event was recorded."""
        out = _Outbound(message_ts=session.message_ts)

        if event.kind is ActivityKind.DIAL and self.config.announce_dials:
            out.notices.append(Notice("dial", messages.dial_message(actor, stats.dials)))
        elif event.kind is ActivityKind.DEMO:
            out.notices.append(
                Notice("demo_booked", messages.demo_message(actor, event.deal_name), "celebration")
            )

        streak = check_hot_streak(actor, stats, event.kind, event.timestamp, self.config)
        if streak:
            out.notices.append(streak)

        board = leaderboard(session.rep_stats)
        out.notices.extend(board_commentary(board, session.previous_leaderboard))
        session.previous_leaderboard = board

        goal = check_team_goal(session, self.config)
        if goal:
            out.notices.append(goal)

        if event.kind is not ActivityKind.DIAL:
            out.board_text = messages.leaderboard_message(board, updated_at=self.clock())
        return out

    # ============================================
    # Scheduled tasks
    # ============================================

    def _task_body(self, name: str, session: Session) -> Callable[[], Awaitable[None]]:
        bodies = {
            REFRESH: self.refresh,
            INACTIVITY_SWEEP: self.inactivity_sweep,
            HALFWAY: self.halfway_alert,
            FINAL_PUSH: self.final_push_alert,
            AUTO_STOP: self.auto_stop,
        }
        body = bodies[name]

        async def run() -> None:
            await body(session)

        return run

    def _stale(self, session: Session, task: str) -> bool:
        if self.registry.is_current(session):
            return False
        LOGGER.debug(f"[{session.channel_id}] Stale '{task}' fire ignored")
        return True

    async def refresh(self, session: Session) -> None:
        """Recompute, run commentary and update the live leaderboard in place."""
        async with session.lock:
            if self._stale(session, REFRESH):
                return
            board = leaderboard(session.rep_stats)
            out = _Outbound(
                notices=board_commentary(board, session.previous_leaderboard),
                board_text=messages.leaderboard_message(board, updated_at=self.clock()),
                message_ts=session.message_ts,
            )
            session.previous_leaderboard = board
        await self._send(session.channel_id, out)

    async def inactivity_sweep(self, session: Session) -> None:
        """Nudge reps who dialed before but went quiet."""
        threshold = timedelta(minutes=self.config.inactivity_threshold_minutes)
        notices: list[Notice] = []
        async with session.lock:
            if self._stale(session, INACTIVITY_SWEEP):
                return
            now = self.clock()
            for name, stats in session.rep_stats.items():
                if stats.dials < 1 or stats.last_activity is None:
                    continue
                idle = now - stats.last_activity
                if idle < threshold:
                    continue
                notices.append(
                    Notice("inactivity", messages.inactivity_message(name, int(idle.total_seconds() // 60)))
                )
                stats.last_activity = now
        await self._send(session.channel_id, _Outbound(notices=notices))

    def _elapsed_minutes(self, session: Session) -> int:
        return round((self.clock() - session.started_at).total_seconds() / 60)

    async def halfway_alert(self, session: Session) -> None:
        async with session.lock:
            if self._stale(session, HALFWAY):
                return
            elapsed = self._elapsed_minutes(session)
            remaining = max(session.duration_minutes - elapsed, 0)
            text = messages.halfway_message(elapsed, remaining, leaderboard(session.rep_stats))
        await self._post(session.channel_id, text)

    async def final_push_alert(self, session: Session) -> None:
        async with session.lock:
            if self._stale(session, FINAL_PUSH):
                return
            remaining = max(session.duration_minutes - self._elapsed_minutes(session), 0)
            text = messages.final_push_message(
                remaining, leaderboard(session.rep_stats), self.config.close_race_points
            )
        await self._post(session.channel_id, text)

    async def auto_stop(self, session: Session) -> None:
        if self._stale(session, AUTO_STOP):
            return
        try:
            await self._finalize(session.channel_id, reason="auto", expected=session)
        except NoActiveSessionError:
            LOGGER.debug(f"[{session.channel_id}] Auto-stop raced with an explicit stop")

    # ============================================
    # Finalization
    # ============================================

    async def _finalize(
        self, channel_id: str, reason: str, expected: Session | None = None
    ) -> SessionSnapshot:
        """Shared by /powerhour stop and auto-stop."""
        snapshot = await self.registry.stop(channel_id, self.clock(), reason, expected)

        await self._post(channel_id, messages.complete_message())
        await self._post(channel_id, messages.leaderboard_message(snapshot.leaderboard, final=True))
        winner = messages.winner_message(snapshot.leaderboard)
        if winner:
            await self._post(channel_id, winner)

        if self.results is not None:
            try:
                await self.results.log_session(snapshot)
            except Exception as e:
                LOGGER.error(f"[{channel_id}] Failed to log results: {e}")

        LOGGER.info(
            f"[{channel_id}] Final: winner={snapshot.winner or 'N/A'} "
            f"score={snapshot.winner_score} team_demos={snapshot.team_demos}"
        )
        return snapshot

    # ============================================
    # Outbound (never called under a session lock)
    # ============================================

    async def _send(self, channel_id: str, out: _Outbound) -> None:
        for notice in out.notices:
            media = await self._gif(notice.gif_term) if notice.gif_term else None
            await self._post(channel_id, notice.text, media)

        if out.board_text is None:
            return
        if out.message_ts is not None:
            await self._update(channel_id, out.message_ts, out.board_text)
            return

        # The start message never made it; adopt a new live message
        message_ts = await self._post(channel_id, out.board_text)
        session = self.registry.get(channel_id)
        if message_ts and session is not None:
            async with session.lock:
                if session.message_ts is None:
                    session.message_ts = message_ts

    async def _post(self, channel_id: str, text: str, media_url: str | None = None) -> str | None:
        try:
            return await self.messenger.post_message(channel_id, text, media_url)
        except Exception as e:
            LOGGER.error(f"[{channel_id}] Post failed: {e}")
            return None

    async def _update(self, channel_id: str, message_ts: str, text: str) -> bool:
        try:
            return await self.messenger.update_message(channel_id, message_ts, text)
        except Exception as e:
            LOGGER.error(f"[{channel_id}] Leaderboard update failed: {e}")
            return False

    async def _gif(self, term: str) -> str | None:
        if self.gifs is None:
            return None
        try:
            return await self.gifs.random_gif(term)
        except Exception as e:
            LOGGER.warning(f"GIF lookup failed, posting without one: {e}")
            return None

    async def _fetch_deal(self, deal_id: str) -> dict[str, Any] | None:
        if self.deals is None:
            LOGGER.warning("HubSpot is not configured, deal notification ignored")
            return None
        try:
            deal = await self.deals.get_deal(deal_id)
        except Exception as e:
            LOGGER.error(f"Failed to fetch HubSpot deal {deal_id}: {e}")
            return None
        return dict(deal) if deal else None

    async def _owner_names(self) -> dict[str, str]:
        if self.owners is None:
            return {}
        try:
            return await self.owners.get_owners()
        except Exception as e:
            LOGGER.warning(f"Owner directory unavailable: {e}")
            return {}
