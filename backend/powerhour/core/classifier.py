"""Normalizes Aircall and HubSpot notifications into activity events.

Call events:
    call.created   -> dial (+ connection when already answered)
    call.answered  -> connection
    call.ended     -> conversation when the call lasted long enough

Deal events:
    dealstage change to the "demo scheduled" stage -> demo

Anything malformed or outside the roster is logged and dropped.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Mapping
from datetime import datetime, timezone
from typing import Any

from cachetools import TTLCache  # type: ignore[import-untyped]

from powerhour.core.config import EngineConfig
from powerhour.core.errors import MalformedEventError
from shared.models.session import ActivityEvent, ActivityKind

LOGGER = logging.getLogger("Classifier")

CALL_CREATED = "call.created"
CALL_ANSWERED = "call.answered"
CALL_ENDED = "call.ended"


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _round_minutes(seconds: float) -> int:
    # Half-up, so 150s is 3 minutes
    return int(seconds / 60 + 0.5)


class ActivityClassifier:
    """Turns upstream payloads into :class:`ActivityEvent` lists.

    Redelivered notifications (same event type and id) within the dedupe TTL
    are dropped.
    """

    def __init__(
        self,
        config: EngineConfig,
        clock: Callable[[], datetime] = utcnow,
        dedupe_maxsize: int = 10_000,
    ) -> None:
        self.config = config
        self.clock = clock
        self._seen: TTLCache = TTLCache(
            maxsize=dedupe_maxsize, ttl=max(config.event_dedupe_ttl_seconds, 1)
        )

    # --- dedupe ---

    def _already_seen(self, key: str | None) -> bool:
        if key is None:
            return False
        if key in self._seen:
            LOGGER.info(f"Duplicate notification dropped: {key}")
            return True
        return False

    def _remember(self, key: str | None) -> None:
        if key is not None:
            self._seen[key] = True

    # --- roster ---

    def _on_roster(self, actor: str) -> bool:
        if self.config.accepts(actor):
            return True
        LOGGER.info(f"Ignoring activity from {actor} (not on roster)")
        return False

    # --- telephony ---

    def classify_call(self, payload: Mapping[str, Any]) -> list[ActivityEvent]:
        try:
            return self._classify_call(payload)
        except MalformedEventError as e:
            LOGGER.warning(f"Dropped call notification: {e}")
            return []

    def _classify_call(self, payload: Mapping[str, Any]) -> list[ActivityEvent]:
        if not isinstance(payload, Mapping):
            raise MalformedEventError("payload is not an object")

        event_type = payload.get("event")
        if event_type not in (CALL_CREATED, CALL_ANSWERED, CALL_ENDED):
            LOGGER.debug(f"Ignoring call event type: {event_type}")
            return []

        data = payload.get("data")
        if not isinstance(data, Mapping):
            raise MalformedEventError(f"{event_type} without data")

        actor = self._call_actor(data)
        call_id = data.get("id")
        dedupe_key = f"{event_type}:{call_id}" if call_id is not None else None
        if self._already_seen(dedupe_key):
            return []
        # call.created with answered_at and call.answered describe the same connection
        connection_key = f"connection:{call_id}" if call_id is not None else None

        now = self.clock()
        events: list[ActivityEvent] = []
        event_id = str(call_id) if call_id is not None else None

        if event_type == CALL_CREATED:
            events.append(ActivityEvent(actor, ActivityKind.DIAL, now, event_id))
            if data.get("answered_at") and not self._already_seen(connection_key):
                events.append(ActivityEvent(actor, ActivityKind.CONNECTION, now, event_id))
                self._remember(connection_key)
        elif event_type == CALL_ANSWERED:
            if self._already_seen(connection_key):
                self._remember(dedupe_key)
                return []
            events.append(ActivityEvent(actor, ActivityKind.CONNECTION, now, event_id))
            self._remember(connection_key)
        else:
            seconds = self._duration_seconds(data)
            if seconds < self.config.conversation_min_seconds:
                LOGGER.debug(f"Call by {actor} too short for a conversation ({seconds}s)")
                self._remember(dedupe_key)
                return []
            events.append(
                ActivityEvent(
                    actor,
                    ActivityKind.CONVERSATION,
                    now,
                    event_id,
                    duration_minutes=_round_minutes(seconds),
                )
            )

        self._remember(dedupe_key)
        if not self._on_roster(actor):
            return []
        return events

    @staticmethod
    def _call_actor(data: Mapping[str, Any]) -> str:
        user = data.get("user")
        name = user.get("name") if isinstance(user, Mapping) else None
        if not isinstance(name, str) or not name.strip():
            raise MalformedEventError("call without user name")
        return name.strip()

    @staticmethod
    def _duration_seconds(data: Mapping[str, Any]) -> float:
        raw = data.get("duration")
        if isinstance(raw, bool):
            raise MalformedEventError(f"non-numeric duration: {raw!r}")
        try:
            seconds = float(raw)
        except (TypeError, ValueError):
            raise MalformedEventError(f"non-numeric duration: {raw!r}") from None
        if seconds < 0:
            raise MalformedEventError(f"negative duration: {seconds}")
        return seconds

    # --- CRM ---

    def classify_deal(
        self,
        deal: Mapping[str, Any],
        owners: Mapping[str, str],
        event_id: str | None = None,
    ) -> list[ActivityEvent]:
        try:
            return self._classify_deal(deal, owners, event_id)
        except MalformedEventError as e:
            LOGGER.warning(f"Dropped deal notification: {e}")
            return []

    def _classify_deal(
        self,
        deal: Mapping[str, Any],
        owners: Mapping[str, str],
        event_id: str | None,
    ) -> list[ActivityEvent]:
        properties = deal.get("properties") if isinstance(deal, Mapping) else None
        if not isinstance(properties, Mapping):
            raise MalformedEventError("deal without properties")

        if properties.get("dealstage") != self.config.demo_stage_id:
            LOGGER.debug(f"Deal {deal.get('id')} not at demo stage")
            return []

        owner_id = properties.get("hubspot_owner_id")
        if owner_id in (None, ""):
            raise MalformedEventError(f"deal {deal.get('id')} has no owner")
        actor = owners.get(str(owner_id)) or f"Owner {owner_id}"

        deal_id = deal.get("id")
        if event_id is not None:
            dedupe_key = f"hubspot:{event_id}"
        elif deal_id is not None:
            dedupe_key = f"deal:{deal_id}"
        else:
            dedupe_key = None
        if self._already_seen(dedupe_key):
            return []
        self._remember(dedupe_key)

        if not self._on_roster(actor):
            return []

        deal_name = properties.get("dealname") or "a new client"
        return [
            ActivityEvent(
                actor,
                ActivityKind.DEMO,
                self.clock(),
                event_id or (str(deal_id) if deal_id is not None else None),
                deal_name=deal_name,
            )
        ]
