"""Collaborator interfaces the session engine talks to."""

from __future__ import annotations

from datetime import date
from typing import Any, Protocol

from shared.models.digest import DailyDigest
from shared.models.session import SessionSnapshot


class Messenger(Protocol):
    async def post_message(
        self, channel_id: str, text: str, media_url: str | None = None
    ) -> str | None: ...

    async def update_message(self, channel_id: str, message_ts: str, text: str) -> bool: ...


class GifProvider(Protocol):
    async def random_gif(self, search_term: str) -> str | None: ...


class OwnerDirectory(Protocol):
    async def get_owners(self) -> dict[str, str]: ...


class DealSource(Protocol):
    async def get_deal(self, deal_id: str) -> dict[str, Any] | None: ...


class ResultsSink(Protocol):
    async def log_session(self, snapshot: SessionSnapshot) -> None: ...


class DigestProvider(Protocol):
    async def generate(self, day: date | None = None) -> DailyDigest: ...
