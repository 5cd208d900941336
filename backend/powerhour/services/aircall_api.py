"""Aircall API client service"""

import logging
from typing import Any

import httpx

logger = logging.getLogger(__name__)

AIRCALL_BASE = "https://api.aircall.io/v1"


class AircallAPIClient:
    """Lists calls for the daily digest. Uses Basic auth (API ID + token)."""

    PER_PAGE = 50
    MAX_PAGES = 20

    def __init__(self, api_id: str, api_token: str, http: httpx.AsyncClient | None = None):
        self.api_id = api_id
        self.api_token = api_token
        self._http = http or httpx.AsyncClient(base_url=AIRCALL_BASE, timeout=10.0)

    async def close(self) -> None:
        await self._http.aclose()

    @property
    def is_configured(self) -> bool:
        return bool(self.api_id and self.api_token)

    async def answered_calls_between(self, from_ts: int, to_ts: int) -> list[dict[str, Any]]:
        """All answered calls in the range (unix seconds), any duration."""
        calls: list[dict[str, Any]] = []
        try:
            for page in range(1, self.MAX_PAGES + 1):
                response = await self._http.get(
                    "/calls",
                    auth=(self.api_id, self.api_token),
                    params={"from": from_ts, "to": to_ts, "per_page": self.PER_PAGE, "page": page},
                )
                if response.status_code != 200:
                    logger.error(f"Aircall calls request failed: {response.status_code}")
                    break

                payload = response.json()
                calls.extend(payload.get("calls", []))
                if not (payload.get("meta") or {}).get("next_page_link"):
                    break
        except Exception as e:
            logger.error(f"Error fetching Aircall calls: {e}")

        return [call for call in calls if call.get("answered_at")]
