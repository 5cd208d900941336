"""HubSpot CRM API client service.

Used for:
- Deal lookups when a dealstage webhook arrives
- The owner directory (owner id -> "First Last"), cached for an hour
- Deal searches for the daily digest
"""

import logging
from typing import Any

import httpx

from powerhour.core.config import DEMO_SCHEDULED_STAGE
from powerhour.core.errors import UpstreamUnavailableError
from shared.cache import AsyncTTLCache, cached

logger = logging.getLogger(__name__)

HUBSPOT_BASE = "https://api.hubapi.com"

_owners_cache = AsyncTTLCache(maxsize=4, ttl=3600)


class HubSpotAPIClient:
    """Client for the HubSpot CRM v3 API."""

    DEAL_PROPERTIES = ["dealname", "dealstage", "hubspot_owner_id"]

    def __init__(
        self,
        access_token: str,
        demo_stage_id: str = DEMO_SCHEDULED_STAGE,
        http: httpx.AsyncClient | None = None,
    ):
        self.access_token = access_token
        self.demo_stage_id = demo_stage_id

        # Shared HTTP client, reuses TCP connections across requests
        self._http = http or httpx.AsyncClient(base_url=HUBSPOT_BASE, timeout=10.0)

    async def close(self) -> None:
        await self._http.aclose()

    @property
    def is_configured(self) -> bool:
        return bool(self.access_token)

    @property
    def _headers(self) -> dict[str, str]:
        return {"Authorization": f"Bearer {self.access_token}"}

    async def get_deal(self, deal_id: str) -> dict[str, Any] | None:
        """Fetch one deal with the properties the classifier needs."""
        try:
            response = await self._http.get(
                f"/crm/v3/objects/deals/{deal_id}",
                headers=self._headers,
                params={"properties": ",".join(self.DEAL_PROPERTIES)},
            )
            if response.status_code != 200:
                logger.error(f"Failed to fetch HubSpot deal {deal_id}: {response.status_code}")
                return None
            data: dict[str, Any] = response.json()
            return data
        except httpx.TimeoutException:
            logger.error(f"Timeout fetching HubSpot deal {deal_id}")
            return None
        except Exception as e:
            logger.exception(f"Error fetching HubSpot deal {deal_id}: {e}")
            return None

    @cached(cache=_owners_cache, key_func=lambda self: f"hubspot_owners:{self.access_token[-6:]}")
    async def get_owners(self) -> dict[str, str]:
        """Owner id -> display name. Raises UpstreamUnavailableError on failure."""
        try:
            response = await self._http.get("/crm/v3/owners", headers=self._headers)
        except httpx.HTTPError as e:
            raise UpstreamUnavailableError("hubspot", str(e)) from e

        if response.status_code != 200:
            raise UpstreamUnavailableError("hubspot", f"owners status {response.status_code}")

        owners: dict[str, str] = {}
        for owner in response.json().get("results", []):
            name = f"{owner.get('firstName') or ''} {owner.get('lastName') or ''}".strip()
            owners[str(owner.get("id"))] = name or owner.get("email") or f"Owner {owner.get('id')}"

        logger.info(f"Loaded {len(owners)} owners")
        return owners

    async def _search_deals(
        self, filters: list[dict[str, Any]], properties: list[str]
    ) -> list[dict[str, Any]]:
        try:
            response = await self._http.post(
                "/crm/v3/objects/deals/search",
                headers=self._headers,
                json={
                    "filterGroups": [{"filters": filters}],
                    "properties": properties,
                    "limit": 100,
                },
            )
            if response.status_code != 200:
                logger.error(f"HubSpot deal search failed: {response.status_code}")
                return []
            results: list[dict[str, Any]] = response.json().get("results", [])
            return results
        except Exception as e:
            logger.error(f"Error searching HubSpot deals: {e}")
            return []

    async def demos_booked_between(self, start_ms: int, end_ms: int) -> list[dict[str, Any]]:
        """Deals at the demo-scheduled stage created inside the range."""
        return await self._search_deals(
            [
                {"propertyName": "dealstage", "operator": "EQ", "value": self.demo_stage_id},
                {"propertyName": "createdate", "operator": "GTE", "value": start_ms},
                {"propertyName": "createdate", "operator": "LTE", "value": end_ms},
            ],
            ["dealname", "createdate", "hubspot_owner_id"],
        )

    async def demos_completed_on(self, day_iso: str) -> list[dict[str, Any]]:
        """Deals whose demo was completed on the given YYYY-MM-DD."""
        return await self._search_deals(
            [{"propertyName": "demo_completed_date__c", "operator": "EQ", "value": day_iso}],
            ["dealname", "demo_completed_date__c", "hubspot_owner_id"],
        )
