"""Giphy GIF lookup"""

import logging
import random

import httpx

logger = logging.getLogger(__name__)

GIPHY_SEARCH_URL = "https://api.giphy.com/v1/gifs/search"


class GiphyClient:
    def __init__(self, api_key: str, http: httpx.AsyncClient | None = None):
        self.api_key = api_key
        self._http = http or httpx.AsyncClient(timeout=5.0)

    async def close(self) -> None:
        await self._http.aclose()

    async def random_gif(self, search_term: str) -> str | None:
        """Random G-rated GIF URL for the term, None when unavailable."""
        if not self.api_key:
            return None
        try:
            response = await self._http.get(
                GIPHY_SEARCH_URL,
                params={"api_key": self.api_key, "q": search_term, "limit": 25, "rating": "g"},
            )
            if response.status_code != 200:
                logger.warning(f"Giphy search failed: {response.status_code}")
                return None
            results = response.json().get("data", [])
            if not results:
                return None
            url: str | None = random.choice(results).get("images", {}).get("original", {}).get("url")
            return url
        except Exception as e:
            logger.warning(f"Giphy API error: {e}")
            return None
