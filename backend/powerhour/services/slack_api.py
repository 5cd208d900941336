"""Slack Web API messenger"""

import logging

from slack_sdk.errors import SlackApiError
from slack_sdk.web.async_client import AsyncWebClient

logger = logging.getLogger(__name__)


class SlackMessenger:
    """Posts and updates channel messages.

    Failures are logged and reported as ``None`` / ``False`` so a Slack
    outage never interrupts session bookkeeping.
    """

    def __init__(self, token: str, client: AsyncWebClient | None = None):
        self.token = token
        self._client = client or AsyncWebClient(token=token)

    @property
    def is_configured(self) -> bool:
        return bool(self.token)

    async def post_message(
        self, channel_id: str, text: str, media_url: str | None = None
    ) -> str | None:
        """Post a new message, returns its ``ts`` handle."""
        blocks: list[dict] = [{"type": "section", "text": {"type": "mrkdwn", "text": text}}]
        if media_url:
            blocks.append({"type": "image", "image_url": media_url, "alt_text": "Celebratory GIF"})

        try:
            response = await self._client.chat_postMessage(
                channel=channel_id, text=text, blocks=blocks
            )
            return response.get("ts")
        except SlackApiError as e:
            logger.error(f"Slack post to {channel_id} failed: {e.response.get('error')}")
        except Exception as e:
            logger.exception(f"Error posting message to {channel_id}: {e}")
        return None

    async def update_message(self, channel_id: str, message_ts: str, text: str) -> bool:
        """Edit an existing message in place."""
        try:
            await self._client.chat_update(channel=channel_id, ts=message_ts, text=text)
            return True
        except SlackApiError as e:
            logger.error(f"Slack update in {channel_id} failed: {e.response.get('error')}")
        except Exception as e:
            logger.exception(f"Error updating message in {channel_id}: {e}")
        return False

    async def close(self) -> None:
        session = getattr(self._client, "session", None)
        if session is not None and not session.closed:
            await session.close()
