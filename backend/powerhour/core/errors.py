"""Power Hour error types."""


class PowerHourError(Exception):
    """Base class for session engine errors."""


class AlreadyActiveError(PowerHourError):
    def __init__(self, channel_id: str) -> None:
        super().__init__(f"A Power Hour is already running in {channel_id}")
        self.channel_id = channel_id


class NoActiveSessionError(PowerHourError):
    def __init__(self, channel_id: str) -> None:
        super().__init__(f"No active Power Hour in {channel_id}")
        self.channel_id = channel_id


class MalformedEventError(PowerHourError):
    """Upstream payload without a usable actor, kind or duration."""


class UpstreamUnavailableError(PowerHourError):
    """An external API (Slack, HubSpot, Aircall, Giphy, results log) failed."""

    def __init__(self, service: str, detail: str) -> None:
        super().__init__(f"{service} unavailable: {detail}")
        self.service = service
        self.detail = detail
