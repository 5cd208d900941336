"""API Routers package

Slack slash commands and the upstream activity webhooks.
"""

from . import slack_router, webhooks_router

__all__ = [
    "slack_router",
    "webhooks_router",
]
