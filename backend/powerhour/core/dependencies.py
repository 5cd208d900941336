"""Dependency injection utilities for FastAPI"""

import logging

from fastapi import HTTPException, Request
from slack_sdk.signature import SignatureVerifier

from powerhour.components.engine import PowerHourEngine
from powerhour.core.config import PowerHourSettings, get_settings

logger = logging.getLogger(__name__)


def get_engine(request: Request) -> PowerHourEngine:
    engine: PowerHourEngine | None = getattr(request.app.state, "engine", None)
    if engine is None:
        raise HTTPException(status_code=503, detail="Engine not ready")
    return engine


def get_app_settings(request: Request) -> PowerHourSettings:
    settings: PowerHourSettings | None = getattr(request.app.state, "settings", None)
    return settings or get_settings()


async def verify_slack_request(request: Request) -> bytes:
    """Return the raw body after checking Slack's request signature.

    Verification is skipped when no signing secret is configured.
    """
    body = await request.body()
    settings = get_app_settings(request)
    if not settings.slack_signing_secret:
        return body

    verifier = SignatureVerifier(settings.slack_signing_secret)
    if not verifier.is_valid_request(body, dict(request.headers)):
        logger.warning("Rejected Slack request with invalid signature")
        raise HTTPException(status_code=401, detail="Invalid Slack signature")
    return body
