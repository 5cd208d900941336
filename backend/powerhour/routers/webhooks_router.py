"""Activity webhooks from Aircall (calls) and HubSpot (deal stages)."""

from __future__ import annotations

import json
import logging
from typing import Any

from fastapi import APIRouter, Depends, HTTPException, Request
from fastapi.responses import PlainTextResponse

from powerhour.components.engine import PowerHourEngine
from powerhour.core.dependencies import get_engine

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/webhooks", tags=["webhooks"])


async def _json_body(request: Request) -> Any:
    try:
        return json.loads(await request.body())
    except (json.JSONDecodeError, UnicodeDecodeError) as e:
        logger.warning(f"Invalid webhook body on {request.url.path}: {e}")
        raise HTTPException(status_code=400, detail="Invalid JSON") from e


@router.post("/aircall", response_class=PlainTextResponse)
async def aircall_webhook(
    request: Request, engine: PowerHourEngine = Depends(get_engine)
) -> str:
    payload = await _json_body(request)
    if not isinstance(payload, dict):
        raise HTTPException(status_code=400, detail="Expected a JSON object")

    logger.info(f"Aircall webhook received: {payload.get('event')}")
    await engine.handle_call_webhook(payload)
    return "OK"


@router.post("/hubspot", response_class=PlainTextResponse)
async def hubspot_webhook(
    request: Request, engine: PowerHourEngine = Depends(get_engine)
) -> str:
    payload = await _json_body(request)
    notifications = payload if isinstance(payload, list) else [payload]

    logger.info(f"HubSpot webhook received: {len(notifications)} notification(s)")
    await engine.handle_deal_webhook(notifications)
    return "OK"
