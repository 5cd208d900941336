"""FastAPI application factory"""

import asyncio
import logging
import time
from collections.abc import AsyncGenerator
from contextlib import AsyncExitStack, asynccontextmanager

from fastapi import FastAPI

from powerhour import __version__
from powerhour.components.engine import PowerHourEngine
from powerhour.core.config import PowerHourSettings, get_settings
from powerhour.routers import slack_router, webhooks_router
from powerhour.services import (
    AircallAPIClient,
    DigestService,
    GiphyClient,
    HubSpotAPIClient,
    GoogleSheetsResultsLog,
    JsonlResultsLog,
    SlackMessenger,
)

logger = logging.getLogger(__name__)


async def _heartbeat(app: FastAPI, interval: int = 300) -> None:
    """Periodic heartbeat, log uptime and running sessions"""
    while True:
        await asyncio.sleep(interval)
        uptime = int(time.time() - app.state.start_time)
        engine: PowerHourEngine = app.state.engine
        logger.info(f"Heartbeat: uptime={uptime}s, sessions={len(engine.registry)}")


def build_results_sink(settings: PowerHourSettings) -> GoogleSheetsResultsLog | JsonlResultsLog:
    if settings.google_sheet_id:
        return GoogleSheetsResultsLog(
            settings.google_sheet_id,
            credentials=settings.google_credentials_info,
            credentials_file=settings.google_credentials_file,
        )
    logger.info(f"GOOGLE_SHEET_ID not set, results go to {settings.results_path}")
    return JsonlResultsLog(settings.results_path)


def build_engine(settings: PowerHourSettings, stack: AsyncExitStack) -> PowerHourEngine:
    """Wire the engine to the real Slack, HubSpot, Aircall and Giphy clients."""
    if not settings.slack_bot_token:
        logger.warning("SLACK_BOT_TOKEN not set, messages will fail to post")
    messenger = SlackMessenger(settings.slack_bot_token)
    stack.push_async_callback(messenger.close)

    hubspot = HubSpotAPIClient(settings.hubspot_access_token, settings.demo_stage_id)
    stack.push_async_callback(hubspot.close)
    aircall = AircallAPIClient(settings.aircall_api_id, settings.aircall_api_token)
    stack.push_async_callback(aircall.close)
    giphy = GiphyClient(settings.giphy_api_key)
    stack.push_async_callback(giphy.close)

    if not hubspot.is_configured:
        logger.warning("HUBSPOT_ACCESS_TOKEN not set, demos will not be tracked")

    return PowerHourEngine(
        settings.engine_config(),
        messenger,
        gifs=giphy,
        owners=hubspot if hubspot.is_configured else None,
        deals=hubspot if hubspot.is_configured else None,
        results=build_results_sink(settings),
        digest=DigestService(hubspot, aircall)
        if hubspot.is_configured and aircall.is_configured
        else None,
    )


def create_app(
    settings: PowerHourSettings | None = None, engine: PowerHourEngine | None = None
) -> FastAPI:
    """Create and configure FastAPI application

    Pass *engine* to run against pre-built collaborators (tests).
    """
    settings = settings or get_settings()

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
        """Handle startup and shutdown"""
        app.state.start_time = time.time()
        async with AsyncExitStack() as stack:
            app.state.engine = engine or build_engine(settings, stack)
            heartbeat = asyncio.create_task(_heartbeat(app))
            logger.info(f"Power Hour Bot v{__version__} is running")

            yield

            logger.info("Shutting down Power Hour Bot")
            heartbeat.cancel()
            try:
                await app.state.engine.close()
            except Exception as e:
                logger.exception(f"Error during shutdown: {e}")

    app = FastAPI(
        title="Power Hour Bot",
        description="Live sales-activity leaderboard for Slack",
        version=__version__,
        lifespan=lifespan,
    )
    app.state.settings = settings

    app.include_router(slack_router.router)
    app.include_router(webhooks_router.router)

    @app.get("/health")
    async def health_check():
        running_engine = getattr(app.state, "engine", None)
        return {
            "status": "ok",
            "service": "powerhour",
            "active_sessions": len(running_engine.registry) if running_engine else 0,
        }

    @app.get("/")
    async def root():
        """Root endpoint - minimal service info"""
        return {"service": "powerhour", "status": "running"}

    return app
