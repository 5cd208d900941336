"""Logging configuration"""

import logging

from rich.console import Console
from rich.logging import RichHandler

from powerhour.core.config import PowerHourSettings

DATE_FORMAT = "[%Y-%m-%d %H:%M:%S]"

# Third-party loggers that are noisy at INFO
NOISY_LOGGERS = {
    "uvicorn.access": logging.WARNING,
    "httpx": logging.WARNING,
    "slack_sdk": logging.WARNING,
    "asyncio": logging.ERROR,
}


def _rich_handler() -> RichHandler:
    handler = RichHandler(
        console=Console(force_terminal=True, width=120),
        show_time=True,
        show_level=True,
        show_path=False,
        markup=True,
        rich_tracebacks=True,
        tracebacks_show_locals=False,
        tracebacks_width=120,
    )
    handler.setFormatter(logging.Formatter(fmt="%(message)s", datefmt=DATE_FORMAT))
    return handler


def setup_logging(settings: PowerHourSettings) -> None:
    """Route every logger through a Rich console handler at the configured level."""
    level = getattr(logging, settings.log_level, logging.INFO)

    try:
        handlers: list[logging.Handler] = [_rich_handler()]
        fmt = "%(message)s"
    except Exception as e:
        handlers = [logging.StreamHandler()]
        fmt = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
        logging.getLogger(__name__).warning(f"Rich logging setup failed: {e}, using standard logging")

    # uvicorn configures the root logger first
    logging.basicConfig(level=level, format=fmt, datefmt=DATE_FORMAT, handlers=handlers, force=True)

    for name, noisy_level in NOISY_LOGGERS.items():
        # Keep request logs visible while debugging
        if level == logging.DEBUG and name in ("httpx", "slack_sdk"):
            noisy_level = logging.INFO
        logging.getLogger(name).setLevel(noisy_level)

    logging.getLogger(__name__).info(f"Logging: {settings.log_level}")
