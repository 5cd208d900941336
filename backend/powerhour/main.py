"""Power Hour Bot entrypoint"""

import logging

import uvicorn

from powerhour.app import create_app
from powerhour.core.config import get_settings
from powerhour.core.logging import setup_logging

LOGGER = logging.getLogger("PowerHour")


def main() -> None:
    settings = get_settings()
    setup_logging(settings)

    app = create_app(settings)
    LOGGER.info(f"Listening on {settings.host}:{settings.port}")
    uvicorn.run(
        app,
        host=settings.host,
        port=settings.port,
        log_config=None,
    )


if __name__ == "__main__":
    main()
