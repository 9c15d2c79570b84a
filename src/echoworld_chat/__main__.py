"""Entrypoint: python -m echoworld_chat"""
from __future__ import annotations

import uvicorn

from echoworld_chat.api.middleware.correlation_id import configure_logging
from echoworld_chat.config import settings


def main() -> None:
    configure_logging(settings.LOG_LEVEL)
    uvicorn.run(
        "echoworld_chat.app:create_app",
        factory=True,
        host="0.0.0.0",
        port=8000,
        log_level=settings.LOG_LEVEL.lower(),
        log_config=None,
    )


if __name__ == "__main__":
    main()
