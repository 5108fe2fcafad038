from __future__ import annotations

import logging
import logging.handlers

from routine.core.config import BACKEND_DIR, Settings


def _resolve_level(settings: Settings) -> int:
    if settings.log_level:
        level = logging.getLevelName(settings.log_level.strip().upper())
        if isinstance(level, int):
            return level
    return logging.INFO if settings.environment == "production" else logging.DEBUG


def setup_logging(settings: Settings) -> None:
    """Console logging everywhere, plus ``backend/logs/routine.log`` in production.

    ``LOG_LEVEL`` overrides the per-environment default. Calling it again is a no-op.
    """
    root = logging.getLogger()
    if root.handlers:
        return

    level = _resolve_level(settings)
    formatter = logging.Formatter(
        fmt="%(asctime)s %(levelname)s %(name)s %(message)s",
        datefmt="%Y-%m-%dT%H:%M:%S%z",
    )

    handlers: list[logging.Handler] = [logging.StreamHandler()]
    if settings.environment == "production":
        logs_dir = BACKEND_DIR / "logs"
        logs_dir.mkdir(parents=True, exist_ok=True)
        handlers.append(
            logging.handlers.RotatingFileHandler(
                logs_dir / "routine.log",
                maxBytes=10 * 1024 * 1024,
                backupCount=5,
                encoding="utf-8",
            )
        )
    for handler in handlers:
        handler.setFormatter(formatter)

    logging.basicConfig(level=level, handlers=handlers)

    # RequestLoggingMiddleware already writes one line per request.
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)
