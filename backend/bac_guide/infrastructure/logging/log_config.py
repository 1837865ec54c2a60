"""Centralized logging configuration.

Applies per-category log levels from Settings so that noisy loggers
(SQLAlchemy statements, httpx/httpcore, aiosqlite) can be silenced without
hiding the ingestion and query pipeline output.

Usage:
    from bac_guide.infrastructure.logging.log_config import setup_logging
    setup_logging()   # Once at startup: API lifespan or ingestion CLI
"""

import logging
import sys

from bac_guide.config import Settings, get_settings


# Logger names per Settings field. PipelineLogger instances log under
# their component name, not the module path.
_CATEGORY_MAP: dict[str, list[str]] = {
    "log_level_sql": [
        "sqlalchemy.engine",
        "sqlalchemy.pool",
        "aiosqlite",
        "bac_guide.infrastructure.database",
    ],
    "log_level_http": [
        "httpx",
        "httpcore",
    ],
    "log_level_uvicorn": [
        "uvicorn",
        "uvicorn.access",
        "uvicorn.error",
    ],
    "log_level_pipeline": [
        "DocumentIngestor",
        "QueryResolver",
        "AnswerStreamer",
        "bac_guide.application.services",
        "bac_guide.infrastructure.extractors",
    ],
    "log_level_openrouter": [
        "bac_guide.infrastructure.openrouter",
    ],
}

_LOG_FORMAT = "%(asctime)s %(levelname)-8s %(name)s: %(message)s"


def setup_logging(settings: Settings | None = None) -> dict[str, int]:
    """Configure Python logging levels from application settings.

    Returns the level applied to each configured logger name, which the
    health check and tests use to see what is in effect.
    """
    settings = settings or get_settings()
    applied: dict[str, int] = {}

    root = logging.getLogger()
    root.setLevel(_parse_level(settings.log_level))

    # uvicorn installs its own handlers; the CLI and tests do not
    if not root.handlers:
        handler = logging.StreamHandler(sys.stderr)
        handler.setFormatter(logging.Formatter(_LOG_FORMAT, datefmt="%H:%M:%S"))
        root.addHandler(handler)

    for settings_field, logger_names in _CATEGORY_MAP.items():
        level = _parse_level(getattr(settings, settings_field, "INFO"))
        for name in logger_names:
            logging.getLogger(name).setLevel(level)
            applied[name] = level

    logging.getLogger(__name__).debug(
        "Logging configured: root=%s sql=%s http=%s pipeline=%s openrouter=%s",
        settings.log_level,
        settings.log_level_sql,
        settings.log_level_http,
        settings.log_level_pipeline,
        settings.log_level_openrouter,
    )
    return applied


def _parse_level(raw: str) -> int:
    """Convert a level name string to a logging constant, defaulting to INFO."""
    numeric = getattr(logging, str(raw).upper(), None)
    if isinstance(numeric, int):
        return numeric
    return logging.INFO
