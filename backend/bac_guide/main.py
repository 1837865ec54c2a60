"""FastAPI application factory."""

import logging
from contextlib import asynccontextmanager
from collections.abc import AsyncIterator

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from bac_guide.config import get_settings
from bac_guide.infrastructure.database.session import init_schema
from bac_guide.infrastructure.dependencies import build_container
from bac_guide.infrastructure.logging.log_config import setup_logging
from bac_guide.presentation.api.v1.router import router as v1_router

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Application lifespan: wire services, create tables, release pools on shutdown."""
    settings = get_settings()
    setup_logging(settings)

    container = build_container(settings)
    app.state.container = container

    # The API still answers (from general knowledge) when the store is down.
    try:
        await init_schema(container.engine)
    except Exception:
        logger.exception("Could not initialise the database schema; retrieval will degrade")

    logger.info(
        "%s %s started (env=%s, chat_model=%s, embedding_model=%s)",
        settings.app_title,
        settings.app_version,
        settings.app_env,
        settings.chat_model,
        settings.embedding_model,
    )

    yield

    await container.close()


def create_app() -> FastAPI:
    """Factory function that builds and configures the FastAPI application."""
    settings = get_settings()

    app = FastAPI(
        title=settings.app_title,
        version=settings.app_version,
        lifespan=lifespan,
    )

    # CORS middleware
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(v1_router, prefix="/api")

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "bac_guide.main:app",
        host="0.0.0.0",
        port=8020,
        reload=True,
    )
