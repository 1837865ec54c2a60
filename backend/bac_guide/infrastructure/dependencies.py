"""Dependency wiring: connects infrastructure adapters to application services.

The container is built once per process (API lifespan or ingestion CLI)
and owns the shared resources: the database engine and the pooled httpx
client used by both OpenRouter adapters. FastAPI endpoints reach it via
``request.app.state.container``; tests swap services with
``app.dependency_overrides``.
"""

import logging
from dataclasses import dataclass

import httpx
from fastapi import Depends, Request
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker

from bac_guide.application.services import (
    AnswerStreamer,
    DocumentIngestor,
    QueryResolver,
)
from bac_guide.config import Settings, get_settings
from bac_guide.infrastructure.database.models import EMBEDDING_DIMENSIONS
from bac_guide.infrastructure.database.repositories import SQLAlchemyKnowledgeStore
from bac_guide.infrastructure.database.session import (
    create_engine_from_settings,
    create_session_factory,
)
from bac_guide.infrastructure.extractors.multi_format_text_extractor import MultiFormatTextExtractor
from bac_guide.infrastructure.openrouter import OpenRouterClient, OpenRouterEmbeddingProvider

logger = logging.getLogger(__name__)


@dataclass
class ServiceContainer:
    settings: Settings
    engine: AsyncEngine
    session_factory: async_sessionmaker[AsyncSession]
    http_client: httpx.AsyncClient
    knowledge_store: SQLAlchemyKnowledgeStore
    embedding_provider: OpenRouterEmbeddingProvider
    chat_provider: OpenRouterClient
    text_extractor: MultiFormatTextExtractor
    query_resolver: QueryResolver
    answer_streamer: AnswerStreamer
    document_ingestor: DocumentIngestor

    async def close(self) -> None:
        """Release the pooled HTTP connections and the database engine."""
        await self.http_client.aclose()
        await self.engine.dispose()


def build_container(settings: Settings | None = None) -> ServiceContainer:
    """Build every adapter and service from settings."""
    settings = settings or get_settings()
    if settings.embedding_dimensions != EMBEDDING_DIMENSIONS:
        raise ValueError(
            f"EMBEDDING_DIMENSIONS={settings.embedding_dimensions} does not match the "
            f"resource_chunks.embedding column dimension ({EMBEDDING_DIMENSIONS})"
        )

    if not settings.openrouter_api_key.strip():
        logger.warning(
            "OPENROUTER_API_KEY is not configured; embedding and generation calls will fail "
            "and questions will be answered with apologies."
        )

    engine = create_engine_from_settings(settings)
    session_factory = create_session_factory(engine)
    http_client = httpx.AsyncClient(timeout=settings.provider_timeout_seconds)

    knowledge_store = SQLAlchemyKnowledgeStore(session_factory)
    embedding_provider = OpenRouterEmbeddingProvider(
        api_key=settings.openrouter_api_key,
        base_url=settings.openrouter_base_url,
        app_name=settings.openrouter_app_name,
        model=settings.embedding_model,
        model_dimensions=settings.embedding_dimensions,
        http_client=http_client,
    )
    chat_provider = OpenRouterClient(
        api_key=settings.openrouter_api_key,
        base_url=settings.openrouter_base_url,
        app_name=settings.openrouter_app_name,
        http_client=http_client,
    )
    text_extractor = MultiFormatTextExtractor()

    return ServiceContainer(
        settings=settings,
        engine=engine,
        session_factory=session_factory,
        http_client=http_client,
        knowledge_store=knowledge_store,
        embedding_provider=embedding_provider,
        chat_provider=chat_provider,
        text_extractor=text_extractor,
        query_resolver=QueryResolver(
            knowledge_store,
            embedding_provider,
            top_k=settings.retrieval_top_k,
        ),
        answer_streamer=AnswerStreamer(
            chat_provider,
            model=settings.chat_model,
            temperature=settings.generation_temperature,
            max_tokens=settings.generation_max_tokens,
            stream_timeout_seconds=settings.stream_timeout_seconds,
        ),
        document_ingestor=DocumentIngestor(
            knowledge_store,
            embedding_provider,
            text_extractor,
            chunk_size=settings.chunk_size,
            min_chunk_chars=settings.chunk_min_chars,
            embedding_delay_seconds=settings.embedding_delay_seconds,
            embedding_pause_every=settings.embedding_pause_every,
            embedding_pause_seconds=settings.embedding_pause_seconds,
        ),
    )


# ── FastAPI dependencies ──────────────────────────────────────────────


def get_container(request: Request) -> ServiceContainer:
    """The container built by the application lifespan."""
    return request.app.state.container


def get_query_resolver(
    container: ServiceContainer = Depends(get_container),
) -> QueryResolver:
    return container.query_resolver


def get_answer_streamer(
    container: ServiceContainer = Depends(get_container),
) -> AnswerStreamer:
    return container.answer_streamer
