"""Health check endpoint: no dependencies, always available."""

from datetime import datetime, timezone

from fastapi import APIRouter

from bac_guide.application.schemas import HealthResponse
from bac_guide.config import get_settings

router = APIRouter(tags=["Health"])

CAPABILITIES = [
    "vector_search",
    "keyword_fallback",
    "streaming",
    "one_shot_fallback",
]


@router.get("/health", response_model=HealthResponse)
async def health_check() -> HealthResponse:
    """Static liveness report; does not probe the database or the providers."""
    settings = get_settings()
    return HealthResponse(
        status="healthy",
        version=settings.app_version,
        environment=settings.app_env,
        streaming=True,
        capabilities=CAPABILITIES,
        timestamp=datetime.now(timezone.utc).isoformat(),
    )
