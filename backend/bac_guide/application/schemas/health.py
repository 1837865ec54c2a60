"""Pydantic v2 schema for the health check."""

from pydantic import BaseModel


class HealthResponse(BaseModel):
    status: str
    version: str
    environment: str
    streaming: bool
    capabilities: list[str]
    timestamp: str
