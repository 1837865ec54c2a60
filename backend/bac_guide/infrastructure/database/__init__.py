from .base import Base
from .session import create_engine_from_settings, create_session_factory, init_schema
from .models import ResourceModel, ResourceChunkModel

__all__ = [
    "Base",
    "create_engine_from_settings",
    "create_session_factory",
    "init_schema",
    "ResourceModel",
    "ResourceChunkModel",
]
