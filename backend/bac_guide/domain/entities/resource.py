"""Domain entities for ingested resources: one row per source document."""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from pathlib import Path

# Filenames containing any of these are score tables rather than guides.
_SCORE_KEYWORDS = ("score", "moyenne", "bareme", "barème")


class ResourceType(str, Enum):
    """Classification of a source document."""

    GUIDE = "guide"
    SCORE = "score"

    @classmethod
    def from_filename(cls, filename: str) -> "ResourceType":
        """Classify a document from its filename alone."""
        name = Path(filename).name.lower()
        if any(keyword in name for keyword in _SCORE_KEYWORDS):
            return cls.SCORE
        return cls.GUIDE


@dataclass
class Resource:
    """Core domain entity: an ingested source document.

    A resource is identified by its filename; re-ingesting the same
    filename reuses the resource and replaces its chunks.
    """

    filename: str
    title: str
    type: ResourceType = ResourceType.GUIDE
    id: str | None = None
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    @classmethod
    def for_file(cls, file_path: str, resource_type: ResourceType) -> "Resource":
        """Build a new, unsaved resource for a document on disk."""
        path = Path(file_path)
        return cls(filename=path.name, title=path.stem, type=resource_type)
