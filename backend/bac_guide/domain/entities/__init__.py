from .answer import AnswerEvent, AnswerEventKind, GenerationPath
from .chat_message import ChatMessage, TokenUsage, ChatCompletionResult
from .ingestion import BatchSummary, IngestionResult
from .outcome import FailureCategory, Outcome
from .resource import Resource, ResourceType
from .resource_chunk import ChunkMetadata, ResourceChunk
from .retrieval import ResolvedContext, RetrievalSource, RetrievedChunk

__all__ = [
    "AnswerEvent",
    "AnswerEventKind",
    "GenerationPath",
    "ChatMessage",
    "TokenUsage",
    "ChatCompletionResult",
    "BatchSummary",
    "IngestionResult",
    "FailureCategory",
    "Outcome",
    "Resource",
    "ResourceType",
    "ChunkMetadata",
    "ResourceChunk",
    "ResolvedContext",
    "RetrievalSource",
    "RetrievedChunk",
]
