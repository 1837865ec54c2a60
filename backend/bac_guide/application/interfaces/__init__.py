from .chat_provider import ChatProvider
from .embedding_provider import EmbeddingProvider
from .knowledge_store import KnowledgeStore
from .text_extractor import TextExtractor

__all__ = [
    "ChatProvider",
    "EmbeddingProvider",
    "KnowledgeStore",
    "TextExtractor",
]
