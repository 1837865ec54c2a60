from .knowledge_store import SQLAlchemyKnowledgeStore

__all__ = [
    "SQLAlchemyKnowledgeStore",
]
