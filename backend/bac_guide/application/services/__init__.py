from .answer_streamer import AnswerStreamer
from .document_ingestor import DocumentIngestor
from .query_resolver import QueryResolver, assemble_context
from .text_chunker import chunk_text, split_sentences

__all__ = [
    "AnswerStreamer",
    "DocumentIngestor",
    "QueryResolver",
    "assemble_context",
    "chunk_text",
    "split_sentences",
]
