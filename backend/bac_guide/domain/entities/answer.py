"""Domain entities for incremental answer delivery."""

from dataclasses import dataclass
from enum import Enum


class AnswerEventKind(str, Enum):
    TOKEN = "token"    # one streamed fragment
    ANSWER = "answer"  # a complete answer from a fallback path
    DONE = "done"      # terminal sentinel, always last


class GenerationPath(str, Enum):
    """Which generation strategy produced an event."""

    STREAM = "stream"
    ONE_SHOT = "one_shot"
    APOLOGY = "apology"


@dataclass(frozen=True)
class AnswerEvent:
    kind: AnswerEventKind
    text: str = ""
    path: GenerationPath = GenerationPath.STREAM

    @classmethod
    def token(cls, text: str) -> "AnswerEvent":
        return cls(AnswerEventKind.TOKEN, text, GenerationPath.STREAM)

    @classmethod
    def answer(cls, text: str, path: GenerationPath) -> "AnswerEvent":
        return cls(AnswerEventKind.ANSWER, text, path)

    @classmethod
    def done(cls, path: GenerationPath) -> "AnswerEvent":
        return cls(AnswerEventKind.DONE, "", path)
