from .health import HealthResponse
from .question import AnswerResponse, ErrorResponse, QuestionRequest

__all__ = [
    "AnswerResponse",
    "ErrorResponse",
    "HealthResponse",
    "QuestionRequest",
]
