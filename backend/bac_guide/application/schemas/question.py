"""Pydantic v2 schemas (DTOs) for the question endpoint."""

from pydantic import BaseModel, Field


class QuestionRequest(BaseModel):
    """Request body for POST /api/v1/chat.

    Documented for OpenAPI only: the endpoint reads the raw body so that
    malformed JSON and a missing question get their own error messages.
    """

    question: str = Field(..., max_length=1000, examples=["Quelle est la moyenne minimale pour la filière médecine ?"])


class AnswerResponse(BaseModel):
    """Non-streamed answer, returned when generation fell back before any token."""

    answer: str


class ErrorResponse(BaseModel):
    error: str
    answer: str | None = None  # apology text on 500s
