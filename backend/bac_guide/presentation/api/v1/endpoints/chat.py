"""Question endpoint: answers a student's question, streamed over SSE when possible."""

import json
import logging
from collections.abc import AsyncIterator
from contextlib import aclosing

from fastapi import APIRouter, Depends, Request, status
from fastapi.responses import JSONResponse, StreamingResponse

from bac_guide.application.prompts import apology_for, categorize_failure
from bac_guide.application.schemas import AnswerResponse, ErrorResponse, QuestionRequest
from bac_guide.application.services import AnswerStreamer, QueryResolver
from bac_guide.domain.entities import AnswerEvent, AnswerEventKind, FailureCategory
from bac_guide.domain.exceptions import QuestionValidationError
from bac_guide.domain.validation import MISSING, validate_question
from bac_guide.infrastructure.dependencies import get_answer_streamer, get_query_resolver

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Chat"])

SSE_HEADERS = {
    "Cache-Control": "no-cache",
    "Connection": "keep-alive",
    "X-Accel-Buffering": "no",
}


def encode_event(event: AnswerEvent) -> str:
    """Render one answer event as an SSE frame."""
    if event.kind is AnswerEventKind.DONE:
        return "data: [DONE]\n\n"
    key = "content" if event.kind is AnswerEventKind.TOKEN else "answer"
    return f"data: {json.dumps({key: event.text}, ensure_ascii=False)}\n\n"


async def _sse_frames(first: AnswerEvent, events: AsyncIterator[AnswerEvent]) -> AsyncIterator[str]:
    # The response has started: failures can only be reported in-band.
    async with aclosing(events):
        try:
            yield encode_event(first)
            async for event in events:
                yield encode_event(event)
        except Exception:
            logger.exception("Answer stream broke after the response started")
            yield encode_event(AnswerEvent.answer(apology_for(FailureCategory.GENERATION), first.path))
            yield encode_event(AnswerEvent.done(first.path))


def _error(status_code: int, message: str, answer: str | None = None) -> JSONResponse:
    body = {"error": message}
    if answer is not None:
        body["answer"] = answer
    return JSONResponse(status_code=status_code, content=body)


@router.post(
    "/chat",
    responses={
        200: {"model": AnswerResponse, "description": "SSE stream, or JSON when streaming fell back before the first token"},
        400: {"model": ErrorResponse},
        500: {"model": ErrorResponse},
    },
    openapi_extra={
        "requestBody": {
            "required": True,
            "content": {"application/json": {"schema": QuestionRequest.model_json_schema()}},
        }
    },
)
async def ask_question(
    request: Request,
    resolver: QueryResolver = Depends(get_query_resolver),
    streamer: AnswerStreamer = Depends(get_answer_streamer),
):
    """Answer a question about the Tunisian bac and university orientation.

    Retrieves context from the ingested guides, then streams the answer as
    ``data: {"content": ...}`` frames ending with ``data: [DONE]``. If the
    provider cannot stream, the answer (or an apology) comes back as plain
    JSON ``{"answer": ...}``.
    """
    try:
        body = await request.json()
    except ValueError:
        return _error(status.HTTP_400_BAD_REQUEST, "invalid JSON body")

    try:
        raw = body.get("question", MISSING) if isinstance(body, dict) else MISSING
        question = validate_question(raw)
    except QuestionValidationError as e:
        return _error(status.HTTP_400_BAD_REQUEST, e.message)

    try:
        context = await resolver.resolve(question)
        events = streamer.answer(question, context.context_text, context.failures)
        first = await anext(events)
    except Exception as e:
        logger.exception("Question could not be answered")
        return _error(
            status.HTTP_500_INTERNAL_SERVER_ERROR,
            "temporary technical error",
            apology_for(categorize_failure(e)),
        )

    if first.kind is AnswerEventKind.TOKEN:
        return StreamingResponse(
            _sse_frames(first, events),
            media_type="text/event-stream",
            headers=SSE_HEADERS,
        )

    await events.aclose()
    answer = first.text if first.kind is AnswerEventKind.ANSWER else apology_for(FailureCategory.GENERATION)
    return JSONResponse(content={"answer": answer})
