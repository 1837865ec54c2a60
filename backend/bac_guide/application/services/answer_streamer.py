"""Answer generation with incremental delivery and cascading fallback.

    token stream → one-shot completion → static apology

Every path ends with a DONE event so a consumer never waits for more data.
"""

import asyncio
import logging
from collections.abc import AsyncGenerator, AsyncIterator, Sequence
from contextlib import aclosing

from bac_guide.application.interfaces import ChatProvider
from bac_guide.application.prompts import apology_for, build_messages
from bac_guide.domain.entities import (
    AnswerEvent,
    ChatMessage,
    FailureCategory,
    GenerationPath,
)
from bac_guide.domain.exceptions import GenerationFailure
from bac_guide.infrastructure.logging.colored_logger import PipelineLogger, PipelineStage

logger = logging.getLogger(__name__)
plog = PipelineLogger("AnswerStreamer")


class AnswerStreamer:
    """Application service that produces answer events for a question.

    Single producer (the provider stream), single consumer (the caller).
    Closing the returned generator, e.g. on client disconnect, closes the
    provider stream and its HTTP response.
    """

    def __init__(
        self,
        chat_provider: ChatProvider,
        *,
        model: str,
        temperature: float | None = 0.7,
        max_tokens: int | None = 1000,
        stream_timeout_seconds: float = 120.0,
    ):
        self._provider = chat_provider
        self._model = model
        self._temperature = temperature
        self._max_tokens = max_tokens
        self._stream_timeout = stream_timeout_seconds

    async def answer(
        self,
        question: str,
        context_text: str,
        retrieval_failures: Sequence[FailureCategory] = (),
    ) -> AsyncIterator[AnswerEvent]:
        """Yield answer events for the question, ending with DONE.

        When no answer can be generated, the apology names the first
        dependency that failed during retrieval, else the generation service.
        """
        messages = build_messages(question, context_text)
        apology = apology_for(retrieval_failures[0] if retrieval_failures else FailureCategory.GENERATION)
        plog.step_start(PipelineStage.GENERATION, "Streaming answer", model=self._model)

        streamed = 0
        try:
            async with aclosing(self._stream_tokens(messages)) as tokens:
                async for token in tokens:
                    streamed += 1
                    yield AnswerEvent.token(token)
        except GenerationFailure as e:
            plog.warning(PipelineStage.GENERATION, "Stream failed, falling back to one-shot completion", reason=e.message, tokens=streamed)
        except asyncio.TimeoutError:
            plog.warning(PipelineStage.GENERATION, "Stream timed out, falling back to one-shot completion", timeout_s=self._stream_timeout, tokens=streamed)
        except Exception as e:
            logger.exception("Unexpected streaming error")
            plog.warning(PipelineStage.GENERATION, "Stream broke, falling back to one-shot completion", reason=type(e).__name__, tokens=streamed)
        else:
            if streamed:
                plog.step_complete(PipelineStage.GENERATION, "Answer streamed", tokens=streamed)
                yield AnswerEvent.done(GenerationPath.STREAM)
                return
            plog.warning(PipelineStage.GENERATION, "Stream ended without any token, falling back to one-shot completion")

        fallback = await self._complete_once(messages, apology)
        yield fallback
        yield AnswerEvent.done(fallback.path)

    async def _stream_tokens(self, messages: list[ChatMessage]) -> AsyncGenerator[str, None]:
        """Yield non-empty tokens until the provider finishes or the session deadline passes."""
        stream = self._provider.stream_text(
            messages,
            self._model,
            temperature=self._temperature,
            max_tokens=self._max_tokens,
        )
        loop = asyncio.get_running_loop()
        deadline = loop.time() + self._stream_timeout
        try:
            while True:
                remaining = deadline - loop.time()
                if remaining <= 0:
                    raise asyncio.TimeoutError()
                try:
                    token = await asyncio.wait_for(stream.__anext__(), timeout=remaining)
                except StopAsyncIteration:
                    return
                if token:
                    yield token
        finally:
            await stream.aclose()

    async def _complete_once(self, messages: list[ChatMessage], apology: str) -> AnswerEvent:
        try:
            result = await asyncio.wait_for(
                self._provider.complete(
                    messages,
                    self._model,
                    temperature=self._temperature,
                    max_tokens=self._max_tokens,
                ),
                timeout=self._stream_timeout,
            )
        except GenerationFailure as e:
            plog.step_error(PipelineStage.GENERATION, "One-shot completion failed, sending apology", error=e)
            return AnswerEvent.answer(apology, GenerationPath.APOLOGY)
        except asyncio.TimeoutError as e:
            plog.step_error(PipelineStage.GENERATION, "One-shot completion timed out, sending apology", error=e)
            return AnswerEvent.answer(apology, GenerationPath.APOLOGY)
        except Exception as e:
            logger.exception("Unexpected one-shot completion error")
            plog.step_error(PipelineStage.GENERATION, "One-shot completion broke, sending apology", error=e)
            return AnswerEvent.answer(apology, GenerationPath.APOLOGY)

        if not result.content or not result.content.strip():
            plog.warning(PipelineStage.GENERATION, "One-shot completion was empty, sending apology")
            return AnswerEvent.answer(apology, GenerationPath.APOLOGY)

        plog.step_complete(PipelineStage.GENERATION, "Answer generated (one-shot)", characters=len(result.content))
        return AnswerEvent.answer(result.content, GenerationPath.ONE_SHOT)
