"""OpenRouter-based embedding provider: calls the /embeddings endpoint.

Uses the same httpx client pattern as OpenRouterClient.
Default model: openai/text-embedding-ada-002 (1536 dimensions).
"""

import logging
from typing import Any

import httpx

from bac_guide.application.interfaces.embedding_provider import EmbeddingProvider
from bac_guide.domain.exceptions import EmbeddingFailure

logger = logging.getLogger(__name__)

# nomic-embed-text models require a task prefix; OpenAI models do not.
_NOMIC_DOCUMENT_PREFIX = "search_document: "
_NOMIC_QUERY_PREFIX = "search_query: "


class OpenRouterEmbeddingProvider(EmbeddingProvider):
    """Infrastructure adapter: generates embeddings via OpenRouter /embeddings API."""

    def __init__(
        self,
        api_key: str,
        base_url: str = "https://openrouter.ai/api/v1",
        app_name: str = "Guide El Bac",
        model: str = "openai/text-embedding-ada-002",
        model_dimensions: int = 1536,
        http_client: httpx.AsyncClient | None = None,
        timeout: float = 60.0,
    ):
        self._api_key = api_key
        self._base_url = base_url.rstrip("/")
        self._app_name = app_name
        self._model = model
        self._dimensions = model_dimensions
        self._http_client = http_client
        self._timeout = timeout

    @property
    def provider_name(self) -> str:
        return "openrouter"

    @property
    def dimensions(self) -> int:
        return self._dimensions

    def _get_headers(self) -> dict[str, str]:
        return {
            "Authorization": f"Bearer {self._api_key}",
            "Content-Type": "application/json",
            "X-Title": self._app_name,
        }

    async def _get_client(self) -> httpx.AsyncClient:
        if self._http_client is not None:
            return self._http_client
        return httpx.AsyncClient(timeout=self._timeout)

    @property
    def _is_nomic(self) -> bool:
        """Whether the configured model is a nomic model requiring task prefixes."""
        return "nomic" in self._model.lower()

    def _failure(self, status_code: int, message: str) -> EmbeddingFailure:
        return EmbeddingFailure(
            provider=self.provider_name, status_code=status_code, message=message
        )

    def _check_vector(self, vector: Any, status_code: int) -> None:
        """Reject anything but a list of numbers of the configured dimension."""
        if not isinstance(vector, list) or not all(
            isinstance(v, (int, float)) and not isinstance(v, bool) for v in vector
        ):
            raise self._failure(
                status_code,
                f"Malformed embedding response: expected a list of numbers, got {type(vector).__name__}",
            )
        if len(vector) != self._dimensions:
            raise self._failure(
                status_code,
                f"Expected {self._dimensions} dimensions, got {len(vector)}",
            )

    async def generate_embeddings(
        self,
        texts: list[str],
        *,
        _query_mode: bool = False,
    ) -> list[list[float]]:
        """Generate embeddings for a batch of texts.

        For nomic models, applies the appropriate task prefix automatically.

        Raises:
            EmbeddingFailure: On transport errors, non-200 responses or a
                malformed body.
        """
        if not texts:
            return []

        # Apply nomic task prefix if needed
        if self._is_nomic:
            prefix = _NOMIC_QUERY_PREFIX if _query_mode else _NOMIC_DOCUMENT_PREFIX
            input_texts = [f"{prefix}{t}" for t in texts]
        else:
            input_texts = texts

        url = f"{self._base_url}/embeddings"
        payload: dict[str, Any] = {
            "model": self._model,
            "input": input_texts,
        }

        client = await self._get_client()
        should_close = self._http_client is None

        try:
            response = await client.post(
                url, headers=self._get_headers(), json=payload
            )

            if response.status_code != 200:
                error_text = response.text[:500]
                logger.error(
                    "Embedding API error %d: %s", response.status_code, error_text
                )
                raise self._failure(response.status_code, error_text)

            try:
                data = response.json()
                embeddings_data = list(data.get("data") or [])
                # Sort by index to ensure correct ordering
                embeddings_data.sort(key=lambda x: x.get("index", 0))
                result = [item["embedding"] for item in embeddings_data]
            except (ValueError, KeyError, TypeError, AttributeError) as exc:
                raise self._failure(
                    response.status_code, f"Malformed embedding response: {exc}"
                ) from exc

            if len(result) != len(texts):
                raise self._failure(
                    response.status_code,
                    f"Expected {len(texts)} embeddings, got {len(result)}",
                )
            for vector in result:
                self._check_vector(vector, response.status_code)

            logger.debug(
                "Generated %d embeddings (model=%s, dims=%d)",
                len(result),
                self._model,
                len(result[0]) if result else 0,
            )
            return result

        except httpx.HTTPError as exc:
            raise self._failure(0, f"{type(exc).__name__}: {exc}") from exc

        finally:
            if should_close:
                await client.aclose()

    async def embed(self, text: str) -> list[float]:
        """Generate the embedding of one document chunk."""
        results = await self.generate_embeddings([text])
        return results[0]

    async def embed_query(self, text: str) -> list[float]:
        """Generate a single embedding for a search query."""
        results = await self.generate_embeddings([text], _query_mode=True)
        return results[0]
