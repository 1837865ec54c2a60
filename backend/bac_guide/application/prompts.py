"""Prompt templates and user-facing fallback texts for the answer pipeline."""

from sqlalchemy.exc import SQLAlchemyError

from bac_guide.domain.entities import ChatMessage, FailureCategory
from bac_guide.domain.exceptions import (
    EmbeddingFailure,
    GenerationFailure,
    KnowledgeStoreError,
)

CONTEXT_SEPARATOR = "\n\n---\n\n"

NO_CONTEXT_PLACEHOLDER = "Aucun contexte spécifique trouvé dans les documents."

SYSTEM_PROMPT_TEMPLATE = """Tu es Guide El Bac, un assistant intelligent spécialisé dans l'orientation post-bac en Tunisie.
Tu aides les étudiants avec les scores du bac, l'orientation universitaire, et les conseils académiques.

Utilise les informations suivantes pour répondre à la question de l'étudiant de manière précise et utile.
Si les informations ne sont pas suffisantes dans le contexte fourni, utilise tes connaissances générales
sur le système éducatif tunisien pour donner une réponse utile.

Sois toujours encourageant et constructif dans tes réponses.

Contexte disponible:
{context}
"""

_APOLOGY_PREFIX = "Je rencontre actuellement des difficultés techniques. "

_APOLOGIES: dict[FailureCategory, str] = {
    FailureCategory.EMBEDDING: "Pouvez-vous reformuler votre question de manière plus simple ?",
    FailureCategory.STORE: (
        "Il y a un problème avec la base de données. "
        "Veuillez réessayer dans quelques instants."
    ),
    FailureCategory.GENERATION: (
        "Le service de génération de réponses est temporairement indisponible."
    ),
    FailureCategory.UNSPECIFIED: "Veuillez réessayer votre question dans quelques instants.",
}


def build_messages(question: str, context_text: str) -> list[ChatMessage]:
    """System persona with the context interpolated, then the raw question."""
    return [
        ChatMessage(role="system", content=SYSTEM_PROMPT_TEMPLATE.format(context=context_text)),
        ChatMessage(role="user", content=question),
    ]


def apology_for(category: FailureCategory) -> str:
    """Static apology shown when no answer could be generated."""
    return _APOLOGY_PREFIX + _APOLOGIES.get(category, _APOLOGIES[FailureCategory.UNSPECIFIED])


def categorize_failure(exc: BaseException) -> FailureCategory:
    """Map an exception to the dependency it points at."""
    if isinstance(exc, EmbeddingFailure):
        return FailureCategory.EMBEDDING
    if isinstance(exc, (KnowledgeStoreError, SQLAlchemyError)):
        return FailureCategory.STORE
    if isinstance(exc, GenerationFailure):
        return FailureCategory.GENERATION
    return FailureCategory.UNSPECIFIED
