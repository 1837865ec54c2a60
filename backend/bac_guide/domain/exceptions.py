"""Domain-specific exceptions: framework-independent."""


class QuestionValidationError(Exception):
    """Raised when an incoming question fails basic validation."""

    def __init__(self, message: str):
        self.message = message
        super().__init__(message)


class ExtractionFailure(Exception):
    """Raised when no usable text can be read from a source document."""

    def __init__(self, file_path: str, reason: str):
        self.file_path = file_path
        self.reason = reason
        super().__init__(f"{file_path}: {reason}")


class EmbeddingDimensionError(Exception):
    """Raised when a vector does not have the deployment's dimension."""

    def __init__(self, expected: int, actual: int):
        self.expected = expected
        self.actual = actual
        super().__init__(f"expected {expected} dimensions, got {actual}")


class ProviderError(Exception):
    """Raised when an external AI provider returns an error.

    Provider-agnostic: OpenRouter or any OpenAI-compatible endpoint.
    """

    def __init__(self, provider: str, status_code: int, message: str):
        self.provider = provider
        self.status_code = status_code
        self.message = message
        super().__init__(f"[{provider}] {status_code}: {message}")


class EmbeddingFailure(ProviderError):
    """The embedding provider failed or returned an unusable vector."""


class GenerationFailure(ProviderError):
    """The generation provider failed while streaming or completing."""


class KnowledgeStoreError(Exception):
    """Raised when the knowledge store cannot complete an operation."""

    def __init__(self, operation: str, message: str):
        self.operation = operation
        self.message = message
        super().__init__(f"{operation} failed: {message}")


class RetrievalFailure(KnowledgeStoreError):
    """The vector index or keyword search could not serve a query."""
