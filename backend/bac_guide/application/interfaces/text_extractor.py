"""Abstract interface (port) for text extraction from various file formats."""

from abc import ABC, abstractmethod


class TextExtractor(ABC):
    """Port for text extraction: implemented in the infrastructure layer."""

    @abstractmethod
    async def extract_text(self, file_path: str) -> str:
        """Extract the plain text of a document.

        Returns an empty string for documents without a text layer.

        Raises:
            ExtractionFailure: If the file is missing, unsupported or unreadable.
        """
        ...

    @abstractmethod
    def supports(self, file_path: str) -> bool:
        """Check if the extractor can read the given file."""
        ...
