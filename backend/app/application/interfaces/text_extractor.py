"""Abstract interface (port) for text extraction from various file formats."""

from abc import ABC, abstractmethod
from dataclasses import dataclass

from app.domain.entities.media_type import MediaTypeKind


@dataclass
class TextExtractionResult:
    """Result of extracting text from a blob."""

    text: str
    kind: MediaTypeKind = MediaTypeKind.UNKNOWN
    page_count: int | None = None
    error: str | None = None  # set when the content could not be parsed

    @property
    def failed(self) -> bool:
        return self.error is not None

    @property
    def is_empty(self) -> bool:
        return not self.text.strip()


class TextExtractor(ABC):
    """Port for text extraction — implemented in the infrastructure layer."""

    @abstractmethod
    async def extract(
        self,
        content: bytes,
        media_type: str,
        filename: str | None = None,
    ) -> TextExtractionResult:
        """Extract plain text from raw file content.

        Never raises for corrupt or unsupported content: the result carries
        empty text and an ``error`` message instead.

        Args:
            content: The downloaded blob.
            media_type: Declared MIME type of the blob.
            filename: Optional name or blob reference, used for extension sniffing.
        """
        ...

    @abstractmethod
    def can_extract(self, media_type: str) -> bool:
        """Check if the extractor has a dedicated handler for the given MIME type."""
        ...
