from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import ClassVar

PropertyValue = str | int | bool | list[str] | dict[str, int]
RawProperties = dict[str, PropertyValue]

# Keys the analysis itself writes into a result's metadata. Free-form
# properties read from a file (PNG text chunks) must never land on them.
RESERVED_PROPERTY_KEYS: frozenset[str] = frozenset(
    {
        "error",
        "note",
        "fileType",
        "width",
        "height",
        "format",
        "hasGpsData",
        "emailsFound",
        "urlsFound",
        "acknowledgementsDetected",
        "acknowledgementsExcerpt",
        "fundingDetected",
        "fundingMentions",
        "grantIds",
        "affiliationsDetected",
        "affiliationsGuesses",
        "nlpAnalysis",
        "nlpModel",
        "nlpAnalysisNote",
        "nlpFallbackReason",
        "metadataNamedEntities",
        "metadataNamedEntityCount",
    }
)


@dataclass(frozen=True)
class PositionedText:
    """One addressable unit of a document: page, slide, sheet, row or line."""

    unit_index: int
    text: str


class BaseFormatExtractor(ABC):
    """Contract for all format collaborators.

    Property keys use the camelCase names of the output record (``author``,
    ``lastModifiedBy``, ``creationDate``...). Every method takes the raw file
    bytes, so calls are independent and may fail independently.
    """

    file_type: ClassVar[str] = ""

    @abstractmethod
    def get_raw_properties(self, data: bytes) -> RawProperties:
        """Return the document's own metadata.

        Raises:
            MalformedContainerError: if the bytes cannot be decoded.
        """

    @abstractmethod
    def get_positioned_text(self, data: bytes) -> list[PositionedText]:
        """Return the document text split into 1-based units.

        Raises:
            MalformedContainerError: if the bytes cannot be decoded.
        """

    def get_link_targets(self, data: bytes) -> list[PositionedText]:
        """Return hyperlink targets (``mailto:`` or URLs) with their unit."""
        _ = data
        return []

    def get_supplemental_properties(self, data: bytes) -> RawProperties:
        """Return metadata from a secondary namespace such as XMP.

        Raises:
            PartialExtractionError: if the secondary source is unreadable.
        """
        _ = data
        return {}

    def get_exif(self, data: bytes) -> dict[str, str]:
        """Return every EXIF tag as display strings (images only)."""
        _ = data
        return {}
