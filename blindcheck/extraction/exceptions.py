class ExtractionError(Exception):
    """Base exception for format collaborator errors."""


class MalformedContainerError(ExtractionError):
    """Raised when the file bytes cannot be decoded at all."""


class PartialExtractionError(ExtractionError):
    """Raised when a secondary metadata source fails while the primary one worked."""
