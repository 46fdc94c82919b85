class ProcessorError(Exception):
    """Base exception for all processor-related errors."""


class UnsupportedFormatError(ProcessorError):
    """Raised when neither the extension nor the MIME type maps to a strategy."""

    def __init__(self, message: str = "Unsupported file type") -> None:
        super().__init__(message)


class LegacyFormatUnsupportedError(ProcessorError):
    """Raised for binary Office formats (.doc, .xls, .ppt)."""

    def __init__(self, extension: str) -> None:
        self.extension = extension
        super().__init__(
            f"Legacy .{extension} format not supported. Please convert to .{extension}x."
        )


class FileReadError(ProcessorError):
    """Raised when an input file cannot be read from disk."""
