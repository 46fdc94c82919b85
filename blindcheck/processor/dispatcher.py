from blindcheck.processor.exceptions import LegacyFormatUnsupportedError, UnsupportedFormatError
from blindcheck.processor.models import SourceFile
from blindcheck.processor.strategies import Strategy

EXTENSIONS: dict[str, str] = {
    "pdf": "pdf",
    "docx": "docx",
    "pptx": "pptx",
    "xlsx": "xlsx",
    "csv": "csv",
    "tsv": "csv",
    "json": "json",
    "md": "markdown",
    "markdown": "markdown",
    "txt": "text",
    "jpg": "jpeg",
    "jpeg": "jpeg",
    "png": "png",
    "tif": "tiff",
    "tiff": "tiff",
    "svg": "svg",
}
MIME_TYPES: dict[str, str] = {
    "application/pdf": "pdf",
    "application/vnd.openxmlformats-officedocument.wordprocessingml.document": "docx",
    "application/vnd.openxmlformats-officedocument.presentationml.presentation": "pptx",
    "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet": "xlsx",
    "text/csv": "csv",
    "text/tab-separated-values": "csv",
    "application/json": "json",
    "text/markdown": "markdown",
    "text/x-markdown": "markdown",
    "text/plain": "text",
    "image/jpeg": "jpeg",
    "image/png": "png",
    "image/tiff": "tiff",
    "image/svg+xml": "svg",
}
LEGACY_EXTENSIONS: frozenset[str] = frozenset({"doc", "xls", "ppt"})
LEGACY_MIME_TYPES: dict[str, str] = {
    "application/msword": "doc",
    "application/vnd.ms-excel": "xls",
    "application/vnd.ms-powerpoint": "ppt",
}


class FormatDispatcher:
    """Maps a file to its strategy: extension first, MIME type as fallback."""

    def __init__(self, strategies: dict[str, Strategy]) -> None:
        self._strategies = strategies

    def format_key(self, source: SourceFile) -> str:
        """Return the format key for *source*.

        Raises:
            LegacyFormatUnsupportedError: for .doc, .xls and .ppt files.
            UnsupportedFormatError: if nothing matches.
        """
        extension = source.extension
        if extension in LEGACY_EXTENSIONS:
            raise LegacyFormatUnsupportedError(extension)
        if extension in EXTENSIONS:
            return EXTENSIONS[extension]

        mime_type = (source.mime_type or "").split(";", 1)[0].strip().lower()
        if mime_type in LEGACY_MIME_TYPES:
            raise LegacyFormatUnsupportedError(LEGACY_MIME_TYPES[mime_type])
        if mime_type in MIME_TYPES:
            return MIME_TYPES[mime_type]
        raise UnsupportedFormatError()

    def resolve(self, source: SourceFile) -> Strategy:
        key = self.format_key(source)
        strategy = self._strategies.get(key)
        if strategy is None:
            raise UnsupportedFormatError()
        return strategy
