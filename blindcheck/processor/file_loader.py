import mimetypes
from pathlib import Path

from blindcheck.processor.exceptions import FileReadError
from blindcheck.processor.models import SourceFile

# leading bytes -> MIME type, for files without a usable extension
MAGIC_NUMBERS: list[tuple[bytes, str]] = [
    (b"%PDF", "application/pdf"),
    (b"\x89PNG\r\n\x1a\n", "image/png"),
    (b"\xff\xd8\xff", "image/jpeg"),
    (b"II*\x00", "image/tiff"),
    (b"MM\x00*", "image/tiff"),
]


def sniff_mime_type(data: bytes) -> str | None:
    for prefix, mime_type in MAGIC_NUMBERS:
        if data.startswith(prefix):
            return mime_type
    return None


class FileLoader:
    """Reads an input path into a SourceFile with a best-guess MIME type."""

    def load(self, path: Path) -> SourceFile:
        """Read file bytes from disk.

        Raises:
            FileReadError: if the path is missing, not a file, or unreadable.
        """
        if not path.is_file():
            raise FileReadError(f"File not found: {path}")
        try:
            data = path.read_bytes()
        except OSError as exc:
            raise FileReadError(f"Could not read {path}: {exc}") from exc
        mime_type, _ = mimetypes.guess_type(path.name)
        return SourceFile(
            name=path.name,
            data=data,
            mime_type=mime_type or sniff_mime_type(data),
        )
