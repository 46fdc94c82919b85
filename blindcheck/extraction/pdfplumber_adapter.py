import io
from typing import ClassVar

import pdfplumber

from blindcheck.extraction.base import BaseFormatExtractor, PositionedText, RawProperties
from blindcheck.extraction.exceptions import MalformedContainerError


class PdfPlumberAdapter(BaseFormatExtractor):
    """Extracts PDF document info and per-page text using pdfplumber."""

    file_type = "PDF Document"

    INFO_KEYS: ClassVar[dict[str, str]] = {
        "Title": "title",
        "Author": "author",
        "Subject": "subject",
        "Keywords": "keywords",
        "Creator": "creator",
        "Producer": "producer",
        "CreationDate": "creationDate",
        "ModDate": "modificationDate",
    }

    def get_raw_properties(self, data: bytes) -> RawProperties:
        try:
            with pdfplumber.open(io.BytesIO(data)) as pdf:
                info = pdf.metadata or {}
                properties: RawProperties = {"pages": len(pdf.pages)}
        except Exception as exc:
            raise MalformedContainerError(f"pdfplumber metadata read failed: {exc}") from exc
        for source, target in self.INFO_KEYS.items():
            value = info.get(source)
            if isinstance(value, bytes):
                value = value.decode("utf-8", errors="replace")
            if isinstance(value, str) and value.strip():
                properties[target] = value.strip()
        return properties

    def get_positioned_text(self, data: bytes) -> list[PositionedText]:
        try:
            with pdfplumber.open(io.BytesIO(data)) as pdf:
                return [
                    PositionedText(unit_index=number, text=page.extract_text() or "")
                    for number, page in enumerate(pdf.pages, start=1)
                ]
        except Exception as exc:
            raise MalformedContainerError(f"pdfplumber extraction failed: {exc}") from exc
