from typing import ClassVar

import pymupdf

from blindcheck.extraction.base import BaseFormatExtractor, PositionedText, RawProperties
from blindcheck.extraction.exceptions import MalformedContainerError


class PyMuPdfAdapter(BaseFormatExtractor):
    """Extracts PDF document info and per-page text using PyMuPDF."""

    file_type = "PDF Document"

    INFO_KEYS: ClassVar[dict[str, str]] = {
        "title": "title",
        "author": "author",
        "subject": "subject",
        "keywords": "keywords",
        "creator": "creator",
        "producer": "producer",
        "creationDate": "creationDate",
        "modDate": "modificationDate",
    }

    def get_raw_properties(self, data: bytes) -> RawProperties:
        try:
            with pymupdf.open(stream=data, filetype="pdf") as doc:  # type: ignore[no-untyped-call]
                info = doc.metadata or {}
                properties: RawProperties = {"pages": doc.page_count}
        except Exception as exc:
            raise MalformedContainerError(f"pymupdf metadata read failed: {exc}") from exc
        for source, target in self.INFO_KEYS.items():
            value = info.get(source)
            if isinstance(value, str) and value.strip():
                properties[target] = value.strip()
        return properties

    def get_positioned_text(self, data: bytes) -> list[PositionedText]:
        try:
            with pymupdf.open(stream=data, filetype="pdf") as doc:  # type: ignore[no-untyped-call]
                return [
                    PositionedText(unit_index=number, text=page.get_text())
                    for number, page in enumerate(doc, start=1)
                ]
        except Exception as exc:
            raise MalformedContainerError(f"pymupdf extraction failed: {exc}") from exc
