"""Office Open XML collaborators (docx, pptx, xlsx).

Document properties come straight from ``docProps/core.xml`` and
``docProps/app.xml`` inside the zip container; body text and hyperlinks come
from python-docx, python-pptx and openpyxl.
"""

import io
import xml.etree.ElementTree as ET
import zipfile
from collections.abc import Iterator
from typing import Any, ClassVar

import docx
import openpyxl
from pptx import Presentation

from blindcheck.extraction.base import BaseFormatExtractor, PositionedText, RawProperties
from blindcheck.extraction.exceptions import MalformedContainerError, PartialExtractionError

CORE_PROPERTIES_PATH = "docProps/core.xml"
APP_PROPERTIES_PATH = "docProps/app.xml"


def _local_name(tag: str) -> str:
    return tag.rsplit("}", 1)[-1]


def _read_part(data: bytes, path: str) -> ET.Element | None:
    with zipfile.ZipFile(io.BytesIO(data)) as zf:
        if path not in zf.namelist():
            return None
        return ET.fromstring(zf.read(path))


def _children_by_local_name(root: ET.Element) -> dict[str, str]:
    values: dict[str, str] = {}
    for child in root:
        text = (child.text or "").strip()
        if text:
            values[_local_name(child.tag)] = text
    return values


def read_core_properties(data: bytes) -> RawProperties:
    """Read Dublin Core properties; ``creator`` is also reported as ``author``."""
    try:
        root = _read_part(data, CORE_PROPERTIES_PATH)
    except (zipfile.BadZipFile, ET.ParseError) as exc:
        raise MalformedContainerError(f"Unreadable Office container: {exc}") from exc
    if root is None:
        return {}
    values = _children_by_local_name(root)
    properties: RawProperties = {}
    for source, target in OoxmlExtractor.CORE_KEYS.items():
        if source in values:
            properties[target] = values[source]
    if "creator" in values:
        properties["author"] = values["creator"]
    return properties


def read_app_properties(data: bytes) -> RawProperties:
    try:
        root = _read_part(data, APP_PROPERTIES_PATH)
    except (zipfile.BadZipFile, ET.ParseError) as exc:
        raise PartialExtractionError(f"Unreadable extended properties: {exc}") from exc
    if root is None:
        return {}
    values = _children_by_local_name(root)
    properties: RawProperties = {}
    for source, target in OoxmlExtractor.APP_KEYS.items():
        if source not in values:
            continue
        raw = values[source]
        if target in OoxmlExtractor.NUMERIC_APP_KEYS:
            try:
                properties[target] = int(raw)
            except ValueError:
                continue
        else:
            properties[target] = raw
    return properties


class OoxmlExtractor(BaseFormatExtractor):
    """Shared property handling for the three Office formats."""

    CORE_KEYS: ClassVar[dict[str, str]] = {
        "title": "title",
        "creator": "creator",
        "subject": "subject",
        "description": "description",
        "keywords": "keywords",
        "category": "category",
        "lastModifiedBy": "lastModifiedBy",
        "created": "creationDate",
        "modified": "modificationDate",
    }
    APP_KEYS: ClassVar[dict[str, str]] = {
        "Company": "company",
        "Manager": "manager",
        "Application": "application",
        "AppVersion": "appVersion",
        "Slides": "slides",
        "Pages": "pages",
        "Words": "words",
        "TotalTime": "totalTime",
    }
    NUMERIC_APP_KEYS: ClassVar[frozenset[str]] = frozenset({"slides", "pages", "words", "totalTime"})

    def get_raw_properties(self, data: bytes) -> RawProperties:
        return read_core_properties(data)

    def get_supplemental_properties(self, data: bytes) -> RawProperties:
        return read_app_properties(data)


class DocxExtractor(OoxmlExtractor):
    """Paragraphs (then table rows) of a Word document, one unit per line."""

    file_type = "Microsoft Word Document"

    def _open(self, data: bytes) -> Any:
        try:
            return docx.Document(io.BytesIO(data))
        except Exception as exc:
            raise MalformedContainerError(f"Could not parse .docx file: {exc}") from exc

    def _lines(self, document: Any) -> Iterator[tuple[Any, str]]:
        for paragraph in document.paragraphs:
            yield paragraph, paragraph.text
        for table in document.tables:
            for row in table.rows:
                yield None, " ".join(cell.text for cell in row.cells)

    def get_positioned_text(self, data: bytes) -> list[PositionedText]:
        document = self._open(data)
        return [
            PositionedText(unit_index=number, text=text)
            for number, (_, text) in enumerate(self._lines(document), start=1)
            if text.strip()
        ]

    def get_link_targets(self, data: bytes) -> list[PositionedText]:
        document = self._open(data)
        targets: list[PositionedText] = []
        for number, (paragraph, _) in enumerate(self._lines(document), start=1):
            if paragraph is None:
                continue
            for link in paragraph.hyperlinks:
                if link.address:
                    targets.append(PositionedText(unit_index=number, text=link.address))
        return targets


class PptxExtractor(OoxmlExtractor):
    """Slide text, tables and speaker notes, one unit per slide."""

    file_type = "Microsoft PowerPoint Presentation"

    def _open(self, data: bytes) -> Any:
        try:
            return Presentation(io.BytesIO(data))
        except Exception as exc:
            raise MalformedContainerError(f"Could not parse .pptx file: {exc}") from exc

    @classmethod
    def _iter_shapes(cls, shapes: Any) -> Iterator[Any]:
        for shape in shapes:
            yield shape
            if hasattr(shape, "shapes"):
                yield from cls._iter_shapes(shape.shapes)

    def get_positioned_text(self, data: bytes) -> list[PositionedText]:
        units: list[PositionedText] = []
        for number, slide in enumerate(self._open(data).slides, start=1):
            segments: list[str] = []
            for shape in self._iter_shapes(slide.shapes):
                if shape.has_text_frame and shape.text_frame.text.strip():
                    segments.append(shape.text_frame.text)
                if getattr(shape, "has_table", False):
                    for row in shape.table.rows:
                        segments.append(" ".join(cell.text for cell in row.cells))
            if slide.has_notes_slide:
                notes = slide.notes_slide.notes_text_frame
                if notes is not None and notes.text.strip():
                    segments.append(notes.text)
            text = " ".join(segments)
            if text.strip():
                units.append(PositionedText(unit_index=number, text=text))
        return units

    def get_link_targets(self, data: bytes) -> list[PositionedText]:
        targets: list[PositionedText] = []
        for number, slide in enumerate(self._open(data).slides, start=1):
            for shape in self._iter_shapes(slide.shapes):
                click_action = getattr(shape, "click_action", None)
                if click_action is not None and click_action.hyperlink.address:
                    targets.append(PositionedText(number, click_action.hyperlink.address))
                if not shape.has_text_frame:
                    continue
                for paragraph in shape.text_frame.paragraphs:
                    for run in paragraph.runs:
                        if run.hyperlink.address:
                            targets.append(PositionedText(number, run.hyperlink.address))
        return targets


class XlsxExtractor(OoxmlExtractor):
    """String cells of each worksheet, one unit per sheet."""

    file_type = "Microsoft Excel Workbook"

    def _open(self, data: bytes) -> Any:
        try:
            return openpyxl.load_workbook(io.BytesIO(data), data_only=True)
        except Exception as exc:
            raise MalformedContainerError(f"Could not parse .xlsx file: {exc}") from exc

    def get_raw_properties(self, data: bytes) -> RawProperties:
        properties = read_core_properties(data)
        workbook = self._open(data)
        properties["sheetNames"] = ", ".join(workbook.sheetnames)
        properties["numberOfSheets"] = len(workbook.sheetnames)
        return properties

    def get_positioned_text(self, data: bytes) -> list[PositionedText]:
        units: list[PositionedText] = []
        for number, sheet in enumerate(self._open(data).worksheets, start=1):
            cells = [
                cell.value
                for row in sheet.iter_rows()
                for cell in row
                if isinstance(cell.value, str) and cell.value.strip()
            ]
            if cells:
                units.append(PositionedText(unit_index=number, text=" ".join(cells)))
        return units

    def get_link_targets(self, data: bytes) -> list[PositionedText]:
        targets: list[PositionedText] = []
        for number, sheet in enumerate(self._open(data).worksheets, start=1):
            for row in sheet.iter_rows():
                for cell in row:
                    link = getattr(cell, "hyperlink", None)
                    if link is not None and link.target:
                        targets.append(PositionedText(unit_index=number, text=link.target))
        return targets
