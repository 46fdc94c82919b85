"""Collaborators for plain-text based formats: delimited, JSON, Markdown, text."""

import csv
import io
import json
import re
import statistics
from collections import Counter
from typing import Any, ClassVar

import yaml

from blindcheck.extraction.base import BaseFormatExtractor, PositionedText, RawProperties
from blindcheck.extraction.exceptions import MalformedContainerError, PartialExtractionError

_LINE_SPLIT_RE = re.compile(r"\r?\n")


def decode_text(data: bytes) -> str:
    try:
        return data.decode("utf-8-sig")
    except UnicodeDecodeError:
        return data.decode("latin-1")


def numbered_lines(text: str) -> list[PositionedText]:
    """Non-blank lines with their 1-based line numbers."""
    return [
        PositionedText(unit_index=number, text=line)
        for number, line in enumerate(_LINE_SPLIT_RE.split(text), start=1)
        if line.strip()
    ]


def _unique(values: list[str]) -> list[str]:
    return list(dict.fromkeys(v.strip() for v in values if v.strip()))


def _one_or_many(values: list[str]) -> str | list[str]:
    return values[0] if len(values) == 1 else values


class PlainTextExtractor(BaseFormatExtractor):
    file_type = "Plain Text"

    def get_raw_properties(self, data: bytes) -> RawProperties:
        text = decode_text(data)
        return {
            "wordCount": len(text.split()),
            "lineCount": len(_LINE_SPLIT_RE.split(text)) if text else 0,
        }

    def get_positioned_text(self, data: bytes) -> list[PositionedText]:
        return numbered_lines(decode_text(data))


class DelimitedTextExtractor(BaseFormatExtractor):
    """CSV/TSV with delimiter sniffing, header detection and column typing."""

    file_type = "CSV"

    DELIMITERS: ClassVar[dict[str, str]] = {
        ",": "comma",
        "\t": "tab",
        ";": "semicolon",
        "|": "pipe",
    }
    SAMPLE_LINES: ClassVar[int] = 20
    SAMPLE_ROWS: ClassVar[int] = 50

    _NUMBER_RE: ClassVar[re.Pattern[str]] = re.compile(r"^[+-]?\d+(?:\.\d+)?$")
    _BOOLEAN_RE: ClassVar[re.Pattern[str]] = re.compile(r"^(true|false)$", re.IGNORECASE)
    _ISO_DATE_RE: ClassVar[re.Pattern[str]] = re.compile(
        r"^\d{4}-\d{2}-\d{2}(?:[ T]\d{2}:\d{2}(?::\d{2})?)?"
    )
    _SHORT_DATE_RE: ClassVar[re.Pattern[str]] = re.compile(r"^\d{1,2}[/.-]\d{1,2}[/.-]\d{2,4}$")

    @classmethod
    def detect_delimiter(cls, text: str) -> str:
        """Prefer the separator that is frequent and consistent across lines."""
        sample = [line for line in _LINE_SPLIT_RE.split(text) if line.strip()][: cls.SAMPLE_LINES]
        best, best_score = ",", float("-inf")
        for delimiter in cls.DELIMITERS:
            counts = [line.count(delimiter) for line in sample]
            spread = statistics.pvariance(counts) if counts else 0.0
            score = sum(counts) - spread
            if score > best_score:
                best, best_score = delimiter, score
        return best

    @classmethod
    def cell_type(cls, value: str) -> str:
        s = value.strip()
        if not s:
            return "empty"
        if cls._BOOLEAN_RE.match(s):
            return "boolean"
        if cls._NUMBER_RE.match(s):
            return "number"
        if cls._ISO_DATE_RE.match(s) or cls._SHORT_DATE_RE.match(s):
            return "date"
        return "string"

    def _rows(self, text: str, delimiter: str) -> list[list[str]]:
        try:
            reader = csv.reader(io.StringIO(text), delimiter=delimiter)
            return [row for row in reader if any(cell.strip() for cell in row)]
        except csv.Error as exc:
            raise MalformedContainerError(f"Could not parse delimited text: {exc}") from exc

    def get_raw_properties(self, data: bytes) -> RawProperties:
        text = decode_text(data)
        delimiter = self.detect_delimiter(text)
        rows = self._rows(text, delimiter)
        column_count = max((len(row) for row in rows), default=0)
        has_header = bool(rows) and any(re.search(r"[A-Za-z]", cell) for cell in rows[0])
        data_rows = rows[1:] if has_header else rows

        column_types: list[str] = []
        for column in range(column_count):
            counts = Counter(
                self.cell_type(row[column] if column < len(row) else "")
                for row in data_rows[: self.SAMPLE_ROWS]
            )
            column_types.append(counts.most_common(1)[0][0] if counts else "empty")

        properties: RawProperties = {
            "delimiter": self.DELIMITERS[delimiter],
            "headerRowPresent": has_header,
            "numberOfRows": len(data_rows),
            "numberOfColumns": column_count,
            "columnTypes": column_types,
        }
        if has_header:
            properties["headers"] = rows[0]
        return properties

    def get_positioned_text(self, data: bytes) -> list[PositionedText]:
        text = decode_text(data)
        rows = self._rows(text, self.detect_delimiter(text))
        return [
            PositionedText(unit_index=number, text=" ".join(row))
            for number, row in enumerate(rows, start=1)
        ]


class JsonExtractor(BaseFormatExtractor):
    """Structure statistics plus author-like keys anywhere in the tree."""

    file_type = "JSON"

    AUTHOR_KEY_SUFFIX: ClassVar[str] = "author"
    CREATOR_KEY_SUFFIX: ClassVar[str] = "creator"
    LAST_MODIFIED_KEYS: ClassVar[frozenset[str]] = frozenset(
        {"lastmodifiedby", "modifiedby", "last_modified_by"}
    )

    def _parse(self, data: bytes) -> Any:
        try:
            return json.loads(decode_text(data))
        except json.JSONDecodeError as exc:
            raise MalformedContainerError(f"Invalid JSON: {exc}") from exc

    @staticmethod
    def _type_name(value: Any) -> str:
        if value is None:
            return "null"
        if isinstance(value, bool):
            return "boolean"
        if isinstance(value, (int, float)):
            return "number"
        if isinstance(value, str):
            return "string"
        if isinstance(value, list):
            return "array"
        return "object"

    def get_raw_properties(self, data: bytes) -> RawProperties:
        parsed = self._parse(data)
        properties: RawProperties = {"topLevelType": self._type_name(parsed)}
        if isinstance(parsed, list):
            properties["arrayLength"] = len(parsed)
        elif isinstance(parsed, dict):
            properties["topLevelKeys"] = list(parsed)
            properties["topLevelKeyCount"] = len(parsed)

        type_counts = dict.fromkeys(("string", "number", "boolean", "null", "object", "array"), 0)
        authors: list[str] = []
        creators: list[str] = []
        last_modified: list[str] = []
        max_depth = 0

        # Iterative walk so deeply nested documents cannot hit the recursion limit.
        stack: list[tuple[Any, int]] = [(parsed, 0)]
        while stack:
            node, depth = stack.pop()
            max_depth = max(max_depth, depth)
            type_counts[self._type_name(node)] += 1
            if isinstance(node, dict):
                for key, value in node.items():
                    lowered = str(key).lower()
                    if isinstance(value, str):
                        if lowered.endswith(self.AUTHOR_KEY_SUFFIX):
                            authors.append(value)
                        if lowered.endswith(self.CREATOR_KEY_SUFFIX):
                            creators.append(value)
                        if lowered in self.LAST_MODIFIED_KEYS:
                            last_modified.append(value)
                    stack.append((value, depth + 1))
            elif isinstance(node, list):
                stack.extend((value, depth + 1) for value in reversed(node))

        properties["maxDepth"] = max_depth
        properties["typeCounts"] = type_counts
        for key, values in (
            ("author", _unique(authors)),
            ("creator", _unique(creators)),
            ("lastModifiedBy", _unique(last_modified)),
        ):
            if values:
                properties[key] = _one_or_many(values)
        return properties

    def get_positioned_text(self, data: bytes) -> list[PositionedText]:
        self._parse(data)
        return numbered_lines(decode_text(data))


class MarkdownExtractor(BaseFormatExtractor):
    """Markdown counts, first-heading title and YAML front matter."""

    file_type = "Markdown"

    _FRONT_MATTER_RE: ClassVar[re.Pattern[str]] = re.compile(
        r"\A---[ \t]*\r?\n(.*?)\r?\n---[ \t]*(?:\r?\n|\Z)", re.DOTALL
    )
    _HEADING_TITLE_RE: ClassVar[re.Pattern[str]] = re.compile(r"^\s*#\s+(.+)$", re.MULTILINE)
    _HEADING_RE: ClassVar[re.Pattern[str]] = re.compile(r"^\s*#{1,6}\s+", re.MULTILINE)
    _INLINE_LINK_RE: ClassVar[re.Pattern[str]] = re.compile(r"\[[^\]]*\]\([^)]+\)")
    _IMAGE_RE: ClassVar[re.Pattern[str]] = re.compile(r"!\[[^\]]*\]\([^)]+\)")
    _LINK_TARGET_RE: ClassVar[re.Pattern[str]] = re.compile(
        r"!?\[[^\]]*\]\(([^)\s]+)(?:\s+\"[^\"]*\")?\)"
    )
    _REFERENCE_RE: ClassVar[re.Pattern[str]] = re.compile(r"^\s*\[[^\]]+\]:\s+(\S+)")

    def _front_matter_block(self, text: str) -> str | None:
        match = self._FRONT_MATTER_RE.match(text)
        return match.group(1) if match else None

    def _load_front_matter(self, text: str) -> dict[str, Any]:
        block = self._front_matter_block(text)
        if block is None:
            return {}
        loaded = yaml.safe_load(block)
        return loaded if isinstance(loaded, dict) else {}

    def get_raw_properties(self, data: bytes) -> RawProperties:
        text = decode_text(data)
        properties: RawProperties = {
            "wordCount": len(text.split()),
            "headingCount": len(self._HEADING_RE.findall(text)),
            "linkCount": len(self._INLINE_LINK_RE.findall(text)),
            "imageCount": len(self._IMAGE_RE.findall(text)),
        }
        try:
            has_title = bool(self._load_front_matter(text).get("title"))
        except yaml.YAMLError:
            has_title = False
        if not has_title:
            heading = self._HEADING_TITLE_RE.search(text)
            if heading:
                properties["title"] = heading.group(1).strip()
        return properties

    def get_supplemental_properties(self, data: bytes) -> RawProperties:
        try:
            front = self._load_front_matter(decode_text(data))
        except yaml.YAMLError as exc:
            raise PartialExtractionError(f"Invalid front matter: {exc}") from exc

        properties: RawProperties = {}
        for key in ("title", "description", "category"):
            if front.get(key):
                properties[key] = str(front[key])
        if front.get("date"):
            properties["creationDate"] = str(front["date"])
        tags = front.get("tags")
        if tags:
            properties["tags"] = [str(t) for t in tags] if isinstance(tags, list) else str(tags)

        raw_authors = front.get("authors", front.get("author"))
        if isinstance(raw_authors, list):
            authors = _unique([str(a) for a in raw_authors])
        elif raw_authors:
            authors = _unique([str(raw_authors)])
        else:
            authors = []
        if authors:
            properties["author"] = _one_or_many(authors)
        return properties

    def get_positioned_text(self, data: bytes) -> list[PositionedText]:
        return numbered_lines(decode_text(data))

    def get_link_targets(self, data: bytes) -> list[PositionedText]:
        targets: list[PositionedText] = []
        for unit in numbered_lines(decode_text(data)):
            for match in self._LINK_TARGET_RE.finditer(unit.text):
                targets.append(PositionedText(unit.unit_index, match.group(1)))
            reference = self._REFERENCE_RE.match(unit.text)
            if reference:
                targets.append(PositionedText(unit.unit_index, reference.group(1)))
        return targets
