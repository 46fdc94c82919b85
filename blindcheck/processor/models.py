from collections.abc import Mapping
from dataclasses import dataclass, field
from pathlib import PurePath
from typing import ClassVar

from blindcheck.ner.models import EntityFinding

AUTHOR_FOUND = "AUTHOR FOUND"
CREATOR_FOUND = "CREATOR FOUND"
LAST_MODIFIED_BY_FOUND = "LAST MODIFIED BY FOUND"

IdentityValue = str | list[str] | None


@dataclass(frozen=True)
class SourceFile:
    """A file handed in for analysis: display name, bytes and declared MIME type."""

    name: str
    data: bytes
    mime_type: str | None = None

    @property
    def extension(self) -> str:
        return PurePath(self.name).suffix.lower().lstrip(".")


@dataclass
class Metadata:
    """Known identity fields plus an open map of everything else.

    ``extra`` keys are already in output (camelCase) form.
    """

    KNOWN_KEYS: ClassVar[dict[str, str]] = {
        "author": "author",
        "creator": "creator",
        "lastModifiedBy": "last_modified_by",
        "fileType": "file_type",
        "error": "error",
        "note": "note",
    }

    author: IdentityValue = None
    creator: IdentityValue = None
    last_modified_by: IdentityValue = None
    file_type: str | None = None
    error: str | None = None
    note: str | None = None
    extra: dict[str, object] = field(default_factory=dict)

    def merge(self, properties: Mapping[str, object]) -> None:
        """Merge output-named properties; later values win."""
        for key, value in properties.items():
            attribute = self.KNOWN_KEYS.get(key)
            if attribute is not None:
                setattr(self, attribute, value)
            else:
                self.extra[key] = value

    def get(self, key: str) -> object:
        attribute = self.KNOWN_KEYS.get(key)
        if attribute is not None:
            return getattr(self, attribute)
        return self.extra.get(key)

    def add_note(self, note: str) -> None:
        self.note = note if not self.note else f"{self.note}; {note}"

    def to_dict(self) -> dict[str, object]:
        payload: dict[str, object] = {}
        for key, attribute in self.KNOWN_KEYS.items():
            value = getattr(self, attribute)
            if value is not None:
                payload[key] = value
        payload.update(self.extra)
        return payload


@dataclass(frozen=True)
class PotentialIssue:
    type: str
    value: str

    def to_dict(self) -> dict[str, str]:
        return {"type": self.type, "value": self.value}


@dataclass
class PositionedFinding:
    """An email, URL or research sentence with the units it appeared on."""

    value: str
    pages: list[int]


@dataclass
class ContentFindings:
    emails: list[PositionedFinding] = field(default_factory=list)
    urls: list[PositionedFinding] = field(default_factory=list)
    entities: list[EntityFinding] | None = None
    entity_position_label: str | None = None

    def to_dict(self) -> dict[str, object]:
        payload: dict[str, object] = {
            "emails": [{"value": f.value, "pages": f.pages} for f in self.emails],
            "urls": [{"value": f.value, "pages": f.pages} for f in self.urls],
        }
        if self.entities is not None:
            payload["entities"] = [e.to_dict() for e in self.entities]
        if self.entity_position_label is not None:
            payload["entityPositionLabel"] = self.entity_position_label
        return payload


@dataclass
class ResearchFindings:
    acknowledgements: list[PositionedFinding] = field(default_factory=list)
    affiliations: list[PositionedFinding] = field(default_factory=list)

    def to_dict(self) -> dict[str, object]:
        return {
            "acknowledgements": [{"text": f.value, "pages": f.pages} for f in self.acknowledgements],
            "affiliations": [{"text": f.value, "pages": f.pages} for f in self.affiliations],
        }


@dataclass
class AnalysisResult:
    """Everything reported for one file."""

    file_name: str
    metadata: Metadata
    potential_issues: list[PotentialIssue] = field(default_factory=list)
    content_findings: ContentFindings | None = None
    research_findings: ResearchFindings | None = None
    exif: dict[str, str] | None = None

    @classmethod
    def error_result(cls, file_name: str, message: str) -> "AnalysisResult":
        return cls(file_name=file_name, metadata=Metadata(error=message))

    def to_dict(self) -> dict[str, object]:
        payload: dict[str, object] = {
            "fileName": self.file_name,
            "metadata": self.metadata.to_dict(),
        }
        if self.potential_issues:
            payload["potentialIssues"] = [issue.to_dict() for issue in self.potential_issues]
        if self.content_findings is not None:
            payload["contentFindings"] = self.content_findings.to_dict()
        if self.research_findings is not None:
            payload["researchFindings"] = self.research_findings.to_dict()
        if self.exif:
            payload["exif"] = self.exif
        return payload
