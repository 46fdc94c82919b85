from dataclasses import dataclass, field


@dataclass(frozen=True)
class NamedEntity:
    """One entity reported by the classifier, label and value normalized."""

    label: str
    value: str
    score: float


@dataclass(frozen=True)
class Span:
    """A labeled character range of the classified text."""

    label: str
    text: str
    start: int
    end: int
    score: float


@dataclass
class EntityExtraction:
    available: bool
    items: list[NamedEntity] = field(default_factory=list)
    model: str | None = None
    truncated: bool = False
    error: str | None = None


@dataclass
class SpanClassification:
    available: bool
    spans: list[Span] = field(default_factory=list)
    error: str | None = None


@dataclass
class EntityFinding:
    """Ranked summary of every occurrence of one (label, value) pair."""

    label: str
    value: str
    occurrences: int
    average_score: float
    positions: list[int] | None = None

    def to_dict(self) -> dict[str, object]:
        payload: dict[str, object] = {
            "label": self.label,
            "value": self.value,
            "occurrences": self.occurrences,
            "averageScore": self.average_score,
        }
        if self.positions is not None:
            payload["positions"] = self.positions
        return payload
