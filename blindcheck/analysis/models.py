from dataclasses import dataclass, field
from typing import Literal

MatchKind = Literal["email", "url"]

# normalized evidence text -> unit indexes where it occurred
FindingMap = dict[str, set[int]]


@dataclass(frozen=True)
class Match:
    """An email or URL found in one unit of text.

    Offsets point into the URL-normalized text, not the raw input.
    """

    value: str
    kind: MatchKind
    start: int
    end: int


@dataclass
class ResearchSignals:
    """Heuristic acknowledgement, funding and affiliation evidence."""

    acknowledgements_detected: bool = False
    funding_detected: bool = False
    affiliations_detected: bool = False
    acknowledgements_excerpt: str | None = None
    funding_mentions: list[str] = field(default_factory=list)
    grant_ids: list[str] = field(default_factory=list)
    affiliations_guesses: list[str] = field(default_factory=list)
