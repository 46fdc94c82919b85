import math
from collections.abc import Iterable, Sequence
from dataclasses import dataclass, replace

from blindcheck.ner.models import EntityFinding, NamedEntity


@dataclass
class AccumulatorEntry:
    label: str
    value: str
    occurrences: int = 0
    total_score: float = 0.0
    positions: set[int] | None = None


class EntityAccumulator:
    """Merges repeated entity observations into one entry per (label, value).

    Values are compared case-insensitively; the first spelling seen is kept.
    """

    MAX_FINDINGS = 50

    def __init__(self) -> None:
        self._entries: dict[tuple[str, str], AccumulatorEntry] = {}

    def __len__(self) -> int:
        return len(self._entries)

    def add(self, entities: Iterable[NamedEntity], position: int | None = None) -> None:
        for entity in entities:
            key = (entity.label, entity.value.lower())
            entry = self._entries.get(key)
            if entry is None:
                entry = AccumulatorEntry(label=entity.label, value=entity.value)
                self._entries[key] = entry
            entry.occurrences += 1
            entry.total_score += entity.score if math.isfinite(entity.score) else 0.0
            if position is not None:
                if entry.positions is None:
                    entry.positions = set()
                entry.positions.add(position)

    def finalize(self) -> list[EntityFinding]:
        findings = [
            EntityFinding(
                label=entry.label,
                value=entry.value,
                occurrences=entry.occurrences,
                average_score=entry.total_score / entry.occurrences if entry.occurrences else 0.0,
                positions=sorted(entry.positions) if entry.positions is not None else None,
            )
            for entry in self._entries.values()
        ]
        findings.sort(key=lambda f: (-f.occurrences, -f.average_score, f.value))
        return findings[: self.MAX_FINDINGS]


def attach_positions_from_lines(
    findings: Sequence[EntityFinding],
    lines: Sequence[str],
    max_matches: int = 12,
) -> list[EntityFinding]:
    """Give position-less findings the 1-based lines that mention them.

    Matching is a case-insensitive substring search; values shorter than
    three characters are left alone.
    """
    if not findings or not lines:
        return list(findings)
    lowered = [line.lower() for line in lines]
    result: list[EntityFinding] = []
    for finding in findings:
        search = finding.value.lower()
        if finding.positions or len(search) < 3:
            result.append(finding)
            continue
        positions: list[int] = []
        for index, line in enumerate(lowered, start=1):
            if search in line:
                positions.append(index)
                if len(positions) >= max_matches:
                    break
        result.append(replace(finding, positions=positions) if positions else finding)
    return result
