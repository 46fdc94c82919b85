from abc import ABC, abstractmethod
from dataclasses import dataclass, field

from blindcheck.analysis.models import FindingMap
from blindcheck.extraction.base import PositionedText, RawProperties
from blindcheck.ner.accumulator import EntityAccumulator
from blindcheck.ner.adapter import CancelSignal
from blindcheck.ner.models import EntityFinding
from blindcheck.processor.models import Metadata, PotentialIssue, SourceFile


@dataclass(slots=True)
class AnalysisContext:
    """Per-file state shared by the steps of one strategy."""

    source: SourceFile
    position_label: str | None = None
    cancel_event: CancelSignal | None = None
    metadata: Metadata = field(default_factory=Metadata)
    properties: RawProperties = field(default_factory=dict)
    units: list[PositionedText] = field(default_factory=list)
    link_targets: list[PositionedText] = field(default_factory=list)
    emails: FindingMap = field(default_factory=dict)
    urls: FindingMap = field(default_factory=dict)
    acknowledgements: FindingMap = field(default_factory=dict)
    affiliations: FindingMap = field(default_factory=dict)
    entities: EntityAccumulator = field(default_factory=EntityAccumulator)
    entity_findings: list[EntityFinding] | None = None
    issues: list[PotentialIssue] = field(default_factory=list)
    exif: dict[str, str] = field(default_factory=dict)

    @property
    def full_text(self) -> str:
        return "\n".join(unit.text for unit in self.units)


class PipelineStep(ABC):
    """One stage of a format strategy.

    A step may raise; the processor records the failure as a note and moves
    on to the next step.
    """

    name: str = "step"

    @abstractmethod
    async def run(self, context: AnalysisContext) -> AnalysisContext:
        raise NotImplementedError
