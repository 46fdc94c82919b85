"""Per-format step lists.

Every strategy starts with the same extraction and scanning steps; formats
differ in where entity analysis looks and in how identity fields are
checked:

* ``metadata``: entities from the descriptive metadata fields only
* ``units``: one classifier sweep per page/slide/sheet, positions kept
* ``text``: one sweep over the whole text, line positions attached after
* ``None``: no entity analysis (images)
"""

from dataclasses import dataclass
from typing import Literal

from blindcheck.analysis.content_scanner import ContentScanner
from blindcheck.analysis.research_signals import ResearchSignalDetector
from blindcheck.extraction.base import BaseFormatExtractor
from blindcheck.ner.adapter import EntityClassificationAdapter
from blindcheck.processor.pipeline import PipelineStep
from blindcheck.processor.steps import (
    EntitySweepStep,
    ExtractExifStep,
    ExtractPropertiesStep,
    ExtractTextStep,
    IssueCheckStep,
    MetadataEntitiesStep,
    ResearchSignalsStep,
    ResearchUnitsStep,
    ScanPatternsStep,
)

EntityMode = Literal["metadata", "units", "text"]
IssueMode = Literal["plain", "classified", "classified_author"]


@dataclass(frozen=True)
class FormatPlan:
    position_label: str | None
    entities: EntityMode | None
    issues: IssueMode
    has_text: bool = True
    has_exif: bool = False


FORMAT_PLANS: dict[str, FormatPlan] = {
    "pdf": FormatPlan("Pages", "metadata", "plain"),
    "docx": FormatPlan("Lines", "metadata", "plain"),
    "pptx": FormatPlan("Slides", "units", "plain"),
    "xlsx": FormatPlan("Sheets", "units", "plain"),
    "csv": FormatPlan("Rows", "text", "plain"),
    "json": FormatPlan("Lines", "text", "plain"),
    "markdown": FormatPlan("Lines", "metadata", "plain"),
    "text": FormatPlan("Lines", "text", "plain"),
    "jpeg": FormatPlan(None, None, "classified", has_text=False, has_exif=True),
    "png": FormatPlan(None, None, "classified", has_text=False, has_exif=True),
    "tiff": FormatPlan(None, None, "classified", has_text=False, has_exif=True),
    "svg": FormatPlan(None, None, "classified_author", has_text=False),
}


@dataclass(frozen=True)
class Strategy:
    format_key: str
    position_label: str | None
    steps: tuple[PipelineStep, ...]


def build_strategy(
    format_key: str,
    extractor: BaseFormatExtractor,
    adapter: EntityClassificationAdapter,
    scanner: ContentScanner,
    detector: ResearchSignalDetector,
) -> Strategy:
    plan = FORMAT_PLANS[format_key]
    steps: list[PipelineStep] = [ExtractPropertiesStep(extractor)]
    if plan.has_exif:
        steps.append(ExtractExifStep(extractor))
    if plan.has_text:
        steps += [
            ExtractTextStep(extractor),
            ScanPatternsStep(scanner),
            ResearchUnitsStep(detector),
            ResearchSignalsStep(detector),
        ]

    if plan.entities == "metadata":
        steps.append(MetadataEntitiesStep(adapter))
    elif plan.entities is not None:
        steps.append(EntitySweepStep(adapter, per_unit=plan.entities == "units"))

    if plan.issues == "plain":
        steps.append(IssueCheckStep())
    else:
        steps.append(IssueCheckStep(adapter, classify_creator=plan.issues == "classified"))
    return Strategy(format_key, plan.position_label, tuple(steps))


def build_strategies(
    extractors: dict[str, BaseFormatExtractor],
    adapter: EntityClassificationAdapter,
    scanner: ContentScanner | None = None,
    detector: ResearchSignalDetector | None = None,
) -> dict[str, Strategy]:
    scanner = scanner or ContentScanner()
    detector = detector or ResearchSignalDetector()
    return {
        key: build_strategy(key, extractors[key], adapter, scanner, detector)
        for key in FORMAT_PLANS
    }
