import asyncio

from blindcheck.analysis.content_scanner import ContentScanner, mailto_address
from blindcheck.analysis.models import FindingMap, ResearchSignals
from blindcheck.analysis.research_signals import (
    ResearchSignalDetector,
    is_acknowledgement_header,
    is_affiliation_candidate,
)
from blindcheck.extraction.base import BaseFormatExtractor
from blindcheck.extraction.exceptions import MalformedContainerError, PartialExtractionError
from blindcheck.logging.logger import Log
from blindcheck.ner.accumulator import attach_positions_from_lines
from blindcheck.ner.adapter import (
    NLP_ENABLED,
    NLP_FALLBACK,
    NLP_TRUNCATED_NOTE,
    EntityClassificationAdapter,
    is_exempt_value,
)
from blindcheck.processor.models import (
    AUTHOR_FOUND,
    CREATOR_FOUND,
    LAST_MODIFIED_BY_FOUND,
    ContentFindings,
    IdentityValue,
    PositionedFinding,
    PotentialIssue,
    ResearchFindings,
)
from blindcheck.processor.pipeline import AnalysisContext, PipelineStep

MIN_RESEARCH_TEXT_CHARS = 20
MAX_AFFILIATION_GUESSES = 8


def _positioned(finding_map: FindingMap) -> list[PositionedFinding]:
    return [PositionedFinding(value, sorted(units)) for value, units in finding_map.items()]


def _identity_values(value: IdentityValue) -> list[str]:
    if value is None:
        return []
    values = value if isinstance(value, list) else [value]
    return list(dict.fromkeys(v.strip() for v in values if isinstance(v, str) and v.strip()))


class ExtractPropertiesStep(PipelineStep):
    """Primary properties, then supplemental ones (XMP, app.xml, front matter) on top."""

    name = "metadata extraction"

    def __init__(self, extractor: BaseFormatExtractor) -> None:
        self._extractor = extractor

    async def run(self, context: AnalysisContext) -> AnalysisContext:
        context.metadata.file_type = self._extractor.file_type
        data = context.source.data
        try:
            properties = await asyncio.to_thread(self._extractor.get_raw_properties, data)
        except MalformedContainerError as exc:
            context.metadata.error = str(exc)
            Log.warning(f"{context.source.name}: {exc}")
            return context

        try:
            supplemental = await asyncio.to_thread(
                self._extractor.get_supplemental_properties, data
            )
        except PartialExtractionError as exc:
            context.metadata.add_note(str(exc))
            Log.warning(f"{context.source.name}: {exc}")
            supplemental = {}

        context.properties = {**properties, **supplemental}
        context.metadata.merge(context.properties)
        Log.info(f"Read {len(context.properties)} properties from {context.source.name}")
        return context


class ExtractTextStep(PipelineStep):
    name = "text extraction"

    def __init__(self, extractor: BaseFormatExtractor) -> None:
        self._extractor = extractor

    async def run(self, context: AnalysisContext) -> AnalysisContext:
        data = context.source.data
        try:
            context.units = await asyncio.to_thread(self._extractor.get_positioned_text, data)
            context.link_targets = await asyncio.to_thread(self._extractor.get_link_targets, data)
        except MalformedContainerError as exc:
            if context.metadata.error is None:
                context.metadata.error = str(exc)
            Log.warning(f"{context.source.name}: {exc}")
            return context
        Log.info(
            f"Extracted {len(context.units)} units and {len(context.link_targets)} "
            f"link targets from {context.source.name}"
        )
        return context


class ExtractExifStep(PipelineStep):
    name = "EXIF extraction"

    def __init__(self, extractor: BaseFormatExtractor) -> None:
        self._extractor = extractor

    async def run(self, context: AnalysisContext) -> AnalysisContext:
        if context.metadata.error is not None:
            return context
        context.exif = await asyncio.to_thread(self._extractor.get_exif, context.source.data)
        return context


class ScanPatternsStep(PipelineStep):
    """Emails and URLs per unit, plus hyperlink targets."""

    name = "email/URL scan"

    def __init__(self, scanner: ContentScanner) -> None:
        self._scanner = scanner

    def _add(self, context: AnalysisContext, text: str, unit_index: int) -> None:
        for value, kind in self._scanner.scan_values(text):
            target = context.emails if kind == "email" else context.urls
            target.setdefault(value, set()).add(unit_index)

    async def run(self, context: AnalysisContext) -> AnalysisContext:
        for unit in context.units:
            self._add(context, unit.text, unit.unit_index)
        for link in context.link_targets:
            target = link.text.strip()
            if target.lower().startswith("mailto:"):
                address = mailto_address(target)
                if address:
                    context.emails.setdefault(address, set()).add(link.unit_index)
            else:
                self._add(context, target, link.unit_index)

        if context.emails:
            context.metadata.extra["emailsFound"] = list(context.emails)
        if context.urls:
            context.metadata.extra["urlsFound"] = list(context.urls)
        Log.info(
            f"Found {len(context.emails)} emails and {len(context.urls)} URLs "
            f"in {context.source.name}"
        )
        return context


class ResearchUnitsStep(PipelineStep):
    """Acknowledgement and affiliation sentences, keyed to the units they came from."""

    name = "research findings"

    def __init__(self, detector: ResearchSignalDetector) -> None:
        self._detector = detector

    async def run(self, context: AnalysisContext) -> AnalysisContext:
        for unit in context.units:
            self._detector.collect_unit_findings(
                unit.text, unit.unit_index, context.acknowledgements, context.affiliations
            )
        for link in context.link_targets:
            if link.text.lower().startswith("mailto:"):
                continue
            if is_acknowledgement_header(link.text):
                self._detector.add_finding(context.acknowledgements, link.text, link.unit_index)
            if is_affiliation_candidate(link.text):
                self._detector.add_finding(context.affiliations, link.text, link.unit_index)
        return context


class ResearchSignalsStep(PipelineStep):
    """Merge unit findings and whole-text signals into the metadata flags."""

    name = "research signals"

    def __init__(self, detector: ResearchSignalDetector) -> None:
        self._detector = detector

    async def run(self, context: AnalysisContext) -> AnalysisContext:
        text = context.full_text
        signals: ResearchSignals | None = None
        if len("".join(text.split())) > MIN_RESEARCH_TEXT_CHARS:
            signals = self._detector.scan(text)

        ack_items = list(context.acknowledgements)
        aff_items = list(context.affiliations)
        if signals is None and not ack_items and not aff_items:
            return context
        signals = signals or ResearchSignals()

        extra = context.metadata.extra
        extra["acknowledgementsDetected"] = bool(ack_items) or signals.acknowledgements_detected
        excerpt = ack_items[0] if ack_items else signals.acknowledgements_excerpt
        if excerpt:
            extra["acknowledgementsExcerpt"] = excerpt

        extra["fundingDetected"] = signals.funding_detected
        if signals.funding_mentions:
            extra["fundingMentions"] = signals.funding_mentions
        if signals.grant_ids:
            extra["grantIds"] = signals.grant_ids

        extra["affiliationsDetected"] = bool(aff_items) or signals.affiliations_detected
        guesses = aff_items or signals.affiliations_guesses
        if guesses:
            extra["affiliationsGuesses"] = list(dict.fromkeys(guesses))[:MAX_AFFILIATION_GUESSES]
        return context


class MetadataEntitiesStep(PipelineStep):
    """Entity extraction over the descriptive metadata fields."""

    name = "metadata entity analysis"

    def __init__(self, adapter: EntityClassificationAdapter) -> None:
        self._adapter = adapter

    async def run(self, context: AnalysisContext) -> AnalysisContext:
        if context.metadata.error is not None:
            return context
        fields = {key: context.metadata.get(key) for key in self._adapter.METADATA_FIELDS}
        annotations = await self._adapter.annotate_metadata(fields)
        context.metadata.extra.update(annotations)
        return context


class EntitySweepStep(PipelineStep):
    """Content entity extraction, either per unit or over the whole text.

    Per-unit sweeps record the unit index of each entity. Whole-text sweeps
    attach line positions afterwards by searching the units for the value.
    """

    name = "entity sweep"

    def __init__(self, adapter: EntityClassificationAdapter, per_unit: bool) -> None:
        self._adapter = adapter
        self._per_unit = per_unit

    async def run(self, context: AnalysisContext) -> AnalysisContext:
        if self._per_unit:
            batches = [(unit.text, unit.unit_index) for unit in context.units if unit.text.strip()]
        else:
            text = context.full_text
            batches = [(text, None)] if text.strip() else []
        if not batches:
            return context

        successes = 0
        truncated = False
        model: str | None = None
        errors: list[str] = []
        for text, position in batches:
            result = await self._adapter.extract_entities(text, context.cancel_event)
            if not result.available:
                errors.append(result.error or "Unknown error")
                continue
            successes += 1
            truncated = truncated or result.truncated
            model = model or result.model
            context.entities.add(result.items, position)

        findings = context.entities.finalize()
        if not self._per_unit and findings:
            lines = [""] * max((unit.unit_index for unit in context.units), default=0)
            for unit in context.units:
                lines[unit.unit_index - 1] = unit.text
            findings = attach_positions_from_lines(findings, lines)
        context.entity_findings = findings

        extra = context.metadata.extra
        if successes:
            extra["nlpAnalysis"] = NLP_ENABLED
            extra["nlpModel"] = model or self._adapter.model_id
            if truncated:
                extra["nlpAnalysisNote"] = NLP_TRUNCATED_NOTE
        else:
            extra["nlpAnalysis"] = NLP_FALLBACK
        if errors:
            extra["nlpFallbackReason"] = errors[0]
        Log.info(f"Entity sweep of {context.source.name} kept {len(findings)} findings")
        return context


class IssueCheckStep(PipelineStep):
    """Potential issues for identity fields.

    Without an adapter a non-empty value is enough; with one, author (and,
    when ``classify_creator`` is set, creator) values must also look like a
    person or organization.
    """

    name = "identity check"

    FIELDS: tuple[tuple[str, str], ...] = (
        ("author", AUTHOR_FOUND),
        ("creator", CREATOR_FOUND),
        ("last_modified_by", LAST_MODIFIED_BY_FOUND),
    )

    def __init__(
        self,
        adapter: EntityClassificationAdapter | None = None,
        classify_creator: bool = True,
    ) -> None:
        self._adapter = adapter
        self._classify_creator = classify_creator

    async def _is_flagged(self, attribute: str, value: str) -> bool:
        if is_exempt_value(value):
            return False
        if self._adapter is None or (attribute == "creator" and not self._classify_creator):
            return True
        if attribute == "last_modified_by":
            return True
        return await self._adapter.should_flag_as_sensitive(value)

    async def run(self, context: AnalysisContext) -> AnalysisContext:
        for attribute, issue_type in self.FIELDS:
            for value in _identity_values(getattr(context.metadata, attribute)):
                if await self._is_flagged(attribute, value):
                    context.issues.append(PotentialIssue(type=issue_type, value=value))
        return context


def build_content_findings(context: AnalysisContext) -> ContentFindings | None:
    entities = context.entity_findings or None
    if not context.emails and not context.urls and not entities:
        return None
    findings = ContentFindings(
        emails=_positioned(context.emails),
        urls=_positioned(context.urls),
    )
    if entities:
        findings.entities = entities
        findings.entity_position_label = context.position_label
    return findings


def build_research_findings(context: AnalysisContext) -> ResearchFindings | None:
    if not context.acknowledgements and not context.affiliations:
        return None
    return ResearchFindings(
        acknowledgements=_positioned(context.acknowledgements),
        affiliations=_positioned(context.affiliations),
    )
