from blindcheck.analysis.content_scanner import ContentScanner
from blindcheck.analysis.research_signals import ResearchSignalDetector
from blindcheck.config.settings import Settings
from blindcheck.extraction.factory import FormatExtractorFactory
from blindcheck.logging.logger import Log
from blindcheck.ner.adapter import CancelSignal, EntityClassificationAdapter, raise_if_cancelled
from blindcheck.ner.exceptions import AnalysisCancelledError
from blindcheck.ner.factory import NerAdapterFactory
from blindcheck.ner.lifecycle import LifecycleChannel
from blindcheck.processor.dispatcher import FormatDispatcher
from blindcheck.processor.exceptions import ProcessorError
from blindcheck.processor.models import AnalysisResult, SourceFile
from blindcheck.processor.pipeline import AnalysisContext
from blindcheck.processor.steps import build_content_findings, build_research_findings
from blindcheck.processor.strategies import build_strategies


class Processor:
    """Runs the strategy for one file and assembles its AnalysisResult.

    Pipeline: dispatch -> properties -> text -> patterns -> research ->
    entities -> identity checks -> assemble. A failing step leaves a note and
    the remaining steps still run; only cancellation stops the file.
    """

    def __init__(
        self,
        dispatcher: FormatDispatcher,
        adapter: EntityClassificationAdapter,
    ) -> None:
        self._dispatcher = dispatcher
        self._adapter = adapter

    @property
    def adapter(self) -> EntityClassificationAdapter:
        return self._adapter

    async def process(
        self, source: SourceFile, cancel_event: CancelSignal | None = None
    ) -> AnalysisResult:
        """Analyse one file.

        Raises:
            AnalysisCancelledError: if *cancel_event* is set mid-analysis.
        """
        Log.info(f"Processing {source.name} ({len(source.data)} bytes)")
        try:
            strategy = self._dispatcher.resolve(source)
        except ProcessorError as exc:
            Log.warning(f"{source.name}: {exc}")
            return AnalysisResult.error_result(source.name, str(exc))

        context = AnalysisContext(
            source=source,
            position_label=strategy.position_label,
            cancel_event=cancel_event,
        )
        for step in strategy.steps:
            raise_if_cancelled(cancel_event)
            try:
                context = await step.run(context)
            except AnalysisCancelledError:
                raise
            except Exception as exc:
                Log.warning(f"Step '{step.name}' failed for {source.name}: {exc}")
                context.metadata.add_note(f"{step.name.capitalize()} failed: {exc}")

        result = AnalysisResult(
            file_name=source.name,
            metadata=context.metadata,
            potential_issues=context.issues,
            content_findings=build_content_findings(context),
            research_findings=build_research_findings(context),
            exif=context.exif or None,
        )
        Log.info(
            f"Processed {source.name} as {strategy.format_key}: "
            f"{len(result.potential_issues)} potential issues"
        )
        return result


def build_processor(
    settings: Settings,
    channel: LifecycleChannel | None = None,
) -> Processor:
    """Build a Processor with all required adapters."""
    adapter = NerAdapterFactory.create(settings, channel=channel)
    extractors = FormatExtractorFactory.create_all(settings)
    strategies = build_strategies(
        extractors,
        adapter,
        scanner=ContentScanner(),
        detector=ResearchSignalDetector(),
    )
    return Processor(dispatcher=FormatDispatcher(strategies), adapter=adapter)
