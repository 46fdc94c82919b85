import asyncio
from collections.abc import Callable, Sequence

from blindcheck.config.settings import Settings
from blindcheck.logging.logger import Log
from blindcheck.ner.adapter import CancelSignal
from blindcheck.ner.exceptions import AnalysisCancelledError
from blindcheck.processor.models import AnalysisResult, SourceFile
from blindcheck.processor.processor import Processor

CANCELLED = "Cancelled"

ProgressFn = Callable[[int, int], None] | None


class BatchCoordinator:
    """Analyse many files concurrently; one result per input, in input order.

    No per-file failure escapes: exceptions, timeouts and cancellation all
    become results carrying ``metadata.error``.
    """

    def __init__(
        self,
        processor: Processor,
        concurrency: int = 4,
        file_timeout_seconds: float | None = 120.0,
    ) -> None:
        self._processor = processor
        self._concurrency = max(1, int(concurrency))
        self._file_timeout = file_timeout_seconds

    @classmethod
    def from_settings(cls, processor: Processor, settings: Settings) -> "BatchCoordinator":
        return cls(
            processor,
            concurrency=settings.batch_concurrency,
            file_timeout_seconds=settings.file_timeout_seconds,
        )

    async def run(
        self,
        files: Sequence[SourceFile],
        cancel_event: CancelSignal | None = None,
        on_progress: ProgressFn = None,
    ) -> list[AnalysisResult]:
        if not files:
            return []
        Log.info(f"Starting batch of {len(files)} files (concurrency {self._concurrency})")
        semaphore = asyncio.Semaphore(self._concurrency)
        results: list[AnalysisResult | None] = [None] * len(files)
        done = 0
        total = len(files)

        async def worker(index: int, source: SourceFile) -> None:
            nonlocal done
            async with semaphore:
                results[index] = await self._process_one(source, cancel_event)
            done += 1
            if on_progress:
                try:
                    on_progress(done, total)
                except Exception as exc:
                    Log.warning(f"Progress callback failed: {exc}")

        await asyncio.gather(*(worker(i, f) for i, f in enumerate(files)))
        Log.info(f"Batch finished: {total} results")
        return [r for r in results if r is not None]

    async def _process_one(
        self, source: SourceFile, cancel_event: CancelSignal | None
    ) -> AnalysisResult:
        if cancel_event is not None and cancel_event.is_set():
            return AnalysisResult.error_result(source.name, CANCELLED)
        try:
            return await asyncio.wait_for(
                self._processor.process(source, cancel_event),
                timeout=self._file_timeout,
            )
        except AnalysisCancelledError:
            Log.info(f"{source.name}: cancelled")
            return AnalysisResult.error_result(source.name, CANCELLED)
        except asyncio.TimeoutError:
            Log.warning(f"{source.name}: timed out after {self._file_timeout}s")
            return AnalysisResult.error_result(
                source.name, f"Timed out after {self._file_timeout:g} seconds"
            )
        except Exception as exc:
            Log.exception(f"{source.name}: analysis failed: {exc}")
            return AnalysisResult.error_result(source.name, str(exc) or type(exc).__name__)
