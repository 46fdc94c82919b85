import asyncio
import threading
from unittest.mock import AsyncMock, MagicMock

from blindcheck.batch.coordinator import CANCELLED, BatchCoordinator
from blindcheck.ner.exceptions import AnalysisCancelledError
from blindcheck.processor.models import AnalysisResult, Metadata, SourceFile
from blindcheck.processor.processor import Processor


def _files(*names: str) -> list[SourceFile]:
    return [SourceFile(name, b"") for name in names]


def _processor(side_effect) -> MagicMock:  # type: ignore[no-untyped-def]
    processor = MagicMock(spec=Processor)
    processor.process = AsyncMock(side_effect=side_effect)
    return processor


async def _ok(source: SourceFile, cancel_event=None) -> AnalysisResult:  # type: ignore[no-untyped-def]
    return AnalysisResult(file_name=source.name, metadata=Metadata(file_type="Plain Text"))


class TestBatchCoordinator:
    def test_empty_batch(self) -> None:
        coordinator = BatchCoordinator(_processor(_ok))
        assert asyncio.run(coordinator.run([])) == []

    def test_results_keep_input_order(self) -> None:
        delays = {"a.txt": 0.05, "b.txt": 0.0, "c.txt": 0.02}

        async def slow(source: SourceFile, cancel_event=None) -> AnalysisResult:  # type: ignore[no-untyped-def]
            await asyncio.sleep(delays[source.name])
            return await _ok(source)

        coordinator = BatchCoordinator(_processor(slow), concurrency=3)
        results = asyncio.run(coordinator.run(_files("a.txt", "b.txt", "c.txt")))

        assert [r.file_name for r in results] == ["a.txt", "b.txt", "c.txt"]

    def test_failure_becomes_error_result(self) -> None:
        async def flaky(source: SourceFile, cancel_event=None) -> AnalysisResult:  # type: ignore[no-untyped-def]
            if source.name == "bad.pdf":
                raise RuntimeError("decoder crashed")
            return await _ok(source)

        coordinator = BatchCoordinator(_processor(flaky))
        results = asyncio.run(coordinator.run(_files("good.txt", "bad.pdf")))

        assert results[0].metadata.error is None
        assert results[1].to_dict() == {
            "fileName": "bad.pdf",
            "metadata": {"error": "decoder crashed"},
        }

    def test_timeout_becomes_error_result(self) -> None:
        async def hang(source: SourceFile, cancel_event=None) -> AnalysisResult:  # type: ignore[no-untyped-def]
            await asyncio.sleep(5)
            return await _ok(source)

        coordinator = BatchCoordinator(_processor(hang), file_timeout_seconds=0.05)
        results = asyncio.run(coordinator.run(_files("slow.pdf")))

        assert results[0].metadata.error == "Timed out after 0.05 seconds"

    def test_cancel_before_start(self) -> None:
        processor = _processor(_ok)
        cancel = threading.Event()
        cancel.set()

        results = asyncio.run(BatchCoordinator(processor).run(_files("a.txt", "b.txt"), cancel))

        assert [r.metadata.error for r in results] == [CANCELLED, CANCELLED]
        processor.process.assert_not_awaited()

    def test_cancel_mid_file(self) -> None:
        async def cancelled(source: SourceFile, cancel_event=None) -> AnalysisResult:  # type: ignore[no-untyped-def]
            raise AnalysisCancelledError("Cancelled")

        results = asyncio.run(BatchCoordinator(_processor(cancelled)).run(_files("a.txt")))

        assert results[0].metadata.error == CANCELLED

    def test_concurrency_is_bounded(self) -> None:
        running = 0
        peak = 0

        async def tracked(source: SourceFile, cancel_event=None) -> AnalysisResult:  # type: ignore[no-untyped-def]
            nonlocal running, peak
            running += 1
            peak = max(peak, running)
            await asyncio.sleep(0.01)
            running -= 1
            return await _ok(source)

        coordinator = BatchCoordinator(_processor(tracked), concurrency=2)
        results = asyncio.run(coordinator.run(_files(*(f"{i}.txt" for i in range(6)))))

        assert len(results) == 6
        assert peak == 2

    def test_progress_reported_per_file(self) -> None:
        progress: list[tuple[int, int]] = []
        coordinator = BatchCoordinator(_processor(_ok))

        asyncio.run(
            coordinator.run(
                _files("a.txt", "b.txt"), on_progress=lambda done, total: progress.append((done, total))
            )
        )

        assert progress == [(1, 2), (2, 2)]

    def test_failing_progress_callback_does_not_lose_results(self) -> None:
        calls: list[int] = []

        def broken(done: int, total: int) -> None:
            calls.append(done)
            raise RuntimeError("listener gone")

        coordinator = BatchCoordinator(_processor(_ok), concurrency=2)
        results = asyncio.run(
            coordinator.run(_files("a.txt", "b.txt", "c.txt"), on_progress=broken)
        )

        assert [r.file_name for r in results] == ["a.txt", "b.txt", "c.txt"]
        assert all(r.metadata.error is None for r in results)
        assert sorted(calls) == [1, 2, 3]
