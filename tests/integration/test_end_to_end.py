import asyncio
import json
from pathlib import Path
from unittest.mock import patch

import pytest

from blindcheck.analysis.content_scanner import ContentScanner
from blindcheck.analysis.research_signals import ResearchSignalDetector
from blindcheck.batch.coordinator import BatchCoordinator
from blindcheck.config.settings import Settings
from blindcheck.extraction.factory import FormatExtractorFactory
from blindcheck.main import analyse_paths, main
from blindcheck.ner.adapter import NLP_ENABLED, NLP_FALLBACK
from blindcheck.processor.dispatcher import FormatDispatcher
from blindcheck.processor.models import AnalysisResult, SourceFile
from blindcheck.processor.processor import Processor
from blindcheck.processor.strategies import build_strategies


def _coordinator(settings: Settings, adapter) -> BatchCoordinator:  # type: ignore[no-untyped-def]
    strategies = build_strategies(
        FormatExtractorFactory.create_all(settings),
        adapter,
        scanner=ContentScanner(),
        detector=ResearchSignalDetector(),
    )
    return BatchCoordinator(Processor(FormatDispatcher(strategies), adapter), concurrency=2)


def _by_name(results: list[AnalysisResult]) -> dict[str, dict]:  # type: ignore[type-arg]
    return {r.file_name: r.to_dict() for r in results}


@pytest.mark.integration
class TestBatchOverRealFiles:
    def test_mixed_batch(
        self,
        make_adapter,
        integration_settings: Settings,
        sample_pdf_bytes: bytes,
        docx_bytes: bytes,
        pptx_bytes: bytes,
        jpeg_bytes: bytes,
        svg_bytes: bytes,
        csv_bytes: bytes,
        markdown_bytes: bytes,
    ) -> None:
        adapter, _ = make_adapter({"Jane Doe": "PER"})
        files = [
            SourceFile("paper.pdf", sample_pdf_bytes),
            SourceFile("draft.docx", docx_bytes),
            SourceFile("talk.pptx", pptx_bytes),
            SourceFile("photo.jpg", jpeg_bytes),
            SourceFile("figure.svg", svg_bytes),
            SourceFile("people.csv", csv_bytes),
            SourceFile("notes.md", markdown_bytes),
            SourceFile("old.doc", b"legacy"),
        ]

        results = asyncio.run(_coordinator(integration_settings, adapter).run(files))
        payloads = _by_name(results)

        assert [r.file_name for r in results] == [f.name for f in files]

        pdf = payloads["paper.pdf"]
        assert pdf["metadata"]["fileType"] == "PDF Document"
        assert {"type": "AUTHOR FOUND", "value": "Jane Doe"} in pdf["potentialIssues"]
        assert pdf["contentFindings"]["emails"] == [{"value": "jane.doe@example.org", "pages": [1]}]
        assert pdf["contentFindings"]["urls"] == [
            {"value": "https://github.com/janedoe/results", "pages": [2]}
        ]
        assert pdf["metadata"]["acknowledgementsDetected"] is True
        assert pdf["researchFindings"]["acknowledgements"][0]["pages"] == [2]

        word = payloads["draft.docx"]
        assert word["potentialIssues"] == [
            {"type": "AUTHOR FOUND", "value": "Jane Doe"},
            {"type": "CREATOR FOUND", "value": "Jane Doe"},
            {"type": "LAST MODIFIED BY FOUND", "value": "John Smith"},
        ]
        assert word["contentFindings"]["emails"] == [{"value": "jane@uni.edu", "pages": [3]}]
        assert word["contentFindings"]["urls"] == [
            {"value": "https://lab.example.org/jane", "pages": [2]}
        ]
        assert word["metadata"]["nlpAnalysis"] == NLP_ENABLED

        slides = payloads["talk.pptx"]["contentFindings"]
        assert slides["emails"] == [{"value": "jane@uni.edu", "pages": [1]}]
        assert slides["urls"] == [{"value": "https://lab.example.org/team", "pages": [2]}]

        photo = payloads["photo.jpg"]
        assert {"type": "AUTHOR FOUND", "value": "Jane Doe"} in photo["potentialIssues"]
        assert photo["exif"]["Make"] == "Canon"
        assert "contentFindings" not in photo

        figure = payloads["figure.svg"]
        assert figure["potentialIssues"] == [{"type": "AUTHOR FOUND", "value": "Jane Doe"}]

        table = payloads["people.csv"]
        assert [e["value"] for e in table["contentFindings"]["emails"]] == [
            "jane@uni.edu",
            "bob@uni.edu",
        ]
        assert table["contentFindings"]["entityPositionLabel"] == "Rows"
        assert table["contentFindings"]["entities"][0]["positions"] == [2]

        markdown = payloads["notes.md"]
        assert markdown["metadata"]["title"] == "Draft"
        assert [i["value"] for i in markdown["potentialIssues"]] == ["Jane Doe", "John Smith"]
        assert markdown["contentFindings"]["emails"] == [{"value": "jane@uni.edu", "pages": [10]}]

        assert payloads["old.doc"] == {
            "fileName": "old.doc",
            "metadata": {"error": "Legacy .doc format not supported. Please convert to .docx."},
        }

    def test_broken_json_reports_error(self, make_adapter, integration_settings: Settings) -> None:
        adapter, _ = make_adapter()
        results = asyncio.run(
            _coordinator(integration_settings, adapter).run([SourceFile("a.json", b"{oops")])
        )

        assert results[0].metadata.error is not None
        assert results[0].metadata.error.startswith("Invalid JSON:")


@pytest.mark.integration
class TestCommandLine:
    def test_analyse_paths_keeps_order_with_missing_file(
        self, tmp_path: Path, integration_settings: Settings, csv_bytes: bytes
    ) -> None:
        present = tmp_path / "people.csv"
        present.write_bytes(csv_bytes)
        missing = tmp_path / "gone.pdf"

        results = asyncio.run(analyse_paths([missing, present], integration_settings))

        assert [r.file_name for r in results] == ["gone.pdf", "people.csv"]
        assert results[0].metadata.error is not None
        assert results[0].metadata.error.startswith("File not found")
        assert results[1].metadata.extra["nlpAnalysis"] == NLP_FALLBACK

    def test_main_prints_json(
        self,
        tmp_path: Path,
        integration_settings: Settings,
        capsys: pytest.CaptureFixture[str],
        json_bytes: bytes,
    ) -> None:
        path = tmp_path / "data.json"
        path.write_bytes(json_bytes)

        with patch("blindcheck.main.Log.configure"):
            exit_code = main([str(path), "--indent", "0"])

        assert exit_code == 0
        payload = json.loads(capsys.readouterr().out)
        assert payload[0]["fileName"] == "data.json"
        assert payload[0]["metadata"]["fileType"] == "JSON"
        assert {"type": "AUTHOR FOUND", "value": "Jane Doe"} in payload[0]["potentialIssues"]
        assert {"type": "LAST MODIFIED BY FOUND", "value": "Bob"} in payload[0]["potentialIssues"]
