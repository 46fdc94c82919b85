import asyncio
import io

from PIL import Image
from PIL.PngImagePlugin import PngInfo

from blindcheck.analysis.content_scanner import ContentScanner
from blindcheck.analysis.research_signals import ResearchSignalDetector
from blindcheck.extraction.images import PngExtractor
from blindcheck.processor.dispatcher import FormatDispatcher
from blindcheck.processor.models import SourceFile
from blindcheck.processor.processor import Processor
from blindcheck.processor.strategies import build_strategy


def _png(chunks: dict[str, str]) -> bytes:
    info = PngInfo()
    for key, value in chunks.items():
        info.add_text(key, value)
    buf = io.BytesIO()
    Image.new("RGB", (2, 2)).save(buf, format="PNG", pnginfo=info)
    return buf.getvalue()


class TestPngTextChunks:
    def test_known_and_free_form_keys(self) -> None:
        properties = PngExtractor().get_raw_properties(
            _png({"Author": "Jane Doe", "Creation Time": "2024-01-02", "Camera Model": "X1"})
        )

        assert properties["author"] == "Jane Doe"
        assert properties["creationTime"] == "2024-01-02"
        assert properties["cameraModel"] == "X1"

    def test_reserved_keys_are_ignored(self) -> None:
        properties = PngExtractor().get_raw_properties(
            _png({"Error": "hello", "File Type": "Spoof", "Width": "999", "Emails Found": "x"})
        )

        assert "error" not in properties
        assert "fileType" not in properties
        assert "emailsFound" not in properties
        assert properties["width"] == 2

    def test_reserved_chunk_does_not_fail_analysis(self, make_adapter) -> None:
        adapter, _ = make_adapter()
        strategy = build_strategy(
            "png", PngExtractor(), adapter, ContentScanner(), ResearchSignalDetector()
        )
        processor = Processor(FormatDispatcher({"png": strategy}), adapter)
        data = _png({"Error": "hello", "File Type": "Spoof", "Note": "spoofed"})

        result = asyncio.run(processor.process(SourceFile("figure.png", data)))

        assert result.metadata.error is None
        assert result.metadata.note is None
        assert result.metadata.file_type == "PNG Image"
