from blindcheck.config.settings import Settings
from blindcheck.extraction.base import BaseFormatExtractor
from blindcheck.extraction.images import JpegExtractor, PngExtractor, TiffExtractor
from blindcheck.extraction.ooxml import DocxExtractor, PptxExtractor, XlsxExtractor
from blindcheck.extraction.pdfplumber_adapter import PdfPlumberAdapter
from blindcheck.extraction.pymupdf_adapter import PyMuPdfAdapter
from blindcheck.extraction.svg import SvgExtractor
from blindcheck.extraction.text_formats import (
    DelimitedTextExtractor,
    JsonExtractor,
    MarkdownExtractor,
    PlainTextExtractor,
)


class FormatExtractorFactory:
    """Creates format collaborators; the PDF engine is chosen by settings."""

    PDF_ENGINES: dict[str, type[BaseFormatExtractor]] = {
        "pdfplumber": PdfPlumberAdapter,
        "pymupdf": PyMuPdfAdapter,
    }
    FORMATS: dict[str, type[BaseFormatExtractor]] = {
        "docx": DocxExtractor,
        "pptx": PptxExtractor,
        "xlsx": XlsxExtractor,
        "csv": DelimitedTextExtractor,
        "json": JsonExtractor,
        "markdown": MarkdownExtractor,
        "text": PlainTextExtractor,
        "jpeg": JpegExtractor,
        "png": PngExtractor,
        "tiff": TiffExtractor,
        "svg": SvgExtractor,
    }

    @classmethod
    def create_pdf(cls, settings: Settings) -> BaseFormatExtractor:
        engine = settings.pdf_engine.lower()
        adapter_cls = cls.PDF_ENGINES.get(engine)
        if adapter_cls is None:
            raise ValueError(
                f"Unknown PDF engine '{engine}'. Choose from: {list(cls.PDF_ENGINES)}"
            )
        return adapter_cls()

    @classmethod
    def create_all(cls, settings: Settings) -> dict[str, BaseFormatExtractor]:
        """One extractor per format key, ``pdf`` included."""
        extractors = {key: extractor_cls() for key, extractor_cls in cls.FORMATS.items()}
        extractors["pdf"] = cls.create_pdf(settings)
        return extractors
