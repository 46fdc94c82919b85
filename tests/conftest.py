import io
from collections.abc import Callable

import pytest
from reportlab.lib.pagesizes import letter
from reportlab.pdfgen import canvas

from blindcheck.ner.adapter import EntityClassificationAdapter
from blindcheck.ner.base import BaseClassifierLoader, Classifier, ProgressCallback, RawEntity
from blindcheck.ner.exceptions import ModelUnavailableError
from blindcheck.ner.lazy_resource import LazyClassifier
from blindcheck.ner.lifecycle import LifecycleChannel


class FakeClassifierLoader(BaseClassifierLoader):
    """Builds a classifier that tags fixed strings wherever they occur."""

    def __init__(
        self,
        names: dict[str, str] | None = None,
        error: Exception | None = None,
        fail_inference: bool = False,
    ) -> None:
        self.names = names or {}
        self.error = error
        self.fail_inference = fail_inference
        self.load_calls = 0
        self.inputs: list[str] = []

    @property
    def model_id(self) -> str:
        return "fake/ner-model"

    def load(self, progress: ProgressCallback) -> Classifier:
        self.load_calls += 1
        progress(50.0)
        if self.error is not None:
            raise self.error

        def classify(text: str) -> list[RawEntity]:
            self.inputs.append(text)
            if self.fail_inference:
                raise RuntimeError("inference exploded")
            found: list[RawEntity] = []
            for value, label in self.names.items():
                start = text.find(value)
                while start != -1:
                    found.append(
                        {
                            "entity_group": label,
                            "word": value,
                            "score": 0.9,
                            "start": start,
                            "end": start + len(value),
                        }
                    )
                    start = text.find(value, start + 1)
            return found

        return classify


AdapterBuilder = Callable[..., tuple[EntityClassificationAdapter, FakeClassifierLoader]]


@pytest.fixture()
def make_adapter() -> AdapterBuilder:
    """Factory for adapters backed by a FakeClassifierLoader on a private channel."""

    def build(
        names: dict[str, str] | None = None,
        unavailable: bool = False,
        fail_inference: bool = False,
        max_chunk_chars: int = 800,
        max_chunks: int = 32,
    ) -> tuple[EntityClassificationAdapter, FakeClassifierLoader]:
        loader = FakeClassifierLoader(
            names,
            error=ModelUnavailableError("model download failed") if unavailable else None,
            fail_inference=fail_inference,
        )
        adapter = EntityClassificationAdapter(
            LazyClassifier(loader, LifecycleChannel()),
            max_chunk_chars=max_chunk_chars,
            max_chunks=max_chunks,
        )
        return adapter, loader

    return build


@pytest.fixture()
def sample_pdf_bytes() -> bytes:
    """A two-page PDF with an author, an email and an acknowledgements line."""
    buf = io.BytesIO()
    c = canvas.Canvas(buf, pagesize=letter)
    c.setAuthor("Jane Doe")
    c.setTitle("Deep Results")
    c.drawString(72, 720, "Contact jane.doe@example.org for the data.")
    c.showPage()
    c.drawString(72, 720, "Acknowledgements. We thank the reviewers.")
    c.drawString(72, 700, "Code at https://github.com/janedoe/results now.")
    c.save()
    return buf.getvalue()


@pytest.fixture()
def latex_pdf_bytes() -> bytes:
    """A PDF whose creator names the LaTeX toolchain."""
    buf = io.BytesIO()
    c = canvas.Canvas(buf, pagesize=letter)
    c.setCreator("LaTeX with hyperref")
    c.drawString(72, 720, "Anonymous submission")
    c.save()
    return buf.getvalue()


@pytest.fixture()
def empty_pdf_bytes() -> bytes:
    """Generate a valid PDF with no text content (blank page)."""
    buf = io.BytesIO()
    c = canvas.Canvas(buf, pagesize=letter)
    c.showPage()
    c.save()
    return buf.getvalue()
