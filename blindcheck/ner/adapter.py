import asyncio
import re
from collections.abc import Mapping
from typing import ClassVar, Protocol

from blindcheck.logging.logger import Log
from blindcheck.ner.accumulator import EntityAccumulator
from blindcheck.ner.chunking import chunk_text, chunk_windows
from blindcheck.ner.exceptions import AnalysisCancelledError
from blindcheck.ner.lazy_resource import LazyClassifier
from blindcheck.ner.models import EntityExtraction, NamedEntity, Span, SpanClassification
from blindcheck.ner.spans import merge_spans, to_named_entities, to_spans

NLP_ENABLED = "Transformers enabled"
NLP_FALLBACK = "Fallback only (NLP unavailable)"
NLP_METADATA_FALLBACK = "Metadata-only fallback (NLP unavailable)"
NLP_TRUNCATED_NOTE = "Named entity detection truncated to reduce processing time."

_LATEX_RE = re.compile("latex", re.IGNORECASE)


class CancelSignal(Protocol):
    def is_set(self) -> bool: ...


def raise_if_cancelled(cancel_event: CancelSignal | None) -> None:
    if cancel_event is not None and cancel_event.is_set():
        raise AnalysisCancelledError("Cancelled")


def is_exempt_value(value: str) -> bool:
    """Values naming the LaTeX toolchain are never identity leaks."""
    return _LATEX_RE.search(value) is not None


class EntityClassificationAdapter:
    """Entity extraction and span classification over a shared classifier.

    No classifier failure propagates out of this class: load and inference
    errors come back as ``available=False`` with the error message. Only
    ``AnalysisCancelledError`` is raised, when *cancel_event* is set between
    chunks.
    """

    SENSITIVE_LABELS: ClassVar[frozenset[str]] = frozenset(
        {"PER", "PERSON", "ORG", "ORGANIZATION"}
    )
    METADATA_FIELDS: ClassVar[tuple[str, ...]] = (
        "title",
        "subject",
        "description",
        "keywords",
        "author",
        "creator",
        "lastModifiedBy",
        "company",
        "manager",
    )

    def __init__(
        self,
        resource: LazyClassifier,
        max_chunk_chars: int = 800,
        max_chunks: int = 32,
    ) -> None:
        self._resource = resource
        self._max_chunk_chars = max_chunk_chars
        self._max_chunks = max_chunks

    @property
    def model_id(self) -> str:
        return self._resource.model_id

    async def extract_entities(
        self, text: str, cancel_event: CancelSignal | None = None
    ) -> EntityExtraction:
        """Return a flat entity list for *text*, at most ``max_chunks`` chunks deep."""
        trimmed = (text or "").strip()
        if not trimmed:
            return EntityExtraction(available=True, model=self.model_id)

        try:
            classifier = await self._resource.get()
        except Exception as exc:
            return EntityExtraction(available=False, error=str(exc))

        chunks = chunk_text(trimmed, self._max_chunk_chars)
        limited = chunks[: self._max_chunks]
        Log.debug(f"Classifying {len(limited)} chunk(s) of {len(trimmed)} chars")
        items: list[NamedEntity] = []
        try:
            for chunk in limited:
                raise_if_cancelled(cancel_event)
                raw = await asyncio.to_thread(classifier, chunk)
                if isinstance(raw, list):
                    items.extend(to_named_entities(raw))
        except AnalysisCancelledError:
            raise
        except Exception as exc:
            Log.warning(f"Entity extraction failed: {exc}")
            return EntityExtraction(available=False, error=str(exc))

        truncated = len(chunks) > len(limited)
        if truncated:
            Log.info(f"Entity extraction truncated to {len(limited)} of {len(chunks)} chunks")
        return EntityExtraction(
            available=True, items=items, model=self.model_id, truncated=truncated
        )

    async def classify_spans(
        self, text: str, cancel_event: CancelSignal | None = None
    ) -> SpanClassification:
        """Return merged, non-overlapping spans with offsets into *text*."""
        if not text or not text.strip():
            return SpanClassification(available=True)

        try:
            classifier = await self._resource.get()
        except Exception as exc:
            return SpanClassification(available=False, error=str(exc))

        spans: list[Span] = []
        try:
            for offset, window in chunk_windows(text, self._max_chunk_chars)[: self._max_chunks]:
                raise_if_cancelled(cancel_event)
                raw = await asyncio.to_thread(classifier, window)
                if isinstance(raw, list):
                    spans.extend(to_spans(raw, text, offset))
        except AnalysisCancelledError:
            raise
        except Exception as exc:
            Log.warning(f"Span classification failed: {exc}")
            return SpanClassification(available=False, error=str(exc))
        return SpanClassification(available=True, spans=merge_spans(spans, text))

    async def should_flag_as_sensitive(self, value: str) -> bool:
        """Whether *value* looks like a person or organization.

        An unavailable classifier answers ``True``: over-flagging is preferred
        to silently missing a real name.
        """
        if not value or not value.strip():
            return False
        if is_exempt_value(value):
            return False
        result = await self.classify_spans(value)
        if not result.available:
            return True
        return any(span.label in self.SENSITIVE_LABELS for span in result.spans)

    async def annotate_metadata(self, fields: Mapping[str, object]) -> dict[str, object]:
        """Run entity extraction over descriptive metadata fields.

        Returns the annotations to merge into the file's metadata; empty when
        there is nothing to analyse.
        """
        parts: list[str] = []
        for key in self.METADATA_FIELDS:
            value = fields.get(key)
            if isinstance(value, str) and value.strip():
                parts.append(value.strip())
            elif isinstance(value, list):
                parts.extend(str(v).strip() for v in value if str(v).strip())
        if not parts:
            return {}

        result = await self.extract_entities("\n".join(parts))
        if not result.available:
            return {
                "nlpAnalysis": NLP_METADATA_FALLBACK,
                "nlpFallbackReason": result.error or "Unknown error",
            }

        accumulator = EntityAccumulator()
        accumulator.add(result.items)
        findings = accumulator.finalize()
        annotations: dict[str, object] = {
            "nlpAnalysis": NLP_ENABLED,
            "nlpModel": result.model or self.model_id,
            "metadataNamedEntityCount": len(findings),
        }
        if findings:
            annotations["metadataNamedEntities"] = [f.to_dict() for f in findings]
        return annotations

    def reset_classification_state(self) -> None:
        self._resource.reset()
