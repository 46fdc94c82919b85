import re
from collections.abc import Iterable

from blindcheck.ner.base import RawEntity
from blindcheck.ner.models import NamedEntity, Span

_WHITESPACE_RE = re.compile(r"\s+")
_LABEL_PREFIX_RE = re.compile(r"^[BI]-")
# whitespace, apostrophes, hyphens and middle dots may sit inside one name
_JOINABLE_GAP_RE = re.compile(r"^[\s'’\-‐‑·]*$")


def normalize_label(raw: object) -> str:
    if not isinstance(raw, str):
        return ""
    return _LABEL_PREFIX_RE.sub("", raw.strip()).upper()


def normalize_value(raw: object) -> str:
    if not isinstance(raw, str):
        return ""
    return _WHITESPACE_RE.sub(" ", raw.replace("##", "")).strip()


def _score(entry: RawEntity) -> float:
    raw = entry.get("score", entry.get("confidence", 0.0))
    try:
        return float(raw)
    except (TypeError, ValueError):
        return 0.0


def _label(entry: RawEntity) -> str:
    return normalize_label(entry.get("entity_group", entry.get("entity")))


def to_named_entities(entries: Iterable[RawEntity]) -> list[NamedEntity]:
    """Convert raw classifier output into entities, dropping ``O`` and blanks."""
    items: list[NamedEntity] = []
    for entry in entries:
        label = _label(entry)
        if not label or label == "O":
            continue
        value = normalize_value(entry.get("word", entry.get("text", "")))
        if not value:
            continue
        items.append(NamedEntity(label=label, value=value, score=_score(entry)))
    return items


def to_spans(entries: Iterable[RawEntity], source: str, offset: int = 0) -> list[Span]:
    """Convert raw output carrying offsets into spans over *source*.

    *offset* is added to every entry offset, for output of a window that
    starts inside *source*.
    """
    spans: list[Span] = []
    for entry in entries:
        label = _label(entry)
        if not label or label == "O":
            continue
        start, end = entry.get("start"), entry.get("end")
        if start is None or end is None:
            continue
        start, end = int(start) + offset, int(end) + offset
        if end <= start:
            continue
        spans.append(
            Span(label=label, text=source[start:end], start=start, end=end, score=_score(entry))
        )
    return spans


def merge_spans(spans: Iterable[Span], source: str) -> list[Span]:
    """Join adjacent same-label spans and drop overlaps.

    Two consecutive spans with the same label merge when they overlap or the
    text between them is joinable. The merged span covers both, its text is
    re-sliced from *source* and it keeps the higher score. A span overlapping
    a previous span of another label is dropped.
    """
    merged: list[Span] = []
    for span in sorted(spans, key=lambda s: (s.start, -s.end)):
        if merged:
            last = merged[-1]
            overlaps = span.start < last.end
            if span.label == last.label and (
                overlaps or _JOINABLE_GAP_RE.match(source[last.end : span.start])
            ):
                start, end = last.start, max(last.end, span.end)
                merged[-1] = Span(
                    label=last.label,
                    text=source[start:end],
                    start=start,
                    end=end,
                    score=max(last.score, span.score),
                )
                continue
            if overlaps:
                continue
        merged.append(span)
    return merged
