"""Email and URL extraction from free text.

Processing flow:
1. Collapse whitespace that layout engines insert inside URLs
   (``https : // example . org / a``).
2. Run every pattern family over the whole normalized text.
3. Trim trailing punctuation from each candidate.
4. Keep the longest candidate per start offset and drop overlaps,
   so an address embedded in a URL is reported once, as the URL.
"""

from __future__ import annotations

import re
from collections.abc import Iterator
from typing import ClassVar
from urllib.parse import unquote

from blindcheck.analysis.models import Match, MatchKind


class ContentScanner:
    """Deterministic email/URL scanner."""

    _NORMALIZE_RULES: ClassVar[list[tuple[re.Pattern[str], str]]] = [
        (re.compile(r"(https?|ftp)\s*:\s*/\s*/\s*", re.IGNORECASE), r"\1://"),
        (re.compile(r"\b(https?|ftp)\s*:\s*", re.IGNORECASE), r"\1:"),
        # Right-hand side must be lowercase so "word. Next" stays a sentence break.
        (re.compile(r"([A-Za-z0-9%~_+\-])\s*\.\s*([a-z0-9%~_+\-])"), r"\1.\2"),
        (re.compile(r"([A-Za-z0-9%~_+\-.])\s*/\s*([A-Za-z0-9%~_+\-.])"), r"\1/\2"),
        (re.compile(r"\?\s*"), "?"),
        (re.compile(r"&\s*"), "&"),
        (re.compile(r"=\s*"), "="),
        (re.compile(r"#\s*"), "#"),
    ]

    _URL_PATTERNS: ClassVar[list[re.Pattern[str]]] = [
        re.compile(r"(?:https?://|ftp://)[^\s<>\"'`{}|\\^\[\]]+", re.IGNORECASE),
        re.compile(r"\bwww\.[A-Za-z0-9.\-]+(?:/[^\s<>\"'`{}|\\\[\]]*)?", re.IGNORECASE),
        re.compile(
            r"\b(?:[a-z0-9](?:[a-z0-9\-]{0,61}[a-z0-9])?\.)+[a-z]{2,63}"
            r"/[^\s<>\"'`{}|\\^\[\]]+",
            re.IGNORECASE,
        ),
    ]
    _EMAIL_RE: ClassVar[re.Pattern[str]] = re.compile(
        r"\b[A-Za-z0-9._%+\-]+@[A-Za-z0-9.\-]+\.[A-Za-z]{2,}\b"
    )
    _TRAILING_CHARS: ClassVar[frozenset[str]] = frozenset(".,;:!?…'\"”’›»)]")

    def scan(self, text: str) -> list[Match]:
        """Return non-overlapping matches sorted by start offset."""
        if not text or not text.strip():
            return []
        source = self.normalize(text)

        candidates: list[Match] = []
        for pattern in self._URL_PATTERNS:
            candidates.extend(self._collect(pattern, source, "url"))
        candidates.extend(self._collect(self._EMAIL_RE, source, "email"))

        candidates.sort(key=lambda m: (m.start, -m.end))
        return self._select(candidates)

    def scan_values(self, text: str) -> Iterator[tuple[str, MatchKind]]:
        """Yield ``(value, kind)`` for every match in *text*."""
        for match in self.scan(text):
            yield match.value, match.kind

    @classmethod
    def normalize(cls, text: str) -> str:
        out = text
        for pattern, replacement in cls._NORMALIZE_RULES:
            out = pattern.sub(replacement, out)
        return out

    @classmethod
    def strip_trailing(cls, value: str) -> str:
        """Drop trailing punctuation; a ``)`` goes only when unbalanced."""
        out = value.strip()
        while out:
            last = out[-1]
            if last == ")" and out.count("(") >= out.count(")"):
                break
            if last not in cls._TRAILING_CHARS:
                break
            out = out[:-1]
        return out

    def _collect(
        self, pattern: re.Pattern[str], source: str, kind: MatchKind
    ) -> Iterator[Match]:
        for m in pattern.finditer(source):
            value = self.strip_trailing(m.group(0))
            if not value:
                continue
            yield Match(value=value, kind=kind, start=m.start(), end=m.start() + len(value))

    @staticmethod
    def _select(candidates: list[Match]) -> list[Match]:
        selected: list[Match] = []
        last_end = -1
        for current in candidates:
            if current.start < last_end:
                continue
            if current.kind == "email" and any(
                m.kind == "url" and m.start == current.start and m.end >= current.end
                for m in selected
            ):
                continue
            selected.append(current)
            last_end = current.end
        return selected


def mailto_address(target: str) -> str:
    """Extract the address from a ``mailto:`` hyperlink target ("" if none)."""
    if not target.lower().startswith("mailto:"):
        return ""
    address = target[len("mailto:"):].split("?", 1)[0]
    return unquote(address).strip()
