import re
from typing import ClassVar

from blindcheck.analysis.models import FindingMap, ResearchSignals

ACK_HEADERS_RE = re.compile(
    r"\b(acknowledg(?:e)?ments?|acknowledgment|acknowledgements)\b", re.IGNORECASE
)
FUND_PHRASES_RE = re.compile(
    r"\b(this\s+(?:work|research)\s+(?:was\s+)?(?:supported|funded|sponsored)\s+by"
    r"|we\s+(?:acknowledge|thank).{0,60}\b(?:funding|support)"
    r"|\b(?:grant|award|contract)\s*(?:no\.|number|#)?\s*[:\-]?\s*[A-Z]{0,4}\d[\w\-/.]{3,}\b"
    r"|\b(NIH|NSF|ERC|Horizon\s*2020|Wellcome\s*Trust|UKRI|DFG|NSFC|DARPA|ONR|DoD|DOE|EU"
    r"|NERC|EPSRC|NIHR)\b)",
    re.IGNORECASE,
)
GRANT_ID_RE = re.compile(
    r"\b(?:grant|award|contract)\s*(?:no\.|number|#)?\s*[:\-]?\s*([A-Z]{0,4}\d[\w\-/]{3,})",
    re.IGNORECASE,
)
AFFIL_HEADER_RE = re.compile(r"\b(affiliation|affiliations|author\s+information)\b", re.IGNORECASE)
AFFIL_CUES_RE = re.compile(
    r"\b(University|College|Institute|Department|Laborator(?:y|ies)|Hospital|Center|Centre"
    r"|School|Faculty|Company|Inc\.|Ltd\.|LLC|GmbH|CNRS|Max\s*Planck|Oxford|Cambridge"
    r"|Harvard|Stanford|MIT|Caltech|ETH|Tsinghua|Peking|National\s+Laboratory)\b",
    re.IGNORECASE,
)

_SENTENCE_SPLIT_RE = re.compile(r"(?<=[.!?])\s+")
_WHITESPACE_RE = re.compile(r"\s+")
_LEADING_ELLIPSIS_RE = re.compile(r"^(?:…|\.\.\.)\s*")
_TRAILING_ELLIPSIS_RE = re.compile(r"\s*(?:…|\.\.\.)$")
_LEADING_QUOTES_RE = re.compile(r"^['\"“”‘’]+\s*")
_TRAILING_QUOTES_RE = re.compile(r"\s*['\"“”‘’]+$")
SOFT_HYPHEN = "\u00ad"


def split_sentences(text: str) -> list[str]:
    return _SENTENCE_SPLIT_RE.split(text)


def is_acknowledgement_header(text: str) -> bool:
    return ACK_HEADERS_RE.search(text) is not None


def is_affiliation_candidate(text: str) -> bool:
    return AFFIL_HEADER_RE.search(text) is not None or AFFIL_CUES_RE.search(text) is not None


def extract_context_snippet(text: str, index: int, window: int = 220) -> str:
    """Return the text around *index*, ellipsis-marked where it was cut."""
    half = window // 2
    start = max(0, index - half)
    end = min(len(text), index + half)
    snippet = _WHITESPACE_RE.sub(" ", text[start:end]).strip()
    prefix = "… " if start > 0 else ""
    suffix = " …" if end < len(text) else ""
    return f"{prefix}{snippet}{suffix}"


def _dedupe(items: list[str], limit: int) -> list[str]:
    return list(dict.fromkeys(items))[:limit]


class ResearchSignalDetector:
    """Heuristic acknowledgement, funding and affiliation detection.

    All checks are regex based and pure. Callers treat an exception as
    "no signals".
    """

    MAX_FUNDING_MENTIONS: ClassVar[int] = 6
    MAX_GRANT_IDS: ClassVar[int] = 10
    MAX_AFFILIATION_GUESSES: ClassVar[int] = 8
    AFFILIATION_SCAN_CHARS: ClassVar[int] = 15000

    def scan(self, raw_text: str) -> ResearchSignals:
        text = _WHITESPACE_RE.sub(" ", (raw_text or "").replace(SOFT_HYPHEN, ""))
        signals = ResearchSignals()

        # Only an explicit header counts, never generic thank-you prose.
        ack = ACK_HEADERS_RE.search(text)
        if ack is not None:
            signals.acknowledgements_detected = True
            signals.acknowledgements_excerpt = extract_context_snippet(text, ack.start())

        funding_hits = [
            extract_context_snippet(text, m.start()) for m in FUND_PHRASES_RE.finditer(text)
        ]
        if funding_hits:
            signals.funding_detected = True
            signals.funding_mentions = _dedupe(funding_hits, self.MAX_FUNDING_MENTIONS)

        grant_ids = [m.group(1) for m in GRANT_ID_RE.finditer(text) if m.group(1)]
        if grant_ids:
            signals.grant_ids = _dedupe(grant_ids, self.MAX_GRANT_IDS)

        # Author blocks sit at the start of a document.
        head = text[: self.AFFILIATION_SCAN_CHARS]
        affiliations = [
            _WHITESPACE_RE.sub(" ", s).strip()
            for s in split_sentences(head)
            if is_affiliation_candidate(s)
        ]
        if affiliations:
            signals.affiliations_detected = True
            signals.affiliations_guesses = _dedupe(affiliations, self.MAX_AFFILIATION_GUESSES)

        return signals

    @staticmethod
    def normalize_finding(raw_text: str) -> str:
        out = _WHITESPACE_RE.sub(" ", (raw_text or "").replace(SOFT_HYPHEN, "")).strip()
        out = _LEADING_ELLIPSIS_RE.sub("", out)
        out = _TRAILING_ELLIPSIS_RE.sub("", out)
        out = _LEADING_QUOTES_RE.sub("", out)
        out = _TRAILING_QUOTES_RE.sub("", out)
        return out

    @classmethod
    def add_finding(cls, finding_map: FindingMap, raw_text: str, unit_index: int) -> None:
        """Record *raw_text* as seen on *unit_index*; no-op when it normalizes to empty."""
        key = cls.normalize_finding(raw_text)
        if not key:
            return
        finding_map.setdefault(key, set()).add(unit_index)

    @classmethod
    def collect_unit_findings(
        cls,
        text: str,
        unit_index: int,
        acknowledgements: FindingMap,
        affiliations: FindingMap,
    ) -> None:
        """Add one unit's acknowledgement and affiliation sentences to the maps.

        When the acknowledgement header is not already covered by a sentence
        recorded for this unit, a context excerpt around it is added instead.
        """
        if not text:
            return
        for sentence in split_sentences(text):
            if is_acknowledgement_header(sentence):
                cls.add_finding(acknowledgements, sentence, unit_index)
            if is_affiliation_candidate(sentence):
                cls.add_finding(affiliations, sentence, unit_index)

        header = ACK_HEADERS_RE.search(text)
        if header is None:
            return
        phrase = header.group(0).lower()
        covered = any(
            unit_index in units and phrase in finding.lower()
            for finding, units in acknowledgements.items()
        )
        if not covered:
            cls.add_finding(
                acknowledgements, extract_context_snippet(text, header.start()), unit_index
            )
