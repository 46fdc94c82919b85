import re

_WHITESPACE_RE = re.compile(r"\s+")
_SENTENCE_SPLIT_RE = re.compile(r"(?<=[.!?。！？])\s+")


def _hard_wrap(sentence: str, max_chars: int) -> list[str]:
    if len(sentence) <= max_chars:
        return [sentence]
    return [sentence[i : i + max_chars] for i in range(0, len(sentence), max_chars)]


def chunk_text(text: str, max_chars: int = 800) -> list[str]:
    """Split *text* into whitespace-normalized chunks of at most *max_chars*.

    Sentences are packed greedily; a sentence longer than the budget is
    hard-wrapped.
    """
    sanitized = _WHITESPACE_RE.sub(" ", text).strip()
    if not sanitized:
        return []
    if len(sanitized) <= max_chars:
        return [sanitized]

    chunks: list[str] = []
    current = ""
    for sentence in _SENTENCE_SPLIT_RE.split(sanitized):
        for part in _hard_wrap(sentence, max_chars):
            candidate = f"{current} {part}".strip() if current else part.strip()
            if len(candidate) > max_chars and current:
                chunks.append(current.strip())
                current = part.strip()
            elif len(candidate) > max_chars:
                chunks.append(part.strip())
                current = ""
            else:
                current = candidate
    if current:
        chunks.append(current.strip())
    return chunks


def chunk_windows(text: str, max_chars: int = 800) -> list[tuple[int, str]]:
    """Split *text* into ``(offset, chunk)`` windows without rewriting it.

    Unlike ``chunk_text`` the windows are verbatim slices, so offsets reported
    inside a window map back onto *text* by adding the window offset.
    """
    if not text.strip():
        return []
    if len(text) <= max_chars:
        return [(0, text)]

    segments: list[tuple[int, int]] = []
    cursor = 0
    for boundary in _SENTENCE_SPLIT_RE.finditer(text):
        segments.append((cursor, boundary.start()))
        cursor = boundary.end()
    segments.append((cursor, len(text)))

    windows: list[tuple[int, int]] = []
    for seg_start, seg_end in segments:
        for part_start in range(seg_start, seg_end, max_chars):
            part_end = min(part_start + max_chars, seg_end)
            if windows and part_end - windows[-1][0] <= max_chars:
                windows[-1] = (windows[-1][0], part_end)
            else:
                windows.append((part_start, part_end))
    return [(start, text[start:end]) for start, end in windows if text[start:end].strip()]
