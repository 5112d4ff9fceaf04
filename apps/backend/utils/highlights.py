"""
Keyword highlighting for the editor.

The editor renders a list of spans instead of mutating markup in place.
Caret preservation works on plain character offsets: the caret offset is
captured before a render and mapped back onto the new spans afterwards.
"""

import re
from dataclasses import dataclass
from typing import Dict, List, Optional, Tuple


@dataclass(frozen=True)
class TextSpan:
    text: str
    start: int
    keyword: Optional[str] = None
    color: Optional[str] = None

    @property
    def end(self) -> int:
        return self.start + len(self.text)

    @property
    def is_keyword(self) -> bool:
        return self.keyword is not None


def _find_matches(text: str, keyword_colors: Dict[str, str]) -> List[Tuple[int, int, str]]:
    matches = []
    for keyword in keyword_colors:
        if not keyword:
            continue
        pattern = re.compile(rf"\b{re.escape(keyword)}\b", re.IGNORECASE)
        for match in pattern.finditer(text):
            matches.append((match.start(), match.end(), keyword))
    # sort is stable: for equal starts the earlier map entry wins
    matches.sort(key=lambda m: m[0])

    kept: List[Tuple[int, int, str]] = []
    for start, end, keyword in matches:
        if any(start < k_end and end > k_start for k_start, k_end, _ in kept):
            continue
        kept.append((start, end, keyword))
    return kept


def build_highlight_spans(text: str, keyword_colors: Dict[str, str]) -> List[TextSpan]:
    """Split ``text`` into plain and keyword spans.

    Keywords match case-insensitively on word boundaries; when two matches
    overlap the one starting first is kept. Span texts concatenate back to
    ``text`` exactly.
    """
    if not text:
        return []

    spans: List[TextSpan] = []
    last = 0
    for start, end, keyword in _find_matches(text, keyword_colors):
        if start > last:
            spans.append(TextSpan(text[last:start], last))
        spans.append(TextSpan(text[start:end], start, keyword, keyword_colors[keyword]))
        last = end
    if last < len(text):
        spans.append(TextSpan(text[last:], last))
    return spans


def clamp_caret(offset: int, text: str) -> int:
    """Clamp a saved caret offset to the bounds of the new text."""
    return max(0, min(offset, len(text or "")))


def locate_caret(spans: List[TextSpan], offset: int) -> Tuple[int, int]:
    """Map a character offset onto (span index, offset within span).

    An offset on a boundary belongs to the span that ends there, so typing
    continues the word under the caret. Empty span lists map to (0, 0).
    """
    if not spans:
        return 0, 0
    for index, span in enumerate(spans):
        if offset <= span.end:
            return index, max(0, offset - span.start)
    last = spans[-1]
    return len(spans) - 1, len(last.text)


def keyword_at(spans: List[TextSpan], offset: int) -> Optional[str]:
    """Return the keyword under a click at ``offset``, if any."""
    for span in spans:
        if span.start <= offset < span.end:
            return span.keyword
    return None
