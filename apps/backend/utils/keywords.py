import re
from typing import List, Optional

MIN_KEYWORD_LENGTH = 4

# Highlight palette; the first entry doubles as the color for empty keywords
KEYWORD_COLORS = ("#CEE8D7", "#CAE2FF")
DEFAULT_KEYWORD_COLOR = KEYWORD_COLORS[0]

_NON_WORD = re.compile(r"[^\w]")


def extract_keywords(text: Optional[str]) -> List[str]:
    """Extract every meaningful word from ``text``.

    Words are split on whitespace, stripped of punctuation, lowercased and
    kept when longer than three characters. Duplicates are dropped, first
    appearance wins.
    """
    if not text or not text.strip():
        return []

    keywords = {}
    for word in text.split():
        clean = _NON_WORD.sub("", word)
        if len(clean) >= MIN_KEYWORD_LENGTH:
            keywords.setdefault(clean.lower(), None)
    return list(keywords)


def get_keyword_color(keyword: Optional[str]) -> str:
    """Pick a stable highlight color for ``keyword``."""
    if not keyword:
        return DEFAULT_KEYWORD_COLOR
    digest = sum(ord(char) for char in keyword) + len(keyword)
    return KEYWORD_COLORS[digest % 2]
