# clipit/identifier/stages/mine_keywords.py
"""
Comment keyword mining.

Two independent heuristics over the concatenated comment text:
- phrase templates ("this is from X", "the movie X", "'X' film", ...)
- capitalized runs that recur across comments (count >= 2)

Results are unioned, deduplicated and capped. This is pattern matching,
not entity recognition: actor names and coincidental repeats get through.
"""

from __future__ import annotations

import re
from collections import Counter
from typing import Iterable, List

MAX_KEYWORDS = 10
MAX_PHRASE_LENGTH = 50
MIN_REPEATS = 2

PHRASE_PATTERNS = (
    re.compile(
        r"(?:this is from|this movie is|the movie|from the film|scene from)\s+[\"']?([^\"'\n.!?]+)[\"']?",
        re.IGNORECASE,
    ),
    re.compile(r"[\"']([^\"']+)[\"']\s+(?:movie|film)", re.IGNORECASE),
)

CAPITALIZED_RUN = re.compile(r"\b([A-Z][a-z]+(?:\s+[A-Z][a-z]+)*)\b")

STOPWORDS = frozenset({
    "The", "This", "That", "What", "When", "Where", "How", "Why",
    "I", "You", "He", "She", "It", "We", "They", "And", "But", "Or",
})


def _template_phrases(text: str) -> List[str]:
    phrases = []
    lowered = text.lower()
    for pattern in PHRASE_PATTERNS:
        for match in pattern.finditer(lowered):
            cleaned = match.group(1).strip()[:MAX_PHRASE_LENGTH]
            if len(cleaned) > 2:
                phrases.append(cleaned)
    return phrases


def _recurring_capitalized(text: str) -> List[str]:
    counts: Counter[str] = Counter(
        phrase
        for phrase in CAPITALIZED_RUN.findall(text)
        if len(phrase) > 3 and phrase not in STOPWORDS
    )
    return [phrase.lower() for phrase, count in counts.items() if count >= MIN_REPEATS]


def extract_keywords(comments: Iterable[str]) -> List[str]:
    """Candidate title-like phrases from raw comment text, at most MAX_KEYWORDS."""
    text = " ".join(comments)
    if not text.strip():
        return []

    # dict keeps first-seen order while deduplicating
    keywords = dict.fromkeys(_template_phrases(text) + _recurring_capitalized(text))
    return list(keywords)[:MAX_KEYWORDS]
