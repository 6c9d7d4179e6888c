"""
Keyword-frequency concept extraction.

A deliberately naive stand-in for real NLP: words of four or more
characters are counted, the ten most frequent are considered, and those
seen at least twice become concepts.
"""

import re
from collections import Counter
from dataclasses import dataclass
from typing import List

_WORD_RE = re.compile(r'\b\w{4,}\b')

MAX_CONCEPTS = 10
MIN_FREQUENCY = 2
CONTEXT_CHARS = 100


@dataclass(frozen=True)
class ExtractedConcept:
    name: str
    count: int
    confidence: float
    context: str


def extract_concepts(text: str) -> List[ExtractedConcept]:
    """Extract frequent keywords from text.

    ``confidence`` is ``min(count / 10, 1.0)``; ``context`` is the first
    100 characters of the source followed by an ellipsis.
    """
    if not text:
        return []

    words = _WORD_RE.findall(text.lower())
    # Counter.most_common keeps first-seen order among equal counts
    top = Counter(words).most_common(MAX_CONCEPTS)
    context = text[:CONTEXT_CHARS] + "..."

    return [
        ExtractedConcept(
            name=word,
            count=count,
            confidence=min(count / 10, 1.0),
            context=context
        )
        for word, count in top
        if count >= MIN_FREQUENCY
    ]
