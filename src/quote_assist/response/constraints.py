"""Trimming of generated text to a length budget"""  # noqa: D415

import re

from quote_assist.core.types import LengthBudget

# End punctuation followed by whitespace marks a sentence boundary
_SENTENCE_BOUNDARY = re.compile(r"(?<=[.!?])\s+")
_TERMINAL_PUNCTUATION = (".", "!", "?")


def split_sentences(text: str) -> list[str]:
    """Split text into sentences on end punctuation followed by whitespace."""
    return [s for s in _SENTENCE_BOUNDARY.split(text.strip()) if s]


def enforce(text: str, budget: LengthBudget) -> str:
    """Trim `text` to the budget's sentence and word caps.

    Keeps at most ``budget.max_sentences`` sentences in their original order,
    then at most ``budget.max_words`` words. A word cut gets a closing period
    unless the kept text already ends in terminal punctuation. Never lengthens
    the text, and applying it twice gives the same result as applying it once.
    """
    if not text:
        return text

    sentences = split_sentences(text)
    kept = " ".join(sentences[: budget.max_sentences])

    words = kept.split()
    if len(words) <= budget.max_words:
        return kept

    trimmed = " ".join(words[: budget.max_words])
    if not trimmed.endswith(_TERMINAL_PUNCTUATION):
        trimmed += "."
    return trimmed
