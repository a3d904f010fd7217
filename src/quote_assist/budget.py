"""Adaptive output-size budgeting.

Short user input gets a short answer: the word count of the input selects a
tier, and the tier fixes how many sentences and words a generated text field
may hold and how many tokens the model may spend producing it.
"""

from quote_assist.constants import (
    BUDGET_TIER_BOUNDS,
    NARRATIVE_MAX_OUTPUT_TOKENS,
    NARRATIVE_MIN_OUTPUT_TOKENS,
    NARRATIVE_TIER_LIMITS,
    NARRATIVE_TOKENS_PER_WORD,
    TASK_ARRAY_MAX_OUTPUT_TOKENS,
    TASK_ARRAY_MIN_OUTPUT_TOKENS,
    TASK_MAX_OUTPUT_TOKENS,
    TASK_MIN_OUTPUT_TOKENS,
    TASK_STRUCTURE_OVERHEAD_TOKENS,
    TASK_TIER_LIMITS,
    TASK_TOKENS_PER_WORD,
)
from quote_assist.core.types import BudgetProfile, LengthBudget


def word_count(text: str) -> int:
    """Number of whitespace-separated words in `text`."""
    return len(text.split())


def budget_tier(count: int) -> int:
    """Index of the tier a word count falls into (0 for the smallest input)."""
    for tier, upper in enumerate(BUDGET_TIER_BOUNDS):
        if count <= upper:
            return tier
    return len(BUDGET_TIER_BOUNDS)


def _clamp(value: int, lower: int, upper: int) -> int:
    return max(lower, min(value, upper))


def task_tokens_per_item(max_words: int) -> int:
    """Token allowance for one task object inside an array response."""
    return round(max_words * TASK_TOKENS_PER_WORD) + TASK_STRUCTURE_OVERHEAD_TOKENS


def compute_budget(
    text: str,
    profile: BudgetProfile | str = BudgetProfile.NARRATIVE,
    *,
    requested_items: int | None = None,
) -> LengthBudget:
    """Derive the length budget for a response to `text`.

    Args:
        text: The user's input. Any string is accepted, including "".
        profile: ``"narrative"`` for project descriptions, ``"task"`` for
            task suggestions.
        requested_items: For task array requests, how many tasks the model
            is asked for; scales the token budget. Ignored for narrative.

    Returns:
        An immutable `LengthBudget`.
    """
    profile = BudgetProfile(profile)
    tier = budget_tier(word_count(text))

    if profile is BudgetProfile.NARRATIVE:
        max_sentences, max_words = NARRATIVE_TIER_LIMITS[tier]
        tokens = _clamp(
            round(max_words * NARRATIVE_TOKENS_PER_WORD),
            NARRATIVE_MIN_OUTPUT_TOKENS,
            NARRATIVE_MAX_OUTPUT_TOKENS,
        )
    else:
        max_sentences, max_words = TASK_TIER_LIMITS[tier]
        per_item = task_tokens_per_item(max_words)
        if requested_items is not None and requested_items > 0:
            tokens = _clamp(
                per_item * requested_items,
                TASK_ARRAY_MIN_OUTPUT_TOKENS,
                TASK_ARRAY_MAX_OUTPUT_TOKENS,
            )
        else:
            tokens = _clamp(per_item, TASK_MIN_OUTPUT_TOKENS, TASK_MAX_OUTPUT_TOKENS)

    return LengthBudget(
        max_sentences=max_sentences,
        max_words=max_words,
        max_output_tokens=tokens,
    )
