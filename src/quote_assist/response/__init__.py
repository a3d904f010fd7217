"""Recovery of structured values from raw model output."""

from .coercion import assemble, assemble_record, coerce_number, coerce_string
from .constraints import enforce, split_sentences
from .normalizer import ResponseNormalizer, constrain_descriptions, normalize
from .parser import (
    DEFAULT_TIERS,
    STRUCTURAL_TIERS,
    LenientStructureParser,
    PreparedText,
    Tier,
    parse,
    prepare,
)

__all__ = [  # noqa: RUF022
    "LenientStructureParser",
    "ResponseNormalizer",
    "PreparedText",
    "Tier",
    "DEFAULT_TIERS",
    "STRUCTURAL_TIERS",
    "parse",
    "prepare",
    "normalize",
    "enforce",
    "split_sentences",
    "constrain_descriptions",
    "assemble",
    "assemble_record",
    "coerce_number",
    "coerce_string",
]
