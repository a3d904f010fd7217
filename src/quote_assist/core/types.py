"""Core data types shared by the budgeting, recovery and governance layers.

Values here are immutable: a `LengthBudget` is derived once per call, an
`ExpectedShape` is declared by the caller, and a `ParseOutcome` is the only
thing the recovery layer hands back. Failures are values the caller branches
on, never exceptions.
"""

from __future__ import annotations

import dataclasses
from enum import Enum, StrEnum
import typing

from quote_assist.constants import DEFAULT_ARRAY_KEYS

# --- Minimal guard helpers (clarity > boilerplate) ---


def _require(
    *,
    condition: bool,
    message: str,
    exc: type[Exception] = ValueError,
    field_name: str | None = None,
) -> None:
    """Centralized validation with optional field context for clearer errors."""
    if not condition:
        if field_name:
            enhanced_message = f"{field_name}: {message}"
            raise exc(enhanced_message)
        raise exc(message)


def _require_positive_int(value: object, field_name: str) -> None:
    _require(
        condition=isinstance(value, int) and not isinstance(value, bool),
        message=f"must be an int, got {type(value).__name__}",
        field_name=field_name,
        exc=TypeError,
    )
    _require(
        condition=typing.cast("int", value) >= 1,
        message=f"must be >= 1, got {value}",
        field_name=field_name,
    )


# --- Result Monad for Robust Error Handling ---
# Governance and the call-site facade return these instead of raising, so
# upstream and quota failures are a predictable part of the data flow.

TSuccess = typing.TypeVar("TSuccess")
TFailure = typing.TypeVar("TFailure", bound=Exception)


@dataclasses.dataclass(frozen=True, slots=True)
class Success[TSuccess]:
    """A successful result."""

    value: TSuccess


@dataclasses.dataclass(frozen=True, slots=True)
class Failure[TFailure]:
    """A failed result, containing the error as a value."""

    error: TFailure


Result = Success[TSuccess] | Failure[TFailure]

# --- Length Budgets ---


class BudgetProfile(StrEnum):
    """Which kind of text a budget constrains."""

    NARRATIVE = "narrative"  # project descriptions
    TASK = "task"  # task suggestions


@dataclasses.dataclass(frozen=True, slots=True)
class LengthBudget:
    """Sentence, word and token ceilings for one generated text field."""

    max_sentences: int
    max_words: int
    max_output_tokens: int

    def __post_init__(self) -> None:
        """Validate that every ceiling is a positive integer."""
        _require_positive_int(self.max_sentences, "max_sentences")
        _require_positive_int(self.max_words, "max_words")
        _require_positive_int(self.max_output_tokens, "max_output_tokens")


# --- Expected Shapes ---


class FieldKind(Enum):
    """Value kind of a schema field."""

    STRING = "string"
    NUMBER = "number"
    MATERIALS = "array<Material>"


@dataclasses.dataclass(frozen=True, slots=True)
class FieldSpec:
    """A named schema field.

    `aliases` are alternative keys the model may use for the same field; an
    aliased value is coerced but stays under the key it arrived with.
    `choices` restricts string values.
    """

    name: str
    kind: FieldKind
    required: bool = False
    aliases: tuple[str, ...] = ()
    choices: tuple[str, ...] | None = None

    def __post_init__(self) -> None:
        """Validate the field name and kind."""
        _require(
            condition=isinstance(self.name, str) and self.name.strip() != "",
            message="must be a non-empty str",
            field_name="name",
            exc=TypeError,
        )
        _require(
            condition=isinstance(self.kind, FieldKind),
            message=f"must be a FieldKind, got {self.kind!r}",
            field_name="kind",
            exc=TypeError,
        )

    @property
    def keys(self) -> tuple[str, ...]:
        """All keys this field may appear under, canonical name first."""
        return (self.name, *self.aliases)


Schema = tuple[FieldSpec, ...]


@dataclasses.dataclass(frozen=True, slots=True)
class SingleObject:
    """The caller expects one record."""

    schema: Schema

    def __post_init__(self) -> None:
        """Freeze the schema into a tuple."""
        object.__setattr__(self, "schema", tuple(self.schema))


@dataclasses.dataclass(frozen=True, slots=True)
class ObjectArray:
    """The caller expects a list of at most `max_items` records."""

    schema: Schema
    max_items: int
    array_keys: tuple[str, ...] = DEFAULT_ARRAY_KEYS

    def __post_init__(self) -> None:
        """Freeze the schema and validate the item cap."""
        object.__setattr__(self, "schema", tuple(self.schema))
        object.__setattr__(self, "array_keys", tuple(self.array_keys))
        _require_positive_int(self.max_items, "max_items")


@dataclasses.dataclass(frozen=True, slots=True)
class PlainText:
    """The caller expects free text, e.g. a project description."""


ExpectedShape = SingleObject | ObjectArray | PlainText

# --- Parse Outcomes ---


@dataclasses.dataclass(frozen=True, slots=True)
class ParseSuccess:
    """A value satisfying the expected shape, with the tier that produced it."""

    value: typing.Any
    method: str = "direct"


@dataclasses.dataclass(frozen=True, slots=True)
class PartialSuccess:
    """Usable but incomplete data; callers should surface `warning`."""

    value: typing.Any
    warning: str
    method: str = "field_regex"


@dataclasses.dataclass(frozen=True, slots=True)
class ParseFailure:
    """No tier recovered a usable structure."""

    reason: str


ParseOutcome = ParseSuccess | PartialSuccess | ParseFailure
