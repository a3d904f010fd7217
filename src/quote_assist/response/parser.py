"""Tiered lenient parser for model responses.

Provides the repair chain that turns raw model text into a value matching
the caller's `ExpectedShape`. The response is prepared once (fence
stripping, bound extraction, lexical normalization) and then handed to an
ordered tuple of `Tier`s; the first tier whose value satisfies the shape
wins, and later tiers are never consulted. When every tier fails on a
`SingleObject` request, known fields are pulled out one by one and returned
as a `PartialSuccess`.

The parser never raises for malformed input: failure is a `ParseFailure`
value the caller has to branch on.
"""

from collections.abc import Callable
import dataclasses
import json
import logging
import re
from typing import Any

from quote_assist.core.schemas import MATERIAL_SCHEMA
from quote_assist.core.types import (
    ExpectedShape,
    FieldKind,
    FieldSpec,
    ObjectArray,
    ParseFailure,
    ParseOutcome,
    ParseSuccess,
    PartialSuccess,
    PlainText,
    SingleObject,
)
from quote_assist.telemetry import TelemetryContext, TelemetryContextProtocol

from .coercion import assemble, assemble_record
from .repair import (
    close_truncated,
    convert_single_quotes,
    extract_array_bounds,
    extract_object_bounds,
    find_keyed_array,
    normalize_lexical,
    normalize_quotes,
    strip_fences,
)

log = logging.getLogger(__name__)

_NOT_JSON = object()

# Upper bound for materials recovered by the field-by-field fallback
_MAX_RECOVERED_MATERIALS = 50


@dataclasses.dataclass(frozen=True, slots=True)
class PreparedText:
    """A response after the text-only preparation steps."""

    raw: str
    stripped: str  # code fences removed
    bounded: str  # sliced to the expected structure
    normalized: str  # quotes, newlines, trailing commas, bare keys fixed


TierFn = Callable[[PreparedText, ExpectedShape], Any | None]


@dataclasses.dataclass(frozen=True, slots=True)
class Tier:
    """One repair strategy: returns a shape-satisfying value or None."""

    name: str
    run: TierFn


def _loads(text: str) -> Any:
    try:
        return json.loads(text)
    except json.JSONDecodeError:
        return _NOT_JSON


def _loads_assembled(text: str, shape: ExpectedShape) -> Any | None:
    value = _loads(text)
    if value is _NOT_JSON:
        return None
    return assemble(value, shape)


def prepare(raw: str, shape: ExpectedShape) -> PreparedText:
    """Run fence stripping, bound extraction and lexical normalization."""
    stripped = strip_fences(raw)
    if isinstance(shape, ObjectArray):
        bounded = extract_array_bounds(stripped)
    elif isinstance(shape, SingleObject):
        bounded = extract_object_bounds(stripped)
    else:
        bounded = stripped
    return PreparedText(
        raw=raw,
        stripped=stripped,
        bounded=bounded,
        normalized=normalize_lexical(bounded),
    )


# --- Tiers ---


def direct_tier(prepared: PreparedText, shape: ExpectedShape) -> Any | None:
    """Well-formed JSON is accepted as is."""
    return _loads_assembled(prepared.raw.strip(), shape)


def strict_tier(prepared: PreparedText, shape: ExpectedShape) -> Any | None:
    """Standard JSON parse of the prepared text."""
    return _loads_assembled(prepared.normalized, shape)


def quote_repair_tier(prepared: PreparedText, shape: ExpectedShape) -> Any | None:
    """Retry after rewriting single-quoted literals."""
    return _loads_assembled(convert_single_quotes(prepared.normalized), shape)


def truncation_repair_tier(prepared: PreparedText, shape: ExpectedShape) -> Any | None:
    """Cut at the last complete element before the parse error and close."""
    text = convert_single_quotes(prepared.normalized)
    try:
        json.loads(text)
    except json.JSONDecodeError as e:
        limit = e.pos
    else:
        # Parses, but the value did not fit the shape; cutting cannot help.
        return None

    repaired = close_truncated(
        text, limit=limit, array=isinstance(shape, ObjectArray)
    )
    if repaired is None:
        return None
    return _loads_assembled(repaired, shape)


STRUCTURAL_TIERS: tuple[Tier, ...] = (
    Tier("strict", strict_tier),
    Tier("quote_repair", quote_repair_tier),
    Tier("truncation_repair", truncation_repair_tier),
)


def _run_tiers(
    prepared: PreparedText, shape: ExpectedShape, tiers: tuple[Tier, ...]
) -> tuple[str, Any] | None:
    for tier in tiers:
        value = tier.run(prepared, shape)
        if value is not None:
            return tier.name, value
        log.debug("Tier '%s' did not recover a value.", tier.name)
    return None


def keyed_subtree_tier(prepared: PreparedText, shape: ExpectedShape) -> Any | None:
    """Find ``"<arrayKey>": [...]`` and run the structural tiers on it."""
    if not isinstance(shape, ObjectArray):
        return None
    subtree = find_keyed_array(normalize_quotes(prepared.stripped), shape.array_keys)
    if subtree is None:
        return None
    found = _run_tiers(prepare(subtree, shape), shape, STRUCTURAL_TIERS)
    return found[1] if found else None


DEFAULT_TIERS: tuple[Tier, ...] = (
    Tier("direct", direct_tier),
    *STRUCTURAL_TIERS,
    Tier("keyed_subtree", keyed_subtree_tier),
)

# --- Field-by-field fallback ---


def _key_prefix(field: FieldSpec) -> str:
    names = "|".join(re.escape(key) for key in field.keys)
    return rf"(?<![\w\"'])[\"']?(?:{names})[\"']?\s*:\s*"


def _unescape(body: str, quote: str) -> str:
    if quote == "'":
        return body.replace("\\'", "'")
    try:
        return json.loads(f'"{body}"')
    except json.JSONDecodeError:
        return body.replace('\\"', '"')


def _match_string(text: str, field: FieldSpec) -> str | None:
    pattern = _key_prefix(field) + r"(?:\"((?:\\.|[^\"\\])*)\"?|'((?:\\.|[^'\\])*)'?)"
    match = re.search(pattern, text)
    if match is None:
        return None
    if match.group(1) is not None:
        return _unescape(match.group(1), '"')
    return _unescape(match.group(2), "'")


def _match_number(text: str, field: FieldSpec) -> str | None:
    match = re.search(_key_prefix(field) + r"[\"']?(-?\d+(?:\.\d+)?)", text)
    return match.group(1) if match else None


class LenientStructureParser:
    """Recover structured values from raw model output.

    Attributes:
        tiers: Ordered tiers tried for structured shapes.
    """

    def __init__(
        self,
        tiers: tuple[Tier, ...] | None = None,
        *,
        telemetry: TelemetryContextProtocol | None = None,
    ) -> None:
        """Initialize the parser.

        Args:
            tiers: Optional tier sequence. Defaults to `DEFAULT_TIERS`.
            telemetry: Optional telemetry context recording the winning tier.
        """
        self.tiers = tiers if tiers is not None else DEFAULT_TIERS
        self.tele = telemetry or TelemetryContext()

    def parse(self, raw: str, shape: ExpectedShape) -> ParseOutcome:
        """Parse `raw` into a value of the expected shape.

        Returns:
            `ParseSuccess` with the winning tier as `method`, `PartialSuccess`
            from the field-by-field fallback, or `ParseFailure`.
        """
        if not raw or not raw.strip():
            return ParseFailure("empty response")

        if isinstance(shape, PlainText):
            return self._parse_plain_text(raw)

        with self.tele("parser.parse", shape=type(shape).__name__):
            prepared = prepare(raw, shape)
            found = _run_tiers(prepared, shape, self.tiers)
            if found is not None:
                method, value = found
                log.debug("Recovered %s via tier '%s'.", type(shape).__name__, method)
                outcome: ParseOutcome = ParseSuccess(value, method=method)
            elif isinstance(shape, SingleObject):
                outcome = self._extract_fields(prepared, shape)
            else:
                outcome = ParseFailure("unparseable")

            if isinstance(outcome, ParseFailure):
                log.warning(
                    "No tier recovered a %s from a %d-char response.",
                    type(shape).__name__,
                    len(raw),
                )
                self.tele.count("failure")
            else:
                self.tele.count(f"tier.{outcome.method}")
        return outcome

    def _parse_plain_text(self, raw: str) -> ParseOutcome:
        text = strip_fences(raw)
        # Some models wrap free text in a JSON string literal.
        value = _loads(text)
        if isinstance(value, str):
            text = value.strip()
        if not text:
            return ParseFailure("empty response")
        return ParseSuccess(text, method="plain_text")

    def _recover_materials(self, text: str, field: FieldSpec) -> list[Any] | None:
        subtree = find_keyed_array(text, field.keys)
        if subtree is None:
            return None
        shape = ObjectArray(MATERIAL_SCHEMA, max_items=_MAX_RECOVERED_MATERIALS)
        found = _run_tiers(prepare(subtree, shape), shape, STRUCTURAL_TIERS)
        return found[1] if found else None

    def _extract_fields(
        self, prepared: PreparedText, shape: SingleObject
    ) -> ParseOutcome:
        """Last resort: match each schema field independently."""
        text = normalize_quotes(prepared.stripped)
        found: dict[str, Any] = {}
        for field in shape.schema:
            if field.kind is FieldKind.STRING:
                value = _match_string(text, field)
            elif field.kind is FieldKind.NUMBER:
                value = _match_number(text, field)
            else:
                value = self._recover_materials(text, field)
            if value is not None:
                found[field.name] = value

        record = assemble_record(found, shape.schema)
        if record is not None:
            return PartialSuccess(
                record,
                warning=(
                    "Partial response: recovered only "
                    f"{', '.join(sorted(record))} from malformed output"
                ),
                method="field_regex",
            )
        return self._prose_fallback(text, shape)

    def _prose_fallback(self, text: str, shape: SingleObject) -> ParseOutcome:
        """Use a prose answer as the record's main text field."""
        target = next(
            (
                field
                for field in shape.schema
                if field.required and field.kind is FieldKind.STRING
            ),
            None,
        )
        if target is None or "{" in text or "[" in text:
            return ParseFailure("unparseable")
        return PartialSuccess(
            {target.name: text.strip()},
            warning="Model answered in prose; used the text as the "
            f"{target.name} field",
            method="prose",
        )


_DEFAULT_PARSER = LenientStructureParser()


def parse(raw: str, shape: ExpectedShape) -> ParseOutcome:
    """Parse `raw` with the default tier chain."""
    return _DEFAULT_PARSER.parse(raw, shape)
