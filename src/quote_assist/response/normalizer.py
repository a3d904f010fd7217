"""Parse-then-constrain step applied to every model response."""

import dataclasses
import logging
from typing import Any

from quote_assist.core.types import (
    ExpectedShape,
    LengthBudget,
    ParseFailure,
    ParseOutcome,
    PlainText,
)
from quote_assist.telemetry import TelemetryContext, TelemetryContextProtocol

from .constraints import enforce
from .parser import LenientStructureParser

log = logging.getLogger(__name__)

CONSTRAINED_FIELD = "description"


def constrain_descriptions(value: Any, budget: LengthBudget) -> Any:
    """Return a copy of `value` with every ``description`` string trimmed.

    Walks nested dicts and lists; other fields are left untouched.
    """
    if isinstance(value, dict):
        return {
            key: (
                enforce(item, budget)
                if key == CONSTRAINED_FIELD and isinstance(item, str)
                else constrain_descriptions(item, budget)
            )
            for key, item in value.items()
        }
    if isinstance(value, list):
        return [constrain_descriptions(item, budget) for item in value]
    return value


class ResponseNormalizer:
    """Turn raw model text into a budget-respecting `ParseOutcome`."""

    def __init__(
        self,
        parser: LenientStructureParser | None = None,
        *,
        telemetry: TelemetryContextProtocol | None = None,
    ) -> None:
        """Initialize with an optional parser and telemetry context."""
        self.tele = telemetry or TelemetryContext()
        self.parser = parser or LenientStructureParser(telemetry=self.tele)

    def normalize(
        self, raw: str, budget: LengthBudget, shape: ExpectedShape
    ) -> ParseOutcome:
        """Parse `raw` for `shape` and enforce `budget` on the recovered text.

        For `PlainText` the whole string is constrained; for structured shapes
        every ``description`` field at any depth is. A `ParseFailure` is
        returned unchanged.
        """
        with self.tele("normalizer.normalize"):
            outcome = self.parser.parse(raw, shape)
            if isinstance(outcome, ParseFailure):
                log.debug("Normalization skipped: %s", outcome.reason)
                return outcome

            if isinstance(shape, PlainText):
                value = enforce(outcome.value, budget)
            else:
                value = constrain_descriptions(outcome.value, budget)
            return dataclasses.replace(outcome, value=value)


_DEFAULT_NORMALIZER = ResponseNormalizer()


def normalize(raw: str, budget: LengthBudget, shape: ExpectedShape) -> ParseOutcome:
    """Normalize `raw` with the default parser."""
    return _DEFAULT_NORMALIZER.normalize(raw, budget, shape)
