"""Budgeted generation and lenient response recovery for the quote assistant."""

import importlib.metadata
import logging

from quote_assist.assistant import GenerationRequest, QuoteAssistant
from quote_assist.budget import compute_budget
from quote_assist.config import FrozenConfig, ResolvedConfig, resolve_config
from quote_assist.core import (
    MATERIAL_SCHEMA,
    TASK_SCHEMA,
    BudgetProfile,
    ExpectedShape,
    Failure,
    FieldKind,
    FieldSpec,
    LengthBudget,
    Material,
    ObjectArray,
    ParseFailure,
    ParseOutcome,
    ParseSuccess,
    PartialSuccess,
    PlainText,
    Result,
    SingleObject,
    Success,
    TaskSuggestion,
    task_array_shape,
    task_object_shape,
)
from quote_assist.exceptions import (
    ConfigurationError,
    GenerationError,
    GenerationErrorKind,
    GovernError,
    QuoteAssistError,
    RateLimitedError,
)
from quote_assist.governance import RequestGovernor, ResponseCache, build_cache_key
from quote_assist.providers import GeminiGenerator
from quote_assist.response import (
    LenientStructureParser,
    ResponseNormalizer,
    enforce,
    normalize,
    parse,
)
from quote_assist.telemetry import InMemoryReporter, TelemetryContext, TelemetryReporter

try:
    __version__ = importlib.metadata.version("quote-assist")
except importlib.metadata.PackageNotFoundError:
    __version__ = "development"

logging.getLogger(__name__).addHandler(logging.NullHandler())

__all__ = [  # noqa: RUF022
    # Facade
    "QuoteAssistant",
    "GenerationRequest",
    "GeminiGenerator",
    # Core operations
    "compute_budget",
    "enforce",
    "parse",
    "normalize",
    "LenientStructureParser",
    "ResponseNormalizer",
    "RequestGovernor",
    "ResponseCache",
    "build_cache_key",
    # Types
    "BudgetProfile",
    "LengthBudget",
    "FieldKind",
    "FieldSpec",
    "SingleObject",
    "ObjectArray",
    "PlainText",
    "ExpectedShape",
    "ParseSuccess",
    "PartialSuccess",
    "ParseFailure",
    "ParseOutcome",
    "Success",
    "Failure",
    "Result",
    "MATERIAL_SCHEMA",
    "TASK_SCHEMA",
    "Material",
    "TaskSuggestion",
    "task_array_shape",
    "task_object_shape",
    # Configuration
    "resolve_config",
    "ResolvedConfig",
    "FrozenConfig",
    # Errors
    "QuoteAssistError",
    "ConfigurationError",
    "GenerationError",
    "GenerationErrorKind",
    "GovernError",
    "RateLimitedError",
    # Telemetry
    "TelemetryContext",
    "TelemetryReporter",
    "InMemoryReporter",
]
