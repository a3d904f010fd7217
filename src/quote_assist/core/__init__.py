"""Core types and schemas."""

from .schemas import (
    MATERIAL_SCHEMA,
    TASK_SCHEMA,
    Material,
    TaskSuggestion,
    task_array_shape,
    task_object_shape,
)
from .types import (
    BudgetProfile,
    ExpectedShape,
    Failure,
    FieldKind,
    FieldSpec,
    LengthBudget,
    ObjectArray,
    ParseFailure,
    ParseOutcome,
    ParseSuccess,
    PartialSuccess,
    PlainText,
    Result,
    SingleObject,
    Success,
)

__all__ = [  # noqa: RUF022
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
]
