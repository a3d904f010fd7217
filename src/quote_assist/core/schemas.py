"""Task and material schemas.

The `FieldSpec` tuples drive schema assembly in the recovery layer; the
Pydantic models give callers a typed view of a recovered record.
"""

from typing import Any, Literal

from pydantic import AliasChoices, BaseModel, ConfigDict, Field

from quote_assist.constants import (
    DEFAULT_MATERIAL_PRICE,
    DEFAULT_MATERIAL_QUANTITY,
    DEFAULT_MATERIAL_UNIT,
    DEFAULT_MAX_TASK_SUGGESTIONS,
    LABOR_BASIS_CHOICES,
)

from .types import FieldKind, FieldSpec, ObjectArray, Schema, SingleObject

MATERIAL_SCHEMA: Schema = (
    FieldSpec("name", FieldKind.STRING, required=True),
    FieldSpec("quantity", FieldKind.NUMBER),
    FieldSpec("unit", FieldKind.STRING),
    FieldSpec("price", FieldKind.NUMBER),
)

TASK_SCHEMA: Schema = (
    FieldSpec("title", FieldKind.STRING),
    FieldSpec("description", FieldKind.STRING, required=True),
    FieldSpec(
        "estimatedDurationMinutes",
        FieldKind.NUMBER,
        aliases=("estimatedDuration",),
    ),
    FieldSpec("laborPrice", FieldKind.NUMBER),
    FieldSpec("unitLaborBasis", FieldKind.STRING, choices=LABOR_BASIS_CHOICES),
    FieldSpec("suggestedMaterials", FieldKind.MATERIALS, aliases=("materials",)),
)


def task_object_shape() -> SingleObject:
    """Shape of a single task description response."""
    return SingleObject(TASK_SCHEMA)


def task_array_shape(max_items: int = DEFAULT_MAX_TASK_SUGGESTIONS) -> ObjectArray:
    """Shape of a task suggestion list response."""
    return ObjectArray(TASK_SCHEMA, max_items=max_items)


class Material(BaseModel):
    """A material line suggested for a task."""

    model_config = ConfigDict(extra="ignore", frozen=True)

    name: str
    quantity: float = DEFAULT_MATERIAL_QUANTITY
    unit: str = DEFAULT_MATERIAL_UNIT
    price: float = DEFAULT_MATERIAL_PRICE


class TaskSuggestion(BaseModel):
    """A task recovered from a model response.

    Numeric fields are optional; defaulting them is the caller's business.
    """

    model_config = ConfigDict(extra="ignore", frozen=True, populate_by_name=True)

    title: str | None = None
    description: str
    estimated_duration_minutes: float | None = Field(
        default=None,
        validation_alias=AliasChoices("estimatedDurationMinutes", "estimatedDuration"),
        serialization_alias="estimatedDurationMinutes",
    )
    labor_price: float | None = Field(default=None, alias="laborPrice")
    unit_labor_basis: Literal["hour", "task"] | None = Field(
        default=None, alias="unitLaborBasis"
    )
    suggested_materials: list[Material] = Field(
        default_factory=list,
        validation_alias=AliasChoices("suggestedMaterials", "materials"),
        serialization_alias="suggestedMaterials",
    )

    @classmethod
    def from_record(cls, record: dict[str, Any]) -> "TaskSuggestion":
        """Build a typed suggestion from an assembled record.

        Both canonical and aliased keys are accepted.
        """
        return cls.model_validate(record)
