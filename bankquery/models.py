"""
Pydantic models shared across the bankquery pipeline.

Sources, schemas and rows come from the storage/import layer; conditions
and query plans are produced by the prompt parser, resolved by the concept
mapper and consumed by the query engine.

Conditions are a discriminated union keyed on `kind`:
  - numeric:  =, >, <, >=, <= against a number
  - range:    between value_min and value_max (inclusive)
  - date:     before / after an absolute date or a relative offset from now
  - text:     case-insensitive equality against a string
"""

from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Annotated, Any, Literal, Union

from pydantic import BaseModel, Field, model_validator


# ── Enumerations ──────────────────────────────────────────────────────────────

class DataType(str, Enum):
    string     = "string"
    integer    = "integer"
    currency   = "currency"
    percentage = "percentage"
    date       = "date"
    number     = "number"


class RoleGuess(str, Enum):
    candidate_id = "candidateId"
    field        = "field"


class ValueType(str, Enum):
    number = "number"
    date   = "date"
    string = "string"


class LogicalOp(str, Enum):
    AND = "AND"
    OR  = "OR"


class TimeUnit(str, Enum):
    days   = "days"
    months = "months"
    years  = "years"


NUMERIC_DATA_TYPES = frozenset({
    DataType.integer, DataType.currency, DataType.percentage, DataType.number,
})


# ── Storage-side models ───────────────────────────────────────────────────────

class SchemaField(BaseModel):
    id:         str
    name:       str
    data_type:  DataType = DataType.string
    role_guess: RoleGuess = RoleGuess.field
    sample:     list[Any] = Field(default_factory=list)

    @property
    def is_numeric(self) -> bool:
        return self.data_type in NUMERIC_DATA_TYPES


class Schema(BaseModel):
    source_id: str
    fields:    list[SchemaField] = Field(default_factory=list)

    @model_validator(mode="after")
    def check_unique_ids(self) -> "Schema":
        seen: set[str] = set()
        for f in self.fields:
            if f.id in seen:
                raise ValueError(f"Duplicate field id '{f.id}' in schema {self.source_id}")
            seen.add(f.id)
        return self

    def field_by_id(self, field_id: str) -> SchemaField | None:
        for f in self.fields:
            if f.id == field_id:
                return f
        return None

    def find_field(self, name: str) -> SchemaField | None:
        """Case-insensitive lookup by field name or id."""
        lower = name.lower()
        for f in self.fields:
            if f.name.lower() == lower or f.id.lower() == lower:
                return f
        return None


class SourceMeta(BaseModel):
    source_id:          str
    name:               str
    original_file_name: str = ""
    last_updated:       str = ""


# ── Conditions ────────────────────────────────────────────────────────────────

class RelativeTime(BaseModel):
    unit:  TimeUnit
    value: int = Field(..., ge=0)


class _ConditionBase(BaseModel):
    concept:            str = ""
    field:              str | None = None
    translated:         bool = False
    translation_source: str | None = None
    function:           str | None = None

    @property
    def is_resolved(self) -> bool:
        return bool(self.field)


class NumericCondition(_ConditionBase):
    kind:       Literal["numeric"] = "numeric"
    value_type: Literal["number"] = "number"
    op:         Literal["=", ">", "<", ">=", "<="]
    value:      float


class RangeCondition(_ConditionBase):
    kind:       Literal["range"] = "range"
    value_type: Literal["number"] = "number"
    op:         Literal["between"] = "between"
    value_min:  float
    value_max:  float

    @model_validator(mode="after")
    def order_bounds(self) -> "RangeCondition":
        if self.value_min > self.value_max:
            self.value_min, self.value_max = self.value_max, self.value_min
        return self


class DateCondition(_ConditionBase):
    kind:          Literal["date"] = "date"
    value_type:    Literal["date"] = "date"
    op:            Literal["before", "after"]
    absolute_date: datetime | None = None
    relative_time: RelativeTime | None = None

    @model_validator(mode="after")
    def check_boundary(self) -> "DateCondition":
        if (self.absolute_date is None) == (self.relative_time is None):
            raise ValueError("DateCondition needs exactly one of absolute_date / relative_time")
        return self


class TextCondition(_ConditionBase):
    kind:       Literal["text"] = "text"
    value_type: Literal["string"] = "string"
    op:         Literal["="] = "="
    value:      str


Condition = Annotated[
    Union[NumericCondition, RangeCondition, DateCondition, TextCondition],
    Field(discriminator="kind"),
]


# ── Query plan ────────────────────────────────────────────────────────────────

class FunctionCall(BaseModel):
    library:       str
    function_name: str
    description:   str = ""


class EntityMatch(BaseModel):
    entity:       str
    confidence:   float
    match_type:   Literal["exact", "fuzzy", "condition_fallback", "function_default"]
    matched_word: str | None = None


class QueryPlan(BaseModel):
    intent:            str | None = "show"
    intent_confidence: float = 0.5
    target_entities:   list[str] = Field(default_factory=list)
    conditions:        list[Condition] = Field(default_factory=list)
    logical_op:        LogicalOp = LogicalOp.AND
    statistical_op:    str | None = None
    statistical_field: str | None = None
    function_call:     FunctionCall | None = None
    raw:               str = ""
    entity_details:    list[EntityMatch] = Field(default_factory=list)
    # Filled in by multi-source planning / execution
    unique_id:         str | None = None
    columns:           list[str] | None = None
    valuation_fields:  list[str] | None = None

    @property
    def is_multi_source(self) -> bool:
        return len(self.target_entities) > 1 or bool(self.unique_id and self.columns)


class ValidationReport(BaseModel):
    is_valid:   bool
    issues:     list[str] = Field(default_factory=list)
    confidence: float = Field(1.0, ge=0.0, le=1.0)


class QueryResult(BaseModel):
    rows:             list[dict[str, Any]] = Field(default_factory=list)
    used_source:      SourceMeta | None = None
    used_sources:     list[SourceMeta] = Field(default_factory=list)
    unique_id:        str | None = None
    columns:          list[str] | None = None
    valuation_fields: list[str] | None = None


class StatisticalResult(BaseModel):
    operation: str
    value:     float | int
    field:     str
