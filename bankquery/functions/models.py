"""Declarative function metadata for the function registry."""

from __future__ import annotations

from typing import Any, Callable, Literal

from pydantic import BaseModel, ConfigDict, Field


class ParameterSpec(BaseModel):
    name: str
    kind: Literal["number", "date"] = "number"


class FunctionSpec(BaseModel):
    """A named computation that can be applied to every row of a result.

    Parameter names are declared explicitly and are matched against dataset
    fields by name; the implementation receives them positionally in
    declared order.
    """

    model_config = ConfigDict(arbitrary_types_allowed=True)

    name:           str
    library:        str = ""
    description:    str = ""
    parameters:     list[ParameterSpec] = Field(default_factory=list)
    implementation: Callable[..., Any]
    entities:       list[str] = Field(default_factory=list)
    keywords:       list[str] = Field(default_factory=list)
    return_type:    str = "number"

    @property
    def parameter_names(self) -> list[str]:
        return [p.name for p in self.parameters]


class FunctionMatch(BaseModel):
    model_config = ConfigDict(arbitrary_types_allowed=True)

    library:       str
    function_name: str
    function:      FunctionSpec
    entities:      list[str] = Field(default_factory=list)
    return_type:   str = "number"
