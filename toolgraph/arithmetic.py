"""
Arithmetic Toolkit
==================
The two tools the arithmetic agent can call. `sqrt` usually depends on a
result from `add`, so "Calc sqrt(9 + 7)" takes two sequential tool rounds.
"""
import math

from pydantic import BaseModel, Field

from .registry import ToolRegistry


class AddArgs(BaseModel):
    a: float = Field(description="First number")
    b: float = Field(description="Second number")


class SqrtArgs(BaseModel):
    value: float = Field(description="The number to extract the square root from")


def add(a: float, b: float) -> float:
    return a + b


def sqrt(value: float) -> float:
    if value < 0:
        raise ValueError(f"cannot take the square root of a negative number ({value})")
    return math.sqrt(value)


def arithmetic_registry() -> ToolRegistry:
    registry = ToolRegistry()
    registry.register("add", AddArgs, add, "Add numbers")
    registry.register("sqrt", SqrtArgs, sqrt, "Extract the square root of a number")
    return registry
