"""
Tool Registry
=============
Maps tool names to a pydantic input schema and a callable.

Responsibilities:
  - Reject duplicate names at setup time (DuplicateToolName)
  - Validate arguments from a model's tool call before running anything
    (ValidationError lists the offending fields)
  - Run the callable, sync or async, and wrap whatever it raises in
    ToolExecutionError so the tool node can report it back to the model
  - Produce LangChain StructuredTool declarations for llm.bind_tools()

A callable that declares a `state` parameter receives the current session
state at invocation time. Nothing else is shared between invocations.
"""
import inspect
import logging
from dataclasses import dataclass
from typing import Any, Callable, Mapping

from langchain_core.tools import StructuredTool
from pydantic import BaseModel
from pydantic import ValidationError as PydanticValidationError

from .errors import DuplicateToolName, ToolError, ToolExecutionError, ValidationError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ToolDefinition:
    name: str
    description: str
    schema: type[BaseModel]
    fn: Callable[..., Any]
    wants_state: bool = False

    def declaration(self) -> StructuredTool:
        return StructuredTool.from_function(
            func=self.fn,
            name=self.name,
            description=self.description,
            args_schema=self.schema,
            infer_schema=False,
        )


def _error_fields(exc: PydanticValidationError) -> list[str]:
    return [".".join(str(part) for part in err["loc"]) or "<root>" for err in exc.errors()]


class ToolRegistry:
    """
    Usage:
        registry = ToolRegistry()
        registry.register("add", AddArgs, add, "Add numbers")
        result = await registry.invoke("add", {"a": 3, "b": 4})
    """

    def __init__(self):
        self._tools: dict[str, ToolDefinition] = {}

    def __contains__(self, name: str) -> bool:
        return name in self._tools

    def __len__(self) -> int:
        return len(self._tools)

    @property
    def names(self) -> list[str]:
        return list(self._tools)

    def register(
        self,
        name: str,
        schema: type[BaseModel],
        fn: Callable[..., Any],
        description: str = "",
    ) -> ToolDefinition:
        if name in self._tools:
            raise DuplicateToolName(name)

        definition = ToolDefinition(
            name=name,
            description=description or inspect.getdoc(fn) or name,
            schema=schema,
            fn=fn,
            wants_state="state" in inspect.signature(fn).parameters,
        )
        self._tools[name] = definition
        logger.debug("[registry] registered tool=%s schema=%s", name, schema.__name__)
        return definition

    def tool(self, name: str, schema: type[BaseModel], description: str = ""):
        """Decorator form of register()."""
        def decorator(fn):
            self.register(name, schema, fn, description)
            return fn
        return decorator

    def declarations(self) -> list[StructuredTool]:
        return [definition.declaration() for definition in self._tools.values()]

    async def invoke(self, name: str, args: Mapping[str, Any] | None, state: Mapping | None = None) -> Any:
        """
        Validate args against the tool's schema and run it.

        Raises:
            ValidationError    — args do not satisfy the schema
            ToolExecutionError — unknown tool, or the tool raised
        """
        definition = self._tools.get(name)
        if definition is None:
            raise ToolExecutionError(name, "no tool is registered under this name")

        try:
            parsed = definition.schema.model_validate(dict(args or {}))
        except PydanticValidationError as exc:
            details = "; ".join(err["msg"] for err in exc.errors())
            raise ValidationError(name, _error_fields(exc), details=details) from exc

        kwargs = {field: getattr(parsed, field) for field in type(parsed).model_fields}
        if definition.wants_state:
            kwargs["state"] = state

        try:
            result = definition.fn(**kwargs)
            if inspect.isawaitable(result):
                result = await result
        except ToolError:
            raise
        except Exception as exc:
            raise ToolExecutionError(name, str(exc) or type(exc).__name__) from exc

        return result
