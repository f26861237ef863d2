"""
Errors
======
Every failure the graph runtime can raise, grouped by how a run reacts to it.

Recoverable inside a run (turned into an error ToolMessage the model can read):
  ValidationError     — tool arguments did not match the tool's schema
  ToolExecutionError  — the tool itself failed

Fatal to the run (propagated out of run_graph unchanged):
  ModelInvocationError — the model provider failed (transport, auth, rate limit)
  ProtocolError        — tool-call / tool-result correlation is broken
  StepLimitExceeded    — the run did not reach END within max_steps

Setup-time:
  DuplicateToolName    — two tools registered under one name
  GraphDefinitionError — the static node table is inconsistent
"""


class ToolGraphError(Exception):
    """Base class for all toolgraph errors."""


class DuplicateToolName(ToolGraphError):
    def __init__(self, name: str):
        super().__init__(f"Tool '{name}' is already registered")
        self.name = name


class GraphDefinitionError(ToolGraphError):
    pass


class ToolError(ToolGraphError):
    """A tool-level failure. Reported back to the model, never fatal."""

    def __init__(self, tool: str, message: str):
        super().__init__(message)
        self.tool = tool


class ValidationError(ToolError):
    def __init__(self, tool: str, fields: list[str], details: str = ""):
        message = f"Invalid arguments for '{tool}': {', '.join(fields) or 'unknown fields'}"
        if details:
            message = f"{message} ({details})"
        super().__init__(tool, message)
        self.fields = fields


class ToolExecutionError(ToolError):
    def __init__(self, tool: str, reason: str):
        super().__init__(tool, f"Tool '{tool}' failed: {reason}")
        self.reason = reason


class ModelInvocationError(ToolGraphError):
    """
    The model provider call failed.

    status   — HTTP status reported by the provider client, if any
    category — short failure class name (e.g. "RateLimitError")
    """

    def __init__(self, message: str, status: int | None = None, category: str | None = None):
        super().__init__(message)
        self.status = status
        self.category = category


class ProtocolError(ToolGraphError):
    pass


class StepLimitExceeded(ToolGraphError):
    def __init__(self, max_steps: int):
        super().__init__(f"Graph did not reach END within {max_steps} steps")
        self.max_steps = max_steps
