"""
toolgraph — state-machine tool-calling agents on LangGraph
===========================================================

Package layout:

    errors.py      Error taxonomy (tool-level recoverable vs run-fatal)
    reducers.py    concat / replace_or_default merge policies
    state.py       MessagesState, CropState, Approval record
    messages.py    Message log helpers, tool-call correlation check
    registry.py    ToolRegistry — schema-validated tool invocation
    arithmetic.py  add / sqrt tools
    imaging.py     Data-URI helpers and the crop_image tool (Pillow)
    model.py       ChatModel protocol + LangChain adapter
    providers.py   LLM provider detection and construction
    prompts.py     System directives, approval rubric, feedback text
    nodes.py       Node functions (model, tools, approver, feedback)
    routing.py     Pure routing functions for conditional edges
    graph.py       Static node tables → compiled StateGraph
    executor.py    run_graph() with the step-limit guard
    settings.py    Environment-driven limits and paths
    session.py     AgentSession — high-level run interface

Entry points for external callers:
"""
from .errors import (
    DuplicateToolName,
    GraphDefinitionError,
    ModelInvocationError,
    ProtocolError,
    StepLimitExceeded,
    ToolExecutionError,
    ValidationError,
)
from .executor import run_graph
from .graph import GraphSpec, NodeSpec, build_arithmetic_graph, build_crop_graph, compile_graph
from .model import ChatModel, LangChainChatModel
from .registry import ToolRegistry
from .session import AgentSession
from .state import CropState, MessagesState

__all__ = [
    "AgentSession",
    "ChatModel",
    "LangChainChatModel",
    "ToolRegistry",
    "GraphSpec",
    "NodeSpec",
    "compile_graph",
    "build_arithmetic_graph",
    "build_crop_graph",
    "run_graph",
    "MessagesState",
    "CropState",
    "DuplicateToolName",
    "GraphDefinitionError",
    "ModelInvocationError",
    "ProtocolError",
    "StepLimitExceeded",
    "ToolExecutionError",
    "ValidationError",
]
