"""
Graph Construction
==================
Each workflow is declared once as a static table, GraphSpec, mapping node
names to NodeSpec(action, router, successors). compile_graph() checks the
table and turns it into a compiled LangGraph StateGraph.

Table rules (checked at setup, GraphDefinitionError otherwise):
  - the entry node exists
  - a node without a router has exactly one successor (a static edge)
  - a node with a router has a non-empty allow-list of successors
  - every successor is a declared node or END
At run time a router that returns a name outside its allow-list also raises
GraphDefinitionError.

Arithmetic workflow:

    START → model ──── tool calls ────► tools ──┐
              ▲                                 │
              └─────────────────────────────────┘
            model ──── text answer ───► END

Crop workflow (approval loop):

    START → model ──── tool calls ────► tools ──► approver
              │                                    │
              └──── text answer ──────────────────►│
                                                   ├── approved ──────────► END
                                                   ├── rejected, cap hit ─► END
                                                   └── rejected ──► rejection_feedback ──► model
"""
from dataclasses import dataclass, field
from typing import Callable, Mapping

from langgraph.graph import END, START, StateGraph

from .errors import GraphDefinitionError
from .model import ChatModel
from .nodes import (
    create_approver_node,
    create_crop_model_node,
    create_model_node,
    create_tool_node,
    rejection_feedback_node,
)
from .prompts import ARITHMETIC_SYSTEM_PROMPT
from .registry import ToolRegistry
from .routing import create_route_after_approver, route_after_crop_model, route_after_model
from .settings import get_max_rejections
from .state import CropState, MessagesState


@dataclass(frozen=True)
class NodeSpec:
    action: Callable
    router: Callable | None = None
    successors: tuple[str, ...] = ()


@dataclass(frozen=True)
class GraphSpec:
    entry: str
    nodes: Mapping[str, NodeSpec] = field(default_factory=dict)


def validate_spec(spec: GraphSpec) -> None:
    if spec.entry not in spec.nodes:
        raise GraphDefinitionError(f"Entry node '{spec.entry}' is not declared")

    for name, node in spec.nodes.items():
        if name in (START, END):
            raise GraphDefinitionError(f"'{name}' is reserved and cannot be a node name")
        if node.router is None and len(node.successors) != 1:
            raise GraphDefinitionError(
                f"Node '{name}' has no router, so it needs exactly one successor "
                f"(got {len(node.successors)})"
            )
        if node.router is not None and not node.successors:
            raise GraphDefinitionError(f"Node '{name}' has a router but no allowed successors")
        for target in node.successors:
            if target != END and target not in spec.nodes:
                raise GraphDefinitionError(f"Node '{name}' points to undeclared node '{target}'")


def _guard_router(name: str, router: Callable, allowed: tuple[str, ...]) -> Callable:
    def guarded(state):
        target = router(state)
        if target not in allowed:
            raise GraphDefinitionError(
                f"Router of '{name}' returned '{target}', allowed: {list(allowed)}"
            )
        return target

    guarded.__name__ = getattr(router, "__name__", f"route_after_{name}")
    return guarded


def compile_graph(state_schema: type, spec: GraphSpec):
    """
    Validate a GraphSpec and compile it into a LangGraph graph.

    Returns:
        A compiled CompiledStateGraph ready for ainvoke().
    """
    validate_spec(spec)

    workflow = StateGraph(state_schema)
    for name, node in spec.nodes.items():
        workflow.add_node(name, node.action)

    workflow.add_edge(START, spec.entry)

    for name, node in spec.nodes.items():
        if node.router is None:
            workflow.add_edge(name, node.successors[0])
        else:
            workflow.add_conditional_edges(
                name,
                _guard_router(name, node.router, node.successors),
                {target: target for target in node.successors},
            )

    return workflow.compile()


def arithmetic_spec(model: ChatModel, registry: ToolRegistry) -> GraphSpec:
    return GraphSpec(
        entry="model",
        nodes={
            "model": NodeSpec(
                create_model_node(model, ARITHMETIC_SYSTEM_PROMPT),
                router=route_after_model,
                successors=("tools", END),
            ),
            "tools": NodeSpec(create_tool_node(registry), successors=("model",)),
        },
    )


def crop_spec(model: ChatModel, registry: ToolRegistry, max_rejections: int) -> GraphSpec:
    return GraphSpec(
        entry="model",
        nodes={
            "model": NodeSpec(
                create_crop_model_node(model),
                router=route_after_crop_model,
                successors=("tools", "approver", END),
            ),
            "tools": NodeSpec(
                create_tool_node(registry, artifact_field="cropped_image"),
                successors=("approver",),
            ),
            "approver": NodeSpec(
                create_approver_node(model),
                router=create_route_after_approver(max_rejections),
                successors=("rejection_feedback", END),
            ),
            "rejection_feedback": NodeSpec(rejection_feedback_node, successors=("model",)),
        },
    )


def build_arithmetic_graph(model: ChatModel, registry: ToolRegistry):
    return compile_graph(MessagesState, arithmetic_spec(model, registry))


def build_crop_graph(model: ChatModel, registry: ToolRegistry, max_rejections: int | None = None):
    """
    Build the crop + approval graph.

    Args:
        model:          ChatModel used for both the cropper and the approver.
        registry:       Registry holding the crop_image tool.
        max_rejections: Rejected evaluations allowed before giving up.
                        Defaults to AGENT_MAX_REJECTIONS (settings).
    """
    if max_rejections is None:
        max_rejections = get_max_rejections()
    return compile_graph(CropState, crop_spec(model, registry, max_rejections))
