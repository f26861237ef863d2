"""
Agent Session
=============
High-level interface for one run of either workflow.

Responsibilities:
  - Build the tool registry and the ChatModel for the chosen workflow
  - Build and hold the compiled graph
  - Turn a question (arithmetic) or an image + instruction (crop) into the
    initial state, run the graph, and shape the result
  - Write the cropped image to disk only when the crop was approved

Workflows:
  "arithmetic"  add / sqrt tool loop
      session = AgentSession("arithmetic")
      result  = await session.ask("Calc sqrt(9 + 7)")

  "crop"        crop tool + approver loop
      session = AgentSession("crop")
      result  = await session.crop("kettle.webp", "Crop it to a 9:16 ratio ...")

Pass model= to substitute any ChatModel (tests use a scripted stub).
"""
import logging
from pathlib import Path
from typing import Mapping, Sequence

from langchain_core.messages import AIMessage, BaseMessage, HumanMessage

from .arithmetic import arithmetic_registry
from .executor import run_graph
from .graph import build_arithmetic_graph, build_crop_graph
from .imaging import crop_registry, image_to_data_uri, save_data_uri
from .model import ChatModel
from .providers import build_chat_model
from .settings import get_output_path
from .state import initial_crop_state

logger = logging.getLogger(__name__)

WORKFLOWS = ("arithmetic", "crop")


# ── Result helpers ──────────────────────────────────────────────────────────

def last_ai_text(messages: Sequence[BaseMessage]) -> str:
    """Return the last AIMessage that has text content (not a tool call)."""
    for msg in reversed(list(messages)):
        if isinstance(msg, AIMessage) and msg.content and not msg.tool_calls:
            return msg.content if isinstance(msg.content, str) else str(msg.content)
    return "..."


def summarize_crop(state: Mapping) -> str:
    """Human-readable summary of a finished crop run."""
    approval = state.get("approval") or {}
    lines = [
        f"Approval Status: {approval.get('status', 'pending')}",
        f"Source image: {'Present' if state.get('source_image') else 'Not found'}",
        f"Cropped image: {'Present' if state.get('cropped_image') else 'Not found'}",
        f"Total messages: {len(state.get('messages', []))}",
    ]
    if approval.get("feedback"):
        lines.append(f"Approval feedback: {approval['feedback']}")
    return "\n".join(lines)


def save_approved_crop(state: Mapping, output_path: str | Path) -> Path | None:
    """
    Write the cropped image to output_path if, and only if, it was approved.

    Returns the resolved path that was written, or None.
    """
    approval = state.get("approval") or {}
    cropped = state.get("cropped_image")

    if not cropped or approval.get("status") != "approved":
        logger.info("[session] crop not saved (status=%s)", approval.get("status"))
        return None

    path = save_data_uri(cropped, output_path)
    logger.info("[session] cropped image saved to %s", path)
    return path


# ── AgentSession ────────────────────────────────────────────────────────────

class AgentSession:
    """
    Args:
        workflow:       "arithmetic" or "crop".
        model:          ChatModel to use. Defaults to the provider detected
                        from the environment, with the workflow's tools bound.
        max_steps:      Step budget per run (AGENT_MAX_STEPS by default).
        max_rejections: Crop workflow only; rejected evaluations allowed
                        before the run ends (AGENT_MAX_REJECTIONS by default).
    """

    def __init__(
        self,
        workflow: str = "arithmetic",
        model: ChatModel | None = None,
        max_steps: int | None = None,
        max_rejections: int | None = None,
    ):
        if workflow not in WORKFLOWS:
            raise ValueError(f"Unknown workflow '{workflow}', expected one of {WORKFLOWS}")
        self._workflow = workflow
        self._model = model
        self._max_steps = max_steps
        self._max_rejections = max_rejections
        self._graph = None

    @property
    def workflow(self) -> str:
        return self._workflow

    @property
    def graph(self):
        if self._graph is None:
            self.start()
        return self._graph

    def start(self) -> None:
        """Build the registry, the model (unless injected) and the graph."""
        registry = arithmetic_registry() if self._workflow == "arithmetic" else crop_registry()
        model = self._model or build_chat_model(registry.declarations())

        if self._workflow == "arithmetic":
            self._graph = build_arithmetic_graph(model, registry)
        else:
            self._graph = build_crop_graph(model, registry, self._max_rejections)

        logger.info(
            "[session] Ready. workflow=%s tools=%s", self._workflow, registry.names,
        )

    async def run(self, inputs: Mapping) -> dict:
        return await run_graph(self.graph, inputs, self._max_steps)

    async def ask(self, question: str) -> dict:
        """
        Run the arithmetic workflow on a question.

        Returns a dict with:
            content — the final answer text
            state   — the full final state
        """
        if self._workflow != "arithmetic":
            raise RuntimeError("ask() needs the 'arithmetic' workflow")

        state = await self.run({"messages": [HumanMessage(content=question)]})
        return {"content": last_ai_text(state["messages"]), "state": state}

    async def crop(self, image_path: str | Path, instruction: str, output_path: str | Path | None = None) -> dict:
        """
        Run the crop workflow on an image file.

        Returns a dict with:
            status      — final approval status
            feedback    — last approver feedback (or None)
            output_path — where the approved crop was written, else None
            state       — the full final state
        """
        if self._workflow != "crop":
            raise RuntimeError("crop() needs the 'crop' workflow")

        request = HumanMessage(content=[
            {"type": "text", "text": instruction},
            {"type": "image_url", "image_url": {"url": image_to_data_uri(image_path)}},
        ])
        state = await self.run(initial_crop_state([request]))

        approval = state.get("approval") or {}
        saved = save_approved_crop(state, output_path or get_output_path())
        return {
            "status": approval.get("status"),
            "feedback": approval.get("feedback"),
            "output_path": saved,
            "state": state,
        }
