"""
Graph Nodes
===========
Each function here is (or builds) one node of a StateGraph.

Node responsibilities:
  create_model_node       — calls the model with the full log, appends the reply
  create_crop_model_node  — model node for the crop workflow; also records the
                            source image and resets the approval record
  create_tool_node        — runs every tool call of the latest reply, one
                            ToolMessage per call, in request order
  create_approver_node    — structured evaluation of the crop (approve / reject)
  rejection_feedback_node — turns a rejection into a human message for the retry

Design principle: nodes are state transformers.
They read the state, return a dict holding only the fields they change, and
never decide where execution goes next — routing.py does that.
"""
import json
import logging
from types import MappingProxyType
from typing import Any

from langchain_core.messages import HumanMessage, ToolMessage
from pydantic import BaseModel, Field

from .errors import ProtocolError, ToolError
from .imaging import find_image_result, find_source_image
from .messages import check_tool_correlation, latest, tool_calls_of
from .model import ChatModel
from .prompts import (
    APPROVAL_PROMPT,
    CROP_SYSTEM_PROMPT,
    NO_CROP_FEEDBACK,
    REJECTION_FEEDBACK,
    with_rejection_feedback,
)
from .registry import ToolRegistry
from .state import pending_approval

logger = logging.getLogger(__name__)


def _stringify(value: Any) -> str:
    if isinstance(value, str):
        return value
    try:
        return json.dumps(value)
    except TypeError:
        return str(value)


def _rejection_feedback(state) -> str | None:
    approval = state.get("approval") or {}
    return approval.get("feedback")


# ── Model call ──────────────────────────────────────────────────────────────

def create_model_node(model: ChatModel, system_prompt: str):
    """
    Factory that returns a model-call node bound to a model and a directive.

    The directive is amended with the previous rejection feedback when the
    state carries one. Before calling out, the log is checked so that every
    earlier tool call has exactly one matching result (ProtocolError if not).
    """
    async def model_node(state) -> dict:
        messages = list(state["messages"])
        check_tool_correlation(messages)

        directive = with_rejection_feedback(system_prompt, _rejection_feedback(state))
        response = await model.invoke(directive, messages)

        logger.info(
            "[model] reply tool_calls=%s",
            [call["name"] for call in response.tool_calls or []],
        )
        return {"messages": [response]}

    return model_node


def create_crop_model_node(model: ChatModel):
    """
    Model node for the crop workflow.

    Every call starts a new crop attempt: the approval record goes back to
    pending, and the source image is (re)read from the log so the crop tool
    can find it in state.
    """
    call_model = create_model_node(model, CROP_SYSTEM_PROMPT)

    async def crop_model_node(state) -> dict:
        source_image = find_source_image(state["messages"], state.get("source_image"))
        update = await call_model(state)
        return {
            **update,
            "source_image": source_image,
            "approval": pending_approval(),
        }

    return crop_model_node


# ── Tool call ───────────────────────────────────────────────────────────────

def create_tool_node(registry: ToolRegistry, artifact_field: str | None = None):
    """
    Factory that returns a tool-call node over a registry.

    Tool failures (bad arguments, exceptions inside the tool) become
    ToolMessages with status="error" so the model can react on its next turn.
    A tool call without an id is a ProtocolError: its result could never be
    correlated.

    artifact_field: state field that receives the first image data URI found
    among this step's tool results. Left unchanged when there is none.
    """
    async def tool_node(state) -> dict:
        calls = tool_calls_of(latest(state["messages"]))
        snapshot = MappingProxyType(dict(state))
        results: list[ToolMessage] = []

        for call in calls:
            call_id = call.get("id")
            if not call_id:
                raise ProtocolError(f"Tool call '{call.get('name')}' has no id")

            try:
                output = await registry.invoke(call["name"], call.get("args"), state=snapshot)
            except ToolError as exc:
                logger.warning("[tools] %s failed: %s", call["name"], exc)
                results.append(ToolMessage(
                    content=f"Error: {exc}",
                    tool_call_id=call_id,
                    name=call["name"],
                    status="error",
                ))
                continue

            logger.info("[tools] %s ok", call["name"])
            results.append(ToolMessage(
                content=_stringify(output),
                tool_call_id=call_id,
                name=call["name"],
            ))

        update: dict = {"messages": results}
        if artifact_field:
            update[artifact_field] = find_image_result(results) or state.get(artifact_field)
        return update

    return tool_node


# ── Evaluation ──────────────────────────────────────────────────────────────

class ApprovalVerdict(BaseModel):
    approved: bool = Field(description="Whether the crop is approved")
    feedback: str = Field(description="Detailed explanation of the approval decision")


def create_approver_node(model: ChatModel):
    """
    Factory that returns the evaluation node of the crop workflow.

    Compares the original and cropped images against APPROVAL_PROMPT using a
    structured model call. Missing images short-circuit to a rejection with
    NO_CROP_FEEDBACK and the model is not called. Every rejection bumps
    state["rejections"], which caps the retry loop in routing.
    """
    async def approver_node(state) -> dict:
        source_image = state.get("source_image")
        cropped_image = state.get("cropped_image")
        rejections = state.get("rejections") or 0

        if not source_image or not cropped_image:
            logger.info("[approver] status=rejected reason=%r", NO_CROP_FEEDBACK)
            return {
                "approval": {"status": "rejected", "feedback": NO_CROP_FEEDBACK},
                "rejections": rejections + 1,
            }

        request = HumanMessage(content=[
            {"type": "text", "text": APPROVAL_PROMPT},
            {"type": "text", "text": "Original image:"},
            {"type": "image_url", "image_url": {"url": source_image}},
            {"type": "text", "text": "Cropped image:"},
            {"type": "image_url", "image_url": {"url": cropped_image}},
        ])
        verdict = await model.invoke_structured(ApprovalVerdict, [request])

        status = "approved" if verdict.approved else "rejected"
        logger.info("[approver] status=%s feedback=%r", status, verdict.feedback)

        update: dict = {"approval": {"status": status, "feedback": verdict.feedback}}
        if not verdict.approved:
            update["rejections"] = rejections + 1
        return update

    return approver_node


# ── Feedback injection ──────────────────────────────────────────────────────

def rejection_feedback_node(state) -> dict:
    """Append the rejection reason as a human message for the next model call."""
    feedback = _rejection_feedback(state)
    logger.info("[rejection_feedback] feedback=%r", feedback)
    return {"messages": [HumanMessage(content=REJECTION_FEEDBACK.format(feedback=feedback))]}
