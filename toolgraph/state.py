"""
Session State
=============
The TypedDicts threaded through every node in a graph, one per workflow.

Each field names its reducer in the Annotated metadata, so LangGraph knows how
to merge a node's partial update into the running state:
  messages          → concat: the LLM sees the full history at every step
  scalar / records  → replace_or_default: latest value wins, None resets
"""
from typing import Annotated, Literal

from langchain_core.messages import BaseMessage
from typing_extensions import TypedDict

from .reducers import concat, replace_or_default

ApprovalStatus = Literal["pending", "approved", "rejected"]


class Approval(TypedDict):
    status: ApprovalStatus
    feedback: str | None


def pending_approval() -> Approval:
    return {"status": "pending", "feedback": None}


def _none() -> None:
    return None


def _zero() -> int:
    return 0


class MessagesState(TypedDict):
    messages: Annotated[list[BaseMessage], concat]


class CropState(TypedDict):
    messages: Annotated[list[BaseMessage], concat]
    # Data URIs. source_image is picked out of the human messages by the model
    # node; cropped_image is picked out of tool results by the tool node.
    source_image: Annotated[str | None, replace_or_default(_none)]
    cropped_image: Annotated[str | None, replace_or_default(_none)]
    approval: Annotated[Approval, replace_or_default(pending_approval)]
    # Number of rejected evaluations so far; caps the retry loop.
    rejections: Annotated[int, replace_or_default(_zero)]


def initial_crop_state(messages: list[BaseMessage]) -> CropState:
    """Starting state for the crop workflow with every field at its default."""
    return {
        "messages": list(messages),
        "source_image": None,
        "cropped_image": None,
        "approval": pending_approval(),
        "rejections": 0,
    }
