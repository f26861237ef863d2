"""
Routing Functions
=================
Pure functions that read the state and return a destination node name.
LangGraph calls these at conditional edges to decide where execution goes next.

Pure functions = easy to unit-test without spinning up the full graph, and
calling one twice on the same state always gives the same answer.

Graph routing map:
  arithmetic:  model → route_after_model      → "tools" | END
  crop:        model → route_after_crop_model → "tools" | "approver" | END
               approver → create_route_after_approver(n)
                                              → "rejection_feedback" | END
"""
import logging
from typing import Literal

from langgraph.graph import END

from .messages import is_assistant, latest, tool_calls_of

logger = logging.getLogger(__name__)


def route_after_model(state) -> Literal["tools", "__end__"]:
    """
    After the model replies:
      - Last entry is not a model reply → END
      - Tool calls requested            → "tools"
      - Plain text answer               → END
    """
    last = latest(state["messages"])

    if not is_assistant(last):
        return END
    if tool_calls_of(last):
        return "tools"
    return END


def route_after_crop_model(state) -> Literal["tools", "approver", "__end__"]:
    """Same as route_after_model, but a plain reply still goes to evaluation."""
    last = latest(state["messages"])

    if not is_assistant(last):
        return END
    if tool_calls_of(last):
        return "tools"
    return "approver"


def create_route_after_approver(max_rejections: int):
    """
    Build the post-evaluation router with a cap on rejected attempts.

      - approved                              → END
      - rejected, fewer than max_rejections   → "rejection_feedback"
      - rejected, cap reached                 → END (stays rejected)
      - anything else                         → END
    """
    def route_after_approver(state) -> Literal["rejection_feedback", "__end__"]:
        approval = state.get("approval") or {}
        status = approval.get("status")

        if status == "approved":
            logger.debug("[routing] approved → END")
            return END

        if status == "rejected":
            if (state.get("rejections") or 0) >= max_rejections:
                logger.debug("[routing] rejected %d time(s), giving up → END", max_rejections)
                return END
            logger.debug("[routing] rejected → rejection_feedback")
            return "rejection_feedback"

        logger.debug("[routing] status=%r → END (default)", status)
        return END

    return route_after_approver
