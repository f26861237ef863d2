"""
Message Log
===========
Helpers over the append-only conversation log stored in state["messages"].

The log only ever grows: nodes return new entries and the concat reducer
appends them. Nothing here mutates an entry once it is in the log.
"""
from collections import deque
from typing import Sequence

from langchain_core.messages import AIMessage, BaseMessage, ToolMessage

from .errors import ProtocolError


def append(log: Sequence[BaseMessage], entries: Sequence[BaseMessage]) -> list[BaseMessage]:
    return list(log) + list(entries)


def latest(log: Sequence[BaseMessage]) -> BaseMessage | None:
    """Last entry of the log, or None when the log is empty."""
    return log[-1] if log else None


def is_assistant(message: BaseMessage | None) -> bool:
    return isinstance(message, AIMessage)


def tool_calls_of(message: BaseMessage | None) -> list[dict]:
    """Tool-call requests carried by an assistant entry; [] for anything else."""
    if not is_assistant(message):
        return []
    return list(message.tool_calls or [])


def check_tool_correlation(log: Sequence[BaseMessage]) -> None:
    """
    Verify every tool call is answered by exactly one ToolMessage, in order.

    Walks the log once, queueing the ids requested by the most recent
    assistant entry; each ToolMessage must answer the head of that queue.
    Raises ProtocolError when:
      - a tool call has no id, or repeats an id within the same request
      - an assistant entry appears while earlier calls are still unanswered
      - a ToolMessage answers an id other than the next one in request order
        (unknown, already answered, out of order, or before its request)
      - calls are still unanswered at the end of the log
    """
    outstanding: deque[str] = deque()

    for message in log:
        if isinstance(message, AIMessage):
            if outstanding:
                raise ProtocolError(
                    f"Tool calls {list(outstanding)} were not answered before the next model reply"
                )
            for call in message.tool_calls or []:
                call_id = call.get("id")
                if not call_id:
                    raise ProtocolError(f"Tool call '{call.get('name')}' has no id")
                if call_id in outstanding:
                    raise ProtocolError(f"Duplicate tool call id '{call_id}'")
                outstanding.append(call_id)

        elif isinstance(message, ToolMessage):
            if not outstanding:
                raise ProtocolError(
                    f"Tool result '{message.tool_call_id}' does not match an outstanding tool call"
                )
            if message.tool_call_id != outstanding[0]:
                raise ProtocolError(
                    f"Tool result '{message.tool_call_id}' arrived out of order, "
                    f"expected '{outstanding[0]}'"
                )
            outstanding.popleft()

    if outstanding:
        raise ProtocolError(f"Tool calls {list(outstanding)} have no tool result")
