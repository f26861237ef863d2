"""
Executor
========
Runs a compiled graph from START to END.

LangGraph does the stepping: run a node, merge its partial update through the
field reducers, consult the router (or the static edge), repeat. Steps are
strictly sequential and a step's update is merged whole or not at all.

What this module adds is the liveness guard: a run that has not reached END
after max_steps node executions stops with StepLimitExceeded instead of
looping forever. Every other error raised inside a node propagates unchanged.
"""
import logging
from typing import Any, Mapping

from langgraph.errors import GraphRecursionError

from .errors import StepLimitExceeded
from .settings import get_max_steps

logger = logging.getLogger(__name__)


async def run_graph(graph, inputs: Mapping[str, Any], max_steps: int | None = None) -> dict:
    """
    Invoke `graph` with `inputs` and return the final state.

    Args:
        graph:     A compiled graph (see graph.compile_graph).
        inputs:    Initial state, at least {"messages": [...]}.
        max_steps: Step budget. Defaults to AGENT_MAX_STEPS (settings).

    Raises:
        StepLimitExceeded — END not reached within max_steps
    """
    limit = max_steps if max_steps is not None else get_max_steps()
    logger.debug("[executor] run start max_steps=%d", limit)

    try:
        # LangGraph counts the input write as a step too
        result = await graph.ainvoke(dict(inputs), config={"recursion_limit": limit + 1})
    except GraphRecursionError as exc:
        logger.warning("[executor] step limit of %d reached", limit)
        raise StepLimitExceeded(limit) from exc

    logger.debug("[executor] run done messages=%d", len(result.get("messages", [])))
    return result
