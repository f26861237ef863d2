"""
Reducers
========
Merge policies LangGraph applies when a node returns a partial update.

Two policies cover every field we keep:
  concat             — append the update to the existing list (message logs)
  replace_or_default — take the update; None resets the field to its default

Both are total: defined for any (old, new) pair, including a missing old value.
"""
from typing import Any, Callable


def concat(left: list | None, right: list | None) -> list:
    """Concatenate two sequences. Order preserved, no dedup."""
    return list(left or []) + list(right or [])


def replace_or_default(default: Callable[[], Any]) -> Callable[[Any, Any], Any]:
    """Build a reducer that keeps the latest value, or default() when it is None."""
    def reducer(_left: Any, right: Any) -> Any:
        return default() if right is None else right

    reducer.__name__ = f"replace_or_default_{getattr(default, '__name__', 'value')}"
    return reducer
