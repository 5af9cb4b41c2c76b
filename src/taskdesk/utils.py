from __future__ import annotations

from typing import Any, Dict, Iterable, List, Sequence, Union


# PUBLIC_INTERFACE
def list_envelope(tasks: Union[Sequence[Any], Iterable[Any]]) -> Dict[str, Any]:
    """
    Build the standard envelope for task list responses.

    Args:
        tasks: The list/iterable of tasks to return.

    Returns:
        Dict with keys: count, tasks.
    """
    # Ensure tasks is materialized as a list (in case an iterator is passed)
    materialized: List[Any] = list(tasks) if not isinstance(tasks, list) else tasks
    return {
        "count": len(materialized),
        "tasks": materialized,
    }
