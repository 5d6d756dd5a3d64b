"""Activity state derivation for agents.

Task status strings are not a closed vocabulary upstream, so everything here
matches case-insensitive substrings ("blocked", "review", "progress",
"fail") rather than exact values.

The activity model is memoryless: the state is recomputed from the runtime
status and the primary task on every synthesis pass.

    offline -> idle -> {active, reviewing, blocked} -> idle -> ...
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Iterable, List, Optional

from agent_office.schemas import ActivityState, RuntimeStatus, Task


def normalize_status(status: Optional[str]) -> str:
    return (status or "").strip().lower()


def is_blocked_status(status: Optional[str]) -> bool:
    return "blocked" in normalize_status(status)


def is_failed_status(status: Optional[str]) -> bool:
    return "fail" in normalize_status(status)


def is_review_status(status: Optional[str]) -> bool:
    return "review" in normalize_status(status)


def is_active_status(status: Optional[str]) -> bool:
    value = normalize_status(status)
    return any(marker in value for marker in ("progress", "active", "running"))


def is_passed_status(status: Optional[str]) -> bool:
    return normalize_status(status) in {"done", "pass", "passed"}


def parse_timestamp(value: Optional[str]) -> Optional[datetime]:
    """Parse an ISO-8601 timestamp (``Z`` suffix allowed). Naive values are UTC."""

    if not value:
        return None
    text = value.strip()
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    try:
        parsed = datetime.fromisoformat(text)
    except ValueError:
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def timestamp_ms(value: Optional[str]) -> Optional[int]:
    parsed = parse_timestamp(value)
    if parsed is None:
        return None
    return int(parsed.timestamp() * 1000)


def _recency_key(task: Task) -> float:
    # Unparseable timestamps sort after every dated task
    millis = timestamp_ms(task.updated_at)
    return -millis if millis is not None else float("inf")


def sort_by_recency(tasks: Iterable[Task]) -> List[Task]:
    """Tasks ordered by ``updated_at`` descending (stable for ties)."""
    return sorted(tasks, key=_recency_key)


def pick_primary_task(agent_id: str, tasks: Iterable[Task]) -> Optional[Task]:
    """Select the single task that represents ``agent_id``'s current state.

    Among the agent's tasks, newest first: the most recent blocked task wins,
    then the most recent in-progress/active/running task, then the most
    recent task in review, then simply the most recent task. Blocked work is
    surfaced regardless of recency.
    """

    owned = sort_by_recency(task for task in tasks if task.owner == agent_id)
    if not owned:
        return None

    for predicate in (is_blocked_status, is_active_status, is_review_status):
        for task in owned:
            if predicate(task.status):
                return task
    return owned[0]


def derive_activity_state(runtime_status: RuntimeStatus, task: Optional[Task]) -> ActivityState:
    """Map runtime status and primary task to an activity state.

    Offline overrides everything. Blocked (including failures) is tested
    before review, so "blocked_on_review" yields ``blocked``. Statuses that
    match nothing (e.g. "done", "pass") fall back to ``idle``.
    """

    if runtime_status == "offline":
        return "offline"
    if task is None:
        return "idle"
    if is_blocked_status(task.status) or is_failed_status(task.status):
        return "blocked"
    if is_review_status(task.status):
        return "reviewing"
    if is_active_status(task.status):
        return "active"
    return "idle"
