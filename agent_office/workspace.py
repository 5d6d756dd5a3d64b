"""
Workspace snapshot ingestion from an OpenClaw install.

This module provides WorkspaceLoader for assembling a ``WorkspaceSnapshot``
from the files an OpenClaw host leaves on disk:

- ``<openclaw_dir>/openclaw.json`` - configured agents and channel bindings
- ``<openclaw_dir>/agents/<id>/sessions/sessions.json`` - per-agent sessions
  (last activity, summary, token usage)
- ``<workspace_dir>/queue/tasks-current.json`` - the live task queue
- ``<workspace_dir>/telemetry/tasks.jsonl`` - one record per finished task

Design philosophy:
- Missing or corrupt inputs degrade to empty data instead of failing; the
  snapshot's ``sources`` flags record which inputs were actually present
- Roles are inferred from agent ids, runtime status from session recency
- The loader only reads; scene synthesis happens in ``agent_office.scene``

Usage:
    loader = WorkspaceLoader()
    workspace = loader.load()
    scene = SceneSynthesizer().synthesize(workspace, source="local")
"""

import json
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional, Union

from pydantic import ValidationError

from .activity import timestamp_ms
from .config import Config
from .logging_utils import log_error, log_ingest
from .schemas import (
    Agent,
    AgentRole,
    FailureCause,
    Metrics,
    RuntimeStatus,
    StatusCount,
    Task,
    WorkspaceSnapshot,
    WorkspaceSources,
)

ONLINE_WINDOW_MS = 10 * 60 * 1000
IDLE_WINDOW_MS = 24 * 60 * 60 * 1000
TOP_FAILURE_CAUSES = 5

ROLE_TO_CHARACTER: Dict[str, str] = {
    "orchestrator": "Captain Orbit",
    "planner": "Map Sage",
    "frontend": "Pixel Alchemist",
    "backend": "Forge Warden",
    "reviewer": "Gate Sentinel",
    "worker": "Ops Runner",
}

ROLE_TO_EMOJI: Dict[str, str] = {
    "orchestrator": "🧭",
    "planner": "🧠",
    "frontend": "🎨",
    "backend": "🛠",
    "reviewer": "✅",
    "worker": "🤖",
}


def infer_role(agent_id: str) -> AgentRole:
    """Map an agent id to a role by substring; unmatched ids are workers."""

    lowered = agent_id.lower()
    for role in ("orchestrator", "planner", "frontend", "backend", "reviewer"):
        if role in lowered:
            return role  # type: ignore[return-value]
    return "worker"


def infer_runtime_status(updated_at_ms: Optional[int], now: Optional[datetime] = None) -> RuntimeStatus:
    """online within 10 minutes of last activity, idle within 24 hours, else offline."""

    if not updated_at_ms:
        return "offline"
    moment = now or datetime.now(timezone.utc)
    age_ms = int(moment.timestamp() * 1000) - updated_at_ms
    if age_ms < ONLINE_WINDOW_MS:
        return "online"
    if age_ms < IDLE_WINDOW_MS:
        return "idle"
    return "offline"


def _non_negative(value: Any) -> float:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return 0
    if value != value or value < 0 or value in (float("inf"), float("-inf")):
        return 0
    return value


def _as_dict(value: Any) -> Dict[str, Any]:
    return value if isinstance(value, dict) else {}


def _as_str(value: Any) -> Optional[str]:
    return value if isinstance(value, str) and value else None


def _average(values: List[float]) -> float:
    if not values:
        return 0
    return sum(values) / len(values)


def summarize_telemetry(records: Iterable[Dict[str, Any]]) -> Metrics:
    """Aggregate finished-task telemetry records into ``Metrics``.

    Records with a status of ``pass`` count toward the pass rate; failure
    causes are counted and the five most frequent reported.
    """

    status_counts: Dict[str, int] = {}
    failure_counts: Dict[str, int] = {}
    lead_times: List[float] = []
    attempts: List[float] = []
    review_loops: List[float] = []
    costs: List[float] = []
    passed = 0
    total = 0

    for record in records:
        total += 1
        status = record.get("status") if isinstance(record.get("status"), str) else "unknown"
        status_counts[status] = status_counts.get(status, 0) + 1
        if status == "pass":
            passed += 1

        cause = record.get("failure_cause")
        if isinstance(cause, str) and cause.strip():
            failure_counts[cause.strip()] = failure_counts.get(cause.strip(), 0) + 1

        lead_times.append(_non_negative(record.get("lead_time_ms")))
        attempts.append(_non_negative(record.get("attempts")))
        review_loops.append(_non_negative(record.get("review_loops")))
        costs.append(_non_negative(record.get("cost_usd")))

    if total == 0:
        return Metrics()

    total_cost = sum(costs)
    # sorted() is stable, so equal counts keep first-seen order
    ordered_statuses = sorted(status_counts.items(), key=lambda item: -item[1])
    ordered_causes = sorted(failure_counts.items(), key=lambda item: -item[1])[:TOP_FAILURE_CAUSES]

    return Metrics(
        total_tasks=total,
        pass_rate=passed / total,
        status_counts=[StatusCount(status=status, count=count) for status, count in ordered_statuses],
        avg_lead_time_ms=_average(lead_times),
        avg_attempts=_average(attempts),
        avg_review_loops=_average(review_loops),
        total_cost_usd=total_cost,
        avg_cost_usd=total_cost / total,
        top_failure_causes=[FailureCause(cause=cause, count=count) for cause, count in ordered_causes],
    )


class WorkspaceLoader:
    """Assemble ``WorkspaceSnapshot`` values from an OpenClaw install.

    Directory layout:
    - Defaults come from ``Config.OPENCLAW_DIR`` and ``Config.WORKSPACE_DIR``
    - Override via constructor: WorkspaceLoader(openclaw_dir=..., workspace_dir=...)
    - ``~`` is expanded in both paths

    Degradation:
    - Unreadable or invalid JSON files are treated as absent
    - Individual telemetry lines that fail to parse are skipped
    - Task entries that do not match the Task schema are skipped
    """

    def __init__(
        self,
        openclaw_dir: Optional[Union[str, Path]] = None,
        workspace_dir: Optional[Union[str, Path]] = None,
        *,
        verbose: bool = False,
    ):
        self.openclaw_dir = Path(openclaw_dir or Config.OPENCLAW_DIR).expanduser()
        self.workspace_dir = Path(workspace_dir or Config.WORKSPACE_DIR).expanduser()
        self.verbose = verbose

    @property
    def config_path(self) -> Path:
        return self.openclaw_dir / "openclaw.json"

    @property
    def queue_path(self) -> Path:
        return self.workspace_dir / "queue" / "tasks-current.json"

    @property
    def telemetry_path(self) -> Path:
        return self.workspace_dir / "telemetry" / "tasks.jsonl"

    def load(self, now: Optional[datetime] = None) -> WorkspaceSnapshot:
        """Read every input and build the snapshot.

        Args:
            now: Reference time for runtime status and ``generated_at``
                (defaults to the current UTC time)
        """
        moment = now or datetime.now(timezone.utc)

        config = self._read_json(self.config_path)
        tasks = self.load_tasks()
        metrics = summarize_telemetry(self._read_json_lines(self.telemetry_path))
        agents = self.load_agents(config if isinstance(config, dict) else None, now=moment)

        snapshot = WorkspaceSnapshot(
            generated_at=_isoformat(moment),
            sources=WorkspaceSources(
                openclaw_config=isinstance(config, dict),
                queue_state=len(tasks) > 0,
                telemetry=metrics.total_tasks > 0,
            ),
            agents=agents,
            tasks=tasks,
            metrics=metrics,
        )

        if self.verbose:
            log_ingest(
                f"{snapshot.generated_at} agents={len(agents)} tasks={len(tasks)} "
                f"telemetry={metrics.total_tasks}"
            )
        return snapshot

    def load_agents(self, config: Optional[Dict[str, Any]], *, now: Optional[datetime] = None) -> List[Agent]:
        if not config:
            return []
        agents_block = _as_dict(config.get("agents"))
        agent_list = agents_block.get("list")
        if not isinstance(agent_list, list):
            agent_list = []
        bindings = config.get("bindings")
        if not isinstance(bindings, list):
            bindings = []
        bound_ids = {
            binding.get("agentId")
            for binding in bindings
            if isinstance(binding, dict) and isinstance(binding.get("agentId"), str)
        }

        agents: List[Agent] = []
        for entry in agent_list:
            if not isinstance(entry, dict) or not isinstance(entry.get("id"), str):
                continue
            agent_id = entry["id"]
            role = infer_role(agent_id)
            session = self.read_session_summary(agent_id)
            identity_block = _as_dict(entry.get("identity"))
            model_block = _as_dict(entry.get("model"))

            agents.append(
                Agent(
                    id=agent_id,
                    display_name=_as_str(identity_block.get("name")) or _as_str(entry.get("name")) or agent_id,
                    role=role,
                    status=infer_runtime_status(timestamp_ms(session["last_updated_at"]), now),
                    character_name=ROLE_TO_CHARACTER[role],
                    emoji=_as_str(identity_block.get("emoji")) or ROLE_TO_EMOJI[role],
                    avatar_seed=agent_id,
                    model=_as_str(model_block.get("primary")) or "unknown",
                    is_default=bool(entry.get("default")),
                    has_binding=agent_id in bound_ids,
                    last_updated_at=session["last_updated_at"],
                    last_summary=session["last_summary"],
                    last_session_id=session["last_session_id"],
                    total_input_tokens=session["total_input_tokens"],
                    total_output_tokens=session["total_output_tokens"],
                    total_tokens=session["total_tokens"],
                )
            )
        return agents

    def read_session_summary(self, agent_id: str) -> Dict[str, Any]:
        """Latest session metadata and summed token usage for one agent."""

        summary: Dict[str, Any] = {
            "last_updated_at": None,
            "last_summary": None,
            "last_session_id": None,
            "total_input_tokens": 0,
            "total_output_tokens": 0,
            "total_tokens": 0,
        }
        sessions_path = self.openclaw_dir / "agents" / agent_id / "sessions" / "sessions.json"
        sessions = self._read_json(sessions_path)
        if not isinstance(sessions, dict):
            return summary

        latest: Optional[int] = None
        for entry in sessions.values():
            if not isinstance(entry, dict):
                continue
            updated_at = entry.get("updatedAt")
            if isinstance(updated_at, (int, float)) and not isinstance(updated_at, bool) and updated_at > 0:
                if latest is None or updated_at > latest:
                    latest = int(updated_at)
                    summary["last_summary"] = entry.get("summary") if isinstance(entry.get("summary"), str) else None
                    summary["last_session_id"] = entry.get("sessionId") if isinstance(entry.get("sessionId"), str) else None
            summary["total_input_tokens"] += _non_negative(entry.get("inputTokens"))
            summary["total_output_tokens"] += _non_negative(entry.get("outputTokens"))
            summary["total_tokens"] += _non_negative(entry.get("totalTokens"))

        if latest is not None:
            summary["last_updated_at"] = _isoformat(datetime.fromtimestamp(latest / 1000, tz=timezone.utc))
        return summary

    def load_tasks(self) -> List[Task]:
        raw = self._read_json(self.queue_path)
        if not isinstance(raw, list):
            return []
        tasks: List[Task] = []
        for entry in raw:
            try:
                tasks.append(Task.model_validate(entry))
            except ValidationError as exc:
                if self.verbose:
                    log_error(f"Skipping malformed task entry in {self.queue_path}: {exc.error_count()} errors")
        return tasks

    def _read_json(self, path: Path) -> Any:
        try:
            return json.loads(path.read_text(encoding="utf-8"))
        except FileNotFoundError:
            return None
        except (OSError, ValueError) as exc:
            # ValueError covers JSONDecodeError and UnicodeDecodeError
            if self.verbose:
                log_error(f"Ignoring unreadable {path}: {exc}")
            return None

    def _read_json_lines(self, path: Path) -> List[Dict[str, Any]]:
        try:
            raw = path.read_text(encoding="utf-8", errors="replace")
        except OSError:
            return []
        records: List[Dict[str, Any]] = []
        for line in raw.splitlines():
            line = line.strip()
            if not line:
                continue
            try:
                parsed = json.loads(line)
            except json.JSONDecodeError:
                continue
            if isinstance(parsed, dict):
                records.append(parsed)
        return records


def _isoformat(moment: datetime) -> str:
    """UTC ISO-8601 with millisecond precision and a ``Z`` suffix."""
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=timezone.utc)
    return moment.astimezone(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


def load_workspace_file(path: Union[str, Path]) -> WorkspaceSnapshot:
    """Parse a saved ``WorkspaceSnapshot`` JSON file.

    Raises:
        FileNotFoundError: If the file doesn't exist
        pydantic.ValidationError: If the JSON doesn't match the snapshot schema
    """
    snapshot_path = Path(path).expanduser()
    if not snapshot_path.exists():
        raise FileNotFoundError(f"Workspace snapshot not found at {snapshot_path}")
    return WorkspaceSnapshot.model_validate_json(snapshot_path.read_text(encoding="utf-8"))


def load_workspace(
    openclaw_dir: Optional[Union[str, Path]] = None,
    workspace_dir: Optional[Union[str, Path]] = None,
) -> WorkspaceSnapshot:
    """Convenience function to load the local workspace snapshot."""
    return WorkspaceLoader(openclaw_dir, workspace_dir).load()
