"""Tests for WorkspaceLoader against a temporary OpenClaw install."""

import json
from datetime import datetime, timedelta, timezone

import pytest
from pydantic import ValidationError

from agent_office.workspace import (
    WorkspaceLoader,
    infer_role,
    infer_runtime_status,
    load_workspace_file,
    summarize_telemetry,
)

NOW = datetime(2026, 3, 2, 10, 0, 0, tzinfo=timezone.utc)


def _ms(moment):
    return int(moment.timestamp() * 1000)


@pytest.fixture
def openclaw_tree(tmp_path):
    openclaw_dir = tmp_path / "openclaw"
    workspace_dir = tmp_path / "clawd"

    config = {
        "agents": {
            "list": [
                {"id": "orchestrator", "default": True, "identity": {"name": "Captain", "emoji": "🚀"}},
                {"id": "planner-main", "name": "Planner", "model": {"primary": "gpt-5"}},
                {"id": "helper"},
            ]
        },
        "bindings": [{"agentId": "orchestrator", "match": {"channel": "slack"}}],
    }
    openclaw_dir.mkdir()
    (openclaw_dir / "openclaw.json").write_text(json.dumps(config))

    sessions_dir = openclaw_dir / "agents" / "orchestrator" / "sessions"
    sessions_dir.mkdir(parents=True)
    sessions = {
        "old": {"updatedAt": _ms(NOW - timedelta(hours=3)), "summary": "old work", "sessionId": "s-old",
                "inputTokens": 100, "outputTokens": 50, "totalTokens": 150},
        "new": {"updatedAt": _ms(NOW - timedelta(minutes=2)), "summary": "routing tasks", "sessionId": "s-new",
                "inputTokens": 10, "outputTokens": 5, "totalTokens": 15},
    }
    (sessions_dir / "sessions.json").write_text(json.dumps(sessions))

    planner_sessions = openclaw_dir / "agents" / "planner-main" / "sessions"
    planner_sessions.mkdir(parents=True)
    (planner_sessions / "sessions.json").write_text(
        json.dumps({"s": {"updatedAt": _ms(NOW - timedelta(hours=2))}})
    )

    (workspace_dir / "queue").mkdir(parents=True)
    tasks = [
        {"task_id": "T-1", "goal": "Plan", "status": "in_progress", "owner": "planner-main"},
        {"goal": "missing id"},
    ]
    (workspace_dir / "queue" / "tasks-current.json").write_text(json.dumps(tasks))

    (workspace_dir / "telemetry").mkdir()
    lines = [
        json.dumps({"status": "pass", "lead_time_ms": 1000, "attempts": 1, "review_loops": 0, "cost_usd": 0.5}),
        "not json",
        json.dumps({"status": "fail", "failure_cause": "tests", "lead_time_ms": 3000, "attempts": 3,
                    "review_loops": 2, "cost_usd": 1.5}),
        "",
    ]
    (workspace_dir / "telemetry" / "tasks.jsonl").write_text("\n".join(lines))

    return openclaw_dir, workspace_dir


def test_loader_builds_snapshot(openclaw_tree):
    openclaw_dir, workspace_dir = openclaw_tree
    snapshot = WorkspaceLoader(openclaw_dir, workspace_dir).load(now=NOW)
    agents = {agent.id: agent for agent in snapshot.agents}

    assert snapshot.generated_at == "2026-03-02T10:00:00.000Z"
    assert snapshot.sources.openclaw_config is True
    assert snapshot.sources.queue_state is True
    assert snapshot.sources.telemetry is True

    orchestrator = agents["orchestrator"]
    assert orchestrator.role == "orchestrator"
    assert orchestrator.status == "online"
    assert orchestrator.display_name == "Captain"
    assert orchestrator.emoji == "🚀"
    assert orchestrator.is_default is True
    assert orchestrator.has_binding is True
    assert orchestrator.last_summary == "routing tasks"
    assert orchestrator.last_session_id == "s-new"
    assert orchestrator.total_tokens == 165
    assert orchestrator.character_name == "Captain Orbit"

    planner = agents["planner-main"]
    assert planner.role == "planner"
    assert planner.status == "idle"
    assert planner.model == "gpt-5"
    assert planner.has_binding is False

    helper = agents["helper"]
    assert helper.role == "worker"
    assert helper.status == "offline"
    assert helper.display_name == "helper"

    assert [task.task_id for task in snapshot.tasks] == ["T-1"]


def test_loader_telemetry_metrics(openclaw_tree):
    openclaw_dir, workspace_dir = openclaw_tree
    metrics = WorkspaceLoader(openclaw_dir, workspace_dir).load(now=NOW).metrics

    assert metrics.total_tasks == 2
    assert metrics.pass_rate == 0.5
    assert metrics.avg_lead_time_ms == 2000
    assert metrics.avg_attempts == 2
    assert metrics.total_cost_usd == 2.0
    assert [(cause.cause, cause.count) for cause in metrics.top_failure_causes] == [("tests", 1)]


def test_missing_install_degrades_to_empty_snapshot(tmp_path):
    snapshot = WorkspaceLoader(tmp_path / "nope", tmp_path / "nada").load(now=NOW)

    assert snapshot.agents == []
    assert snapshot.tasks == []
    assert snapshot.metrics.total_tasks == 0
    assert snapshot.sources.openclaw_config is False


def test_corrupt_config_is_ignored(tmp_path):
    (tmp_path / "openclaw.json").write_text("{not json")
    snapshot = WorkspaceLoader(tmp_path, tmp_path).load(now=NOW)

    assert snapshot.agents == []
    assert snapshot.sources.openclaw_config is False


def test_infer_role_and_runtime_status():
    assert infer_role("backend-2") == "backend"
    assert infer_role("Main-Reviewer") == "reviewer"
    assert infer_role("misc") == "worker"

    assert infer_runtime_status(None, NOW) == "offline"
    assert infer_runtime_status(_ms(NOW - timedelta(minutes=9)), NOW) == "online"
    assert infer_runtime_status(_ms(NOW - timedelta(hours=23)), NOW) == "idle"
    assert infer_runtime_status(_ms(NOW - timedelta(days=2)), NOW) == "offline"


def test_summarize_telemetry_orders_statuses_and_causes():
    records = [
        {"status": "fail", "failure_cause": "lint"},
        {"status": "pass"},
        {"status": "fail", "failure_cause": "tests"},
        {"status": "fail", "failure_cause": "tests"},
        {"failure_cause": "  "},
    ]
    metrics = summarize_telemetry(records)

    assert [(entry.status, entry.count) for entry in metrics.status_counts] == [
        ("fail", 3),
        ("pass", 1),
        ("unknown", 1),
    ]
    assert [cause.cause for cause in metrics.top_failure_causes] == ["tests", "lint"]
    assert metrics.pass_rate == pytest.approx(0.2)
    assert summarize_telemetry([]).total_tasks == 0


def test_load_workspace_file(tmp_path, office_workspace):
    path = tmp_path / "workspace.json"
    path.write_text(office_workspace.model_dump_json())

    assert load_workspace_file(path) == office_workspace

    with pytest.raises(FileNotFoundError):
        load_workspace_file(tmp_path / "missing.json")

    path.write_text(json.dumps({"agents": []}))
    with pytest.raises(ValidationError):
        load_workspace_file(path)


def test_non_utf8_config_degrades_to_empty_agents(tmp_path):
    (tmp_path / "openclaw.json").write_bytes(b'{"agents": {"list": [{"id": "a\xff"}]}}')
    snapshot = WorkspaceLoader(tmp_path, tmp_path).load(now=NOW)

    assert snapshot.agents == []
    assert snapshot.sources.openclaw_config is False


def test_non_utf8_telemetry_line_is_skipped(tmp_path):
    (tmp_path / "telemetry").mkdir()
    (tmp_path / "telemetry" / "tasks.jsonl").write_bytes(
        b'\xff\xfe\n{"status": "pass", "lead_time_ms": 10}\n'
    )
    metrics = WorkspaceLoader(tmp_path, tmp_path).load(now=NOW).metrics

    assert metrics.total_tasks == 1
    assert metrics.pass_rate == 1.0


def test_non_utf8_queue_degrades_to_no_tasks(tmp_path):
    (tmp_path / "queue").mkdir()
    (tmp_path / "queue" / "tasks-current.json").write_bytes(b'[{"task_id": "T-\xff"}]')

    assert WorkspaceLoader(tmp_path, tmp_path).load(now=NOW).tasks == []


@pytest.mark.parametrize(
    "config",
    [
        {"agents": [{"id": "x"}]},
        {"agents": {"list": {"id": "x"}}},
        {"agents": "everyone"},
        {"bindings": "slack"},
    ],
)
def test_odd_config_shapes_yield_no_agents(tmp_path, config):
    (tmp_path / "openclaw.json").write_text(json.dumps(config))
    snapshot = WorkspaceLoader(tmp_path, tmp_path).load(now=NOW)

    assert snapshot.agents == []
    assert snapshot.sources.openclaw_config is True


def test_odd_agent_entry_fields_fall_back_to_defaults(tmp_path):
    config = {
        "agents": {
            "list": [
                {"id": "planner-x", "identity": "Bob", "model": "gpt-5", "name": 7},
                {"id": "worker-y", "identity": {"name": ["n"], "emoji": 3}, "model": {"primary": None}},
            ]
        },
        "bindings": [{"agentId": ["planner-x"]}, "slack", {"agentId": "worker-y"}],
    }
    (tmp_path / "openclaw.json").write_text(json.dumps(config))
    agents = {agent.id: agent for agent in WorkspaceLoader(tmp_path, tmp_path).load(now=NOW).agents}

    planner = agents["planner-x"]
    assert planner.display_name == "planner-x"
    assert planner.model == "unknown"
    assert planner.has_binding is False

    worker = agents["worker-y"]
    assert worker.display_name == "worker-y"
    assert worker.emoji == "🤖"
    assert worker.has_binding is True
