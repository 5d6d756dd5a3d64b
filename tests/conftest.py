"""Shared fixtures: a small office workspace on the default floor plan."""

import os

import pytest

from agent_office.schemas import Agent, Task, WorkspaceSnapshot

# Keep captured output free of ANSI codes
os.environ.setdefault("AGENT_OFFICE_NO_COLOR", "1")

GENERATED_AT = "2026-03-02T10:00:00.000Z"


def make_workspace(agents=None, tasks=None, generated_at=GENERATED_AT):
    return WorkspaceSnapshot(
        generated_at=generated_at,
        agents=agents if agents is not None else [],
        tasks=tasks if tasks is not None else [],
    )


@pytest.fixture
def office_agents():
    return [
        Agent(id="orchestrator", display_name="Captain", role="orchestrator", status="online"),
        Agent(id="planner-1", display_name="Planner", role="planner", status="online"),
        Agent(id="backend-1", display_name="Backend", role="backend", status="online"),
        Agent(id="frontend-1", display_name="Frontend", role="frontend", status="idle"),
        Agent(id="worker-1", display_name="Runner", role="worker", status="online"),
        Agent(id="worker-2", display_name="Sleeper", role="worker", status="offline"),
    ]


@pytest.fixture
def office_tasks():
    return [
        Task(task_id="T-1", goal="Plan sprint", status="in_progress", owner="planner-1",
             updated_at="2026-03-02T09:50:00Z"),
        Task(task_id="T-2", goal="Fix API", status="blocked", owner="backend-1",
             updated_at="2026-03-02T09:40:00Z"),
        Task(task_id="T-3", goal="Polish UI", status="review", owner="frontend-1",
             review_loops=4, updated_at="2026-03-02T09:55:00Z"),
        Task(task_id="T-4", goal="Sweep logs", status="running", owner="worker-1",
             updated_at="2026-03-02T09:30:00Z"),
        Task(task_id="T-5", goal="Ship docs", status="pass", owner="worker-2",
             updated_at="2026-03-02T08:00:00Z"),
    ]


@pytest.fixture
def office_workspace(office_agents, office_tasks):
    return make_workspace(office_agents, office_tasks)
