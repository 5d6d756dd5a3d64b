"""Tests for scene synthesis: routing, placement, alerts, events and freshness."""

from datetime import datetime, timedelta, timezone

from agent_office.environment import DEFAULT_LAYOUT, OfficeGrid
from agent_office.identity import generate_identity
from agent_office.scene import SceneSynthesizer, classify_sync_status, refresh_sync_status
from agent_office.schemas import Agent, Task

from conftest import GENERATED_AT, make_workspace

GENERATED = datetime(2026, 3, 2, 10, 0, 0, tzinfo=timezone.utc)


def test_agents_route_to_expected_zones(office_workspace):
    scene = SceneSynthesizer().synthesize(office_workspace, now=GENERATED)
    zones = {agent.agent_id: agent.target_zone_id for agent in scene.agents}
    activity = {agent.agent_id: agent.activity_state for agent in scene.agents}

    assert zones == {
        "backend-1": "reviewer_gate",
        "frontend-1": "reviewer_gate",
        "orchestrator": "orchestrator_desk",
        "planner-1": "planner_bay",
        "worker-1": "intake",
        "worker-2": "break_area",
    }
    assert activity["backend-1"] == "blocked"
    assert activity["frontend-1"] == "reviewing"
    assert activity["orchestrator"] == "idle"
    assert activity["planner-1"] == "active"
    assert activity["worker-2"] == "offline"
    assert [agent.agent_id for agent in scene.agents] == sorted(zones)


def test_idle_non_orchestrator_goes_to_break_area():
    workspace = make_workspace([Agent(id="planner-9", role="planner", status="online")])
    scene = SceneSynthesizer().synthesize(workspace)
    assert scene.agents[0].target_zone_id == "break_area"


def test_target_tiles_are_walkable_interior_and_distinct(office_workspace):
    synthesizer = SceneSynthesizer()
    grid = OfficeGrid.from_layout(DEFAULT_LAYOUT)
    scene = synthesizer.synthesize(office_workspace)

    for agent in scene.agents:
        zone = DEFAULT_LAYOUT.zone(agent.target_zone_id)
        assert zone.interior_contains(agent.target_tile.x, agent.target_tile.y)
        assert grid.is_walkable(agent.target_tile.x, agent.target_tile.y)

    reviewers = [agent.target_tile for agent in scene.agents if agent.target_zone_id == "reviewer_gate"]
    assert len(set(reviewers)) == 2


def test_many_agents_in_one_zone_get_distinct_tiles():
    agents = [Agent(id=f"worker-{i:02d}", role="worker", status="offline") for i in range(20)]
    scene = SceneSynthesizer().synthesize(make_workspace(agents))
    tiles = [agent.target_tile for agent in scene.agents]
    assert len(set(tiles)) == len(tiles)


def test_synthesis_is_idempotent(office_workspace):
    synthesizer = SceneSynthesizer()
    first = synthesizer.synthesize(office_workspace, now=GENERATED)
    second = SceneSynthesizer().synthesize(office_workspace, now=GENERATED)
    third = synthesizer.synthesize(office_workspace, previous=first, now=GENERATED)

    assert first.agents == second.agents
    assert [a.target_tile for a in third.agents] == [a.target_tile for a in first.agents]
    assert [a.target_zone_id for a in third.agents] == [a.target_zone_id for a in first.agents]


def test_new_agents_start_on_target_and_persisting_agents_keep_tile(office_workspace):
    synthesizer = SceneSynthesizer()
    first = synthesizer.synthesize(office_workspace)
    for agent in first.agents:
        assert agent.tile == agent.target_tile
        assert agent.is_moving is False

    # planner-1 finishes its task: it leaves the planner bay for the break area
    tasks = [
        task.model_copy(update={"status": "done"}) if task.task_id == "T-1" else task
        for task in office_workspace.tasks
    ]
    second = synthesizer.synthesize(office_workspace.model_copy(update={"tasks": tasks}), previous=first)
    planner_before = first.agent("planner-1")
    planner_after = second.agent("planner-1")

    assert planner_after.target_zone_id == "break_area"
    assert planner_after.tile == planner_before.tile
    assert planner_after.is_moving is True


def test_occupancy_counts_target_zones(office_workspace):
    scene = SceneSynthesizer().synthesize(office_workspace)

    assert len(scene.occupancy) == len(DEFAULT_LAYOUT.zones)
    assert scene.occupancy_for("reviewer_gate").count == 2
    assert scene.occupancy_for("frontend_bay").count == 0
    assert scene.occupancy_for("break_area").capacity == 12
    assert sum(entry.count for entry in scene.occupancy) == len(scene.agents)


def test_alerts_are_blocked_and_review_spikes_newest_first(office_workspace):
    scene = SceneSynthesizer().synthesize(office_workspace)

    assert [(alert.task_id, alert.severity) for alert in scene.alerts] == [
        ("T-3", "warning"),
        ("T-2", "critical"),
    ]


def test_failed_task_raises_critical_alert():
    tasks = [
        Task(task_id="F-1", status="test_failed", owner="worker-1", goal="Fix login", updated_at="2026-03-02T09:50:00Z"),
        Task(task_id="B-1", status="blocked", owner="worker-1", updated_at="2026-03-02T09:40:00Z"),
    ]
    scene = SceneSynthesizer().synthesize(make_workspace(tasks=tasks))

    assert [(alert.id, alert.severity) for alert in scene.alerts] == [
        ("alert-F-1-failed", "critical"),
        ("alert-B-1-blocked", "critical"),
    ]
    assert "failed" in scene.alerts[0].message


def test_alerts_are_capped():
    tasks = [
        Task(task_id=f"B-{i}", status="blocked", owner="x", updated_at=f"2026-03-02T09:{i:02d}:00Z")
        for i in range(12)
    ]
    scene = SceneSynthesizer(max_alerts=8).synthesize(make_workspace(tasks=tasks))

    assert len(scene.alerts) == 8
    assert scene.alerts[0].task_id == "B-11"


def test_first_scene_events_describe_current_tasks(office_workspace):
    scene = SceneSynthesizer().synthesize(office_workspace)
    types = [event.type for event in scene.events]

    assert types[0] == "snapshot_ingested"
    assert scene.events[0].metadata == {"source": "ingest"}
    assert types.count("task_blocked") == 1
    assert types.count("task_passed") == 1
    assert types.count("review_loop_spike") == 1
    # T-1 and T-4 are in progress
    assert types.count("task_progress") == 2


def test_transition_events_against_previous_scene(office_workspace, office_agents, office_tasks):
    synthesizer = SceneSynthesizer()
    first = synthesizer.synthesize(office_workspace)

    agents = [
        agent.model_copy(update={"status": "online"}) if agent.id == "worker-2" else agent
        for agent in office_agents
    ]
    tasks = [
        task.model_copy(update={"status": "pass", "updated_at": "2026-03-02T10:04:00Z"})
        if task.task_id == "T-2" else task
        for task in office_tasks
    ]
    tasks.append(Task(task_id="T-6", goal="New work", status="queued", owner="worker-1",
                      updated_at="2026-03-02T10:03:00Z"))
    second = synthesizer.synthesize(
        make_workspace(agents, tasks, generated_at="2026-03-02T10:05:00.000Z"),
        previous=first,
    )
    by_type = {event.type: event for event in second.events[1:]}

    assert set(by_type) == {"task_passed", "task_assigned", "agent_online"}
    assert by_type["task_passed"].task_id == "T-2"
    assert by_type["task_assigned"].task_id == "T-6"
    assert by_type["agent_online"].agent_id == "worker-2"


def test_status_change_event_carries_previous_and_next_status(office_workspace, office_tasks):
    synthesizer = SceneSynthesizer()
    first = synthesizer.synthesize(office_workspace)
    tasks = [
        task.model_copy(update={"status": "review"}) if task.task_id == "T-4" else task
        for task in office_tasks
    ]
    second = synthesizer.synthesize(office_workspace.model_copy(update={"tasks": tasks}), previous=first)
    progress = [event for event in second.events if event.type == "task_progress"]

    assert len(progress) == 1
    assert progress[0].metadata == {"previous_status": "running", "next_status": "review"}


def test_events_are_capped_with_snapshot_event_first():
    tasks = [
        Task(task_id=f"P-{i}", status="in_progress", owner="x", updated_at=f"2026-03-02T09:{i:02d}:00Z")
        for i in range(10)
    ]
    scene = SceneSynthesizer(max_events=4).synthesize(make_workspace(tasks=tasks))

    assert len(scene.events) == 4
    assert scene.events[0].type == "snapshot_ingested"
    assert [event.task_id for event in scene.events[1:]] == ["P-9", "P-8", "P-7"]


def test_sync_status_thresholds():
    assert classify_sync_status(GENERATED_AT, GENERATED + timedelta(seconds=45)) == "live"
    assert classify_sync_status(GENERATED_AT, GENERATED + timedelta(seconds=46)) == "stale"
    assert classify_sync_status(GENERATED_AT, GENERATED + timedelta(seconds=270)) == "stale"
    assert classify_sync_status(GENERATED_AT, GENERATED + timedelta(seconds=271)) == "offline"
    assert classify_sync_status("garbage", GENERATED) == "offline"


def test_refresh_sync_status_recomputes_on_read(office_workspace):
    scene = SceneSynthesizer().synthesize(office_workspace, now=GENERATED)
    assert scene.sync_status == "live"

    later = refresh_sync_status(scene, GENERATED + timedelta(minutes=2))
    assert later.sync_status == "stale"
    assert scene.sync_status == "live"
    assert refresh_sync_status(scene, GENERATED) is scene


def test_local_source_keeps_last_ingested_at(office_workspace):
    synthesizer = SceneSynthesizer()
    ingested = synthesizer.synthesize(office_workspace, source="ingest")
    local = synthesizer.synthesize(
        office_workspace.model_copy(update={"generated_at": "2026-03-02T10:01:00.000Z"}),
        source="local",
        previous=ingested,
    )

    assert ingested.last_ingested_at == GENERATED_AT
    assert local.last_ingested_at == GENERATED_AT
    assert local.source == "local"


def test_existing_identity_is_used_verbatim():
    identity = generate_identity("custom", "reviewer", "Custom")
    workspace = make_workspace([Agent(id="r-1", role="reviewer", status="online", identity=identity)])
    scene = SceneSynthesizer().synthesize(workspace)
    assert scene.agents[0].identity == identity


def test_time_bucket_uses_snapshot_timestamp():
    synthesizer = SceneSynthesizer(time_bucket_ms=60_000)
    assert synthesizer.time_bucket("1970-01-01T00:02:30Z") == 2
    assert synthesizer.time_bucket("") == 0
