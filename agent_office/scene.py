"""
Scene synthesis: workspace snapshot -> renderable office scene.

The synthesizer turns the agents and tasks of a ``WorkspaceSnapshot`` into a
``SceneSnapshot``: which zone each agent walks to, which tile inside that
zone it stands on, what it is doing, and the alerts and timeline events the
snapshot implies.

Per agent (processed in id order so slot numbering is reproducible):
1. Pick the primary task (blocked > in progress > review > most recent)
2. Derive the activity state from runtime status + primary task
3. Route to a zone: blocked/reviewing -> reviewer gate, offline -> break
   area, idle -> control desk (orchestrators) or break area, active -> the
   zone of the agent's role
4. Pick a target tile inside the zone interior, seeded by
   ``agent_id:zone_id:slot``; ``slot`` counts agents already routed to the
   zone this pass plus a coarse time bucket of the snapshot timestamp
5. Carry the rendered tile over from the previous scene when the agent
   persists, otherwise start on the target tile

The previous scene is consulted for position continuity and for the task
transitions that drive timeline events; it never changes zone or target
tile selection, so re-synthesizing an unchanged workspace is idempotent.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Dict, List, Optional, Set

from agent_office.activity import (
    derive_activity_state,
    is_active_status,
    is_blocked_status,
    is_failed_status,
    is_passed_status,
    normalize_status,
    pick_primary_task,
    sort_by_recency,
    timestamp_ms,
)
from agent_office.environment import (
    DEFAULT_LAYOUT,
    OfficeGrid,
    OfficeLayout,
    Tile,
    Zone,
    zone_interior_tiles,
)
from agent_office.identity import IdentityCache, RandomStream
from agent_office.schemas import (
    ActivityState,
    Agent,
    AgentSceneState,
    OfficeAlert,
    OfficeEvent,
    SceneSnapshot,
    SceneSource,
    SyncStatus,
    Task,
    TilePoint,
    VisualIdentity,
    WorkspaceSnapshot,
    ZoneOccupancy,
)

DEFAULT_STALE_AFTER_MS = 45_000
DEFAULT_TIME_BUCKET_MS = 300_000
DEFAULT_MAX_ALERTS = 8
DEFAULT_MAX_EVENTS = 40
REVIEW_LOOP_THRESHOLD = 3
# Scenes older than stale_after * this factor are reported offline
OFFLINE_AGE_FACTOR = 6


def _now_ms(now: Optional[datetime]) -> int:
    moment = now or datetime.now(timezone.utc)
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=timezone.utc)
    return int(moment.timestamp() * 1000)


def classify_sync_status(
    generated_at: Optional[str],
    now: Optional[datetime] = None,
    stale_after_ms: int = DEFAULT_STALE_AFTER_MS,
) -> SyncStatus:
    """Bucket a scene's age into live / stale / offline.

    live: age <= stale_after_ms; stale: age <= stale_after_ms * 6; offline
    beyond that, or when the timestamp cannot be parsed.
    """

    generated_ms = timestamp_ms(generated_at)
    if generated_ms is None:
        return "offline"
    age_ms = _now_ms(now) - generated_ms
    if age_ms <= stale_after_ms:
        return "live"
    if age_ms <= stale_after_ms * OFFLINE_AGE_FACTOR:
        return "stale"
    return "offline"


def refresh_sync_status(scene: SceneSnapshot, now: Optional[datetime] = None) -> SceneSnapshot:
    """Return a copy of ``scene`` with sync freshness recomputed for ``now``."""

    status = classify_sync_status(scene.generated_at, now, scene.stale_after_ms)
    if status == scene.sync_status:
        return scene
    return scene.model_copy(update={"sync_status": status})


class SceneSynthesizer:
    """Builds ``SceneSnapshot`` values from workspace snapshots.

    The layout is injected so alternate floor plans can be tested; the
    identity cache is shared across passes so an agent keeps the profile it
    was first given.
    """

    def __init__(
        self,
        layout: OfficeLayout = DEFAULT_LAYOUT,
        *,
        identities: Optional[IdentityCache] = None,
        stale_after_ms: int = DEFAULT_STALE_AFTER_MS,
        time_bucket_ms: int = DEFAULT_TIME_BUCKET_MS,
        max_alerts: int = DEFAULT_MAX_ALERTS,
        max_events: int = DEFAULT_MAX_EVENTS,
        review_loop_threshold: int = REVIEW_LOOP_THRESHOLD,
    ) -> None:
        self.layout = layout
        self.grid = OfficeGrid.from_layout(layout)
        self.identities = identities if identities is not None else IdentityCache()
        self.stale_after_ms = stale_after_ms
        self.time_bucket_ms = max(1, time_bucket_ms)
        self.max_alerts = max_alerts
        self.max_events = max(1, max_events)
        self.review_loop_threshold = review_loop_threshold

        # Walkable interior tiles per zone; zones whose interior is fully
        # blocked keep the raw interior so a target can still be chosen.
        self._interiors: Dict[str, List[Tile]] = {}
        for zone in layout.zones:
            interior = zone_interior_tiles(zone)
            walkable = [tile for tile in interior if self.grid.is_walkable(*tile)]
            self._interiors[zone.id] = walkable or interior

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def synthesize(
        self,
        workspace: WorkspaceSnapshot,
        source: SceneSource = "ingest",
        previous: Optional[SceneSnapshot] = None,
        *,
        now: Optional[datetime] = None,
    ) -> SceneSnapshot:
        """Derive the scene for ``workspace``.

        Args:
            workspace: Snapshot to render
            source: ``ingest`` for pushed snapshots, ``local`` for snapshots
                read directly from the host
            previous: Prior scene, used for tile continuity and transition events
            now: Wall-clock time for the sync freshness classification

        Returns:
            A new ``SceneSnapshot``; ``previous`` is not modified.
        """

        bucket = self.time_bucket(workspace.generated_at)
        slots: Dict[str, int] = {}
        claimed: Dict[str, Set[Tile]] = {}
        agent_states: List[AgentSceneState] = []

        for agent in sorted(workspace.agents, key=lambda item: item.id):
            task = pick_primary_task(agent.id, workspace.tasks)
            activity = derive_activity_state(agent.status, task)
            zone = self.target_zone(agent.role, activity)

            slot = slots.get(zone.id, 0)
            slots[zone.id] = slot + 1
            target = self.target_tile(
                agent.id,
                zone,
                slot + bucket,
                claimed=claimed.setdefault(zone.id, set()),
            )

            prior = previous.agent(agent.id) if previous is not None else None
            tile = target
            direction = "down"
            if prior is not None:
                direction = prior.direction
                if self.grid.in_bounds(prior.tile.x, prior.tile.y):
                    tile = prior.tile

            agent_states.append(
                AgentSceneState(
                    agent_id=agent.id,
                    display_name=agent.display_name or agent.id,
                    role=agent.role,
                    runtime_status=agent.status,
                    activity_state=activity,
                    direction=direction,
                    tile=tile,
                    target_tile=target,
                    target_zone_id=zone.id,
                    current_task_id=task.task_id if task is not None else None,
                    last_event_at=task.updated_at if task is not None else agent.last_updated_at,
                    is_moving=tile != target,
                    identity=self.identity_for(agent),
                )
            )

        if source == "ingest":
            last_ingested_at: Optional[str] = workspace.generated_at
        else:
            last_ingested_at = previous.last_ingested_at if previous is not None else None

        return SceneSnapshot(
            generated_at=workspace.generated_at,
            source=source,
            sync_status=classify_sync_status(workspace.generated_at, now, self.stale_after_ms),
            last_ingested_at=last_ingested_at,
            stale_after_ms=self.stale_after_ms,
            width=self.layout.width,
            height=self.layout.height,
            zones=list(self.layout.zones),
            agents=agent_states,
            occupancy=self.occupancy(agent_states),
            alerts=self.build_alerts(workspace),
            events=self.build_events(workspace, source, previous),
            tasks=list(workspace.tasks),
            metrics=workspace.metrics,
        )

    # ------------------------------------------------------------------
    # Placement
    # ------------------------------------------------------------------

    def time_bucket(self, generated_at: Optional[str]) -> int:
        """Coarse window index of the snapshot timestamp (0 if unparseable)."""
        millis = timestamp_ms(generated_at)
        if millis is None:
            return 0
        return millis // self.time_bucket_ms

    def target_zone(self, role: str, activity: ActivityState) -> Zone:
        layout = self.layout
        if activity in ("blocked", "reviewing"):
            return layout.zone(layout.review_zone_id)
        if activity == "offline":
            return layout.zone(layout.break_zone_id)
        if activity == "idle":
            if role == "orchestrator":
                return layout.zone(layout.orchestrator_zone_id)
            return layout.zone(layout.break_zone_id)
        return layout.zone_for_role(role)

    def target_tile(
        self,
        agent_id: str,
        zone: Zone,
        slot: int,
        *,
        claimed: Optional[Set[Tile]] = None,
    ) -> TilePoint:
        """Deterministic tile inside ``zone``'s interior for ``agent_id``.

        Tiles in ``claimed`` are skipped by linear probing so agents sharing a
        zone get distinct tiles while the interior has room; the chosen tile is
        added to ``claimed``.
        """

        tiles = self._interiors.get(zone.id) or zone_interior_tiles(zone)
        if not tiles:
            # Zones thinner than three tiles have no interior; use the centre
            return TilePoint(x=zone.x + zone.width // 2, y=zone.y + zone.height // 2)

        rng = RandomStream(f"{agent_id}:{zone.id}:{slot}")
        start = rng.index(len(tiles))
        chosen = tiles[start]
        if claimed is not None:
            for offset in range(len(tiles)):
                candidate = tiles[(start + offset) % len(tiles)]
                if candidate not in claimed:
                    chosen = candidate
                    break
            claimed.add(chosen)
        return TilePoint.from_tuple(chosen)

    def identity_for(self, agent: Agent) -> VisualIdentity:
        if agent.identity is not None:
            return agent.identity
        return self.identities.get(agent.id, agent.avatar_seed or agent.id, agent.role, agent.display_name)

    def occupancy(self, agents: List[AgentSceneState]) -> List[ZoneOccupancy]:
        counts: Dict[str, int] = {zone.id: 0 for zone in self.layout.zones}
        for state in agents:
            counts[state.target_zone_id] = counts.get(state.target_zone_id, 0) + 1
        return [
            ZoneOccupancy(zone_id=zone.id, count=counts[zone.id], capacity=zone.capacity)
            for zone in self.layout.zones
        ]

    # ------------------------------------------------------------------
    # Alerts and events
    # ------------------------------------------------------------------

    def build_alerts(self, workspace: WorkspaceSnapshot) -> List[OfficeAlert]:
        """Blocked or failed tasks and review-loop spikes, newest first, capped."""

        alerts: List[OfficeAlert] = []
        for task in sort_by_recency(workspace.tasks):
            created_at = task.updated_at or workspace.generated_at
            owner = task.owner or None
            if is_blocked_status(task.status) or is_failed_status(task.status):
                failed = not is_blocked_status(task.status)
                alerts.append(
                    OfficeAlert(
                        id=f"alert-{task.task_id}-{'failed' if failed else 'blocked'}",
                        severity="critical",
                        message=(
                            f"{_goal_label(task)} failed for {_owner_label(task)}"
                            if failed
                            else f"{_owner_label(task)} is blocked on {_goal_label(task)}"
                        ),
                        created_at=created_at,
                        agent_id=owner,
                        task_id=task.task_id,
                    )
                )
            elif task.review_loops >= self.review_loop_threshold:
                alerts.append(
                    OfficeAlert(
                        id=f"alert-{task.task_id}-review-loops",
                        severity="warning",
                        message=f"{_goal_label(task)} has cycled through review {task.review_loops} times",
                        created_at=created_at,
                        agent_id=owner,
                        task_id=task.task_id,
                    )
                )
            if len(alerts) >= self.max_alerts:
                break
        return alerts

    def build_events(
        self,
        workspace: WorkspaceSnapshot,
        source: SceneSource,
        previous: Optional[SceneSnapshot],
    ) -> List[OfficeEvent]:
        """Timeline for this snapshot.

        Without a previous scene every task contributes an event for its
        current category. With one, only transitions since the previous scene
        are reported, plus agents switching to or from offline. The
        "snapshot refreshed" event is always first.
        """

        events: List[OfficeEvent] = []
        if previous is None:
            for task in workspace.tasks:
                events.extend(self._status_events(task))
        else:
            prior_tasks = {task.task_id: task for task in previous.tasks}
            for task in workspace.tasks:
                events.extend(self._transition_events(task, prior_tasks.get(task.task_id)))
            events.extend(self._runtime_events(workspace, previous))

        events.sort(key=_event_recency_key)

        snapshot_event = OfficeEvent(
            id=f"event-snapshot-{workspace.generated_at}",
            type="snapshot_ingested",
            severity="info",
            message=f"Snapshot refreshed: {len(workspace.agents)} agents, {len(workspace.tasks)} tasks",
            created_at=workspace.generated_at,
            metadata={"source": source},
        )
        return [snapshot_event] + events[: self.max_events - 1]

    def _status_events(self, task: Task) -> List[OfficeEvent]:
        events: List[OfficeEvent] = []
        if is_blocked_status(task.status):
            events.append(_task_event(task, "task_blocked", "warning", f"{_owner_label(task)} blocked on {_goal_label(task)}"))
        elif is_passed_status(task.status):
            events.append(_task_event(task, "task_passed", "info", f"{_owner_label(task)} completed {_goal_label(task)}"))
        elif is_active_status(task.status):
            events.append(_task_event(task, "task_progress", "info", f"{_owner_label(task)} working on {_goal_label(task)}"))
        if task.review_loops >= self.review_loop_threshold:
            events.append(self._review_spike_event(task))
        return events

    def _transition_events(self, task: Task, prior: Optional[Task]) -> List[OfficeEvent]:
        if prior is None:
            return [_task_event(task, "task_assigned", "info", f"{_owner_label(task)} picked up {_goal_label(task)}")]

        events: List[OfficeEvent] = []
        status = normalize_status(task.status)
        previous_status = normalize_status(prior.status)
        if status != previous_status:
            if is_blocked_status(status):
                events.append(_task_event(task, "task_blocked", "warning", f"{_owner_label(task)} blocked on {_goal_label(task)}"))
            elif is_passed_status(status):
                events.append(_task_event(task, "task_passed", "info", f"{_owner_label(task)} completed {_goal_label(task)}"))
            else:
                event = _task_event(task, "task_progress", "info", f"{_owner_label(task)} status changed to {status}")
                event.metadata.update({"previous_status": previous_status, "next_status": status})
                events.append(event)

        if task.review_loops >= self.review_loop_threshold and task.review_loops > prior.review_loops:
            events.append(self._review_spike_event(task))
        return events

    def _review_spike_event(self, task: Task) -> OfficeEvent:
        event = _task_event(
            task,
            "review_loop_spike",
            "warning",
            f"{_owner_label(task)} review loops increased to {task.review_loops}",
            suffix="review",
        )
        event.metadata["review_loops"] = task.review_loops
        return event

    def _runtime_events(self, workspace: WorkspaceSnapshot, previous: SceneSnapshot) -> List[OfficeEvent]:
        events: List[OfficeEvent] = []
        for agent in workspace.agents:
            prior = previous.agent(agent.id)
            if prior is None or prior.runtime_status == agent.status:
                continue
            name = agent.display_name or agent.id
            if agent.status == "offline":
                events.append(
                    OfficeEvent(
                        id=f"event-{agent.id}-offline-{workspace.generated_at}",
                        type="agent_offline",
                        severity="warning",
                        message=f"{name} went offline",
                        created_at=workspace.generated_at,
                        agent_id=agent.id,
                    )
                )
            elif prior.runtime_status == "offline":
                events.append(
                    OfficeEvent(
                        id=f"event-{agent.id}-online-{workspace.generated_at}",
                        type="agent_online",
                        severity="info",
                        message=f"{name} came online",
                        created_at=workspace.generated_at,
                        agent_id=agent.id,
                    )
                )
        return events


def _owner_label(task: Task) -> str:
    return task.owner or "unassigned"


def _goal_label(task: Task) -> str:
    return task.goal or task.task_id


_EVENT_SUFFIXES = {
    "task_blocked": "blocked",
    "task_passed": "pass",
    "task_progress": "progress",
    "task_assigned": "assigned",
}


def _task_event(task: Task, event_type, severity, message: str, *, suffix: Optional[str] = None) -> OfficeEvent:
    suffix = suffix or _EVENT_SUFFIXES.get(event_type, event_type)
    return OfficeEvent(
        id=f"event-{task.task_id}-{suffix}-{task.updated_at}",
        type=event_type,
        severity=severity,
        message=message,
        created_at=task.updated_at,
        agent_id=task.owner or None,
        task_id=task.task_id,
    )


def _event_recency_key(event: OfficeEvent) -> float:
    millis = timestamp_ms(event.created_at)
    return -millis if millis is not None else float("inf")


def synthesize(
    workspace: WorkspaceSnapshot,
    source: SceneSource = "ingest",
    previous: Optional[SceneSnapshot] = None,
    *,
    layout: OfficeLayout = DEFAULT_LAYOUT,
    now: Optional[datetime] = None,
) -> SceneSnapshot:
    """Convenience function: synthesize with a throwaway ``SceneSynthesizer``."""

    return SceneSynthesizer(layout).synthesize(workspace, source, previous, now=now)
