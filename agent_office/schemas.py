"""
Pydantic schemas for the Agent Office scene pipeline.

All records that cross a boundary (workspace input, scene output, rendered
agents) are defined here.

Design Philosophy:
- Workspace snapshots are immutable inputs, regenerated wholesale per refresh
- Scenes are derived and transient; they can always be recomputed from a
  workspace plus the previous scene (for position continuity only)
- Status strings stay free text; matching happens in ``agent_office.activity``
- Every field round-trips through ``model_dump_json``/``model_validate_json``
"""

from typing import Any, Dict, List, Literal, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field

from agent_office.environment.layout import Zone


# ============================================================================
# Enumerations
# ============================================================================

AgentRole = Literal["orchestrator", "planner", "frontend", "backend", "reviewer", "worker"]
RuntimeStatus = Literal["online", "idle", "offline"]
ActivityState = Literal["offline", "idle", "active", "blocked", "reviewing"]
Direction = Literal["up", "down", "left", "right"]
AlertSeverity = Literal["info", "warning", "critical"]
SyncStatus = Literal["live", "stale", "offline"]
SceneSource = Literal["ingest", "local"]
Accessory = Literal["visor", "headset", "antenna", "badge"]
Gait = Literal["steady", "quick", "drift"]
Trait = Literal["calm", "focused", "bold", "precise"]
EventType = Literal[
    "snapshot_ingested",
    "task_blocked",
    "task_passed",
    "task_assigned",
    "task_progress",
    "review_loop_spike",
    "agent_online",
    "agent_offline",
    "system",
]

AGENT_ROLES: Tuple[str, ...] = ("orchestrator", "planner", "frontend", "backend", "reviewer", "worker")


class TilePoint(BaseModel):
    """A single floor tile coordinate. Frozen so it can key sets and dicts."""

    model_config = ConfigDict(frozen=True)

    x: int
    y: int

    def as_tuple(self) -> Tuple[int, int]:
        return (self.x, self.y)

    @classmethod
    def from_tuple(cls, value: Tuple[int, int]) -> "TilePoint":
        return cls(x=int(value[0]), y=int(value[1]))


# ============================================================================
# Workspace (input) Schemas
# ============================================================================


class VisualIdentity(BaseModel):
    """Seed-derived look of an agent.

    Generated once per agent id by ``agent_office.identity.generate_identity``
    and never mutated afterwards. ``gait`` is the one functional field: the
    simulation engine derives walking speed from it.
    """

    seed: str = Field(..., description="Seed string the profile was derived from")
    callsign: str = Field(..., description="Name root + seed hash, e.g. PLA-417")
    palette_key: str = Field(..., description="Key of the role palette entry")
    base_color: str
    accent_color: str
    accessory_color: str
    accessory: Accessory
    gait: Gait
    trait: Trait


class Agent(BaseModel):
    """An agent as reported by the workflow engine.

    ``status`` is the runtime status derived upstream from recency of activity.
    The remaining descriptive fields mirror what the aggregator collects from
    the OpenClaw install and are echoed untouched.
    """

    id: str = Field(..., description="Stable agent identifier")
    display_name: str = Field("", description="Human-friendly name")
    role: AgentRole = "worker"
    status: RuntimeStatus = "offline"
    character_name: str = ""
    emoji: str = ""
    # Seed for the visual identity; empty falls back to the agent id
    avatar_seed: str = ""
    model: str = "unknown"
    is_default: bool = False
    has_binding: bool = False
    last_updated_at: Optional[str] = None
    last_summary: Optional[str] = None
    last_session_id: Optional[str] = None
    total_input_tokens: float = 0
    total_output_tokens: float = 0
    total_tokens: float = 0
    # Optional pre-generated profile; the scene synthesizer fills it in when absent
    identity: Optional[VisualIdentity] = None


class Task(BaseModel):
    """A queue task. ``status`` is free text and pattern-matched, never enumerated."""

    task_id: str
    goal: str = ""
    priority: str = ""
    status: str = ""
    owner: str = ""
    depends_on: List[str] = Field(default_factory=list)
    attempts: int = 0
    review_loops: int = 0
    created_at: str = ""
    updated_at: str = ""
    notes: List[str] = Field(default_factory=list)


class StatusCount(BaseModel):
    status: str
    count: int


class FailureCause(BaseModel):
    cause: str
    count: int


class Metrics(BaseModel):
    """Aggregate telemetry across finished tasks."""

    total_tasks: int = 0
    pass_rate: float = 0
    status_counts: List[StatusCount] = Field(default_factory=list)
    avg_lead_time_ms: float = 0
    avg_attempts: float = 0
    avg_review_loops: float = 0
    total_cost_usd: float = 0
    avg_cost_usd: float = 0
    top_failure_causes: List[FailureCause] = Field(default_factory=list)


class WorkspaceSources(BaseModel):
    """Which upstream inputs were available when the snapshot was taken."""

    openclaw_config: bool = False
    queue_state: bool = False
    telemetry: bool = False


class WorkspaceSnapshot(BaseModel):
    """Point-in-time input to the scene synthesizer."""

    generated_at: str = Field(..., description="ISO-8601 timestamp of the snapshot")
    sources: WorkspaceSources = Field(default_factory=WorkspaceSources)
    agents: List[Agent] = Field(default_factory=list)
    tasks: List[Task] = Field(default_factory=list)
    metrics: Metrics = Field(default_factory=Metrics)


# ============================================================================
# Scene (output) Schemas
# ============================================================================


class AgentSceneState(BaseModel):
    """Where an agent stands and where it is heading in one scene."""

    agent_id: str
    display_name: str
    role: AgentRole
    runtime_status: RuntimeStatus
    activity_state: ActivityState
    direction: Direction = "down"
    # Tile currently rendered (carried from the previous scene when possible)
    tile: TilePoint
    # Always inside the interior (not the border) of target_zone_id
    target_tile: TilePoint
    target_zone_id: str
    current_task_id: Optional[str] = None
    last_event_at: Optional[str] = None
    is_moving: bool = False
    identity: VisualIdentity


class OfficeAlert(BaseModel):
    id: str
    severity: AlertSeverity
    message: str
    created_at: str
    agent_id: Optional[str] = None
    task_id: Optional[str] = None


class OfficeEvent(BaseModel):
    """Timeline entry. ``metadata`` carries transition details (previous/next status)."""

    id: str
    type: EventType
    severity: AlertSeverity = "info"
    message: str
    created_at: str
    agent_id: Optional[str] = None
    task_id: Optional[str] = None
    metadata: Dict[str, Any] = Field(default_factory=dict)


class ZoneOccupancy(BaseModel):
    zone_id: str
    count: int = Field(..., ge=0)
    capacity: int = Field(..., ge=0)


class SceneSnapshot(BaseModel):
    """Derived, renderable snapshot of the office at one point in time.

    Never the sole source of truth: ``SceneSynthesizer.synthesize`` rebuilds it
    from a ``WorkspaceSnapshot`` and uses the previous scene only to keep
    rendered positions continuous.
    """

    generated_at: str
    source: SceneSource = "ingest"
    sync_status: SyncStatus = "live"
    last_ingested_at: Optional[str] = None
    stale_after_ms: int = Field(45_000, gt=0)
    width: int
    height: int
    zones: List[Zone] = Field(default_factory=list)
    agents: List[AgentSceneState] = Field(default_factory=list)
    occupancy: List[ZoneOccupancy] = Field(default_factory=list)
    alerts: List[OfficeAlert] = Field(default_factory=list)
    events: List[OfficeEvent] = Field(default_factory=list)
    tasks: List[Task] = Field(default_factory=list)
    metrics: Metrics = Field(default_factory=Metrics)

    def agent(self, agent_id: str) -> Optional[AgentSceneState]:
        for state in self.agents:
            if state.agent_id == agent_id:
                return state
        return None

    def occupancy_for(self, zone_id: str) -> Optional[ZoneOccupancy]:
        for entry in self.occupancy:
            if entry.zone_id == zone_id:
                return entry
        return None


class RenderedAgent(BaseModel):
    """One agent as handed to the display layer after a simulation step."""

    agent_id: str
    display_name: str
    role: AgentRole
    activity_state: ActivityState
    direction: Direction
    tile: TilePoint
    target_tile: TilePoint
    target_zone_id: str
    # Sub-tile floating position for smooth interpolation
    position: Tuple[float, float]
    frame: int = Field(..., ge=0, le=3)
    is_moving: bool
    current_task_id: Optional[str] = None
    identity: VisualIdentity
