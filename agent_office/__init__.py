"""
Agent Office - deterministic pixel-office view of a multi-agent workflow.

Turns workspace snapshots (agents, tasks, telemetry) into a renderable office
scene and animates agents walking between zones on a tile grid.

Pure core: identity, grid, activity, scene and simulation never read config
or touch the filesystem. Ingestion and the orchestrator sit at the edges.
"""

__version__ = "0.1.0"

# Main driver
from .orchestrator import OfficeOrchestrator

# Scene pipeline
from .scene import SceneSynthesizer, classify_sync_status, refresh_sync_status, synthesize
from .simulation import SimulationEngine, SimulationState, SimulatedAgent
from .activity import derive_activity_state, pick_primary_task
from .identity import (
    IdentityCache,
    PixelMatrix,
    RandomStream,
    generate_identity,
    generate_sprite,
    hash_seed,
)
from .environment import (
    DEFAULT_LAYOUT,
    OfficeGrid,
    OfficeLayout,
    Rect,
    Zone,
    find_path,
    load_layout,
    render_ascii_floor,
)

# Ingestion
from .workspace import WorkspaceLoader, load_workspace, load_workspace_file

# Core schemas
from .schemas import (
    Agent,
    AgentSceneState,
    Metrics,
    OfficeAlert,
    OfficeEvent,
    RenderedAgent,
    SceneSnapshot,
    Task,
    TilePoint,
    VisualIdentity,
    WorkspaceSnapshot,
    WorkspaceSources,
    ZoneOccupancy,
)

# Configuration
from .config import Config

__all__ = [
    # Main
    "OfficeOrchestrator",
    # Scene pipeline
    "SceneSynthesizer",
    "classify_sync_status",
    "refresh_sync_status",
    "synthesize",
    "SimulationEngine",
    "SimulationState",
    "SimulatedAgent",
    "derive_activity_state",
    "pick_primary_task",
    "IdentityCache",
    "PixelMatrix",
    "RandomStream",
    "generate_identity",
    "generate_sprite",
    "hash_seed",
    # Environment
    "DEFAULT_LAYOUT",
    "OfficeGrid",
    "OfficeLayout",
    "Rect",
    "Zone",
    "find_path",
    "load_layout",
    "render_ascii_floor",
    # Ingestion
    "WorkspaceLoader",
    "load_workspace",
    "load_workspace_file",
    # Schemas
    "Agent",
    "AgentSceneState",
    "Metrics",
    "OfficeAlert",
    "OfficeEvent",
    "RenderedAgent",
    "SceneSnapshot",
    "Task",
    "TilePoint",
    "VisualIdentity",
    "WorkspaceSnapshot",
    "WorkspaceSources",
    "ZoneOccupancy",
    # Config
    "Config",
]
