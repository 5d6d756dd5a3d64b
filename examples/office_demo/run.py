"""
Office Demo: Scene Synthesis + Movement
=======================================

WHAT THIS SHOWS:
- Loading a workspace snapshot (saved JSON, or a live OpenClaw install)
- Synthesizing the office scene (zones, target tiles, alerts, events)
- Re-ingesting a changed snapshot: agents keep their positions and walk
- ASCII floor plan of the final positions

RUN:
    python -m examples.office_demo.run
    python -m examples.office_demo.run --live          # read ~/.openclaw + ~/clawd
    python -m examples.office_demo.run --seconds 6 --fps 20
"""

import argparse
from pathlib import Path

from agent_office import (
    Config,
    OfficeOrchestrator,
    SceneSynthesizer,
    WorkspaceLoader,
    load_layout,
    load_workspace_file,
)
from agent_office.environment import DEFAULT_LAYOUT
from agent_office.logging_utils import log_info, log_success

WORKSPACE_PATH = Path(__file__).parent / "workspace.json"


def parse_args():
    parser = argparse.ArgumentParser(description="Agent Office demo")
    parser.add_argument("--live", action="store_true", help="Read the local OpenClaw install instead of the sample")
    parser.add_argument("--seconds", type=float, default=4.0, help="Simulated seconds after the second ingest")
    parser.add_argument("--fps", type=int, default=10, help="Simulation steps per simulated second")
    return parser.parse_args()


def main():
    args = parse_args()
    Config.validate()
    print(Config.display())
    print()

    layout = load_layout(Config.LAYOUT_PATH) if Config.LAYOUT_PATH else DEFAULT_LAYOUT
    orchestrator = OfficeOrchestrator(SceneSynthesizer(layout, **Config.synthesizer_options()))

    if args.live:
        workspace = WorkspaceLoader(verbose=True).load()
        source = "local"
    else:
        workspace = load_workspace_file(WORKSPACE_PATH)
        source = "ingest"

    scene = orchestrator.ingest(workspace, source)
    for alert in scene.alerts:
        log_info(f"{alert.severity.upper()}: {alert.message}")

    # Second snapshot: the blocked task is unblocked and the planner finishes
    tasks = []
    for task in workspace.tasks:
        if task.status == "blocked":
            task = task.model_copy(update={"status": "in_progress"})
        elif task.owner == "planner-1":
            task = task.model_copy(update={"status": "done"})
        tasks.append(task)
    scene = orchestrator.ingest(workspace.model_copy(update={"tasks": tasks}), source)
    for event in scene.events:
        log_info(f"{event.type}: {event.message}")

    fps = max(1, args.fps)
    for _ in range(int(args.seconds * fps)):
        orchestrator.tick(1000 / fps)

    print()
    print(orchestrator.floor_ascii())
    print()
    for agent in orchestrator.rendered_agents():
        motion = "walking" if agent.is_moving else "standing"
        print(
            f"  {agent.identity.callsign:<8} {agent.display_name:<10} {agent.activity_state:<9} "
            f"{motion:<8} tile=({agent.tile.x},{agent.tile.y}) -> {agent.target_zone_id}"
        )
    log_success("Demo complete")


if __name__ == "__main__":
    main()
