"""
Agent Office Configuration

Loads configuration from environment variables with sensible defaults.
Only the ingestion boundary and the orchestrator read these values; the
scene synthesizer and simulation engine take everything as arguments.
"""

import os
from pathlib import Path
from typing import Any, Dict, Optional

from dotenv import load_dotenv

# Load .env file if it exists
load_dotenv()


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return int(raw)
    except ValueError:
        return default


def _env_flag(name: str) -> bool:
    return os.getenv(name, "").strip().lower() in {"1", "true", "yes", "on"}


class Config:
    """Application configuration loaded from environment variables."""

    # OpenClaw install that produces the workspace snapshot
    OPENCLAW_DIR: str = os.getenv("AGENT_OFFICE_OPENCLAW_DIR", "~/.openclaw")
    WORKSPACE_DIR: str = os.getenv("AGENT_OFFICE_WORKSPACE_DIR", "~/clawd")

    # Scene synthesis
    STALE_AFTER_MS: int = _env_int("AGENT_OFFICE_STALE_AFTER_MS", 45_000)
    TIME_BUCKET_MS: int = _env_int("AGENT_OFFICE_TIME_BUCKET_MS", 300_000)
    MAX_ALERTS: int = _env_int("AGENT_OFFICE_MAX_ALERTS", 8)
    MAX_EVENTS: int = _env_int("AGENT_OFFICE_MAX_EVENTS", 40)

    # Optional floor plan override (JSON file); unset means DEFAULT_LAYOUT
    LAYOUT_PATH: Optional[str] = os.getenv("AGENT_OFFICE_LAYOUT_PATH")

    # Debugging
    DEBUG_SCENE: bool = _env_flag("AGENT_OFFICE_DEBUG_SCENE")

    # Project Paths
    PROJECT_ROOT: Path = Path(__file__).parent.parent

    @classmethod
    def validate(cls) -> None:
        """Validate configuration and raise errors for unusable values."""
        for name in ("STALE_AFTER_MS", "TIME_BUCKET_MS", "MAX_ALERTS", "MAX_EVENTS"):
            value = getattr(cls, name)
            if value <= 0:
                raise ValueError(
                    f"AGENT_OFFICE_{name} must be a positive integer (got {value})"
                )

        if cls.LAYOUT_PATH and not Path(cls.LAYOUT_PATH).expanduser().exists():
            raise ValueError(
                f"AGENT_OFFICE_LAYOUT_PATH points to a missing file: {cls.LAYOUT_PATH}"
            )

    @classmethod
    def synthesizer_options(cls) -> Dict[str, Any]:
        """Keyword arguments for ``SceneSynthesizer`` built from this config."""
        return {
            "stale_after_ms": cls.STALE_AFTER_MS,
            "time_bucket_ms": cls.TIME_BUCKET_MS,
            "max_alerts": cls.MAX_ALERTS,
            "max_events": cls.MAX_EVENTS,
        }

    @classmethod
    def display(cls) -> str:
        """Return a formatted string showing current configuration."""
        lines = [
            "Agent Office Configuration:",
            f"  OpenClaw dir: {cls.OPENCLAW_DIR}",
            f"  Workspace dir: {cls.WORKSPACE_DIR}",
            f"  Stale after: {cls.STALE_AFTER_MS}ms",
            f"  Time bucket: {cls.TIME_BUCKET_MS}ms",
            f"  Alerts/events cap: {cls.MAX_ALERTS}/{cls.MAX_EVENTS}",
            f"  Layout: {cls.LAYOUT_PATH or 'default'}",
        ]
        return "\n".join(lines)
