"""Export service configuration."""

import os
from dataclasses import dataclass, field
from typing import List


def _env_float(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return float(raw)
    except ValueError:
        return default


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return int(raw)
    except ValueError:
        return default


@dataclass
class ExportConfig:
    """Runtime configuration for the export boundary."""

    # Texture fetching
    fetch_timeout: float = 20.0

    # HTTP boundary
    max_body_bytes: int = 10 * 1024 * 1024
    cors_origins: List[str] = field(default_factory=lambda: ["*"])
    download_filename: str = "floorplan.glb"
    host: str = "127.0.0.1"
    port: int = 8000

    @classmethod
    def from_env(cls) -> "ExportConfig":
        """Load configuration from environment variables."""
        origins = os.getenv("PLANEXPORT_CORS_ORIGINS", "*")
        return cls(
            fetch_timeout=_env_float("PLANEXPORT_FETCH_TIMEOUT", 20.0),
            max_body_bytes=_env_int("PLANEXPORT_MAX_BODY_BYTES", 10 * 1024 * 1024),
            cors_origins=[o.strip() for o in origins.split(",") if o.strip()] or ["*"],
            download_filename=os.getenv("PLANEXPORT_DOWNLOAD_FILENAME", "floorplan.glb"),
            host=os.getenv("PLANEXPORT_HOST", "127.0.0.1"),
            port=_env_int("PLANEXPORT_PORT", 8000),
        )
