"""
Pipeline configuration.

All filesystem locations are injected here instead of being derived from the
process environment at call time, so tests can redirect them with a plain
constructor argument.
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path

DEFAULT_REGISTRY_LOCATION = Path.home() / ".modelbridge" / "registry"

# SVG paths stored in the registry are relative to the UI build root.
DEFAULT_ASSET_ROOT = Path("../../")

DEFAULT_DOWNLOAD_TIMEOUT_S = 60.0
DEFAULT_MAX_DOWNLOAD_BYTES = 256 * 1024 * 1024


@dataclass
class PipelineConfig:
    """Configuration for adapters, registration and export."""

    # Durable copy of CSV-generated packages
    registry_location: Path = field(default_factory=lambda: DEFAULT_REGISTRY_LOCATION)

    # Root that SVG references are resolved against
    asset_root: Path = field(default_factory=lambda: DEFAULT_ASSET_ROOT)

    # Parent directory for temp files/dirs (None = system temp dir)
    temp_root: Path | None = None

    download_timeout_s: float = DEFAULT_DOWNLOAD_TIMEOUT_S
    max_download_bytes: int = DEFAULT_MAX_DOWNLOAD_BYTES

    # Upper bound on Dirs registered at the same time
    max_concurrent_registrations: int = 8

    def __post_init__(self) -> None:
        self.registry_location = Path(self.registry_location)
        self.asset_root = Path(self.asset_root)
        if self.temp_root is not None:
            self.temp_root = Path(self.temp_root)
        if self.download_timeout_s <= 0:
            raise ValueError(f"download_timeout_s must be > 0, got {self.download_timeout_s}")
        if self.max_download_bytes < 1:
            raise ValueError(f"max_download_bytes must be >= 1, got {self.max_download_bytes}")
        if self.max_concurrent_registrations < 1:
            raise ValueError(
                "max_concurrent_registrations must be >= 1, "
                f"got {self.max_concurrent_registrations}"
            )

    @classmethod
    def from_env(cls, **overrides: object) -> PipelineConfig:
        """Build a config from MODELBRIDGE_* environment variables.

        Explicit keyword overrides win over the environment.
        """
        values: dict[str, object] = {}
        if location := os.environ.get("MODELBRIDGE_REGISTRY_LOCATION"):
            values["registry_location"] = Path(location)
        if asset_root := os.environ.get("MODELBRIDGE_ASSET_ROOT"):
            values["asset_root"] = Path(asset_root)
        if temp_root := os.environ.get("MODELBRIDGE_TEMP_ROOT"):
            values["temp_root"] = Path(temp_root)
        if timeout := os.environ.get("MODELBRIDGE_DOWNLOAD_TIMEOUT_S"):
            values["download_timeout_s"] = float(timeout)
        values.update(overrides)
        return cls(**values)  # type: ignore[arg-type]
