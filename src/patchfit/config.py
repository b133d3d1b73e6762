"""YAML configuration validated with pydantic models."""

from __future__ import annotations

from pathlib import Path
from typing import Any, Dict, List

import yaml
from pydantic import BaseModel, ConfigDict, Field, ValidationError

from .errors import ConfigError
from .session import DEFAULT_FUZZ
from .workspace import DEFAULT_EXCLUDE, DEFAULT_MAX_CANDIDATES

DEFAULT_CONFIG_NAME = "patchfit.yaml"


class ConfigModel(BaseModel):
    """Base model rejecting unknown keys."""

    model_config = ConfigDict(extra="forbid")


class ApplySettings(ConfigModel):
    """How hunks are matched and how existing files are treated."""

    fuzz: int = Field(default=DEFAULT_FUZZ, ge=0)
    strict_counts: bool = False
    overwrite_existing: bool = False


class WorkspaceSettings(ConfigModel):
    """Where targets are looked up on disk."""

    root: str = "."
    max_candidates: int = Field(default=DEFAULT_MAX_CANDIDATES, ge=1)
    exclude: List[str] = Field(default_factory=lambda: list(DEFAULT_EXCLUDE))
    preserve_line_endings: bool = True


class LoggingSettings(ConfigModel):
    level: str = "WARNING"


class PatchConfig(ConfigModel):
    """Top-level configuration document."""

    apply: ApplySettings = Field(default_factory=ApplySettings)
    workspace: WorkspaceSettings = Field(default_factory=WorkspaceSettings)
    logging: LoggingSettings = Field(default_factory=LoggingSettings)

    def resolve_root(self, config_path: Path | None = None) -> Path:
        """Resolve ``workspace.root`` relative to the config file's directory."""
        root = Path(self.workspace.root)
        if not root.is_absolute() and config_path is not None:
            root = config_path.parent / root
        return root.resolve()


def load_config(config_path: Path | None, *, required: bool = False) -> PatchConfig:
    """Load configuration from YAML, falling back to defaults when absent."""
    if config_path is None or not config_path.exists():
        if required:
            raise ConfigError(f"Config file not found: {config_path}")
        return PatchConfig()

    try:
        with config_path.open("r", encoding="utf-8") as handle:
            data = yaml.safe_load(handle) or {}
    except yaml.YAMLError as error:
        raise ConfigError(f"Failed to parse config {config_path}: {error}") from error

    if not isinstance(data, dict):
        raise ConfigError("Configuration must be a mapping at the top level.")

    try:
        return PatchConfig.model_validate(data)
    except ValidationError as error:
        raise ConfigError(
            f"Invalid configuration in {config_path}: {error}",
            details={"errors": error.errors()},
        ) from error


def default_config_data() -> Dict[str, Any]:
    return PatchConfig().model_dump()


def write_config(config_path: Path, config_data: Dict[str, Any] | None = None) -> None:
    """Persist configuration data to disk with stable formatting."""
    config_path.parent.mkdir(parents=True, exist_ok=True)
    with config_path.open("w", encoding="utf-8") as handle:
        yaml.safe_dump(config_data or default_config_data(), handle, sort_keys=False)


__all__ = [
    "ApplySettings",
    "DEFAULT_CONFIG_NAME",
    "LoggingSettings",
    "PatchConfig",
    "WorkspaceSettings",
    "default_config_data",
    "load_config",
    "write_config",
]
