"""Configuration for the scenecode pipeline.

Resolve once, freeze, then pass the ``FrozenConfig`` along:

    >>> from scenecode.config import resolve_config
    >>> config = resolve_config({"max_retries": 2}).to_frozen()
"""

from pathlib import Path
from typing import Any

from .audit import SourceTracker, summarize_origins
from .env_loader import EnvironmentConfigLoader
from .file_loader import ConfigFileError, FileConfigLoader
from .resolver import ConfigResolver
from .schema import ScenecodeSettings
from .types import ConfigOrigin, FrozenConfig, ResolvedConfig, SourceMap


def resolve_config(
    programmatic: dict[str, Any] | None = None,
    *,
    profile: str | None = None,
    use_env_file: str | Path | None = None,
    project_root: Path | None = None,
) -> ResolvedConfig:
    """Resolve configuration from every source with standard precedence."""
    return ConfigResolver().resolve(
        programmatic,
        profile=profile,
        use_env_file=use_env_file,
        project_root=project_root,
    )


def load_config(**overrides: Any) -> FrozenConfig:
    """Shortcut for ``resolve_config(overrides).to_frozen()``."""
    return resolve_config(overrides or None).to_frozen()


__all__ = [
    "ConfigFileError",
    "ConfigOrigin",
    "ConfigResolver",
    "EnvironmentConfigLoader",
    "FileConfigLoader",
    "FrozenConfig",
    "ResolvedConfig",
    "ScenecodeSettings",
    "SourceMap",
    "SourceTracker",
    "load_config",
    "resolve_config",
    "summarize_origins",
]
