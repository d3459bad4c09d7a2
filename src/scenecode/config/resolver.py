"""Configuration resolution with precedence handling.

Precedence, highest first:
Programmatic > Environment > Project file > Home file > Defaults
"""

import logging
import os
from pathlib import Path
from typing import Any

from pydantic import ValidationError

from .audit import SourceTracker
from .env_loader import EnvironmentConfigLoader
from .file_loader import ConfigFileError, FileConfigLoader
from .schema import ScenecodeSettings
from .types import ResolvedConfig

log = logging.getLogger(__name__)


class ConfigResolver:
    """Merges every configuration source into a single ResolvedConfig."""

    def __init__(self) -> None:
        self.file_loader = FileConfigLoader()
        self.env_loader = EnvironmentConfigLoader()

    def resolve(
        self,
        programmatic: dict[str, Any] | None = None,
        *,
        profile: str | None = None,
        use_env_file: str | Path | None = None,
        project_root: Path | None = None,
    ) -> ResolvedConfig:
        """Resolve configuration from all sources.

        Args:
            programmatic: Overrides supplied by code (highest precedence).
            profile: Profile name to load from files. Defaults to
                ``SCENECODE_PROFILE`` when unset.
            use_env_file: Optional ``.env`` file to load before reading the
                environment.
            project_root: Directory to search upward from for pyproject.toml.

        Raises:
            ValueError: If the merged values fail validation.
            ConfigFileError: If the project file is malformed.
        """
        tracker = SourceTracker()
        if profile is None:
            profile = os.getenv("SCENECODE_PROFILE") or None

        # Step 1: schema defaults (constructed without reading the environment)
        merged: dict[str, Any] = ScenecodeSettings.model_construct().to_dict()
        for field in merged:
            tracker.set_origin(field, "default")

        # Step 2: home file. A broken personal file should not block a run.
        try:
            tracker.apply(
                merged, self.file_loader.load_home_config(profile=profile), "file"
            )
        except ConfigFileError as e:
            log.warning("Ignoring home configuration: %s", e)

        # Step 3: project file
        try:
            project = self.file_loader.load_project_config(
                project_root=project_root, profile=profile
            )
        except ConfigFileError as e:
            if profile is None:
                raise
            log.warning("Profile %r unavailable in project file: %s", profile, e)
            project = {}
        tracker.apply(merged, project, "file")

        # Step 4: environment
        try:
            env_values = self.env_loader.load_env_config(env_file=use_env_file)
        except (ValueError, FileNotFoundError) as e:
            raise ValueError(f"Environment configuration error: {e}") from e
        tracker.apply(merged, env_values, "env")

        # Step 5: programmatic overrides
        if programmatic:
            unknown = set(programmatic) - set(merged)
            if unknown:
                log.debug("Ignoring unknown configuration keys: %s", sorted(unknown))
            tracker.apply(merged, programmatic, "programmatic")

        # Step 6: validate the merged result as a whole
        try:
            final = ScenecodeSettings(**merged).to_dict()
        except ValidationError as e:
            raise ValueError(f"Configuration validation failed: {e}") from e

        return ResolvedConfig(**final, origin=tracker.get_source_map())
