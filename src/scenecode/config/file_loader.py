"""File-based configuration loading with profile support.

Two TOML locations are read: the project's ``pyproject.toml`` under
``[tool.scenecode]`` and a per-user file at ``~/.config/scenecode.toml``
(overridable with ``SCENECODE_CONFIG_HOME``). Both may define named profiles
under a ``profiles`` table.
"""

import os
from pathlib import Path
import tomllib
from typing import Any


class ConfigFileError(Exception):
    """Raised when a configuration file exists but cannot be used."""

    def __init__(
        self, file_path: Path, message: str, cause: Exception | None = None
    ) -> None:
        self.file_path = file_path
        self.message = message
        self.cause = cause
        super().__init__(f"Config file error in {file_path}: {message}")


class FileConfigLoader:
    """Loads configuration sections from TOML files."""

    TOOL_SECTION = "scenecode"

    def load_project_config(
        self, project_root: Path | None = None, profile: str | None = None
    ) -> dict[str, Any]:
        """Load ``[tool.scenecode]`` (or one of its profiles) from pyproject.toml.

        Args:
            project_root: Directory to start the upward search from. Defaults
                to the current working directory.
            profile: Profile name under ``[tool.scenecode.profiles]``.

        Returns:
            The section's values, or an empty dict when there is no file or
            no section.

        Raises:
            ConfigFileError: If the file cannot be parsed or the profile is missing.
        """
        pyproject_path = self._find_pyproject_toml(project_root)
        if pyproject_path is None:
            return {}
        data = self._read_toml(pyproject_path)
        section = data.get("tool", {}).get(self.TOOL_SECTION, {})
        if not section:
            return {}
        return self._select(section, profile, pyproject_path)

    def load_home_config(self, profile: str | None = None) -> dict[str, Any]:
        """Load the per-user configuration file.

        Raises:
            ConfigFileError: If the file cannot be parsed or the profile is missing.
        """
        path = self.home_config_path()
        if not path.exists():
            return {}
        return self._select(self._read_toml(path), profile, path)

    def home_config_path(self) -> Path:
        override = os.getenv("SCENECODE_CONFIG_HOME")
        if override:
            return Path(override).expanduser()
        return Path.home() / ".config" / "scenecode.toml"

    def _select(
        self, section: dict[str, Any], profile: str | None, path: Path
    ) -> dict[str, Any]:
        if profile:
            profiles = section.get("profiles", {})
            if profile not in profiles:
                raise ConfigFileError(
                    path,
                    f"Profile '{profile}' not found. "
                    f"Available profiles: {sorted(profiles)}",
                )
            return dict(profiles[profile])
        config = dict(section)
        config.pop("profiles", None)
        return config

    def _read_toml(self, path: Path) -> dict[str, Any]:
        try:
            with path.open(mode="rb") as f:
                return tomllib.load(f)
        except (OSError, tomllib.TOMLDecodeError) as e:
            raise ConfigFileError(path, f"Failed to parse TOML: {e}", cause=e) from e

    def _find_pyproject_toml(self, start_dir: Path | None = None) -> Path | None:
        current = Path(start_dir or Path.cwd()).resolve()
        for candidate in (current, *current.parents):
            pyproject_path = candidate / "pyproject.toml"
            if pyproject_path.exists():
                return pyproject_path
        return None
