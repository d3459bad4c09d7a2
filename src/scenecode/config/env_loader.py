"""Environment variable configuration loading.

Reads ``SCENECODE_*`` variables, optionally seeding them from a ``.env`` file
first. Only variables that are actually set are returned so that lower
precedence sources are not masked by defaults.
"""

import os
from pathlib import Path
from typing import Any

from pydantic import ValidationError

from .schema import ENV_PREFIX, FIELD_ORDER, ScenecodeSettings


def env_var_name(field: str) -> str:
    return f"{ENV_PREFIX}{field.upper()}"


class EnvironmentConfigLoader:
    """Loads configuration from ``SCENECODE_*`` environment variables."""

    def load_env_config(self, env_file: str | Path | None = None) -> dict[str, Any]:
        """Return the validated values of the variables present in the environment.

        Args:
            env_file: Optional ``.env`` file whose entries are loaded into the
                environment first. Existing variables are never overridden.

        Raises:
            FileNotFoundError: If ``env_file`` does not exist.
            ValueError: If a variable holds an invalid value.
        """
        if env_file:
            self._load_env_file(env_file)

        raw = {
            field: os.environ[env_var_name(field)]
            for field in FIELD_ORDER
            if env_var_name(field) in os.environ
        }
        if not raw:
            return {}

        try:
            # Validate through the schema so "2" becomes 2 and bad values fail here
            settings = ScenecodeSettings.model_validate(raw)
        except ValidationError as e:
            shown = ", ".join(
                f"{env_var_name(field)}=<redacted>"
                if field == "api_key"
                else f"{env_var_name(field)}={value}"
                for field, value in raw.items()
            )
            raise ValueError(f"Invalid environment variable values: {shown}. {e}") from e

        return {field: getattr(settings, field) for field in raw}

    def _load_env_file(self, env_file: str | Path) -> None:
        env_path = Path(env_file)
        if not env_path.exists():
            raise FileNotFoundError(f"Environment file not found: {env_path}")

        try:
            lines = env_path.read_text(encoding="utf-8").splitlines()
        except OSError as e:
            raise ValueError(f"Failed to read environment file {env_path}: {e}") from e

        for line_num, line in enumerate(lines, 1):
            line = line.strip()
            if not line or line.startswith("#"):
                continue
            if line.startswith("export "):
                line = line[len("export ") :]
            if "=" not in line:
                raise ValueError(
                    f"Invalid format at line {line_num}: {line}. "
                    "Expected KEY=VALUE format."
                )
            key, value = (part.strip() for part in line.split("=", 1))
            if len(value) >= 2 and value[0] == value[-1] and value[0] in "\"'":
                value = value[1:-1]
            os.environ.setdefault(key, value)

    def get_env_summary(self) -> dict[str, str]:
        """Current ``SCENECODE_*`` variables with the API key redacted."""
        summary = {}
        for field in FIELD_ORDER:
            name = env_var_name(field)
            if name in os.environ:
                summary[name] = "<redacted>" if field == "api_key" else os.environ[name]
        return summary
