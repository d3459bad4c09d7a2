"""Configuration data types following the resolve-once, freeze-then-flow pattern.

``ResolvedConfig`` is what resolution produces (values plus where each came
from); ``FrozenConfig`` is the immutable form handed to sessions and pipelines.
"""

from collections.abc import Mapping
from dataclasses import dataclass
from typing import Literal, NamedTuple

from scenecode import constants

from .schema import ENV_PREFIX, FIELD_ORDER

ConfigOrigin = Literal["programmatic", "env", "file", "default"]
SourceMap = Mapping[str, ConfigOrigin]

SENSITIVE_FIELDS = frozenset({"api_key"})


def _redacted_fields(values: Mapping[str, object]) -> str:
    parts = []
    for field in FIELD_ORDER:
        value = values[field]
        if field in SENSITIVE_FIELDS:
            value = "[REDACTED]" if value else None
        parts.append(f"{field}={value!r}")
    return ", ".join(parts)


class ResolvedConfig(NamedTuple):
    """Configuration after merging every source, with per-field origins."""

    api_key: str | None
    model: str
    base_url: str
    temperature: float
    top_p: float
    max_tokens: int | None
    min_response_length: int
    stall_timeout: float
    max_retries: int
    empty_retry_delay: float
    retry_base_delay: float
    max_response_chars: int

    origin: SourceMap

    def __str__(self) -> str:
        """String representation with redacted API key for safe logging."""
        return (
            f"ResolvedConfig({_redacted_fields(self._asdict())}, "
            f"origin={dict(self.origin)!r})"
        )

    def __repr__(self) -> str:
        return self.__str__()

    def to_frozen(self) -> "FrozenConfig":
        """Drop audit metadata and return the immutable runtime form."""
        values = self._asdict()
        values.pop("origin")
        return FrozenConfig(**values)

    def with_overrides(self, **overrides: object) -> "ResolvedConfig":
        """Return a copy with programmatic overrides applied. Unknown keys are ignored."""
        new_values = self._asdict()
        new_origin = dict(self.origin)
        for field, value in overrides.items():
            if field in FIELD_ORDER:
                new_values[field] = value
                new_origin[field] = "programmatic"
        new_values["origin"] = new_origin
        return ResolvedConfig(**new_values)

    def audit(self) -> str:
        """Redacted, human-readable report of where each value came from."""
        lines = []
        for field in FIELD_ORDER:
            if field not in self.origin:
                continue
            origin = self.origin[field]
            value = getattr(self, field)
            if field in SENSITIVE_FIELDS:
                shown = f"{origin}:None" if value is None else f"{origin}:<redacted>"
            elif origin == "env":
                shown = f"env:{ENV_PREFIX}{field.upper()}={value}"
            else:
                shown = f"{origin}:{value}"
            lines.append(f"{field}: {shown}")
        return "\n".join(lines)


@dataclass(frozen=True)
class FrozenConfig:
    """Immutable configuration consumed by sessions, pipelines and adapters."""

    api_key: str | None = None
    model: str = constants.DEFAULT_MODEL
    base_url: str = constants.DEFAULT_BASE_URL
    temperature: float = constants.DEFAULT_TEMPERATURE
    top_p: float = constants.DEFAULT_TOP_P
    max_tokens: int | None = None
    min_response_length: int = constants.MIN_RESPONSE_LENGTH
    stall_timeout: float = constants.STALL_TIMEOUT_SECONDS
    max_retries: int = constants.MAX_RETRIES
    empty_retry_delay: float = constants.EMPTY_RETRY_DELAY
    retry_base_delay: float = constants.RETRY_BASE_DELAY
    max_response_chars: int = constants.MAX_RESPONSE_CHARS

    def __str__(self) -> str:
        values = {field: getattr(self, field) for field in FIELD_ORDER}
        return f"FrozenConfig({_redacted_fields(values)})"

    def __repr__(self) -> str:
        return self.__str__()
