"""Configuration schema and validation using Pydantic.

Defines every tunable of the response pipeline and the provider connection,
with type coercion and bounds checking for values arriving from environment
variables, TOML files or code.
"""

from typing import Any

from pydantic import Field, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from scenecode import constants

# Field order used by audits, summaries and the CLI
FIELD_ORDER: tuple[str, ...] = (
    "api_key",
    "model",
    "base_url",
    "temperature",
    "top_p",
    "max_tokens",
    "min_response_length",
    "stall_timeout",
    "max_retries",
    "empty_retry_delay",
    "retry_base_delay",
    "max_response_chars",
)

ENV_PREFIX = "SCENECODE_"


class ScenecodeSettings(BaseSettings):
    """Pydantic settings schema for scenecode configuration.

    Environment variables use the ``SCENECODE_`` prefix, e.g.
    ``SCENECODE_MAX_RETRIES=2``.
    """

    model_config = SettingsConfigDict(
        env_prefix=ENV_PREFIX,
        env_file=None,  # Only used when explicitly requested
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # --- Provider ---

    api_key: str | None = Field(
        default=None,
        description="API key for the OpenAI-compatible chat completions endpoint",
    )

    model: str = Field(
        default=constants.DEFAULT_MODEL,
        description="Model identifier sent to the provider",
        min_length=1,
    )

    base_url: str = Field(
        default=constants.DEFAULT_BASE_URL,
        description="Base URL of the chat completions API",
        min_length=1,
    )

    temperature: float = Field(
        default=constants.DEFAULT_TEMPERATURE,
        ge=0.0,
        le=2.0,
    )

    top_p: float = Field(default=constants.DEFAULT_TOP_P, gt=0.0, le=1.0)

    max_tokens: int | None = Field(default=None, ge=1)

    # --- Response processing ---

    min_response_length: int = Field(
        default=constants.MIN_RESPONSE_LENGTH,
        description="Responses shorter than this are flagged TOO_SHORT",
        ge=0,
    )

    stall_timeout: float = Field(
        default=constants.STALL_TIMEOUT_SECONDS,
        description="Seconds to wait for the next stream fragment",
        gt=0.0,
    )

    max_retries: int = Field(
        default=constants.MAX_RETRIES,
        description="Additional provider calls allowed per turn",
        ge=0,
        le=10,
    )

    empty_retry_delay: float = Field(default=constants.EMPTY_RETRY_DELAY, ge=0.0)

    retry_base_delay: float = Field(default=constants.RETRY_BASE_DELAY, ge=0.0)

    max_response_chars: int = Field(
        default=constants.MAX_RESPONSE_CHARS,
        description="Accumulation stops once a response reaches this size",
        ge=1,
    )

    # --- Validation Rules ---

    @field_validator("api_key", mode="before")
    @classmethod
    def blank_key_is_none(cls, v: Any) -> Any:
        """Treat an empty or whitespace-only key as not configured."""
        if isinstance(v, str) and not v.strip():
            return None
        return v

    @field_validator("base_url")
    @classmethod
    def normalize_base_url(cls, v: str) -> str:
        """Require an http(s) URL and drop any trailing slash."""
        if not v.startswith(("http://", "https://")):
            raise ValueError(f"base_url must start with http:// or https://: {v!r}")
        return v.rstrip("/")

    @model_validator(mode="after")
    def check_response_cap(self) -> "ScenecodeSettings":
        """The size cap must leave room for a response that passes validation."""
        if self.max_response_chars < self.min_response_length:
            raise ValueError(
                "max_response_chars must be >= min_response_length "
                f"({self.max_response_chars} < {self.min_response_length})"
            )
        return self

    def to_dict(self) -> dict[str, Any]:
        """Plain dictionary of resolved values in ``FIELD_ORDER``."""
        return {field: getattr(self, field) for field in FIELD_ORDER}
