"""Core data types that flow through the response pipeline.

All values here are immutable and turn-scoped: the accumulator, validator,
extractor and sanitizer each produce a fresh value rather than mutating a
shared one, so nothing leaks from one conversational turn into the next.
"""

from __future__ import annotations

import dataclasses
import enum
import typing

from scenecode.constants import MAX_RETRIES

if typing.TYPE_CHECKING:
    from scenecode.core.exceptions import ExtractionFailure

# --- Minimal guard helpers ---


def _require(
    *,
    condition: bool,
    message: str,
    exc: type[Exception] = ValueError,
    field_name: str | None = None,
) -> None:
    """Centralized validation with optional field context for clearer errors."""
    if not condition:
        if field_name:
            raise exc(f"{field_name}: {message}")
        raise exc(message)


# --- Result Monad ---
# Pipeline runs terminate in exactly one of these values. Failures are data,
# not exceptions, so hosts can branch on them without broad try/except.

TSuccess = typing.TypeVar("TSuccess")
TFailure = typing.TypeVar("TFailure", bound=Exception)


@dataclasses.dataclass(frozen=True, slots=True)
class Success[TSuccess]:
    """A successful result in the pipeline."""

    value: TSuccess


@dataclasses.dataclass(frozen=True, slots=True)
class Failure[TFailure]:
    """A failure in the pipeline, containing the error."""

    error: TFailure


Result = Success[TSuccess] | Failure[TFailure]

# --- Enumerations ---


class IssueTag(enum.Enum):
    """Independent defects a validator can detect in a response."""

    EMPTY = "empty"
    TOO_SHORT = "too_short"
    MISSING_DOMAIN_MARKERS = "missing_domain_markers"
    UNCLOSED_TAG_BLOCK = "unclosed_tag_block"
    UNBALANCED_FENCE = "unbalanced_fence"
    TRUNCATION_MARKER = "truncation_marker"
    ABRUPT_ENDING = "abrupt_ending"


class StrategyId(enum.Enum):
    """Identifiers of the extraction strategies, in priority order."""

    STRICT_TAGGED_FENCED = "strict_tagged_fenced"
    STRICT_TAGGED_UNCLOSED = "strict_tagged_unclosed"
    GENERIC_FENCED = "generic_fenced"
    ULTRA_PERMISSIVE = "ultra_permissive"


class Confidence(enum.Enum):
    """How much the extractor trusts a payload."""

    STRICT = "strict"
    LENIENT = "lenient"
    ULTRA_PERMISSIVE = "ultra_permissive"


class PipelineState(enum.Enum):
    """States of a single conversational turn."""

    IDLE = "idle"
    REQUESTING = "requesting"
    ACCUMULATING = "accumulating"
    VALIDATING = "validating"
    RETRYING = "retrying"
    EXTRACTING_CODE = "extracting_code"
    SANITIZING = "sanitizing"
    READY = "ready"
    FAILED = "failed"

    @property
    def is_terminal(self) -> bool:
        return self in (PipelineState.READY, PipelineState.FAILED)


# --- Provider-facing values ---


@dataclasses.dataclass(frozen=True, slots=True)
class StreamChunk:
    """A streamed fragment, optionally carrying an explicit end-of-stream signal."""

    text: str
    finish_reason: str | None = None


@dataclasses.dataclass(frozen=True, slots=True)
class SamplingParams:
    """Sampling knobs forwarded unchanged to the provider."""

    temperature: float = 0.7
    top_p: float = 0.9
    max_tokens: int | None = None

    def __post_init__(self) -> None:
        _require(
            condition=0.0 <= self.temperature <= 2.0,
            message="must be between 0.0 and 2.0",
            field_name="temperature",
        )
        _require(
            condition=0.0 < self.top_p <= 1.0,
            message="must be in (0.0, 1.0]",
            field_name="top_p",
        )
        _require(
            condition=self.max_tokens is None or self.max_tokens > 0,
            message="must be positive when set",
            field_name="max_tokens",
        )


@dataclasses.dataclass(frozen=True, slots=True)
class TurnRequest:
    """Everything the pipeline needs to run one conversational turn."""

    system_prompt: str
    user_message: str
    model_id: str
    sampling: SamplingParams = dataclasses.field(default_factory=SamplingParams)

    def __post_init__(self) -> None:
        _require(
            condition=isinstance(self.user_message, str),
            message="must be a str",
            exc=TypeError,
            field_name="user_message",
        )
        _require(
            condition=bool(self.model_id),
            message="must be a non-empty string",
            field_name="model_id",
        )


@dataclasses.dataclass(frozen=True, slots=True)
class AccumulatedResponse:
    """Full text of one streamed response plus stream-level facts."""

    text: str
    finished: bool = False
    finish_reason: str | None = None
    fragment_count: int = 0
    truncated: bool = False
    elapsed: float = 0.0


# --- Validation / extraction / sanitization values ---


@dataclasses.dataclass(frozen=True, slots=True)
class ValidationVerdict:
    """Outcome of validating a response.

    ``should_retry`` is always ``not is_complete``; the retry policy decides
    whether the issues are severe enough to act on.
    """

    is_complete: bool
    should_retry: bool
    issues: tuple[IssueTag, ...] = ()

    @classmethod
    def from_issues(cls, issues: typing.Iterable[IssueTag]) -> ValidationVerdict:
        found = tuple(issues)
        return cls(is_complete=not found, should_retry=bool(found), issues=found)

    def has(self, tag: IssueTag) -> bool:
        return tag in self.issues


@dataclasses.dataclass(frozen=True, slots=True)
class ExtractionAttempt:
    """The payload a strategy pulled out of a response."""

    strategy_id: StrategyId
    raw_payload: str
    confidence: Confidence


@dataclasses.dataclass(frozen=True, slots=True)
class SanitizationResult:
    """Sanitized code and the names of the corrections that fired."""

    code: str
    corrections: tuple[str, ...] = ()


# --- Retry values ---


@dataclasses.dataclass(frozen=True, slots=True)
class RetryState:
    """Turn-scoped retry budget. Replaced, never mutated, after each decision."""

    attempts_remaining: int
    last_delay: float = 0.0

    def __post_init__(self) -> None:
        _require(
            condition=self.attempts_remaining >= 0,
            message="cannot be negative",
            field_name="attempts_remaining",
        )

    @classmethod
    def initial(cls, max_retries: int = MAX_RETRIES) -> RetryState:
        return cls(attempts_remaining=max_retries, last_delay=0.0)

    @property
    def exhausted(self) -> bool:
        return self.attempts_remaining == 0


@dataclasses.dataclass(frozen=True, slots=True)
class RetryDecision:
    """Whether to try again, how long to wait first, and the state to carry."""

    retry: bool
    delay: float
    next_state: RetryState
    reason: str = ""


# --- Terminal value ---


@dataclasses.dataclass(frozen=True, slots=True)
class PipelineResult:
    """What the host receives when a turn reaches READY.

    Attributes:
        user_visible_text: Response text with control markers removed.
        extracted_code: Sanitized code, or None when nothing was extracted.
        run_requested: True when the response asked for the scene to run.
        attempts: Number of provider calls made during the turn.
        issues: Validation issues of the response that was finally used.
        extraction: The winning extraction attempt, if any.
        corrections: Names of sanitizer corrections applied to the code.
        extraction_error: Diagnostic recorded when no strategy matched.
    """

    user_visible_text: str
    extracted_code: str | None = None
    run_requested: bool = False
    attempts: int = 1
    issues: tuple[IssueTag, ...] = ()
    extraction: ExtractionAttempt | None = None
    corrections: tuple[str, ...] = ()
    extraction_error: ExtractionFailure | None = None

    @property
    def has_code(self) -> bool:
        return bool(self.extracted_code)

    @property
    def is_complete(self) -> bool:
        return not self.issues
