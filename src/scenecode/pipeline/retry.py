"""Retry decisions for a single turn.

``RetryPolicy.decide`` is pure: it looks at a validation verdict or a
transport error together with the turn's ``RetryState`` and returns what to
do next. Sleeping is left to the caller.
"""

from __future__ import annotations

import enum
import logging
import re
import typing

from scenecode import constants
from scenecode.core.exceptions import ConfigurationError, StallTimeoutError
from scenecode.core.types import IssueTag, RetryDecision, RetryState, ValidationVerdict

if typing.TYPE_CHECKING:
    from scenecode.config import FrozenConfig

log = logging.getLogger(__name__)

# Issues that justify paying for another provider call. The others are
# advisory: they are logged but the response is still used.
RETRYABLE_ISSUES: frozenset[IssueTag] = frozenset(
    {
        IssueTag.EMPTY,
        IssueTag.TOO_SHORT,
        IssueTag.UNCLOSED_TAG_BLOCK,
        IssueTag.UNBALANCED_FENCE,
        IssueTag.ABRUPT_ENDING,
    }
)

# Checked first, as plain substrings: a request the provider rejected will be
# rejected again.
_CLIENT_ERROR = re.compile(r"400|401|403|404|invalid|unauthorized|forbidden")
_RETRYABLE_ERROR = re.compile(
    r"timeout|timed out|network|connection failed|server error|"
    r"temporarily unavailable|rate limit"
)


class ErrorClass(enum.Enum):
    """How a transport-level failure should be treated."""

    CLIENT = "client"
    RETRYABLE = "retryable"
    CONFIGURATION = "configuration"
    UNKNOWN = "unknown"


def classify_error(error: BaseException) -> ErrorClass:
    """Classify ``error`` by type first, then by its message."""
    if isinstance(error, ConfigurationError):
        return ErrorClass.CONFIGURATION
    if isinstance(error, StallTimeoutError):
        return ErrorClass.RETRYABLE
    text = str(error).lower()
    if _CLIENT_ERROR.search(text):
        return ErrorClass.CLIENT
    if _RETRYABLE_ERROR.search(text):
        return ErrorClass.RETRYABLE
    return ErrorClass.UNKNOWN


class RetryPolicy:
    """Bounded retry with a fixed delay for empty replies and linear backoff otherwise.

    Args:
        max_retries: Extra provider calls allowed per turn.
        empty_retry_delay: Delay before retrying an empty response.
        base_delay: Backoff step; successive delays are base, 2*base, ...
        retryable_issues: Validation issues that trigger a retry.
    """

    def __init__(
        self,
        max_retries: int = constants.MAX_RETRIES,
        *,
        empty_retry_delay: float = constants.EMPTY_RETRY_DELAY,
        base_delay: float = constants.RETRY_BASE_DELAY,
        retryable_issues: frozenset[IssueTag] = RETRYABLE_ISSUES,
    ) -> None:
        if max_retries < 0:
            raise ValueError("max_retries cannot be negative")
        if empty_retry_delay < 0 or base_delay < 0:
            raise ValueError("retry delays cannot be negative")
        self.max_retries = max_retries
        self.empty_retry_delay = empty_retry_delay
        self.base_delay = base_delay
        self.retryable_issues = retryable_issues

    @classmethod
    def from_config(cls, config: FrozenConfig) -> RetryPolicy:
        return cls(
            config.max_retries,
            empty_retry_delay=config.empty_retry_delay,
            base_delay=config.retry_base_delay,
        )

    def initial_state(self) -> RetryState:
        return RetryState.initial(self.max_retries)

    def decide(
        self, outcome: ValidationVerdict | BaseException, state: RetryState
    ) -> RetryDecision:
        """Decide whether the turn should make another provider call."""
        if isinstance(outcome, ValidationVerdict):
            return self._decide_verdict(outcome, state)
        return self._decide_error(outcome, state)

    def _decide_verdict(
        self, verdict: ValidationVerdict, state: RetryState
    ) -> RetryDecision:
        severe = [tag for tag in verdict.issues if tag in self.retryable_issues]
        if not severe:
            reason = "complete" if verdict.is_complete else "advisory issues only"
            return RetryDecision(retry=False, delay=0.0, next_state=state, reason=reason)
        if state.exhausted:
            return RetryDecision(
                retry=False, delay=0.0, next_state=state, reason="retry budget exhausted"
            )

        if IssueTag.EMPTY in severe:
            delay = self.empty_retry_delay
        else:
            delay = state.last_delay + self.base_delay
        return self._retry(state, delay, ", ".join(tag.value for tag in severe))

    def _decide_error(self, error: BaseException, state: RetryState) -> RetryDecision:
        kind = classify_error(error)
        if kind is not ErrorClass.RETRYABLE:
            return RetryDecision(
                retry=False,
                delay=0.0,
                next_state=state,
                reason=f"{kind.value} error is not retried",
            )
        if state.exhausted:
            return RetryDecision(
                retry=False, delay=0.0, next_state=state, reason="retry budget exhausted"
            )
        return self._retry(state, state.last_delay + self.base_delay, "transient error")

    def _retry(self, state: RetryState, delay: float, reason: str) -> RetryDecision:
        next_state = RetryState(
            attempts_remaining=state.attempts_remaining - 1, last_delay=delay
        )
        log.debug(
            "Retry approved (%s): delay=%.1fs, remaining=%d",
            reason,
            delay,
            next_state.attempts_remaining,
        )
        return RetryDecision(retry=True, delay=delay, next_state=next_state, reason=reason)
