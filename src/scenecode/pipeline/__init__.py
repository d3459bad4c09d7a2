"""Turn orchestration, retry policy and provider adapters."""

from .errors import describe_error
from .orchestrator import ResponsePipeline, user_visible_text
from .retry import RETRYABLE_ISSUES, ErrorClass, RetryPolicy, classify_error

__all__ = [
    "RETRYABLE_ISSUES",
    "ErrorClass",
    "ResponsePipeline",
    "RetryPolicy",
    "classify_error",
    "describe_error",
    "user_visible_text",
]
