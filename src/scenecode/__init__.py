"""scenecode: turn streamed LLM chat replies into runnable 3D-scene code."""

import importlib.metadata
import logging

from scenecode.config import FrozenConfig, ResolvedConfig, load_config, resolve_config
from scenecode.core.exceptions import (
    ConfigurationError,
    EmptyResponseError,
    ExtractionFailure,
    PipelineError,
    ScenecodeError,
    StallTimeoutError,
    TransportError,
    TurnInProgressError,
)
from scenecode.core.types import (
    AccumulatedResponse,
    Confidence,
    ExtractionAttempt,
    Failure,
    IssueTag,
    PipelineResult,
    PipelineState,
    Result,
    RetryDecision,
    RetryState,
    SamplingParams,
    SanitizationResult,
    StrategyId,
    StreamChunk,
    Success,
    TurnRequest,
    ValidationVerdict,
)
from scenecode.pipeline import (
    ResponsePipeline,
    RetryPolicy,
    classify_error,
    describe_error,
)
from scenecode.pipeline.adapters import (
    ChatSink,
    CodeHost,
    OpenAICompatibleAdapter,
    ProviderAdapter,
    ScriptedAdapter,
)
from scenecode.prompts import build_system_prompt
from scenecode.response import (
    CodeExtractor,
    CodeSanitizer,
    ResponseValidator,
    StreamAccumulator,
)
from scenecode.session import ChatSession
from scenecode.telemetry import TelemetryContext, TelemetryReporter

try:
    __version__ = importlib.metadata.version("scenecode")
except importlib.metadata.PackageNotFoundError:
    __version__ = "development"

# Library code logs through module loggers; applications choose the handlers
logging.getLogger(__name__).addHandler(logging.NullHandler())

__all__ = [
    "AccumulatedResponse",
    "ChatSession",
    "ChatSink",
    "CodeExtractor",
    "CodeHost",
    "CodeSanitizer",
    "Confidence",
    "ConfigurationError",
    "EmptyResponseError",
    "ExtractionAttempt",
    "ExtractionFailure",
    "Failure",
    "FrozenConfig",
    "IssueTag",
    "OpenAICompatibleAdapter",
    "PipelineError",
    "PipelineResult",
    "PipelineState",
    "ProviderAdapter",
    "ResolvedConfig",
    "ResponsePipeline",
    "ResponseValidator",
    "Result",
    "RetryDecision",
    "RetryPolicy",
    "RetryState",
    "SamplingParams",
    "SanitizationResult",
    "ScenecodeError",
    "ScriptedAdapter",
    "StallTimeoutError",
    "StrategyId",
    "StreamAccumulator",
    "StreamChunk",
    "Success",
    "TelemetryContext",
    "TelemetryReporter",
    "TransportError",
    "TurnInProgressError",
    "TurnRequest",
    "ValidationVerdict",
    "build_system_prompt",
    "classify_error",
    "describe_error",
    "load_config",
    "resolve_config",
]
