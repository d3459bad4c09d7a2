"""Exception hierarchy for the scenecode pipeline.

Every error that can terminate a turn derives from ``ScenecodeError`` so the
host can handle the whole family with a single ``except`` clause. Errors are
returned inside ``Failure`` values by the pipeline rather than raised, except
for cancellation which always propagates.
"""


class ScenecodeError(Exception):
    """Base exception for all scenecode errors."""


class ConfigurationError(ScenecodeError):
    """Raised when the provider or pipeline is misconfigured (e.g. no API key)."""


class TransportError(ScenecodeError):
    """Raised when the provider call fails at the network or HTTP layer.

    Attributes:
        status_code: HTTP status when the failure came from a response.
    """

    def __init__(self, message: str, *, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class StallTimeoutError(TransportError):
    """Raised when no stream fragment arrives within the stall timeout."""

    def __init__(self, timeout: float, received_chars: int = 0) -> None:
        super().__init__(
            f"Stream timeout: no data received for {timeout:g}s "
            f"({received_chars} chars accumulated)"
        )
        self.timeout = timeout
        self.received_chars = received_chars


class EmptyResponseError(ScenecodeError):
    """Raised when every attempt of a turn produced an empty response."""


class ExtractionFailure(ScenecodeError):
    """Recorded when no extraction strategy found a code block.

    This is a diagnostic: the turn still succeeds with no code.
    """


class PipelineError(ScenecodeError):
    """Raised for unexpected internal faults inside the pipeline."""

    def __init__(self, message: str, stage: str | None = None) -> None:
        super().__init__(message if stage is None else f"{stage}: {message}")
        self.stage = stage


class TurnInProgressError(ScenecodeError):
    """Raised when a session is asked to start a turn while one is running."""
