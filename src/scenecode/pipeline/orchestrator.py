"""Turn orchestration: request, accumulate, validate, retry, extract, sanitize.

One ``ResponsePipeline`` runs exactly one conversational turn and walks an
explicit state machine::

    IDLE -> REQUESTING -> ACCUMULATING -> VALIDATING
         -> RETRYING -> REQUESTING ...            (policy approved a retry)
         -> EXTRACTING_CODE -> SANITIZING -> READY
         -> FAILED                                 (typed error, no code)

The retry loop is a bounded ``while`` loop driven by ``RetryState``; nothing
carries over to the next turn. Expected failures come back as ``Failure``
values. Only ``asyncio.CancelledError`` propagates to the caller.
"""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable
import logging
import re
from typing import TYPE_CHECKING

from scenecode.config.types import FrozenConfig
from scenecode.constants import CONTROL_MARKERS, FENCE, RUN_SCENE
from scenecode.core.exceptions import (
    EmptyResponseError,
    ExtractionFailure,
    PipelineError,
    ScenecodeError,
    TransportError,
)
from scenecode.core.types import (
    Failure,
    PipelineResult,
    PipelineState,
    Result,
    RetryDecision,
    RetryState,
    Success,
    TurnRequest,
    ValidationVerdict,
)
from scenecode.pipeline.base import BaseAsyncHandler
from scenecode.pipeline.retry import RetryPolicy
from scenecode.response.accumulator import StreamAccumulator
from scenecode.response.extraction import CodeExtractor
from scenecode.response.sanitizer import CodeSanitizer
from scenecode.response.validation import ResponseValidator
from scenecode.telemetry import (
    M_CORRECTIONS,
    M_EXTRACTION_STRATEGY,
    M_ISSUES,
    M_RESPONSE_CHARS,
    M_RETRIES,
    T_ACCUMULATE,
    T_ATTEMPT,
    T_TURN,
    TelemetryContext,
)

if TYPE_CHECKING:
    from scenecode.pipeline.adapters.base import ProviderAdapter
    from scenecode.telemetry import TelemetryContextProtocol

log = logging.getLogger(__name__)

Sleep = Callable[[float], Awaitable[object]]

_BLANK_RUN = re.compile(r"\n(?:[ \t]*\n){2,}")


def user_visible_text(text: str) -> str:
    """Response text as the chat should show it.

    Control markers are removed and blank lines collapsed. Code blocks stay
    visible; a fence left open by the model is closed so it renders.
    """
    for marker in CONTROL_MARKERS:
        text = text.replace(marker, "")
    text = _BLANK_RUN.sub("\n\n", text).strip()
    if text.count(FENCE) % 2 == 1:
        text += "\n" + FENCE
    return text


class ResponsePipeline(BaseAsyncHandler[TurnRequest, PipelineResult, ScenecodeError]):
    """Runs one turn against a provider and returns a ``PipelineResult``.

    Every collaborator is injectable; defaults are built from ``config``.
    ``sleep`` is awaited between attempts so tests can run without delays.
    """

    def __init__(
        self,
        adapter: ProviderAdapter,
        *,
        config: FrozenConfig | None = None,
        accumulator: StreamAccumulator | None = None,
        validator: ResponseValidator | None = None,
        extractor: CodeExtractor | None = None,
        sanitizer: CodeSanitizer | None = None,
        retry_policy: RetryPolicy | None = None,
        telemetry: TelemetryContextProtocol | None = None,
        sleep: Sleep = asyncio.sleep,
    ) -> None:
        cfg = config or FrozenConfig()
        self._adapter = adapter
        self._accumulator = accumulator or StreamAccumulator(
            stall_timeout=cfg.stall_timeout, max_chars=cfg.max_response_chars
        )
        self._validator = validator or ResponseValidator(cfg.min_response_length)
        self._extractor = extractor or CodeExtractor()
        self._sanitizer = sanitizer or CodeSanitizer()
        self._retry_policy = retry_policy or RetryPolicy.from_config(cfg)
        self._telemetry: TelemetryContextProtocol = telemetry or TelemetryContext()
        self._sleep = sleep
        self._state = PipelineState.IDLE
        self.transitions: list[PipelineState] = [PipelineState.IDLE]

    @property
    def state(self) -> PipelineState:
        return self._state

    def _enter(self, state: PipelineState) -> None:
        log.debug("Pipeline %s -> %s", self._state.value, state.value)
        self._state = state
        self.transitions.append(state)

    async def handle(
        self, command: TurnRequest
    ) -> Result[PipelineResult, ScenecodeError]:
        """Run the turn described by ``command``.

        Raises:
            RuntimeError: If this pipeline has already run.
            asyncio.CancelledError: If the caller cancels the turn.
        """
        if self._state is not PipelineState.IDLE:
            raise RuntimeError("ResponsePipeline is single-use; create one per turn")

        try:
            with self._telemetry(T_TURN, model=command.model_id):
                result = await self._run(command)
        except asyncio.CancelledError:
            log.info("Turn cancelled in state %s", self._state.value)
            self._enter(PipelineState.FAILED)
            raise
        except Exception as e:
            log.error("Pipeline fault in state %s: %s", self._state.value, e, exc_info=True)
            stage = self._state.value
            self._enter(PipelineState.FAILED)
            return Failure(PipelineError(str(e), stage=stage))

        if isinstance(result, Failure):
            self._enter(PipelineState.FAILED)
            log.info("Turn failed: %s", result.error)
        return result

    async def _run(self, command: TurnRequest) -> Result[PipelineResult, ScenecodeError]:
        retry_state = self._retry_policy.initial_state()
        attempts = 0
        surfaced: tuple[str, ValidationVerdict] | None = None

        while True:
            attempts += 1
            self._enter(PipelineState.REQUESTING)
            try:
                with self._telemetry(T_ATTEMPT, attempt=attempts):
                    text = await self._request(command)
            except ScenecodeError as e:
                error = e
            except Exception as e:
                # Adapters should raise TransportError; wrap anything else
                error = TransportError(f"Provider call failed: {e}")
                error.__cause__ = e
            else:
                self._enter(PipelineState.VALIDATING)
                verdict = self._validator.validate(text)
                if text:
                    surfaced = (text, verdict)
                decision = self._retry_policy.decide(verdict, retry_state)
                if decision.retry:
                    retry_state = await self._retry(decision, attempts)
                    continue
                if not text:
                    # An empty final attempt fails the turn even after an
                    # earlier non-empty reply
                    return Failure(
                        EmptyResponseError(
                            f"Empty response after {attempts} attempt(s)"
                        )
                    )
                if not verdict.is_complete:
                    self._note_incomplete(verdict, decision)
                return Success(self._finish(text, verdict, attempts=attempts))

            log.warning("Attempt %d failed: %s", attempts, error)
            decision = self._retry_policy.decide(error, retry_state)
            if decision.retry:
                retry_state = await self._retry(decision, attempts)
                continue
            if surfaced is not None:
                # Keep the earlier, incomplete reply rather than losing it
                log.warning("Surfacing earlier response after error: %s", error)
                return Success(self._finish(*surfaced, attempts=attempts))
            return Failure(error)

    async def _request(self, command: TurnRequest) -> str:
        stream = self._adapter.send(
            system_prompt=command.system_prompt,
            user_message=command.user_message,
            model_id=command.model_id,
            sampling=command.sampling,
        )
        self._enter(PipelineState.ACCUMULATING)
        with self._telemetry(T_ACCUMULATE):
            response = await self._accumulator.accumulate(stream)
        self._telemetry.gauge(M_RESPONSE_CHARS, len(response.text))
        return response.text

    async def _retry(self, decision: RetryDecision, attempts: int) -> RetryState:
        self._enter(PipelineState.RETRYING)
        self._telemetry.count(M_RETRIES, reason=decision.reason)
        log.warning(
            "Retrying turn (attempt %d, %s) in %.1fs",
            attempts + 1,
            decision.reason,
            decision.delay,
        )
        if decision.delay > 0:
            await self._sleep(decision.delay)
        return decision.next_state

    def _note_incomplete(self, verdict: ValidationVerdict, decision: RetryDecision) -> None:
        for tag in verdict.issues:
            self._telemetry.count(M_ISSUES, tag=tag.value)
        log.info(
            "Using response with issues %s (%s)",
            [tag.value for tag in verdict.issues],
            decision.reason,
        )

    def _finish(
        self, text: str, verdict: ValidationVerdict, *, attempts: int
    ) -> PipelineResult:
        self._enter(PipelineState.EXTRACTING_CODE)
        extraction = self._extractor.extract(text)

        code: str | None = None
        corrections: tuple[str, ...] = ()
        extraction_error: ExtractionFailure | None = None
        if extraction is None:
            extraction_error = ExtractionFailure("No code block found in response")
            log.info("No code extracted from %d-char response", len(text))
        else:
            self._enter(PipelineState.SANITIZING)
            self._telemetry.metric(
                M_EXTRACTION_STRATEGY, extraction.strategy_id.value
            )
            sanitized = self._sanitizer.apply(extraction.raw_payload)
            code = sanitized.code or None
            corrections = sanitized.corrections
            if corrections:
                self._telemetry.count(M_CORRECTIONS, len(corrections))

        self._enter(PipelineState.READY)
        result = PipelineResult(
            user_visible_text=user_visible_text(text),
            extracted_code=code,
            run_requested=RUN_SCENE in text,
            attempts=attempts,
            issues=verdict.issues,
            extraction=extraction,
            corrections=corrections,
            extraction_error=extraction_error,
        )
        log.info(
            "Turn ready: attempts=%d code=%s strategy=%s run=%s",
            attempts,
            "yes" if result.has_code else "no",
            extraction.strategy_id.value if extraction else None,
            result.run_requested,
        )
        return result
