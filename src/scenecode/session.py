"""Chat session: one turn at a time, results dispatched to the host.

A ``ChatSession`` owns the conversation transcript and hands each user
message to a fresh ``ResponsePipeline``. Turns never overlap: a second
``send_message`` either waits for the first to finish or, with
``wait=False``, is rejected with ``TurnInProgressError``.
"""

from __future__ import annotations

import asyncio
from collections import deque
import dataclasses
import logging
import time
from typing import TYPE_CHECKING, Literal

from scenecode.config.types import FrozenConfig
from scenecode.constants import MAX_HISTORY_MESSAGES
from scenecode.core.exceptions import ScenecodeError, TurnInProgressError
from scenecode.core.types import (
    Failure,
    PipelineResult,
    Result,
    SamplingParams,
    TurnRequest,
)
from scenecode.pipeline.errors import describe_error
from scenecode.pipeline.orchestrator import ResponsePipeline, Sleep
from scenecode.prompts import BABYLON, SceneLibrary, build_system_prompt

if TYPE_CHECKING:
    from scenecode.pipeline.adapters.base import ChatSink, CodeHost, ProviderAdapter
    from scenecode.telemetry import TelemetryContextProtocol

log = logging.getLogger(__name__)


@dataclasses.dataclass(frozen=True, slots=True)
class ChatMessage:
    """One entry of the visible transcript."""

    role: Literal["user", "assistant", "error"]
    content: str
    timestamp: float = dataclasses.field(default_factory=time.time)


class ChatSession:
    """Runs conversational turns against one provider.

    Args:
        adapter: Provider used for every turn.
        config: Frozen configuration; defaults apply when omitted.
        host: Receives sanitized code and run requests.
        chat: Receives assistant text and error messages.
        library: Scene library the system prompt targets.
        telemetry: Optional telemetry context shared by all turns.
        sleep: Delay function passed to each pipeline.
    """

    def __init__(
        self,
        adapter: ProviderAdapter,
        config: FrozenConfig | None = None,
        *,
        host: CodeHost | None = None,
        chat: ChatSink | None = None,
        library: SceneLibrary = BABYLON,
        telemetry: TelemetryContextProtocol | None = None,
        sleep: Sleep = asyncio.sleep,
    ) -> None:
        self.adapter = adapter
        self.config = config or FrozenConfig()
        self.host = host
        self.chat = chat
        self.library = library
        self._telemetry = telemetry
        self._sleep = sleep
        self._lock = asyncio.Lock()
        self.history: deque[ChatMessage] = deque(maxlen=MAX_HISTORY_MESSAGES)
        self.last_pipeline: ResponsePipeline | None = None

    @property
    def busy(self) -> bool:
        """True while a turn is in flight."""
        return self._lock.locked()

    async def send_message(
        self,
        text: str,
        current_code: str | None = None,
        *,
        wait: bool = True,
    ) -> Result[PipelineResult, ScenecodeError]:
        """Run a turn for ``text`` and dispatch its outcome.

        Args:
            text: The user's message.
            current_code: Code currently in the editor, given to the model as
                context.
            wait: Queue behind a running turn (True) or reject immediately.

        Raises:
            TurnInProgressError: If ``wait`` is False and a turn is running.
            ValueError: If ``text`` is blank.
        """
        if not text or not text.strip():
            raise ValueError("Message text cannot be empty")
        if not wait and self.busy:
            raise TurnInProgressError("A response is still being generated")

        async with self._lock:
            self.history.append(ChatMessage("user", text))
            request = TurnRequest(
                system_prompt=build_system_prompt(self.library, current_code),
                user_message=text,
                model_id=self.config.model,
                sampling=SamplingParams(
                    temperature=self.config.temperature,
                    top_p=self.config.top_p,
                    max_tokens=self.config.max_tokens,
                ),
            )
            pipeline = ResponsePipeline(
                self.adapter,
                config=self.config,
                telemetry=self._telemetry,
                sleep=self._sleep,
            )
            self.last_pipeline = pipeline
            result = await pipeline.handle(request)
            self._dispatch(result)
            return result

    def _dispatch(self, result: Result[PipelineResult, ScenecodeError]) -> None:
        if isinstance(result, Failure):
            message = describe_error(result.error)
            self.history.append(ChatMessage("error", message))
            log.warning("Turn failed: %s", result.error)
            if self.chat is not None:
                self.chat.on_error(message)
            return

        turn = result.value
        self.history.append(ChatMessage("assistant", turn.user_visible_text))
        if self.chat is not None:
            self.chat.on_user_visible_text(turn.user_visible_text)
        if self.host is not None and turn.extracted_code:
            self.host.on_code_ready(turn.extracted_code)
            if turn.run_requested:
                self.host.on_run_requested()
