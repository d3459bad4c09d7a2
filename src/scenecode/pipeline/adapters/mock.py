"""Deterministic provider adapter for tests, demos and offline development."""

from __future__ import annotations

import asyncio
from collections.abc import AsyncIterator, Sequence
import dataclasses
from typing import Any

from scenecode.core.types import SamplingParams, StreamChunk


@dataclasses.dataclass(frozen=True, slots=True)
class Stall:
    """Emit ``before`` and then go silent for ``seconds`` (forever when None)."""

    before: str = ""
    seconds: float | None = None


ScriptedReply = str | Sequence[str | StreamChunk] | BaseException | Stall


class ScriptedAdapter:
    """Replays scripted replies in order, one per ``send`` call.

    A ``str`` reply is streamed in ``chunk_size`` pieces followed by a
    ``finish_reason="stop"`` chunk. A sequence is streamed as given. An
    exception is raised from the stream. A ``Stall`` stops emitting.

    When the script runs out the last reply is repeated, unless
    ``repeat_last`` is False, in which case ``send`` raises ``RuntimeError``.
    """

    def __init__(
        self,
        *replies: ScriptedReply,
        chunk_size: int = 16,
        repeat_last: bool = True,
    ) -> None:
        if chunk_size <= 0:
            raise ValueError("chunk_size must be positive")
        self._replies = list(replies)
        self._index = 0
        self.chunk_size = chunk_size
        self.repeat_last = repeat_last
        self.calls: list[dict[str, Any]] = []

    @property
    def call_count(self) -> int:
        return len(self.calls)

    def send(
        self,
        *,
        system_prompt: str,
        user_message: str,
        model_id: str,
        sampling: SamplingParams,
    ) -> AsyncIterator[str | StreamChunk]:
        self.calls.append(
            {
                "system_prompt": system_prompt,
                "user_message": user_message,
                "model_id": model_id,
                "sampling": sampling,
            }
        )
        return self._stream(self._next_reply())

    def _next_reply(self) -> ScriptedReply:
        if self._index < len(self._replies):
            reply = self._replies[self._index]
            self._index += 1
            return reply
        if self.repeat_last and self._replies:
            return self._replies[-1]
        raise RuntimeError("ScriptedAdapter has no more scripted replies")

    async def _stream(self, reply: ScriptedReply) -> AsyncIterator[str | StreamChunk]:
        if isinstance(reply, BaseException):
            raise reply
        if isinstance(reply, Stall):
            if reply.before:
                yield reply.before
            if reply.seconds is None:
                await asyncio.Event().wait()
            else:
                await asyncio.sleep(reply.seconds)
            return
        if isinstance(reply, str):
            for i in range(0, len(reply), self.chunk_size):
                yield reply[i : i + self.chunk_size]
            yield StreamChunk("", finish_reason="stop")
            return
        for fragment in reply:
            yield fragment
