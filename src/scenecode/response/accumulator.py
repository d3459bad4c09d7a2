"""Stream accumulation with stall detection.

Turns an async stream of text fragments into one response string. Waiting is
bounded per fragment: if the provider goes quiet for longer than the stall
timeout the wait is abandoned with ``StallTimeoutError`` instead of hanging
the turn.
"""

from __future__ import annotations

import asyncio
from collections.abc import AsyncIterable, AsyncIterator
import logging
import time

from scenecode.constants import MAX_RESPONSE_CHARS, STALL_TIMEOUT_SECONDS
from scenecode.core.exceptions import StallTimeoutError
from scenecode.core.types import AccumulatedResponse, StreamChunk

log = logging.getLogger(__name__)


class StreamAccumulator:
    """Concatenates fragments in arrival order.

    Args:
        stall_timeout: Seconds to wait for each next fragment.
        max_chars: Stop reading once the response reaches this many characters.
    """

    def __init__(
        self,
        stall_timeout: float = STALL_TIMEOUT_SECONDS,
        max_chars: int = MAX_RESPONSE_CHARS,
    ) -> None:
        if stall_timeout <= 0:
            raise ValueError("stall_timeout must be positive")
        if max_chars <= 0:
            raise ValueError("max_chars must be positive")
        self.stall_timeout = stall_timeout
        self.max_chars = max_chars

    async def accumulate(
        self, fragments: AsyncIterable[str | StreamChunk]
    ) -> AccumulatedResponse:
        """Consume ``fragments`` until the stream ends, finishes or stalls.

        Raises:
            StallTimeoutError: If no fragment arrives within ``stall_timeout``.
        """
        iterator = aiter(fragments)
        parts: list[str] = []
        size = 0
        count = 0
        finish_reason: str | None = None
        truncated = False
        start = time.monotonic()

        try:
            while True:
                try:
                    fragment = await asyncio.wait_for(
                        anext(iterator), timeout=self.stall_timeout
                    )
                except StopAsyncIteration:
                    break
                except TimeoutError as e:
                    raise StallTimeoutError(self.stall_timeout, size) from e

                count += 1
                if isinstance(fragment, StreamChunk):
                    text, finish_reason = fragment.text, fragment.finish_reason
                else:
                    text = fragment

                if text:
                    room = self.max_chars - size
                    if len(text) >= room:
                        parts.append(text[:room])
                        size = self.max_chars
                        truncated = len(text) > room or finish_reason is None
                        break
                    parts.append(text)
                    size += len(text)

                if finish_reason is not None:
                    break
        finally:
            await _close(iterator)

        elapsed = time.monotonic() - start
        if truncated:
            log.warning(
                "Response reached %d chars; remaining stream discarded",
                self.max_chars,
            )
        log.debug(
            "Accumulated %d chars from %d fragments in %.2fs (finish_reason=%s)",
            size,
            count,
            elapsed,
            finish_reason,
        )
        return AccumulatedResponse(
            text="".join(parts),
            finished=finish_reason is not None,
            finish_reason=finish_reason,
            fragment_count=count,
            truncated=truncated,
            elapsed=elapsed,
        )


async def _close(iterator: AsyncIterator[object]) -> None:
    """Close an async generator we stopped reading early, if it supports it."""
    aclose = getattr(iterator, "aclose", None)
    if aclose is None:
        return
    try:
        await aclose()
    except RuntimeError:
        # Generator is still running (e.g. abandoned after a stall timeout)
        log.debug("Stream iterator could not be closed cleanly", exc_info=True)
