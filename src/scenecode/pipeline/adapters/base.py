"""Protocols at the pipeline's edges: the LLM provider and the host application.

Providers stream text; hosts receive results. Neither side knows about the
other, and the pipeline only depends on these protocols.
"""

from collections.abc import AsyncIterator
from typing import Protocol, runtime_checkable

from scenecode.core.types import SamplingParams, StreamChunk


@runtime_checkable
class ProviderAdapter(Protocol):
    """Streams a chat completion for one request.

    Implementations may raise ``ConfigurationError`` (e.g. no API key) or
    ``TransportError`` either when called or while the stream is iterated.
    A ``StreamChunk`` with a ``finish_reason`` marks the explicit end of the
    stream; plain strings are ordinary fragments.
    """

    def send(
        self,
        *,
        system_prompt: str,
        user_message: str,
        model_id: str,
        sampling: SamplingParams,
    ) -> AsyncIterator[str | StreamChunk]: ...


@runtime_checkable
class CodeHost(Protocol):
    """The rendering/editor surface that receives sanitized code.

    Called at most once per successful turn, never concurrently.
    """

    def on_code_ready(self, code: str) -> None: ...

    def on_run_requested(self) -> None: ...


@runtime_checkable
class ChatSink(Protocol):
    """The chat transcript that shows assistant text and error messages."""

    def on_user_visible_text(self, text: str) -> None: ...

    def on_error(self, message: str) -> None: ...
