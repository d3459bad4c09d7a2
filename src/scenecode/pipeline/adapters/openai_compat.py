"""Streaming adapter for OpenAI-compatible chat completions endpoints.

Works with any server implementing ``POST /chat/completions`` with
``stream: true`` and server-sent events (OpenAI, Together.ai, vLLM, ...).
"""

from __future__ import annotations

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
import json
import logging
from typing import Any

import httpx

from scenecode import constants
from scenecode.core.exceptions import ConfigurationError, TransportError
from scenecode.core.types import SamplingParams, StreamChunk

log = logging.getLogger(__name__)

_DONE = object()


def _status_error(status: int, body: str) -> TransportError:
    """Map an HTTP error status to a TransportError whose message classifies it."""
    detail = body.strip()[:200]
    if status == 401:
        message = "HTTP 401 unauthorized: check your API key"
    elif status == 403:
        message = "HTTP 403 forbidden: the API key cannot access this model"
    elif status == 404:
        message = f"HTTP 404: model or endpoint not found ({detail})"
    elif status == 429:
        message = "HTTP 429: rate limit exceeded"
    elif status >= 500:
        message = f"HTTP {status}: server error"
    else:
        message = f"HTTP {status}: {detail}"
    return TransportError(message, status_code=status)


def parse_sse_line(line: str) -> StreamChunk | str | object | None:
    """Decode one server-sent event line.

    Returns a fragment, a ``StreamChunk`` carrying ``finish_reason``, the
    ``_DONE`` sentinel, or None for lines that carry no content.
    """
    line = line.strip()
    if not line.startswith("data:"):
        return None
    payload = line[len("data:") :].strip()
    if payload == "[DONE]":
        return _DONE
    try:
        data = json.loads(payload)
    except json.JSONDecodeError:
        log.debug("Skipping malformed SSE payload: %.80s", payload)
        return None

    if isinstance(data, dict) and data.get("error"):
        error = data["error"]
        message = error.get("message", error) if isinstance(error, dict) else error
        raise TransportError(f"Provider stream error: {message}")

    choices = data.get("choices") if isinstance(data, dict) else None
    if not choices:
        return None
    choice = choices[0]
    content = (choice.get("delta") or {}).get("content") or ""
    finish_reason = choice.get("finish_reason")
    if finish_reason:
        return StreamChunk(content, finish_reason=finish_reason)
    return content or None


class OpenAICompatibleAdapter:
    """Streams completions over HTTP with httpx.

    Args:
        api_key: Bearer token. A missing key fails at ``send`` time.
        base_url: API root, e.g. ``https://api.together.xyz/v1``.
        timeout: Connect/read timeout in seconds for the HTTP client.
        client: Optional shared ``httpx.AsyncClient``; it is not closed by
            the adapter. A short-lived client is created per request otherwise.
    """

    def __init__(
        self,
        api_key: str | None,
        base_url: str = constants.DEFAULT_BASE_URL,
        *,
        timeout: float = constants.REQUEST_TIMEOUT_SECONDS,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        self._api_key = api_key
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self._client = client

    @classmethod
    def from_config(cls, config: Any, **kwargs: Any) -> OpenAICompatibleAdapter:
        """Build from a ``FrozenConfig`` (or anything with api_key/base_url)."""
        return cls(config.api_key, config.base_url, **kwargs)

    def send(
        self,
        *,
        system_prompt: str,
        user_message: str,
        model_id: str,
        sampling: SamplingParams,
    ) -> AsyncIterator[str | StreamChunk]:
        if not self._api_key:
            raise ConfigurationError("API key not configured for the chat provider")

        body: dict[str, Any] = {
            "model": model_id,
            "messages": [
                {"role": "system", "content": system_prompt},
                {"role": "user", "content": user_message},
            ],
            "temperature": sampling.temperature,
            "top_p": sampling.top_p,
            "stream": True,
        }
        if sampling.max_tokens is not None:
            body["max_tokens"] = sampling.max_tokens

        log.debug(
            "Chat request: model=%s temperature=%s top_p=%s",
            model_id,
            sampling.temperature,
            sampling.top_p,
        )
        return self._stream(body)

    @asynccontextmanager
    async def _client_context(self) -> AsyncIterator[httpx.AsyncClient]:
        if self._client is not None:
            yield self._client
            return
        async with httpx.AsyncClient(timeout=self.timeout) as client:
            yield client

    async def _stream(self, body: dict[str, Any]) -> AsyncIterator[str | StreamChunk]:
        headers = {
            "Authorization": f"Bearer {self._api_key}",
            "Content-Type": "application/json",
            "Accept": "text/event-stream",
        }
        url = f"{self.base_url}/chat/completions"
        try:
            async with self._client_context() as client:
                async with client.stream(
                    "POST", url, json=body, headers=headers
                ) as response:
                    if response.status_code != 200:
                        await response.aread()
                        raise _status_error(response.status_code, response.text)
                    async for line in response.aiter_lines():
                        item = parse_sse_line(line)
                        if item is _DONE:
                            return
                        if item is not None:
                            yield item
        except httpx.TimeoutException as e:
            raise TransportError(f"Request timeout: {e}") from e
        except httpx.NetworkError as e:
            raise TransportError(f"Network error: connection failed ({e})") from e
        except httpx.HTTPError as e:
            raise TransportError(f"Network error: {e}") from e
