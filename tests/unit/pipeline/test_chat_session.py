import asyncio

import pytest

from scenecode.config import FrozenConfig
from scenecode.core.exceptions import ConfigurationError, TurnInProgressError
from scenecode.core.types import Failure, Success
from scenecode.pipeline.adapters import ScriptedAdapter, Stall
from scenecode.prompts import THREE
from scenecode.session import ChatSession

pytestmark = pytest.mark.unit


class RecordingHost:
    def __init__(self):
        self.events = []

    def on_code_ready(self, code):
        self.events.append(("code", code))

    def on_run_requested(self):
        self.events.append(("run",))


class RecordingChat:
    def __init__(self):
        self.texts = []
        self.errors = []

    def on_user_visible_text(self, text):
        self.texts.append(text)

    def on_error(self, message):
        self.errors.append(message)


def _session(adapter, sleep, **kwargs):
    kwargs.setdefault("host", RecordingHost())
    kwargs.setdefault("chat", RecordingChat())
    return ChatSession(adapter, FrozenConfig(api_key="k"), sleep=sleep, **kwargs)


@pytest.mark.asyncio
async def test_successful_turn_dispatches_text_then_code_then_run(
    no_sleep, complete_response
):
    session = _session(ScriptedAdapter(complete_response), no_sleep)

    result = await session.send_message("Make a box")

    assert isinstance(result, Success)
    assert session.chat.texts == [result.value.user_visible_text]
    assert session.host.events == [("code", result.value.extracted_code), ("run",)]
    assert [m.role for m in session.history] == ["user", "assistant"]
    assert session.busy is False


@pytest.mark.asyncio
async def test_reply_without_code_does_not_touch_host(no_sleep):
    session = _session(ScriptedAdapter("No scene needed for that question. " * 4), no_sleep)

    result = await session.send_message("What is a mesh?")

    assert isinstance(result, Success)
    assert session.host.events == []
    assert len(session.chat.texts) == 1


@pytest.mark.asyncio
async def test_failure_reports_guidance_and_no_code(no_sleep):
    adapter = ScriptedAdapter(ConfigurationError("API key not configured"))
    session = _session(adapter, no_sleep)

    result = await session.send_message("Make a box")

    assert isinstance(result, Failure)
    assert session.host.events == []
    assert session.chat.texts == []
    assert "SCENECODE_API_KEY" in session.chat.errors[0]
    assert session.history[-1].role == "error"


@pytest.mark.asyncio
async def test_system_prompt_carries_library_and_current_code(no_sleep, complete_response):
    adapter = ScriptedAdapter(complete_response)
    session = _session(adapter, no_sleep, library=THREE)

    await session.send_message("Make it red", current_code="const cube = 1;")

    prompt = adapter.calls[0]["system_prompt"]
    assert "Three.js" in prompt
    assert prompt.endswith("Current scene code:\n```javascript\nconst cube = 1;\n```")
    assert adapter.calls[0]["user_message"] == "Make it red"
    assert adapter.calls[0]["model_id"] == session.config.model


@pytest.mark.asyncio
async def test_blank_message_is_rejected(no_sleep):
    session = _session(ScriptedAdapter("unused"), no_sleep)

    with pytest.raises(ValueError):
        await session.send_message("   ")


@pytest.mark.asyncio
async def test_second_turn_rejected_while_busy_without_wait(no_sleep):
    session = _session(ScriptedAdapter(Stall()), no_sleep)
    running = asyncio.create_task(session.send_message("First"))
    await asyncio.sleep(0.01)

    try:
        assert session.busy is True
        with pytest.raises(TurnInProgressError):
            await session.send_message("Second", wait=False)
    finally:
        running.cancel()
        with pytest.raises(asyncio.CancelledError):
            await running

    assert session.host.events == []
    assert session.busy is False


@pytest.mark.asyncio
async def test_turns_run_one_at_a_time(no_sleep, complete_response):
    adapter = ScriptedAdapter(complete_response)
    session = _session(adapter, no_sleep)

    results = await asyncio.gather(
        session.send_message("One"), session.send_message("Two")
    )

    assert all(isinstance(r, Success) for r in results)
    assert [m.role for m in session.history] == ["user", "assistant", "user", "assistant"]
    assert [c["user_message"] for c in adapter.calls] == ["One", "Two"]


@pytest.mark.asyncio
async def test_history_is_bounded(no_sleep, complete_response):
    session = _session(ScriptedAdapter(complete_response), no_sleep)

    for i in range(15):
        await session.send_message(f"Turn {i}")

    assert len(session.history) == 20
    assert session.history[-2].content == "Turn 14"
