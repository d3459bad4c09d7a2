"""Behavior of a single conversational turn through the response pipeline."""

import asyncio

import pytest

from scenecode.config import FrozenConfig
from scenecode.core.exceptions import (
    ConfigurationError,
    EmptyResponseError,
    ExtractionFailure,
    StallTimeoutError,
    TransportError,
)
from scenecode.core.types import (
    Failure,
    IssueTag,
    PipelineState,
    SamplingParams,
    StrategyId,
    Success,
    TurnRequest,
)
from scenecode.pipeline import ResponsePipeline, user_visible_text
from scenecode.pipeline.adapters import ScriptedAdapter, Stall
from scenecode.telemetry import InMemoryReporter, TelemetryContext

pytestmark = pytest.mark.unit

SCENARIO_A = (
    "[INSERT_CODE]```javascript\nconst scene = new Engine();\n```\n[/INSERT_CODE]\n"
    "[RUN_SCENE]"
)
CUT_OFF = (
    "Here is a camera setup for your scene, with a target at the origin.\n"
    "[INSERT_CODE]```javascript\n"
    "const camera = new BABYLON"
)
PROSE = (
    "A scene graph organises every object you render into a tree of parent and "
    "child nodes, which keeps transforms simple."
)

S = PipelineState


def _request(message="Make a spinning box", **kwargs):
    return TurnRequest(
        system_prompt="You write Babylon.js scenes.",
        user_message=message,
        model_id="test-model",
        **kwargs,
    )


def _pipeline(adapter, sleep, config=None, **kwargs):
    return ResponsePipeline(adapter, config=config or FrozenConfig(), sleep=sleep, **kwargs)


# --- Happy path ---


@pytest.mark.asyncio
async def test_complete_response_reaches_ready(no_sleep, complete_response):
    adapter = ScriptedAdapter(complete_response)
    pipeline = _pipeline(adapter, no_sleep)

    result = await pipeline.handle(_request())

    assert isinstance(result, Success)
    turn = result.value
    assert turn.attempts == 1
    assert turn.is_complete
    assert turn.run_requested is True
    assert turn.extraction.strategy_id is StrategyId.STRICT_TAGGED_FENCED
    assert turn.extracted_code.startswith("const createScene")
    assert "[RUN_SCENE]" not in turn.user_visible_text
    assert "The box sits in the middle" in turn.user_visible_text
    assert pipeline.transitions == [
        S.IDLE,
        S.REQUESTING,
        S.ACCUMULATING,
        S.VALIDATING,
        S.EXTRACTING_CODE,
        S.SANITIZING,
        S.READY,
    ]
    assert no_sleep.delays == []


@pytest.mark.asyncio
async def test_request_fields_are_forwarded_to_provider(no_sleep, complete_response):
    adapter = ScriptedAdapter(complete_response)
    sampling = SamplingParams(temperature=0.2, top_p=0.5, max_tokens=512)

    await _pipeline(adapter, no_sleep).handle(_request("Add a sphere", sampling=sampling))

    (call,) = adapter.calls
    assert call["system_prompt"] == "You write Babylon.js scenes."
    assert call["user_message"] == "Add a sphere"
    assert call["model_id"] == "test-model"
    assert call["sampling"] is sampling


# --- Scenarios ---


@pytest.mark.asyncio
async def test_short_tagged_reply_is_surfaced_after_retry(no_sleep):
    adapter = ScriptedAdapter(SCENARIO_A)
    pipeline = _pipeline(adapter, no_sleep)

    result = await pipeline.handle(_request())

    assert isinstance(result, Success)
    turn = result.value
    assert adapter.call_count == 2
    assert turn.attempts == 2
    assert turn.issues == (IssueTag.TOO_SHORT,)
    assert turn.extraction.strategy_id is StrategyId.STRICT_TAGGED_FENCED
    assert turn.extracted_code == "const scene = new Engine();"
    assert "[" not in turn.extracted_code
    assert turn.run_requested is True
    assert no_sleep.delays == [2.0]
    assert pipeline.transitions[4] is S.RETRYING


@pytest.mark.asyncio
async def test_empty_replies_fail_after_one_retry(no_sleep):
    adapter = ScriptedAdapter("")
    pipeline = _pipeline(adapter, no_sleep)

    result = await pipeline.handle(_request())

    assert isinstance(result, Failure)
    assert isinstance(result.error, EmptyResponseError)
    assert adapter.call_count == 2
    assert no_sleep.delays == [2.0]
    assert pipeline.state is S.FAILED
    assert S.EXTRACTING_CODE not in pipeline.transitions


@pytest.mark.asyncio
async def test_empty_final_attempt_fails_despite_earlier_short_reply(no_sleep):
    adapter = ScriptedAdapter("short", "")
    pipeline = _pipeline(adapter, no_sleep)

    result = await pipeline.handle(_request())

    assert isinstance(result, Failure)
    assert isinstance(result.error, EmptyResponseError)
    assert adapter.call_count == 2
    assert no_sleep.delays == [2.0]
    assert pipeline.state is S.FAILED
    assert S.EXTRACTING_CODE not in pipeline.transitions


@pytest.mark.asyncio
async def test_cut_off_reply_triggers_retry(no_sleep, complete_response):
    adapter = ScriptedAdapter(CUT_OFF, complete_response)

    result = await _pipeline(adapter, no_sleep).handle(_request())

    assert isinstance(result, Success)
    assert adapter.call_count == 2
    assert result.value.is_complete
    assert result.value.attempts == 2


@pytest.mark.asyncio
async def test_hyphenated_builder_is_corrected_in_result(no_sleep):
    reply = (
        "Here is your box, placed at the centre of the scene.\n"
        "[INSERT_CODE]```javascript\n"
        'const box = BABYLON.Mesh-Builder.CreateBox("box", {size: 2}, scene);\n'
        "```[/INSERT_CODE]\n[RUN_SCENE]"
    )

    result = await _pipeline(ScriptedAdapter(reply), no_sleep).handle(_request())

    turn = result.value
    assert turn.extracted_code == (
        'const box = BABYLON.MeshBuilder.CreateBox("box", {size: 2}, scene);'
    )
    assert turn.corrections == ("mesh_builder_name",)


@pytest.mark.asyncio
async def test_stall_is_retried_as_transient(no_sleep, fast_config, complete_response):
    adapter = ScriptedAdapter(Stall(before="[INSERT_CODE]```javascript\n"), complete_response)

    result = await _pipeline(adapter, no_sleep, fast_config).handle(_request())

    assert isinstance(result, Success)
    assert adapter.call_count == 2
    assert no_sleep.delays == [2.0]


@pytest.mark.asyncio
async def test_repeated_stall_fails_with_stall_timeout(no_sleep, fast_config):
    adapter = ScriptedAdapter(Stall(before="partial"))
    pipeline = _pipeline(adapter, no_sleep, fast_config)

    result = await pipeline.handle(_request())

    assert isinstance(result, Failure)
    assert isinstance(result.error, StallTimeoutError)
    assert result.error.received_chars == len("partial")
    assert adapter.call_count == 2
    assert pipeline.state is S.FAILED


# --- Error handling ---


@pytest.mark.asyncio
async def test_configuration_error_fails_without_retry(no_sleep):
    error = ConfigurationError("API key not configured for the chat provider")
    adapter = ScriptedAdapter(error)

    result = await _pipeline(adapter, no_sleep).handle(_request())

    assert isinstance(result, Failure)
    assert result.error is error
    assert adapter.call_count == 1
    assert no_sleep.delays == []


@pytest.mark.asyncio
async def test_unauthorized_fails_without_retry(no_sleep):
    adapter = ScriptedAdapter(TransportError("HTTP 401 unauthorized", status_code=401))

    result = await _pipeline(adapter, no_sleep, FrozenConfig(max_retries=5)).handle(
        _request()
    )

    assert isinstance(result, Failure)
    assert result.error.status_code == 401
    assert adapter.call_count == 1


@pytest.mark.asyncio
async def test_unexpected_adapter_exception_is_wrapped(no_sleep):
    adapter = ScriptedAdapter(KeyError("choices"))

    result = await _pipeline(adapter, no_sleep).handle(_request())

    assert isinstance(result, Failure)
    assert isinstance(result.error, TransportError)
    assert "Provider call failed" in str(result.error)
    assert isinstance(result.error.__cause__, KeyError)


@pytest.mark.asyncio
async def test_earlier_reply_survives_later_client_error(no_sleep):
    adapter = ScriptedAdapter(SCENARIO_A, TransportError("HTTP 403 forbidden"))

    result = await _pipeline(adapter, no_sleep).handle(_request())

    assert isinstance(result, Success)
    assert result.value.extracted_code == "const scene = new Engine();"
    assert result.value.attempts == 2


@pytest.mark.asyncio
async def test_reply_without_code_still_completes(no_sleep):
    pipeline = _pipeline(ScriptedAdapter(PROSE), no_sleep)

    result = await pipeline.handle(_request("What is a scene graph?"))

    assert isinstance(result, Success)
    turn = result.value
    assert turn.extracted_code is None
    assert turn.has_code is False
    assert isinstance(turn.extraction_error, ExtractionFailure)
    assert turn.issues == (IssueTag.MISSING_DOMAIN_MARKERS,)
    assert turn.user_visible_text == PROSE
    assert S.SANITIZING not in pipeline.transitions
    assert pipeline.state is S.READY


# --- Lifecycle ---


@pytest.mark.asyncio
async def test_pipeline_is_single_use(no_sleep, complete_response):
    pipeline = _pipeline(ScriptedAdapter(complete_response), no_sleep)
    await pipeline.handle(_request())

    with pytest.raises(RuntimeError, match="single-use"):
        await pipeline.handle(_request())


@pytest.mark.asyncio
async def test_cancellation_propagates_and_fails_turn(no_sleep):
    pipeline = _pipeline(ScriptedAdapter(Stall(before="[INSERT_CODE]")), no_sleep)

    task = asyncio.create_task(pipeline.handle(_request()))
    await asyncio.sleep(0.01)
    task.cancel()

    with pytest.raises(asyncio.CancelledError):
        await task
    assert pipeline.state is S.FAILED


@pytest.mark.asyncio
async def test_retry_budget_is_turn_scoped(no_sleep):
    adapter = ScriptedAdapter("", "", "", "")

    first = await _pipeline(adapter, no_sleep).handle(_request())
    second = await _pipeline(adapter, no_sleep).handle(_request())

    assert isinstance(first, Failure)
    assert isinstance(second, Failure)
    assert adapter.call_count == 4


@pytest.mark.asyncio
async def test_telemetry_records_turn_metrics(monkeypatch, no_sleep):
    monkeypatch.setenv("SCENECODE_TELEMETRY", "1")
    reporter = InMemoryReporter()
    pipeline = _pipeline(
        ScriptedAdapter(SCENARIO_A), no_sleep, telemetry=TelemetryContext(reporter)
    )

    await pipeline.handle(_request())

    assert reporter.total("pipeline.turn.retries") == 1
    assert len(reporter.timings["pipeline.turn.attempt"]) == 2
    assert "pipeline.turn" in reporter.timings
    assert "pipeline.turn.extraction_strategy" in reporter.metrics
    assert "Telemetry Report" in reporter.get_report()


# --- Display text ---


@pytest.mark.parametrize(
    ("text", "expected"),
    [
        ("Done!\n[RUN_SCENE]", "Done!"),
        ("A\n\n\n\nB", "A\n\nB"),
        ("Here:\n```js\nconst a = 1;", "Here:\n```js\nconst a = 1;\n```"),
        (
            "[INSERT_CODE]```js\nx();\n```[/INSERT_CODE]",
            "```js\nx();\n```",
        ),
    ],
)
def test_user_visible_text(text, expected):
    assert user_visible_text(text) == expected
