import pytest

from scenecode.core.types import Confidence, StrategyId
from scenecode.response.extraction import (
    DEFAULT_STRATEGIES,
    CodeExtractor,
    ExtractionStrategy,
    looks_like_code,
    looks_like_scene,
)

pytestmark = pytest.mark.unit


def test_tagged_closed_fence_wins(complete_response):
    attempt = CodeExtractor().extract(complete_response)

    assert attempt is not None
    assert attempt.strategy_id is StrategyId.STRICT_TAGGED_FENCED
    assert attempt.confidence is Confidence.STRICT
    assert attempt.raw_payload.startswith("const createScene = () => {")
    assert attempt.raw_payload.endswith("const scene = createScene();")


def test_tag_closer_stands_in_for_missing_fence():
    text = (
        "[INSERT_CODE]```javascript\n"
        "const scene = new BABYLON.Scene(engine);\n"
        "[/INSERT_CODE]\n[RUN_SCENE]"
    )

    attempt = CodeExtractor().extract(text)

    assert attempt.strategy_id is StrategyId.STRICT_TAGGED_UNCLOSED
    assert attempt.confidence is Confidence.STRICT
    assert attempt.raw_payload == "const scene = new BABYLON.Scene(engine);"


def test_first_tag_block_is_used():
    text = (
        "[INSERT_CODE]```js\nconst first = 1;\n```[/INSERT_CODE]\n"
        "[INSERT_CODE]```js\nconst second = 2;\n```[/INSERT_CODE]"
    )

    assert CodeExtractor().extract(text).raw_payload == "const first = 1;"


def test_untagged_scene_block_is_lenient():
    text = (
        "Try this:\n```javascript\n"
        "const camera = new BABYLON.ArcRotateCamera();\n```\nEnjoy!"
    )

    attempt = CodeExtractor().extract(text)

    assert attempt.strategy_id is StrategyId.GENERIC_FENCED
    assert attempt.confidence is Confidence.LENIENT
    assert attempt.raw_payload == "const camera = new BABYLON.ArcRotateCamera();"


def test_generic_strategy_skips_blocks_without_scene_hints():
    text = "```\nhello world\n```\nThen:\n```js\nconst mesh = makeMesh();\n```"

    attempt = CodeExtractor().extract(text)

    assert attempt.strategy_id is StrategyId.GENERIC_FENCED
    assert attempt.raw_payload == "const mesh = makeMesh();"


def test_plain_code_block_falls_back_to_ultra_permissive():
    attempt = CodeExtractor().extract("```\nlet total = a + b;\n```")

    assert attempt.strategy_id is StrategyId.ULTRA_PERMISSIVE
    assert attempt.confidence is Confidence.ULTRA_PERMISSIVE
    assert attempt.raw_payload == "let total = a + b;"


@pytest.mark.parametrize(
    "text",
    [
        "",
        "Sure, a cube is just a box with equal sides.",
        "```\nhello world\n```",
        "[INSERT_CODE][/INSERT_CODE]",
    ],
)
def test_no_code_returns_none(text):
    assert CodeExtractor().extract(text) is None


def test_diagnostics_list_every_strategy_tried_in_order():
    attempt, diagnostics = CodeExtractor().extract_with_diagnostics("No code here.")

    assert attempt is None
    assert diagnostics.attempted == [s.id for s in DEFAULT_STRATEGIES]
    assert diagnostics.successful is None


def test_diagnostics_stop_at_first_success(complete_response):
    _, diagnostics = CodeExtractor().extract_with_diagnostics(complete_response)

    assert diagnostics.attempted == [StrategyId.STRICT_TAGGED_FENCED]
    assert diagnostics.successful is StrategyId.STRICT_TAGGED_FENCED


def test_failing_strategy_does_not_hide_later_ones():
    def broken(_text):
        raise RuntimeError("boom")

    extractor = CodeExtractor(
        (
            ExtractionStrategy(StrategyId.STRICT_TAGGED_FENCED, Confidence.STRICT, broken),
            *DEFAULT_STRATEGIES[2:],
        )
    )

    attempt, diagnostics = extractor.extract_with_diagnostics(
        "```js\nconst light = 1;\n```"
    )

    assert attempt.strategy_id is StrategyId.GENERIC_FENCED
    assert diagnostics.errors == {StrategyId.STRICT_TAGGED_FENCED: "boom"}


def test_source_text_is_not_modified(complete_response):
    original = str(complete_response)

    CodeExtractor().extract(complete_response)

    assert complete_response == original


@pytest.mark.parametrize(
    ("code", "scene", "code_like"),
    [
        ("const scene = 1;", True, True),
        ("new THREE.Mesh()", True, False),
        ("let x = 2;", False, True),
        ("hello world", False, False),
    ],
)
def test_heuristics(code, scene, code_like):
    assert looks_like_scene(code) is scene
    assert looks_like_code(code) is code_like
