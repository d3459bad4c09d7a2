"""Code extraction from free-form assistant replies.

Strategies are tried in a fixed order, most trusted first, and the first one
that yields a non-empty payload wins:

1. ``[INSERT_CODE]`` block whose fenced code is properly closed
2. ``[INSERT_CODE]`` block whose fence never closes (the tag closes it)
3. Any fenced block that looks like scene code
4. Any fenced block that looks like code at all

The input text is never modified; payloads are stripped copies.
"""

from __future__ import annotations

from collections.abc import Callable
import dataclasses
import logging
import re

from scenecode.constants import FENCE, INSERT_CODE_CLOSE, INSERT_CODE_OPEN
from scenecode.core.types import Confidence, ExtractionAttempt, StrategyId

log = logging.getLogger(__name__)

# Opening fence with an optional info string, up to the end of that line
_FENCE_OPENER = re.compile(r"```[\w+#.-]*[ \t]*\n?")
# Complete fenced blocks anywhere in the text
_FENCED_BLOCK = re.compile(r"```[\w+#.-]*[ \t]*\n?(.*?)```", re.DOTALL)

SCENE_HINTS: tuple[str, ...] = ("scene", "camera", "light", "mesh", "engine", "canvas")
SCENE_IDENTIFIERS: tuple[str, ...] = ("createScene", "BABYLON", "THREE")
CODE_INDICATORS: tuple[str, ...] = ("const ", "function", "var ", "let ", "=", "{", ";")

Extractor = Callable[[str], str | None]


@dataclasses.dataclass(frozen=True, slots=True)
class ExtractionStrategy:
    """A named way of locating code, with the confidence its payloads carry."""

    id: StrategyId
    confidence: Confidence
    extractor: Extractor


@dataclasses.dataclass
class ExtractionDiagnostics:
    """What the extractor tried for one response."""

    attempted: list[StrategyId] = dataclasses.field(default_factory=list)
    successful: StrategyId | None = None
    errors: dict[StrategyId, str] = dataclasses.field(default_factory=dict)


def _tag_block(text: str) -> str | None:
    """Content of the first ``[INSERT_CODE]`` ... ``[/INSERT_CODE]`` pair."""
    start = text.find(INSERT_CODE_OPEN)
    if start == -1:
        return None
    start += len(INSERT_CODE_OPEN)
    end = text.find(INSERT_CODE_CLOSE, start)
    if end == -1:
        return None
    return text[start:end]


def _split_opening_fence(block: str) -> str | None:
    """Body after the block's first fence opener, or None if there is none."""
    match = _FENCE_OPENER.search(block)
    if match is None:
        return None
    return block[match.end() :]


def strict_tagged_fenced(text: str) -> str | None:
    block = _tag_block(text)
    if block is None:
        return None
    body = _split_opening_fence(block)
    if body is None or FENCE not in body:
        return None
    return body[: body.index(FENCE)]


def strict_tagged_unclosed(text: str) -> str | None:
    block = _tag_block(text)
    if block is None:
        return None
    body = _split_opening_fence(block)
    if body is None or FENCE in body:
        return None
    return body


def looks_like_scene(code: str) -> bool:
    lowered = code.lower()
    return any(hint in lowered for hint in SCENE_HINTS) or any(
        ident in code for ident in SCENE_IDENTIFIERS
    )


def looks_like_code(code: str) -> bool:
    return any(indicator in code for indicator in CODE_INDICATORS)


def _first_fenced(text: str, accept: Callable[[str], bool]) -> str | None:
    for match in _FENCED_BLOCK.finditer(text):
        body = match.group(1)
        if body.strip() and accept(body):
            return body
    return None


def generic_fenced(text: str) -> str | None:
    return _first_fenced(text, looks_like_scene)


def ultra_permissive(text: str) -> str | None:
    return _first_fenced(text, looks_like_code)


DEFAULT_STRATEGIES: tuple[ExtractionStrategy, ...] = (
    ExtractionStrategy(
        StrategyId.STRICT_TAGGED_FENCED, Confidence.STRICT, strict_tagged_fenced
    ),
    ExtractionStrategy(
        StrategyId.STRICT_TAGGED_UNCLOSED, Confidence.STRICT, strict_tagged_unclosed
    ),
    ExtractionStrategy(StrategyId.GENERIC_FENCED, Confidence.LENIENT, generic_fenced),
    ExtractionStrategy(
        StrategyId.ULTRA_PERMISSIVE, Confidence.ULTRA_PERMISSIVE, ultra_permissive
    ),
)


class CodeExtractor:
    """Pulls the most trustworthy code payload out of a response."""

    def __init__(self, strategies: tuple[ExtractionStrategy, ...] | None = None):
        self.strategies = strategies if strategies is not None else DEFAULT_STRATEGIES

    def extract(self, text: str) -> ExtractionAttempt | None:
        """Return the first strategy's payload, or None when nothing matches."""
        attempt, _ = self.extract_with_diagnostics(text)
        return attempt

    def extract_with_diagnostics(
        self, text: str
    ) -> tuple[ExtractionAttempt | None, ExtractionDiagnostics]:
        diagnostics = ExtractionDiagnostics()
        if not text:
            return None, diagnostics

        for strategy in self.strategies:
            diagnostics.attempted.append(strategy.id)
            try:
                payload = strategy.extractor(text)
            except Exception as e:
                # A custom strategy failing should not hide the later ones
                diagnostics.errors[strategy.id] = str(e)
                log.debug("Strategy %s raised: %s", strategy.id.value, e)
                continue
            if payload is None or not payload.strip():
                continue

            diagnostics.successful = strategy.id
            log.debug(
                "Extracted %d chars via %s (%s)",
                len(payload.strip()),
                strategy.id.value,
                strategy.confidence.value,
            )
            return (
                ExtractionAttempt(
                    strategy_id=strategy.id,
                    raw_payload=payload.strip(),
                    confidence=strategy.confidence,
                ),
                diagnostics,
            )

        log.debug("No extraction strategy matched (%d chars)", len(text))
        return None, diagnostics
