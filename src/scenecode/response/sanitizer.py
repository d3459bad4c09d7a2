"""Deterministic repair of extracted scene code.

The sanitizer removes chat control markers and fence debris, rewrites API
names models commonly get wrong, drops canvas/engine/render-loop boilerplate
that would fight the host page, normalizes blank lines and trims closers the
model left dangling at the end.

``sanitize`` is total and idempotent: the passes are re-run until the code
stops changing, so ``sanitize(sanitize(x)) == sanitize(x)`` for any input.
"""

from __future__ import annotations

from collections.abc import Callable
import dataclasses
import logging
import re

from scenecode.constants import CONTROL_MARKERS, FENCE
from scenecode.core.types import SanitizationResult

log = logging.getLogger(__name__)

_MAX_PASSES = 5


@dataclasses.dataclass(frozen=True, slots=True)
class Correction:
    """A named regex rewrite."""

    name: str
    pattern: re.Pattern[str]
    replacement: str

    def apply(self, code: str) -> tuple[str, bool]:
        fixed, n = self.pattern.subn(self.replacement, code)
        return fixed, n > 0


def _c(name: str, pattern: str, replacement: str, flags: int = 0) -> Correction:
    return Correction(name, re.compile(pattern, flags), replacement)


API_CORRECTIONS: tuple[Correction, ...] = (
    _c("mesh_builder_name", r"\bMesh-Builder\b", "MeshBuilder"),
    _c("create_cube", r"\bMeshBuilder\.CreateCube\b", "MeshBuilder.CreateBox"),
    _c("create_ring", r"\bMeshBuilder\.CreateRing\b", "MeshBuilder.CreateTorus"),
    _c(
        "abstract_material",
        r"\bnew\s+BABYLON\.Material\s*\(",
        "new BABYLON.StandardMaterial(",
    ),
    _c("abstract_camera", r"\bnew\s+BABYLON\.Camera\s*\(", "new BABYLON.FreeCamera("),
    _c(
        "abstract_light",
        r"\bnew\s+BABYLON\.Light\s*\(",
        "new BABYLON.HemisphericLight(",
    ),
)

BOILERPLATE: tuple[Correction, ...] = (
    _c(
        "canvas_creation",
        r"^[ \t]*(?:(?:const|let|var)\s+)?\w+\s*=\s*"
        r"document\.createElement\(\s*[\"'`]canvas[\"'`]\s*\)[ \t]*;?[ \t]*(?:\n|$)",
        "",
        re.MULTILINE,
    ),
    _c(
        "canvas_append",
        r"^[ \t]*document\.body\.appendChild\(\s*canvas\s*\)[ \t]*;?[ \t]*(?:\n|$)",
        "",
        re.MULTILINE,
    ),
    _c(
        "engine_creation",
        r"^[ \t]*(?:(?:const|let|var)\s+)?\w+\s*=\s*"
        r"new\s+BABYLON\.Engine\s*\([^;\n]*\)[ \t]*;?[ \t]*(?:\n|$)",
        "",
        re.MULTILINE,
    ),
)

_RENDER_LOOP = re.compile(r"^[ \t]*[\w.]*\w\.runRenderLoop\s*\(", re.MULTILINE)
_FENCE_LINE = re.compile(r"^[ \t]*```[\w+#.-]*[ \t]*(?:\n|$)", re.MULTILINE)
_BLANK_RUN = re.compile(r"\n(?:[ \t]*\n){2,}")
_CLOSERS = {")": "(", "]": "[", "}": "{"}
# Steps that only normalize layout; not reported as corrections
_NORMALIZERS = frozenset({"blank_lines", "whitespace"})


def strip_markers(code: str) -> str:
    """Remove control markers and fence delimiters until none remain."""
    previous = None
    while code != previous:
        previous = code
        for marker in CONTROL_MARKERS:
            code = code.replace(marker, "")
        code = _FENCE_LINE.sub("", code).replace(FENCE, "")
    return code


def _matching_paren(code: str, open_index: int) -> int | None:
    """Index of the ``)`` closing the ``(`` at ``open_index``.

    String literals and comments are skipped so a ``)`` or an apostrophe in
    them does not throw off the count.
    """
    depth = 0
    quote: str | None = None
    i = open_index
    while i < len(code):
        ch = code[i]
        if quote:
            if ch == "\\":
                i += 1
            elif ch == quote:
                quote = None
        elif code.startswith("//", i):
            newline = code.find("\n", i)
            i = len(code) if newline == -1 else newline
            continue
        elif code.startswith("/*", i):
            end = code.find("*/", i + 2)
            i = len(code) if end == -1 else end + 2
            continue
        elif ch in "\"'`":
            quote = ch
        elif ch == "(":
            depth += 1
        elif ch == ")":
            depth -= 1
            if depth == 0:
                return i
        i += 1
    return None


def remove_render_loops(code: str) -> tuple[str, bool]:
    """Drop ``<engine>.runRenderLoop(...)`` statements with balanced arguments."""
    removed = False
    pos = 0
    while match := _RENDER_LOOP.search(code, pos):
        close = _matching_paren(code, match.end() - 1)
        if close is None:
            # Unbalanced call; leave it for the model's next attempt
            pos = match.end()
            continue
        end = close + 1
        while end < len(code) and code[end] in " \t;":
            end += 1
        if end < len(code) and code[end] == "\n":
            end += 1
        code = code[: match.start()] + code[end:]
        pos = match.start()
        removed = True
    return code, removed


def collapse_blank_lines(code: str) -> str:
    return _BLANK_RUN.sub("\n\n", code)


def trim_orphan_closers(code: str) -> str:
    """Strip trailing closers that have no opener anywhere in the code."""
    code = code.strip()
    while code and code[-1] in _CLOSERS:
        closer = code[-1]
        if code.count(closer) <= code.count(_CLOSERS[closer]):
            break
        code = code[:-1].rstrip()
    return code


class CodeSanitizer:
    """Applies the repair passes in order and records which corrections fired."""

    def __init__(
        self,
        corrections: tuple[Correction, ...] = API_CORRECTIONS,
        boilerplate: tuple[Correction, ...] = BOILERPLATE,
    ) -> None:
        self.corrections = corrections
        self.boilerplate = boilerplate

    def sanitize(self, payload: str) -> str:
        """Return the repaired code for ``payload``."""
        return self.apply(payload).code

    def apply(self, payload: str) -> SanitizationResult:
        """Repair ``payload`` and report the names of the corrections applied."""
        fired: dict[str, None] = {}
        code = payload
        for _ in range(_MAX_PASSES):
            fixed = self._pass(code, fired)
            if fixed == code:
                break
            code = fixed

        if fired:
            log.debug("Sanitizer applied: %s", ", ".join(fired))
        return SanitizationResult(code=code, corrections=tuple(fired))

    def _pass(self, code: str, fired: dict[str, None]) -> str:
        steps: tuple[tuple[str, Callable[[str], str]], ...] = (
            ("control_markers", strip_markers),
            *((c.name, self._correction(c)) for c in self.corrections),
            *((c.name, self._correction(c)) for c in self.boilerplate),
            ("render_loop", lambda text: remove_render_loops(text)[0]),
            ("blank_lines", collapse_blank_lines),
            ("whitespace", str.strip),
            ("orphan_closers", trim_orphan_closers),
        )
        for name, step in steps:
            fixed = step(code)
            if fixed != code:
                if name not in _NORMALIZERS:
                    fired[name] = None
                code = fixed
        return code

    @staticmethod
    def _correction(correction: Correction) -> Callable[[str], str]:
        return lambda text: correction.apply(text)[0]
