"""Completeness checks for accumulated responses.

The validator is a table of independent rules. Each rule looks at the whole
response and contributes at most one ``IssueTag``; the verdict lists every
tag that fired, in table order. Only the empty check short-circuits.
"""

from __future__ import annotations

from collections.abc import Callable
import dataclasses
import logging
import re

from scenecode.constants import (
    ABRUPT_ENDING_WINDOW,
    FENCE,
    FENCE_LANGUAGES,
    INSERT_CODE_CLOSE,
    INSERT_CODE_OPEN,
    MIN_RESPONSE_LENGTH,
)
from scenecode.core.types import IssueTag, ValidationVerdict

log = logging.getLogger(__name__)

DOMAIN_MARKERS: tuple[str, ...] = (
    *(FENCE + lang for lang in FENCE_LANGUAGES),
    FENCE,
    INSERT_CODE_OPEN,
    "BABYLON",
    "createScene",
)
TRUNCATION_KEYWORDS: tuple[str, ...] = ("truncated", "incomplete", "cut off", "...", "…")
TERMINAL_CHARS = frozenset(".!?}]")

# A fence opener whose info string is exactly one of the tagged languages,
# so "```json" or "```jsx" are not counted as "```js".
_TAGGED_FENCE = re.compile(
    "```(?:" + "|".join(sorted(FENCE_LANGUAGES, key=len, reverse=True)) + r")(?![\w-])"
)

Predicate = Callable[[str], bool]


@dataclasses.dataclass(frozen=True, slots=True)
class ValidationRule:
    """One completeness check: ``predicate`` returns True when the issue is present."""

    tag: IssueTag
    predicate: Predicate


def has_unclosed_tag_block(text: str) -> bool:
    return INSERT_CODE_OPEN in text and INSERT_CODE_CLOSE not in text


def has_unbalanced_fence(text: str) -> bool:
    """True when tagged openers outnumber the other fences or the total is odd."""
    total = text.count(FENCE)
    tagged = len(_TAGGED_FENCE.findall(text))
    return tagged > total - tagged or total % 2 == 1


def has_truncation_marker(text: str) -> bool:
    lowered = text.lower()
    return any(keyword in lowered for keyword in TRUNCATION_KEYWORDS)


def ends_abruptly(text: str, window: int = ABRUPT_ENDING_WINDOW) -> bool:
    return not TERMINAL_CHARS.intersection(text[-window:])


def lacks_domain_markers(text: str) -> bool:
    return not any(marker in text for marker in DOMAIN_MARKERS)


class ResponseValidator:
    """Classifies a response as complete or not.

    Args:
        min_length: Responses shorter than this are tagged TOO_SHORT.
        rules: Optional replacement rule table. The empty check always runs
            first and is not part of the table.
    """

    def __init__(
        self,
        min_length: int = MIN_RESPONSE_LENGTH,
        rules: tuple[ValidationRule, ...] | None = None,
    ) -> None:
        if min_length < 0:
            raise ValueError("min_length cannot be negative")
        self.min_length = min_length
        self.rules = rules if rules is not None else self.default_rules(min_length)

    @staticmethod
    def default_rules(min_length: int) -> tuple[ValidationRule, ...]:
        return (
            ValidationRule(IssueTag.TOO_SHORT, lambda text: len(text) < min_length),
            ValidationRule(IssueTag.MISSING_DOMAIN_MARKERS, lacks_domain_markers),
            ValidationRule(IssueTag.UNCLOSED_TAG_BLOCK, has_unclosed_tag_block),
            ValidationRule(IssueTag.UNBALANCED_FENCE, has_unbalanced_fence),
            ValidationRule(IssueTag.TRUNCATION_MARKER, has_truncation_marker),
            ValidationRule(IssueTag.ABRUPT_ENDING, ends_abruptly),
        )

    def validate(self, text: str) -> ValidationVerdict:
        """Run every rule against ``text`` and return the verdict."""
        if not text:
            log.debug("Validation: empty response")
            return ValidationVerdict.from_issues((IssueTag.EMPTY,))

        verdict = ValidationVerdict.from_issues(
            rule.tag for rule in self.rules if rule.predicate(text)
        )
        if verdict.issues:
            log.debug(
                "Validation: %d chars, issues=%s",
                len(text),
                [tag.value for tag in verdict.issues],
            )
        return verdict
