"""Command-line tools for inspecting responses and trying the pipeline.

Usage:
    scenecode inspect response.txt [--json]
    scenecode chat "Make a spinning red cube" [--code scene.js]
    scenecode config [--json]
"""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
from pathlib import Path
import sys
from typing import Any

from scenecode.config import ConfigFileError, FrozenConfig, resolve_config
from scenecode.config.introspection import get_config_info, print_config
from scenecode.core.types import Failure
from scenecode.pipeline.adapters.openai_compat import OpenAICompatibleAdapter
from scenecode.pipeline.errors import describe_error
from scenecode.pipeline.orchestrator import user_visible_text
from scenecode.prompts import LIBRARIES, get_library
from scenecode.response import CodeExtractor, CodeSanitizer, ResponseValidator
from scenecode.session import ChatSession

# ruff: noqa: T201


def inspect_response(text: str, *, min_length: int) -> dict[str, Any]:
    """Run validation, extraction and sanitization over a saved response."""
    verdict = ResponseValidator(min_length).validate(text)
    attempt, diagnostics = CodeExtractor().extract_with_diagnostics(text)
    report: dict[str, Any] = {
        "chars": len(text),
        "complete": verdict.is_complete,
        "issues": [tag.value for tag in verdict.issues],
        "strategies_tried": [s.value for s in diagnostics.attempted],
        "strategy": attempt.strategy_id.value if attempt else None,
        "confidence": attempt.confidence.value if attempt else None,
        "code": None,
        "corrections": [],
        "user_visible_text": user_visible_text(text),
    }
    if attempt is not None:
        sanitized = CodeSanitizer().apply(attempt.raw_payload)
        report["code"] = sanitized.code
        report["corrections"] = list(sanitized.corrections)
    return report


def _read_input(source: str) -> str:
    if source == "-":
        return sys.stdin.read()
    return Path(source).read_text(encoding="utf-8")


def _print_report(report: dict[str, Any]) -> None:
    print(f"Length:     {report['chars']} chars")
    print(f"Complete:   {report['complete']}")
    print(f"Issues:     {', '.join(report['issues']) or 'none'}")
    print(f"Strategy:   {report['strategy'] or 'none'} ({report['confidence']})")
    print(f"Corrected:  {', '.join(report['corrections']) or 'nothing'}")
    if report["code"]:
        print("\n--- code ---")
        print(report["code"])


def _load_config(overrides: dict[str, Any] | None = None) -> FrozenConfig | None:
    try:
        return resolve_config(overrides).to_frozen()
    except (ConfigFileError, ValueError) as e:
        # pydantic's ValidationError is a ValueError
        print(f"Configuration error: {e}", file=sys.stderr)
        return None


def _cmd_inspect(args: argparse.Namespace) -> int:
    try:
        text = _read_input(args.file)
    except OSError as e:
        print(f"Cannot read {args.file}: {e}", file=sys.stderr)
        return 2
    min_length = args.min_length
    if min_length is None:
        config = _load_config()
        if config is None:
            return 2
        min_length = config.min_response_length
    report = inspect_response(text, min_length=min_length)
    if args.json:
        print(json.dumps(report, indent=2))
    else:
        _print_report(report)
    return 0 if report["code"] else 1


def _cmd_chat(args: argparse.Namespace) -> int:
    config = _load_config({"model": args.model} if args.model else None)
    if config is None:
        return 2
    try:
        current_code = _read_input(args.code) if args.code else None
    except OSError as e:
        print(f"Cannot read {args.code}: {e}", file=sys.stderr)
        return 2
    session = ChatSession(
        OpenAICompatibleAdapter.from_config(config),
        config,
        library=get_library(args.library),
    )
    result = asyncio.run(session.send_message(args.message, current_code))
    if isinstance(result, Failure):
        print(describe_error(result.error), file=sys.stderr)
        return 1
    turn = result.value
    print(turn.user_visible_text)
    if turn.extracted_code:
        print("\n--- extracted code ---")
        print(turn.extracted_code)
    return 0


def _cmd_config(args: argparse.Namespace) -> int:
    if args.json:
        print(json.dumps(get_config_info(), indent=2))
        return 0
    return print_config()


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="scenecode",
        description="Inspect LLM scene responses and run the extraction pipeline",
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Debug logging")
    sub = parser.add_subparsers(dest="command", required=True)

    inspect_p = sub.add_parser("inspect", help="Analyse a saved response")
    inspect_p.add_argument("file", help="Response text file, or - for stdin")
    inspect_p.add_argument("--json", action="store_true", help="Output JSON")
    inspect_p.add_argument(
        "--min-length", type=int, default=None, help="Override minimum length"
    )
    inspect_p.set_defaults(func=_cmd_inspect)

    chat_p = sub.add_parser("chat", help="Send one message to the configured model")
    chat_p.add_argument("message")
    chat_p.add_argument("--code", help="File with the current scene code")
    chat_p.add_argument("--model", help="Override the configured model")
    chat_p.add_argument(
        "--library", choices=sorted(LIBRARIES), default="babylonjs"
    )
    chat_p.set_defaults(func=_cmd_chat)

    config_p = sub.add_parser("config", help="Show the effective configuration")
    config_p.add_argument("--json", action="store_true", help="Output JSON")
    config_p.set_defaults(func=_cmd_config)
    return parser


def main(argv: list[str] | None = None) -> None:
    """CLI entry point."""
    args = build_parser().parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )
    sys.exit(args.func(args))
