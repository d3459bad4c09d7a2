"""Configuration introspection for debugging resolution problems."""

import argparse
import json
import sys
from typing import Any

from . import resolve_config
from .audit import summarize_origins
from .types import ResolvedConfig

# ruff: noqa: T201


def get_config_info(profile: str | None = None) -> dict[str, Any]:
    """Structured, redacted view of the effective configuration."""
    try:
        resolved = resolve_config(profile=profile)
    except Exception as e:
        return {
            "status": "invalid",
            "error": str(e),
            "config": None,
            "sources": {},
            "warnings": [],
        }

    config = resolved._asdict()
    config.pop("origin")
    config["api_key"] = "[SET]" if resolved.api_key else "[NOT SET]"
    return {
        "status": "valid",
        "config": config,
        "sources": dict(resolved.origin),
        "source_counts": summarize_origins(resolved.origin),
        "warnings": config_warnings(resolved),
    }


def config_warnings(resolved: ResolvedConfig) -> list[str]:
    """Non-fatal issues worth pointing out."""
    warnings = []
    if not resolved.api_key:
        warnings.append(
            "No API key configured: set SCENECODE_API_KEY before calling a provider"
        )
    if resolved.max_retries == 0:
        warnings.append("Retries disabled: incomplete responses are surfaced as-is")
    if resolved.stall_timeout < 5:
        warnings.append("Stall timeout under 5s: slow models may be cut off")
    if resolved.min_response_length > 1000:
        warnings.append("Minimum response length is high: most replies will retry")
    return warnings


def print_config(profile: str | None = None, *, show_sources: bool = True) -> int:
    """Print the effective configuration. Returns a process exit code."""
    try:
        resolved = resolve_config(profile=profile)
    except Exception as e:
        print(f"Configuration error: {e}", file=sys.stderr)
        return 1

    print("=== Effective Configuration ===")
    print(resolved.audit() if show_sources else str(resolved.to_frozen()))
    warnings = config_warnings(resolved)
    if warnings:
        print("\n=== Warnings ===")
        for warning in warnings:
            print(f"  - {warning}")
    return 0


def main(argv: list[str] | None = None) -> None:
    """CLI entry point for configuration introspection."""
    parser = argparse.ArgumentParser(
        prog="python -m scenecode.config",
        description="Inspect scenecode configuration",
    )
    parser.add_argument("--profile", help="Configuration profile to use")
    parser.add_argument(
        "--no-sources", action="store_true", help="Don't show value origins"
    )
    parser.add_argument("--json", action="store_true", help="Output JSON")
    parser.add_argument(
        "--check",
        action="store_true",
        help="Only check validity (exit code 0=valid, 1=invalid)",
    )
    args = parser.parse_args(argv)

    if args.check:
        info = get_config_info(args.profile)
        sys.exit(0 if info["status"] == "valid" else 1)
    if args.json:
        print(json.dumps(get_config_info(args.profile), indent=2))
        return
    sys.exit(print_config(args.profile, show_sources=not args.no_sources))
