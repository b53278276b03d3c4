# src/main.py — v1
"""CLI entry point — plan, cache status, cache clear commands.

Usage:
    codebrief plan [--only 3,5]
    codebrief cache status
    codebrief cache clear
"""

from __future__ import annotations

import argparse
import asyncio
import logging
import sys
from pathlib import Path
from typing import TYPE_CHECKING

from codebrief.version import __version__

if TYPE_CHECKING:
    from codebrief.config.settings import Settings

logger = logging.getLogger(__name__)


def main(argv: list[str] | None = None) -> int:
    """Main CLI entry point."""
    parser = _build_parser()
    args = parser.parse_args(argv)

    if not hasattr(args, "func"):
        parser.print_help()
        return 1

    from codebrief.config.settings import ConfigurationError, load_settings
    from codebrief.logging.logger import setup_logging

    try:
        settings = load_settings(**_overrides(args))
    except (ConfigurationError, ValueError) as exc:
        print(f"Invalid configuration: {exc}", file=sys.stderr)
        return 2

    setup_logging(
        level="DEBUG" if args.verbose else settings.log_level,
        log_format=settings.log_format,
        log_file=str(settings.log_file) if settings.log_file else None,
        rotation=settings.log_rotation,
        retention=settings.log_retention,
    )

    try:
        return asyncio.run(args.func(args, settings))
    except KeyboardInterrupt:
        logger.info("Interrupted by user")
        return 130
    except Exception as exc:
        logger.error("Fatal error: %s", exc, exc_info=args.verbose)
        return 1


def _build_parser() -> argparse.ArgumentParser:
    """Build CLI argument parser."""
    parser = argparse.ArgumentParser(
        prog="codebrief",
        description=f"codebrief v{__version__} — Multi-round codebase analyzer",
    )
    parser.add_argument(
        "--version", action="version", version=f"%(prog)s {__version__}",
    )
    parser.add_argument(
        "-v", "--verbose", action="store_true",
        help="Enable debug logging",
    )
    parser.add_argument(
        "--project-root", type=Path, default=None,
        help="Project root (default: PROJECT_ROOT or current directory)",
    )

    subparsers = parser.add_subparsers(dest="command")

    # --- plan ---
    p_plan = subparsers.add_parser(
        "plan", help="Show the execution waves for the selected rounds",
    )
    p_plan.add_argument(
        "--only", default=None,
        help="Comma-separated round ids (dependencies are added)",
    )
    p_plan.set_defaults(func=_cmd_plan)

    # --- cache ---
    p_cache = subparsers.add_parser("cache", help="Inspect or clear the round cache")
    cache_sub = p_cache.add_subparsers(dest="cache_command", required=True)
    cache_sub.add_parser("status", help="List rounds with a cached result").set_defaults(
        func=_cmd_cache_status
    )
    cache_sub.add_parser("clear", help="Delete all cached round results").set_defaults(
        func=_cmd_cache_clear
    )

    return parser


def _overrides(args: argparse.Namespace) -> dict[str, object]:
    overrides: dict[str, object] = {}
    if args.project_root is not None:
        overrides["project_root"] = args.project_root
    if getattr(args, "only", None):
        overrides["only_rounds"] = args.only
    return overrides


async def _cmd_plan(args: argparse.Namespace, settings: Settings) -> int:
    """Print the waves that a run would execute."""
    from codebrief.config.rounds import round_names, select_definitions
    from codebrief.pipeline.dag_builder import build_plan

    try:
        definitions = select_definitions(settings.only_rounds_set)
    except ValueError as exc:
        logger.error("%s", exc)
        return 2

    plan = build_plan(definitions)
    names = round_names(definitions)
    print(f"\nExecution plan ({plan.total_rounds} rounds):")
    for idx, wave in enumerate(plan.waves):
        labels = ", ".join(f"{r} {names[r]}" for r in wave)
        print(f"  Wave {idx}: {labels}")
    return 0


async def _cmd_cache_status(args: argparse.Namespace, settings: Settings) -> int:
    """List rounds that have a cache entry."""
    from codebrief.cache.cache_factory import create_round_cache
    from codebrief.config.rounds import round_names

    cache = create_round_cache(settings)
    try:
        completed = await cache.list_completed()
    finally:
        cache.close()
    names = round_names()
    location = cache.store.location
    print(f"\nRound cache ({settings.cache_backend}{f', {location}' if location else ''}):")
    if not completed:
        print("  No cached rounds.")
        return 0
    for round_id in completed:
        print(f"  Round {round_id}: {names.get(round_id, 'unknown round')}")
    return 0


async def _cmd_cache_clear(args: argparse.Namespace, settings: Settings) -> int:
    """Remove every cached round result."""
    from codebrief.cache.cache_factory import create_round_cache

    cache = create_round_cache(settings)
    try:
        count = len(await cache.list_completed())
        await cache.clear()
    finally:
        cache.close()
    print(f"Cleared {count} cached round(s).")
    return 0


if __name__ == "__main__":
    sys.exit(main())
