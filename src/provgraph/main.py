#!/usr/bin/env python3

# ruff: noqa: T201

from __future__ import annotations

import argparse
import logging
import sys
from dataclasses import replace
from pathlib import Path
from signal import SIGINT, signal
from typing import TYPE_CHECKING

from dotenv import load_dotenv

from provgraph.app import run_pipeline
from provgraph.common import configure_logging
from provgraph.config import ConfigurationError, get_resolver_config

if TYPE_CHECKING:
    from collections.abc import Sequence
    from types import FrameType

    from provgraph.config import ResolverConfig


def _parse_args(argv: Sequence[str]) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Build a dependency result from a definition file and resolve its provenance"
    )
    parser.add_argument("definition_file", type=Path, help="JSON file describing the project")
    parser.add_argument(
        "-o",
        "--output",
        type=Path,
        default=Path("result.json"),
        help="Where to write the result document (default: %(default)s)",
    )
    parser.add_argument(
        "--skip-resolution",
        action="store_true",
        help="Only assemble the dependency graph, do not resolve provenance",
    )
    parser.add_argument("--max-workers", type=int, help="Number of parallel resolutions")
    parser.add_argument(
        "--timeout", type=float, help="Seconds after which resolving one identifier gives up"
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging")
    return parser.parse_args(list(argv))


def _build_resolver_config(args: argparse.Namespace) -> ResolverConfig:
    config = get_resolver_config()
    if args.max_workers is not None:
        config = replace(config, max_workers=args.max_workers)
    if args.timeout is not None:
        config = replace(config, timeout_seconds=args.timeout)
    return config


def main(argv: Sequence[str] | None = None) -> None:
    """Main application entry point."""
    try:
        parsed_args = _parse_args(argv or sys.argv[1:])
        resolver_config = _build_resolver_config(parsed_args)
    except (ValueError, ConfigurationError) as exc:
        print(f"Error: {exc}", file=sys.stderr)
        sys.exit(2)

    configure_logging(level=logging.DEBUG if parsed_args.verbose else logging.INFO)

    try:
        run_pipeline(
            parsed_args.definition_file,
            parsed_args.output,
            resolve=not parsed_args.skip_resolution,
            resolver_config=resolver_config,
        )
    except Exception as e:  # noqa: BLE001
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)


def sigint_handler(_signal_received: int, _frame: FrameType | None) -> None:
    """Handle SIGINT (Ctrl+C) gracefully."""
    print("\nClosed by user (Ctrl+C)")
    sys.exit(0)


def run() -> None:
    load_dotenv()
    signal(SIGINT, sigint_handler)
    main()


if __name__ == "__main__":
    run()
