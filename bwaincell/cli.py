"""CLI argument parsing and main entry point.

* ``bwaincell-pipeline check-config`` - validate and print the effective configuration.
* ``bwaincell-pipeline patterns``     - list the input-rejection pattern table.
"""

from __future__ import annotations

import argparse
import sys
from typing import List, Optional

from bwaincell.config.environment import PROFILES, current_environment
from bwaincell.config.loader import dump_config, load_middleware_config
from bwaincell.constants import APP_NAME, APP_VERSION
from bwaincell.errors import ConfigurationError
from bwaincell.interactions.middleware.patterns import INPUT_PATTERNS


# ── ``bwaincell-pipeline check-config`` ──────────────────────────────────


def _cmd_check_config(args: argparse.Namespace) -> int:
    env_name = args.env or current_environment()
    try:
        config = load_middleware_config(args.config, environment=env_name)
    except ConfigurationError as exc:
        print(f"❌ Invalid configuration:\n{exc}", file=sys.stderr)
        return 1

    print(f"# environment: {env_name}")
    if args.config:
        print(f"# file: {args.config}")
    print(dump_config(config), end="")
    return 0


# ── ``bwaincell-pipeline patterns`` ──────────────────────────────────────


def _cmd_patterns(args: argparse.Namespace) -> int:
    width = max(len(p.name) for p in INPUT_PATTERNS)
    for pattern in INPUT_PATTERNS:
        if args.category and pattern.category != args.category:
            continue
        print(f"{pattern.name:<{width}}  {pattern.category:<6}  {pattern.regex}")
    return 0


# ── CLI parser construction ──────────────────────────────────────────────


def _build_parser() -> argparse.ArgumentParser:
    """Build the argparse parser with check-config/patterns subcommands."""
    parser = argparse.ArgumentParser(
        prog="bwaincell-pipeline",
        description=f"{APP_NAME} interaction pipeline v{APP_VERSION}",
    )

    subparsers = parser.add_subparsers(dest="command")

    # ── check-config ─────────────────────────────────────────────
    sp_check = subparsers.add_parser(
        "check-config",
        help="Validate the middleware configuration and print the effective values",
    )
    sp_check.add_argument(
        "--config",
        type=str,
        default=None,
        metavar="PATH",
        help="Path to a YAML configuration file (default: $BWAINCELL_CONFIG, if set)",
    )
    sp_check.add_argument(
        "--env",
        type=str,
        default=None,
        choices=sorted(PROFILES),
        help="Environment profile (default: $BWAINCELL_ENV or development)",
    )
    sp_check.set_defaults(func=_cmd_check_config)

    # ── patterns ─────────────────────────────────────────────────
    sp_patterns = subparsers.add_parser(
        "patterns",
        help="List the input patterns that cause validation to reject text",
    )
    sp_patterns.add_argument(
        "--category",
        type=str,
        default=None,
        choices=sorted({p.category for p in INPUT_PATTERNS}),
        help="Only list patterns of this category",
    )
    sp_patterns.set_defaults(func=_cmd_patterns)

    return parser


def main(argv: Optional[List[str]] = None) -> None:
    """Program entry point: parse arguments and dispatch to subcommand."""
    parser = _build_parser()
    args = parser.parse_args(argv)

    if args.command is None:
        parser.print_help()
        sys.exit(1)
    sys.exit(args.func(args))
