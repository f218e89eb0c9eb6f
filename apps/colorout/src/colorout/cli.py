from __future__ import annotations

import argparse
import logging
import sys
from collections.abc import Sequence

from colorout.config import load_settings
from colorout.errors import ConfigError, TooManyTasksError
from colorout.palette import default_palette
from colorout.runner import run_tasks

logger = logging.getLogger("colorout")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="colorout",
        description="Run shell commands concurrently and color their output by task.",
    )
    parser.add_argument("commands", nargs="+", metavar="COMMAND", help="shell command to run as a separate task")
    parser.add_argument(
        "--fail",
        action="store_true",
        default=None,
        help="cancel all other tasks when any task fails (default: env COLOROUT_FAIL or off)",
    )
    parser.add_argument("--shell", default=None, help="shell used to run commands (default: env COLOROUT_SHELL or bash)")
    parser.add_argument(
        "--propagate-failure",
        action="store_true",
        help="exit with status 1 when any task did not succeed",
    )
    parser.add_argument("--log-level", default=None, help="diagnostics log level (default: env COLOROUT_LOG_LEVEL or WARNING)")
    return parser


def main(argv: Sequence[str] | None = None) -> int:
    args = build_parser().parse_args(argv)

    try:
        settings = load_settings(shell=args.shell, fail_fast=args.fail, log_level=args.log_level)
    except ConfigError as exc:
        print(f"colorout: {exc}", file=sys.stderr)
        return 2

    logging.basicConfig(
        level=settings.log_level_number,
        format="%(levelname)s %(name)s: %(message)s",
        stream=sys.stderr,
    )

    palette = default_palette()
    try:
        report = run_tasks(
            args.commands,
            stdout=sys.stdout.buffer,
            stderr=sys.stderr.buffer,
            palette=palette,
            settings=settings,
        )
    except TooManyTasksError as exc:
        logger.critical("%s", exc)
        return 1
    except KeyboardInterrupt:
        return 130

    if args.propagate_failure and not report.ok:
        return 1
    return 0
