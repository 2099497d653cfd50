# Copyright 2025 CrownOps Engineering
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
#     http://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.

"""CLI entry point for cargo-phabricator."""

from __future__ import annotations

import argparse
import logging
import os
import sys
from typing import TYPE_CHECKING, Final

from cargo_phabricator import __version__
from cargo_phabricator._internal.error_codes import error_code_for
from cargo_phabricator._internal.exceptions import ConfigurationError
from cargo_phabricator.cli.helpers import echo, register_argument, split_passthrough
from cargo_phabricator.config import (
    BUILD_PHID_ENV,
    CARGO_ENV,
    CONDUIT_TOKEN_ENV,
    PHABRICATOR_URI_ENV,
    build_run_context,
)
from cargo_phabricator.core.model_types import LogComponent, LogFormat, Subcommand
from cargo_phabricator.logging import (
    LOG_FORMAT_ENV,
    LOG_FORMATS,
    LOG_LEVEL_ENV,
    LOG_LEVELS,
    configure_logging,
    structured_extra,
)
from cargo_phabricator.runner import EXIT_FAILURE, run_pipeline
from cargo_phabricator.runtime import resolve_with_precedence

if TYPE_CHECKING:
    from collections.abc import Mapping, Sequence

logger: logging.Logger = logging.getLogger("cargo_phabricator.cli")

PROG: Final[str] = "cargo-phabricator"
CARGO_SUBCOMMAND: Final[str] = "phabricator"

_SUBCOMMAND_HELP: Final[dict[Subcommand, str]] = {
    Subcommand.BUILD: "Run `cargo build` and report compiler diagnostics",
    Subcommand.LINT: "Run `cargo clippy` and report lints",
    Subcommand.CHECK: "Run `cargo check` and report compiler diagnostics",
    Subcommand.TEST: "Run `cargo test` and report test results",
    Subcommand.FMT: "Run `cargo fmt` and report formatting mismatches",
}


def main(argv: Sequence[str] | None = None, *, environ: Mapping[str, str] | None = None) -> int:
    """Main CLI entry point.

    Arguments after the first ``--`` are passed to cargo unchanged. When run
    as ``cargo phabricator``, cargo's leading ``phabricator`` argument is
    dropped.

    Args:
        argv: Command-line arguments to parse. If None, uses sys.argv.
        environ: Environment to read settings from (defaults to ``os.environ``).

    Returns:
        int: Exit code of the wrapped cargo command, or the tool's own
            failure code.
    """
    raw = list(argv) if argv is not None else sys.argv[1:]
    if raw and raw[0] == CARGO_SUBCOMMAND:
        raw = raw[1:]
    own_args, cargo_args = split_passthrough(raw)
    parser = _build_parser()
    args = parser.parse_args(own_args)
    if args.version:
        echo(f"{PROG} {__version__}")
        return 0
    if args.command is None:
        parser.error("No command provided.")
    env = os.environ if environ is None else environ
    _initialize_logging(args.log_format, args.log_level, env)
    subcommand = Subcommand.from_str(args.command)
    try:
        context = build_run_context(
            subcommand,
            phabricator_uri=args.phabricator_uri,
            conduit_token=args.conduit_token,
            build_phid=args.build_phid,
            environ=env,
        )
    except ConfigurationError as exc:
        echo(f"[{PROG}] error {error_code_for(exc)}: {exc}", err=True)
        logger.debug(
            "Configuration failed",
            exc_info=True,
            extra=structured_extra(LogComponent.CLI, subcommand=subcommand, exit_code=EXIT_FAILURE),
        )
        return EXIT_FAILURE
    cargo = resolve_with_precedence(cli_value=args.cargo, env_value=env.get(CARGO_ENV), default="cargo")
    outcome = run_pipeline(
        context,
        cargo_args,
        cargo=cargo or "cargo",
        environ=env,
    )
    return outcome.exit_code


def _build_parser() -> argparse.ArgumentParser:
    """Build the argument parser with global options and one subparser per subcommand."""
    parser = argparse.ArgumentParser(
        prog=PROG,
        description=(
            "Run a cargo subcommand and report its diagnostics or test results to "
            "Phabricator Harbormaster. Arguments after `--` are passed to cargo."
        ),
        formatter_class=argparse.ArgumentDefaultsHelpFormatter,
    )
    register_argument(
        parser,
        "--phabricator-uri",
        default=None,
        help=f"Phabricator base URI (env {PHABRICATOR_URI_ENV}; falls back to phabricator.uri in .arcconfig).",
    )
    register_argument(
        parser,
        "--conduit-token",
        default=None,
        help=f"Conduit API token (env {CONDUIT_TOKEN_ENV}).",
    )
    register_argument(
        parser,
        "--build-phid",
        default=None,
        help=f"PHID of the Harbormaster build target receiving results (env {BUILD_PHID_ENV}).",
    )
    register_argument(
        parser,
        "--cargo",
        default=None,
        help=f"cargo executable (env {CARGO_ENV}; default `cargo`).",
    )
    register_argument(
        parser,
        "--log-format",
        choices=LOG_FORMATS,
        default=None,
        help="Select logging output format (human-readable text or structured JSON).",
    )
    register_argument(
        parser,
        "--log-level",
        choices=LOG_LEVELS,
        default=None,
        help="Set verbosity of logged events.",
    )
    register_argument(
        parser,
        "--version",
        action="store_true",
        help=f"Print the {PROG} version and exit.",
    )
    subparsers = parser.add_subparsers(dest="command")
    for subcommand in Subcommand:
        _ = subparsers.add_parser(
            subcommand.value,
            help=_SUBCOMMAND_HELP[subcommand],
            formatter_class=argparse.ArgumentDefaultsHelpFormatter,
        )
    return parser


def _initialize_logging(log_format: str | None, log_level: str | None, environ: Mapping[str, str]) -> None:
    """Configure logging from flags or the environment; an unknown format falls back to text."""
    raw_format = resolve_with_precedence(cli_value=log_format, env_value=environ.get(LOG_FORMAT_ENV))
    raw_level = resolve_with_precedence(cli_value=log_level, env_value=environ.get(LOG_LEVEL_ENV), default="info")
    selected = LogFormat.TEXT
    if raw_format:
        try:
            selected = LogFormat.from_str(raw_format)
        except ValueError as exc:
            echo(f"[{PROG}] error: {exc}; using text logs", err=True)
    _ = configure_logging(selected, log_level=raw_level)


__all__ = ["main"]
