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

"""End-to-end pipeline: run cargo, parse, aggregate, translate, submit.

The pipeline is single-threaded. cargo's stdout is consumed line by line as
it is produced; stderr is inherited so progress output stays on the terminal.
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from typing import TYPE_CHECKING, Final

from cargo_phabricator._internal.error_codes import error_code_for
from cargo_phabricator._internal.exceptions import CommandSpawnError
from cargo_phabricator.aggregate import ResultAggregator
from cargo_phabricator.core.model_types import LogComponent, Subcommand
from cargo_phabricator.logging import structured_extra
from cargo_phabricator.parsing import RUSTFMT_CODE, RecordParser
from cargo_phabricator.runtime import StreamingProcess
from cargo_phabricator.submit import DEFAULT_RETRY_DELAY_SECONDS, SubmissionOutcome, submit
from cargo_phabricator.translate import lint_record, render_lint, translate

if TYPE_CHECKING:
    from collections.abc import Callable, Mapping, Sequence

    import httpx

    from cargo_phabricator.aggregate import AggregatedReport
    from cargo_phabricator.config import RunContext
    from cargo_phabricator.core.type_aliases import Command
    from cargo_phabricator.core.types import CompileMessage
    from cargo_phabricator.harbormaster.models import HarbormasterPayload

logger: logging.Logger = logging.getLogger("cargo_phabricator.runner")

EXIT_FAILURE: Final[int] = 1
EXIT_SUBMISSION_FAILED: Final[int] = 125
EXIT_INTERRUPTED: Final[int] = 130

MESSAGE_FORMAT_FLAG: Final[str] = "--message-format"
TEST_HARNESS_ARGS: Final[tuple[str, ...]] = (
    "-Z",
    "unstable-options",
    "--format",
    "json",
    "--report-time",
)
HARNESS_FORMAT_FLAG: Final[str] = "--format"
BOOTSTRAP_ENV: Final[str] = "RUSTC_BOOTSTRAP"


@dataclass(slots=True, frozen=True)
class RunOutcome:
    """What happened during one invocation.

    Attributes:
        exit_code: Exit code the tool should terminate with.
        wrapped_exit_code: Exit code of cargo, when it ran to completion.
        report: Aggregated report, when cargo ran to completion.
        payload: Payload handed to the submission client.
        submission: Submission result, when a submission was attempted.
        interrupted: Whether the run was cancelled by the user.
    """

    exit_code: int
    wrapped_exit_code: int | None = None
    report: AggregatedReport | None = None
    payload: HarbormasterPayload | None = None
    submission: SubmissionOutcome | None = None
    interrupted: bool = False


def _strip_option(args: Sequence[str], flag: str) -> list[str]:
    """Remove every ``flag value`` and ``flag=value`` occurrence from ``args``."""
    result: list[str] = []
    skip_next = False
    for arg in args:
        if skip_next:
            skip_next = False
            continue
        if arg == flag:
            skip_next = True
            continue
        if arg.startswith(f"{flag}="):
            continue
        result.append(arg)
    return result


def split_harness_args(user_args: Sequence[str]) -> tuple[list[str], list[str] | None]:
    """Split user arguments at the first ``--``.

    Returns:
        Cargo arguments, and harness arguments or ``None`` when there is no ``--``.
    """
    args = list(user_args)
    if "--" not in args:
        return args, None
    index = args.index("--")
    return args[:index], args[index + 1 :]


def build_cargo_command(
    subcommand: Subcommand,
    user_args: Sequence[str] = (),
    *,
    cargo: str = "cargo",
) -> Command:
    """Build the cargo command line with machine-readable output forced on.

    Any ``--message-format`` given by the user is replaced. For ``test`` the
    libtest JSON formatter is requested after ``--``, ahead of the user's own
    harness arguments (whose ``--format`` is replaced as well).

    Args:
        subcommand: Wrapped subcommand.
        user_args: Extra arguments from the command line, passed through.
        cargo: cargo executable.

    Returns:
        The argv to spawn.
    """
    cargo_args, harness_args = split_harness_args(user_args)
    argv: Command = [cargo, subcommand.cargo_name, MESSAGE_FORMAT_FLAG, "json"]
    argv.extend(_strip_option(cargo_args, MESSAGE_FORMAT_FLAG))
    if subcommand is Subcommand.TEST:
        argv.append("--")
        argv.extend(TEST_HARNESS_ARGS)
        argv.extend(_strip_option(harness_args or [], HARNESS_FORMAT_FLAG))
    elif harness_args is not None:
        argv.append("--")
        argv.extend(harness_args)
    return argv


def child_environment(subcommand: Subcommand, environ: Mapping[str, str] | None = None) -> dict[str, str]:
    """Environment for cargo; enables the unstable libtest formatter for ``test``."""
    env = dict(os.environ if environ is None else environ)
    if subcommand is Subcommand.TEST:
        env[BOOTSTRAP_ENV] = "1"
    return env


def resolve_exit_code(wrapped_exit_code: int, submission: SubmissionOutcome) -> int:
    """Combine cargo's exit code with the submission result.

    A non-zero cargo exit code always wins; a failed submission only shows
    when cargo itself succeeded.
    """
    if wrapped_exit_code != 0 or submission.ok:
        return wrapped_exit_code
    return EXIT_SUBMISSION_FAILED


def _print_line(line: str) -> None:
    print(line, flush=True)  # noqa: T201 - cargo output passthrough


def _print_summary(text: str) -> None:
    print(text.rstrip("\n"), flush=True)  # noqa: T201 - cargo output passthrough


def _report_message(message: CompileMessage) -> None:
    """Print a compiler message with its location header, then its description."""
    record = lint_record(message)
    print(render_lint(record), flush=True)  # noqa: T201 - terminal report
    if record.description:
        print(f"{record.description}\n", flush=True)  # noqa: T201 - terminal report


def _has_format_mismatches(report: AggregatedReport) -> bool:
    return any(message.code == RUSTFMT_CODE for message in report.compile_messages())


def run_pipeline(
    context: RunContext,
    user_args: Sequence[str] = (),
    *,
    cargo: str = "cargo",
    environ: Mapping[str, str] | None = None,
    transport: httpx.BaseTransport | None = None,
    retry_delay: float = DEFAULT_RETRY_DELAY_SECONDS,
    passthrough: Callable[[str], None] = _print_line,
    echo: Callable[[CompileMessage], None] | None = _report_message,
    summary: Callable[[str], None] | None = _print_summary,
) -> RunOutcome:
    """Run the wrapped command and report its results to Harbormaster.

    Args:
        context: Immutable run context.
        user_args: Extra arguments for cargo.
        cargo: cargo executable.
        environ: Base environment for the child (defaults to ``os.environ``).
        transport: Optional httpx transport for the submission client.
        retry_delay: Delay before the submission retry.
        passthrough: Receives stdout lines that are not structured output.
        echo: Receives every compiler message for terminal display.
        summary: Receives the rendered text of compiler summaries.

    Returns:
        The run outcome, including the exit code to terminate with.
    """
    subcommand = context.subcommand
    argv = build_cargo_command(subcommand, user_args, cargo=cargo)
    parser = RecordParser(subcommand, context.project_root)
    aggregator = ResultAggregator()
    try:
        with StreamingProcess(argv, env=child_environment(subcommand, environ)) as proc:
            aggregator.extend(
                parser.parse_lines(proc.lines(), passthrough=passthrough, echo=echo, summary=summary),
            )
            result = proc.wait()
    except CommandSpawnError as exc:
        logger.error(
            "[%s] %s",
            error_code_for(exc),
            exc,
            extra=structured_extra(LogComponent.RUNNER, subcommand=subcommand),
        )
        return RunOutcome(exit_code=EXIT_FAILURE)
    except KeyboardInterrupt:
        logger.warning(
            "Interrupted; cargo %s terminated and no report submitted",
            subcommand.cargo_name,
            extra=structured_extra(LogComponent.RUNNER, subcommand=subcommand, exit_code=EXIT_INTERRUPTED),
        )
        return RunOutcome(exit_code=EXIT_INTERRUPTED, interrupted=True)

    _ = parser.finish()
    report = aggregator.finalize(result.exit_code)
    wrapped_exit_code = result.exit_code
    if subcommand is Subcommand.FMT and wrapped_exit_code == 0 and _has_format_mismatches(report):
        wrapped_exit_code = EXIT_FAILURE

    payload = translate(report, context)
    submission = submit(payload, context, transport=transport, retry_delay=retry_delay)
    exit_code = resolve_exit_code(wrapped_exit_code, submission)
    if not submission.ok:
        logger.error(
            "submission failed (%s after %d attempt(s)): %s",
            submission.failure,
            submission.attempts,
            submission.detail,
            extra=structured_extra(
                LogComponent.SUBMISSION,
                subcommand=subcommand,
                exit_code=exit_code,
                attempt=submission.attempts,
            ),
        )
    logger.debug(
        "cargo %s exited with %d; exiting with %d",
        subcommand.cargo_name,
        result.exit_code,
        exit_code,
        extra=structured_extra(
            LogComponent.RUNNER,
            subcommand=subcommand,
            exit_code=exit_code,
            duration_ms=result.duration_ms,
        ),
    )
    return RunOutcome(
        exit_code=exit_code,
        wrapped_exit_code=result.exit_code,
        report=report,
        payload=payload,
        submission=submission,
    )


__all__ = [
    "BOOTSTRAP_ENV",
    "EXIT_FAILURE",
    "EXIT_INTERRUPTED",
    "EXIT_SUBMISSION_FAILED",
    "TEST_HARNESS_ARGS",
    "RunOutcome",
    "build_cargo_command",
    "child_environment",
    "resolve_exit_code",
    "run_pipeline",
    "split_harness_args",
]
