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

"""Translation of aggregated results into Harbormaster payloads.

Everything here is a pure function of its inputs: the same report and
context always yield an identical payload.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Final

from cargo_phabricator.compat import assert_never
from cargo_phabricator.core.model_types import Severity, TestStatus
from cargo_phabricator.harbormaster.models import (
    HarbormasterPayload,
    LintRecord,
    LintSeverity,
    UnitRecord,
    UnitResult,
)
from cargo_phabricator.parsing import RUSTFMT_CODE

if TYPE_CHECKING:
    from cargo_phabricator.aggregate import AggregatedReport
    from cargo_phabricator.config import RunContext
    from cargo_phabricator.core.types import CompileMessage, TestOutcome

DEFAULT_LINT_CODE: Final[str] = "RUSTC"
TIMED_OUT_NOTE: Final[str] = "timed out"


def lint_severity(severity: Severity) -> LintSeverity:
    match severity:
        case Severity.ERROR:
            return LintSeverity.ERROR
        case Severity.WARNING:
            return LintSeverity.WARNING
        case Severity.NOTE:
            return LintSeverity.ADVICE
        case _:
            assert_never(severity)


def unit_result(status: TestStatus) -> UnitResult:
    match status:
        case TestStatus.PASSED:
            return UnitResult.PASS
        case TestStatus.FAILED | TestStatus.TIMEOUT:
            return UnitResult.FAIL
        case TestStatus.IGNORED:
            return UnitResult.SKIP
        case _:
            assert_never(status)


def lint_description(message: CompileMessage) -> str | None:
    """Fence the rendered message so Phabricator shows it verbatim."""
    if not message.rendered:
        return None
    body = message.rendered.rstrip("\n")
    fence = "```lang=diff" if message.code == RUSTFMT_CODE else "```"
    return f"{fence}\n{body}\n```"


def lint_record(message: CompileMessage) -> LintRecord:
    """Map one compile message onto a Harbormaster lint record."""
    return LintRecord(
        name=message.message,
        code=message.code or DEFAULT_LINT_CODE,
        severity=lint_severity(message.severity),
        path=message.path,
        line=message.line,
        char=message.column,
        description=lint_description(message),
    )


def unit_record(outcome: TestOutcome) -> UnitRecord:
    """Map one test outcome onto a Harbormaster unit record."""
    details = outcome.message or ""
    if outcome.status is TestStatus.TIMEOUT:
        details = f"{details}\n\n{TIMED_OUT_NOTE}" if details else TIMED_OUT_NOTE
    return UnitRecord(
        name=outcome.name,
        result=unit_result(outcome.status),
        duration=outcome.duration or 0.0,
        details=details,
    )


def translate(report: AggregatedReport, context: RunContext) -> HarbormasterPayload:
    """Build the payload for a finished run.

    A report without records still yields a payload with empty ``lint`` and
    ``unit`` lists, so the build target always receives a message.

    Args:
        report: Finalised aggregated report.
        context: Run context supplying the build target PHID.

    Returns:
        The payload to submit.
    """
    return HarbormasterPayload(
        build_target_phid=context.build_phid,
        lint=tuple(lint_record(message) for message in report.compile_messages()),
        unit=tuple(unit_record(outcome) for outcome in report.tests),
    )


def render_lint(record: LintRecord) -> str:
    """Render a lint record the way rustc prints a diagnostic header.

    Example:
        >>> render_lint(LintRecord(name="unused variable", code="unused_variables",
        ...     severity=LintSeverity.WARNING, path="src/lib.rs", line=10, char=9))
        'warning[unused_variables]: unused variable\\n   --> src/lib.rs:10:9'
    """
    location = record.path
    if record.line is not None:
        location = f"{location}:{record.line}"
        if record.char is not None:
            location = f"{location}:{record.char}"
    return f"{record.severity}[{record.code}]: {record.name}\n   --> {location}"


__all__ = [
    "DEFAULT_LINT_CODE",
    "TIMED_OUT_NOTE",
    "lint_description",
    "lint_record",
    "lint_severity",
    "render_lint",
    "translate",
    "unit_record",
    "unit_result",
]
