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

"""Decoding of cargo's machine-readable output into typed records.

Each stdout line of the wrapped command is decoded independently:

- cargo records (objects with a ``reason``) - only ``compiler-message`` is
  turned into a ``CompileMessage``; other reasons are build bookkeeping;
- libtest events (objects with a ``type``) - ``test`` events with a final
  status become ``TestOutcome`` records;
- rustfmt reports (a JSON array of files) - each mismatch becomes a
  ``CompileMessage``.

Anything else is a ``ParseWarning``: the line is handed back to the caller
for passthrough and the run continues.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Final

from pydantic import ValidationError

from cargo_phabricator.compat import assert_never
from cargo_phabricator.core.model_types import LogComponent, ReportKind, Severity, Subcommand, TestStatus
from cargo_phabricator.core.type_aliases import LintCode, ReportPath, TestName
from cargo_phabricator.core.types import CompileMessage, DiagnosticRecord, SourceSpan, TestOutcome
from cargo_phabricator.json import JSONValue, as_str, decode_line
from cargo_phabricator.logging import structured_extra
from cargo_phabricator.runtime import relative_to_root

from .schemas import (
    FORMAT_REPORT_ADAPTER,
    CompilerMessageSchema,
    FormatFileSchema,
    LibtestEventSchema,
    MismatchSchema,
)

if TYPE_CHECKING:
    from collections.abc import Callable, Iterable, Iterator
    from pathlib import Path

logger: logging.Logger = logging.getLogger("cargo_phabricator.parser")

RUSTFMT_CODE: Final[LintCode] = LintCode("RUSTFMT")
FORMAT_MISMATCH_MESSAGE: Final[str] = "format mismatch"

_TEST_EVENTS: Final[dict[str, TestStatus]] = {
    "ok": TestStatus.PASSED,
    "failed": TestStatus.FAILED,
    "ignored": TestStatus.IGNORED,
    "timeout": TestStatus.TIMEOUT,
}
_SKIPPED_TEST_EVENTS: Final[frozenset[str]] = frozenset({"started"})
_SKIPPED_EVENT_TYPES: Final[frozenset[str]] = frozenset({"suite", "bench", "report"})
_COMPILER_SUMMARY: Final[re.Pattern[str]] = re.compile(
    r"^(?:\d+ (?:warnings?|errors?) emitted"
    r"|aborting due to"
    r"|For more information about"
    r"|Some errors have detailed explanations)",
)


@dataclass(slots=True, frozen=True)
class ParseWarning:
    """A line that could not be decoded into a structured record.

    Attributes:
        line: The raw line, unchanged.
        reason: Why the line was not understood.
        line_number: 1-based position of the line in the stream.
    """

    line: str
    reason: str
    line_number: int


@dataclass(slots=True, frozen=True)
class ParsedLine:
    """Result of decoding one line.

    Attributes:
        records: Records extracted from the line (rustfmt reports yield many).
        structured: Whether the line was recognised machine-readable output.
        warning: Populated when the line was not understood.
        summary: Rendered text of a compiler summary that is shown but not
            reported.
    """

    records: tuple[DiagnosticRecord, ...] = ()
    structured: bool = True
    warning: ParseWarning | None = None
    summary: str | None = None


@dataclass(slots=True)
class ParseStats:
    lines: int = 0
    structured: int = 0
    records: int = 0
    warnings: int = 0
    skipped_records: int = 0
    by_kind: dict[str, int] = field(default_factory=dict)


class RecordParser:
    """Stateful line decoder for one wrapped invocation.

    Args:
        subcommand: Wrapped subcommand; decides which record kind is kept.
        project_root: Root used to relativise absolute paths.
    """

    def __init__(self, subcommand: Subcommand, project_root: Path) -> None:
        self._subcommand = subcommand
        self._project_root = project_root
        self._stats = ParseStats()

    @property
    def stats(self) -> ParseStats:
        return self._stats

    def parse_line(self, line: str) -> ParsedLine:
        """Decode a single line of output. Never raises on malformed input."""
        self._stats.lines += 1
        if not line.strip():
            return ParsedLine(structured=False)
        try:
            value = decode_line(line)
        except (ValueError, RecursionError):
            return self._warn(line, "not JSON")
        if isinstance(value, list):
            return self._parse_format_report(line, value)
        if not isinstance(value, dict):
            return self._warn(line, "JSON value is not an object")
        if "reason" in value:
            return self._parse_cargo_record(line, value)
        if "type" in value:
            return self._parse_test_event(line, value)
        return self._warn(line, "unrecognized JSON object")

    def parse_lines(
        self,
        lines: Iterable[str],
        *,
        passthrough: Callable[[str], None],
        echo: Callable[[CompileMessage], None] | None = None,
        summary: Callable[[str], None] | None = None,
    ) -> Iterator[DiagnosticRecord]:
        """Decode a stream of lines, yielding records as they are found.

        Args:
            lines: Lines of the wrapped command's stdout.
            passthrough: Receives every line that is not structured output.
            echo: Receives every compiler message, including ones not kept
                for the report, so the build log stays readable.
            summary: Receives the rendered text of compiler summaries such as
                "aborting due to 2 previous errors".

        Yields:
            Records relevant to the current subcommand, in arrival order.
        """
        for line in lines:
            parsed = self.parse_line(line)
            if not parsed.structured:
                passthrough(line)
            if parsed.warning is not None:
                logger.warning(
                    "Skipping unrecognized output line %d (%s): %s",
                    parsed.warning.line_number,
                    parsed.warning.reason,
                    parsed.warning.line,
                    extra=structured_extra(
                        LogComponent.PARSER,
                        subcommand=self._subcommand,
                        details={"line": parsed.warning.line, "reason": parsed.warning.reason},
                    ),
                )
            if summary is not None and parsed.summary:
                summary(parsed.summary)
            if echo is not None:
                for record in parsed.records:
                    if isinstance(record, CompileMessage):
                        echo(record)
            yield from self._keep_relevant(parsed.records)

    def finish(self) -> ParseStats:
        """Log end-of-stream diagnostics and return the counters."""
        if self._stats.structured == 0:
            logger.warning(
                "cargo %s produced no structured output; submitting an empty report",
                self._subcommand.cargo_name,
                extra=structured_extra(
                    LogComponent.PARSER,
                    subcommand=self._subcommand,
                    details={"lines": self._stats.lines},
                ),
            )
        else:
            logger.debug(
                "Parsed %d lines: %d structured, %d records, %d warnings",
                self._stats.lines,
                self._stats.structured,
                self._stats.records,
                self._stats.warnings,
                extra=structured_extra(LogComponent.PARSER, subcommand=self._subcommand),
            )
        return self._stats

    def _keep_relevant(self, records: tuple[DiagnosticRecord, ...]) -> Iterator[DiagnosticRecord]:
        expected = self._subcommand.report_kind
        for record in records:
            match record:
                case CompileMessage():
                    relevant = expected is ReportKind.LINT
                case TestOutcome():
                    relevant = expected is ReportKind.UNIT
                case _:
                    assert_never(record)
            if not relevant:
                self._stats.skipped_records += 1
                continue
            self._stats.records += 1
            self._stats.by_kind[record.kind] = self._stats.by_kind.get(record.kind, 0) + 1
            yield record

    def _warn(self, line: str, reason: str) -> ParsedLine:
        self._stats.warnings += 1
        warning = ParseWarning(line=line, reason=reason, line_number=self._stats.lines)
        return ParsedLine(structured=False, warning=warning)

    def _structured(
        self,
        records: tuple[DiagnosticRecord, ...] = (),
        *,
        summary: str | None = None,
    ) -> ParsedLine:
        self._stats.structured += 1
        return ParsedLine(records=records, summary=summary)

    def _relative(self, file_path: str) -> ReportPath:
        return ReportPath(relative_to_root(self._project_root, file_path))

    def _parse_cargo_record(self, line: str, value: dict[str, JSONValue]) -> ParsedLine:
        reason = as_str(value.get("reason"))
        if reason != "compiler-message":
            return self._structured()
        try:
            schema = CompilerMessageSchema.model_validate(value)
        except ValidationError as exc:
            return self._warn(line, f"invalid compiler-message: {exc.error_count()} validation errors")
        message = schema.message
        span = message.primary_span()
        if message.code is None and span is None and _COMPILER_SUMMARY.match(message.message):
            logger.debug(
                "Skipping compiler summary: %s",
                message.message,
                extra=structured_extra(LogComponent.PARSER, subcommand=self._subcommand),
            )
            return self._structured(summary=message.rendered)
        fallback = None
        if schema.target is not None and schema.target.src_path:
            fallback = self._relative(schema.target.src_path)
        record = CompileMessage(
            severity=Severity.from_compiler_level(message.level),
            message=message.message,
            span=(
                SourceSpan(
                    path=self._relative(span.file_name),
                    line_start=span.line_start,
                    column_start=span.column_start,
                    line_end=span.line_end,
                    column_end=span.column_end,
                )
                if span is not None
                else None
            ),
            code=LintCode(message.code.code) if message.code is not None else None,
            rendered=message.rendered,
            fallback_path=fallback,
        )
        return self._structured((record,))

    def _parse_test_event(self, line: str, value: dict[str, JSONValue]) -> ParsedLine:
        event_type = as_str(value.get("type"))
        if event_type in _SKIPPED_EVENT_TYPES:
            return self._structured()
        if event_type != "test":
            return self._warn(line, f"unknown event type {event_type!r}")
        try:
            schema = LibtestEventSchema.model_validate(value)
        except ValidationError as exc:
            return self._warn(line, f"invalid test event: {exc.error_count()} validation errors")
        if schema.event in _SKIPPED_TEST_EVENTS:
            return self._structured()
        status = _TEST_EVENTS.get(schema.event)
        if status is None:
            return self._warn(line, f"unknown test event {schema.event!r}")
        record = TestOutcome(
            name=TestName(schema.name),
            status=status,
            duration=schema.exec_time,
            message=_failure_text(schema),
        )
        return self._structured((record,))

    def _parse_format_report(self, line: str, value: list[JSONValue]) -> ParsedLine:
        try:
            files = FORMAT_REPORT_ADAPTER.validate_python(value)
        except ValidationError as exc:
            return self._warn(line, f"invalid rustfmt report: {exc.error_count()} validation errors")
        records: list[DiagnosticRecord] = [
            self._format_mismatch(entry, mismatch) for entry in files for mismatch in entry.mismatches
        ]
        return self._structured(tuple(records))

    def _format_mismatch(self, entry: FormatFileSchema, mismatch: MismatchSchema) -> CompileMessage:
        return CompileMessage(
            severity=Severity.ERROR,
            message=FORMAT_MISMATCH_MESSAGE,
            span=SourceSpan(
                path=self._relative(entry.name),
                line_start=mismatch.original_begin_line,
                column_start=None,
                line_end=mismatch.original_end_line,
                column_end=None,
            ),
            code=RUSTFMT_CODE,
            rendered=format_diff(mismatch.original, mismatch.expected),
        )


def format_diff(original: str, expected: str) -> str:
    """Render a rustfmt mismatch as unified-diff style lines."""
    lines: list[str] = []
    if original:
        lines.extend(f"-{text}" for text in original.split("\n"))
    if expected:
        lines.extend(f"+{text}" for text in expected.split("\n"))
    return "\n".join(lines)


def _failure_text(event: LibtestEventSchema) -> str | None:
    parts = [part.strip("\n") for part in (event.message, event.stdout) if part]
    return "\n".join(parts) if parts else None


__all__ = [
    "FORMAT_MISMATCH_MESSAGE",
    "RUSTFMT_CODE",
    "ParseStats",
    "ParseWarning",
    "ParsedLine",
    "RecordParser",
    "format_diff",
]
