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


"""Unit tests for decoding cargo, libtest and rustfmt output lines."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

import pytest

from cargo_phabricator.core.model_types import Severity, Subcommand, TestStatus
from cargo_phabricator.core.types import CompileMessage, TestOutcome
from cargo_phabricator.parsing import FORMAT_MISMATCH_MESSAGE, RUSTFMT_CODE, RecordParser, format_diff
from tests.fixtures.cargo_output import (
    artifact_line,
    build_finished_line,
    compiler_message_line,
    libtest_event_line,
    rustfmt_report_line,
    suite_event_line,
)

if TYPE_CHECKING:
    from pathlib import Path

pytestmark = pytest.mark.unit


def _parser(tmp_path: Path, subcommand: Subcommand = Subcommand.CHECK) -> RecordParser:
    return RecordParser(subcommand, tmp_path)


def test_compiler_warning_becomes_compile_message(tmp_path: Path) -> None:
    parsed = _parser(tmp_path).parse_line(compiler_message_line("unused variable"))

    assert parsed.structured is True
    assert parsed.warning is None
    (record,) = parsed.records
    assert isinstance(record, CompileMessage)
    assert record.severity is Severity.WARNING
    assert record.message == "unused variable"
    assert record.path == "src/lib.rs"
    assert record.line == 10
    assert record.column == 9
    assert record.code == "unused_variables"


def test_absolute_span_path_is_made_relative(tmp_path: Path) -> None:
    absolute = tmp_path / "src" / "main.rs"
    parsed = _parser(tmp_path).parse_line(compiler_message_line(file_name=str(absolute)))

    (record,) = parsed.records
    assert isinstance(record, CompileMessage)
    assert record.path == "src/main.rs"


@pytest.mark.parametrize(
    ("level", "expected"),
    [
        ("error", Severity.ERROR),
        ("warning", Severity.WARNING),
        ("note", Severity.NOTE),
        ("help", Severity.NOTE),
        ("failure-note", Severity.ERROR),
        ("error: internal compiler error", Severity.ERROR),
    ],
)
def test_compiler_levels_map_to_fixed_severities(tmp_path: Path, level: str, expected: Severity) -> None:
    parsed = _parser(tmp_path).parse_line(compiler_message_line(level=level))

    (record,) = parsed.records
    assert isinstance(record, CompileMessage)
    assert record.severity is expected


@pytest.mark.parametrize(
    "message",
    [
        "3 warnings emitted",
        "1 warning emitted",
        "aborting due to 2 previous errors",
        "For more information about this error, try `rustc --explain E0308`.",
        "Some errors have detailed explanations: E0308, E0425.",
    ],
)
def test_compiler_summaries_are_not_reported(tmp_path: Path, message: str) -> None:
    line = compiler_message_line(message, code=None, file_name=None, rendered=f"warning: {message}\n")
    parsed = _parser(tmp_path).parse_line(line)

    assert parsed.structured is True
    assert parsed.records == ()
    assert parsed.warning is None
    assert parsed.summary == f"warning: {message}\n"


@pytest.mark.parametrize(
    "message",
    [
        "linking with `cc` failed: exit status: 1",
        "could not find native static library `ssl`, perhaps an -L flag is missing?",
        "internal compiler error: unexpected panic",
    ],
)
def test_spanless_errors_without_code_are_reported(tmp_path: Path, message: str) -> None:
    line = compiler_message_line(message, level="error", code=None, file_name=None, src_path=None)
    parsed = _parser(tmp_path, Subcommand.BUILD).parse_line(line)

    (record,) = parsed.records
    assert isinstance(record, CompileMessage)
    assert record.message == message
    assert record.severity is Severity.ERROR
    assert record.code is None
    assert record.path == "general"
    assert record.line is None
    assert parsed.summary is None


def test_message_without_span_falls_back_to_crate_root(tmp_path: Path) -> None:
    line = compiler_message_line(
        "crate-level attribute should be in the root module",
        file_name=None,
        src_path=str(tmp_path / "src" / "lib.rs"),
    )
    (record,) = _parser(tmp_path).parse_line(line).records

    assert isinstance(record, CompileMessage)
    assert record.span is None
    assert record.path == "src/lib.rs"
    assert record.line is None


def test_message_without_span_or_crate_root_uses_general(tmp_path: Path) -> None:
    line = compiler_message_line("linking failed", code="E0000", file_name=None, src_path=None)
    (record,) = _parser(tmp_path).parse_line(line).records

    assert isinstance(record, CompileMessage)
    assert record.path == "general"


@pytest.mark.parametrize(
    "line",
    [
        "   Compiling crate v0.1.0 (/work/crate)",
        "{not json",
        "42",
        '"text"',
        '{"neither": "reason nor type"}',
    ],
)
def test_unrecognized_lines_produce_warnings(tmp_path: Path, line: str) -> None:
    parsed = _parser(tmp_path).parse_line(line)

    assert parsed.structured is False
    assert parsed.records == ()
    assert parsed.warning is not None
    assert parsed.warning.line == line
    assert parsed.warning.line_number == 1


def test_blank_line_is_passed_through_without_warning(tmp_path: Path) -> None:
    parsed = _parser(tmp_path).parse_line("   ")

    assert parsed.structured is False
    assert parsed.warning is None


@pytest.mark.parametrize("line", [artifact_line(), build_finished_line(), suite_event_line("ok", passed=3)])
def test_bookkeeping_records_are_skipped_silently(tmp_path: Path, line: str) -> None:
    parsed = _parser(tmp_path, Subcommand.TEST).parse_line(line)

    assert parsed.structured is True
    assert parsed.records == ()
    assert parsed.warning is None


def test_invalid_compiler_message_shape_is_a_warning(tmp_path: Path) -> None:
    parsed = _parser(tmp_path).parse_line('{"reason": "compiler-message", "message": {"level": "error"}}')

    assert parsed.structured is False
    assert parsed.warning is not None
    assert "invalid compiler-message" in parsed.warning.reason


@pytest.mark.parametrize(
    ("event", "status"),
    [
        ("ok", TestStatus.PASSED),
        ("failed", TestStatus.FAILED),
        ("ignored", TestStatus.IGNORED),
        ("timeout", TestStatus.TIMEOUT),
    ],
)
def test_libtest_events_become_test_outcomes(tmp_path: Path, event: str, status: TestStatus) -> None:
    line = libtest_event_line("tests::it_works", event, exec_time=0.25)
    (record,) = _parser(tmp_path, Subcommand.TEST).parse_line(line).records

    assert isinstance(record, TestOutcome)
    assert record.name == "tests::it_works"
    assert record.status is status
    assert record.duration == pytest.approx(0.25)


def test_failed_test_keeps_captured_output(tmp_path: Path) -> None:
    line = libtest_event_line("tests::broken", "failed", stdout="thread panicked at 'boom'\n")
    (record,) = _parser(tmp_path, Subcommand.TEST).parse_line(line).records

    assert isinstance(record, TestOutcome)
    assert record.message == "thread panicked at 'boom'"


def test_started_event_is_skipped(tmp_path: Path) -> None:
    parsed = _parser(tmp_path, Subcommand.TEST).parse_line(libtest_event_line("tests::a", "started"))

    assert parsed.structured is True
    assert parsed.records == ()


def test_unknown_test_event_is_a_warning(tmp_path: Path) -> None:
    parsed = _parser(tmp_path, Subcommand.TEST).parse_line(libtest_event_line("tests::a", "exploded"))

    assert parsed.warning is not None
    assert "exploded" in parsed.warning.reason


def test_rustfmt_report_yields_one_message_per_mismatch(tmp_path: Path) -> None:
    line = rustfmt_report_line(
        {
            str(tmp_path / "src" / "lib.rs"): [(3, 3, "fn f( ) {}", "fn f() {}"), (9, 10, "let x=1;", "let x = 1;")],
            str(tmp_path / "src" / "main.rs"): [],
        },
    )
    records = _parser(tmp_path, Subcommand.FMT).parse_line(line).records

    assert len(records) == 2
    first = records[0]
    assert isinstance(first, CompileMessage)
    assert first.code == RUSTFMT_CODE
    assert first.severity is Severity.ERROR
    assert first.message == FORMAT_MISMATCH_MESSAGE
    assert first.path == "src/lib.rs"
    assert first.line == 3
    assert first.column is None
    assert first.rendered == "-fn f( ) {}\n+fn f() {}"


def test_format_diff_prefixes_every_line() -> None:
    assert format_diff("a\nb", "c") == "-a\n-b\n+c"
    assert format_diff("", "added") == "+added"


def test_parse_lines_keeps_only_records_for_the_subcommand(tmp_path: Path) -> None:
    parser = _parser(tmp_path, Subcommand.CHECK)
    lines = [compiler_message_line(), libtest_event_line("tests::a", "ok")]

    records = list(parser.parse_lines(lines, passthrough=lambda _: None))

    assert [record.kind for record in records] == ["compile"]
    assert parser.stats.skipped_records == 1
    assert parser.stats.records == 1


def test_parse_lines_passes_through_and_logs_unrecognized_output(
    tmp_path: Path,
    caplog: pytest.LogCaptureFixture,
) -> None:
    passed: list[str] = []
    echoed: list[CompileMessage] = []
    parser = _parser(tmp_path)
    lines = ["warning: build script says hi", compiler_message_line("unused import")]

    with caplog.at_level(logging.WARNING, logger="cargo_phabricator"):
        records = list(parser.parse_lines(lines, passthrough=passed.append, echo=echoed.append))

    assert passed == ["warning: build script says hi"]
    assert [message.message for message in echoed] == ["unused import"]
    assert len(records) == 1
    assert any("warning: build script says hi" in message for message in caplog.messages)


def test_parse_lines_shows_summaries_without_reporting_them(tmp_path: Path) -> None:
    passed: list[str] = []
    echoed: list[CompileMessage] = []
    summaries: list[str] = []
    lines = [
        compiler_message_line("mismatched types", level="error", code="E0308"),
        compiler_message_line(
            "aborting due to 1 previous error",
            level="error",
            code=None,
            file_name=None,
            rendered="error: aborting due to 1 previous error\n\n",
        ),
    ]

    records = list(
        _parser(tmp_path).parse_lines(lines, passthrough=passed.append, echo=echoed.append, summary=summaries.append),
    )

    assert [record.message for record in records if isinstance(record, CompileMessage)] == ["mismatched types"]
    assert [message.message for message in echoed] == ["mismatched types"]
    assert summaries == ["error: aborting due to 1 previous error\n\n"]
    assert passed == []


def test_finish_warns_when_no_structured_output(tmp_path: Path, caplog: pytest.LogCaptureFixture) -> None:
    parser = _parser(tmp_path)
    _ = list(parser.parse_lines(["error: no such command: `clippy`"], passthrough=lambda _: None))

    with caplog.at_level(logging.WARNING, logger="cargo_phabricator"):
        stats = parser.finish()

    assert stats.structured == 0
    assert any("no structured output" in message for message in caplog.messages)
