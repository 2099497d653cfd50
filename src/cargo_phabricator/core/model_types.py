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

"""Model types and enumerations for cargo-phabricator.

This module defines the enumerations shared by every pipeline stage:

- Subcommand and report kind enumerations for wrapped cargo invocations
- Severity and status enumerations for parsed records
- Submission failure classes
- Format and component enumerations for logging
"""

from __future__ import annotations

from enum import StrEnum
from typing import Final


class ReportKind(StrEnum):
    """Shape of the report a subcommand produces.

    Attributes:
        LINT: Inline lint messages keyed by source file.
        UNIT: Unit-test results keyed by test name.
    """

    LINT = "lint"
    UNIT = "unit"


class Subcommand(StrEnum):
    """Cargo subcommands the wrapper knows how to drive.

    Attributes:
        BUILD: ``cargo build``.
        LINT: ``cargo clippy``.
        CHECK: ``cargo check``.
        TEST: ``cargo test`` with the libtest JSON formatter.
        FMT: ``cargo fmt`` with rustfmt's JSON emitter.
    """

    BUILD = "build"
    LINT = "lint"
    CHECK = "check"
    TEST = "test"
    FMT = "fmt"

    @classmethod
    def from_str(cls, raw: str) -> Subcommand:
        """Create a Subcommand enum from a string value.

        Args:
            raw: String representation of the subcommand.

        Returns:
            Subcommand enum value.

        Raises:
            ValueError: If the string does not match any Subcommand value.
        """
        value = raw.strip().lower()
        try:
            return cls(value)
        except ValueError as exc:
            msg = f"Unknown subcommand '{raw}'"
            raise ValueError(msg) from exc

    @property
    def cargo_name(self) -> str:
        """Name of the cargo subcommand actually executed."""
        return "clippy" if self is Subcommand.LINT else self.value

    @property
    def report_kind(self) -> ReportKind:
        """Report shape produced by this subcommand."""
        return ReportKind.UNIT if self is Subcommand.TEST else ReportKind.LINT


class Severity(StrEnum):
    """Severity of a compiler message after normalisation.

    Attributes:
        ERROR: Compilation errors and failure notes.
        WARNING: Lints and warnings.
        NOTE: Notes and help messages.
    """

    ERROR = "error"
    WARNING = "warning"
    NOTE = "note"

    @classmethod
    def from_compiler_level(cls, raw: str) -> Severity:
        """Map a rustc diagnostic level onto the fixed severity enum.

        Unknown levels fall back to ``WARNING`` so that a new compiler level
        never drops a message.

        Args:
            raw: Level string from the compiler's JSON output.

        Returns:
            Normalised severity.
        """
        return _COMPILER_LEVELS.get(raw.strip().lower(), cls.WARNING)


_COMPILER_LEVELS: Final[dict[str, Severity]] = {
    "error": Severity.ERROR,
    "error: internal compiler error": Severity.ERROR,
    "failure-note": Severity.ERROR,
    "warning": Severity.WARNING,
    "note": Severity.NOTE,
    "help": Severity.NOTE,
}


class TestStatus(StrEnum):
    """Outcome of a single test as reported by the harness.

    Attributes:
        PASSED: Test succeeded.
        FAILED: Test failed or panicked.
        IGNORED: Test was skipped via ``#[ignore]`` or a filter.
        TIMEOUT: Test exceeded the harness' time limit.
    """

    __test__ = False

    PASSED = "passed"
    FAILED = "failed"
    IGNORED = "ignored"
    TIMEOUT = "timeout"


class SubmissionFailure(StrEnum):
    """Classification of a failed report submission.

    Attributes:
        NETWORK: Transport error or transient server failure.
        AUTH: The API rejected the credentials.
        REJECTED: The API rejected the payload or answered unintelligibly.
    """

    NETWORK = "network"
    AUTH = "auth"
    REJECTED = "rejected"


class LogFormat(StrEnum):
    """Enumeration of log output formats.

    Attributes:
        TEXT: Human-readable text format.
        JSON: Machine-readable JSON format.
    """

    TEXT = "text"
    JSON = "json"

    @classmethod
    def from_str(cls, raw: str) -> LogFormat:
        """Create a LogFormat enum from a string value.

        Args:
            raw: String representation of the log format.

        Returns:
            LogFormat enum value.

        Raises:
            ValueError: If the string does not match any LogFormat value.
        """
        value = raw.strip().lower()
        try:
            return cls(value)
        except ValueError as exc:
            msg = f"Unknown log format '{raw}'"
            raise ValueError(msg) from exc


class LogComponent(StrEnum):
    """Enumeration of loggable pipeline components."""

    CLI = "cli"
    CONFIG = "config"
    RUNNER = "runner"
    PARSER = "parser"
    AGGREGATOR = "aggregator"
    TRANSLATOR = "translator"
    SUBMISSION = "submission"


__all__ = [
    "LogComponent",
    "LogFormat",
    "ReportKind",
    "Severity",
    "SubmissionFailure",
    "Subcommand",
    "TestStatus",
]
