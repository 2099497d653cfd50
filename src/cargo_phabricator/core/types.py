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

"""Core data classes for parsed build and test records.

A ``DiagnosticRecord`` is a tagged union: every variant carries a ``kind``
literal so consumers can dispatch with ``match`` and have the type checker
flag unhandled variants.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Final, Literal, TypeAlias

from .model_types import Severity, TestStatus
from .type_aliases import LintCode, ReportPath, TestName

GENERAL_PATH: Final[ReportPath] = ReportPath("general")


@dataclass(slots=True, frozen=True)
class SourceSpan:
    """Location of a compiler message inside a source file.

    Attributes:
        path: File path, relative to the project root when possible.
        line_start: First line (1-indexed).
        column_start: First column (1-indexed), if known.
        line_end: Last line (1-indexed).
        column_end: Last column (1-indexed), if known.
    """

    path: ReportPath
    line_start: int
    column_start: int | None
    line_end: int
    column_end: int | None


@dataclass(slots=True, frozen=True)
class CompileMessage:
    """Immutable record of a single compiler, clippy or rustfmt message.

    Attributes:
        severity: Normalised severity.
        message: Message text as emitted by the tool.
        span: Primary span of the message, if any.
        code: Rule or error code (e.g. ``E0308``), if any.
        rendered: Human-formatted rendering of the message, if provided.
        fallback_path: Crate root the message belongs to; used as anchor when
            there is no span.
    """

    severity: Severity
    message: str
    span: SourceSpan | None = None
    code: LintCode | None = None
    rendered: str | None = None
    fallback_path: ReportPath | None = None
    kind: Literal["compile"] = "compile"

    @property
    def path(self) -> ReportPath:
        """File the message is attached to."""
        if self.span is not None:
            return self.span.path
        return self.fallback_path or GENERAL_PATH

    @property
    def line(self) -> int | None:
        """First line of the primary span, if any."""
        return self.span.line_start if self.span is not None else None

    @property
    def column(self) -> int | None:
        """First column of the primary span, if any."""
        return self.span.column_start if self.span is not None else None

    def identity(self) -> tuple[str, int | None, int | None, str]:
        """Return the key under which identical messages coalesce."""
        return (self.path, self.line, self.column, self.message)


@dataclass(slots=True, frozen=True)
class TestOutcome:
    """Immutable record of a single test result.

    Attributes:
        name: Fully-qualified test name (``module::test``).
        status: Harness status.
        duration: Execution time in seconds, if reported.
        message: Failure output, if any.
    """

    __test__ = False

    name: TestName
    status: TestStatus
    duration: float | None = None
    message: str | None = None
    kind: Literal["test"] = "test"


DiagnosticRecord: TypeAlias = CompileMessage | TestOutcome

__all__ = [
    "GENERAL_PATH",
    "CompileMessage",
    "DiagnosticRecord",
    "SourceSpan",
    "TestOutcome",
]
