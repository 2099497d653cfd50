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

"""Pydantic schemas for the machine-readable output of cargo, libtest and rustfmt.

Only the fields the parser needs are declared; everything else in the
upstream formats is ignored so that additive format changes do not break
decoding.
"""

from __future__ import annotations

from typing import ClassVar, Literal

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter


class _Schema(BaseModel):
    model_config: ClassVar[ConfigDict] = ConfigDict(extra="ignore", frozen=True)


class SpanSchema(_Schema):
    file_name: str
    line_start: int
    line_end: int
    column_start: int
    column_end: int
    is_primary: bool = False


class CodeSchema(_Schema):
    code: str


class MessageSchema(_Schema):
    message: str
    level: str
    code: CodeSchema | None = None
    spans: list[SpanSchema] = Field(default_factory=list)
    rendered: str | None = None

    def primary_span(self) -> SpanSchema | None:
        return next((span for span in self.spans if span.is_primary), None)


class TargetSchema(_Schema):
    src_path: str | None = None


class CompilerMessageSchema(_Schema):
    """``{"reason": "compiler-message", ...}`` records from ``--message-format json``."""

    reason: Literal["compiler-message"]
    message: MessageSchema
    target: TargetSchema | None = None


class LibtestEventSchema(_Schema):
    """``{"type": "test", ...}`` events from libtest's ``--format json``."""

    type: Literal["test"]
    event: str
    name: str
    exec_time: float | None = None
    stdout: str | None = None
    message: str | None = None


class MismatchSchema(_Schema):
    original_begin_line: int
    original_end_line: int
    expected_begin_line: int
    expected_end_line: int
    original: str
    expected: str


class FormatFileSchema(_Schema):
    """One file entry of rustfmt's JSON emitter output."""

    name: str
    mismatches: list[MismatchSchema] = Field(default_factory=list)


FORMAT_REPORT_ADAPTER: TypeAdapter[list[FormatFileSchema]] = TypeAdapter(list[FormatFileSchema])

__all__ = [
    "FORMAT_REPORT_ADAPTER",
    "CodeSchema",
    "CompilerMessageSchema",
    "FormatFileSchema",
    "MessageSchema",
    "MismatchSchema",
    "SpanSchema",
    "TargetSchema",
    "LibtestEventSchema",
]
