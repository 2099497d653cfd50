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

"""Diagnostic record parser for cargo, libtest and rustfmt output."""

from __future__ import annotations

from .parser import (
    FORMAT_MISMATCH_MESSAGE,
    RUSTFMT_CODE,
    ParsedLine,
    ParseStats,
    ParseWarning,
    RecordParser,
    format_diff,
)

__all__ = [
    "FORMAT_MISMATCH_MESSAGE",
    "RUSTFMT_CODE",
    "ParseStats",
    "ParseWarning",
    "ParsedLine",
    "RecordParser",
    "format_diff",
]
