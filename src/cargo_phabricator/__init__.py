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


"""cargo-phabricator - report cargo diagnostics and test results to Harbormaster.

Wraps ``cargo build``, ``clippy``, ``check``, ``test`` and ``fmt``, reads
their machine-readable output as it is produced and submits the results to
Phabricator's ``harbormaster.sendmessage`` Conduit method.
"""

from __future__ import annotations

from cargo_phabricator.exceptions import (
    CargoPhabricatorError,
    CommandSpawnError,
    ConfigurationError,
    SubmissionError,
)

from .aggregate import AggregatedReport, AggregationConflict, ResultAggregator
from .config import RunContext, build_run_context
from .core.types import CompileMessage, DiagnosticRecord, SourceSpan, TestOutcome
from .harbormaster import HarbormasterPayload, LintRecord, UnitRecord
from .parsing import ParseWarning, RecordParser
from .runner import RunOutcome, build_cargo_command, run_pipeline
from .submit import SubmissionOutcome, submit
from .translate import translate

__all__ = [
    "AggregatedReport",
    "AggregationConflict",
    "CargoPhabricatorError",
    "CommandSpawnError",
    "CompileMessage",
    "ConfigurationError",
    "DiagnosticRecord",
    "HarbormasterPayload",
    "LintRecord",
    "ParseWarning",
    "RecordParser",
    "ResultAggregator",
    "RunContext",
    "RunOutcome",
    "SourceSpan",
    "SubmissionError",
    "SubmissionOutcome",
    "TestOutcome",
    "UnitRecord",
    "__version__",
    "build_cargo_command",
    "build_run_context",
    "run_pipeline",
    "submit",
    "translate",
]

__version__ = "0.1.0"
