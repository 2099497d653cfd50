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

"""Public exception hierarchy for cargo-phabricator."""

from __future__ import annotations

from cargo_phabricator._internal.error_codes import ErrorCode, error_code_for
from cargo_phabricator._internal.exceptions import (
    AggregatorClosedError,
    CargoPhabricatorError,
    CommandSpawnError,
    ConfigurationError,
    SubmissionAuthError,
    SubmissionError,
    SubmissionNetworkError,
    SubmissionRejectedError,
)

__all__ = [
    "AggregatorClosedError",
    "CargoPhabricatorError",
    "CommandSpawnError",
    "ConfigurationError",
    "ErrorCode",
    "SubmissionAuthError",
    "SubmissionError",
    "SubmissionNetworkError",
    "SubmissionRejectedError",
    "error_code_for",
]
