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

"""Stable error code registry used across cargo-phabricator."""

from __future__ import annotations

from typing import NewType

from .exceptions import (
    AggregatorClosedError,
    CargoPhabricatorError,
    CommandSpawnError,
    ConfigurationError,
    SubmissionAuthError,
    SubmissionError,
    SubmissionNetworkError,
    SubmissionRejectedError,
)

ErrorCode = NewType("ErrorCode", str)

_ERROR_CODES: dict[type[BaseException], ErrorCode] = {
    CargoPhabricatorError: ErrorCode("CP000"),
    ConfigurationError: ErrorCode("CP100"),
    CommandSpawnError: ErrorCode("CP200"),
    AggregatorClosedError: ErrorCode("CP300"),
    SubmissionError: ErrorCode("CP400"),
    SubmissionNetworkError: ErrorCode("CP401"),
    SubmissionAuthError: ErrorCode("CP402"),
    SubmissionRejectedError: ErrorCode("CP403"),
}


def error_code_for(exc: BaseException) -> ErrorCode:
    """Return a stable error code for a structured cargo-phabricator exception.

    Args:
        exc: Exception instance raised by cargo-phabricator code paths.

    Returns:
        Error code mapped from the exception's class hierarchy.
    """
    for cls in type(exc).__mro__:
        code = _ERROR_CODES.get(cls)
        if code:
            return code
    return ErrorCode("CP000")


__all__ = ["ErrorCode", "error_code_for"]
