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

"""Common exception hierarchy for cargo-phabricator."""

from __future__ import annotations

from cargo_phabricator.core.model_types import SubmissionFailure

__all__ = [
    "AggregatorClosedError",
    "CargoPhabricatorError",
    "CommandSpawnError",
    "ConfigurationError",
    "SubmissionAuthError",
    "SubmissionError",
    "SubmissionNetworkError",
    "SubmissionRejectedError",
]


class CargoPhabricatorError(Exception):
    """Base error for all cargo-phabricator exceptions."""


class ConfigurationError(CargoPhabricatorError, ValueError):
    """Raised when required settings are missing or invalid."""


class CommandSpawnError(CargoPhabricatorError, OSError):
    """Raised when the wrapped cargo command cannot be started."""

    def __init__(self, command: list[str], reason: str) -> None:
        """Initialize the exception with the command and the OS-level reason.

        Args:
            command: Command line that failed to start.
            reason: Description of the underlying failure.
        """
        self.command = command
        self.reason = reason
        super().__init__(f"could not spawn {' '.join(command)!r}: {reason}")


class AggregatorClosedError(CargoPhabricatorError, RuntimeError):
    """Raised when records are added after the report was finalised."""


class SubmissionError(CargoPhabricatorError):
    """Raised when a report could not be delivered to Harbormaster."""

    failure: SubmissionFailure = SubmissionFailure.REJECTED


class SubmissionNetworkError(SubmissionError):
    """Transport failure or transient server error."""

    failure = SubmissionFailure.NETWORK


class SubmissionAuthError(SubmissionError):
    """The Conduit token was refused."""

    failure = SubmissionFailure.AUTH


class SubmissionRejectedError(SubmissionError):
    """The payload was refused or the response could not be understood."""

    failure = SubmissionFailure.REJECTED
