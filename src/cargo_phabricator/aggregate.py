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

"""Accumulation of parsed records into a per-run report.

Compile messages are grouped by file in arrival order; messages that agree on
path, line, column and text are coalesced. Test outcomes are keyed by name;
a repeated name is a harness anomaly that is logged and resolved in favour of
the later outcome. The report only exists once ``finalize`` has been called
with the wrapped command's exit code.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from cargo_phabricator._internal.exceptions import AggregatorClosedError
from cargo_phabricator.compat import assert_never
from cargo_phabricator.core.model_types import LogComponent, TestStatus
from cargo_phabricator.core.types import CompileMessage, DiagnosticRecord, TestOutcome
from cargo_phabricator.logging import structured_extra

if TYPE_CHECKING:
    from collections.abc import Iterable, Iterator, Mapping

    from cargo_phabricator.core.type_aliases import ReportPath, TestName

logger: logging.Logger = logging.getLogger("cargo_phabricator.aggregator")


@dataclass(slots=True, frozen=True)
class AggregationConflict:
    """Two outcomes reported for the same test name."""

    name: TestName
    previous: TestStatus
    current: TestStatus


@dataclass(slots=True, frozen=True)
class AggregatedReport:
    """Finalised results of one wrapped invocation.

    Attributes:
        messages: Compile messages per file, in first-seen file order.
        tests: Test outcomes in first-seen order.
        exit_code: Exit code of the wrapped command.
        conflicts: Duplicate test names seen during aggregation.
        coalesced: Number of duplicate compile messages dropped.
    """

    messages: Mapping[ReportPath, tuple[CompileMessage, ...]] = field(default_factory=dict)
    tests: tuple[TestOutcome, ...] = ()
    exit_code: int = 0
    conflicts: tuple[AggregationConflict, ...] = ()
    coalesced: int = 0

    def compile_messages(self) -> Iterator[CompileMessage]:
        """Iterate every compile message, file by file."""
        for messages in self.messages.values():
            yield from messages

    @property
    def message_count(self) -> int:
        return sum(len(messages) for messages in self.messages.values())

    @property
    def is_empty(self) -> bool:
        return not self.messages and not self.tests


class ResultAggregator:
    """Collects records for a single run; single use."""

    def __init__(self) -> None:
        self._messages: dict[ReportPath, list[CompileMessage]] = {}
        self._seen: set[tuple[str, int | None, int | None, str]] = set()
        self._tests: dict[TestName, TestOutcome] = {}
        self._conflicts: list[AggregationConflict] = []
        self._coalesced = 0
        self._report: AggregatedReport | None = None

    @property
    def finalized(self) -> bool:
        return self._report is not None

    def add(self, record: DiagnosticRecord) -> None:
        """Add one record in arrival order.

        Raises:
            AggregatorClosedError: If the report was already finalised.
        """
        if self._report is not None:
            message = "Cannot add records after the report was finalized"
            raise AggregatorClosedError(message)
        match record:
            case CompileMessage():
                self._add_message(record)
            case TestOutcome():
                self._add_outcome(record)
            case _:
                assert_never(record)

    def extend(self, records: Iterable[DiagnosticRecord]) -> None:
        for record in records:
            self.add(record)

    def finalize(self, exit_code: int) -> AggregatedReport:
        """Freeze the collected records once the wrapped command has exited.

        Calling it again returns the same report.

        Args:
            exit_code: Exit code of the wrapped command.

        Returns:
            The immutable aggregated report.
        """
        if self._report is not None:
            return self._report
        self._report = AggregatedReport(
            messages={path: tuple(messages) for path, messages in self._messages.items()},
            tests=tuple(self._tests.values()),
            exit_code=exit_code,
            conflicts=tuple(self._conflicts),
            coalesced=self._coalesced,
        )
        logger.debug(
            "Aggregated %d messages in %d files and %d tests (%d coalesced, %d conflicts)",
            self._report.message_count,
            len(self._report.messages),
            len(self._report.tests),
            self._coalesced,
            len(self._conflicts),
            extra=structured_extra(LogComponent.AGGREGATOR, exit_code=exit_code),
        )
        return self._report

    def _add_message(self, message: CompileMessage) -> None:
        identity = message.identity()
        if identity in self._seen:
            self._coalesced += 1
            logger.debug(
                "Coalescing duplicate message at %s:%s: %s",
                message.path,
                message.line,
                message.message,
                extra=structured_extra(LogComponent.AGGREGATOR, path=message.path),
            )
            return
        self._seen.add(identity)
        self._messages.setdefault(message.path, []).append(message)

    def _add_outcome(self, outcome: TestOutcome) -> None:
        previous = self._tests.get(outcome.name)
        if previous is not None:
            if previous.status is TestStatus.TIMEOUT and outcome.status is not TestStatus.TIMEOUT:
                # libtest reports slow tests as "timeout" before their final result
                logger.debug(
                    "Test %s finished after timeout notice: %s",
                    outcome.name,
                    outcome.status,
                    extra=structured_extra(LogComponent.AGGREGATOR, test=outcome.name),
                )
            else:
                conflict = AggregationConflict(
                    name=outcome.name,
                    previous=previous.status,
                    current=outcome.status,
                )
                self._conflicts.append(conflict)
                logger.warning(
                    "Test %s reported twice (%s, then %s); keeping the later outcome",
                    outcome.name,
                    previous.status,
                    outcome.status,
                    extra=structured_extra(
                        LogComponent.AGGREGATOR,
                        test=outcome.name,
                        details={"previous": previous.status, "current": outcome.status},
                    ),
                )
        self._tests[outcome.name] = outcome


__all__ = ["AggregatedReport", "AggregationConflict", "ResultAggregator"]
