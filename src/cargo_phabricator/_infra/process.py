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

"""Subprocess helpers for streaming a wrapped command's stdout."""

from __future__ import annotations

import logging
import subprocess  # noqa: S404  # JUSTIFIED: centralised wrapper for the single wrapped cargo invocation
import time
from dataclasses import dataclass
from typing import IO, TYPE_CHECKING, Final

from cargo_phabricator._internal.exceptions import CommandSpawnError
from cargo_phabricator.compat import Self
from cargo_phabricator.core.model_types import LogComponent
from cargo_phabricator.logging import structured_extra

if TYPE_CHECKING:
    from collections.abc import Iterable, Iterator, Mapping
    from pathlib import Path
    from types import TracebackType

    from cargo_phabricator.core.type_aliases import Command

logger: logging.Logger = logging.getLogger("cargo_phabricator.runner.process")

__all__ = ["CommandOutput", "StreamingProcess"]

TERMINATE_GRACE_SECONDS: Final[float] = 5.0


@dataclass(slots=True, frozen=True)
class CommandOutput:
    args: Command
    exit_code: int
    duration_ms: float


class StreamingProcess:
    """A spawned command whose stdout is consumed line by line.

    stderr is inherited from the parent so progress output stays visible.
    Leaving the ``with`` block through an exception (including
    ``KeyboardInterrupt``) terminates the child.

    Example:
        >>> with StreamingProcess(["cargo", "check", "--message-format", "json"]) as proc:
        ...     for line in proc.lines():
        ...         handle(line)
        ...     result = proc.wait()
    """

    def __init__(
        self,
        args: Iterable[str],
        *,
        cwd: Path | None = None,
        env: Mapping[str, str] | None = None,
    ) -> None:
        """Spawn the command.

        Args:
            args: Command line to execute; never run through a shell.
            cwd: Optional working directory for the child process.
            env: Optional full environment for the child process.

        Raises:
            ValueError: If ``args`` is empty.
            CommandSpawnError: If the executable cannot be started.
        """
        argv: Command = list(args)
        if not argv:
            message = "Cannot spawn an empty command"
            raise ValueError(message)
        self._args = argv
        debug_details: dict[str, object] = {}
        if cwd:
            debug_details["cwd"] = str(cwd)
        logger.debug(
            "Executing command: %s",
            " ".join(argv),
            extra=structured_extra(LogComponent.RUNNER, details=debug_details),
        )
        self._start = time.perf_counter()
        try:
            self._process: subprocess.Popen[str] = subprocess.Popen(  # noqa: S603 - argv built by the runner
                argv,
                cwd=str(cwd) if cwd else None,
                env=dict(env) if env is not None else None,
                stdout=subprocess.PIPE,
                text=True,
                encoding="utf-8",
                errors="replace",
                bufsize=1,
            )
        except OSError as exc:
            raise CommandSpawnError(argv, exc.strerror or str(exc)) from exc

    @property
    def args(self) -> Command:
        return list(self._args)

    def lines(self) -> Iterator[str]:
        """Yield stdout lines as they arrive, without trailing newlines."""
        stream: IO[str] | None = self._process.stdout
        if stream is None:
            return
        for line in stream:
            yield line.rstrip("\r\n")

    def wait(self) -> CommandOutput:
        """Wait for the command to exit; no timeout is applied.

        Returns:
            ``CommandOutput`` with the exit code and wall-clock duration.
        """
        exit_code = self._process.wait()
        duration_ms = (time.perf_counter() - self._start) * 1000
        if exit_code != 0:
            logger.warning(
                "Command failed (exit=%s): %s",
                exit_code,
                " ".join(self._args),
                extra=structured_extra(LogComponent.RUNNER, exit_code=exit_code, duration_ms=duration_ms),
            )
        return CommandOutput(args=list(self._args), exit_code=exit_code, duration_ms=duration_ms)

    def terminate(self, grace_seconds: float = TERMINATE_GRACE_SECONDS) -> None:
        """Stop the child: SIGTERM, then SIGKILL once the grace period expires."""
        if self._process.poll() is not None:
            return
        logger.info(
            "Terminating %s",
            " ".join(self._args),
            extra=structured_extra(LogComponent.RUNNER),
        )
        self._process.terminate()
        try:
            _ = self._process.wait(timeout=grace_seconds)
        except subprocess.TimeoutExpired:
            self._process.kill()
            _ = self._process.wait()

    def __enter__(self) -> Self:
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: TracebackType | None,
    ) -> None:
        if exc_type is not None:
            self.terminate()
        if self._process.stdout is not None:
            self._process.stdout.close()
