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

"""Filesystem helpers for locating the repository root and relativising paths."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import TYPE_CHECKING, Final

from cargo_phabricator.core.model_types import LogComponent
from cargo_phabricator.logging import structured_extra

if TYPE_CHECKING:
    from collections.abc import Iterator

logger: logging.Logger = logging.getLogger("cargo_phabricator.config.paths")

__all__ = ["ARCCONFIG_NAME", "iter_arcconfig_candidates", "relative_to_root"]

ARCCONFIG_NAME: Final[str] = ".arcconfig"


def iter_arcconfig_candidates(start: Path | None = None) -> Iterator[Path]:
    """Yield existing ``.arcconfig`` files from ``start`` up to the filesystem root.

    Args:
        start: Optional starting path (defaults to current working directory).

    Yields:
        Paths of ``.arcconfig`` files, nearest first.
    """
    base = (start or Path.cwd()).resolve()
    if base.is_file():
        base = base.parent
    checked: list[str] = []
    for candidate in (base, *base.parents):
        checked.append(str(candidate))
        config_path = candidate / ARCCONFIG_NAME
        if config_path.is_file():
            yield config_path
    logger.debug(
        "Searched %d directories for %s",
        len(checked),
        ARCCONFIG_NAME,
        extra=structured_extra(LogComponent.CONFIG, details={"checked": checked}),
    )


def relative_to_root(project_root: Path, file_path: str) -> str:
    """Convert a tool-reported path to a project-relative POSIX path.

    Relative paths are returned unchanged (cargo already reports them against
    the workspace root). Absolute paths outside ``project_root`` stay absolute.

    Args:
        project_root: Root directory of the repository.
        file_path: Path from the tool's output.

    Returns:
        Path string suitable for Harbormaster.
    """
    path = Path(file_path)
    if not path.is_absolute():
        return path.as_posix()
    try:
        return path.relative_to(project_root).as_posix()
    except ValueError:
        return path.as_posix()
