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

"""Configuration models for cargo-phabricator.

This module defines the Pydantic model used to validate ``.arcconfig`` files
and the frozen ``RunContext`` dataclass handed to every pipeline stage.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import ClassVar, Final

from pydantic import BaseModel, ConfigDict, Field, field_validator

from cargo_phabricator._internal.exceptions import ConfigurationError
from cargo_phabricator.core.model_types import Subcommand
from cargo_phabricator.core.type_aliases import BuildPHID, ConduitToken

CONDUIT_TOKEN_ENV: Final[str] = "CONDUIT_TOKEN"
BUILD_PHID_ENV: Final[str] = "BUILD_PHID"
PHABRICATOR_URI_ENV: Final[str] = "PHABRICATOR_URI"
CARGO_ENV: Final[str] = "CARGO"


class MissingSettingError(ConfigurationError):
    """Raised when a required setting is absent from every source."""

    def __init__(self, setting: str, *, flag: str, env: str | None) -> None:
        """Initialize the exception with the setting and where it may come from.

        Args:
            setting: Human name of the missing setting.
            flag: CLI flag that supplies the setting.
            env: Environment variable that supplies the setting, if any.
        """
        self.setting = setting
        self.flag = flag
        self.env = env
        sources = f"{flag} or {env}" if env else flag
        super().__init__(f"{setting} not available; set {sources}")


class ArcConfigReadError(ConfigurationError):
    """Raised when an ``.arcconfig`` file cannot be read."""

    def __init__(self, path: Path, reason: str) -> None:
        """Initialize the exception with the offending path.

        Args:
            path: Location of the ``.arcconfig``.
            reason: Description of the underlying failure.
        """
        self.path = path
        super().__init__(f"could not open {path}: {reason}")


class ArcConfigModel(BaseModel):
    """Subset of Arcanist's ``.arcconfig`` used by cargo-phabricator.

    Only files that carry ``repository.callsign`` identify a repository root;
    ``phabricator.uri`` provides the default API location.
    """

    model_config: ClassVar[ConfigDict] = ConfigDict(populate_by_name=True, extra="ignore")

    callsign: str = Field(alias="repository.callsign")
    phabricator_uri: str | None = Field(default=None, alias="phabricator.uri")

    @field_validator("phabricator_uri", mode="before")
    @classmethod
    def _blank_uri_is_none(cls, value: object) -> object:
        if isinstance(value, str) and not value.strip():
            return None
        return value


@dataclass(slots=True, frozen=True)
class ArcConfig:
    """A validated ``.arcconfig`` and the directory it was found in.

    Attributes:
        location: Directory containing the file (the repository root).
        callsign: Repository callsign.
        phabricator_uri: Default Phabricator location, if configured.
    """

    location: Path
    callsign: str
    phabricator_uri: str | None


@dataclass(slots=True, frozen=True)
class RunContext:
    """Immutable per-invocation settings lent to every pipeline stage.

    Attributes:
        subcommand: Wrapped cargo subcommand.
        build_phid: Harbormaster build target receiving the results.
        token: Conduit API token. Excluded from ``repr``.
        phabricator_uri: Base URI of the Phabricator install.
        project_root: Repository root used to relativise reported paths.
    """

    subcommand: Subcommand
    build_phid: BuildPHID
    token: ConduitToken = field(repr=False)
    phabricator_uri: str
    project_root: Path

    @property
    def api_base(self) -> str:
        """Phabricator URI without a trailing slash."""
        return self.phabricator_uri.rstrip("/")


__all__ = [
    "BUILD_PHID_ENV",
    "CARGO_ENV",
    "CONDUIT_TOKEN_ENV",
    "PHABRICATOR_URI_ENV",
    "ArcConfig",
    "ArcConfigModel",
    "ArcConfigReadError",
    "MissingSettingError",
    "RunContext",
]
