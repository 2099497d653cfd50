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

"""Wire models for Conduit's ``harbormaster.sendmessage`` method.

Field names follow the Conduit API; Python-side names are snake_case with
aliases where the two differ. Models are frozen so a payload cannot change
between translation and submission.
"""

from __future__ import annotations

import json
from enum import StrEnum
from typing import ClassVar, Final, Literal

from pydantic import BaseModel, ConfigDict, Field, JsonValue

CONDUIT_AUTH_ERRORS: Final[frozenset[str]] = frozenset(
    {"ERR-INVALID-AUTH", "ERR-INVALID-SESSION", "ERR-INVALID-TOKEN"},
)


class LintSeverity(StrEnum):
    """Severities accepted by Harbormaster for lint records."""

    ADVICE = "advice"
    AUTOFIX = "autofix"
    WARNING = "warning"
    ERROR = "error"
    DISABLED = "disabled"


class UnitResult(StrEnum):
    """Results accepted by Harbormaster for unit records."""

    PASS = "pass"
    FAIL = "fail"
    SKIP = "skip"
    BROKEN = "broken"
    UNSOUND = "unsound"


class _WireModel(BaseModel):
    model_config: ClassVar[ConfigDict] = ConfigDict(
        frozen=True,
        populate_by_name=True,
        extra="forbid",
    )


class LintRecord(_WireModel):
    name: str
    code: str
    severity: LintSeverity
    path: str
    line: int | None = None
    char: int | None = None
    description: str | None = None


class UnitRecord(_WireModel):
    name: str
    result: UnitResult
    duration: float = 0.0
    details: str = ""


class HarbormasterPayload(_WireModel):
    """Body of one ``harbormaster.sendmessage`` call.

    ``type`` is always ``work``: the message attaches results without
    deciding the build's pass/fail state.
    """

    build_target_phid: str = Field(alias="buildTargetPHID")
    type: Literal["work"] = "work"
    lint: tuple[LintRecord, ...] = ()
    unit: tuple[UnitRecord, ...] = ()

    @property
    def is_empty(self) -> bool:
        return not self.lint and not self.unit

    def conduit_params(self) -> dict[str, JsonValue]:
        """Return the method parameters as Conduit expects them, without credentials."""
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)

    def form_data(self, token: str) -> dict[str, str]:
        """Encode the payload as the form body of a Conduit call.

        Args:
            token: Conduit API token placed under ``__conduit__``.

        Returns:
            Form fields ``params`` (JSON) and ``output``.
        """
        params = self.conduit_params()
        params["__conduit__"] = {"token": token}
        return {
            "params": json.dumps(params, separators=(",", ":")),
            "output": "json",
        }


class ConduitResponse(BaseModel):
    """Envelope returned by every Conduit method."""

    model_config: ClassVar[ConfigDict] = ConfigDict(extra="ignore", frozen=True)

    result: JsonValue = None
    error_code: str | None = None
    error_info: str | None = None

    @property
    def is_error(self) -> bool:
        return self.error_code is not None

    @property
    def is_auth_error(self) -> bool:
        return self.error_code in CONDUIT_AUTH_ERRORS


__all__ = [
    "CONDUIT_AUTH_ERRORS",
    "ConduitResponse",
    "HarbormasterPayload",
    "LintRecord",
    "LintSeverity",
    "UnitRecord",
    "UnitResult",
]
