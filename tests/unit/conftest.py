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


"""Fixtures shared across all unit tests."""

from __future__ import annotations

from typing import TYPE_CHECKING

import pytest

from cargo_phabricator.config import RunContext
from cargo_phabricator.core.model_types import Subcommand
from cargo_phabricator.core.type_aliases import BuildPHID, ConduitToken
from tests.fixtures.stubs import ConduitStub

if TYPE_CHECKING:
    from pathlib import Path

BUILD_PHID = BuildPHID("PHID-HMBT-unit")
TOKEN = ConduitToken("api-secret-token")


@pytest.fixture
def run_context(tmp_path: Path) -> RunContext:
    """Return a context for ``cargo check`` rooted at ``tmp_path``."""
    return RunContext(
        subcommand=Subcommand.CHECK,
        build_phid=BUILD_PHID,
        token=TOKEN,
        phabricator_uri="https://phab.example.com/",
        project_root=tmp_path,
    )


@pytest.fixture
def conduit() -> ConduitStub:
    """Return a Conduit stub that accepts every call."""
    return ConduitStub()
