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


"""Fixtures for end-to-end pipeline tests driven by a fake cargo executable."""

from __future__ import annotations

import json
import stat
import sys
from dataclasses import dataclass
from textwrap import dedent
from typing import TYPE_CHECKING, Any

import pytest

from cargo_phabricator.config import RunContext
from cargo_phabricator.core.model_types import Subcommand
from cargo_phabricator.core.type_aliases import BuildPHID, ConduitToken

if TYPE_CHECKING:
    from collections.abc import Callable
    from pathlib import Path

FAKE_CARGO = dedent(
    """\
    import json
    import os
    import sys
    import time

    with open(os.environ["FAKE_CARGO_SCRIPT"], encoding="utf-8") as handle:
        script = json.load(handle)
    with open(os.environ["FAKE_CARGO_RECORD"], "w", encoding="utf-8") as handle:
        json.dump({"argv": sys.argv[1:], "bootstrap": os.environ.get("RUSTC_BOOTSTRAP")}, handle)
    for line in script["lines"]:
        print(line, flush=True)
    time.sleep(script.get("sleep", 0))
    sys.exit(script["exit_code"])
    """,
)


@dataclass(slots=True)
class FakeCargo:
    """A cargo stand-in that prints scripted lines and exits with a scripted code."""

    executable: Path
    script_path: Path
    record_path: Path

    def script(self, lines: list[str], exit_code: int = 0, *, sleep: float = 0) -> None:
        payload = {"lines": lines, "exit_code": exit_code, "sleep": sleep}
        _ = self.script_path.write_text(json.dumps(payload), encoding="utf-8")

    @property
    def environ(self) -> dict[str, str]:
        return {
            "FAKE_CARGO_SCRIPT": str(self.script_path),
            "FAKE_CARGO_RECORD": str(self.record_path),
        }

    def invocation(self) -> dict[str, Any]:
        return json.loads(self.record_path.read_text(encoding="utf-8"))


@pytest.fixture
def fake_cargo(tmp_path: Path) -> FakeCargo:
    executable = tmp_path / "bin" / "cargo"
    executable.parent.mkdir()
    _ = executable.write_text(f"#!{sys.executable}\n{FAKE_CARGO}", encoding="utf-8")
    executable.chmod(executable.stat().st_mode | stat.S_IXUSR | stat.S_IXGRP | stat.S_IXOTH)
    fake = FakeCargo(
        executable=executable,
        script_path=tmp_path / "script.json",
        record_path=tmp_path / "invocation.json",
    )
    fake.script([])
    return fake


@pytest.fixture
def context_for(tmp_path: Path) -> Callable[[Subcommand], RunContext]:
    project = tmp_path / "project"
    project.mkdir()

    def _build(subcommand: Subcommand) -> RunContext:
        return RunContext(
            subcommand=subcommand,
            build_phid=BuildPHID("PHID-HMBT-e2e"),
            token=ConduitToken("e2e-token"),
            phabricator_uri="https://phab.example.com",
            project_root=project,
        )

    return _build
