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

"""Public runtime helpers for cargo-phabricator layers above `_infra`."""

from __future__ import annotations

from cargo_phabricator._infra.paths import ARCCONFIG_NAME, iter_arcconfig_candidates, relative_to_root
from cargo_phabricator._infra.precedence import resolve_with_precedence
from cargo_phabricator._infra.process import CommandOutput, StreamingProcess
from cargo_phabricator._infra.utils import consume

__all__ = [
    "ARCCONFIG_NAME",
    "CommandOutput",
    "StreamingProcess",
    "consume",
    "iter_arcconfig_candidates",
    "relative_to_root",
    "resolve_with_precedence",
]
