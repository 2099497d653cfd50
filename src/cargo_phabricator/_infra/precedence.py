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

"""Generic precedence chain resolution for cargo-phabricator settings.

This module provides a reusable implementation of the standard precedence
chain: CLI > environment > ``.arcconfig`` > default.
"""

from __future__ import annotations

from typing import TypeVar

T = TypeVar("T")


def resolve_with_precedence(
    *,
    cli_value: T | None = None,
    env_value: T | None = None,
    config_value: T | None = None,
    default: T | None = None,
) -> T | None:
    """Resolve a value using the standard precedence chain.

    Precedence (highest to lowest):
    1. CLI argument/flag
    2. Environment variable
    3. ``.arcconfig`` setting
    4. Default value

    Empty strings count as unset so that ``FOO=`` in a CI environment does
    not mask a lower-precedence source.

    Args:
        cli_value: Value from CLI argument.
        env_value: Value from environment variable.
        config_value: Value from ``.arcconfig``.
        default: Fallback default value.

    Returns:
        The highest-precedence non-empty value, or default.

    Example:
        >>> resolve_with_precedence(cli_value="a", env_value="b", config_value="c", default="d")
        'a'
        >>> resolve_with_precedence(cli_value=None, env_value="", config_value="c", default="d")
        'c'
    """
    for candidate in (cli_value, env_value, config_value):
        if candidate is not None and candidate != "":
            return candidate
    return default
