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

"""Configuration loading for cargo-phabricator.

Settings are resolved with the precedence CLI > environment > ``.arcconfig``.
The resulting ``RunContext`` is built once, before cargo is spawned, so a
missing credential never costs a full build.
"""

from __future__ import annotations

import json
import logging
import os
from pathlib import Path
from typing import TYPE_CHECKING

from pydantic import ValidationError

from cargo_phabricator.core.model_types import LogComponent, Subcommand
from cargo_phabricator.core.type_aliases import BuildPHID, ConduitToken
from cargo_phabricator.logging import structured_extra
from cargo_phabricator.runtime import iter_arcconfig_candidates, resolve_with_precedence

from .models import (
    BUILD_PHID_ENV,
    CONDUIT_TOKEN_ENV,
    PHABRICATOR_URI_ENV,
    ArcConfig,
    ArcConfigModel,
    ArcConfigReadError,
    MissingSettingError,
    RunContext,
)

if TYPE_CHECKING:
    from collections.abc import Mapping

logger: logging.Logger = logging.getLogger("cargo_phabricator.config")


def find_arcconfig(start: Path | None = None) -> ArcConfig | None:
    """Find the nearest ``.arcconfig`` that names a repository callsign.

    Files that are not valid JSON or lack ``repository.callsign`` are skipped
    and the search continues in parent directories.

    Args:
        start: Directory to start from (defaults to the working directory).

    Returns:
        The parsed configuration, or ``None`` when no suitable file exists.

    Raises:
        ArcConfigReadError: If a candidate exists but cannot be read.
    """
    for config_path in iter_arcconfig_candidates(start):
        try:
            raw = config_path.read_text(encoding="utf-8")
        except OSError as exc:
            raise ArcConfigReadError(config_path, exc.strerror or str(exc)) from exc
        try:
            model = ArcConfigModel.model_validate(json.loads(raw))
        except (json.JSONDecodeError, ValidationError) as exc:
            logger.debug(
                "Skipping %s: %s",
                config_path,
                exc,
                extra=structured_extra(LogComponent.CONFIG, path=config_path),
            )
            continue
        return ArcConfig(
            location=config_path.parent,
            callsign=model.callsign,
            phabricator_uri=model.phabricator_uri,
        )
    return None


def build_run_context(
    subcommand: Subcommand,
    *,
    phabricator_uri: str | None = None,
    conduit_token: str | None = None,
    build_phid: str | None = None,
    environ: Mapping[str, str] | None = None,
    cwd: Path | None = None,
) -> RunContext:
    """Resolve every setting and build the immutable run context.

    Args:
        subcommand: Wrapped cargo subcommand.
        phabricator_uri: ``--phabricator-uri`` value, if given.
        conduit_token: ``--conduit-token`` value, if given.
        build_phid: ``--build-phid`` value, if given.
        environ: Environment to consult (defaults to ``os.environ``).
        cwd: Working directory to search for ``.arcconfig`` from.

    Returns:
        A frozen ``RunContext``.

    Raises:
        MissingSettingError: If the token, build PHID or Phabricator URI is
            not available from any source.
        ArcConfigReadError: If an ``.arcconfig`` exists but is unreadable.
    """
    env = os.environ if environ is None else environ
    token = resolve_with_precedence(cli_value=conduit_token, env_value=env.get(CONDUIT_TOKEN_ENV))
    if token is None:
        raise MissingSettingError("Conduit token", flag="--conduit-token", env=CONDUIT_TOKEN_ENV)
    phid = resolve_with_precedence(cli_value=build_phid, env_value=env.get(BUILD_PHID_ENV))
    if phid is None:
        raise MissingSettingError("Build target PHID", flag="--build-phid", env=BUILD_PHID_ENV)

    arcconfig = find_arcconfig(cwd)
    uri = resolve_with_precedence(
        cli_value=phabricator_uri,
        env_value=env.get(PHABRICATOR_URI_ENV),
        config_value=arcconfig.phabricator_uri if arcconfig else None,
    )
    if uri is None:
        raise MissingSettingError(
            "Phabricator URI (phabricator.uri in .arcconfig)",
            flag="--phabricator-uri",
            env=PHABRICATOR_URI_ENV,
        )
    if arcconfig is not None:
        project_root = arcconfig.location
    else:
        project_root = (cwd or Path.cwd()).resolve()
        logger.info(
            "No .arcconfig with repository.callsign found; reporting paths relative to %s",
            project_root,
            extra=structured_extra(LogComponent.CONFIG, subcommand=subcommand, path=project_root),
        )
    context = RunContext(
        subcommand=subcommand,
        build_phid=BuildPHID(phid),
        token=ConduitToken(token),
        phabricator_uri=uri,
        project_root=project_root,
    )
    logger.debug(
        "Resolved run context %r",
        context,
        extra=structured_extra(LogComponent.CONFIG, subcommand=subcommand),
    )
    return context


__all__ = ["build_run_context", "find_arcconfig"]
