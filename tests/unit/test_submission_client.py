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


"""Unit tests for the Harbormaster submission client."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

import httpx
import pytest

from cargo_phabricator.core.model_types import SubmissionFailure
from cargo_phabricator.exceptions import SubmissionAuthError, SubmissionNetworkError, SubmissionRejectedError
from cargo_phabricator.harbormaster import HarbormasterPayload
from cargo_phabricator.submit import HarbormasterClient, method_url, submit
from tests.fixtures.stubs import ConduitStub, conduit_error, conduit_ok

if TYPE_CHECKING:
    from collections.abc import Callable

    from cargo_phabricator.config import RunContext

pytestmark = pytest.mark.unit


def _payload(context: RunContext) -> HarbormasterPayload:
    return HarbormasterPayload(build_target_phid=context.build_phid)


def _status(code: int) -> ConduitStub:
    return ConduitStub(responses=[lambda _: httpx.Response(code)])


def test_method_url_joins_without_double_slash() -> None:
    assert method_url("https://phab.example.com/") == "https://phab.example.com/api/harbormaster.sendmessage"


def test_successful_submission_posts_once(run_context: RunContext, conduit: ConduitStub) -> None:
    sleeps: list[float] = []

    outcome = submit(_payload(run_context), run_context, transport=conduit.transport, sleep=sleeps.append)

    assert outcome.ok
    assert outcome.attempts == 1
    assert sleeps == []
    (call,) = conduit.calls
    assert call.url == "https://phab.example.com/api/harbormaster.sendmessage"
    assert call.output == "json"
    assert call.params["buildTargetPHID"] == run_context.build_phid
    assert call.params["type"] == "work"
    assert call.params["__conduit__"] == {"token": run_context.token}


def test_network_failure_is_retried_once(run_context: RunContext) -> None:
    conduit = ConduitStub(responses=[httpx.ConnectError("connection refused"), conduit_ok])
    sleeps: list[float] = []

    outcome = submit(
        _payload(run_context),
        run_context,
        transport=conduit.transport,
        retry_delay=0.5,
        sleep=sleeps.append,
    )

    assert outcome.ok
    assert outcome.attempts == 2
    assert sleeps == [0.5]
    assert len(conduit.calls) == 2


def test_persistent_network_failure_gives_up_after_retry(
    run_context: RunContext,
    caplog: pytest.LogCaptureFixture,
) -> None:
    conduit = ConduitStub(responses=[httpx.ReadTimeout("timed out")])

    with caplog.at_level(logging.DEBUG, logger="cargo_phabricator"):
        outcome = submit(_payload(run_context), run_context, transport=conduit.transport, sleep=lambda _: None)

    assert outcome.failure is SubmissionFailure.NETWORK
    assert outcome.attempts == 2
    assert len(conduit.calls) == 2
    assert run_context.token not in caplog.text


def test_server_error_counts_as_network_failure(run_context: RunContext) -> None:
    conduit = _status(502)

    outcome = submit(_payload(run_context), run_context, transport=conduit.transport, sleep=lambda _: None)

    assert outcome.failure is SubmissionFailure.NETWORK
    assert len(conduit.calls) == 2


@pytest.mark.parametrize("status", [401, 403])
def test_http_auth_failure_is_not_retried(run_context: RunContext, status: int) -> None:
    conduit = _status(status)

    outcome = submit(_payload(run_context), run_context, transport=conduit.transport, sleep=lambda _: None)

    assert outcome.failure is SubmissionFailure.AUTH
    assert len(conduit.calls) == 1


@pytest.mark.parametrize("code", ["ERR-INVALID-AUTH", "ERR-INVALID-SESSION", "ERR-INVALID-TOKEN"])
def test_conduit_auth_errors(run_context: RunContext, code: str) -> None:
    conduit = ConduitStub(responses=[conduit_error(code, "API token is not valid")])

    outcome = submit(_payload(run_context), run_context, transport=conduit.transport, sleep=lambda _: None)

    assert outcome.failure is SubmissionFailure.AUTH
    assert outcome.detail is not None
    assert code in outcome.detail
    assert len(conduit.calls) == 1


@pytest.mark.parametrize(
    "respond",
    [
        conduit_error("ERR-CONDUIT-CORE", "Build target does not exist"),
        lambda _: httpx.Response(404),
        lambda _: httpx.Response(200, content=b"<html>maintenance</html>"),
        lambda _: httpx.Response(200, json=["not", "an", "object"]),
    ],
)
def test_rejections_are_not_retried(
    run_context: RunContext,
    respond: Callable[[httpx.Request], httpx.Response],
) -> None:
    conduit = ConduitStub(responses=[respond])

    outcome = submit(_payload(run_context), run_context, transport=conduit.transport, sleep=lambda _: None)

    assert outcome.failure is SubmissionFailure.REJECTED
    assert len(conduit.calls) == 1


def test_client_send_raises_classified_errors(run_context: RunContext) -> None:
    payload = _payload(run_context)

    with HarbormasterClient(run_context, transport=_status(500).transport) as client, pytest.raises(
        SubmissionNetworkError,
    ):
        _ = client.send(payload)
    with HarbormasterClient(run_context, transport=_status(401).transport) as client, pytest.raises(
        SubmissionAuthError,
    ):
        _ = client.send(payload)
    with HarbormasterClient(run_context, transport=_status(400).transport) as client, pytest.raises(
        SubmissionRejectedError,
    ):
        _ = client.send(payload)
