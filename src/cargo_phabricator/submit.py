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

"""Delivery of Harbormaster payloads over Conduit.

``HarbormasterClient.send`` performs a single call and raises a classified
``SubmissionError``; ``submit`` wraps it with the retry policy and turns the
result into a ``SubmissionOutcome`` for the pipeline.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from typing import TYPE_CHECKING, Final

import httpx
from pydantic import ValidationError

from cargo_phabricator._internal.error_codes import error_code_for
from cargo_phabricator._internal.exceptions import (
    SubmissionAuthError,
    SubmissionError,
    SubmissionNetworkError,
    SubmissionRejectedError,
)
from cargo_phabricator.compat import Self
from cargo_phabricator.core.model_types import LogComponent, SubmissionFailure
from cargo_phabricator.harbormaster.models import ConduitResponse
from cargo_phabricator.logging import structured_extra

if TYPE_CHECKING:
    from collections.abc import Callable
    from types import TracebackType

    from cargo_phabricator.config import RunContext
    from cargo_phabricator.harbormaster.models import HarbormasterPayload

logger: logging.Logger = logging.getLogger("cargo_phabricator.submission")

SEND_MESSAGE_METHOD: Final[str] = "harbormaster.sendmessage"
DEFAULT_TIMEOUT_SECONDS: Final[float] = 30.0
DEFAULT_RETRY_DELAY_SECONDS: Final[float] = 1.0
MAX_ATTEMPTS: Final[int] = 2


@dataclass(slots=True, frozen=True)
class SubmissionOutcome:
    """Result of delivering one payload.

    Attributes:
        failure: Failure class, or ``None`` when the payload was accepted.
        attempts: Number of HTTP calls made.
        detail: Human-readable description of the failure.
    """

    failure: SubmissionFailure | None = None
    attempts: int = 1
    detail: str | None = None

    @property
    def ok(self) -> bool:
        return self.failure is None


def method_url(base_uri: str, method: str = SEND_MESSAGE_METHOD) -> str:
    return f"{base_uri.rstrip('/')}/api/{method}"


class HarbormasterClient:
    """Thin Conduit client bound to one Phabricator install.

    Args:
        context: Run context providing the URI and token.
        transport: Optional httpx transport (tests pass ``httpx.MockTransport``).
        timeout: Per-request timeout in seconds.
    """

    def __init__(
        self,
        context: RunContext,
        *,
        transport: httpx.BaseTransport | None = None,
        timeout: float = DEFAULT_TIMEOUT_SECONDS,
    ) -> None:
        self._context = context
        self._client = httpx.Client(transport=transport, timeout=timeout)

    def __enter__(self) -> Self:
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: TracebackType | None,
    ) -> None:
        self.close()

    def close(self) -> None:
        self._client.close()

    def send(self, payload: HarbormasterPayload) -> ConduitResponse:
        """Post the payload once.

        Raises:
            SubmissionNetworkError: On transport errors and HTTP 5xx.
            SubmissionAuthError: When the token is refused.
            SubmissionRejectedError: When the call is refused for any other
                reason or the response cannot be decoded.
        """
        url = method_url(self._context.api_base)
        try:
            response = self._client.post(url, data=payload.form_data(self._context.token))
        except httpx.TransportError as exc:
            message = f"{type(exc).__name__}: {exc}"
            raise SubmissionNetworkError(message) from exc
        return _classify(response)


def _classify(response: httpx.Response) -> ConduitResponse:
    status = response.status_code
    if status >= 500:
        message = f"HTTP {status} from {response.request.url}"
        raise SubmissionNetworkError(message)
    if status in {401, 403}:
        message = f"HTTP {status}: credentials refused"
        raise SubmissionAuthError(message)
    if status >= 400:
        message = f"HTTP {status} from {response.request.url}"
        raise SubmissionRejectedError(message)
    try:
        body = ConduitResponse.model_validate_json(response.content)
    except ValidationError as exc:
        message = f"undecodable Conduit response: {exc.error_count()} validation errors"
        raise SubmissionRejectedError(message) from exc
    if body.is_auth_error:
        message = f"{body.error_code}: {body.error_info or 'authentication failed'}"
        raise SubmissionAuthError(message)
    if body.is_error:
        message = f"{body.error_code}: {body.error_info or 'request rejected'}"
        raise SubmissionRejectedError(message)
    return body


def submit(
    payload: HarbormasterPayload,
    context: RunContext,
    *,
    transport: httpx.BaseTransport | None = None,
    retry_delay: float = DEFAULT_RETRY_DELAY_SECONDS,
    timeout: float = DEFAULT_TIMEOUT_SECONDS,
    sleep: Callable[[float], None] = time.sleep,
) -> SubmissionOutcome:
    """Deliver one payload, retrying once on network failure.

    Auth and rejection failures are final. This function never raises a
    ``SubmissionError``; the classified failure is returned instead.

    Args:
        payload: Payload produced by the translator.
        context: Run context providing the URI, token and subcommand.
        transport: Optional httpx transport override.
        retry_delay: Seconds to wait before the retry.
        timeout: Per-request timeout in seconds.
        sleep: Delay function, replaceable in tests.

    Returns:
        The submission outcome.
    """
    attempt = 0
    with HarbormasterClient(context, transport=transport, timeout=timeout) as client:
        while True:
            attempt += 1
            try:
                _ = client.send(payload)
            except SubmissionError as exc:
                retry = isinstance(exc, SubmissionNetworkError) and attempt < MAX_ATTEMPTS
                logger.log(
                    logging.WARNING if retry else logging.DEBUG,
                    "%s attempt %d failed (%s): %s",
                    SEND_MESSAGE_METHOD,
                    attempt,
                    exc.failure,
                    exc,
                    extra=structured_extra(
                        LogComponent.SUBMISSION,
                        subcommand=context.subcommand,
                        attempt=attempt,
                        details={"error_code": error_code_for(exc)},
                    ),
                )
                if retry:
                    sleep(retry_delay)
                    continue
                return SubmissionOutcome(failure=exc.failure, attempts=attempt, detail=str(exc))
            logger.info(
                "Submitted %d lint and %d unit records to %s",
                len(payload.lint),
                len(payload.unit),
                context.build_phid,
                extra=structured_extra(
                    LogComponent.SUBMISSION,
                    subcommand=context.subcommand,
                    attempt=attempt,
                ),
            )
            return SubmissionOutcome(attempts=attempt)


__all__ = [
    "DEFAULT_RETRY_DELAY_SECONDS",
    "MAX_ATTEMPTS",
    "SEND_MESSAGE_METHOD",
    "HarbormasterClient",
    "SubmissionOutcome",
    "method_url",
    "submit",
]
