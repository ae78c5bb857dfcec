"""Request Executor - sends one endpoint call and maps the response to a Result.

Every client method goes through RequestExecutor.execute:

    build URL -> GET -> (canceled | timed out | transport fault | response)
    response 2xx     -> decode body -> Result(is_success=True)
    response non-2xx -> Result(is_success=False, value=None)

Only the non-2xx case is reported as a value. Cancellation raises
RequestCanceledError, transport faults propagate as raised by httpx (or by
the transport), and an undecodable 2xx body raises ResponseDecodeError.
"""

from __future__ import annotations

import asyncio
import logging
import math
import xml.etree.ElementTree as ET
from typing import Any, TypeVar

import httpx

from sonarqube_client.endpoints import Endpoint
from sonarqube_client.models import ConnectionInfo, Result

logger = logging.getLogger(__name__)

T = TypeVar("T")


class SonarQubeClientError(Exception):
    """Base class for errors raised by sonarqube-client."""


class ClientConfigurationError(SonarQubeClientError, ValueError):
    """Raised at construction time when a required collaborator is invalid."""

    def __init__(self, param_name: str, message: str) -> None:
        super().__init__(f"{param_name}: {message}")
        self.param_name = param_name


class RequestCanceledError(SonarQubeClientError):
    """Raised when a call is canceled by the caller or by the request timeout.

    Attributes:
        timed_out: True when the request timeout fired, False when the
            caller's cancellation event was set.
    """

    def __init__(self, message: str, timed_out: bool) -> None:
        super().__init__(message)
        self.timed_out = timed_out


class ResponseDecodeError(SonarQubeClientError):
    """Raised when a 2xx response body cannot be decoded.

    The parser error is available as ``__cause__``.
    """

    def __init__(self, endpoint_name: str, status_code: int, message: str) -> None:
        super().__init__(f"{endpoint_name}: cannot decode HTTP {status_code} response: {message}")
        self.endpoint_name = endpoint_name
        self.status_code = status_code


def validate_request_timeout(request_timeout: Any) -> float:
    """Check that the timeout is a positive number of seconds (``math.inf`` allowed)."""
    if isinstance(request_timeout, bool) or not isinstance(request_timeout, (int, float)):
        raise ClientConfigurationError(
            "request_timeout", f"must be a number of seconds, got {request_timeout!r}"
        )
    # "not >" also rejects NaN
    if not request_timeout > 0:
        raise ClientConfigurationError(
            "request_timeout", f"must be positive, got {request_timeout}"
        )
    return float(request_timeout)


class RequestExecutor:
    """Runs endpoint calls against one server through a shared httpx client.

    The executor holds no per-call state, so calls may run concurrently on
    the same event loop. It does not own ``http_client``; closing it is the
    caller's job.
    """

    def __init__(
        self,
        connection: ConnectionInfo,
        http_client: httpx.AsyncClient,
        request_timeout: float,
    ) -> None:
        """Initialize the executor.

        Args:
            connection: Server address and credentials.
            http_client: Client used to send requests. Its own timeout
                should be disabled; the executor enforces request_timeout.
            request_timeout: Seconds before an in-flight call is canceled.

        Raises:
            ClientConfigurationError: If a collaborator is None or the
                timeout is not positive.
        """
        if connection is None:
            raise ClientConfigurationError("connection", "must not be None")
        if http_client is None:
            raise ClientConfigurationError("http_client", "must not be None")
        self._connection = connection
        self._http_client = http_client
        self._request_timeout = validate_request_timeout(request_timeout)

    @property
    def request_timeout(self) -> float:
        return self._request_timeout

    def absolute_url(self, relative_url: str) -> str:
        # server_url always ends with "/"
        return self._connection.server_url + relative_url

    async def execute(
        self,
        endpoint: Endpoint[T],
        request: Any = None,
        cancellation: asyncio.Event | None = None,
    ) -> Result[T]:
        """Execute one endpoint call.

        Args:
            endpoint: Endpoint descriptor (URL strategy and decoder).
            request: Request descriptor, None for parameterless endpoints.
            cancellation: Optional event; setting it cancels the call.

        Returns:
            Result with the decoded value for 2xx responses, or with
            ``is_success=False`` and the status code otherwise.

        Raises:
            RequestCanceledError: If ``cancellation`` is set or the request
                timeout elapses before the response arrives.
            ResponseDecodeError: If a 2xx body cannot be decoded.
            Exception: Transport faults are re-raised unchanged.
        """
        url = self.absolute_url(endpoint.build_url(request))
        logger.debug("GET %s (%s)", url, endpoint.name)

        response = await self._send(url, endpoint.name, cancellation)
        status_code = response.status_code

        if not response.is_success:
            logger.debug("%s returned HTTP %d", endpoint.name, status_code)
            return Result.failure(status_code)

        body = response.content or b""
        try:
            value = endpoint.decode(body)
        except (ValueError, ET.ParseError) as e:
            # ValueError covers JSON, pydantic, UTF-8 and protobuf errors
            raise ResponseDecodeError(endpoint.name, status_code, str(e)) from e

        logger.debug("%s returned HTTP %d (%d bytes)", endpoint.name, status_code, len(body))
        return Result.success(value, status_code)

    async def _send(
        self,
        url: str,
        endpoint_name: str,
        cancellation: asyncio.Event | None,
    ) -> httpx.Response:
        """Send the GET, racing it against the caller's event and the timeout.

        Whichever of (response, cancellation, timeout) comes first wins. A
        losing send is canceled and awaited before RequestCanceledError is
        raised, so no request outlives the call.
        """
        if cancellation is not None and cancellation.is_set():
            raise RequestCanceledError(f"{endpoint_name} request was canceled", timed_out=False)

        send = asyncio.ensure_future(self._http_client.get(url))
        waiters: set[asyncio.Future[Any]] = {send}
        canceled: asyncio.Future[Any] | None = None
        if cancellation is not None:
            canceled = asyncio.ensure_future(cancellation.wait())
            waiters.add(canceled)

        timeout = None if math.isinf(self._request_timeout) else self._request_timeout
        try:
            done, _ = await asyncio.wait(
                waiters, timeout=timeout, return_when=asyncio.FIRST_COMPLETED
            )
        finally:
            if canceled is not None:
                canceled.cancel()
            if not send.done():
                send.cancel()

        if send in done:
            # Raises the transport fault, if any, unchanged
            return send.result()

        await asyncio.wait({send})
        if canceled is not None and canceled in done:
            logger.debug("%s request was canceled by the caller", endpoint_name)
            raise RequestCanceledError(f"{endpoint_name} request was canceled", timed_out=False)

        logger.warning(
            "%s request timed out after %.1fs", endpoint_name, self._request_timeout
        )
        raise RequestCanceledError(
            f"{endpoint_name} request timed out after {self._request_timeout}s",
            timed_out=True,
        )
