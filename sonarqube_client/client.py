"""SonarQubeClient - typed async access to the SonarQube web API.

Usage:
    connection = ConnectionInfo(server_url="https://sonar.example.com", login=token)
    async with SonarQubeClient(connection, httpx.AsyncHTTPTransport(), 30.0) as client:
        result = await client.get_version()
        if result.is_success:
            print(result.value.version)

Every method returns a Result. Non-2xx responses are reported through
``Result.is_success``/``Result.status_code``; cancellation, timeouts,
transport faults and malformed bodies raise (see executor.py).
"""

from __future__ import annotations

import asyncio
import logging
from typing import TYPE_CHECKING, Any

import httpx

from sonarqube_client import endpoints
from sonarqube_client.executor import (
    ClientConfigurationError,
    RequestExecutor,
    validate_request_timeout,
)
from sonarqube_client.models import (
    ComponentRequest,
    ComponentResponse,
    ConnectionInfo,
    CredentialResponse,
    IssuesRequest,
    NotificationEvent,
    NotificationsRequest,
    OrganizationRequest,
    OrganizationResponse,
    PluginResponse,
    ProjectResponse,
    PropertyResponse,
    QualityProfileChangeLogRequest,
    QualityProfileChangeLogResponse,
    QualityProfileRequest,
    QualityProfileResponse,
    Result,
    RoslynExportProfileRequest,
    RoslynExportProfileResponse,
    ServerIssue,
    VersionResponse,
)

if TYPE_CHECKING:
    from sonarqube_client.config_loader import ClientConfig

logger = logging.getLogger(__name__)


class SonarQubeClient:
    """Facade over the SonarQube web API, one coroutine per endpoint.

    The client owns ``transport`` and releases it in ``aclose()``. Closing is
    idempotent. Calls still in flight when the client is closed have
    undefined outcome.
    """

    def __init__(
        self,
        connection: ConnectionInfo,
        transport: httpx.AsyncBaseTransport,
        request_timeout: float,
    ) -> None:
        """Initialize the client.

        Args:
            connection: Server address and optional credentials.
            transport: httpx transport used for every request.
            request_timeout: Seconds before an in-flight call is canceled.

        Raises:
            ClientConfigurationError: If connection or transport is None, or
                request_timeout is not positive.
        """
        if connection is None:
            raise ClientConfigurationError("connection", "must not be None")
        if transport is None:
            raise ClientConfigurationError("transport", "must not be None")
        request_timeout = validate_request_timeout(request_timeout)

        auth = None
        if connection.login:
            auth = httpx.BasicAuth(connection.login, connection.password or "")

        # timeout=None: the executor enforces request_timeout across the whole call
        self._http_client = httpx.AsyncClient(transport=transport, auth=auth, timeout=None)
        self._executor = RequestExecutor(connection, self._http_client, request_timeout)
        self._connection = connection
        self._closed = False

    @classmethod
    def from_config(cls, config: ClientConfig) -> SonarQubeClient:
        """Create a client with a default network transport from a loaded config."""
        transport = httpx.AsyncHTTPTransport(verify=config.verify_ssl)
        return cls(config.connection(), transport, config.request_timeout)

    @property
    def connection(self) -> ConnectionInfo:
        return self._connection

    @property
    def closed(self) -> bool:
        return self._closed

    async def __aenter__(self) -> SonarQubeClient:
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: Any,
    ) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        """Close the HTTP client and its transport. Later calls are no-ops."""
        if self._closed:
            return
        self._closed = True
        logger.debug("Closing client for %s", self._connection.server_url)
        await self._http_client.aclose()

    # =========================================================================
    # Endpoints
    # =========================================================================

    async def get_components_search_projects(
        self, request: ComponentRequest, cancellation: asyncio.Event | None = None
    ) -> Result[list[ComponentResponse]]:
        return await self._executor.execute(endpoints.SEARCH_PROJECTS, request, cancellation)

    async def get_issues(
        self, key: str, cancellation: asyncio.Event | None = None
    ) -> Result[list[ServerIssue]]:
        """Issues of a project or module, as stored on the server."""
        return await self._executor.execute(endpoints.ISSUES, IssuesRequest(key=key), cancellation)

    async def get_organizations(
        self, request: OrganizationRequest, cancellation: asyncio.Event | None = None
    ) -> Result[list[OrganizationResponse]]:
        return await self._executor.execute(endpoints.ORGANIZATIONS, request, cancellation)

    async def get_plugins(
        self, cancellation: asyncio.Event | None = None
    ) -> Result[list[PluginResponse]]:
        return await self._executor.execute(endpoints.PLUGINS, None, cancellation)

    async def get_projects(
        self, cancellation: asyncio.Event | None = None
    ) -> Result[list[ProjectResponse]]:
        return await self._executor.execute(endpoints.PROJECTS, None, cancellation)

    async def get_properties(
        self, cancellation: asyncio.Event | None = None
    ) -> Result[list[PropertyResponse]]:
        return await self._executor.execute(endpoints.PROPERTIES, None, cancellation)

    async def get_quality_profile_changelog(
        self, request: QualityProfileChangeLogRequest, cancellation: asyncio.Event | None = None
    ) -> Result[QualityProfileChangeLogResponse]:
        return await self._executor.execute(
            endpoints.QUALITY_PROFILE_CHANGELOG, request, cancellation
        )

    async def get_quality_profiles(
        self, request: QualityProfileRequest, cancellation: asyncio.Event | None = None
    ) -> Result[list[QualityProfileResponse]]:
        """Profiles used by ``request.project_key``, or the defaults when it is None."""
        return await self._executor.execute(endpoints.QUALITY_PROFILES, request, cancellation)

    async def get_roslyn_export_profile(
        self, request: RoslynExportProfileRequest, cancellation: asyncio.Event | None = None
    ) -> Result[RoslynExportProfileResponse]:
        return await self._executor.execute(endpoints.ROSLYN_EXPORT_PROFILE, request, cancellation)

    async def get_version(
        self, cancellation: asyncio.Event | None = None
    ) -> Result[VersionResponse]:
        return await self._executor.execute(endpoints.VERSION, None, cancellation)

    async def validate_credentials(
        self, cancellation: asyncio.Event | None = None
    ) -> Result[CredentialResponse]:
        return await self._executor.execute(endpoints.VALIDATE_CREDENTIALS, None, cancellation)

    async def get_notification_events(
        self, request: NotificationsRequest, cancellation: asyncio.Event | None = None
    ) -> Result[list[NotificationEvent]]:
        return await self._executor.execute(endpoints.NOTIFICATION_EVENTS, request, cancellation)
