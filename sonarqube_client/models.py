"""Data models for sonarqube-client.

All models use Pydantic v2 and are frozen: a request descriptor or a result
is built once and never mutated afterwards.
"""

from __future__ import annotations

from datetime import datetime
from typing import Annotated, Any, Generic, TypeVar

from pydantic import BaseModel, BeforeValidator, ConfigDict, Field, field_validator


# Timestamps sent by the server: 2015-02-23T17:58:39+0100
SERVER_DATETIME_FORMAT = "%Y-%m-%dT%H:%M:%S%z"


def parse_server_datetime(value: Any) -> Any:
    """Parse a server timestamp with a numeric offset (``+0100`` or ``+01:00``).

    Non-string values are passed through for pydantic to handle.
    """
    if isinstance(value, str):
        return datetime.strptime(value, SERVER_DATETIME_FORMAT)
    return value


ServerDateTime = Annotated[datetime, BeforeValidator(parse_server_datetime)]


# =============================================================================
# Connection
# =============================================================================


class ConnectionInfo(BaseModel):
    """Server address and optional credentials for one client.

    ``server_url`` is normalised to end with ``/`` so that relative endpoint
    paths resolve below it (``http://host/sonar/`` + ``api/server/version``).
    """

    model_config = ConfigDict(extra="forbid", frozen=True)

    server_url: str = Field(description="Absolute http(s) URL of the server")
    login: str | None = Field(default=None, repr=False, description="Login or user token")
    password: str | None = Field(
        default=None, repr=False, description="Password (empty for user tokens)"
    )

    @field_validator("server_url")
    @classmethod
    def check_absolute_url(cls, v: str) -> str:
        if not v.startswith(("http://", "https://")):
            raise ValueError(f"server_url must be an absolute http(s) URL, got '{v}'")
        if not v.endswith("/"):
            v = v + "/"
        return v


# =============================================================================
# Request Descriptors
# =============================================================================


class _Request(BaseModel):
    model_config = ConfigDict(extra="forbid", frozen=True)


class ComponentRequest(_Request):
    """Paged project search, optionally restricted to one organization."""

    organization_key: str | None = None
    page: int
    page_size: int


class IssuesRequest(_Request):
    """Server-side issues of one component (project or module key)."""

    key: str


class OrganizationRequest(_Request):
    page: int
    page_size: int


class QualityProfileChangeLogRequest(_Request):
    quality_profile_key: str
    page_size: int


class QualityProfileRequest(_Request):
    """Quality profiles of a project, or the default profiles when no key is given."""

    project_key: str | None = None


class RoslynExportProfileRequest(_Request):
    quality_profile_name: str
    language_key: str


class NotificationsRequest(_Request):
    """Notification events of a project raised after ``events_since``."""

    project_key: str
    events_since: datetime


# =============================================================================
# Response Models
# =============================================================================


class _Response(BaseModel):
    """Base for decoded server payloads: wire names are aliases, extras ignored."""

    model_config = ConfigDict(extra="ignore", frozen=True, populate_by_name=True)


class ComponentResponse(_Response):
    organization: str | None = None
    id: str | None = None
    key: str
    name: str | None = None
    is_favorite: bool = Field(default=False, alias="isFavorite")
    tags: list[str] = Field(default_factory=list)
    visibility: str | None = None


class OrganizationResponse(_Response):
    key: str
    name: str | None = None


class PluginResponse(_Response):
    key: str
    name: str | None = None
    version: str | None = None


class ProjectResponse(_Response):
    """Entry of ``api/projects/index``, which uses abbreviated field names."""

    id: str | None = None
    key: str = Field(alias="k")
    name: str | None = Field(default=None, alias="nm")
    scope: str | None = Field(default=None, alias="sc")
    qualifier: str | None = Field(default=None, alias="qu")


class PropertyResponse(_Response):
    key: str
    value: str | None = None


class QualityProfileChangeLogEvent(_Response):
    date: ServerDateTime
    action: str | None = None
    author_login: str | None = Field(default=None, alias="authorLogin")
    author_name: str | None = Field(default=None, alias="authorName")
    rule_key: str | None = Field(default=None, alias="ruleKey")
    rule_name: str | None = Field(default=None, alias="ruleName")
    params: dict[str, str] = Field(default_factory=dict)


class QualityProfileChangeLogResponse(_Response):
    """Changelog page: paging fields on the outer object plus the events."""

    page: int | None = Field(default=None, alias="p")
    page_size: int | None = Field(default=None, alias="ps")
    total: int | None = None
    events: list[QualityProfileChangeLogEvent] = Field(default_factory=list)


class QualityProfileResponse(_Response):
    key: str
    name: str | None = None
    language: str | None = None
    language_name: str | None = Field(default=None, alias="languageName")
    is_inherited: bool = Field(default=False, alias="isInherited")
    is_default: bool = Field(default=False, alias="isDefault")
    active_rule_count: int = Field(default=0, alias="activeRuleCount")
    active_deprecated_rule_count: int = Field(default=0, alias="activeDeprecatedRuleCount")
    rule_updated_at: ServerDateTime | None = Field(default=None, alias="ruleUpdatedAt")
    last_used: ServerDateTime | None = Field(default=None, alias="lastUsed")


class AdditionalFile(_Response):
    file_name: str


class DeploymentPlugin(_Response):
    key: str
    version: str | None = None
    static_resource_name: str | None = None


class NuGetPackage(_Response):
    id: str
    version: str | None = None


class RoslynExportConfiguration(_Response):
    rule_set_xml: str | None = Field(
        default=None, description="The <RuleSet> element serialized as XML"
    )
    additional_files: list[AdditionalFile] = Field(default_factory=list)


class RoslynExportDeployment(_Response):
    plugins: list[DeploymentPlugin] = Field(default_factory=list)
    nuget_packages: list[NuGetPackage] = Field(default_factory=list)


class RoslynExportProfileResponse(_Response):
    """Roslyn export of a quality profile.

    ``xml`` is the document exactly as received and stays the authoritative
    payload; the other fields are extracted from it for convenience.
    """

    version: str | None = None
    xml: str
    configuration: RoslynExportConfiguration = Field(default_factory=RoslynExportConfiguration)
    deployment: RoslynExportDeployment = Field(default_factory=RoslynExportDeployment)


class VersionResponse(_Response):
    version: str


class CredentialResponse(_Response):
    is_valid: bool = Field(alias="valid")


class NotificationEvent(_Response):
    category: str | None = None
    message: str | None = None
    link: str | None = None
    project: str | None = None
    date: ServerDateTime


class ServerIssue(_Response):
    """Issue as returned by ``batch/issues`` (protobuf ``ServerIssue``)."""

    key: str | None = None
    module_key: str | None = None
    path: str | None = None
    rule_repository: str | None = None
    rule_key: str | None = None
    line: int | None = None
    msg: str | None = None
    severity: str | None = None
    manual_severity: bool = False
    resolution: str | None = None
    status: str | None = None
    checksum: str | None = None
    assignee_login: str | None = None
    creation_date: int | None = Field(default=None, description="Epoch milliseconds")
    type: str | None = None


# =============================================================================
# Outcome
# =============================================================================

T = TypeVar("T")


class Result(BaseModel, Generic[T]):
    """Outcome of one call.

    ``is_success`` is True only for a 2xx status whose body decoded. For any
    other status ``value`` is None and ``status_code`` is the server's code.
    """

    model_config = ConfigDict(extra="forbid", frozen=True)

    is_success: bool
    value: T | None = None
    status_code: int

    @classmethod
    def success(cls, value: T, status_code: int) -> Result[T]:
        return cls(is_success=True, value=value, status_code=status_code)

    @classmethod
    def failure(cls, status_code: int) -> Result[T]:
        return cls(is_success=False, value=None, status_code=status_code)
