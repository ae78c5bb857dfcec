"""Endpoint descriptors - one URL strategy and one decoder per server API.

The executor only knows about ``Endpoint``; adding a server API means adding
a builder in url_builder.py, a decoder in decoders.py and one entry here.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Callable, Generic, TypeVar

from sonarqube_client import decoders, url_builder
from sonarqube_client.models import (
    ComponentResponse,
    CredentialResponse,
    NotificationEvent,
    OrganizationResponse,
    PluginResponse,
    ProjectResponse,
    PropertyResponse,
    QualityProfileChangeLogResponse,
    QualityProfileResponse,
    RoslynExportProfileResponse,
    ServerIssue,
    VersionResponse,
)

T = TypeVar("T")


@dataclass(frozen=True)
class Endpoint(Generic[T]):
    """A server API: how to build its URL and how to read its body.

    Attributes:
        name: Identifier used in logs and errors.
        build_url: Maps the request descriptor (None for parameterless
            endpoints) to a relative URL.
        decode: Maps the body bytes of a 2xx response to the typed value.
    """

    name: str
    build_url: Callable[[Any], str]
    decode: Callable[[bytes], T]


SEARCH_PROJECTS: Endpoint[list[ComponentResponse]] = Endpoint(
    "search_projects", url_builder.search_projects_url, decoders.decode_components
)
ISSUES: Endpoint[list[ServerIssue]] = Endpoint(
    "issues", url_builder.issues_url, decoders.decode_issues
)
ORGANIZATIONS: Endpoint[list[OrganizationResponse]] = Endpoint(
    "organizations", url_builder.organizations_url, decoders.decode_organizations
)
PLUGINS: Endpoint[list[PluginResponse]] = Endpoint(
    "installed_plugins", url_builder.plugins_url, decoders.decode_plugins
)
PROJECTS: Endpoint[list[ProjectResponse]] = Endpoint(
    "projects_index", url_builder.projects_url, decoders.decode_projects
)
PROPERTIES: Endpoint[list[PropertyResponse]] = Endpoint(
    "properties", url_builder.properties_url, decoders.decode_properties
)
QUALITY_PROFILE_CHANGELOG: Endpoint[QualityProfileChangeLogResponse] = Endpoint(
    "quality_profile_changelog",
    url_builder.quality_profile_changelog_url,
    decoders.decode_quality_profile_changelog,
)
QUALITY_PROFILES: Endpoint[list[QualityProfileResponse]] = Endpoint(
    "quality_profiles", url_builder.quality_profiles_url, decoders.decode_quality_profiles
)
ROSLYN_EXPORT_PROFILE: Endpoint[RoslynExportProfileResponse] = Endpoint(
    "roslyn_export_profile",
    url_builder.roslyn_export_profile_url,
    decoders.decode_roslyn_export_profile,
)
VERSION: Endpoint[VersionResponse] = Endpoint(
    "server_version", url_builder.version_url, decoders.decode_version
)
VALIDATE_CREDENTIALS: Endpoint[CredentialResponse] = Endpoint(
    "validate_credentials", url_builder.validate_credentials_url, decoders.decode_credentials
)
NOTIFICATION_EVENTS: Endpoint[list[NotificationEvent]] = Endpoint(
    "notification_events",
    url_builder.notification_events_url,
    decoders.decode_notification_events,
)

ALL_ENDPOINTS: tuple[Endpoint[Any], ...] = (
    SEARCH_PROJECTS,
    ISSUES,
    ORGANIZATIONS,
    PLUGINS,
    PROJECTS,
    PROPERTIES,
    QUALITY_PROFILE_CHANGELOG,
    QUALITY_PROFILES,
    ROSLYN_EXPORT_PROFILE,
    VERSION,
    VALIDATE_CREDENTIALS,
    NOTIFICATION_EVENTS,
)
