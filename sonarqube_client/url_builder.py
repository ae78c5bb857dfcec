"""URL Builder - maps request descriptors to relative URLs.

Every builder is a pure function returning ``path`` or ``path?query``.
Parameter order is fixed per endpoint and must not change: the server does
not care, but the URLs are compared literally in tests and logs.

Values are percent-encoded as query components: letters, digits and
``-_.~:/@!*()`` are kept and every other byte of the UTF-8 encoding becomes
``%xx`` with lower-case hex digits. ``+`` is always escaped because the
server decodes it as a space, so the offset of ``2000-01-01T00:00:00+0100``
is sent as ``%2b0100``.
"""

from __future__ import annotations

import re
from datetime import datetime
from urllib.parse import quote

from sonarqube_client.models import (
    ComponentRequest,
    IssuesRequest,
    NotificationsRequest,
    OrganizationRequest,
    QualityProfileChangeLogRequest,
    QualityProfileRequest,
    RoslynExportProfileRequest,
)


SEARCH_PROJECTS_PATH = "api/components/search_projects"
ISSUES_PATH = "batch/issues"
ORGANIZATIONS_PATH = "api/organizations/search"
PLUGINS_PATH = "api/updatecenter/installed_plugins"
PROJECTS_PATH = "api/projects/index"
PROPERTIES_PATH = "api/properties/"
QUALITY_PROFILE_CHANGELOG_PATH = "api/qualityprofiles/changelog"
QUALITY_PROFILES_PATH = "api/qualityprofiles/search"
ROSLYN_EXPORT_PROFILE_PATH = "api/qualityprofiles/export"
VERSION_PATH = "api/server/version"
VALIDATE_CREDENTIALS_PATH = "api/authentication/validate"
NOTIFICATION_EVENTS_PATH = "api/developers/search_events"

# Exporter keys are "roslyn-<language>", e.g. roslyn-cs, roslyn-vbnet
ROSLYN_EXPORTER_PREFIX = "roslyn-"

QUERY_DATETIME_FORMAT = "%Y-%m-%dT%H:%M:%S%z"
QUERY_SAFE_CHARS = ":/@!*()"

_PERCENT_ESCAPE = re.compile(r"%[0-9A-F]{2}")

QueryValue = str | int | bool | datetime | None


def encode_query_value(value: str) -> str:
    """Percent-encode a single query value with lower-case escapes."""
    encoded = quote(value, safe=QUERY_SAFE_CHARS)
    return _PERCENT_ESCAPE.sub(lambda m: m.group(0).lower(), encoded)


def format_query_datetime(value: datetime) -> str:
    """Format a datetime as ``YYYY-MM-DDTHH:MM:SS+HHMM``.

    Naive datetimes are taken to be in the local timezone.
    """
    if value.tzinfo is None or value.utcoffset() is None:
        value = value.astimezone()
    return value.strftime(QUERY_DATETIME_FORMAT)


def _to_query_string(value: str | int | bool | datetime) -> str:
    # bool first: bool is a subclass of int
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, datetime):
        return format_query_datetime(value)
    return str(value)


def build_url(path: str, params: list[tuple[str, QueryValue]] | None = None) -> str:
    """Join a path and its query parameters, dropping parameters set to None.

    Args:
        path: Relative endpoint path.
        params: Ordered (name, value) pairs.

    Returns:
        ``path`` alone when no parameter is left, else ``path?name=value&...``.
    """
    pairs = [
        f"{name}={encode_query_value(_to_query_string(value))}"
        for name, value in params or []
        if value is not None
    ]
    if not pairs:
        return path
    return f"{path}?{'&'.join(pairs)}"


# =============================================================================
# Per-endpoint builders
# =============================================================================


def search_projects_url(request: ComponentRequest) -> str:
    return build_url(
        SEARCH_PROJECTS_PATH,
        [
            ("p", request.page),
            ("ps", request.page_size),
            ("organization", request.organization_key),
            ("asc", True),
        ],
    )


def issues_url(request: IssuesRequest) -> str:
    return build_url(ISSUES_PATH, [("key", request.key)])


def organizations_url(request: OrganizationRequest) -> str:
    return build_url(ORGANIZATIONS_PATH, [("p", request.page), ("ps", request.page_size)])


def plugins_url(request: None = None) -> str:
    return PLUGINS_PATH


def projects_url(request: None = None) -> str:
    return PROJECTS_PATH


def properties_url(request: None = None) -> str:
    return PROPERTIES_PATH


def quality_profile_changelog_url(request: QualityProfileChangeLogRequest) -> str:
    return build_url(
        QUALITY_PROFILE_CHANGELOG_PATH,
        [("profileKey", request.quality_profile_key), ("ps", request.page_size)],
    )


def quality_profiles_url(request: QualityProfileRequest) -> str:
    """Profiles of one project, or the server defaults when no project is given.

    The two shapes are exclusive: ``defaults=true`` is never sent together
    with ``projectKey``.
    """
    if request.project_key is None:
        return build_url(QUALITY_PROFILES_PATH, [("defaults", True)])
    return build_url(QUALITY_PROFILES_PATH, [("projectKey", request.project_key)])


def roslyn_export_profile_url(request: RoslynExportProfileRequest) -> str:
    return build_url(
        ROSLYN_EXPORT_PROFILE_PATH,
        [
            ("language", request.language_key),
            ("name", request.quality_profile_name),
            ("exporterKey", f"{ROSLYN_EXPORTER_PREFIX}{request.language_key}"),
        ],
    )


def version_url(request: None = None) -> str:
    return VERSION_PATH


def validate_credentials_url(request: None = None) -> str:
    return VALIDATE_CREDENTIALS_PATH


def notification_events_url(request: NotificationsRequest) -> str:
    return build_url(
        NOTIFICATION_EVENTS_PATH,
        [("projects", request.project_key), ("from", request.events_since)],
    )
