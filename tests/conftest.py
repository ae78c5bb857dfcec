"""Pytest configuration and shared helpers for sonarqube-client tests.

This file provides:
- RecordingTransport: httpx.MockTransport that records requests and closes
- make_client: SonarQubeClient wired to a RecordingTransport
- Protobuf helpers to build batch/issues bodies
- ENDPOINT_CASES: one entry per client method (call, URL, sample body)
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Any, Awaitable, Callable

import httpx
import pytest

from sonarqube_client.client import SonarQubeClient
from sonarqube_client.models import (
    ComponentRequest,
    ConnectionInfo,
    NotificationsRequest,
    OrganizationRequest,
    QualityProfileChangeLogRequest,
    QualityProfileRequest,
    Result,
    RoslynExportProfileRequest,
)

SERVER_URL = "http://mysq.com/"

Handler = Callable[[httpx.Request], Any]


class RecordingTransport(httpx.MockTransport):
    """MockTransport that keeps every request and counts aclose() calls."""

    def __init__(self, handler: Handler) -> None:
        self.requests: list[httpx.Request] = []
        self.close_count = 0

        def recording_handler(request: httpx.Request) -> Any:
            self.requests.append(request)
            return handler(request)

        super().__init__(recording_handler)

    async def aclose(self) -> None:
        self.close_count += 1


def respond(status_code: int = 200, content: str | bytes = b"") -> Handler:
    """Handler answering every request with the same response."""
    if isinstance(content, str):
        content = content.encode("utf-8")

    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(status_code, content=content)

    return handler


def make_client(
    handler: Handler | None = None,
    request_timeout: float = 10.0,
    connection: ConnectionInfo | None = None,
) -> tuple[SonarQubeClient, RecordingTransport]:
    """Create a client whose transport is a RecordingTransport.

    Prefer this over constructing SonarQubeClient directly - it provides
    the default server URL and exposes the transport for assertions.
    """
    transport = RecordingTransport(handler or respond())
    client = SonarQubeClient(
        connection or ConnectionInfo(server_url=SERVER_URL),
        transport,
        request_timeout,
    )
    return client, transport


@pytest.fixture
def connection() -> ConnectionInfo:
    return ConnectionInfo(server_url=SERVER_URL)


# =============================================================================
# Protobuf helpers
# =============================================================================


def encode_varint(value: int) -> bytes:
    out = bytearray()
    while True:
        byte = value & 0x7F
        value >>= 7
        if value:
            out.append(byte | 0x80)
        else:
            out.append(byte)
            return bytes(out)


def string_field(number: int, value: str) -> bytes:
    data = value.encode("utf-8")
    return encode_varint((number << 3) | 2) + encode_varint(len(data)) + data


def varint_field(number: int, value: int) -> bytes:
    return encode_varint(number << 3) + encode_varint(value)


def delimited(*messages: bytes) -> bytes:
    return b"".join(encode_varint(len(message)) + message for message in messages)


SAMPLE_ISSUE = b"".join([
    string_field(1, "AVg1QOVr"),
    string_field(2, "my_project"),
    string_field(3, "src/Program.cs"),
    string_field(4, "csharpsquid"),
    string_field(5, "S1186"),
    varint_field(6, 42),
    string_field(7, "Add a nested comment explaining why this method is empty."),
    varint_field(8, 3),
    varint_field(9, 1),
    string_field(11, "OPEN"),
    string_field(12, "0f4c1b3d"),
    string_field(13, "anakin"),
    varint_field(14, 1505380519000),
    string_field(15, "CODE_SMELL"),
])


# =============================================================================
# Endpoint table
# =============================================================================

ROSLYN_PROFILE_XML = """<?xml version="1.0" encoding="utf-8"?>
<RoslynExportProfile Version="1.0">
  <Configuration>
    <RuleSet Name="Rules for SonarQube" Description="This rule set was automatically generated from SonarQube." ToolsVersion="14.0">
      <Rules AnalyzerId="SonarAnalyzer.CSharp" RuleNamespace="SonarAnalyzer.CSharp">
        <Rule Id="S121" Action="Warning" />
      </Rules>
    </RuleSet>
    <AdditionalFiles>
      <AdditionalFile FileName="SonarLint.xml" />
    </AdditionalFiles>
  </Configuration>
  <Deployment>
    <Plugins>
      <Plugin Key="csharp" Version="6.4.0.3322" StaticResourceName="SonarAnalyzer-6.4.0.3322.zip" />
    </Plugins>
    <NuGetPackages>
      <NuGetPackage Id="SonarAnalyzer.CSharp" Version="6.4.0.3322" />
    </NuGetPackages>
  </Deployment>
</RoslynExportProfile>"""

Call = Callable[[SonarQubeClient, Any], Awaitable[Result[Any]]]


@dataclass
class EndpointCase:
    """One client method with its expected URL and a well-formed body."""

    id: str
    call: Call
    expected_url: str
    body: str | bytes
    check: Callable[[Any], None]


def _len_is(expected: int) -> Callable[[Any], None]:
    def check(value: Any) -> None:
        assert len(value) == expected

    return check


def _check_changelog(value: Any) -> None:
    assert len(value.events) == 1


def _check_roslyn(value: Any) -> None:
    assert value.version == "1.0"


def _check_version(value: Any) -> None:
    assert value.version == "6.3.0.1234"


def _check_credentials(value: Any) -> None:
    assert value.is_valid is True


ENDPOINT_CASES = [
    EndpointCase(
        id="search_projects",
        call=lambda c, t: c.get_components_search_projects(
            ComponentRequest(organization_key="org", page=42, page_size=25), t
        ),
        expected_url="api/components/search_projects?p=42&ps=25&organization=org&asc=true",
        body=(
            '{"components":[{"organization":"my-org-key-1","id":"AU-Tpxb--iU5OvuD2FLy",'
            '"key":"my_project","name":"My Project 1","isFavorite":true,'
            '"tags":["finance","java"],"visibility":"public"},'
            '{"organization":"my-org-key-1","id":"AU-TpxcA-iU5OvuD2FLz",'
            '"key":"another_project","name":"My Project 2","isFavorite":false,'
            '"tags":[],"visibility":"public"}]}'
        ),
        check=_len_is(2),
    ),
    EndpointCase(
        id="issues",
        call=lambda c, t: c.get_issues("key", t),
        expected_url="batch/issues?key=key",
        body=delimited(SAMPLE_ISSUE),
        check=_len_is(1),
    ),
    EndpointCase(
        id="organizations",
        call=lambda c, t: c.get_organizations(OrganizationRequest(page=42, page_size=25), t),
        expected_url="api/organizations/search?p=42&ps=25",
        body=(
            '{"organizations":[{"key":"foo-company","name":"Foo Company"},'
            '{"key":"bar-company","name":"Bar Company"}]}'
        ),
        check=_len_is(2),
    ),
    EndpointCase(
        id="plugins",
        call=lambda c, t: c.get_plugins(t),
        expected_url="api/updatecenter/installed_plugins",
        body=(
            '[{"key":"findbugs","name":"Findbugs","version":"2.1"},'
            '{"key":"l10nfr","name":"French Pack","version":"1.10"},'
            '{"key":"jira","name":"JIRA","version":"1.2"}]'
        ),
        check=_len_is(3),
    ),
    EndpointCase(
        id="projects",
        call=lambda c, t: c.get_projects(t),
        expected_url="api/projects/index",
        body=(
            '[{"id":"5035","k":"org.jenkins-ci.plugins:sonar","nm":"Jenkins Sonar Plugin",'
            '"sc":"PRJ","qu":"TRK"},'
            '{"id":"5146","k":"org.codehaus.sonar-plugins:sonar-ant-task","nm":"Sonar Ant Task",'
            '"sc":"PRJ","qu":"TRK"},'
            '{"id":"15964","k":"org.codehaus.sonar-plugins:sonar-build-breaker-plugin",'
            '"nm":"Sonar Build Breaker Plugin","sc":"PRJ","qu":"TRK"}]'
        ),
        check=_len_is(3),
    ),
    EndpointCase(
        id="properties",
        call=lambda c, t: c.get_properties(t),
        expected_url="api/properties/",
        body=(
            '[{"key":"sonar.demo.1.text","value":"foo"},'
            '{"key":"sonar.demo.1.boolean","value":"true"},'
            '{"key":"sonar.demo.2.text","value":"bar"}]'
        ),
        check=_len_is(3),
    ),
    EndpointCase(
        id="quality_profile_changelog",
        call=lambda c, t: c.get_quality_profile_changelog(
            QualityProfileChangeLogRequest(quality_profile_key="qp", page_size=25), t
        ),
        expected_url="api/qualityprofiles/changelog?profileKey=qp&ps=25",
        body=(
            '{"events":[{"date":"2015-02-23T17:58:39+0100","action":"ACTIVATED",'
            '"authorLogin":"anakin.skywalker","authorName":"Anakin Skywalker",'
            '"ruleKey":"squid:S2438",'
            '"ruleName":"\\"Threads\\" should not be used where \\"Runnables\\" are expected",'
            '"params":{"severity":"CRITICAL"}}]}'
        ),
        check=_check_changelog,
    ),
    EndpointCase(
        id="quality_profiles",
        call=lambda c, t: c.get_quality_profiles(QualityProfileRequest(project_key="project"), t),
        expected_url="api/qualityprofiles/search?projectKey=project",
        body=(
            '{"profiles":[{"key":"AU-TpxcA-iU5OvuD2FL3","name":"Sonar way","language":"cs",'
            '"languageName":"C#","isInherited":false,"activeRuleCount":37,'
            '"activeDeprecatedRuleCount":0,"isDefault":true,'
            '"ruleUpdatedAt":"2016-12-22T19:10:03+0100","lastUsed":"2016-12-01T19:10:03+0100"}]}'
        ),
        check=_len_is(1),
    ),
    EndpointCase(
        id="roslyn_export_profile",
        call=lambda c, t: c.get_roslyn_export_profile(
            RoslynExportProfileRequest(quality_profile_name="qp", language_key="cs"), t
        ),
        expected_url="api/qualityprofiles/export?language=cs&name=qp&exporterKey=roslyn-cs",
        body=ROSLYN_PROFILE_XML,
        check=_check_roslyn,
    ),
    EndpointCase(
        id="version",
        call=lambda c, t: c.get_version(t),
        expected_url="api/server/version",
        body="6.3.0.1234",
        check=_check_version,
    ),
    EndpointCase(
        id="validate_credentials",
        call=lambda c, t: c.validate_credentials(t),
        expected_url="api/authentication/validate",
        body='{"valid": true}',
        check=_check_credentials,
    ),
    EndpointCase(
        id="notification_events",
        call=lambda c, t: c.get_notification_events(
            NotificationsRequest(
                project_key="project",
                events_since=datetime(2000, 1, 1, tzinfo=timezone(timedelta(hours=1))),
            ),
            t,
        ),
        expected_url="api/developers/search_events?projects=project&from=2000-01-01T00:00:00%2b0100",
        body='{"events": [] }',
        check=_len_is(0),
    ),
]

endpoint_cases = pytest.mark.parametrize(
    "case", ENDPOINT_CASES, ids=[case.id for case in ENDPOINT_CASES]
)
