"""Response Decoders - turn a successful response body into a typed value.

Each decoder takes the raw body bytes (empty when the response had none)
and returns the endpoint's value. Decoders never return a default for a
body they cannot read: parse and validation errors propagate to the
executor, which reports them as ResponseDecodeError.

Body shapes:
    JSON object wrapping an array  -> components, organizations, profiles,
                                      notification events
    Bare JSON array                -> plugins, projects, properties
    JSON object                    -> profile changelog, credential check
    XML document                   -> Roslyn export profile
    Plain text                     -> server version
    Delimited protobuf             -> issues (see issues_stream.py)
"""

from __future__ import annotations

import codecs
import json
import re
import xml.etree.ElementTree as ET
from typing import Any, TypeVar

from pydantic import BaseModel, TypeAdapter

from sonarqube_client.issues_stream import parse_server_issues
from sonarqube_client.models import (
    AdditionalFile,
    ComponentResponse,
    CredentialResponse,
    DeploymentPlugin,
    NotificationEvent,
    NuGetPackage,
    OrganizationResponse,
    PluginResponse,
    ProjectResponse,
    PropertyResponse,
    QualityProfileChangeLogResponse,
    QualityProfileResponse,
    RoslynExportConfiguration,
    RoslynExportDeployment,
    RoslynExportProfileResponse,
    ServerIssue,
    VersionResponse,
)

M = TypeVar("M", bound=BaseModel)

ROSLYN_EXPORT_ROOT = "RoslynExportProfile"

# encoding="..." in an XML declaration at the very start of the document
_XML_DECLARED_ENCODING = re.compile(
    rb"\A\s*<\?xml[^>]*?\bencoding\s*=\s*[\"']([A-Za-z0-9._-]+)[\"']"
)


def body_text(body: bytes) -> str:
    """Decode a body as UTF-8, dropping a leading byte order mark."""
    return body.decode("utf-8-sig")


def xml_document_text(body: bytes) -> str:
    """Decode an XML document the way the parser read it.

    A UTF-16 byte order mark wins, then the encoding named in the XML
    declaration, then UTF-8 (with or without a byte order mark).
    """
    if body.startswith((codecs.BOM_UTF16_LE, codecs.BOM_UTF16_BE)):
        return body.decode("utf-16")
    match = _XML_DECLARED_ENCODING.match(body)
    if match is None:
        return body_text(body)
    encoding = codecs.lookup(match.group(1).decode("ascii")).name
    if encoding == "utf-8":
        return body_text(body)
    return body.decode(encoding)


def _load_json(body: bytes) -> Any:
    text = body_text(body)
    if not text.strip():
        raise ValueError("Empty body where a JSON document was expected")
    return json.loads(text)


def _decode_list(data: Any, model: type[M]) -> list[M]:
    return TypeAdapter(list[model]).validate_python(data)


def _decode_wrapped_list(body: bytes, field: str, model: type[M]) -> list[M]:
    """Decode ``{"<field>": [...]}`` into a list of models."""
    data = _load_json(body)
    if not isinstance(data, dict):
        raise ValueError(f"Expected a JSON object with '{field}', got {type(data).__name__}")
    if field not in data:
        raise ValueError(f"JSON object has no '{field}' field")
    return _decode_list(data[field], model)


# =============================================================================
# JSON endpoints
# =============================================================================


def decode_components(body: bytes) -> list[ComponentResponse]:
    return _decode_wrapped_list(body, "components", ComponentResponse)


def decode_organizations(body: bytes) -> list[OrganizationResponse]:
    return _decode_wrapped_list(body, "organizations", OrganizationResponse)


def decode_plugins(body: bytes) -> list[PluginResponse]:
    return _decode_list(_load_json(body), PluginResponse)


def decode_projects(body: bytes) -> list[ProjectResponse]:
    return _decode_list(_load_json(body), ProjectResponse)


def decode_properties(body: bytes) -> list[PropertyResponse]:
    return _decode_list(_load_json(body), PropertyResponse)


def decode_quality_profile_changelog(body: bytes) -> QualityProfileChangeLogResponse:
    return QualityProfileChangeLogResponse.model_validate(_load_json(body))


def decode_quality_profiles(body: bytes) -> list[QualityProfileResponse]:
    return _decode_wrapped_list(body, "profiles", QualityProfileResponse)


def decode_credentials(body: bytes) -> CredentialResponse:
    return CredentialResponse.model_validate(_load_json(body))


def decode_notification_events(body: bytes) -> list[NotificationEvent]:
    return _decode_wrapped_list(body, "events", NotificationEvent)


# =============================================================================
# Text and binary endpoints
# =============================================================================


def decode_version(body: bytes) -> VersionResponse:
    """The version endpoint answers with the bare version string."""
    return VersionResponse(version=body_text(body))


def decode_issues(body: bytes) -> list[ServerIssue]:
    return parse_server_issues(body)


# =============================================================================
# XML endpoint
# =============================================================================


def decode_roslyn_export_profile(body: bytes) -> RoslynExportProfileResponse:
    """Parse a Roslyn export profile document.

    The document is kept verbatim in ``xml``, decoded with the encoding its
    XML declaration names. The rule set is re-serialized as a standalone XML
    string because consumers write it to a .ruleset file untouched; plugins,
    NuGet packages and additional files are extracted from their
    ``Key``/``Id``/``Version``/``FileName`` attributes.

    Raises:
        ValueError: If the body is empty or the root element is not
            ``RoslynExportProfile``.
        ET.ParseError: If the body is not well-formed XML.
    """
    if not body.strip():
        raise ValueError("Empty body where an XML document was expected")

    # Parse the bytes so that the XML declaration's encoding is honoured
    root = ET.fromstring(body)
    if root.tag != ROSLYN_EXPORT_ROOT:
        raise ValueError(f"Expected <{ROSLYN_EXPORT_ROOT}> root element, got <{root.tag}>")

    configuration = RoslynExportConfiguration()
    config_element = root.find("Configuration")
    if config_element is not None:
        rule_set = config_element.find("RuleSet")
        configuration = RoslynExportConfiguration(
            rule_set_xml=ET.tostring(rule_set, encoding="unicode").strip()
            if rule_set is not None
            else None,
            additional_files=[
                AdditionalFile(file_name=element.get("FileName", ""))
                for element in config_element.iterfind("AdditionalFiles/AdditionalFile")
            ],
        )

    deployment = RoslynExportDeployment()
    deployment_element = root.find("Deployment")
    if deployment_element is not None:
        deployment = RoslynExportDeployment(
            plugins=[
                DeploymentPlugin(
                    key=element.get("Key", ""),
                    version=element.get("Version"),
                    static_resource_name=element.get("StaticResourceName"),
                )
                for element in deployment_element.iterfind("Plugins/Plugin")
            ],
            nuget_packages=[
                NuGetPackage(id=element.get("Id", ""), version=element.get("Version"))
                for element in deployment_element.iterfind("NuGetPackages/NuGetPackage")
            ],
        )

    return RoslynExportProfileResponse(
        version=root.get("Version"),
        xml=xml_document_text(body),
        configuration=configuration,
        deployment=deployment,
    )
