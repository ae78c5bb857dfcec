"""CLI entry point for sonarqube-client.

Runs a single read-only query against the server described by a YAML config
file and prints the decoded value as JSON.
"""

from __future__ import annotations

import argparse
import asyncio
import json
import sys
from dataclasses import dataclass
from pathlib import Path
from typing import Any

import httpx
from pydantic import BaseModel

from sonarqube_client.client import SonarQubeClient
from sonarqube_client.config_loader import ConfigError, load_client_config
from sonarqube_client.executor import SonarQubeClientError
from sonarqube_client.logging_config import configure_logging
from sonarqube_client.models import (
    QualityProfileRequest,
    Result,
    RoslynExportProfileRequest,
)


@dataclass
class CommandArgs:
    """Parsed arguments for one query."""

    command: str
    config: Path
    verbose: bool = False
    log_json: bool = False
    project_key: str | None = None
    profile_name: str | None = None
    language: str | None = None


def build_parser() -> argparse.ArgumentParser:
    """Build the argument parser with one subcommand per query."""
    parser = argparse.ArgumentParser(
        prog="sonarqube-client",
        description="Query a SonarQube server and print the result as JSON.",
    )
    parser.add_argument(
        "--config",
        type=Path,
        required=True,
        help="Path to the client config file (YAML)",
    )
    parser.add_argument("--verbose", action="store_true", help="Log every request")
    parser.add_argument("--log-json", action="store_true", help="Log as JSON lines")

    subparsers = parser.add_subparsers(dest="command", required=True, help="Query to run")
    subparsers.add_parser("version", help="Print the server version")
    subparsers.add_parser("validate", help="Check the configured credentials")
    subparsers.add_parser("plugins", help="List installed plugins")
    subparsers.add_parser("projects", help="List projects")
    subparsers.add_parser("properties", help="List global settings")

    profiles_parser = subparsers.add_parser(
        "profiles", help="List the quality profiles of a project (or the defaults)"
    )
    profiles_parser.add_argument(
        "--project-key",
        type=str,
        default=None,
        help="Project key; omit to list the default profiles",
    )

    export_parser = subparsers.add_parser(
        "export-profile", help="Print the Roslyn export of a quality profile (XML)"
    )
    export_parser.add_argument("--name", type=str, required=True, help="Quality profile name")
    export_parser.add_argument(
        "--language", type=str, required=True, help="Language key, e.g. cs or vbnet"
    )
    return parser


def parse_args(args: list[str] | None = None) -> CommandArgs:
    """Parse command-line arguments into CommandArgs.

    Raises:
        SystemExit: If arguments are invalid (argparse behavior).
    """
    namespace = build_parser().parse_args(args)
    return CommandArgs(
        command=namespace.command,
        config=namespace.config,
        verbose=namespace.verbose,
        log_json=namespace.log_json,
        project_key=getattr(namespace, "project_key", None),
        profile_name=getattr(namespace, "name", None),
        language=getattr(namespace, "language", None),
    )


def main() -> int:
    """Main entry point."""
    try:
        args = parse_args()
        configure_logging(verbose=args.verbose, log_json=args.log_json)
        return run_command(args)
    except KeyboardInterrupt:
        print("\nInterrupted", file=sys.stderr)
        return 1


def run_command(args: CommandArgs) -> int:
    try:
        config = load_client_config(args.config)
    except ConfigError as e:
        print(f"Error loading config: {e}", file=sys.stderr)
        return 1

    try:
        return asyncio.run(_run_query(SonarQubeClient.from_config(config), args))
    except SonarQubeClientError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1
    except httpx.TransportError as e:
        print(f"Error: cannot reach {config.server_url}: {e}", file=sys.stderr)
        return 1


async def _run_query(client: SonarQubeClient, args: CommandArgs) -> int:
    async with client:
        result = await _call(client, args)

    if not result.is_success:
        print(f"HTTP {result.status_code}", file=sys.stderr)
        return 1

    if args.command == "export-profile":
        print(result.value.xml)
    else:
        print(json.dumps(_to_jsonable(result.value), indent=2))
    return 0


async def _call(client: SonarQubeClient, args: CommandArgs) -> Result[Any]:
    if args.command == "version":
        return await client.get_version()
    elif args.command == "validate":
        return await client.validate_credentials()
    elif args.command == "plugins":
        return await client.get_plugins()
    elif args.command == "projects":
        return await client.get_projects()
    elif args.command == "properties":
        return await client.get_properties()
    elif args.command == "profiles":
        return await client.get_quality_profiles(
            QualityProfileRequest(project_key=args.project_key)
        )
    elif args.command == "export-profile":
        return await client.get_roslyn_export_profile(
            RoslynExportProfileRequest(
                quality_profile_name=args.profile_name, language_key=args.language
            )
        )
    raise ValueError(f"Unknown command: {args.command}")


def _to_jsonable(value: Any) -> Any:
    if isinstance(value, BaseModel):
        return value.model_dump(mode="json")
    if isinstance(value, list):
        return [_to_jsonable(item) for item in value]
    return value


if __name__ == "__main__":
    sys.exit(main())
