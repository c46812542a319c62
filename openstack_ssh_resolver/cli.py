"""Argument parsing, configuration loading, and endpoint resolution."""

from __future__ import annotations

import argparse
import json
import logging
import sys

from .compute.openstack_client import OpenStackClient
from .config import AppConfig, load_config
from .exceptions import ConfigError, ResolverError
from .logging_config import configure_logging
from .resolver import InstanceNotFound, ResolutionPolicy, ResolvedEndpoint, resolve
from .state import InstanceStateStore

logger = logging.getLogger(__name__)

EXIT_OK = 0
EXIT_ERROR = 1
EXIT_NOT_FOUND = 2


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="openstack-ssh-resolver",
        description="Resolve the SSH host, port and username of an OpenStack instance",
    )
    parser.add_argument(
        "-c", "--config",
        required=True,
        help="Path to the YAML configuration file",
    )
    parser.add_argument(
        "name",
        nargs="?",
        help="Name of the instance",
    )
    parser.add_argument(
        "--id",
        dest="instance_id",
        help="Provider id of the instance (cached for later runs)",
    )
    parser.add_argument(
        "--floating-ip",
        help="Floating IP assigned to the instance (overrides ssh.floating_ip)",
    )
    parser.add_argument(
        "--format",
        choices=("json", "text", "ssh"),
        default="json",
        help="Output format for the resolved endpoint",
    )
    parser.add_argument(
        "--validate",
        action="store_true",
        help="Validate the configuration file and exit",
    )
    return parser


def format_endpoint(endpoint: ResolvedEndpoint, fmt: str) -> str:
    if fmt == "text":
        return f"{endpoint.host} {endpoint.port} {endpoint.username}"
    if fmt == "ssh":
        return " ".join(endpoint.ssh_args())
    return json.dumps(endpoint.to_dict())


def run(config: AppConfig, name: str, instance_id: str | None, floating_ip: str | None, fmt: str) -> int:
    """Resolve one instance and print its endpoint."""
    store = InstanceStateStore(config.state.path)
    if instance_id:
        store.set(name, instance_id)
    handle = store.handle_for(name, instance_id)

    policy = ResolutionPolicy.from_config(config.ssh)
    floating_ip = floating_ip or config.ssh.floating_ip

    client = OpenStackClient(config.openstack)
    result = resolve(client, handle, policy, floating_ip)

    if isinstance(result, InstanceNotFound):
        store.clear(result.name)
        print(f"Instance '{result.name}' not found", file=sys.stderr)
        return EXIT_NOT_FOUND

    print(format_endpoint(result, fmt))
    return EXIT_OK


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    # Load config (minimal logging until config is loaded)
    try:
        config = load_config(args.config)
    except ConfigError as exc:
        print(f"Configuration error: {exc}", file=sys.stderr)
        return EXIT_ERROR

    configure_logging(config.logging)

    if args.validate:
        logger.info("Configuration is valid")
        return EXIT_OK

    if not args.name:
        parser.error("the instance name is required")

    try:
        return run(config, args.name, args.instance_id, args.floating_ip, args.format)
    except ResolverError as exc:
        logger.error(
            "Fatal error: %s", exc,
            extra={"instance": args.name, "status_code": getattr(exc, "status_code", None)},
        )
        return EXIT_ERROR
    except KeyboardInterrupt:
        logger.info("Interrupted")
        return EXIT_ERROR
