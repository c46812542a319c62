"""SSH host selection for a single compute instance."""

from __future__ import annotations

import logging
from typing import Callable

from ..compute import ComputeClient
from ..compute.models import InstanceRecord
from ..exceptions import FloatingIPNotValid, SSHNoValidHost
from .lookup import InstanceHandle, LookupStatus, lookup_instance
from .models import InstanceNotFound, ResolvedEndpoint
from .policy import FloatingIPSource, NetworkSource, ResolutionPolicy

logger = logging.getLogger(__name__)

HostRule = Callable[[InstanceRecord, ResolutionPolicy, str | None], str | None]


def resolve(
    client: ComputeClient,
    handle: InstanceHandle,
    policy: ResolutionPolicy,
    floating_ip: str | None = None,
) -> ResolvedEndpoint | InstanceNotFound:
    """Resolve the SSH endpoint for the instance behind ``handle``.

    Returns InstanceNotFound when the instance cannot be found; the caller
    owns clearing any cached id. Raises FloatingIPNotValid or SSHNoValidHost
    when the instance exists but no usable host can be selected, and
    re-raises ComputeAPIError when fetching a known id fails.
    """
    result = lookup_instance(client, handle)
    if result.status is LookupStatus.ERROR:
        raise result.error
    if result.status is LookupStatus.NOT_FOUND:
        logger.info("Machine couldn't be found, assuming it got destroyed.", extra={"instance": handle.name})
        return InstanceNotFound(name=handle.name, id=handle.id)

    record = result.record
    host = select_host(record, policy, floating_ip)
    return ResolvedEndpoint(host=host, username=policy.username)


def select_host(record: InstanceRecord, policy: ResolutionPolicy, floating_ip: str | None = None) -> str:
    """Pick the SSH host from the instance's addresses.

    Rules are tried in order and the first non-empty host wins: the
    explicit network, the explicit address source, then the public and
    private pools.
    """
    for network_name in record.network_names:
        logger.debug("OpenStack network name: %s", network_name, extra={"network": network_name})

    host = None
    for rule in HOST_RULES:
        host = rule(record, policy, floating_ip)
        if host:
            break

    # An empty host makes ssh clients fall back to localhost, never right here.
    if not host:
        logger.debug("No valid SSH host could be found.", extra={"instance_id": record.id})
        raise SSHNoValidHost()

    logger.debug("Selected SSH host %s", host, extra={"instance_id": record.id, "host": host})
    return host


def _from_network(record: InstanceRecord, policy: ResolutionPolicy, floating_ip: str | None) -> str | None:
    if policy.network is None:
        return None
    return record.last_address(policy.network)


def _from_address_source(record: InstanceRecord, policy: ResolutionPolicy, floating_ip: str | None) -> str | None:
    source = policy.address_source
    if isinstance(source, FloatingIPSource):
        if not floating_ip:
            return None
        # Metadata without public addresses may predate the association.
        if record.public_ip_addresses:
            _require_public(record, floating_ip)
        return floating_ip
    if isinstance(source, NetworkSource):
        return record.last_address(source.network)
    return None


def _from_public_pool(record: InstanceRecord, policy: ResolutionPolicy, floating_ip: str | None) -> str | None:
    if not record.public_ip_addresses:
        return None

    logger.debug("Was unable to determine what network to use. Trying to find a valid IP to use.")
    logger.debug("Public IP addresses available: %s", list(record.public_ip_addresses))
    if floating_ip:
        _require_public(record, floating_ip)
        logger.debug("Using the configured floating IP.", extra={"floating_ip": floating_ip})
        return floating_ip

    host = record.public_ip_address
    logger.debug("Using the first available public IP address: %s.", host)
    return host


def _from_private_pool(record: InstanceRecord, policy: ResolutionPolicy, floating_ip: str | None) -> str | None:
    # Only consulted when the public pool is empty.
    if record.public_ip_addresses or not record.private_ip_addresses:
        return None

    logger.debug("Private IP addresses available: %s", list(record.private_ip_addresses))
    if policy.ip_family is None:
        host = record.private_ip_address
        logger.debug("Using the first available private IP address: %s.", host)
        return host

    for address in record.private_ip_addresses:
        if policy.ip_family.matches(address):
            logger.debug("Using the first available %s IP address: %s.", policy.ip_family.value, address)
            return address

    logger.debug("No private %s address available.", policy.ip_family.value)
    return None


def _require_public(record: InstanceRecord, floating_ip: str) -> None:
    if floating_ip not in record.public_ip_addresses:
        logger.debug(
            "The floating IP that was specified is not available to this instance.",
            extra={"floating_ip": floating_ip},
        )
        raise FloatingIPNotValid(floating_ip)


HOST_RULES: tuple[HostRule, ...] = (
    _from_network,
    _from_address_source,
    _from_public_pool,
    _from_private_pool,
)
