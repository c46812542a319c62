"""Data models for OpenStack compute instances and their addresses."""

from __future__ import annotations

import ipaddress
import logging
import re
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, Mapping

logger = logging.getLogger(__name__)

ADDRESS_TYPE_KEY = "OS-EXT-IPS:type"
FLOATING = "floating"

_PUBLIC_NETWORK = re.compile(r"public", re.IGNORECASE)


@dataclass(frozen=True)
class AddressEntry:
    """A single address attached to one of the instance's networks."""

    addr: str
    version: int = 4
    kind: str | None = None  # "fixed" or "floating", when the provider reports it

    @property
    def is_floating(self) -> bool:
        return self.kind == FLOATING

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> AddressEntry:
        addr = str(data.get("addr", ""))
        version = data.get("version")
        if version is None:
            version = _version_of(addr) or 4
        return cls(addr=addr, version=int(version), kind=data.get(ADDRESS_TYPE_KEY))


@dataclass(frozen=True)
class InstanceRecord:
    """A compute instance as reported by the provider. Read-only for the resolver."""

    id: str
    name: str
    addresses: Mapping[str, tuple[AddressEntry, ...]] = field(default_factory=dict, hash=False)
    public_ip_addresses: tuple[str, ...] = ()
    private_ip_addresses: tuple[str, ...] = ()

    def __post_init__(self) -> None:
        object.__setattr__(
            self,
            "addresses",
            MappingProxyType({network: tuple(entries) for network, entries in self.addresses.items()}),
        )

    @property
    def network_names(self) -> list[str]:
        return list(self.addresses)

    @property
    def public_ip_address(self) -> str | None:
        return self.public_ip_addresses[0] if self.public_ip_addresses else None

    @property
    def private_ip_address(self) -> str | None:
        return self.private_ip_addresses[0] if self.private_ip_addresses else None

    def last_address(self, network: str) -> str | None:
        """Address of the last entry on ``network``, or None if the network is absent or empty.

        Providers append the most recently assigned address (typically a
        floating/NAT address) last, so the last entry is the one returned.
        """
        entries = self.addresses.get(network)
        if not entries:
            return None
        return entries[-1].addr or None

    @classmethod
    def from_server(cls, server: Mapping[str, Any]) -> InstanceRecord:
        """Build a record from a Nova ``server`` object."""
        raw_addresses = server.get("addresses") or {}
        addresses = {
            str(network): tuple(AddressEntry.from_dict(entry) for entry in (entries or []))
            for network, entries in raw_addresses.items()
        }
        public, private = classify_addresses(addresses)
        return cls(
            id=str(server["id"]),
            name=str(server.get("name", "")),
            addresses=addresses,
            public_ip_addresses=public,
            private_ip_addresses=private,
        )


def classify_addresses(
    addresses: Mapping[str, tuple[AddressEntry, ...]],
) -> tuple[tuple[str, ...], tuple[str, ...]]:
    """Split an address map into ordered (public, private) address tuples.

    Public addresses are the floating addresses when any exist; otherwise the
    first address of each network named like "public"; otherwise every
    globally routable address. Private addresses are the remaining
    non-public addresses that are not globally routable, which includes
    RFC 1918, unique-local IPv6 and shared (CGNAT, 100.64.0.0/10) ranges.
    Loopback, multicast and unspecified addresses belong to neither pool.
    """
    all_entries = [entry for entries in addresses.values() for entry in entries if entry.addr]

    public = [entry.addr for entry in all_entries if entry.is_floating]
    if not public:
        public = [
            entries[0].addr
            for network, entries in addresses.items()
            if entries and entries[0].addr and _PUBLIC_NETWORK.search(network)
        ]
    if not public:
        public = [entry.addr for entry in all_entries if _is_global(entry.addr)]

    public_set = set(public)
    private = [
        entry.addr
        for entry in all_entries
        if entry.addr not in public_set and _is_internal(entry.addr)
    ]
    return tuple(_dedupe(public)), tuple(_dedupe(private))


def _dedupe(values: list[str]) -> list[str]:
    seen: set[str] = set()
    result = []
    for value in values:
        if value not in seen:
            seen.add(value)
            result.append(value)
    return result


def _parse(addr: str) -> ipaddress.IPv4Address | ipaddress.IPv6Address | None:
    try:
        return ipaddress.ip_address(addr)
    except ValueError:
        logger.debug("Ignoring unparseable address %r", addr)
        return None


def _version_of(addr: str) -> int | None:
    ip = _parse(addr)
    return ip.version if ip is not None else None


def _is_global(addr: str) -> bool:
    ip = _parse(addr)
    return ip is not None and ip.is_global


def _is_internal(addr: str) -> bool:
    ip = _parse(addr)
    if ip is None or ip.is_global:
        return False
    return not (ip.is_loopback or ip.is_multicast or ip.is_unspecified)
