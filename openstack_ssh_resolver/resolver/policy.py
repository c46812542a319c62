"""Resolution policy: explicit address overrides and IP-family preference."""

from __future__ import annotations

import enum
import ipaddress
from dataclasses import dataclass

from ..config import SSHConfig

FLOATING_IP = "floating_ip"


class IPFamily(enum.Enum):
    IPV4 = "ipv4"
    IPV6 = "ipv6"

    @property
    def version(self) -> int:
        return 4 if self is IPFamily.IPV4 else 6

    def matches(self, address: str) -> bool:
        """True if ``address`` parses as an address of this family."""
        try:
            return ipaddress.ip_address(address).version == self.version
        except ValueError:
            return False


@dataclass(frozen=True)
class NetworkSource:
    """Take the address from a named network."""

    network: str


@dataclass(frozen=True)
class FloatingIPSource:
    """Use the floating IP supplied by the caller."""


AddressSource = NetworkSource | FloatingIPSource


def parse_address_source(value: str | None) -> AddressSource | None:
    """Map a configured ``address_id`` to its variant.

    Only the exact value ``floating_ip`` selects the floating IP; anything
    else names a network.
    """
    if not value:
        return None
    if value == FLOATING_IP:
        return FloatingIPSource()
    return NetworkSource(value)


@dataclass(frozen=True)
class ResolutionPolicy:
    username: str
    network: str | None = None
    address_source: AddressSource | None = None
    ip_family: IPFamily | None = None

    @classmethod
    def from_config(cls, config: SSHConfig) -> ResolutionPolicy:
        return cls(
            username=config.username,
            network=config.network or None,
            address_source=parse_address_source(config.address_id),
            ip_family=IPFamily(config.ip_family) if config.ip_family else None,
        )
