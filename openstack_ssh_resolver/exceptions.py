"""Custom exception hierarchy for the SSH endpoint resolver."""


class ResolverError(Exception):
    """Base exception for all resolver errors."""


class ConfigError(ResolverError):
    """Invalid or missing configuration."""


class StateError(ResolverError):
    """The cached instance state file could not be read or written."""


class ComputeAPIError(ResolverError):
    """Error communicating with the OpenStack identity or compute API."""

    def __init__(self, message: str, status_code: int | None = None, response_body: str | None = None):
        super().__init__(message)
        self.status_code = status_code
        self.response_body = response_body


class FloatingIPNotValid(ResolverError):
    """The configured floating IP is not among the instance's public addresses."""

    def __init__(self, floating_ip: str):
        super().__init__(
            f"The floating IP '{floating_ip}' is not available to this instance. "
            "Check the floating IP assignment and the network configuration."
        )
        self.floating_ip = floating_ip


class SSHNoValidHost(ResolverError):
    """No address could be selected as the SSH host."""

    def __init__(self, message: str = "No valid SSH host could be determined for this instance. "
                 "Set ssh.network or ssh.address_id to pick an address explicitly."):
        super().__init__(message)
