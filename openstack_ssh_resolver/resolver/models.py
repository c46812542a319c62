"""Resolution results: the SSH endpoint, or the signal that the instance is gone."""

from __future__ import annotations

from dataclasses import dataclass

SSH_PORT = 22


@dataclass(frozen=True)
class ResolvedEndpoint:
    """Where and as whom an SSH client should connect."""

    host: str
    username: str
    port: int = SSH_PORT

    @property
    def target(self) -> str:
        """Format as [user@]host."""
        return f"{self.username}@{self.host}" if self.username else self.host

    def ssh_args(self) -> list[str]:
        """Build ssh command args, e.g. ``ssh -p 2222 user@host``."""
        args = ["ssh"]
        if self.port != SSH_PORT:
            args.extend(["-p", str(self.port)])
        args.append(self.target)
        return args

    def to_dict(self) -> dict[str, str | int]:
        return {"host": self.host, "port": self.port, "username": self.username}


@dataclass(frozen=True)
class InstanceNotFound:
    """The instance could not be found; the caller should forget its cached id."""

    name: str
    id: str | None = None
