"""Compute package — provider-agnostic Protocol and public exports."""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from .models import InstanceRecord


@runtime_checkable
class ComputeClient(Protocol):
    """Protocol that every compute provider client must satisfy."""

    def find_by_id(self, instance_id: str) -> InstanceRecord | None:
        """Return the instance with this id, or None if the provider does not know it."""
        ...

    def find_by_name(self, name: str) -> InstanceRecord | None:
        """Return the first instance whose name equals ``name``, or None."""
        ...
