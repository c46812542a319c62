"""Single best-effort instance lookup, by cached id or by name."""

from __future__ import annotations

import enum
import logging
from dataclasses import dataclass

from ..compute import ComputeClient
from ..compute.models import InstanceRecord
from ..exceptions import ComputeAPIError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class InstanceHandle:
    """What the caller knows about an instance: its name and possibly its provider id."""

    name: str
    id: str | None = None


class LookupStatus(enum.Enum):
    FOUND = "found"
    NOT_FOUND = "not_found"
    ERROR = "error"


@dataclass(frozen=True)
class LookupResult:
    status: LookupStatus
    record: InstanceRecord | None = None
    error: ComputeAPIError | None = None

    @classmethod
    def found(cls, record: InstanceRecord) -> LookupResult:
        return cls(LookupStatus.FOUND, record=record)

    @classmethod
    def not_found(cls) -> LookupResult:
        return cls(LookupStatus.NOT_FOUND)

    @classmethod
    def failed(cls, error: ComputeAPIError) -> LookupResult:
        return cls(LookupStatus.ERROR, error=error)


def lookup_instance(client: ComputeClient, handle: InstanceHandle) -> LookupResult:
    """Fetch the instance record for ``handle``.

    Without a known id the name lookup supplies one; a failed or empty name
    lookup means there is no id, which is reported as NOT_FOUND. The
    by-id fetch returning nothing is also NOT_FOUND, while an API error on
    that fetch is reported as ERROR.
    """
    instance_id = handle.id
    if not instance_id:
        try:
            by_name = client.find_by_name(handle.name)
        except ComputeAPIError:
            logger.debug("Name lookup for %s failed", handle.name, exc_info=True, extra={"instance": handle.name})
            by_name = None
        instance_id = by_name.id if by_name is not None else None

    if not instance_id:
        return LookupResult.not_found()

    try:
        record = client.find_by_id(instance_id)
    except ComputeAPIError as exc:
        return LookupResult.failed(exc)

    if record is None:
        return LookupResult.not_found()
    return LookupResult.found(record)
