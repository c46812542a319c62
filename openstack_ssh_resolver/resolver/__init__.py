"""Endpoint resolution: instance lookup, host selection and the resolve entry point."""

from .endpoint import resolve, select_host
from .lookup import InstanceHandle, LookupResult, LookupStatus, lookup_instance
from .models import InstanceNotFound, ResolvedEndpoint
from .policy import FloatingIPSource, IPFamily, NetworkSource, ResolutionPolicy, parse_address_source

__all__ = [
    "FloatingIPSource",
    "IPFamily",
    "InstanceHandle",
    "InstanceNotFound",
    "LookupResult",
    "LookupStatus",
    "NetworkSource",
    "ResolutionPolicy",
    "ResolvedEndpoint",
    "lookup_instance",
    "parse_address_source",
    "resolve",
    "select_host",
]
