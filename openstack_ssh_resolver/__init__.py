"""Resolve the SSH endpoint of an OpenStack compute instance."""

__version__ = "0.1.0"
