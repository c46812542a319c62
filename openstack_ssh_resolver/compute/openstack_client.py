"""REST client for the OpenStack identity (Keystone v3) and compute (Nova) APIs."""

from __future__ import annotations

import logging
import re
from contextlib import contextmanager
from typing import Any, Iterator

import requests

from ..config import OpenStackConfig
from ..exceptions import ComputeAPIError
from .models import InstanceRecord

logger = logging.getLogger(__name__)


class OpenStackClient:
    """Looks up compute instances by id or by name."""

    def __init__(self, config: OpenStackConfig):
        self._config = config
        self._identity = _identity_base(config.auth_url)
        self._session = requests.Session()
        self._session.headers["Accept"] = "application/json"
        self._session.verify = config.verify_ssl
        self._timeout = config.timeout
        self._token: str | None = None
        self._compute_url: str | None = config.compute_url.rstrip("/") or None

    # ── Instance lookup ─────────────────────────────────────────────

    def find_by_id(self, instance_id: str) -> InstanceRecord | None:
        """Fetch one server. Returns None when Nova answers 404."""
        try:
            resp = self._get(f"/servers/{instance_id}")
        except ComputeAPIError as e:
            if e.status_code == 404:
                logger.debug("Server %s not found", instance_id, extra={"instance_id": instance_id})
                return None
            raise
        with _malformed(f"GET /servers/{instance_id}"):
            server = resp.json().get("server")
            if not server:
                return None
            return InstanceRecord.from_server(server)

    def find_by_name(self, name: str) -> InstanceRecord | None:
        """Return the first server whose name is exactly ``name``.

        Nova treats the name filter as a regular expression, so the result
        is re-checked for exact equality.
        """
        resp = self._get("/servers/detail", params={"name": f"^{re.escape(name)}$"})
        with _malformed("GET /servers/detail"):
            for server in resp.json().get("servers") or []:
                if server.get("name") == name:
                    return InstanceRecord.from_server(server)
        logger.debug("No server named %s", name, extra={"instance": name})
        return None

    # ── Authentication ──────────────────────────────────────────────

    def authenticate(self) -> None:
        """Obtain a project-scoped token and locate the compute endpoint."""
        body = {
            "auth": {
                "identity": {
                    "methods": ["password"],
                    "password": {
                        "user": {
                            "name": self._config.username,
                            "domain": {"name": self._config.user_domain_name},
                            "password": self._config.password,
                        },
                    },
                },
                "scope": {
                    "project": {
                        "name": self._config.project_name,
                        "domain": {"name": self._config.project_domain_name},
                    },
                },
            },
        }
        url = f"{self._identity}/auth/tokens"
        logger.debug("POST %s", url)
        try:
            resp = self._session.post(url, json=body, timeout=self._timeout)
        except requests.RequestException as exc:
            raise ComputeAPIError(f"Authentication request failed: {exc}") from exc

        if resp.status_code >= 400:
            raise ComputeAPIError(
                f"HTTP {resp.status_code} on authentication: {resp.text}",
                status_code=resp.status_code,
                response_body=resp.text,
            )

        token = resp.headers.get("X-Subject-Token")
        if not token:
            raise ComputeAPIError("Identity service returned no X-Subject-Token header")

        if self._config.compute_url:
            self._compute_url = self._config.compute_url.rstrip("/")
        else:
            with _malformed("the identity token"):
                catalog = resp.json().get("token", {}).get("catalog") or []
                self._compute_url = self._find_compute_endpoint(catalog)
        self._token = token
        logger.debug("Using compute endpoint %s", self._compute_url)

    def _find_compute_endpoint(self, catalog: list[dict[str, Any]]) -> str:
        region = self._config.region
        for service in catalog:
            if service.get("type") != "compute":
                continue
            for endpoint in service.get("endpoints", []):
                if endpoint.get("interface") != self._config.interface:
                    continue
                endpoint_region = endpoint.get("region_id") or endpoint.get("region")
                if region and endpoint_region != region:
                    continue
                return endpoint["url"].rstrip("/")
        raise ComputeAPIError(
            f"No {self._config.interface} compute endpoint in the service catalog"
            + (f" for region {region}" if region else "")
        )

    # ── Internal HTTP helpers ───────────────────────────────────────

    def _get(self, path: str, params: dict | None = None) -> requests.Response:
        return self._request("GET", path, params=params)

    def _request(self, method: str, path: str, **kwargs) -> requests.Response:
        if self._token is None:
            self.authenticate()

        resp = self._send(method, path, **kwargs)
        if resp.status_code == 401:
            logger.debug("Token rejected, re-authenticating")
            self.authenticate()
            resp = self._send(method, path, **kwargs)

        if resp.status_code >= 400:
            raise ComputeAPIError(
                f"HTTP {resp.status_code} on {method} {path}: {resp.text}",
                status_code=resp.status_code,
                response_body=resp.text,
            )

        return resp

    def _send(self, method: str, path: str, **kwargs) -> requests.Response:
        url = f"{self._compute_url}{path}"
        kwargs.setdefault("timeout", self._timeout)
        headers = {"X-Auth-Token": self._token or ""}
        logger.debug("%s %s params=%s", method, path, kwargs.get("params"))

        try:
            return self._session.request(method, url, headers=headers, **kwargs)
        except requests.RequestException as exc:
            raise ComputeAPIError(f"Request failed: {exc}") from exc


def _identity_base(auth_url: str) -> str:
    """Normalise an auth URL to the Keystone v3 root."""
    base = auth_url.rstrip("/")
    if not base.endswith("/v3"):
        base = f"{base}/v3"
    return base


@contextmanager
def _malformed(what: str) -> Iterator[None]:
    """Report an unparseable response body as a ComputeAPIError."""
    try:
        yield
    except (ValueError, TypeError, KeyError, AttributeError) as exc:
        raise ComputeAPIError(f"Malformed response for {what}: {exc!r}") from exc
