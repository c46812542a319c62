"""Tests for the OpenStack REST client."""

import json

import pytest
import responses
from responses import matchers

from openstack_ssh_resolver.compute.openstack_client import OpenStackClient
from openstack_ssh_resolver.config import OpenStackConfig
from openstack_ssh_resolver.exceptions import ComputeAPIError
from openstack_ssh_resolver.resolver import InstanceHandle, InstanceNotFound, ResolutionPolicy, resolve

AUTH_URL = "http://keystone:5000/v3"
COMPUTE = "http://nova:8774/v2.1"

CATALOG = [
    {"type": "identity", "endpoints": [{"interface": "public", "region_id": "RegionOne", "url": AUTH_URL}]},
    {
        "type": "compute",
        "endpoints": [
            {"interface": "internal", "region_id": "RegionOne", "url": "http://nova-int:8774/v2.1"},
            {"interface": "public", "region_id": "RegionTwo", "url": "http://nova-two:8774/v2.1"},
            {"interface": "public", "region_id": "RegionOne", "url": f"{COMPUTE}/"},
        ],
    },
]


def _server(server_id="srv-1", name="web1"):
    return {
        "id": server_id,
        "name": name,
        "addresses": {
            "tenant": [
                {"addr": "10.0.0.5", "version": 4, "OS-EXT-IPS:type": "fixed"},
                {"addr": "172.24.4.10", "version": 4, "OS-EXT-IPS:type": "floating"},
            ],
        },
    }


def _add_auth(token="tok-1"):
    responses.add(
        responses.POST, f"{AUTH_URL}/auth/tokens",
        json={"token": {"catalog": CATALOG}}, headers={"X-Subject-Token": token}, status=201,
    )


@pytest.fixture
def client():
    return OpenStackClient(OpenStackConfig(
        auth_url="http://keystone:5000",
        username="demo",
        password="secret",
        project_name="demo",
        region="RegionOne",
    ))


class TestAuthentication:
    @responses.activate
    def test_sends_password_scoped_request(self, client):
        _add_auth()
        responses.add(responses.GET, f"{COMPUTE}/servers/srv-1", json={"server": _server()})
        client.find_by_id("srv-1")

        body = json.loads(responses.calls[0].request.body)
        user = body["auth"]["identity"]["password"]["user"]
        assert user == {"name": "demo", "domain": {"name": "Default"}, "password": "secret"}
        assert body["auth"]["scope"]["project"]["name"] == "demo"
        assert responses.calls[1].request.headers["X-Auth-Token"] == "tok-1"

    @responses.activate
    def test_picks_endpoint_by_interface_and_region(self, client):
        _add_auth()
        responses.add(responses.GET, f"{COMPUTE}/servers/srv-1", json={"server": _server()})
        assert client.find_by_id("srv-1") is not None
        assert responses.calls[1].request.url == f"{COMPUTE}/servers/srv-1"

    @responses.activate
    def test_explicit_compute_url_skips_catalog(self):
        client = OpenStackClient(OpenStackConfig(auth_url=AUTH_URL, compute_url="http://custom:8774/v2.1"))
        _add_auth()
        responses.add(responses.GET, "http://custom:8774/v2.1/servers/srv-1", json={"server": _server()})
        assert client.find_by_id("srv-1").id == "srv-1"

    @responses.activate
    def test_missing_compute_endpoint(self):
        client = OpenStackClient(OpenStackConfig(auth_url=AUTH_URL, region="Nowhere"))
        _add_auth()
        with pytest.raises(ComputeAPIError, match="Nowhere"):
            client.find_by_id("srv-1")

    @responses.activate
    def test_auth_failure(self, client):
        responses.add(responses.POST, f"{AUTH_URL}/auth/tokens", json={"error": "denied"}, status=401)
        with pytest.raises(ComputeAPIError) as exc_info:
            client.find_by_id("srv-1")
        assert exc_info.value.status_code == 401

    @responses.activate
    def test_missing_token_header(self, client):
        responses.add(responses.POST, f"{AUTH_URL}/auth/tokens", json={"token": {"catalog": CATALOG}}, status=201)
        with pytest.raises(ComputeAPIError, match="X-Subject-Token"):
            client.find_by_id("srv-1")

    @responses.activate
    def test_reauthenticates_once_on_401(self, client):
        _add_auth("tok-1")
        _add_auth("tok-2")
        responses.add(responses.GET, f"{COMPUTE}/servers/srv-1", status=401)
        responses.add(responses.GET, f"{COMPUTE}/servers/srv-1", json={"server": _server()})
        assert client.find_by_id("srv-1").id == "srv-1"
        assert responses.calls[-1].request.headers["X-Auth-Token"] == "tok-2"

    @responses.activate
    def test_token_reused_between_calls(self, client):
        _add_auth()
        responses.add(responses.GET, f"{COMPUTE}/servers/srv-1", json={"server": _server()})
        client.find_by_id("srv-1")
        client.find_by_id("srv-1")
        auth_calls = [c for c in responses.calls if c.request.url.endswith("/auth/tokens")]
        assert len(auth_calls) == 1


class TestFindById:
    @responses.activate
    def test_returns_record(self, client):
        _add_auth()
        responses.add(responses.GET, f"{COMPUTE}/servers/srv-1", json={"server": _server()})
        record = client.find_by_id("srv-1")
        assert record.id == "srv-1"
        assert record.public_ip_addresses == ("172.24.4.10",)
        assert record.private_ip_addresses == ("10.0.0.5",)

    @responses.activate
    def test_not_found(self, client):
        _add_auth()
        responses.add(responses.GET, f"{COMPUTE}/servers/gone", json={"itemNotFound": {}}, status=404)
        assert client.find_by_id("gone") is None

    @responses.activate
    def test_server_error(self, client):
        _add_auth()
        responses.add(responses.GET, f"{COMPUTE}/servers/srv-1", body="oops", status=500)
        with pytest.raises(ComputeAPIError) as exc_info:
            client.find_by_id("srv-1")
        assert exc_info.value.status_code == 500
        assert exc_info.value.response_body == "oops"


class TestFindByName:
    @responses.activate
    def test_exact_match(self, client):
        _add_auth()
        responses.add(
            responses.GET, f"{COMPUTE}/servers/detail",
            json={"servers": [_server("srv-2", "web10"), _server("srv-1", "web1")]},
            match=[matchers.query_param_matcher({"name": "^web1$"})],
        )
        record = client.find_by_name("web1")
        assert record.id == "srv-1"

    @responses.activate
    def test_no_match(self, client):
        _add_auth()
        responses.add(responses.GET, f"{COMPUTE}/servers/detail", json={"servers": []})
        assert client.find_by_name("web1") is None

    @responses.activate
    def test_connection_error(self, client):
        _add_auth()
        # No response registered for the compute call
        with pytest.raises(ComputeAPIError, match="Request failed"):
            client.find_by_name("web1")


class TestMalformedResponses:
    @responses.activate
    def test_non_json_body(self, client):
        _add_auth()
        responses.add(responses.GET, f"{COMPUTE}/servers/detail", body="<html>proxy</html>", status=200)
        with pytest.raises(ComputeAPIError, match="Malformed response"):
            client.find_by_name("web1")

    @responses.activate
    def test_null_servers_list(self, client):
        _add_auth()
        responses.add(responses.GET, f"{COMPUTE}/servers/detail", json={"servers": None})
        assert client.find_by_name("web1") is None

    @responses.activate
    def test_non_object_body(self, client):
        _add_auth()
        responses.add(responses.GET, f"{COMPUTE}/servers/srv-1", json=["srv-1"])
        with pytest.raises(ComputeAPIError, match="Malformed response"):
            client.find_by_id("srv-1")

    @responses.activate
    def test_server_without_id(self, client):
        _add_auth()
        server = _server()
        del server["id"]
        responses.add(responses.GET, f"{COMPUTE}/servers/srv-1", json={"server": server})
        with pytest.raises(ComputeAPIError, match="Malformed response"):
            client.find_by_id("srv-1")

    @responses.activate
    def test_non_numeric_address_version(self, client):
        _add_auth()
        server = _server()
        server["addresses"]["tenant"][0]["version"] = "four"
        responses.add(responses.GET, f"{COMPUTE}/servers/srv-1", json={"server": server})
        with pytest.raises(ComputeAPIError, match="Malformed response"):
            client.find_by_id("srv-1")

    @responses.activate
    def test_non_json_identity_token(self, client):
        responses.add(
            responses.POST, f"{AUTH_URL}/auth/tokens",
            body="not json", headers={"X-Subject-Token": "tok-1"}, status=201,
        )
        with pytest.raises(ComputeAPIError, match="Malformed response"):
            client.find_by_id("srv-1")

    @responses.activate
    def test_garbled_name_lookup_resolves_as_not_found(self, client):
        _add_auth()
        responses.add(responses.GET, f"{COMPUTE}/servers/detail", body="<html>proxy</html>", status=200)
        result = resolve(client, InstanceHandle(name="web1"), ResolutionPolicy(username="ubuntu"))
        assert result == InstanceNotFound(name="web1")
