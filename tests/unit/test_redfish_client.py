"""Unit tests for the Redfish client.

Tests:
- Path resolution
- Error wrapping for HTTP and transport failures
- Snapshot decoding
- Authorized keys PATCH payload
"""

import base64

import httpx
import pytest

from bmc_bootstrap.exceptions import RedfishError
from bmc_bootstrap.redfish.client import RedfishClient
from tests.fakes import BMC_TARGET, ROOT, condition, firmware_doc


class TestResolvePath:
    """Tests for Redfish path resolution."""

    @pytest.fixture
    def rf(self):
        return RedfishClient("example.com", "u", "p")

    @pytest.mark.parametrize(
        "path,expected",
        [
            ("/Systems", "https://example.com/redfish/v1/Systems"),
            ("Systems", "https://example.com/redfish/v1/Systems"),
            ("http://other.com/Systems", "http://other.com/Systems"),
            ("https://example.com/redfish/v1/Systems", "https://example.com/redfish/v1/Systems"),
            ("/redfish/v1/Systems/1", "https://example.com/redfish/v1/Systems/1"),
        ],
    )
    def test_resolve(self, rf, path, expected):
        assert rf.resolve_path(path) == expected


class TestRequests:
    """Tests for request handling against a fake BMC."""

    async def test_http_error_carries_path_and_body(self, bmc, client):
        bmc.failures[f"{ROOT}/Systems"] = 500

        with pytest.raises(RedfishError) as exc:
            await client.get("/Systems")

        assert exc.value.status_code == 500
        assert exc.value.path == "https://bmc1/redfish/v1/Systems"
        assert str(exc.value) == (
            "redfish GET https://bmc1/redfish/v1/Systems: 500 Internal Server Error: simulated failure"
        )

    async def test_transport_error_wrapped(self, client_factory):
        async with client_factory("unknown-host") as c:
            with pytest.raises(RedfishError) as exc:
                await c.get("/Systems")

        assert exc.value.status_code is None
        assert isinstance(exc.value.__cause__, httpx.ConnectError)

    async def test_invalid_json(self):
        transport = httpx.MockTransport(lambda request: httpx.Response(200, text="<html>"))
        async with RedfishClient("bmc1", "u", "p", transport=transport) as c:
            with pytest.raises(RedfishError, match="invalid JSON"):
                await c.get("/Systems")

    async def test_non_object_document_rejected(self, bmc, client):
        bmc.documents[f"{ROOT}/Systems"] = ["not", "a", "dict"]

        with pytest.raises(RedfishError, match="unexpected JSON document"):
            await client.get("/Systems")

    async def test_non_object_members_rejected(self, bmc, client):
        bmc.documents[f"{ROOT}/Systems"] = {"Members": ["/redfish/v1/Systems/1"]}

        with pytest.raises(RedfishError, match="unexpected Members list"):
            await client.list_system_paths()

    async def test_basic_auth_and_accept(self):
        seen = {}

        def handler(request):
            seen.update(request.headers)
            return httpx.Response(200, json={})

        async with RedfishClient("bmc1", "admin", "secret", transport=httpx.MockTransport(handler)) as c:
            await c.get("/UpdateService")

        assert seen["authorization"] == "Basic " + base64.b64encode(b"admin:secret").decode()
        assert seen["accept"] == "application/json"

    async def test_firmware_inventory_snapshot(self, bmc, client):
        bmc.documents[BMC_TARGET] = firmware_doc(
            "nc.1.11.0",
            health="OK",
            state="Enabled",
            conditions=[condition("Installing firmware", "OEM.Installing")],
        )

        snapshot = await client.get_firmware_inventory(BMC_TARGET)

        assert snapshot.target == BMC_TARGET
        assert snapshot.version == "nc.1.11.0"
        assert snapshot.conditions[0].message_id == "OEM.Installing"
        assert snapshot.conditions[0].describe() == "OEM.Installing (Installing firmware)"

    async def test_set_authorized_keys(self, bmc, client):
        await client.set_authorized_keys("ssh-ed25519 AAAA test@example.com\n")

        assert bmc.requests == [
            (
                "PATCH",
                f"{ROOT}/Managers/BMC/NetworkProtocol",
                {"Oem": {"SSHAdmin": {"AuthorizedKeys": "ssh-ed25519 AAAA test@example.com\n"}}},
            )
        ]
