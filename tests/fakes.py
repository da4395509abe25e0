"""
Fake Redfish BMCs served through httpx.MockTransport.

Documents are keyed by absolute Redfish path (``/redfish/v1/...``).
"""

import asyncio
import json
from typing import Any, Optional

import httpx

ROOT = "/redfish/v1"
BMC_TARGET = f"{ROOT}/UpdateService/FirmwareInventory/BMC"


class FakeBMC:
    """In-memory Redfish tree for one BMC."""

    def __init__(self, documents: Optional[dict[str, Any]] = None, failures: Optional[dict[str, int]] = None):
        self.documents = dict(documents or {})
        self.failures = dict(failures or {})  # path -> HTTP status
        self.requests: list[tuple[str, str, Any]] = []

    def paths(self, method: str = "GET") -> list[str]:
        return [path for m, path, _ in self.requests if m == method]

    def respond(self, request: httpx.Request) -> httpx.Response:
        path = request.url.path
        body = json.loads(request.content) if request.content else None
        self.requests.append((request.method, path, body))

        if path in self.failures:
            return httpx.Response(self.failures[path], text="simulated failure")
        if request.method == "GET":
            if path not in self.documents:
                return httpx.Response(404, text="Not Found")
            return httpx.Response(200, json=self.documents[path])
        return httpx.Response(204)


class FakeRedfish:
    """Routes requests to FakeBMCs by host and tracks request concurrency."""

    def __init__(self, delay: float = 0.0):
        self.bmcs: dict[str, FakeBMC] = {}
        self.delay = delay
        self.in_flight = 0
        self.max_in_flight = 0

    def add(self, host: str, bmc: FakeBMC) -> FakeBMC:
        self.bmcs[host] = bmc
        return bmc

    async def handle(self, request: httpx.Request) -> httpx.Response:
        bmc = self.bmcs.get(request.url.host)
        if bmc is None:
            raise httpx.ConnectError(f"no route to {request.url.host}", request=request)

        self.in_flight += 1
        self.max_in_flight = max(self.max_in_flight, self.in_flight)
        try:
            if self.delay:
                await asyncio.sleep(self.delay)
            return bmc.respond(request)
        finally:
            self.in_flight -= 1

    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self.handle)


def condition(message: str, message_id: str = "", severity: str = "OK") -> dict[str, str]:
    return {
        "Message": message,
        "MessageId": message_id,
        "Severity": severity,
        "Timestamp": "2000-01-01T08:33:17+00:00",
    }


def firmware_doc(version: str = "1.0.0", health: str = "OK", state: str = "Enabled", conditions=()) -> dict:
    return {
        "Id": "BMC",
        "Version": version,
        "Status": {"Health": health, "State": state, "Conditions": list(conditions)},
    }


def update_service_doc(health: str = "OK", state: str = "Enabled", conditions=()) -> dict:
    return {"Status": {"Health": health, "State": state, "Conditions": list(conditions)}}


def collection(*members: str) -> dict:
    return {"Members": [{"@odata.id": m} for m in members]}


def nic_doc(mac: str = "", uefi: str = "", enabled: Optional[bool] = None, origins=()) -> dict:
    doc: dict[str, Any] = {
        "Id": "1",
        "Name": "Ethernet Interface",
        "MACAddress": mac,
        "UefiDevicePath": uefi,
        "IPv4Addresses": [{"Address": "10.0.0.5", "AddressOrigin": o} for o in origins],
    }
    if enabled is not None:
        doc["InterfaceEnabled"] = enabled
    return doc


def system_tree(systems: dict[str, list[dict]]) -> dict[str, Any]:
    """Documents for a Systems collection with the given NICs per system name."""
    docs: dict[str, Any] = {f"{ROOT}/Systems": collection(*(f"{ROOT}/Systems/{name}" for name in systems))}
    for name, nics in systems.items():
        base = f"{ROOT}/Systems/{name}/EthernetInterfaces"
        members = [f"{base}/{i}" for i in range(len(nics))]
        docs[base] = collection(*members)
        for member, nic in zip(members, nics):
            docs[member] = nic
    return docs
