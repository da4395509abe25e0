"""
Redfish client for BMC interactions.

Thin async wrapper over httpx that resolves Redfish paths, applies basic
auth and decodes JSON documents into typed snapshots. Failures surface as
RedfishError; nothing is retried here.
"""

import time
from typing import Any, Callable, Optional

import httpx
import structlog

from bmc_bootstrap.exceptions import NoSystemsError, RedfishError
from bmc_bootstrap.metrics import redfish_request_seconds, redfish_requests_total
from bmc_bootstrap.redfish.models import (
    ActiveTask,
    FirmwareTargetSnapshot,
    NicRecord,
    UpdateServiceSnapshot,
)

logger = structlog.get_logger()

REDFISH_ROOT = "/redfish/v1"
SIMPLE_UPDATE_PATH = "/UpdateService/Actions/SimpleUpdate"
NETWORK_PROTOCOL_PATH = "/Managers/BMC/NetworkProtocol"


class RedfishClient:
    """Async Redfish client bound to a single BMC."""

    def __init__(
        self,
        host: str,
        username: str,
        password: str,
        insecure: bool = True,
        timeout: float = 30.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.host = host
        self.base = f"https://{host}{REDFISH_ROOT}"
        self._http = httpx.AsyncClient(
            auth=(username, password),
            verify=not insecure,
            # 0 means no deadline
            timeout=timeout if timeout and timeout > 0 else None,
            headers={"Accept": "application/json"},
            transport=transport,
        )

    async def __aenter__(self) -> "RedfishClient":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self._http.aclose()

    def resolve_path(self, path: str) -> str:
        """Turn a Redfish path or @odata.id into an absolute URL."""
        if path.startswith("http"):
            return path
        if path.startswith(self.base):
            return path
        if path.startswith(REDFISH_ROOT):
            return self.base[: -len(REDFISH_ROOT)] + path
        if path.startswith("/"):
            return self.base + path
        return f"{self.base}/{path}"

    async def _request(self, method: str, path: str, body: Any = None) -> httpx.Response:
        url = self.resolve_path(path)
        logger.debug("redfish_request", method=method, url=url)

        started = time.monotonic()
        try:
            response = await self._http.request(method, url, json=body)
        except httpx.HTTPError as e:
            redfish_requests_total.labels(method=method, outcome="transport_error").inc()
            raise RedfishError(method, url, str(e) or e.__class__.__name__) from e
        finally:
            redfish_request_seconds.labels(method=method).observe(time.monotonic() - started)

        logger.debug(
            "redfish_response",
            method=method,
            url=url,
            status=response.status_code,
        )

        if response.status_code >= 300:
            redfish_requests_total.labels(method=method, outcome="http_error").inc()
            raise RedfishError(
                method,
                url,
                f"{response.status_code} {response.reason_phrase}",
                status_code=response.status_code,
                body=response.text,
            )

        redfish_requests_total.labels(method=method, outcome="ok").inc()
        return response

    async def get(self, path: str) -> dict[str, Any]:
        """GET a Redfish document and decode it."""
        response = await self._request("GET", path)
        try:
            doc = response.json()
        except ValueError as e:
            raise RedfishError(
                "GET", self.resolve_path(path), f"invalid JSON: {e}", response.status_code
            ) from e
        if not isinstance(doc, dict):
            raise RedfishError(
                "GET", self.resolve_path(path), "unexpected JSON document", response.status_code
            )
        return doc

    async def post(self, path: str, body: Any) -> None:
        await self._request("POST", path, body)

    async def patch(self, path: str, body: Any) -> None:
        await self._request("PATCH", path, body)

    async def _collection_members(self, path: str) -> list[str]:
        doc = await self.get(path)
        members = doc.get("Members") or []
        if not isinstance(members, list) or not all(isinstance(m, dict) for m in members):
            raise RedfishError("GET", self.resolve_path(path), "unexpected Members list")
        return [m.get("@odata.id", "") for m in members]

    async def list_system_paths(self) -> list[str]:
        """Return every ComputerSystem path; raises NoSystemsError if none."""
        paths = await self._collection_members("/Systems")
        if not paths:
            raise NoSystemsError(self.host)
        return paths

    async def first_system_path(self) -> str:
        return (await self.list_system_paths())[0]

    async def list_ethernet_interfaces(self, system_path: str) -> list[NicRecord]:
        """Fetch every EthernetInterface of a system.

        A failure fetching any single member fails the whole listing.
        """
        nics = []
        for member in await self._collection_members(f"{system_path}/EthernetInterfaces"):
            nics.append(NicRecord.from_json(await self.get(member)))
        return nics

    async def get_update_service_status(self) -> UpdateServiceSnapshot:
        return UpdateServiceSnapshot.from_json(await self.get("/UpdateService"))

    async def get_firmware_inventory(self, target: str) -> FirmwareTargetSnapshot:
        return FirmwareTargetSnapshot.from_json(target, await self.get(target))

    async def list_tasks(self) -> list[ActiveTask]:
        """Fetch TaskService tasks, skipping members that cannot be fetched."""
        tasks = []
        for member in await self._collection_members("/TaskService/Tasks"):
            try:
                tasks.append(ActiveTask.from_json(await self.get(member)))
            except RedfishError as e:
                logger.debug("redfish_task_skipped", host=self.host, task=member, error=str(e))
        return tasks

    async def simple_update(self, image_uri: str, targets: list[str], transfer_protocol: str) -> None:
        """POST the SimpleUpdate action for the given FirmwareInventory targets."""
        payload = {
            "ImageURI": image_uri,
            "TransferProtocol": transfer_protocol,
            "Targets": targets,
        }
        await self.post(SIMPLE_UPDATE_PATH, payload)

    async def set_authorized_keys(self, authorized_key: str) -> None:
        """Install an SSH authorized key through the OEM NetworkProtocol payload."""
        payload = {
            "Oem": {
                "SSHAdmin": {
                    "AuthorizedKeys": authorized_key,
                },
            },
        }
        await self.patch(NETWORK_PROTOCOL_PATH, payload)


ClientFactory = Callable[[str], RedfishClient]


def make_client_factory(
    username: str,
    password: str,
    insecure: bool = True,
    timeout: float = 30.0,
    transport: Optional[httpx.AsyncBaseTransport] = None,
) -> ClientFactory:
    """Return a callable that builds a RedfishClient for a host."""

    def factory(host: str) -> RedfishClient:
        return RedfishClient(
            host,
            username,
            password,
            insecure=insecure,
            timeout=timeout,
            transport=transport,
        )

    return factory
