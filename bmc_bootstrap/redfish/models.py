"""
Typed snapshots decoded from Redfish documents.

Every snapshot is a frozen point-in-time view of one GET response.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Literal, Optional

UNKNOWN_VERSION = "(unknown)"

StatusValue = Literal["idle", "in-progress", "error"]


@dataclass(frozen=True, slots=True)
class Ipv4Address:
    """One entry of an EthernetInterface's IPv4Addresses list."""

    address: str = ""
    address_origin: str = ""


@dataclass(frozen=True, slots=True)
class NicRecord:
    """Redfish EthernetInterface snapshot."""

    id: str = ""
    name: str = ""
    mac_address: str = ""
    uefi_device_path: str = ""
    interface_enabled: Optional[bool] = None  # absent / True / False
    ipv4_addresses: tuple[Ipv4Address, ...] = ()

    @classmethod
    def from_json(cls, doc: dict[str, Any]) -> "NicRecord":
        enabled = doc.get("InterfaceEnabled")
        return cls(
            id=doc.get("Id") or "",
            name=doc.get("Name") or "",
            mac_address=doc.get("MACAddress") or "",
            uefi_device_path=doc.get("UefiDevicePath") or "",
            interface_enabled=enabled if isinstance(enabled, bool) else None,
            ipv4_addresses=tuple(
                Ipv4Address(
                    address=entry.get("Address") or "",
                    address_origin=entry.get("AddressOrigin") or "",
                )
                for entry in doc.get("IPv4Addresses") or []
            ),
        )


@dataclass(frozen=True, slots=True)
class SystemBootSelection:
    """Boot MACs chosen for one ComputerSystem."""

    system_path: str
    macs: tuple[str, ...]

    @property
    def system_name(self) -> str:
        """Last path segment, e.g. ``Node0`` for ``/redfish/v1/Systems/Node0``."""
        return self.system_path.rstrip("/").rsplit("/", 1)[-1]


@dataclass(frozen=True, slots=True)
class Condition:
    """A Status.Conditions entry."""

    message: str = ""
    message_id: str = ""
    severity: str = ""
    timestamp: str = ""

    @classmethod
    def from_json(cls, doc: dict[str, Any]) -> "Condition":
        return cls(
            message=doc.get("Message") or "",
            message_id=doc.get("MessageId") or "",
            severity=doc.get("Severity") or "",
            timestamp=doc.get("Timestamp") or "",
        )

    def describe(self) -> str:
        """Render as ``MessageId (Message)``, or just the message without an id."""
        if self.message_id:
            return f"{self.message_id} ({self.message})"
        return self.message


def _conditions(status: dict[str, Any]) -> tuple[Condition, ...]:
    return tuple(Condition.from_json(c) for c in status.get("Conditions") or [])


@dataclass(frozen=True, slots=True)
class FirmwareTargetSnapshot:
    """FirmwareInventory member for one update target."""

    target: str
    version: str = ""
    health: str = ""
    state: str = ""
    conditions: tuple[Condition, ...] = ()

    @classmethod
    def from_json(cls, target: str, doc: dict[str, Any]) -> "FirmwareTargetSnapshot":
        status = doc.get("Status") or {}
        return cls(
            target=target,
            version=doc.get("Version") or "",
            health=status.get("Health") or "",
            state=status.get("State") or "",
            conditions=_conditions(status),
        )


@dataclass(frozen=True, slots=True)
class UpdateServiceSnapshot:
    """UpdateService.Status for one BMC."""

    health: str = ""
    state: str = ""
    conditions: tuple[Condition, ...] = ()

    @classmethod
    def from_json(cls, doc: dict[str, Any]) -> "UpdateServiceSnapshot":
        status = doc.get("Status") or {}
        return cls(
            health=status.get("Health") or "",
            state=status.get("State") or "",
            conditions=_conditions(status),
        )


@dataclass(frozen=True, slots=True)
class ActiveTask:
    """TaskService task snapshot."""

    id: str = ""
    name: str = ""
    task_state: str = ""
    message: str = ""

    @classmethod
    def from_json(cls, doc: dict[str, Any]) -> "ActiveTask":
        message = doc.get("Message") or ""
        # Some BMCs only populate the Messages array
        if not message and doc.get("Messages"):
            message = (doc["Messages"][0] or {}).get("Message") or ""
        return cls(
            id=doc.get("Id") or "",
            name=doc.get("Name") or "",
            task_state=doc.get("TaskState") or "",
            message=message,
        )


@dataclass(slots=True)
class AggregatedStatus:
    """Externally visible verdict for one (host, target) pair."""

    host: str
    target: str
    observed_version: str = UNKNOWN_VERSION
    requested_version: Optional[str] = None
    status: StatusValue = "idle"
    error: str = ""

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        out: dict[str, Any] = {
            "host": self.host,
            "target": self.target,
            "observed_version": self.observed_version,
        }
        if self.requested_version:
            out["requested_version"] = self.requested_version
        out["status"] = self.status
        if self.error:
            out["error"] = self.error
        return out
