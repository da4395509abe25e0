"""Redfish gateway: HTTP client and typed snapshots."""

from bmc_bootstrap.redfish.client import ClientFactory, RedfishClient, make_client_factory
from bmc_bootstrap.redfish.models import (
    UNKNOWN_VERSION,
    ActiveTask,
    AggregatedStatus,
    Condition,
    FirmwareTargetSnapshot,
    Ipv4Address,
    NicRecord,
    SystemBootSelection,
    UpdateServiceSnapshot,
)

__all__ = [
    "UNKNOWN_VERSION",
    "ActiveTask",
    "AggregatedStatus",
    "ClientFactory",
    "Condition",
    "FirmwareTargetSnapshot",
    "Ipv4Address",
    "NicRecord",
    "RedfishClient",
    "SystemBootSelection",
    "UpdateServiceSnapshot",
    "make_client_factory",
]
