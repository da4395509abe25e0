"""
Configuration management for bmc-bootstrap.

Loads configuration from environment variables with validation. Command-line
flags override the values loaded here.
"""

from dataclasses import dataclass
from typing import Optional
from decouple import config

BMC_FIRMWARE_TARGET = "/redfish/v1/UpdateService/FirmwareInventory/BMC"

# Shorthand firmware types accepted by --type
FIRMWARE_TARGET_PRESETS: dict[str, list[str]] = {
    "cc": [BMC_FIRMWARE_TARGET],
    "bmc": [BMC_FIRMWARE_TARGET],
    "nc": [BMC_FIRMWARE_TARGET],
    "bios": [
        "/redfish/v1/UpdateService/FirmwareInventory/Node0.BIOS",
        "/redfish/v1/UpdateService/FirmwareInventory/Node1.BIOS",
    ],
}


def default_targets(firmware_type: str) -> list[str]:
    """Return the FirmwareInventory targets for a shorthand firmware type."""
    targets = FIRMWARE_TARGET_PRESETS.get(firmware_type.strip().lower())
    if targets is None:
        raise ValueError(
            f"unknown firmware type: {firmware_type} (use cc|nc|bios or specify --targets)"
        )
    return list(targets)


@dataclass(slots=True)
class BootstrapConfig:
    """bmc-bootstrap configuration."""

    # Redfish credentials
    redfish_user: str
    redfish_password: str
    insecure: bool = True

    # Timeouts in seconds; 0 disables the deadline
    firmware_timeout: float = 300.0
    discovery_timeout: float = 12.0

    # Firmware behavior
    batch_size: int = 0
    transfer_protocol: str = "HTTP"
    settle_seconds: float = 2.0

    # Logging
    log_level: str = "INFO"

    # Metrics
    metrics_textfile: Optional[str] = None

    @classmethod
    def from_env(cls) -> "BootstrapConfig":
        """Load configuration from environment variables."""

        # Required settings
        redfish_user = config("REDFISH_USER", default="")
        redfish_password = config("REDFISH_PASSWORD", default="")
        if not redfish_user or not redfish_password:
            raise ValueError("REDFISH_USER and REDFISH_PASSWORD env vars are required")

        insecure = config("REDFISH_INSECURE", default=True, cast=bool)

        firmware_timeout = config("REDFISH_TIMEOUT", default=300.0, cast=float)
        discovery_timeout = config("DISCOVERY_TIMEOUT", default=12.0, cast=float)
        if firmware_timeout < 0 or discovery_timeout < 0:
            raise ValueError("timeouts must be zero (no deadline) or positive")

        batch_size = config("BATCH_SIZE", default=0, cast=int)
        transfer_protocol = config("TRANSFER_PROTOCOL", default="HTTP")
        if transfer_protocol.upper() not in ["HTTP", "HTTPS"]:
            raise ValueError(f"Invalid TRANSFER_PROTOCOL: {transfer_protocol}. Must be HTTP or HTTPS.")

        settle_seconds = config("UPDATE_SETTLE_SECONDS", default=2.0, cast=float)

        log_level = config("LOG_LEVEL", default="INFO")
        metrics_textfile = config("METRICS_TEXTFILE", default=None)

        return cls(
            redfish_user=redfish_user,
            redfish_password=redfish_password,
            insecure=insecure,
            firmware_timeout=firmware_timeout,
            discovery_timeout=discovery_timeout,
            batch_size=batch_size,
            transfer_protocol=transfer_protocol.upper(),
            settle_seconds=settle_seconds,
            log_level=log_level,
            metrics_textfile=metrics_textfile,
        )
