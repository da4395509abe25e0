"""
NIC bootability and MAC validity checks.

Bootability is an ordered list of named rules that are OR'd together; the
order only matters for readability and for reporting which rule matched.
"""

from dataclasses import dataclass
from typing import Callable, Optional

from bmc_bootstrap.redfish.models import NicRecord

MAC_SEPARATORS = (":", "-")
UNAVAILABLE_MAC = "not available"

UEFI_BOOT_MARKERS = ("pxe", "ipv4", "ipv6", "mac(")


@dataclass(frozen=True, slots=True)
class BootRule:
    """Named bootability predicate."""

    name: str
    matches: Callable[[NicRecord], bool]


def uefi_path_is_network_boot(nic: NicRecord) -> bool:
    uefi = nic.uefi_device_path.lower()
    return any(marker in uefi for marker in UEFI_BOOT_MARKERS)


def has_dhcp_address(nic: NicRecord) -> bool:
    return any(a.address_origin.lower() == "dhcp" for a in nic.ipv4_addresses)


def enabled_with_mac(nic: NicRecord) -> bool:
    return bool(nic.mac_address) and nic.interface_enabled is not False


BOOT_RULES: tuple[BootRule, ...] = (
    BootRule("uefi_network_path", uefi_path_is_network_boot),
    BootRule("dhcp_ipv4_origin", has_dhcp_address),
    BootRule("enabled_with_mac", enabled_with_mac),
)


def matching_boot_rule(nic: NicRecord) -> Optional[str]:
    """Return the name of the first bootability rule the NIC satisfies."""
    for rule in BOOT_RULES:
        if rule.matches(nic):
            return rule.name
    return None


def is_bootable(nic: NicRecord) -> bool:
    """True if any bootability rule matches."""
    return matching_boot_rule(nic) is not None


def is_valid_mac(mac: str) -> bool:
    """
    Check a MAC address string.

    Valid: six groups of two hex digits, separated uniformly by ':' or '-'.
    "Not Available" and the empty string are never valid.
    """
    if not mac or mac.lower() == UNAVAILABLE_MAC:
        return False

    separators = {sep for sep in MAC_SEPARATORS if sep in mac}
    if len(separators) != 1:
        return False

    parts = mac.split(separators.pop())
    if len(parts) != 6:
        return False

    hexdigits = set("0123456789abcdefABCDEF")
    return all(len(part) == 2 and set(part) <= hexdigits for part in parts)
