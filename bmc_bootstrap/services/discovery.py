"""
Boot MAC discovery for the systems behind one BMC.
"""

import warnings
from typing import Optional

import structlog

from bmc_bootstrap.exceptions import RedfishError
from bmc_bootstrap.redfish.client import RedfishClient
from bmc_bootstrap.redfish.models import NicRecord, SystemBootSelection
from bmc_bootstrap.services.nic_classifier import is_bootable, is_valid_mac

logger = structlog.get_logger()


def select_boot_macs(nics: list[NicRecord]) -> list[str]:
    """
    Pick the boot MACs for one system.

    Bootable NICs with a valid MAC win, lower-cased, in enumeration order.
    Without any, the first valid MAC is used so a node with at least one
    valid MAC always gets one. Returns an empty list if no MAC is valid.
    """
    valid = [nic for nic in nics if is_valid_mac(nic.mac_address)]
    macs = [nic.mac_address.lower() for nic in valid if is_bootable(nic)]
    if not macs and valid:
        macs = [valid[0].mac_address.lower()]
    return macs


class SystemDiscoverer:
    """Discovers boot MACs for every system exposed by a BMC."""

    def __init__(self, client: RedfishClient):
        self.client = client

    async def _selection_for(self, system_path: str) -> Optional[SystemBootSelection]:
        try:
            nics = await self.client.list_ethernet_interfaces(system_path)
        except RedfishError as e:
            logger.warning(
                "discover_system_skipped",
                host=self.client.host,
                system=system_path,
                error=str(e),
            )
            return None

        macs = select_boot_macs(nics)
        if not macs:
            logger.warning(
                "discover_no_valid_mac",
                host=self.client.host,
                system=system_path,
                nic_count=len(nics),
            )
            return None

        logger.debug(
            "discover_system_selected",
            host=self.client.host,
            system=system_path,
            macs=macs,
        )
        return SystemBootSelection(system_path=system_path, macs=tuple(macs))

    async def discover_all_bootable(self) -> list[SystemBootSelection]:
        """
        Return one SystemBootSelection per system that has a valid MAC.

        Raises:
            NoSystemsError: the BMC reports no systems
            RedfishError: the Systems collection cannot be fetched
        """
        selections = []
        seen = set()
        for system_path in await self.client.list_system_paths():
            if system_path in seen:
                continue
            seen.add(system_path)
            selection = await self._selection_for(system_path)
            if selection is not None:
                selections.append(selection)
        return selections

    async def discover_bootable_macs(self) -> list[str]:
        """Boot MACs of the first system only.

        Deprecated: use discover_all_bootable.
        """
        warnings.warn(
            "discover_bootable_macs is deprecated; use discover_all_bootable",
            DeprecationWarning,
            stacklevel=2,
        )
        system_path = await self.client.first_system_path()
        nics = await self.client.list_ethernet_interfaces(system_path)
        return select_boot_macs(nics)
