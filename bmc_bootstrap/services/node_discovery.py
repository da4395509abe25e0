"""
Builds nodes[] from BMC discovery results.

Existing node IPs are kept and reserved; new nodes get the next free address
of the node subnet.
"""

import structlog

from bmc_bootstrap.inventory import Inventory, InventoryEntry, bmc_xname_to_node
from bmc_bootstrap.netalloc import Allocator
from bmc_bootstrap.services.scheduler import DiscoveryResult

logger = structlog.get_logger()


def node_xname(bmc_xname: str, system_name: str, system_count: int) -> str:
    """Node xname; BMCs with several systems get a ``-<SystemName>`` suffix."""
    xname = bmc_xname_to_node(bmc_xname)
    if system_count > 1 and system_name:
        xname = f"{xname}-{system_name}"
    return xname


def plan_allocators(inventory: Inventory, bmc_subnet: str, node_subnet: str) -> tuple[Allocator, Allocator]:
    """
    Allocators for BMC and node addresses with every known IP reserved.

    When both subnets are the same a single allocator is shared so BMC and
    node addresses never collide.

    Raises:
        AllocationError: invalid subnet
    """
    node_alloc = Allocator(node_subnet)
    bmc_alloc = node_alloc if bmc_subnet == node_subnet else Allocator(bmc_subnet)
    for entry in inventory.bmcs + inventory.nodes:
        bmc_alloc.reserve(entry.ip)
        node_alloc.reserve(entry.ip)
    return bmc_alloc, node_alloc


def assign_bmc_ips(inventory: Inventory, alloc: Allocator) -> int:
    """Give every BMC without an IP the next free BMC address. Returns the count."""
    assigned = 0
    for bmc in inventory.bmcs:
        if not bmc.ip:
            bmc.ip = alloc.next()
            assigned += 1
            logger.info("bmc_ip_assigned", bmc=bmc.xname, ip=bmc.ip)
    return assigned


def build_nodes(
    inventory: Inventory,
    results: list[DiscoveryResult],
    alloc: Allocator,
) -> list[InventoryEntry]:
    """
    Turn discovery results into node entries, one per discovered system.

    `results` must follow the order of inventory.bmcs. The first boot MAC of
    each system is used for network boot. Existing node IPs must already be
    reserved in `alloc`.

    Raises:
        AllocationError: no free address left
    """
    nodes = []
    for bmc, result in zip(inventory.bmcs, results):
        if result.error is not None:
            continue
        if not result.selections:
            logger.warning("discover_no_systems", bmc=bmc.xname)
            continue

        for selection in result.selections:
            xname = node_xname(bmc.xname, selection.system_name, len(result.selections))
            existing = inventory.find_node(xname)
            if existing is not None and alloc.reserve(existing.ip):
                ip = existing.ip
            else:
                ip = alloc.next()
            nodes.append(InventoryEntry(xname=xname, mac=selection.macs[0], ip=ip))
            logger.debug("node_recorded", xname=xname, mac=selection.macs[0], ip=ip)
    return nodes
