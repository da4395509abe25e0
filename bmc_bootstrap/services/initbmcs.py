"""
Initial BMC inventory generation.

Node controllers are laid out in a chassis as four nodes per slot and two
nodes per blade; each BMC manages `nodes_per_bmc` consecutive nodes.
"""

from bmc_bootstrap.inventory import InventoryEntry
from bmc_bootstrap.netalloc import Allocator


def slot_for(nid: int) -> int:
    return ((nid - 1) // 4) % 8


def blade_for(nid: int) -> int:
    return ((nid - 1) // 2) % 2


def node_controller_xname(chassis: str, nid: int) -> str:
    return f"{chassis}s{slot_for(nid)}b{blade_for(nid)}"


def node_controller_mac(mac_prefix: str, nid: int) -> str:
    return f"{mac_prefix}:3{slot_for(nid)}:{blade_for(nid)}0".lower()


def parse_chassis_spec(spec: str) -> dict[str, str]:
    """Parse ``x9000c1=02:23:28:01,x9000c3=02:23:28:03`` into chassis -> MAC prefix.

    Malformed pairs are ignored.
    """
    out: dict[str, str] = {}
    for part in spec.split(","):
        key, sep, value = part.strip().partition("=")
        key, value = key.strip(), value.strip()
        if sep and key and value:
            out[key] = value
    return out


def generate_bmcs(
    chassis: dict[str, str],
    nodes_per_chassis: int,
    nodes_per_bmc: int,
    start_nid: int,
    bmc_subnet: str,
) -> list[InventoryEntry]:
    """Create bmcs[] entries with IPs allocated from `bmc_subnet`.

    Raises:
        AllocationError: invalid subnet or not enough addresses
    """
    if nodes_per_bmc < 1:
        raise ValueError("nodes per BMC must be at least 1")

    alloc = Allocator(bmc_subnet)
    bmcs = []
    nid = start_nid
    for name, mac_prefix in chassis.items():
        for i in range(nid, nid + nodes_per_chassis, nodes_per_bmc):
            bmcs.append(
                InventoryEntry(
                    xname=node_controller_xname(name, i),
                    mac=node_controller_mac(mac_prefix, i),
                    ip=alloc.next(),
                )
            )
        nid += nodes_per_chassis
    return bmcs
