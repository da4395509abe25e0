"""
YAML inventory file: bmcs[] and nodes[] entries.
"""

from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

import yaml

from bmc_bootstrap.exceptions import InventoryError


@dataclass(slots=True)
class InventoryEntry:
    """A bmcs[] or nodes[] entry."""

    xname: str
    mac: str = ""
    ip: str = ""

    @property
    def host(self) -> str:
        """Address used to reach a BMC: its IP, else its xname."""
        return self.ip or self.xname

    def to_dict(self) -> dict[str, str]:
        return {"xname": self.xname, "mac": self.mac, "ip": self.ip}


@dataclass(slots=True)
class Inventory:
    """Top-level inventory document."""

    bmcs: list[InventoryEntry] = field(default_factory=list)
    nodes: list[InventoryEntry] = field(default_factory=list)

    def find_node(self, xname: str) -> Optional[InventoryEntry]:
        for entry in self.nodes:
            if entry.xname == xname:
                return entry
        return None

    def bmc_hosts(self) -> list[str]:
        return [b.host for b in self.bmcs]

    def to_dict(self) -> dict:
        return {
            "bmcs": [b.to_dict() for b in self.bmcs],
            "nodes": [n.to_dict() for n in self.nodes],
        }


def _entries(raw, section: str) -> list[InventoryEntry]:
    if raw is None:
        return []
    if not isinstance(raw, list):
        raise InventoryError(f"{section} must be a list")
    entries = []
    for item in raw:
        if not isinstance(item, dict) or not (item.get("xname") or item.get("ip")):
            raise InventoryError(f"invalid {section} entry: {item!r}")
        entries.append(
            InventoryEntry(
                xname=str(item.get("xname") or ""),
                mac=str(item.get("mac") or ""),
                ip=str(item.get("ip") or ""),
            )
        )
    return entries


def load_inventory(path: str | Path, require_bmcs: bool = True) -> Inventory:
    """Load an inventory file.

    Raises:
        InventoryError: unreadable, malformed, or without bmcs[] when required
    """
    try:
        with open(path, "r") as f:
            doc = yaml.safe_load(f) or {}
    except OSError as e:
        raise InventoryError(f"read {path}: {e}") from e
    except yaml.YAMLError as e:
        raise InventoryError(f"parse {path}: {e}") from e

    if not isinstance(doc, dict):
        raise InventoryError(f"{path}: top level must be a mapping")

    inventory = Inventory(bmcs=_entries(doc.get("bmcs"), "bmcs"), nodes=_entries(doc.get("nodes"), "nodes"))
    if require_bmcs and not inventory.bmcs:
        raise InventoryError("input must contain non-empty bmcs[]")
    return inventory


def save_inventory(path: str | Path, inventory: Inventory) -> None:
    with open(path, "w") as f:
        yaml.safe_dump(inventory.to_dict(), f, default_flow_style=False, sort_keys=False)


def bmc_xname_to_node(bmc_xname: str) -> str:
    """Node xname for the first node behind a BMC, e.g. x1000c0s0b0 -> x1000c0s0b0n0."""
    return f"{bmc_xname}n0"
