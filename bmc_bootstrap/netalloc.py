"""
Sequential IPv4 allocation from a subnet.
"""

import ipaddress

from bmc_bootstrap.exceptions import AllocationError


class Allocator:
    """Hands out usable host addresses of a subnet in order, skipping reservations."""

    def __init__(self, cidr: str):
        try:
            self.network = ipaddress.IPv4Network(cidr, strict=False)
        except ValueError as e:
            raise AllocationError(f"invalid subnet {cidr!r}: {e}") from e
        self._hosts = self.network.hosts()
        self._reserved: set[ipaddress.IPv4Address] = set()

    def reserve(self, ip: str) -> bool:
        """Mark an address as taken. Returns False if it is not a valid IPv4 address."""
        try:
            self._reserved.add(ipaddress.IPv4Address(ip))
        except ValueError:
            return False
        return True

    def next(self) -> str:
        for candidate in self._hosts:
            if candidate not in self._reserved:
                self._reserved.add(candidate)
                return str(candidate)
        raise AllocationError(f"subnet {self.network} exhausted")
