"""Exception hierarchy for bmc-bootstrap."""

from __future__ import annotations


class BootstrapError(Exception):
    """Base exception for bmc-bootstrap errors."""

    pass


class RedfishError(BootstrapError):
    """Transport or HTTP failure talking to a BMC.

    Always carries the request path and, when the BMC answered, the status
    code and trimmed response body.
    """

    def __init__(
        self,
        method: str,
        path: str,
        reason: str,
        status_code: int | None = None,
        body: str = "",
    ) -> None:
        self.method = method
        self.path = path
        self.reason = reason
        self.status_code = status_code
        self.body = body.strip()
        message = f"redfish {method} {path}: {reason}"
        if self.body:
            message = f"{message}: {self.body}"
        super().__init__(message)


class NoSystemsError(BootstrapError):
    """The BMC reported an empty Systems collection."""

    def __init__(self, host: str = "") -> None:
        self.host = host
        super().__init__("no systems reported by BMC")


class InventoryError(BootstrapError):
    """Inventory file is missing, unreadable or malformed."""

    pass


class AllocationError(BootstrapError):
    """IP allocation failed (bad subnet or pool exhausted)."""

    pass
