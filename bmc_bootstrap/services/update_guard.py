"""
Guarded firmware updates.

Wraps the Redfish SimpleUpdate action with a pre-flight version check and a
post-trigger look at the FirmwareInventory conditions.
"""

import asyncio
from dataclasses import dataclass, field
from enum import Enum
from typing import Optional

import structlog

from bmc_bootstrap.exceptions import RedfishError
from bmc_bootstrap.metrics import update_outcomes_total
from bmc_bootstrap.redfish.client import RedfishClient

logger = structlog.get_logger()

ADVISORY_SEVERITIES = ("Warning", "Critical")


class UpdateResult(str, Enum):
    """How a guarded update ended for one host."""

    TRIGGERED = "triggered"
    SKIPPED = "skipped"            # Every target already at the expected version
    WARNINGS = "warnings"          # Triggered, but targets report Warning/Critical conditions
    FAILED = "failed"              # The SimpleUpdate POST itself failed
    DRY_RUN = "dry-run"


@dataclass(slots=True)
class UpdateOutcome:
    """Result of one guarded update."""

    host: str
    result: UpdateResult
    message: str = ""
    observed_versions: dict[str, str] = field(default_factory=dict)
    warnings: list[str] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return self.result is not UpdateResult.FAILED


@dataclass(slots=True)
class UpdateRequest:
    """What to flash and where."""

    image_uri: str
    targets: list[str]
    transfer_protocol: str = "HTTP"
    expected_version: str = ""
    force: bool = False

    def describe(self, host: str) -> str:
        text = (
            f"[dry-run] would POST SimpleUpdate on {host} with image={self.image_uri} "
            f"targets={self.targets} protocol={self.transfer_protocol}"
        )
        if self.expected_version:
            text += f" expected-version={self.expected_version}"
            if self.force:
                text += " (force=true)"
        return text


class UpdateGuard:
    """Runs one guarded SimpleUpdate against a BMC."""

    def __init__(self, client: RedfishClient, settle_seconds: float = 2.0):
        self.client = client
        self.settle_seconds = settle_seconds

    async def current_versions(self, targets: list[str]) -> Optional[dict[str, str]]:
        """
        Fetch the version of every target.

        Returns None as soon as any target cannot be fetched, so the caller
        proceeds with the update rather than skipping it.
        """
        versions: dict[str, str] = {}
        for target in targets:
            try:
                snapshot = await self.client.get_firmware_inventory(target)
            except RedfishError as e:
                logger.info(
                    "preflight_version_unavailable",
                    host=self.client.host,
                    target=target,
                    error=str(e),
                )
                return None
            versions[target] = snapshot.version
        return versions

    async def preflight(self, request: UpdateRequest) -> Optional[UpdateOutcome]:
        """Return a SKIPPED outcome if every target is already current."""
        if not request.expected_version or request.force:
            return None

        versions = await self.current_versions(request.targets)
        if not versions:
            return None
        if any(v != request.expected_version for v in versions.values()):
            return None

        lines = "\n".join(f"{t}: {v}" for t, v in versions.items())
        return UpdateOutcome(
            host=self.client.host,
            result=UpdateResult.SKIPPED,
            message=(
                f"skipping update: all targets already at expected version "
                f"{request.expected_version}\n{lines}"
            ),
            observed_versions=versions,
        )

    async def post_check(self, targets: list[str]) -> list[str]:
        """Collect Warning/Critical conditions reported after the trigger."""
        await asyncio.sleep(self.settle_seconds)

        findings = []
        for target in targets:
            try:
                snapshot = await self.client.get_firmware_inventory(target)
            except RedfishError as e:
                logger.debug("postcheck_target_unavailable", host=self.client.host, target=target, error=str(e))
                continue
            for condition in snapshot.conditions:
                if condition.severity in ADVISORY_SEVERITIES:
                    findings.append(f"[{target}] {condition.severity}: {condition.message}")
        return findings

    async def run(self, request: UpdateRequest) -> UpdateOutcome:
        host = self.client.host

        skipped = await self.preflight(request)
        if skipped is not None:
            logger.info("firmware_update_skipped", host=host, version=request.expected_version)
            update_outcomes_total.labels(result=skipped.result.value).inc()
            return skipped

        try:
            await self.client.simple_update(request.image_uri, request.targets, request.transfer_protocol)
        except RedfishError as e:
            logger.error("firmware_update_failed", host=host, error=str(e))
            update_outcomes_total.labels(result=UpdateResult.FAILED.value).inc()
            return UpdateOutcome(host=host, result=UpdateResult.FAILED, message=str(e))

        logger.info("firmware_update_triggered", host=host, targets=request.targets)

        findings = await self.post_check(request.targets)
        if findings:
            logger.warning("firmware_update_conditions", host=host, conditions=findings)
            update_outcomes_total.labels(result=UpdateResult.WARNINGS.value).inc()
            return UpdateOutcome(
                host=host,
                result=UpdateResult.WARNINGS,
                message="firmware update completed with warnings/errors:\n" + "\n".join(findings),
                warnings=findings,
            )

        update_outcomes_total.labels(result=UpdateResult.TRIGGERED.value).inc()
        return UpdateOutcome(host=host, result=UpdateResult.TRIGGERED, message=f"Triggered firmware update on {host}")
