"""
Bounded fan-out of BMC work across hosts.

One unit of work per host, admitted through a semaphore. Results are merged
into a shared accumulator under a single lock that is never held across a
network call, and nothing is returned until every unit has finished.
"""

import asyncio
from collections import Counter
from dataclasses import dataclass, field
from typing import Awaitable, Callable, Optional, TypeVar

import structlog

from bmc_bootstrap.exceptions import BootstrapError
from bmc_bootstrap.redfish.client import ClientFactory
from bmc_bootstrap.redfish.models import AggregatedStatus, SystemBootSelection
from bmc_bootstrap.services.discovery import SystemDiscoverer
from bmc_bootstrap.services.update_guard import UpdateGuard, UpdateOutcome, UpdateRequest, UpdateResult
from bmc_bootstrap.services.update_status import UpdateStatusInferencer

logger = structlog.get_logger()

T = TypeVar("T")


@dataclass(slots=True)
class StatusReport:
    """Aggregated firmware status for one query round."""

    hosts: list[str] = field(default_factory=list)
    records: list[AggregatedStatus] = field(default_factory=list)
    version_counts: dict[str, int] = field(default_factory=dict)
    errors: dict[str, str] = field(default_factory=dict)  # "<host> <target>" -> error
    in_progress: int = 0


@dataclass(slots=True)
class DiscoveryResult:
    """Discovery outcome for one BMC."""

    host: str
    selections: list[SystemBootSelection] = field(default_factory=list)
    error: Optional[str] = None


class ConcurrentQueryScheduler:
    """Runs per-host BMC work with at most `concurrency` hosts in flight."""

    def __init__(self, client_factory: ClientFactory, concurrency: int = 1):
        self.client_factory = client_factory
        # 0 or 1 means serial
        self.concurrency = max(1, concurrency)

    async def _fan_out(self, hosts: list[str], unit: Callable[[str], Awaitable[T]]) -> list[T]:
        semaphore = asyncio.Semaphore(self.concurrency)

        async def admitted(host: str) -> T:
            async with semaphore:
                return await unit(host)

        return await asyncio.gather(*(admitted(h) for h in hosts))

    async def query_status(
        self,
        hosts: list[str],
        targets: list[str],
        requested_version: Optional[str] = None,
    ) -> StatusReport:
        """Infer the status of every (host, target) pair."""
        inferencer = UpdateStatusInferencer(self.client_factory, requested_version)
        report = StatusReport(hosts=list(hosts))
        versions: Counter = Counter()
        lock = asyncio.Lock()

        async def unit(host: str) -> None:
            try:
                verdicts = await inferencer.infer_host(host, targets)
            except Exception as e:
                logger.exception("firmware_status_host_failed", host=host)
                verdicts = [
                    AggregatedStatus(
                        host=host,
                        target=target,
                        requested_version=requested_version or None,
                        status="error",
                        error=str(e) or e.__class__.__name__,
                    )
                    for target in targets
                ]

            async with lock:
                report.in_progress += sum(1 for v in verdicts if v.status == "in-progress")
                for verdict in verdicts:
                    report.records.append(verdict)
                    versions[verdict.observed_version] += 1
                    if verdict.error:
                        report.errors[f"{verdict.host} {verdict.target}"] = verdict.error

        await self._fan_out(hosts, unit)

        host_order = {h: i for i, h in enumerate(hosts)}
        target_order = {t: i for i, t in enumerate(targets)}
        report.records.sort(key=lambda r: (host_order[r.host], target_order[r.target]))
        report.version_counts = dict(versions)

        logger.info(
            "firmware_status_collected",
            hosts=len(hosts),
            records=len(report.records),
            in_progress=report.in_progress,
            errors=len(report.errors),
        )
        return report

    async def discover(self, hosts: list[str]) -> list[DiscoveryResult]:
        """Discover boot MACs on every BMC; results follow the input order."""

        async def unit(host: str) -> DiscoveryResult:
            async with self.client_factory(host) as client:
                try:
                    selections = await SystemDiscoverer(client).discover_all_bootable()
                except BootstrapError as e:
                    logger.warning("discover_bmc_failed", host=host, error=str(e))
                    return DiscoveryResult(host=host, error=str(e))
                except Exception as e:
                    logger.exception("discover_bmc_crashed", host=host)
                    return DiscoveryResult(host=host, error=str(e) or e.__class__.__name__)
            logger.info("discover_bmc_complete", host=host, systems=len(selections))
            return DiscoveryResult(host=host, selections=selections)

        return await self._fan_out(hosts, unit)

    async def update(
        self,
        hosts: list[str],
        request: UpdateRequest,
        settle_seconds: float = 2.0,
        dry_run: bool = False,
    ) -> list[UpdateOutcome]:
        """Run a guarded SimpleUpdate on every host."""

        async def unit(host: str) -> UpdateOutcome:
            if dry_run:
                return UpdateOutcome(host=host, result=UpdateResult.DRY_RUN, message=request.describe(host))
            async with self.client_factory(host) as client:
                try:
                    return await UpdateGuard(client, settle_seconds).run(request)
                except Exception as e:
                    logger.exception("firmware_update_crashed", host=host)
                    return UpdateOutcome(
                        host=host, result=UpdateResult.FAILED, message=str(e) or e.__class__.__name__
                    )

        return await self._fan_out(hosts, unit)
