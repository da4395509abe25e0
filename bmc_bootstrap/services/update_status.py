"""
Firmware update status inference.

Reconciles three independently fetched BMC signals into one verdict per
(host, target):

1. UpdateService.Status (host level)
2. TaskService tasks that look like firmware jobs (host level, only
   consulted while the UpdateService does not already report an update)
3. The FirmwareInventory member of the target

The decision logic lives in pure functions over snapshots; the
UpdateStatusInferencer only fetches and feeds them.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, Optional

import structlog

from bmc_bootstrap.exceptions import RedfishError
from bmc_bootstrap.metrics import status_verdicts_total
from bmc_bootstrap.redfish.client import ClientFactory, RedfishClient
from bmc_bootstrap.redfish.models import (
    UNKNOWN_VERSION,
    ActiveTask,
    AggregatedStatus,
    Condition,
    FirmwareTargetSnapshot,
    StatusValue,
    UpdateServiceSnapshot,
)

logger = structlog.get_logger()

ERROR_SEPARATOR = "; "

HEALTHY_TARGET_STATES = frozenset({"enabled", "ok"})

ACTIVE_TASK_STATES = frozenset({"running", "starting", "inprogress", "in-progress", "queued"})
UPDATE_TASK_KEYWORDS = ("update", "firmware")

PROGRESS_KEYWORDS = (
    "in progress",
    "install",
    "installing",
    "running",
    "downloading",
    "download in progress",
)


@dataclass(frozen=True, slots=True)
class ConditionRule:
    """Named predicate over a status condition."""

    name: str
    matches: Callable[[Condition], bool]


# A condition matching any of these is reported as an error and is not
# evaluated for progress.
ERROR_CONDITION_RULES: tuple[ConditionRule, ...] = (
    ConditionRule("severity_critical", lambda c: c.severity == "Critical"),
    ConditionRule("message_failed", lambda c: "failed" in c.message.lower()),
    ConditionRule("message_error", lambda c: "error" in c.message.lower()),
)

PROGRESS_CONDITION_RULES: tuple[ConditionRule, ...] = tuple(
    ConditionRule(f"message_{keyword.replace(' ', '_')}", lambda c, k=keyword: k in c.message.lower())
    for keyword in PROGRESS_KEYWORDS
)


def is_error_condition(condition: Condition) -> bool:
    return any(rule.matches(condition) for rule in ERROR_CONDITION_RULES)


def is_progress_condition(condition: Condition) -> bool:
    return any(rule.matches(condition) for rule in PROGRESS_CONDITION_RULES)


def is_active_update_task(task: ActiveTask) -> bool:
    """True for a running task that looks like a firmware/update job.

    A running task with neither name nor message is counted too.
    """
    if task.task_state.lower() not in ACTIVE_TASK_STATES:
        return False
    name = task.name.lower()
    message = task.message.lower()
    if not name and not message:
        return True
    return any(k in name or k in message for k in UPDATE_TASK_KEYWORDS)


def _is_ok(health: str) -> bool:
    return health.lower() == "ok"


def describe_conditions(conditions) -> str:
    return ERROR_SEPARATOR.join(c.describe() for c in conditions)


def _join_errors(parts) -> str:
    """Join non-empty fragments, each distinct fragment once, in first-seen order."""
    out: list[str] = []
    for part in parts:
        if part and part not in out:
            out.append(part)
    return ERROR_SEPARATOR.join(out)


@dataclass(frozen=True, slots=True)
class HostSignal:
    """Host-level contribution from UpdateService and TaskService."""

    error: str = ""
    in_progress: bool = False


@dataclass(frozen=True, slots=True)
class TargetSignal:
    """Target-level contribution from FirmwareInventory."""

    version: str = UNKNOWN_VERSION
    error: str = ""
    in_progress: bool = False


def host_signal(
    update_service: Optional[UpdateServiceSnapshot],
    tasks: Optional[list[ActiveTask]] = None,
) -> HostSignal:
    """Evaluate the UpdateService snapshot, then the task list.

    An unhealthy UpdateService reports its conditions as the host error and
    its state is not looked at. Tasks are only consulted while no update is
    already known to be running. None means the signal could not be fetched.
    """
    error = ""
    in_progress = False

    if update_service is not None:
        if update_service.health and not _is_ok(update_service.health):
            error = describe_conditions(update_service.conditions)
        elif _is_ok(update_service.health) and update_service.state.lower() == "updating":
            in_progress = True

    if not in_progress and tasks:
        in_progress = any(is_active_update_task(t) for t in tasks)

    return HostSignal(error=error, in_progress=in_progress)


def target_signal(
    snapshot: Optional[FirmwareTargetSnapshot],
    fetch_error: str = "",
) -> TargetSignal:
    """Evaluate one FirmwareInventory snapshot.

    Without a snapshot the fetch error becomes the target error.
    """
    if snapshot is None:
        return TargetSignal(error=fetch_error)

    errors: list[str] = []
    in_progress = False

    if snapshot.health and not _is_ok(snapshot.health):
        if snapshot.conditions:
            errors.extend(c.describe() for c in snapshot.conditions)
        else:
            errors.append(f"health: {snapshot.health}")

    if snapshot.state and snapshot.state.lower() not in HEALTHY_TARGET_STATES:
        in_progress = True

    for condition in snapshot.conditions:
        if is_error_condition(condition):
            errors.append(condition.describe())
            continue
        if is_progress_condition(condition):
            in_progress = True

    return TargetSignal(
        version=snapshot.version or UNKNOWN_VERSION,
        error=_join_errors(errors),
        in_progress=in_progress,
    )


def combine(
    host: str,
    target: str,
    host_part: HostSignal,
    target_part: TargetSignal,
    requested_version: Optional[str] = None,
) -> AggregatedStatus:
    """Merge host and target signals; any error dominates progress."""
    error = ERROR_SEPARATOR.join(e for e in (host_part.error, target_part.error) if e)

    status: StatusValue = "idle"
    if error:
        status = "error"
    elif host_part.in_progress or target_part.in_progress:
        status = "in-progress"

    return AggregatedStatus(
        host=host,
        target=target,
        observed_version=target_part.version,
        requested_version=requested_version or None,
        status=status,
        error=error,
    )


def reconcile(
    host: str,
    target: str,
    update_service: Optional[UpdateServiceSnapshot],
    tasks: Optional[list[ActiveTask]],
    snapshot: Optional[FirmwareTargetSnapshot],
    fetch_error: str = "",
    requested_version: Optional[str] = None,
) -> AggregatedStatus:
    """Full decision table from the three signals to one AggregatedStatus."""
    return combine(
        host,
        target,
        host_signal(update_service, tasks),
        target_signal(snapshot, fetch_error),
        requested_version,
    )


class UpdateStatusInferencer:
    """Fetches status signals from a BMC and reduces them to verdicts.

    Redfish failures never escape: they either drop the signal or end up in
    the verdict's error text.
    """

    def __init__(self, client_factory: ClientFactory, requested_version: Optional[str] = None):
        self.client_factory = client_factory
        self.requested_version = requested_version

    async def _fetch_host_signal(self, client: RedfishClient) -> HostSignal:
        update_service = None
        try:
            update_service = await client.get_update_service_status()
        except RedfishError as e:
            logger.debug("update_service_unavailable", host=client.host, error=str(e))

        signal = host_signal(update_service)
        if signal.in_progress:
            return signal

        tasks = None
        try:
            tasks = await client.list_tasks()
        except RedfishError as e:
            logger.debug("task_service_unavailable", host=client.host, error=str(e))

        return host_signal(update_service, tasks)

    async def _fetch_target_signal(self, client: RedfishClient, target: str) -> TargetSignal:
        try:
            snapshot = await client.get_firmware_inventory(target)
        except RedfishError as e:
            logger.debug("firmware_inventory_unavailable", host=client.host, target=target, error=str(e))
            return target_signal(None, str(e))
        return target_signal(snapshot)

    async def infer_host(self, host: str, targets: list[str]) -> list[AggregatedStatus]:
        """Verdicts for every target of one host, queried in list order."""
        results = []
        async with self.client_factory(host) as client:
            host_part = await self._fetch_host_signal(client)
            for target in targets:
                target_part = await self._fetch_target_signal(client, target)
                verdict = combine(host, target, host_part, target_part, self.requested_version)
                status_verdicts_total.labels(status=verdict.status).inc()
                logger.debug(
                    "firmware_status_inferred",
                    host=host,
                    target=target,
                    status=verdict.status,
                    version=verdict.observed_version,
                )
                results.append(verdict)
        return results

    async def infer(self, host: str, target: str) -> AggregatedStatus:
        return (await self.infer_host(host, [target]))[0]
