"""
Prometheus metrics for Redfish traffic and status verdicts.

Metrics live in a dedicated registry so a CLI run can dump them to a
node-exporter textfile when it finishes.
"""

import structlog
from prometheus_client import CollectorRegistry, Counter, Histogram, write_to_textfile

logger = structlog.get_logger()

REGISTRY = CollectorRegistry()

redfish_requests_total = Counter(
    "bmc_bootstrap_redfish_requests_total",
    "Redfish requests issued, by method and outcome",
    ["method", "outcome"],
    registry=REGISTRY,
)

redfish_request_seconds = Histogram(
    "bmc_bootstrap_redfish_request_seconds",
    "Redfish request latency",
    ["method"],
    registry=REGISTRY,
)

status_verdicts_total = Counter(
    "bmc_bootstrap_status_verdicts_total",
    "Firmware status verdicts produced, by status",
    ["status"],
    registry=REGISTRY,
)

update_outcomes_total = Counter(
    "bmc_bootstrap_update_outcomes_total",
    "Firmware update outcomes, by result",
    ["result"],
    registry=REGISTRY,
)


def write_textfile(path: str | None) -> None:
    """Write the registry to a textfile collector path, if one is configured."""
    if not path:
        return
    try:
        write_to_textfile(path, REGISTRY)
        logger.debug("metrics_textfile_written", path=path)
    except OSError as e:
        logger.warning("metrics_textfile_failed", path=path, error=str(e))
