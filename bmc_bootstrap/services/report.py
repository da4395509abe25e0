"""Rendering of firmware status reports."""

import json

from bmc_bootstrap.services.scheduler import StatusReport


def render_json(report: StatusReport) -> str:
    return json.dumps([r.to_dict() for r in report.records], indent=2)


def render_text(report: StatusReport) -> str:
    lines = [
        "Firmware status summary:",
        f"  Total hosts: {len(report.hosts)}",
        f"  In-progress updates: {report.in_progress}",
        "  Versions:",
    ]
    for version, count in sorted(report.version_counts.items()):
        lines.append(f"    {version}: {count}")
    if report.errors:
        lines.append("  Errors:")
        for key, error in sorted(report.errors.items()):
            lines.append(f"    {key}: {error}")
    return "\n".join(lines)


def render(report: StatusReport, fmt: str = "") -> str:
    if fmt.lower() == "json":
        return render_json(report)
    return render_text(report)
