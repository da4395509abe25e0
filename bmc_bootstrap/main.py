"""
bmc-bootstrap command line entry point.

Subcommands:
    init-bmcs        generate the initial bmcs[] inventory
    discover         discover boot NICs via Redfish and write nodes[]
    firmware         trigger Redfish SimpleUpdate on BMCs
    firmware status  summarize firmware versions and in-progress updates
"""

import argparse
import asyncio
import logging
import sys
from typing import Optional

import structlog
from decouple import config as env

from bmc_bootstrap import __version__
from bmc_bootstrap.config import BootstrapConfig, default_targets
from bmc_bootstrap.exceptions import BootstrapError
from bmc_bootstrap.inventory import Inventory, load_inventory, save_inventory
from bmc_bootstrap.metrics import write_textfile
from bmc_bootstrap.redfish.client import make_client_factory
from bmc_bootstrap.services.initbmcs import generate_bmcs, parse_chassis_spec
from bmc_bootstrap.services.node_discovery import assign_bmc_ips, build_nodes, plan_allocators
from bmc_bootstrap.services.report import render
from bmc_bootstrap.services.scheduler import ConcurrentQueryScheduler
from bmc_bootstrap.services.update_guard import UpdateRequest, UpdateResult

logger = structlog.get_logger()


def configure_logging(level: str = "INFO") -> None:
    """Structured JSON logs on stderr; stdout is reserved for command output."""
    log_level = getattr(logging, level.upper(), logging.INFO)
    structlog.configure(
        processors=[
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.add_log_level,
            structlog.processors.format_exc_info,
            structlog.processors.JSONRenderer(),
        ],
        wrapper_class=structlog.make_filtering_bound_logger(log_level),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(file=sys.stderr),
        cache_logger_on_first_use=False,
    )


def load_config(args: argparse.Namespace) -> BootstrapConfig:
    """Environment configuration with command line overrides applied."""
    cfg = BootstrapConfig.from_env()
    if getattr(args, "insecure", None) is not None:
        cfg.insecure = args.insecure
    if getattr(args, "batch_size", None) is not None:
        cfg.batch_size = args.batch_size
    if getattr(args, "protocol", None):
        cfg.transfer_protocol = args.protocol
    if getattr(args, "timeout", None) is not None:
        if args.command == "discover":
            cfg.discovery_timeout = args.timeout
        else:
            cfg.firmware_timeout = args.timeout
    return cfg


def resolve_hosts(args: argparse.Namespace) -> list[str]:
    """Hosts from --hosts, else from the bmcs[] of --file."""
    if args.hosts and args.hosts.strip():
        return [h.strip() for h in args.hosts.split(",") if h.strip()]
    return load_inventory(args.file).bmc_hosts()


def resolve_targets(args: argparse.Namespace, default_type: str = "") -> list[str]:
    if args.targets:
        return [t.strip() for t in args.targets.split(",") if t.strip()]
    firmware_type = (args.type or "").strip() or default_type
    if not firmware_type:
        raise ValueError("--type is required when --targets is not provided (one of cc|nc|bios)")
    return default_targets(firmware_type)


async def cmd_init_bmcs(args: argparse.Namespace) -> int:
    chassis = parse_chassis_spec(args.chassis)
    if not chassis:
        raise ValueError("--chassis must specify at least one entry, e.g. x9000c1=02:23:28:01")

    bmcs = generate_bmcs(chassis, args.nodes_per_chassis, args.nodes_per_bmc, args.start_nid, args.bmc_subnet)
    save_inventory(args.file, Inventory(bmcs=bmcs))
    print(f"Wrote initial BMC inventory to {args.file} with {len(bmcs)} entries")
    return 0


async def cmd_discover(args: argparse.Namespace) -> int:
    if not args.bmc_subnet and not args.node_subnet:
        raise ValueError("at least one of --bmc-subnet or --node-subnet is required")
    bmc_subnet = args.bmc_subnet or args.node_subnet
    node_subnet = args.node_subnet or args.bmc_subnet

    cfg = load_config(args)
    inventory = load_inventory(args.file)
    hosts = inventory.bmc_hosts()

    if args.dry_run:
        print(f"[dry-run] would contact {len(hosts)} BMC(s): {hosts}")
        if bmc_subnet == node_subnet:
            print(f"[dry-run] would allocate BMC and node IPs from subnet {node_subnet} and write back to {args.file}")
        else:
            print(
                f"[dry-run] would allocate BMC IPs from subnet {bmc_subnet} and node IPs "
                f"from subnet {node_subnet}, writing to {args.file}"
            )
        if args.ssh_pubkey:
            print(f"[dry-run] would set SSH authorized keys on each BMC from {args.ssh_pubkey}")
        return 0

    factory = make_client_factory(
        cfg.redfish_user,
        cfg.redfish_password,
        insecure=cfg.insecure,
        timeout=cfg.discovery_timeout,
    )

    if args.ssh_pubkey:
        try:
            with open(args.ssh_pubkey, "r") as f:
                authorized = f.read()
        except OSError as e:
            raise BootstrapError(f"read ssh pubkey: {e}") from e
        for bmc in inventory.bmcs:
            async with factory(bmc.host) as client:
                try:
                    await client.set_authorized_keys(authorized)
                except BootstrapError as e:
                    logger.warning("set_authorized_keys_failed", bmc=bmc.xname, error=str(e))

    bmc_alloc, node_alloc = plan_allocators(inventory, bmc_subnet, node_subnet)
    scheduler = ConcurrentQueryScheduler(factory, cfg.batch_size)
    results = await scheduler.discover(hosts)

    inventory.nodes = build_nodes(inventory, results, node_alloc)
    assign_bmc_ips(inventory, bmc_alloc)
    save_inventory(args.file, inventory)
    print(f"Updated {args.file} with {len(inventory.nodes)} node record(s)")
    write_textfile(cfg.metrics_textfile)
    return 0


async def cmd_firmware(args: argparse.Namespace) -> int:
    if not args.file and not args.hosts:
        raise ValueError("at least one of --file or --hosts is required")
    if not args.image_uri:
        raise ValueError("--image-uri is required")

    targets = resolve_targets(args)
    cfg = load_config(args)
    hosts = resolve_hosts(args)

    request = UpdateRequest(
        image_uri=args.image_uri,
        targets=targets,
        transfer_protocol=cfg.transfer_protocol,
        expected_version=args.expected_version or "",
        force=args.force,
    )
    factory = make_client_factory(
        cfg.redfish_user,
        cfg.redfish_password,
        insecure=cfg.insecure,
        timeout=cfg.firmware_timeout,
    )
    scheduler = ConcurrentQueryScheduler(factory, cfg.batch_size)
    outcomes = await scheduler.update(hosts, request, cfg.settle_seconds, dry_run=args.dry_run)

    for outcome in outcomes:
        if outcome.result is UpdateResult.FAILED:
            print(f"WARN: {outcome.host}: firmware update failed: {outcome.message}", file=sys.stderr)
        elif outcome.result is UpdateResult.WARNINGS:
            print(f"WARN: {outcome.host}: {outcome.message}", file=sys.stderr)
        elif outcome.result is UpdateResult.SKIPPED:
            print(f"{outcome.host}: {outcome.message}")
        else:
            print(outcome.message)

    write_textfile(cfg.metrics_textfile)
    return 0


async def cmd_firmware_status(args: argparse.Namespace) -> int:
    if not args.file and not args.hosts:
        raise ValueError("at least one of --file or --hosts is required")

    cfg = load_config(args)
    hosts = resolve_hosts(args)
    if not hosts:
        raise ValueError("no hosts to query")
    targets = resolve_targets(args, default_type="bmc")

    factory = make_client_factory(
        cfg.redfish_user,
        cfg.redfish_password,
        insecure=cfg.insecure,
        timeout=cfg.firmware_timeout,
    )
    scheduler = ConcurrentQueryScheduler(factory, cfg.batch_size)
    report = await scheduler.query_status(hosts, targets, args.expected_version or None)

    print(render(report, args.format or ""))
    write_textfile(cfg.metrics_textfile)
    return 0


def _add_firmware_flags(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("-f", "--file", default="", help="Inventory file to read bmcs[] from when --hosts is not provided")
    parser.add_argument("--hosts", default="", help="Comma-separated list of BMC hosts (overrides --file)")
    parser.add_argument("--type", default="", help="Firmware type preset: cc|nc|bios (ignored if --targets provided)")
    parser.add_argument("--targets", default="", help="Comma-separated FirmwareInventory target URIs")
    parser.add_argument("--image-uri", default="", help="Firmware image URI accessible by the BMC")
    parser.add_argument("--protocol", default=None, help="TransferProtocol for SimpleUpdate (HTTP/HTTPS)")
    parser.add_argument("--insecure", action=argparse.BooleanOptionalAction, default=None, help="Allow insecure TLS to BMCs")
    parser.add_argument("--timeout", type=float, default=None, help="Per-request timeout in seconds (0 = none)")
    parser.add_argument("--dry-run", action="store_true", help="Print SimpleUpdate actions without posting")
    parser.add_argument("--force", action="store_true", help="Update even if already at the expected version")
    parser.add_argument("--expected-version", default="", help="Skip hosts already at this version (unless --force)")
    parser.add_argument("--batch-size", type=int, default=None, help="Concurrent hosts (0 or 1 = serial)")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="bmc-bootstrap", description="Redfish node bootstrap tooling")
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    parser.add_argument("--log-level", default=None, help="Log level (default: LOG_LEVEL or INFO)")
    sub = parser.add_subparsers(dest="command", required=True)

    init = sub.add_parser("init-bmcs", help="Generate initial inventory with BMC entries")
    init.add_argument("-f", "--file", required=True, help="Output YAML file containing bmcs[] and nodes[]")
    init.add_argument("--chassis", default="x9000c1=02:23:28:01,x9000c3=02:23:28:03", help="Comma-separated chassis=macprefix list")
    init.add_argument("--bmc-subnet", default="192.168.100.0/24", help="BMC subnet in CIDR notation")
    init.add_argument("--nodes-per-chassis", type=int, default=32)
    init.add_argument("--nodes-per-bmc", type=int, default=2)
    init.add_argument("--start-nid", type=int, default=1, help="Starting node id (1-based)")
    init.set_defaults(handler=cmd_init_bmcs)

    disc = sub.add_parser("discover", help="Discover bootable node NICs via Redfish and update nodes[]")
    disc.add_argument("-f", "--file", required=True, help="YAML file containing bmcs[] and nodes[] (nodes are overwritten)")
    disc.add_argument("--bmc-subnet", default="", help="CIDR for BMC IPs (defaults to --node-subnet)")
    disc.add_argument("--node-subnet", default="", help="CIDR for node IPs (defaults to --bmc-subnet)")
    disc.add_argument("--insecure", action=argparse.BooleanOptionalAction, default=None, help="Allow insecure TLS to BMCs")
    disc.add_argument("--timeout", type=float, default=None, help="Per-request timeout in seconds (0 = none)")
    disc.add_argument("--batch-size", type=int, default=None, help="Concurrent BMCs (0 or 1 = serial)")
    disc.add_argument("--ssh-pubkey", default="", help="SSH public key file to set as AuthorizedKeys on each BMC")
    disc.add_argument("--dry-run", action="store_true", help="Print which BMCs would be contacted and exit")
    disc.set_defaults(handler=cmd_discover)

    fw = sub.add_parser("firmware", help="Update firmware via Redfish SimpleUpdate")
    _add_firmware_flags(fw)
    fw.set_defaults(handler=cmd_firmware)

    status = sub.add_parser("firmware-status", help="Query BMC firmware versions and in-progress updates")
    _add_firmware_flags(status)
    status.add_argument("--format", default="", help="Output format: json")
    status.set_defaults(handler=cmd_firmware_status)

    return parser


def main(argv: Optional[list[str]] = None) -> int:
    """Main entry point."""
    argv = list(sys.argv[1:] if argv is None else argv)
    # `firmware status` is an alias of `firmware-status`
    if argv[:2] == ["firmware", "status"]:
        argv = ["firmware-status"] + argv[2:]

    args = build_parser().parse_args(argv)
    configure_logging(args.log_level or env("LOG_LEVEL", default="INFO"))

    try:
        return asyncio.run(args.handler(args))
    except ValueError as e:
        logger.error("configuration_error", error=str(e))
        print(f"Error: {e}", file=sys.stderr)
        return 1
    except BootstrapError as e:
        logger.error("command_failed", command=args.command, error=str(e))
        print(f"Error: {e}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())
