"""Helm Supervisor CLI: entry point for the sync loop and one-off collection."""

import argparse
import asyncio
import json
import logging
import signal
import sys

from helm_supervisor import __version__
from helm_supervisor.config import ConfigError, load_config
from helm_supervisor.constants import DEFAULT_INSTANCE_ID_PATH, DEFAULT_OPTIONS_PATH

logger = logging.getLogger("helm_supervisor")

SHAPES = ("system_info", "logs", "metrics", "errors", "device_states", "addon_statuses")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="helm-supervisor",
        description="Helm Supervisor: monitoring & diagnostics collector",
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    def add_common(sub):
        sub.add_argument("--options", default=DEFAULT_OPTIONS_PATH, help=f"Options file (default: {DEFAULT_OPTIONS_PATH})")
        sub.add_argument(
            "--instance-id-file",
            default=DEFAULT_INSTANCE_ID_PATH,
            help=f"Instance id file (default: {DEFAULT_INSTANCE_ID_PATH})",
        )
        sub.add_argument("--verbose", action="store_true", help="Enable DEBUG logging")
        sub.add_argument("--quiet", action="store_true", help="Only show WARNING and above")

    run_parser = subparsers.add_parser("run", help="Collect and sync on the configured interval")
    add_common(run_parser)
    run_parser.add_argument("--once", action="store_true", help="Run a single sync cycle, then exit")

    collect_parser = subparsers.add_parser("collect", help="Collect once and print JSON without syncing")
    add_common(collect_parser)
    collect_parser.add_argument("--shape", choices=SHAPES, default=None, help="Only print one shape")

    return parser


def setup_logging(level: int):
    logging.basicConfig(
        level=level,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )


def _resolve_level(args, config_level: int) -> int:
    if args.verbose:
        return logging.DEBUG
    if args.quiet:
        return logging.WARNING
    return config_level


def main(argv=None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    if not args.command:
        parser.print_help()
        return 1

    try:
        config = load_config(args.options, args.instance_id_file)
    except ConfigError as e:
        setup_logging(logging.INFO)
        logger.error("Fatal: invalid configuration: %s", e)
        return 1

    setup_logging(_resolve_level(args, config.log_level_value))

    if args.command == "run":
        return asyncio.run(_run(config, once=args.once))
    if args.command == "collect":
        return asyncio.run(_collect(config, shape=args.shape))

    print(f"Unknown command: {args.command}")
    return 1


def _log_banner(config):
    logger.info("=" * 46)
    logger.info("  Helm Supervisor v%s", __version__)
    logger.info("  Monitoring & Diagnostics Collector")
    logger.info("=" * 46)
    logger.info("Instance ID: %s", config.instance_id)
    logger.info("Helm URL: %s", config.helm_url or "(not configured)")
    logger.info("Sync interval: %ss", config.sync_interval)
    logger.info("Device states: %s", config.collect_device_states)
    logger.info("Performance metrics: %s", config.collect_performance_metrics)
    logger.info("Add-on status: %s", config.collect_addon_status)

    if not config.sync_enabled:
        logger.warning("Helm URL or API key not configured. Running in local-only mode.")
        logger.warning("Configure helm_url and api_key in the add-on settings to enable sync.")


async def _run(config, once: bool = False) -> int:
    """Run the sync loop until SIGTERM/SIGINT."""
    from helm_supervisor.runner import AppContext, run_forever, run_sync_cycle

    _log_banner(config)
    ctx = AppContext.build(config)
    stop_event = asyncio.Event()

    loop = asyncio.get_running_loop()

    def _request_stop(signame: str):
        logger.info("Received %s, shutting down...", signame)
        stop_event.set()

    for sig in (signal.SIGTERM, signal.SIGINT):
        try:
            loop.add_signal_handler(sig, _request_stop, sig.name)
        except (NotImplementedError, RuntimeError):
            logger.debug("Signal handler for %s not supported on this platform", sig.name)

    try:
        if once:
            await run_sync_cycle(ctx)
        else:
            await run_forever(ctx, stop_event)
    finally:
        await ctx.close()
    return 0


async def _collect(config, shape: str | None = None) -> int:
    """Collect every shape once and print it as JSON."""
    from helm_supervisor.runner import AppContext

    ctx = AppContext.build(config)
    try:
        collected = await ctx.collector.collect_all()
    finally:
        await ctx.close()

    def render(value):
        if value is None:
            return None
        if isinstance(value, list):
            return [item.to_dict() for item in value]
        return value.to_dict()

    output = {name: render(value) for name, value in collected.items() if shape is None or name == shape}
    print(json.dumps(output, indent=2, default=str))
    return 0


if __name__ == "__main__":
    sys.exit(main())
