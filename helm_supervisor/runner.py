"""Sync cycle driver.

One cycle collects every enabled telemetry shape and forwards it, in a fixed
order. ``run_forever`` repeats cycles on a fixed cadence without ever letting
two cycles overlap.
"""

import asyncio
import logging
import time
from dataclasses import dataclass

from helm_supervisor.collector import HACollector
from helm_supervisor.config import SupervisorConfig
from helm_supervisor.constants import COLLECT_TIMEOUT, SYNC_TIMEOUT
from helm_supervisor.sync_client import SyncClient
from helm_supervisor.transport import Transport

logger = logging.getLogger(__name__)


@dataclass
class AppContext:
    """Everything a sync cycle needs, built once at startup."""

    config: SupervisorConfig
    collector: HACollector
    sync_client: SyncClient
    cycle_count: int = 0

    @classmethod
    def build(cls, config: SupervisorConfig):
        collect_transport = Transport(token=config.supervisor_token, timeout=COLLECT_TIMEOUT)
        sync_transport = Transport(token=None, timeout=SYNC_TIMEOUT)
        return cls(
            config=config,
            collector=HACollector(config, collect_transport),
            sync_client=SyncClient(config, sync_transport),
        )

    async def close(self):
        await self.collector.transport.close()
        await self.sync_client.transport.close()


async def run_sync_cycle(ctx: AppContext) -> bool:
    """Run one collect-and-forward cycle.

    Returns:
        True if the cycle ran to completion, False if an exception escaped
        one of the steps (it is logged, never raised).
    """
    ctx.cycle_count += 1
    cycle = ctx.cycle_count
    config = ctx.config
    collector = ctx.collector
    client = ctx.sync_client
    logger.info("Starting sync cycle #%d...", cycle)

    try:
        system_info = await collector.get_system_info()
        if system_info is not None:
            sent = await client.sync_heartbeat(system_info)
            logger.debug("Heartbeat %s", "sent" if sent else "not delivered")
        else:
            logger.debug("System info unavailable, heartbeat skipped")

        logs = await collector.get_logs()
        if logs:
            sent = await client.sync_logs(logs)
            logger.debug("Log entries (%d) %s", len(logs), "synced" if sent else "not delivered")
        else:
            logger.debug("No log entries to sync")

        if config.collect_performance_metrics:
            metrics = await collector.get_performance_metrics()
            if metrics is not None:
                sent = await client.sync_metrics(metrics)
                logger.debug("Performance metrics %s", "synced" if sent else "not delivered")
        else:
            logger.debug("Performance metrics collection disabled")

        errors = await collector.get_errors()
        if errors:
            sent = await client.sync_errors(errors)
            logger.debug("Errors (%d) %s", len(errors), "synced" if sent else "not delivered")
        else:
            logger.debug("No errors to sync")

        if config.collect_device_states:
            states = await collector.get_device_states()
            if states:
                sent = await client.sync_device_states(states)
                logger.debug("Device states (%d) %s", len(states), "synced" if sent else "not delivered")
        else:
            logger.debug("Device state collection disabled")

        if config.collect_addon_status:
            statuses = await collector.get_addon_statuses()
            if statuses:
                sent = await client.sync_addon_statuses(statuses)
                logger.debug("Addon statuses (%d) %s", len(statuses), "synced" if sent else "not delivered")
        else:
            logger.debug("Add-on status collection disabled")

    except Exception as e:
        logger.error("Sync cycle #%d failed: %s", cycle, e)
        return False

    logger.info("Sync cycle #%d complete", cycle)
    return True


async def _wait_or_stop(stop_event: asyncio.Event, delay: float):
    """Sleep for ``delay`` seconds unless ``stop_event`` is set first."""
    try:
        await asyncio.wait_for(stop_event.wait(), timeout=delay)
    except TimeoutError:
        pass


async def run_forever(ctx: AppContext, stop_event: asyncio.Event, clock=time.monotonic):
    """Run cycles until ``stop_event`` is set.

    The next cycle starts ``sync_interval`` seconds after the previous one
    started, or right away if the previous cycle overran the interval.
    """
    interval = ctx.config.sync_interval
    while not stop_event.is_set():
        started = clock()
        await run_sync_cycle(ctx)
        delay = max(0.0, interval - (clock() - started))
        if delay == 0:
            logger.warning("Sync cycle #%d took longer than the %ds interval", ctx.cycle_count, interval)
        await _wait_or_stop(stop_event, delay)
