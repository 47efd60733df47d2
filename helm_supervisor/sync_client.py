"""Sync client: forwards collected telemetry to the Helm aggregation API.

Delivery is best effort. Every failure is logged and reported as ``False``;
nothing is raised to the caller and nothing is retried.
"""

import logging
from collections.abc import Sequence
from typing import Any

from helm_supervisor import constants as c
from helm_supervisor.config import SupervisorConfig
from helm_supervisor.schemas import (
    AddonStatus,
    DeviceState,
    ErrorRecord,
    LogEntry,
    PerformanceMetrics,
    SystemInfo,
)
from helm_supervisor.transport import RequestTimeoutError, Transport, TransportError

logger = logging.getLogger(__name__)


class SyncClient:
    """POSTs telemetry shapes to ``{helm_url}/api/supervisor/{endpoint}``."""

    def __init__(self, config: SupervisorConfig, transport: Transport):
        """Initialize sync client.

        Args:
            config: Supplies helm_url, api_key and instance_id
            transport: Transport without bearer auth, using the sync timeout
        """
        self.helm_url = config.helm_url
        self.api_key = config.api_key
        self.instance_id = config.instance_id
        self.transport = transport

    @property
    def configured(self) -> bool:
        return bool(self.helm_url and self.api_key)

    async def send_data(self, endpoint: str, payload: dict[str, Any]) -> bool:
        """Send one payload tagged with the instance id. Returns True on HTTP 2xx."""
        if not self.configured:
            logger.warning("No Helm URL or API key configured, skipping sync of %s", endpoint)
            return False

        url = f"{self.helm_url}{c.SYNC_PATH.format(endpoint=endpoint)}"
        body = {"instanceId": self.instance_id, **payload}

        try:
            response = await self.transport.request(
                url,
                method="POST",
                headers={c.API_KEY_HEADER: self.api_key},
                body=body,
            )
        except RequestTimeoutError:
            logger.error("Sync %s: timeout", endpoint)
            return False
        except TransportError as e:
            logger.error("Sync %s error: %s", endpoint, e)
            return False
        except Exception as e:
            logger.error("Sync %s unexpected error: %s", endpoint, e)
            return False

        if response.ok:
            logger.info("Sync %s: OK", endpoint)
            return True

        logger.error("Sync %s: HTTP %s - %s", endpoint, response.status, response.data)
        return False

    async def sync_heartbeat(self, system_info: SystemInfo | None) -> bool:
        if system_info is None:
            return True
        return await self.send_data(c.SYNC_HEARTBEAT, {"systemInfo": system_info.to_dict()})

    async def sync_logs(self, logs: Sequence[LogEntry]) -> bool:
        if not logs:
            return True
        return await self.send_data(c.SYNC_LOGS, {"logs": [entry.to_dict() for entry in logs]})

    async def sync_metrics(self, metrics: PerformanceMetrics | None) -> bool:
        if metrics is None:
            return True
        return await self.send_data(c.SYNC_METRICS, {"metrics": metrics.to_dict()})

    async def sync_errors(self, errors: Sequence[ErrorRecord]) -> bool:
        if not errors:
            return True
        return await self.send_data(c.SYNC_ERRORS, {"errors": [record.to_dict() for record in errors]})

    async def sync_device_states(self, states: Sequence[DeviceState]) -> bool:
        """Send at most MAX_DEVICE_STATES states; the rest are dropped this cycle."""
        if not states:
            return True
        limited = states[: c.MAX_DEVICE_STATES]
        return await self.send_data(c.SYNC_DEVICE_STATES, {"states": [state.to_dict() for state in limited]})

    async def sync_addon_statuses(self, statuses: Sequence[AddonStatus]) -> bool:
        if not statuses:
            return True
        return await self.send_data(c.SYNC_ADDON_STATUS, {"statuses": [status.to_dict() for status in statuses]})
