"""Collector: polls the supervisor and core APIs for telemetry.

Every public ``get_*`` call tolerates upstream failures at the finest useful
grain: a failed sub-request degrades to ``None`` (and then to defaults),
never to an exception for the whole call.
"""

import asyncio
import logging
import math
import re
from datetime import UTC, datetime
from typing import Any

from helm_supervisor import constants as c
from helm_supervisor.config import SupervisorConfig
from helm_supervisor.schemas import (
    AddonDetail,
    AddonStatus,
    AddonSummary,
    CoreInfo,
    DeviceState,
    EntityState,
    ErrorRecord,
    HostInfo,
    LogEntry,
    PerformanceMetrics,
    ResolutionInfo,
    SupervisorInfo,
    SupervisorStats,
    SystemInfo,
)
from helm_supervisor.transport import Response, Transport

logger = logging.getLogger(__name__)

TIMESTAMP_RE = re.compile(r"(\d{4}-\d{2}-\d{2}[T ]\d{2}:\d{2}:\d{2}(?:\.\d+)?(?:Z|[+-]\d{2}:?\d{2})?)")


def _now_iso() -> str:
    return datetime.now(UTC).isoformat()


def _to_float(value: Any) -> float:
    try:
        result = float(value)
    except (TypeError, ValueError, OverflowError):
        return 0.0
    return result if math.isfinite(result) else 0.0


def _to_int(value: Any) -> int:
    if isinstance(value, int) and not isinstance(value, bool):
        return value
    return int(_to_float(value))


def _bytes_to_mb(value: Any) -> int:
    return _to_int(value) // c.BYTES_PER_MB


def envelope_data(response: Response | None) -> Any:
    """Unwrap the supervisor ``{"result": ..., "data": {...}}`` envelope."""
    if response is None or not response.is_json or not isinstance(response.data, dict):
        return None
    return response.data.get("data")


def classify_level(line: str) -> str:
    """Infer a log level from a raw line. Priority: error > warning > debug > info."""
    lowered = line.lower()
    if "error" in lowered:
        return "error"
    if "warn" in lowered:
        return "warning"
    if "debug" in lowered:
        return "debug"
    return "info"


def extract_timestamp(line: str) -> str:
    """Return the first ISO-8601-like timestamp in ``line`` as UTC ISO, else now."""
    match = TIMESTAMP_RE.search(line)
    if match:
        try:
            parsed = datetime.fromisoformat(match.group(1).replace("Z", "+00:00"))
            # naive timestamps are local time; astimezone() assumes that
            return parsed.astimezone(UTC).isoformat()
        except (ValueError, OverflowError, OSError):
            pass
    return _now_iso()


def parse_log_lines(raw: str, source: str) -> list[LogEntry]:
    """Turn raw log text into entries for the last non-blank lines."""
    lines = [line for line in raw.split("\n") if line.strip()]
    return [
        LogEntry(
            level=classify_level(line),
            source=source,
            message=line[: c.LOG_MESSAGE_MAX_CHARS],
            logged_at=extract_timestamp(line),
        )
        for line in lines[-c.LOG_TAIL_LINES :]
    ]


# ---------------------------------------------------------------------------
# Shape mapping functions
# ---------------------------------------------------------------------------


def build_system_info(host: HostInfo, supervisor: SupervisorInfo, core: CoreInfo) -> SystemInfo:
    return SystemInfo(
        ha_version=core.version or c.UNKNOWN,
        supervisor_version=supervisor.version or c.UNKNOWN,
        os_version=host.operating_system or c.UNKNOWN,
        hostname=host.hostname or c.UNKNOWN,
        arch=supervisor.arch or c.UNKNOWN,
    )


def build_performance_metrics(
    host: HostInfo,
    stats: SupervisorStats,
    entity_count: int = 0,
    automation_count: int = 0,
    addon_count: int = 0,
) -> PerformanceMetrics:
    return PerformanceMetrics(
        cpu_percent=_to_float(stats.cpu_percent),
        memory_used_mb=_bytes_to_mb(stats.memory_usage),
        memory_total_mb=_bytes_to_mb(stats.memory_limit),
        disk_used_gb=_to_float(host.disk_used),
        disk_total_gb=_to_float(host.disk_total),
        network_rx_bytes=_to_int(stats.network_rx),
        network_tx_bytes=_to_int(stats.network_tx),
        addon_count=addon_count,
        entity_count=entity_count,
        automation_count=automation_count,
        recorded_at=_now_iso(),
    )


def build_addon_status(summary: AddonSummary, detail: AddonDetail | None) -> AddonStatus:
    detail = detail or AddonDetail()
    install_error = None
    if detail.boot == "manual" and detail.state == "stopped":
        install_error = c.ADDON_MANUAL_STOPPED_ERROR
    return AddonStatus(
        slug=summary.slug,
        name=summary.name or summary.slug,
        version=summary.version or detail.version or c.UNKNOWN,
        state=summary.state or detail.state or c.UNKNOWN,
        description=summary.description or detail.description or "",
        install_error=install_error,
        last_started=detail.last_boot or None,
        recorded_at=_now_iso(),
    )


def build_device_state(entity: EntityState) -> DeviceState:
    attributes = entity.attributes if isinstance(entity.attributes, dict) else {}
    return DeviceState(
        entity_id=entity.entity_id,
        entity_name=attributes.get("friendly_name") or entity.entity_id,
        domain=entity.entity_id.split(".", 1)[0],
        state=entity.state,
        attributes=attributes,
        last_changed=entity.last_changed,
        recorded_at=_now_iso(),
    )


def build_error_records(resolution: ResolutionInfo) -> list[ErrorRecord]:
    now = _now_iso()
    records = []

    for issue in resolution.issues if isinstance(resolution.issues, list) else []:
        issue = issue if isinstance(issue, dict) else {"reference": issue}
        issue_type = issue.get("type") or c.UNKNOWN
        records.append(
            ErrorRecord(
                error_type=issue_type,
                source=issue.get("context") or "system",
                message=f"{issue_type}: {issue.get('reference') or 'No details'}",
                context=issue,
                first_seen=now,
                last_seen=now,
            )
        )

    for item in resolution.unhealthy if isinstance(resolution.unhealthy, list) else []:
        records.append(
            ErrorRecord(
                error_type="unhealthy",
                source=item if isinstance(item, str) else "system",
                message=f"System unhealthy: {item}",
                context={"unhealthy": item},
                first_seen=now,
                last_seen=now,
            )
        )

    return records


# ---------------------------------------------------------------------------
# Collector
# ---------------------------------------------------------------------------


class HACollector:
    """Collects system, metric, log, add-on, entity and health telemetry."""

    def __init__(self, config: SupervisorConfig, transport: Transport):
        """Initialize collector.

        Args:
            config: Supplies the supervisor and core base URLs
            transport: Bearer-authenticated transport with the collection timeout
        """
        self.supervisor_url = config.supervisor_url
        self.ha_url = config.ha_url
        self.transport = transport

    async def _get(self, url: str) -> Response:
        return await self.transport.request(url)

    async def _get_optional(self, url: str) -> Response | None:
        """GET ``url``; any failure becomes None."""
        try:
            return await self._get(url)
        except Exception as e:
            logger.debug("Request to %s failed: %s", url, e)
            return None

    async def _gather_supervisor(self, *paths: str) -> list[Any]:
        """Fetch several supervisor endpoints concurrently, unwrapping envelopes."""
        responses = await asyncio.gather(*(self._get_optional(f"{self.supervisor_url}{path}") for path in paths))
        return [envelope_data(resp) for resp in responses]

    async def _fetch_states(self) -> list[Any] | None:
        response = await self._get(f"{self.ha_url}{c.CORE_STATES}")
        if not response.is_json or not isinstance(response.data, list):
            return None
        return response.data

    async def get_system_info(self) -> SystemInfo | None:
        """Host, supervisor and core versions; missing parts become "unknown"."""
        try:
            host, supervisor, core = await self._gather_supervisor(
                c.SUPERVISOR_HOST_INFO, c.SUPERVISOR_INFO, c.SUPERVISOR_CORE_INFO
            )
            return build_system_info(
                HostInfo.from_api(host), SupervisorInfo.from_api(supervisor), CoreInfo.from_api(core)
            )
        except Exception as e:
            logger.error("Failed to get system info: %s", e)
            return None

    async def get_performance_metrics(self) -> PerformanceMetrics | None:
        """Resource usage plus entity/automation/add-on counts."""
        try:
            # core info is fetched alongside for parity with system info; it
            # carries no metric fields today
            host, stats, _core = await self._gather_supervisor(
                c.SUPERVISOR_HOST_INFO, c.SUPERVISOR_STATS, c.SUPERVISOR_CORE_INFO
            )

            entity_count = 0
            automation_count = 0
            try:
                states = await self._fetch_states()
                if states is not None:
                    entity_count = len(states)
                    automation_count = sum(
                        1
                        for s in states
                        if isinstance(s, dict) and str(s.get("entity_id") or "").startswith("automation.")
                    )
            except Exception as e:
                logger.debug("Entity count unavailable: %s", e)

            addon_count = 0
            try:
                addons = envelope_data(await self._get(f"{self.supervisor_url}{c.SUPERVISOR_ADDONS}"))
                if isinstance(addons, dict) and isinstance(addons.get("addons"), list):
                    addon_count = len(addons["addons"])
            except Exception as e:
                logger.debug("Add-on count unavailable: %s", e)

            return build_performance_metrics(
                HostInfo.from_api(host),
                SupervisorStats.from_api(stats),
                entity_count=entity_count,
                automation_count=automation_count,
                addon_count=addon_count,
            )
        except Exception as e:
            logger.error("Failed to get performance metrics: %s", e)
            return None

    async def get_logs(self) -> list[LogEntry]:
        """Recent core and supervisor log lines, core first."""
        try:
            core_resp, supervisor_resp = await asyncio.gather(
                self._get_optional(f"{self.supervisor_url}{c.SUPERVISOR_CORE_LOGS}"),
                self._get_optional(f"{self.supervisor_url}{c.SUPERVISOR_LOGS}"),
            )
            logs: list[LogEntry] = []
            for response, source in ((core_resp, "core"), (supervisor_resp, "supervisor")):
                if response is None or not isinstance(response.data, str):
                    continue
                logs.extend(parse_log_lines(response.data, source))
            return logs
        except Exception as e:
            logger.error("Failed to get logs: %s", e)
            return []

    async def _get_addon_detail(self, slug: str) -> AddonDetail | None:
        path = c.SUPERVISOR_ADDON_INFO.format(slug=slug)
        response = await self._get_optional(f"{self.supervisor_url}{path}")
        data = envelope_data(response)
        return AddonDetail.from_api(data) if isinstance(data, dict) else None

    async def get_addon_statuses(self) -> list[AddonStatus]:
        """Installed add-ons merged with their per-add-on detail."""
        try:
            data = envelope_data(await self._get(f"{self.supervisor_url}{c.SUPERVISOR_ADDONS}"))
            listed = data.get("addons") if isinstance(data, dict) else None
            summaries = [AddonSummary.from_api(a) for a in listed or [] if isinstance(a, dict)]
            summaries = [s for s in summaries if s.slug]

            details = await asyncio.gather(*(self._get_addon_detail(s.slug) for s in summaries))
            return [build_addon_status(summary, detail) for summary, detail in zip(summaries, details)]
        except Exception as e:
            logger.error("Failed to get addon statuses: %s", e)
            return []

    async def get_device_states(self) -> list[DeviceState]:
        """All entity states from the core state API."""
        try:
            states = await self._fetch_states()
            if states is None:
                return []
            entities = (EntityState.from_api(s) for s in states)
            return [build_device_state(e) for e in entities if isinstance(e.entity_id, str) and e.entity_id]
        except Exception as e:
            logger.error("Failed to get device states: %s", e)
            return []

    async def get_errors(self) -> list[ErrorRecord]:
        """Supervisor resolution issues and unhealthy flags."""
        try:
            data = envelope_data(await self._get(f"{self.supervisor_url}{c.SUPERVISOR_RESOLUTION}"))
            return build_error_records(ResolutionInfo.from_api(data))
        except Exception as e:
            logger.error("Failed to get errors: %s", e)
            return []

    async def collect_all(self) -> dict[str, Any]:
        """Run every collector call once. Used by the ``collect`` CLI command."""
        return {
            "system_info": await self.get_system_info(),
            "logs": await self.get_logs(),
            "metrics": await self.get_performance_metrics(),
            "errors": await self.get_errors(),
            "device_states": await self.get_device_states(),
            "addon_statuses": await self.get_addon_statuses(),
        }
