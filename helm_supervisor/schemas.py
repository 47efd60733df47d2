"""Dataclass definitions for collected telemetry and upstream API responses.

Two groups live here:

* Wire shapes (SystemInfo, PerformanceMetrics, LogEntry, AddonStatus,
  DeviceState, ErrorRecord): what the sync client sends to Helm. Each one
  renders its camelCase wire form via ``to_dict()``.
* Upstream response structs (HostInfo, SupervisorInfo, ...): typed views of
  the supervisor and core API payloads. Every field is optional and
  ``from_api()`` accepts anything, returning an all-``None`` struct when the
  payload is not a mapping.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass, field, fields
from typing import Any

VALID_LOG_LEVELS = frozenset({"debug", "info", "warning", "error"})
VALID_LOG_SOURCES = frozenset({"core", "supervisor"})


def _camel(name: str) -> str:
    head, *rest = name.split("_")
    return head + "".join(part.capitalize() for part in rest)


class _WireShape:
    """Mixin rendering a dataclass with camelCase top-level keys."""

    def to_dict(self) -> dict[str, Any]:
        return {_camel(key): value for key, value in asdict(self).items()}


# ---------------------------------------------------------------------------
# Wire shapes
# ---------------------------------------------------------------------------


@dataclass
class SystemInfo(_WireShape):
    ha_version: str = "unknown"
    supervisor_version: str = "unknown"
    os_version: str = "unknown"
    hostname: str = "unknown"
    arch: str = "unknown"


@dataclass
class PerformanceMetrics(_WireShape):
    """Point-in-time resource usage of the host and supervisor."""

    recorded_at: str
    cpu_percent: float = 0.0
    memory_used_mb: int = 0
    memory_total_mb: int = 0
    disk_used_gb: float = 0.0
    disk_total_gb: float = 0.0
    network_rx_bytes: int = 0
    network_tx_bytes: int = 0
    uptime: int = 0  # not reported by any upstream endpoint
    addon_count: int = 0
    entity_count: int = 0
    automation_count: int = 0


@dataclass
class LogEntry(_WireShape):
    level: str
    source: str
    message: str
    logged_at: str

    def __post_init__(self) -> None:
        if self.level not in VALID_LOG_LEVELS:
            raise ValueError(f"level must be one of {sorted(VALID_LOG_LEVELS)}, got {self.level!r}")
        if self.source not in VALID_LOG_SOURCES:
            raise ValueError(f"source must be one of {sorted(VALID_LOG_SOURCES)}, got {self.source!r}")


@dataclass
class AddonStatus(_WireShape):
    slug: str
    name: str
    version: str
    state: str
    description: str
    recorded_at: str
    install_error: str | None = None
    last_started: str | None = None


@dataclass
class DeviceState(_WireShape):
    entity_id: str
    entity_name: str
    domain: str
    state: Any
    last_changed: str | None
    recorded_at: str
    attributes: dict[str, Any] = field(default_factory=dict)


@dataclass
class ErrorRecord(_WireShape):
    error_type: str
    source: str
    message: str
    first_seen: str
    last_seen: str
    context: dict[str, Any] = field(default_factory=dict)


# ---------------------------------------------------------------------------
# Upstream response structs
# ---------------------------------------------------------------------------


class _ApiStruct:
    """Builds a dataclass from an API mapping, ignoring unknown keys."""

    @classmethod
    def from_api(cls, payload: Any):
        if not isinstance(payload, dict):
            return cls()
        names = {f.name for f in fields(cls)}
        return cls(**{key: value for key, value in payload.items() if key in names})


@dataclass
class HostInfo(_ApiStruct):
    hostname: str | None = None
    operating_system: str | None = None
    disk_used: float | None = None
    disk_total: float | None = None


@dataclass
class SupervisorInfo(_ApiStruct):
    version: str | None = None
    arch: str | None = None


@dataclass
class CoreInfo(_ApiStruct):
    version: str | None = None


@dataclass
class SupervisorStats(_ApiStruct):
    cpu_percent: float | None = None
    memory_usage: int | None = None
    memory_limit: int | None = None
    network_rx: int | None = None
    network_tx: int | None = None


@dataclass
class AddonSummary(_ApiStruct):
    slug: str | None = None
    name: str | None = None
    version: str | None = None
    state: str | None = None
    description: str | None = None


@dataclass
class AddonDetail(_ApiStruct):
    version: str | None = None
    state: str | None = None
    description: str | None = None
    boot: str | None = None
    last_boot: str | None = None


@dataclass
class ResolutionInfo(_ApiStruct):
    issues: list[Any] | None = None
    unhealthy: list[Any] | None = None


@dataclass
class EntityState(_ApiStruct):
    entity_id: str | None = None
    state: Any = None
    attributes: dict[str, Any] | None = None
    last_changed: str | None = None
