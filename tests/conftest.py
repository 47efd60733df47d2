"""Shared fixtures for the helm_supervisor test suite.

Provides a URL-routed fake transport so collector, sync client and cycle
tests can run without a network.
"""

from typing import Any

import pytest

from helm_supervisor.config import SupervisorConfig
from helm_supervisor.transport import RequestTimeoutError, Response, TransportError

SUPERVISOR = "http://supervisor"
CORE = "http://supervisor/core"
HELM = "https://helm.example.com"


def envelope(data: Any) -> Response:
    """Supervisor-style JSON envelope response."""
    return Response(status=200, data={"result": "ok", "data": data}, is_json=True)


def text(body: str) -> Response:
    return Response(status=200, data=body, is_json=False)


def json_response(data: Any, status: int = 200) -> Response:
    return Response(status=status, data=data, is_json=True)


class FakeTransport:
    """Transport stand-in answering from a URL → Response/Exception map.

    Unknown URLs raise TransportError, like an unreachable host.
    """

    def __init__(self, routes: dict[str, Any] | None = None, default: Any = None):
        self.routes = dict(routes or {})
        self.default = default
        self.calls: list[dict[str, Any]] = []
        self.closed = False

    async def request(self, url, method="GET", headers=None, body=None):
        self.calls.append({"url": url, "method": method, "headers": headers, "body": body})
        outcome = self.routes.get(url, self.default)
        if outcome is None:
            raise TransportError(f"{method} {url} failed: connection refused")
        if isinstance(outcome, BaseException):
            raise outcome
        return outcome

    async def close(self):
        self.closed = True

    def urls(self) -> list[str]:
        return [call["url"] for call in self.calls]


@pytest.fixture
def config():
    return SupervisorConfig(
        helm_url=HELM,
        api_key="test-api-key",
        sync_interval=60,
        supervisor_token="sv-token",
        supervisor_url=SUPERVISOR,
        ha_url=CORE,
        instance_id="helm-sv-test0001",
    )


@pytest.fixture
def healthy_routes():
    """Routes for a fully reachable supervisor + core."""
    return {
        f"{SUPERVISOR}/host/info": envelope(
            {
                "hostname": "homeassistant",
                "operating_system": "Home Assistant OS 12.1",
                "disk_used": 14.2,
                "disk_total": 58.0,
            }
        ),
        f"{SUPERVISOR}/supervisor/info": envelope({"version": "2024.06.0", "arch": "aarch64"}),
        f"{SUPERVISOR}/core/info": envelope({"version": "2024.6.2"}),
        f"{SUPERVISOR}/supervisor/stats": envelope(
            {
                "cpu_percent": 3.5,
                "memory_usage": 512 * 1024 * 1024,
                "memory_limit": 2048 * 1024 * 1024,
                "network_rx": 1000,
                "network_tx": 2000,
            }
        ),
        f"{SUPERVISOR}/core/logs": text(
            "2024-06-01 10:00:00.123 INFO (MainThread) [homeassistant.setup] Setup done\n"
            "2024-06-01 10:00:01.000 ERROR (MainThread) [custom] Integration failed\n"
        ),
        f"{SUPERVISOR}/supervisor/logs": text("2024-06-01T10:00:02Z WARNING Disk usage high\n"),
        f"{SUPERVISOR}/addons": envelope(
            {
                "addons": [
                    {"slug": "core_mosquitto", "name": "Mosquitto broker", "version": "6.4.0", "state": "started"},
                    {"slug": "helm_supervisor", "name": "Helm Supervisor", "state": "started"},
                ]
            }
        ),
        f"{SUPERVISOR}/addons/core_mosquitto/info": envelope({"boot": "auto", "state": "started"}),
        f"{SUPERVISOR}/addons/helm_supervisor/info": envelope({"version": "1.0.0", "boot": "auto"}),
        f"{SUPERVISOR}/resolution/info": envelope(
            {"issues": [{"type": "free_space", "context": "system", "reference": None}], "unhealthy": ["docker"]}
        ),
        f"{CORE}/api/states": json_response(
            [
                {
                    "entity_id": "light.kitchen",
                    "state": "on",
                    "attributes": {"friendly_name": "Kitchen Light"},
                    "last_changed": "2024-06-01T09:00:00+00:00",
                },
                {
                    "entity_id": "automation.morning_routine",
                    "state": "on",
                    "attributes": {},
                    "last_changed": "2024-06-01T06:00:00+00:00",
                },
            ]
        ),
    }


@pytest.fixture
def timeout_error():
    return RequestTimeoutError("GET http://supervisor timed out after 10s")
