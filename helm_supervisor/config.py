"""Configuration for the Helm supervisor add-on.

User options come from the add-on options file (``/data/options.json``) or,
when running outside the add-on container, from environment variables.
Local endpoint URLs and the supervisor token always come from the
environment.
"""

import json
import logging
import os
import random
import string
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from helm_supervisor.constants import DEFAULT_INSTANCE_ID_PATH, DEFAULT_OPTIONS_PATH, INSTANCE_ID_PREFIX

logger = logging.getLogger(__name__)

LOG_LEVELS = {
    "debug": logging.DEBUG,
    "info": logging.INFO,
    "warn": logging.WARNING,
    "warning": logging.WARNING,
    "error": logging.ERROR,
}


class ConfigError(ValueError):
    """Options are missing, malformed, or out of range."""


@dataclass
class SupervisorConfig:
    """Runtime settings for one collector process."""

    helm_url: str = ""
    api_key: str = ""
    sync_interval: int = 60
    collect_device_states: bool = True
    collect_performance_metrics: bool = True
    collect_addon_status: bool = True
    log_level: str = "info"
    supervisor_token: str = ""
    supervisor_url: str = "http://supervisor"
    ha_url: str = "http://supervisor/core"
    instance_id: str = ""

    @property
    def sync_enabled(self) -> bool:
        return bool(self.helm_url and self.api_key)

    @property
    def log_level_value(self) -> int:
        return LOG_LEVELS[self.log_level]

    @classmethod
    def from_options(cls, options: dict[str, Any], env=None):
        """Build config from an options mapping plus environment endpoints."""
        env = os.environ if env is None else env
        return cls(
            helm_url=_clean_url(options.get("helm_url")),
            api_key=str(options.get("api_key") or ""),
            sync_interval=_parse_interval(options.get("sync_interval")),
            collect_device_states=options.get("collect_device_states") is not False,
            collect_performance_metrics=options.get("collect_performance_metrics") is not False,
            collect_addon_status=options.get("collect_addon_status") is not False,
            log_level=_parse_log_level(options.get("log_level")),
            supervisor_token=env.get("SUPERVISOR_TOKEN", ""),
            supervisor_url=_clean_url(env.get("SUPERVISOR_API") or cls.supervisor_url),
            ha_url=_clean_url(env.get("HA_URL") or cls.ha_url),
        )

    @classmethod
    def from_env(cls, env=None):
        env = os.environ if env is None else env
        options = {
            "helm_url": env.get("HELM_URL", ""),
            "api_key": env.get("HELM_API_KEY", ""),
            "sync_interval": env.get("SYNC_INTERVAL", "60"),
            "log_level": env.get("LOG_LEVEL", "info"),
        }
        return cls.from_options(options, env)


def _clean_url(value: Any) -> str:
    return str(value or "").strip().rstrip("/")


def _parse_interval(value: Any) -> int:
    if value is None or value == "":
        return SupervisorConfig.sync_interval
    if isinstance(value, bool):
        raise ConfigError(f"sync_interval must be an integer, got {value!r}")
    try:
        interval = int(value)
    except (TypeError, ValueError) as e:
        raise ConfigError(f"sync_interval must be an integer, got {value!r}") from e
    if interval <= 0:
        raise ConfigError(f"sync_interval must be positive, got {interval}")
    return interval


def _parse_log_level(value: Any) -> str:
    if not value:
        return SupervisorConfig.log_level
    level = str(value).strip().lower()
    if level not in LOG_LEVELS:
        raise ConfigError(f"log_level must be one of {sorted(LOG_LEVELS)}, got {value!r}")
    return level


def read_options(path: str | Path) -> dict[str, Any] | None:
    """Read the add-on options file. Returns None when it does not exist."""
    path = Path(path)
    if not path.exists():
        return None
    try:
        options = json.loads(path.read_text(encoding="utf-8"))
    except (OSError, ValueError) as e:
        raise ConfigError(f"Cannot read options file {path}: {e}") from e
    if not isinstance(options, dict):
        raise ConfigError(f"Options file {path} must contain a JSON object")
    return options


def _generate_instance_id() -> str:
    alphabet = string.ascii_lowercase + string.digits
    return INSTANCE_ID_PREFIX + "".join(random.choices(alphabet, k=8))


def load_instance_id(path: str | Path = DEFAULT_INSTANCE_ID_PATH) -> str:
    """Return the persisted instance id, creating and saving one if needed.

    A failure to persist is not fatal: the generated id is still used for
    this process (e.g. when running outside the add-on container).
    """
    path = Path(path)
    try:
        existing = path.read_text(encoding="utf-8").strip()
        if existing:
            return existing
    except FileNotFoundError:
        pass
    except (OSError, UnicodeDecodeError) as e:
        logger.debug("Could not read instance id from %s: %s", path, e)

    instance_id = _generate_instance_id()
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(instance_id, encoding="utf-8")
    except OSError as e:
        logger.debug("Could not persist instance id to %s: %s", path, e)
    return instance_id


def load_config(
    options_path: str | Path = DEFAULT_OPTIONS_PATH,
    instance_id_path: str | Path = DEFAULT_INSTANCE_ID_PATH,
    env=None,
) -> SupervisorConfig:
    """Load config from the options file, falling back to the environment.

    Raises:
        ConfigError: The options file or an option value is invalid.
    """
    options = read_options(options_path)
    if options is None:
        config = SupervisorConfig.from_env(env)
    else:
        config = SupervisorConfig.from_options(options, env)
    config.instance_id = load_instance_id(instance_id_path)
    return config
