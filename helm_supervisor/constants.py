"""Shared constants for the collector and the sync client.

Endpoint paths are defined here so the collector, the sync client and the
tests agree on the same upstream and remote routes.
"""

# Supervisor management API (relative to SUPERVISOR_API)
SUPERVISOR_HOST_INFO = "/host/info"
SUPERVISOR_INFO = "/supervisor/info"
SUPERVISOR_STATS = "/supervisor/stats"
SUPERVISOR_CORE_INFO = "/core/info"
SUPERVISOR_CORE_LOGS = "/core/logs"
SUPERVISOR_LOGS = "/supervisor/logs"
SUPERVISOR_ADDONS = "/addons"
SUPERVISOR_ADDON_INFO = "/addons/{slug}/info"
SUPERVISOR_RESOLUTION = "/resolution/info"

# Core state API (relative to HA_URL)
CORE_STATES = "/api/states"

# Remote aggregation API (relative to helm_url)
SYNC_PATH = "/api/supervisor/{endpoint}"
SYNC_HEARTBEAT = "heartbeat"
SYNC_LOGS = "logs"
SYNC_METRICS = "metrics"
SYNC_ERRORS = "errors"
SYNC_DEVICE_STATES = "device-states"
SYNC_ADDON_STATUS = "addon-status"
API_KEY_HEADER = "X-Supervisor-Key"

# Timeouts (seconds)
COLLECT_TIMEOUT = 10
SYNC_TIMEOUT = 15

# Limits
LOG_TAIL_LINES = 50
LOG_MESSAGE_MAX_CHARS = 2000
MAX_DEVICE_STATES = 500
BYTES_PER_MB = 1024 * 1024

ADDON_MANUAL_STOPPED_ERROR = "Add-on stopped (manual boot)"
UNKNOWN = "unknown"

# Persistent locations inside the add-on container
DEFAULT_OPTIONS_PATH = "/data/options.json"
DEFAULT_INSTANCE_ID_PATH = "/data/instance-id"
INSTANCE_ID_PREFIX = "helm-sv-"
