"""Internal constants shared across the library."""

USER_AGENT = "pyfrpmon"

DEFAULT_WS_PATH = "/api/ws/realtime"
DEFAULT_API_PREFIX = "/api"

# ------------------------------------------------------------------
# Realtime channel
# ------------------------------------------------------------------

PING_MESSAGE = "ping"
TRAFFIC_UPDATE_MESSAGE = "traffic_update"

HEARTBEAT_INTERVAL_S = 30.0
RECONNECT_DELAY_S = 5.0

# ------------------------------------------------------------------
# Derived views
# ------------------------------------------------------------------

PROXY_HISTORY_SIZE = 20
CHART_HISTORY_SIZE = 30
TOP_N = 5

REQUEST_TIMEOUT_S = 10.0
