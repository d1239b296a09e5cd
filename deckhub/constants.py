"""Constants used across deckhub.

Defaults here are what the config layer falls back to when nothing is set.
"""

# Hub addressing
DEFAULT_HUB_HOST = "localhost:8080"
SHELL_PATH = "/shell"
SHELL_AGENT_PARAM = "agent"
GRAPHQL_PATH = "/graphql"

# Telemetry polling (seconds)
DEFAULT_POLL_INTERVAL_S = 1.0

# Shell transport
DEFAULT_CONNECT_TIMEOUT_S = 10.0
DEFAULT_RECONNECT_MAX_ATTEMPTS = 0  # 0 disables reconnects
DEFAULT_RECONNECT_INITIAL_BACKOFF_S = 1.0
DEFAULT_RECONNECT_MAX_BACKOFF_S = 30.0
DEFAULT_RECONNECT_MULTIPLIER = 2.0

# Terminal surface
DEFAULT_TERMINAL_COLUMNS = 80
DEFAULT_TERMINAL_ROWS = 24
MIN_TERMINAL_COLUMNS = 2
MIN_TERMINAL_ROWS = 1
DEFAULT_SCROLLBACK_LINES = 1000
DEFAULT_REPLAY_LOG_BYTES = 16 * 1024

# Command relay
DEFAULT_RELAY_TIMEOUT_S = 10.0

# Network device detail typename that marks a device as commandable
HYPERDECK_DETAILS_TYPENAME = "HyperDeckDetails"
