"""Shared constants for the Bwaincell interaction pipeline."""

APP_NAME = "Bwaincell"
APP_VERSION = "0.1.0"

# Logging defaults
LOG_DIR = "logs"
DEFAULT_LOG_LEVEL = "INFO"

# Environment selection
ENV_VAR_NAME = "BWAINCELL_ENV"
DEFAULT_ENVIRONMENT = "development"
CONFIG_ENV_VAR = "BWAINCELL_CONFIG"

# Discord platform limits
INITIAL_RESPONSE_WINDOW_SECONDS = 3
FOLLOW_UP_WINDOW_SECONDS = 15 * 60
UNKNOWN_INTERACTION_CODE = 10062

# Middleware defaults
DEFAULT_SLOW_INTERACTION_THRESHOLD_MS = 2000
DEFAULT_RATE_LIMIT_WINDOW_MS = 60_000
DEFAULT_RATE_LIMIT_PER_USER = 10
DEFAULT_RATE_LIMIT_PER_GUILD = 50
APPROACHING_LIMIT_REMAINING = 3
RATE_LIMIT_CLEANUP_INTERVAL_SECONDS = 60.0
DEFAULT_MAX_INPUT_LENGTH = 2000
