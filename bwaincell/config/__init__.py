"""Configuration loading and validation for the interaction middleware."""

from bwaincell.config.environment import expand_env_vars
from bwaincell.config.loader import dump_config, load_middleware_config, validate_config
from bwaincell.config.schema import (
    AuditSettings,
    ErrorSettings,
    LoggingSettings,
    MiddlewareConfig,
    RateLimitRule,
    RateLimitSettings,
    ValidationSettings,
)

__all__ = [
    "AuditSettings",
    "ErrorSettings",
    "LoggingSettings",
    "MiddlewareConfig",
    "RateLimitRule",
    "RateLimitSettings",
    "ValidationSettings",
    "dump_config",
    "expand_env_vars",
    "load_middleware_config",
    "validate_config",
]
