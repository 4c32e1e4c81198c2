"""Environment handling for configuration values.

Three jobs, all operating on raw (pre-validation) dicts:

* ``${VAR}`` / ``${VAR:-default}`` expansion in string values,
* per-environment profiles selected by ``BWAINCELL_ENV``,
* explicit overrides from well-known environment variables.
"""

from __future__ import annotations

import logging
import os
import re
from typing import Any, Callable, Dict, Mapping, Optional, Tuple

from pydantic.alias_generators import to_camel

from bwaincell.constants import DEFAULT_ENVIRONMENT, ENV_VAR_NAME
from bwaincell.errors import ConfigurationError

logger = logging.getLogger(__name__)

# ${VAR} or ${VAR:-fallback}
_ENV_VAR_RE = re.compile(r"\$\{(\w+)(?::-([^}]*))?\}")

_TRUE_VALUES = frozenset({"1", "true", "yes", "on"})
_FALSE_VALUES = frozenset({"0", "false", "no", "off"})


def expand_env_vars(value: Any, environ: Optional[Mapping[str, str]] = None) -> Any:
    """Recursively expand ``${VAR}`` references in string values.

    - ``${VAR:-text}`` falls back to *text* when ``VAR`` is unset.
    - Without a fallback an unset variable leaves the placeholder unchanged.
    - Dicts and lists are walked recursively; other leaves are returned as-is.
    """
    env = os.environ if environ is None else environ

    def _sub(m: re.Match) -> str:
        name, fallback = m.group(1), m.group(2)
        if name in env:
            return env[name]
        return fallback if fallback is not None else m.group(0)

    if isinstance(value, str):
        return _ENV_VAR_RE.sub(_sub, value)
    if isinstance(value, dict):
        return {k: expand_env_vars(v, env) for k, v in value.items()}
    if isinstance(value, list):
        return [expand_env_vars(item, env) for item in value]
    return value


# Sections whose keys are user-chosen names (categories, fields), not settings.
_NAMED_MAPPINGS = frozenset({"customLimits", "fieldLimits", "customPatterns"})


def normalise_keys(raw: Dict[str, Any]) -> Dict[str, Any]:
    """Convert snake_case setting keys to the camelCase file keys.

    Category, field and pattern names inside :data:`_NAMED_MAPPINGS` are
    left untouched so ``task_create`` stays ``task_create``.
    """
    out: Dict[str, Any] = {}
    for section, settings in raw.items():
        section_key = to_camel(section)
        if not isinstance(settings, dict):
            out[section_key] = settings
            continue
        normalised: Dict[str, Any] = {}
        for key, value in settings.items():
            camel = to_camel(key)
            if camel == "customLimits" and isinstance(value, dict):
                value = {
                    name: (
                        {to_camel(k): v for k, v in rule.items()}
                        if isinstance(rule, dict)
                        else rule
                    )
                    for name, rule in value.items()
                }
            elif camel not in _NAMED_MAPPINGS and isinstance(value, dict):
                value = {to_camel(k): v for k, v in value.items()}
            normalised[camel] = value
        out[section_key] = normalised
    return out


def deep_merge(base: Dict[str, Any], override: Dict[str, Any]) -> Dict[str, Any]:
    """Return a new dict with *override* merged into *base* (nested dicts merged)."""
    merged = dict(base)
    for key, value in override.items():
        if isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key] = deep_merge(merged[key], value)
        else:
            merged[key] = value
    return merged


# ── Environment profiles ─────────────────────────────────────────────────

PROFILES: Dict[str, Dict[str, Any]] = {
    "production": {
        "logging": {"logLevel": "warning", "logUserIds": False},
        "rateLimit": {"perUser": 20, "perGuild": 100},
        "error": {"reportCriticalErrors": True},
    },
    "staging": {
        "logging": {"logLevel": "info"},
        "rateLimit": {"perUser": 15, "perGuild": 75},
    },
    "test": {
        "logging": {"enabled": False},
        "rateLimit": {"perUser": 1000, "perGuild": 1000},
    },
    "development": {
        "logging": {"logLevel": "debug", "logUserIds": True},
    },
}


def current_environment(environ: Optional[Mapping[str, str]] = None) -> str:
    """Name of the active environment profile."""
    env = os.environ if environ is None else environ
    return env.get(ENV_VAR_NAME, DEFAULT_ENVIRONMENT).strip().lower() or DEFAULT_ENVIRONMENT


def profile_overrides(name: str) -> Dict[str, Any]:
    """Raw overrides for environment *name*; unknown names fall back to development."""
    if name not in PROFILES:
        logger.warning(
            "Unknown environment '%s', using '%s' profile.",
            name,
            DEFAULT_ENVIRONMENT,
        )
        name = DEFAULT_ENVIRONMENT
    return PROFILES[name]


# ── Explicit environment variable overrides ──────────────────────────────


def _parse_bool(raw: str) -> bool:
    value = raw.strip().lower()
    if value in _TRUE_VALUES:
        return True
    if value in _FALSE_VALUES:
        return False
    raise ValueError(f"expected a boolean, got '{raw}'")


def _parse_int(raw: str) -> int:
    return int(raw.strip())


# variable → (section, key, parser)
ENV_OVERRIDES: Dict[str, Tuple[str, str, Callable[[str], Any]]] = {
    "RATE_LIMIT_PER_USER": ("rateLimit", "perUser", _parse_int),
    "RATE_LIMIT_PER_GUILD": ("rateLimit", "perGuild", _parse_int),
    "RATE_LIMIT_WINDOW_MS": ("rateLimit", "windowMs", _parse_int),
    "RATE_LIMIT_SKIP_SUCCESSFUL": ("rateLimit", "skipSuccessful", _parse_bool),
    "SLOW_INTERACTION_THRESHOLD": ("logging", "slowInteractionThreshold", _parse_int),
    "LOG_LEVEL": ("logging", "logLevel", str),
    "VALIDATION_MAX_LENGTH": ("validation", "maxLength", _parse_int),
    "VALIDATION_ALLOW_EMPTY": ("validation", "allowEmptyStrings", _parse_bool),
    "VALIDATION_SANITIZE_HTML": ("validation", "sanitizeHtml", _parse_bool),
    "ERROR_RECOVERY_ENABLED": ("error", "enableRecovery", _parse_bool),
    "ERROR_RETRY_ATTEMPTS": ("error", "retryAttempts", _parse_int),
}


def env_var_overrides(environ: Optional[Mapping[str, str]] = None) -> Dict[str, Any]:
    """Collect overrides from the variables in :data:`ENV_OVERRIDES`.

    Raises :class:`ConfigurationError` when a set variable cannot be parsed.
    """
    env = os.environ if environ is None else environ
    overrides: Dict[str, Any] = {}
    for var, (section, key, parse) in ENV_OVERRIDES.items():
        raw = env.get(var)
        if raw is None or raw == "":
            continue
        try:
            value = parse(raw)
        except ValueError as exc:
            raise ConfigurationError(f"Invalid value for environment variable {var}: {exc}") from exc
        overrides.setdefault(section, {})[key] = value
        logger.debug("Config override from %s: %s.%s=%r", var, section, key, value)
    return overrides
