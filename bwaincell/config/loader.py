"""Configuration loading and validation.

Builds the raw configuration from four layers (lowest precedence first):

1. built-in model defaults,
2. the environment profile selected by ``BWAINCELL_ENV``,
3. an optional YAML file (``${ENV_VAR}`` placeholders expanded),
4. explicit environment variables such as ``RATE_LIMIT_PER_USER``,

and validates the result against :class:`MiddlewareConfig`. Any problem
surfaces as a single :class:`ConfigurationError` at startup.
"""

import logging
import os
from typing import Any, Dict, List, Mapping, Optional

import yaml
from pydantic import ValidationError

from bwaincell.config.environment import (
    current_environment,
    deep_merge,
    env_var_overrides,
    expand_env_vars,
    normalise_keys,
    profile_overrides,
)
from bwaincell.config.schema import MiddlewareConfig
from bwaincell.constants import CONFIG_ENV_VAR
from bwaincell.errors import ConfigurationError

logger = logging.getLogger(__name__)

# Recognised config file extensions.
_YAML_EXTS = frozenset({".yaml", ".yml"})


def _read_config_file(cfg_fpath: str) -> Dict[str, Any]:
    """Read and parse a YAML config file from *cfg_fpath*.

    Raises :class:`ConfigurationError` on I/O or parse errors.
    """
    ext = os.path.splitext(cfg_fpath)[1].lower()
    if ext not in _YAML_EXTS:
        raise ConfigurationError(
            f"Unsupported config file extension '{ext}'. "
            "Only YAML files (.yaml, .yml) are supported."
        )

    if not os.path.exists(cfg_fpath):
        raise ConfigurationError(f"Configuration file does not exist: {cfg_fpath}")

    try:
        with open(cfg_fpath, "r", encoding="utf-8") as f:
            raw_data = yaml.safe_load(f)
    except (OSError, yaml.YAMLError) as exc:
        raise ConfigurationError(f"Error reading configuration file: {cfg_fpath}\n  {exc}") from exc

    if raw_data is None:
        return {}
    if not isinstance(raw_data, dict):
        raise ConfigurationError(
            "Top-level configuration content must be a YAML mapping (dictionary)."
        )
    return raw_data


def _format_validation_errors(exc: ValidationError) -> str:
    """Format Pydantic validation errors into a readable multi-line string."""
    lines: List[str] = []
    for err in exc.errors():
        loc = " → ".join(str(part) for part in err["loc"])
        lines.append(f"  • {loc}: {err['msg']}")
    return "\n".join(lines)


def validate_config(raw_data: Dict[str, Any]) -> MiddlewareConfig:
    """Validate a raw mapping, collecting every error into one exception."""
    try:
        return MiddlewareConfig.model_validate(raw_data)
    except ValidationError as exc:
        error_summary = _format_validation_errors(exc)
        raise ConfigurationError(
            f"Configuration validation failed ({len(exc.errors())} error(s)):\n" f"{error_summary}"
        ) from exc


# ── Public API ───────────────────────────────────────────────────────────


def load_middleware_config(
    cfg_fpath: Optional[str] = None,
    *,
    environment: Optional[str] = None,
    environ: Optional[Mapping[str, str]] = None,
) -> MiddlewareConfig:
    """Load, merge, validate, and return the middleware configuration.

    Args:
        cfg_fpath: Optional YAML file. When ``None`` the ``BWAINCELL_CONFIG``
            variable is consulted; no file at all is fine.
        environment: Profile name; defaults to ``BWAINCELL_ENV``.
        environ: Environment mapping (defaults to ``os.environ``).

    Raises:
        ConfigurationError: On file I/O errors, parse errors, bad
            environment variables or validation failures.
    """
    env = os.environ if environ is None else environ
    env_name = environment or current_environment(env)

    raw_data: Dict[str, Any] = dict(profile_overrides(env_name))

    if cfg_fpath is None:
        cfg_fpath = env.get(CONFIG_ENV_VAR) or None
    if cfg_fpath is not None:
        logger.debug("Loading configuration file: %s", cfg_fpath)
        file_data = normalise_keys(expand_env_vars(_read_config_file(cfg_fpath), env))
        raw_data = deep_merge(raw_data, file_data)

    raw_data = deep_merge(raw_data, env_var_overrides(env))

    config = validate_config(raw_data)
    logger.info(
        "Middleware configuration loaded (env=%s, file=%s).",
        env_name,
        cfg_fpath or "<none>",
    )
    return config


def dump_config(config: MiddlewareConfig) -> str:
    """Render *config* as YAML using the camelCase file keys."""
    data = config.model_dump(mode="json", by_alias=True)
    return yaml.safe_dump(data, sort_keys=False, allow_unicode=True)
