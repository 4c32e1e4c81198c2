"""Logging configuration setup."""

import copy
import logging
import logging.config
import os
import sys
from datetime import datetime
from typing import Any, Dict, Tuple  # noqa: UP035

from bwaincell.constants import LOG_DIR

# ── Identifier redaction filter ──────────────────────────────────────────

_REDACTED = "***REDACTED***"

# Record attributes that carry Discord identifiers (set through ``extra=``).
_IDENTIFIER_ATTRS = ("user_id", "guild_id")


class IdentifierRedactionFilter(logging.Filter):
    """Logging filter that masks user and guild identifiers.

    Only structured attributes are touched; message text is left alone, so
    identifiers must travel through ``extra=`` to be redactable.
    """

    def filter(self, record: logging.LogRecord) -> bool:
        for attr in _IDENTIFIER_ATTRS:
            if getattr(record, attr, None) is not None:
                setattr(record, attr, _REDACTED)
        return True


# ── Structured formatter ─────────────────────────────────────────────────

# Extra fields appended to the line, in this order, when present.
STRUCTURED_FIELDS = (
    "interaction_id",
    "kind",
    "user_id",
    "guild_id",
    "command_name",
    "custom_id",
    "category",
    "field",
    "reason",
    "duration_ms",
)


class StructuredFormatter(logging.Formatter):
    """Formatter that appends ``key=value`` pairs for structured extras."""

    def format(self, record: logging.LogRecord) -> str:
        line = super().format(record)
        pairs = []
        for name in STRUCTURED_FIELDS:
            value = getattr(record, name, None)
            if value is None:
                continue
            if isinstance(value, float):
                value = f"{value:.1f}"
            pairs.append(f"{name}={value}")
        if pairs:
            line = f"{line} [{' '.join(pairs)}]"
        return line


BASE_LOG_CFG: Dict[str, Any] = {
    "version": 1,
    "disable_existing_loggers": False,
    "filters": {
        "redact_identifiers": {
            "()": "bwaincell.display.logging_config.IdentifierRedactionFilter",
        },
    },
    "formatters": {
        "structured_file": {
            "class": "bwaincell.display.logging_config.StructuredFormatter",
            "format": ("%(asctime)s - %(name)30s:%(lineno)-4d - " "%(levelname)-7s - %(message)s"),
            "datefmt": "%Y-%m-%d %H:%M:%S",
        },
    },
    "handlers": {
        "file_handler": {
            "class": "logging.FileHandler",
            "level": "DEBUG",
            "formatter": "structured_file",
            "filename": "temp_log_name.log",
            "encoding": "utf-8",
            "filters": [],
        },
    },
    "loggers": {
        "bwaincell": {
            "handlers": ["file_handler"],
            "propagate": False,
            "level": "INFO",
        },
        "bwaincell.interactions": {
            "handlers": ["file_handler"],
            "propagate": False,
            "level": "INFO",
        },
        "bwaincell.config": {
            "handlers": ["file_handler"],
            "propagate": False,
            "level": "INFO",
        },
    },
    "root": {
        "handlers": ["file_handler"],
        "level": "WARNING",
    },
}

_VALID_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


def build_log_config(log_lvl: str, log_fpath: str, *, log_user_ids: bool = True) -> Dict[str, Any]:
    """Return a ``dictConfig`` mapping for *log_lvl* writing to *log_fpath*.

    Pure: nothing is applied. With ``log_user_ids=False`` the file handler
    gets the :class:`IdentifierRedactionFilter`.
    """
    log_cfg: Dict[str, Any] = copy.deepcopy(BASE_LOG_CFG)
    log_cfg["handlers"]["file_handler"]["filename"] = log_fpath
    if not log_user_ids:
        log_cfg["handlers"]["file_handler"]["filters"].append("redact_identifiers")

    for name in log_cfg["loggers"]:
        log_cfg["loggers"][name]["level"] = log_lvl

    log_cfg["root"]["level"] = log_lvl if log_lvl == "DEBUG" else "WARNING"
    return log_cfg


def setup_logging(
    log_lvl_str: str,
    *,
    log_user_ids: bool = True,
    quiet: bool = False,
) -> Tuple[str, str]:
    """
    Set up the logging system.

    Uses a timestamped dynamic filename under ``logs/``.

    Args:
        log_lvl_str: The desired log level string (e.g., 'debug', 'info').
        log_user_ids: If *False*, user and guild ids are redacted.
        quiet: If *True*, suppress all ``print()`` output.

    Returns:
        A tuple of (log_file_path, validated_log_level).
    """
    log_lvl_valid = log_lvl_str.upper()
    if log_lvl_valid == "WARN":
        log_lvl_valid = "WARNING"
    if log_lvl_valid not in _VALID_LEVELS:
        if not quiet:
            print(f"Warning: invalid log level '{log_lvl_str}'. Using 'INFO'.")
        log_lvl_valid = "INFO"

    ts = datetime.now().strftime("%Y%m%d_%H%M%S")
    os.makedirs(LOG_DIR, exist_ok=True)
    log_fpath = os.path.join(LOG_DIR, f"bwaincell_{ts}_{log_lvl_valid}.log")

    log_cfg = build_log_config(log_lvl_valid, log_fpath, log_user_ids=log_user_ids)

    try:
        logging.config.dictConfig(log_cfg)
        if not quiet:
            print(
                f"Logging initialized. File log level: {log_lvl_valid}, " f"log file: {log_fpath}"
            )
    except (ValueError, TypeError, AttributeError, ImportError) as e_log_cfg:
        if not quiet:
            print(
                f"Error applying logging configuration: {e_log_cfg}",
                file=sys.stderr,
            )

    return log_fpath, log_lvl_valid
