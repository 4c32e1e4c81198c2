"""Structured audit event logger.

Writes JSON-line audit events to a dedicated file with rotation, through
its own ``bwaincell.audit.events`` logger so they never mix with the
application log.
"""

from __future__ import annotations

import logging
import os
from logging.handlers import RotatingFileHandler
from typing import Optional

from bwaincell.audit.models import InteractionAuditEvent
from bwaincell.config.schema import AuditSettings

logger = logging.getLogger(__name__)

AUDIT_LEVEL = 35  # between WARNING (30) and ERROR (40)
logging.addLevelName(AUDIT_LEVEL, "AUDIT")

AUDIT_EVENTS_LOGGER = "bwaincell.audit.events"

# ── Defaults ─────────────────────────────────────────────────────────────

DEFAULT_AUDIT_FILE = os.path.join("logs", "interactions.jsonl")
DEFAULT_MAX_BYTES = 100 * 1024 * 1024  # 100 MB
DEFAULT_BACKUP_COUNT = 5


class AuditLogger:
    """JSON-line audit event writer with file rotation.

    Parameters
    ----------
    filepath:
        Path of the audit log file; parent directories are created.
    max_bytes:
        Maximum file size before rotation.
    backup_count:
        Number of rotated files to keep.
    enabled:
        Whether to actually write events.
    """

    def __init__(
        self,
        *,
        filepath: str = DEFAULT_AUDIT_FILE,
        max_bytes: int = DEFAULT_MAX_BYTES,
        backup_count: int = DEFAULT_BACKUP_COUNT,
        enabled: bool = True,
    ) -> None:
        self._enabled = enabled
        self._file_handler: Optional[RotatingFileHandler] = None
        self._audit_logger = logging.getLogger(AUDIT_EVENTS_LOGGER)
        self._audit_logger.setLevel(AUDIT_LEVEL)
        self._audit_logger.propagate = False

        if enabled:
            log_dir = os.path.dirname(filepath)
            if log_dir:
                os.makedirs(log_dir, exist_ok=True)
            self._file_handler = RotatingFileHandler(
                filepath,
                maxBytes=max_bytes,
                backupCount=backup_count,
                encoding="utf-8",
            )
            self._file_handler.setLevel(AUDIT_LEVEL)
            self._file_handler.setFormatter(logging.Formatter("%(message)s"))
            self._audit_logger.addHandler(self._file_handler)
            logger.info(
                "Audit logger initialized: %s (max %d MB, %d backups)",
                filepath,
                max_bytes // (1024 * 1024),
                backup_count,
            )

    @classmethod
    def from_settings(cls, settings: AuditSettings) -> "AuditLogger":
        return cls(
            filepath=settings.file,
            max_bytes=settings.max_size_mb * 1024 * 1024,
            backup_count=settings.backup_count,
            enabled=settings.enabled,
        )

    @property
    def enabled(self) -> bool:
        return self._enabled

    def emit(self, event: InteractionAuditEvent) -> None:
        """Write an audit event as a JSON line."""
        if not self._enabled:
            return
        try:
            line = event.model_dump_json()
            self._audit_logger.log(AUDIT_LEVEL, line)
        except Exception:
            logger.exception("Failed to emit audit event")

    def close(self) -> None:
        """Close the file handler."""
        if self._file_handler is not None:
            self._file_handler.close()
            self._audit_logger.removeHandler(self._file_handler)
            self._file_handler = None
