"""Audit subsystem: one structured event per handled interaction.

Public API
----------
- :class:`AuditLogger` - JSON-line file writer with rotation
- :class:`InteractionAuditEvent` - Pydantic model for a single audit record
- :class:`AuditSource` / :class:`AuditTarget` / :class:`AuditOutcome` - Sub-models
"""

from bwaincell.audit.logger import AUDIT_LEVEL, AuditLogger
from bwaincell.audit.models import (
    AuditOutcome,
    AuditSource,
    AuditTarget,
    InteractionAuditEvent,
)

__all__ = [
    "AUDIT_LEVEL",
    "AuditLogger",
    "AuditOutcome",
    "AuditSource",
    "AuditTarget",
    "InteractionAuditEvent",
]
