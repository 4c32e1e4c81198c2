"""Audit event models.

One event per interaction: who invoked it, what was invoked, and how it
ended (success, rejected by a middleware, or failed downstream).
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Dict, Literal, Optional
from uuid import uuid4

from pydantic import BaseModel, Field


class AuditSource(BaseModel):
    """Identity of the invoking user."""

    user_id: Optional[str] = None
    guild_id: Optional[str] = None


class AuditTarget(BaseModel):
    """What the interaction addressed."""

    kind: str
    command_name: Optional[str] = None
    custom_id: Optional[str] = None


class AuditOutcome(BaseModel):
    """Result metrics."""

    status: Literal["success", "rejected", "error"] = "success"
    latency_ms: float = 0.0
    rejected_by: Optional[str] = None
    error: Optional[str] = None
    error_type: Optional[str] = None


class InteractionAuditEvent(BaseModel):
    """A single structured audit record for one interaction."""

    timestamp: str = Field(default_factory=lambda: datetime.now(timezone.utc).isoformat())
    event_type: str = "interaction"
    event_id: str = Field(default_factory=lambda: str(uuid4()))
    source: AuditSource = Field(default_factory=AuditSource)
    target: AuditTarget
    outcome: AuditOutcome = Field(default_factory=AuditOutcome)
    metadata: Dict[str, Any] = Field(default_factory=dict)
