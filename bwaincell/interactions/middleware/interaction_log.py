"""Logging middleware: timing and outcome records for every interaction.

Slot order in the default chain: **Error → LOGGING → RateLimit → Validation**.

A pure observer: it never responds to the interaction and re-raises
whatever the downstream chain raises.
"""

from __future__ import annotations

import logging
from typing import Any, Optional

from bwaincell.audit.logger import AuditLogger
from bwaincell.audit.models import AuditOutcome, AuditSource, AuditTarget, InteractionAuditEvent
from bwaincell.config.schema import LoggingSettings
from bwaincell.interactions.context import InteractionContext
from bwaincell.interactions.middleware.chain import NextHandler

logger = logging.getLogger(__name__)


class LoggingMiddleware:
    """Log start, completion, slowness and failure of each interaction.

    Parameters
    ----------
    settings:
        Logging settings; ``enabled=False`` turns this into a pass-through.
    audit_logger:
        Optional :class:`AuditLogger` receiving one event per interaction.
    """

    name = "logging"

    def __init__(
        self,
        settings: Optional[LoggingSettings] = None,
        audit_logger: Optional[AuditLogger] = None,
    ) -> None:
        self._settings = settings or LoggingSettings()
        self._audit_logger = audit_logger

    async def execute(self, ctx: InteractionContext, next_handler: NextHandler) -> Any:
        if not self._settings.enabled:
            return await next_handler(ctx)

        logger.info(
            "Interaction started",
            extra={**ctx.log_extra(), "event": "Interaction started"},
        )

        try:
            result = await next_handler(ctx)
        except Exception as exc:
            duration_ms = self._record_timing(ctx)
            logger.error(
                "Interaction failed: %s",
                exc,
                exc_info=True,
                extra={**ctx.log_extra(), "event": "Interaction failed", "duration_ms": duration_ms},
            )
            self._emit_audit(ctx, duration_ms, "error", exc)
            raise

        duration_ms = self._record_timing(ctx)
        logger.info(
            "Interaction completed in %.1f ms",
            duration_ms,
            extra={**ctx.log_extra(), "event": "Interaction completed", "duration_ms": duration_ms},
        )

        status = "rejected" if ctx.metadata.get("rejected_by") else "success"
        self._emit_audit(ctx, duration_ms, status, None)
        return result

    def _record_timing(self, ctx: InteractionContext) -> float:
        """Store duration metadata and warn when the slow threshold is exceeded."""
        duration_ms = ctx.elapsed_ms
        slow = self._is_slow(duration_ms)
        ctx.metadata["logging"] = {"duration_ms": duration_ms, "slow": slow}
        if slow:
            logger.warning(
                "Slow interaction detected (%.1f ms > %d ms)",
                duration_ms,
                self._settings.slow_interaction_threshold,
                extra={
                    **ctx.log_extra(),
                    "event": "Slow interaction detected",
                    "duration_ms": duration_ms,
                },
            )
        return duration_ms

    def _is_slow(self, duration_ms: float) -> bool:
        return duration_ms > self._settings.slow_interaction_threshold

    def _emit_audit(
        self,
        ctx: InteractionContext,
        duration_ms: float,
        status: str,
        exc: Optional[Exception],
    ) -> None:
        if self._audit_logger is None:
            return
        source = AuditSource()
        if self._settings.log_user_ids:
            source = AuditSource(user_id=ctx.user_id, guild_id=ctx.guild_id)
        event = InteractionAuditEvent(
            source=source,
            target=AuditTarget(
                kind=ctx.kind.value,
                command_name=ctx.command_name,
                custom_id=ctx.custom_id,
            ),
            outcome=AuditOutcome(
                status=status,
                latency_ms=round(duration_ms, 2),
                rejected_by=ctx.metadata.get("rejected_by"),
                error=str(exc) if exc else None,
                error_type=type(exc).__name__ if exc else None,
            ),
        )
        if ctx.interaction_id:
            event.event_id = ctx.interaction_id
        self._audit_logger.emit(event)
