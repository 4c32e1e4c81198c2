"""Error middleware: exception safety net for the whole chain.

Catches any exception raised by downstream middleware or the command
itself, answers the user exactly once with an ephemeral message, and
never re-raises, so the platform is not left with an unacknowledged
interaction.
"""

from __future__ import annotations

import enum
import logging
from datetime import datetime, timezone
from typing import Any, Dict, Optional, Tuple

from bwaincell.config.schema import ErrorSettings
from bwaincell.errors import InteractionRejection, InteractionValidationError, RateLimitExceeded
from bwaincell.interactions.context import InteractionContext
from bwaincell.interactions.middleware.chain import NextHandler
from bwaincell.interactions.responses import send_ephemeral

logger = logging.getLogger(__name__)


class ErrorCategory(str, enum.Enum):
    DATABASE = "DATABASE_ERROR"
    PERMISSION = "PERMISSION_ERROR"
    NOT_FOUND = "NOT_FOUND"
    VALIDATION = "VALIDATION_ERROR"
    RATE_LIMIT = "RATE_LIMIT"
    TIMEOUT = "TIMEOUT"
    UNKNOWN = "UNKNOWN"


ERROR_MESSAGES: Dict[ErrorCategory, str] = {
    ErrorCategory.DATABASE: "❌ A database error occurred. Please try again later.",
    ErrorCategory.PERMISSION: "❌ You don't have permission to perform this action.",
    ErrorCategory.NOT_FOUND: "❌ The requested item could not be found.",
    ErrorCategory.VALIDATION: "❌ Invalid input provided. Please check your input.",
    ErrorCategory.RATE_LIMIT: "⏱️ You're doing that too fast. Please slow down.",
    ErrorCategory.TIMEOUT: "⏰ The operation timed out. Please try again.",
    ErrorCategory.UNKNOWN: "❌ An error occurred while processing your request. Please try again.",
}

# Checked in order against the lower-cased exception message.
_KEYWORDS: Tuple[Tuple[ErrorCategory, Tuple[str, ...]], ...] = (
    (ErrorCategory.DATABASE, ("database", "sqlalchemy", "sequelize")),
    (ErrorCategory.PERMISSION, ("permission", "forbidden")),
    (ErrorCategory.NOT_FOUND, ("not found", "does not exist")),
    (ErrorCategory.VALIDATION, ("invalid", "validation")),
    (ErrorCategory.RATE_LIMIT, ("rate limit", "too fast")),
    (ErrorCategory.TIMEOUT, ("timeout", "timed out")),
)

_NO_RECOVERY = frozenset({ErrorCategory.VALIDATION, ErrorCategory.PERMISSION, ErrorCategory.RATE_LIMIT})

_RECOVERY_LABELS: Dict[ErrorCategory, str] = {
    ErrorCategory.DATABASE: "database_alerted",
    ErrorCategory.TIMEOUT: "timeout_extended",
    ErrorCategory.NOT_FOUND: "not_found_logged",
}


def classify_error(exc: BaseException) -> ErrorCategory:
    """Map *exc* onto an :class:`ErrorCategory`, by type first, then message."""
    if isinstance(exc, InteractionValidationError):
        return ErrorCategory.VALIDATION
    if isinstance(exc, RateLimitExceeded):
        return ErrorCategory.RATE_LIMIT
    if isinstance(exc, TimeoutError):
        return ErrorCategory.TIMEOUT
    if isinstance(exc, PermissionError):
        return ErrorCategory.PERMISSION

    message = str(exc).lower()
    for category, keywords in _KEYWORDS:
        if any(word in message for word in keywords):
            return category
    return ErrorCategory.UNKNOWN


def user_message_for(
    exc: BaseException,
    category: ErrorCategory,
    *,
    user_friendly: bool = True,
) -> str:
    """Text shown to the user; never the raw exception message."""
    if isinstance(exc, InteractionRejection):
        return exc.user_message
    if not user_friendly:
        return ERROR_MESSAGES[ErrorCategory.UNKNOWN]
    return ERROR_MESSAGES[category]


class ErrorMiddleware:
    """Wrap the chain so every interaction ends with exactly one outcome."""

    name = "error"

    def __init__(self, settings: Optional[ErrorSettings] = None) -> None:
        self._settings = settings or ErrorSettings()

    async def execute(self, ctx: InteractionContext, next_handler: NextHandler) -> Any:
        try:
            return await next_handler(ctx)
        except Exception as exc:
            ctx.error = exc
            category = classify_error(exc)
            logger.error(
                "Interaction error caught (%s): %s",
                category.value,
                exc,
                exc_info=True,
                extra={
                    **ctx.log_extra(),
                    "event": "Interaction error caught",
                    "category": category.value,
                },
            )

            message = user_message_for(
                exc,
                category,
                user_friendly=self._settings.user_friendly_messages,
            )
            await send_ephemeral(ctx, message)

            ctx.metadata["error"] = {
                "type": category.value,
                "message": str(exc),
                "timestamp": datetime.now(timezone.utc).isoformat(),
                "recovery": self._recover(ctx, category),
            }
            return None

    def _recover(self, ctx: InteractionContext, category: ErrorCategory) -> Optional[str]:
        if not self._settings.enable_recovery or category in _NO_RECOVERY:
            return None

        logger.info(
            "Attempting error recovery for %s",
            category.value,
            extra={**ctx.log_extra(), "event": "Attempting error recovery", "category": category.value},
        )
        if category is ErrorCategory.DATABASE and self._settings.report_critical_errors:
            logger.critical(
                "Database error requires attention",
                extra={**ctx.log_extra(), "event": "Database error requires attention"},
            )
        return _RECOVERY_LABELS.get(category, "logged_for_investigation")
