"""Validation middleware: guild-only policy and unsafe input rejection.

Inputs are accepted or rejected, never rewritten. The decision depends
only on the current field values and the acknowledgment state, so
replaying an interaction yields the same outcome.
"""

from __future__ import annotations

import logging
import re
from datetime import datetime
from typing import Any, List, Optional, Tuple

from bwaincell.config.schema import ValidationSettings
from bwaincell.errors import GuildOnlyViolation, InteractionValidationError
from bwaincell.interactions.context import InteractionContext, InteractionKind
from bwaincell.interactions.middleware.chain import NextHandler
from bwaincell.interactions.middleware.patterns import first_match
from bwaincell.interactions.responses import send_ephemeral

logger = logging.getLogger(__name__)

# Text inputs read from modal submissions.
MODAL_FIELDS = ("task_description", "task_due_date", "list_item")

# String options read from slash commands.
COMMAND_OPTIONS = ("description", "due_date", "list_name", "item", "message", "title", "content")

DATE_FIELDS = frozenset({"task_due_date", "due_date"})

_DUE_DATE_RE = re.compile(r"\d{4}-\d{2}-\d{2}( \d{2}:\d{2})?", re.ASCII)


def is_valid_due_date(value: str) -> bool:
    """``YYYY-MM-DD`` or ``YYYY-MM-DD HH:MM`` naming a real date and time."""
    m = _DUE_DATE_RE.fullmatch(value)
    if m is None:
        return False
    fmt = "%Y-%m-%d %H:%M" if m.group(1) else "%Y-%m-%d"
    try:
        datetime.strptime(value, fmt)
    except ValueError:
        return False
    return True


def extract_fields(ctx: InteractionContext) -> List[Tuple[str, str]]:
    """Collect ``(field, value)`` pairs for the known inputs of *ctx*."""
    interaction = ctx.interaction
    fields: List[Tuple[str, str]] = []
    if ctx.kind is InteractionKind.MODAL_SUBMIT:
        for field_id in MODAL_FIELDS:
            try:
                value = interaction.fields.get_text_input_value(field_id)
            except LookupError:
                value = ""
            fields.append((field_id, value or ""))
    elif ctx.kind is InteractionKind.CHAT_INPUT_COMMAND:
        for option in COMMAND_OPTIONS:
            value = interaction.options.get_string(option)
            if value is not None:
                fields.append((option, value))
    return fields


class ValidationMiddleware:
    """Reject out-of-guild components and malformed or hostile text."""

    name = "validation"

    def __init__(self, settings: Optional[ValidationSettings] = None) -> None:
        self._settings = settings or ValidationSettings()
        self._custom_patterns = [
            (pattern_name, re.compile(regex))
            for pattern_name, regex in self._settings.custom_patterns.items()
        ]

    def check_value(self, field: str, value: str) -> None:
        """Raise :class:`InteractionValidationError` if *value* fails a check."""
        if value == "":
            return
        if not value.strip():
            # A blank due date means "no due date".
            if self._settings.allow_empty_strings or field in DATE_FIELDS:
                return
            raise InteractionValidationError(field, "empty")

        if len(value) > self._settings.limit_for(field):
            raise InteractionValidationError(field, "max_length")

        pattern = first_match(value, include_script=self._settings.sanitize_html)
        if pattern is not None:
            raise InteractionValidationError(field, pattern.name)

        for pattern_name, regex in self._custom_patterns:
            if regex.search(value):
                raise InteractionValidationError(field, f"custom:{pattern_name}")

        if field in DATE_FIELDS and not is_valid_due_date(value):
            raise InteractionValidationError(field, "date_format")

    async def execute(self, ctx: InteractionContext, next_handler: NextHandler) -> Any:
        # Slash commands check guild membership per command downstream.
        if not ctx.in_guild and ctx.kind is not InteractionKind.CHAT_INPUT_COMMAND:
            ctx.metadata["rejected_by"] = self.name
            logger.warning(
                "Guild validation failed",
                extra={**ctx.log_extra(), "event": "Guild validation failed"},
            )
            if not ctx.is_acknowledged:
                await send_ephemeral(ctx, GuildOnlyViolation.user_message)
            return None

        fields = extract_fields(ctx)
        try:
            for field, value in fields:
                self.check_value(field, value)
        except InteractionValidationError as exc:
            ctx.metadata["validation"] = {
                "passed": False,
                "fields_checked": len(fields),
                "reason": exc.reason,
            }
            ctx.metadata["rejected_by"] = self.name
            logger.warning(
                "Validation error",
                extra={
                    **ctx.log_extra(),
                    "event": "Validation error",
                    "field": exc.field,
                    "reason": exc.reason,
                },
            )
            await send_ephemeral(ctx, exc.user_message)
            return None

        ctx.metadata["validation"] = {
            "passed": True,
            "fields_checked": len(fields),
            "reason": None,
        }
        return await next_handler(ctx)
