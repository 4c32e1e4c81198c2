"""Ephemeral responses that respect the interaction's acknowledgment state."""

from __future__ import annotations

import logging
from typing import Any, Dict

from bwaincell.constants import UNKNOWN_INTERACTION_CODE
from bwaincell.errors import ResponseDeliveryError
from bwaincell.interactions.context import InteractionContext

logger = logging.getLogger(__name__)


def ephemeral(content: str) -> Dict[str, Any]:
    """Reply payload visible only to the invoking user."""
    return {"content": content, "ephemeral": True}


def response_verb(ctx: InteractionContext) -> str:
    """``follow_up`` once acknowledged, otherwise ``reply``."""
    return "follow_up" if ctx.is_acknowledged else "reply"


async def send_ephemeral(ctx: InteractionContext, content: str) -> bool:
    """Send *content* ephemerally, choosing the verb from the ack state.

    Delivery failures are logged and swallowed; there is no retry.
    Returns ``True`` when the platform accepted the message.
    """
    verb = response_verb(ctx)
    try:
        await getattr(ctx.interaction, verb)(ephemeral(content))
    except Exception as exc:
        expired = getattr(exc, "code", None) == UNKNOWN_INTERACTION_CODE
        failure = ResponseDeliveryError(verb, exc, expired=expired)
        logger.error(
            "Failed to send response to user: %s",
            failure,
            extra={**ctx.log_extra(), "event": "Failed to send response to user"},
        )
        return False
    return True
