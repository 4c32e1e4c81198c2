"""Per-interaction context threaded through the middleware chain."""

from __future__ import annotations

import enum
import time
from dataclasses import dataclass, field
from typing import Any, Dict, Optional


class InteractionKind(str, enum.Enum):
    """What sort of interaction arrived, resolved once at pipeline entry."""

    MODAL_SUBMIT = "modal_submit"
    CHAT_INPUT_COMMAND = "chat_input_command"
    BUTTON = "button"
    SELECT_MENU = "select_menu"
    AUTOCOMPLETE = "autocomplete"
    OTHER = "other"


# Accessors not every platform object implements, probed in this order.
_OPTIONAL_PROBES = (
    ("is_button", InteractionKind.BUTTON),
    ("is_string_select_menu", InteractionKind.SELECT_MENU),
    ("is_autocomplete", InteractionKind.AUTOCOMPLETE),
)


def resolve_kind(interaction: Any) -> InteractionKind:
    """Classify *interaction* using its ``is_*`` accessors."""
    if interaction.is_modal_submit():
        return InteractionKind.MODAL_SUBMIT
    if interaction.is_chat_input_command():
        return InteractionKind.CHAT_INPUT_COMMAND
    for accessor, kind in _OPTIONAL_PROBES:
        probe = getattr(interaction, accessor, None)
        if callable(probe) and probe():
            return kind
    return InteractionKind.OTHER


def _optional_str(value: Any) -> Optional[str]:
    return None if value is None else str(value)


@dataclass
class InteractionContext:
    """Per-interaction metadata bag threaded through the middleware chain.

    Attributes:
        interaction: The platform interaction object.
        user_id: Id of the invoking user.
        guild_id: Id of the guild, ``None`` in direct messages.
        kind: Resolved :class:`InteractionKind`.
        interaction_id: Platform id of the interaction, when available.
        command_name: Slash command name, when available.
        custom_id: Component or modal custom id, when available.
        start_time: High-resolution monotonic timestamp at pipeline entry.
        metadata: Middleware-namespaced data. Keys in use:
            ``"validation"``, ``"rate_limit"``, ``"logging"``, ``"error"``
            and ``"rejected_by"`` (name of the middleware that answered
            without calling the next handler).
        error: Set by the error middleware when an exception was caught.
    """

    interaction: Any
    user_id: str
    guild_id: Optional[str] = None
    kind: InteractionKind = InteractionKind.OTHER
    interaction_id: Optional[str] = None
    command_name: Optional[str] = None
    custom_id: Optional[str] = None
    start_time: float = field(default_factory=time.monotonic)
    metadata: Dict[str, Any] = field(default_factory=dict)
    error: Optional[Exception] = None

    @classmethod
    def from_interaction(cls, interaction: Any) -> "InteractionContext":
        """Build a context, reading identity and kind once."""
        return cls(
            interaction=interaction,
            user_id=str(interaction.user.id),
            guild_id=_optional_str(getattr(interaction, "guild_id", None)),
            kind=resolve_kind(interaction),
            interaction_id=_optional_str(getattr(interaction, "id", None)),
            command_name=_optional_str(getattr(interaction, "command_name", None)),
            custom_id=_optional_str(getattr(interaction, "custom_id", None)),
        )

    @property
    def elapsed_ms(self) -> float:
        """Milliseconds since the interaction entered the pipeline."""
        return (time.monotonic() - self.start_time) * 1000.0

    @property
    def is_acknowledged(self) -> bool:
        """Whether the interaction has already been deferred or replied to.

        Read live from the platform object on every access.
        """
        return bool(self.interaction.deferred or self.interaction.replied)

    @property
    def in_guild(self) -> bool:
        return self.guild_id is not None

    def log_extra(self) -> Dict[str, Any]:
        """Structured logging fields identifying this interaction."""
        return {
            "interaction_id": self.interaction_id,
            "kind": self.kind.value,
            "user_id": self.user_id,
            "guild_id": self.guild_id,
            "command_name": self.command_name,
            "custom_id": self.custom_id,
        }
