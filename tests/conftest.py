"""Shared fixtures: a stand-in for a platform interaction object."""

from __future__ import annotations

from types import SimpleNamespace
from typing import Any, Dict, Optional
from unittest.mock import AsyncMock

import pytest

from bwaincell.interactions.context import InteractionContext


class FakeFields:
    def __init__(self, values: Dict[str, str]) -> None:
        self._values = values

    def get_text_input_value(self, field_id: str) -> str:
        return self._values[field_id]


class FakeOptions:
    def __init__(self, values: Dict[str, str]) -> None:
        self._values = values

    def get_string(self, name: str) -> Optional[str]:
        return self._values.get(name)


class FakeInteraction:
    """Implements the interaction capability set used by the middleware.

    ``reply`` / ``follow_up`` / ``edit_reply`` are AsyncMocks that also
    flip ``replied`` like the platform does.
    """

    def __init__(
        self,
        *,
        kind: str = "command",
        user_id: str = "user-1",
        guild_id: Optional[str] = "guild-1",
        fields: Optional[Dict[str, str]] = None,
        options: Optional[Dict[str, str]] = None,
        command_name: Optional[str] = None,
        custom_id: Optional[str] = None,
        deferred: bool = False,
        replied: bool = False,
        interaction_id: str = "interaction-1",
    ) -> None:
        self._kind = kind
        self.id = interaction_id
        self.user = SimpleNamespace(id=user_id)
        self.guild_id = guild_id
        self.fields = FakeFields(fields or {})
        self.options = FakeOptions(options or {})
        if command_name is None and kind == "command":
            command_name = "task"
        self.command_name = command_name
        self.custom_id = custom_id
        self.deferred = deferred
        self.replied = replied

        self.reply = AsyncMock(side_effect=self._mark_replied)
        self.follow_up = AsyncMock(side_effect=self._mark_replied)
        self.edit_reply = AsyncMock(side_effect=self._mark_replied)

    async def _mark_replied(self, payload: Dict[str, Any]) -> None:
        self.replied = True

    def is_modal_submit(self) -> bool:
        return self._kind == "modal"

    def is_chat_input_command(self) -> bool:
        return self._kind == "command"

    def is_button(self) -> bool:
        return self._kind == "button"

    def is_string_select_menu(self) -> bool:
        return self._kind == "select"

    def is_autocomplete(self) -> bool:
        return self._kind == "autocomplete"


def _sent_contents(interaction: FakeInteraction) -> list:
    calls = (
        interaction.reply.call_args_list
        + interaction.follow_up.call_args_list
        + interaction.edit_reply.call_args_list
    )
    return [c.args[0]["content"] for c in calls]


@pytest.fixture
def sent_contents():
    """Contents of every message sent through any response verb."""
    return _sent_contents


@pytest.fixture
def make_interaction():
    def _make(**kwargs: Any) -> FakeInteraction:
        return FakeInteraction(**kwargs)

    return _make


@pytest.fixture
def make_ctx(make_interaction):
    def _make(**kwargs: Any) -> InteractionContext:
        return InteractionContext.from_interaction(make_interaction(**kwargs))

    return _make


@pytest.fixture
def terminal() -> AsyncMock:
    """Stand-in for the command's business logic."""
    return AsyncMock(return_value="handled")
