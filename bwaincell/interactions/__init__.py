"""Inbound interaction handling: per-interaction context, responses and middleware."""

from bwaincell.interactions.context import InteractionContext, InteractionKind, resolve_kind

__all__ = [
    "InteractionContext",
    "InteractionKind",
    "resolve_kind",
]
