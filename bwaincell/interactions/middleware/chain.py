"""Core middleware chain infrastructure.

Defines the handler/middleware protocols and the chain builder that
composes middleware into a single async handler.
"""

from __future__ import annotations

from typing import Any, Awaitable, Callable, Protocol, Sequence

from bwaincell.interactions.context import InteractionContext

# ── Type protocol ────────────────────────────────────────────────────────


class NextHandler(Protocol):
    """Async callable that takes an InteractionContext."""

    async def __call__(self, ctx: InteractionContext) -> Any: ...


class InteractionMiddleware(Protocol):
    """A named step that wraps the next handler in the chain.

    ``execute`` calls ``next_handler(ctx)`` zero or one times; not calling
    it short-circuits the chain.
    """

    name: str

    async def execute(self, ctx: InteractionContext, next_handler: NextHandler) -> Any: ...


# ── Chain builder ────────────────────────────────────────────────────────


def build_chain(
    middlewares: Sequence[InteractionMiddleware],
    handler: Any,
) -> Callable[[InteractionContext], Awaitable[Any]]:
    """Compose *middlewares* around a final *handler*.

    Middleware are applied in list order: the first middleware in the list
    is the outermost wrapper (executed first on the way in, last on the
    way out).

    Args:
        middlewares: Objects conforming to :class:`InteractionMiddleware`.
        handler: The innermost handler (the command's business logic).

    Returns:
        An async callable ``(InteractionContext) -> Any``.
    """
    chain = handler
    for mw in reversed(middlewares):
        next_handler = chain

        async def _wrap(
            ctx: InteractionContext,
            _mw: Any = mw,
            _next: Any = next_handler,
        ) -> Any:
            return await _mw.execute(ctx, _next)

        chain = _wrap
    return chain
