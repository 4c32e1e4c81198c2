"""Middleware pipeline: ordered registry plus composition entry point."""

from __future__ import annotations

import logging
from typing import Any, List, Optional, Tuple

from bwaincell.audit.logger import AuditLogger
from bwaincell.config.schema import MiddlewareConfig
from bwaincell.errors import DuplicateMiddlewareError
from bwaincell.interactions.context import InteractionContext
from bwaincell.interactions.middleware.chain import InteractionMiddleware, NextHandler, build_chain
from bwaincell.interactions.middleware.interaction_log import LoggingMiddleware
from bwaincell.interactions.middleware.rate_limit import RateLimitMiddleware, RateLimitStore
from bwaincell.interactions.middleware.recovery import ErrorMiddleware
from bwaincell.interactions.middleware.validation import ValidationMiddleware

logger = logging.getLogger(__name__)


class MiddlewarePipeline:
    """Ordered list of middleware; the first registered is the outermost.

    The chain is composed on every dispatch, so the pipeline itself holds
    no per-interaction state.
    """

    def __init__(self) -> None:
        self._middlewares: List[InteractionMiddleware] = []

    def register(self, middleware: InteractionMiddleware) -> "MiddlewarePipeline":
        """Append *middleware*; re-registering the same instance is a no-op.

        Raises:
            DuplicateMiddlewareError: A different middleware already uses
                the same name.
        """
        for existing in self._middlewares:
            if existing is middleware:
                return self
            if existing.name == middleware.name:
                raise DuplicateMiddlewareError(middleware.name)
        self._middlewares.append(middleware)
        logger.debug("Middleware registered: %s", middleware.name)
        return self

    def remove(self, name: str) -> bool:
        """Drop the middleware called *name*; ``False`` if none was registered."""
        for idx, existing in enumerate(self._middlewares):
            if existing.name == name:
                del self._middlewares[idx]
                logger.debug("Middleware removed: %s", name)
                return True
        return False

    def clear(self) -> None:
        self._middlewares.clear()

    @property
    def names(self) -> Tuple[str, ...]:
        return tuple(mw.name for mw in self._middlewares)

    @property
    def middlewares(self) -> Tuple[InteractionMiddleware, ...]:
        return tuple(self._middlewares)

    def __len__(self) -> int:
        return len(self._middlewares)

    async def dispatch(self, ctx: InteractionContext, terminal: NextHandler) -> Any:
        """Run *ctx* through every middleware, ending in *terminal*."""
        chain = build_chain(list(self._middlewares), terminal)
        return await chain(ctx)

    async def run(self, interaction: Any, terminal: NextHandler) -> Any:
        """Create a context for *interaction* and dispatch it.

        An exception escaping the chain (no error middleware registered)
        is logged and re-raised.
        """
        ctx = InteractionContext.from_interaction(interaction)
        try:
            return await self.dispatch(ctx, terminal)
        except Exception:
            logger.error(
                "Middleware chain error",
                exc_info=True,
                extra={**ctx.log_extra(), "event": "Middleware chain error"},
            )
            raise


def build_default_pipeline(
    config: Optional[MiddlewareConfig] = None,
    *,
    store: Optional[RateLimitStore] = None,
    audit_logger: Optional[AuditLogger] = None,
) -> MiddlewarePipeline:
    """Pipeline in the standard order: Error → Logging → RateLimit → Validation."""
    config = config or MiddlewareConfig()
    pipeline = MiddlewarePipeline()
    pipeline.register(ErrorMiddleware(config.error))
    pipeline.register(LoggingMiddleware(config.logging, audit_logger=audit_logger))
    pipeline.register(RateLimitMiddleware(config.rate_limit, store=store))
    pipeline.register(ValidationMiddleware(config.validation))
    logger.info("Interaction pipeline ready: %s", " → ".join(pipeline.names))
    return pipeline
