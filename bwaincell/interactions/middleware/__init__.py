"""Middleware chain for interaction processing.

Each middleware wraps the next handler and may inspect the interaction,
answer it directly, or pass it on to the command's business logic.

Public API
----------
- :class:`MiddlewarePipeline` / :func:`build_default_pipeline` - Ordered registry and composer
- :data:`NextHandler` / :data:`InteractionMiddleware` - Async protocols
- :func:`build_chain` - Compose a list of middleware into a single handler
- :class:`ErrorMiddleware` - Exception safety net
- :class:`LoggingMiddleware` - Timing and outcome logging
- :class:`RateLimitMiddleware` / :class:`RateLimitStore` - Fixed-window quotas
- :class:`ValidationMiddleware` - Guild-only policy and input checks
"""

from bwaincell.interactions.middleware.chain import (
    InteractionMiddleware,
    NextHandler,
    build_chain,
)
from bwaincell.interactions.middleware.interaction_log import LoggingMiddleware
from bwaincell.interactions.middleware.pipeline import MiddlewarePipeline, build_default_pipeline
from bwaincell.interactions.middleware.rate_limit import (
    RateLimitMiddleware,
    RateLimitStore,
    resolve_category,
)
from bwaincell.interactions.middleware.recovery import ErrorCategory, ErrorMiddleware, classify_error
from bwaincell.interactions.middleware.validation import ValidationMiddleware

__all__ = [
    "ErrorCategory",
    "ErrorMiddleware",
    "InteractionMiddleware",
    "LoggingMiddleware",
    "MiddlewarePipeline",
    "NextHandler",
    "RateLimitMiddleware",
    "RateLimitStore",
    "ValidationMiddleware",
    "build_chain",
    "build_default_pipeline",
    "classify_error",
    "resolve_category",
]
