"""Rate-limit middleware and its shared fixed-window counter store.

Windows are fixed, not sliding: a burst straddling a window boundary may
reach up to twice the nominal rate.
"""

from __future__ import annotations

import logging
import threading
import time
from dataclasses import dataclass
from typing import Any, Callable, Dict, Optional, Sequence, Tuple

from bwaincell.config.schema import RateLimitSettings
from bwaincell.constants import APPROACHING_LIMIT_REMAINING, RATE_LIMIT_CLEANUP_INTERVAL_SECONDS
from bwaincell.errors import RateLimitExceeded
from bwaincell.interactions.context import InteractionContext, InteractionKind
from bwaincell.interactions.middleware.chain import NextHandler
from bwaincell.interactions.responses import send_ephemeral

logger = logging.getLogger(__name__)

# ── Counter store ────────────────────────────────────────────────────────


@dataclass
class WindowCounter:
    """Requests counted in the window that started at ``window_start`` (seconds)."""

    count: int
    window_start: float
    window_ms: int

    def expired(self, now: float) -> bool:
        return (now - self.window_start) * 1000.0 >= self.window_ms

    def reset_in_ms(self, now: float) -> float:
        return max(0.0, self.window_start * 1000.0 + self.window_ms - now * 1000.0)


@dataclass(frozen=True)
class LimitCheck:
    """One key to enforce for a request."""

    key: str
    max_requests: int
    window_ms: int
    scope: str = "user"


@dataclass(frozen=True)
class RateLimitDecision:
    """Outcome of :meth:`RateLimitStore.hit`.

    For an allowed request the figures describe the first check; for a
    rejection they describe the check that refused it. ``tickets`` lists
    ``(key, window_start)`` for every counter incremented.
    """

    allowed: bool
    key: str
    scope: str
    limit: int
    window_ms: int
    remaining: int
    reset_in_ms: float
    tickets: Tuple[Tuple[str, float], ...] = ()


class RateLimitStore:
    """Thread-safe mapping of key → :class:`WindowCounter`.

    All keys of one request are checked and incremented under a single
    lock with no awaits inside, so concurrent tasks and threads cannot
    undercount. Expired counters are purged lazily.
    """

    def __init__(
        self,
        clock: Callable[[], float] = time.monotonic,
        cleanup_interval: float = RATE_LIMIT_CLEANUP_INTERVAL_SECONDS,
    ) -> None:
        self._clock = clock
        self._cleanup_interval = cleanup_interval
        self._counters: Dict[str, WindowCounter] = {}
        self._lock = threading.Lock()
        self._last_cleanup = clock()

    def hit(self, checks: Sequence[LimitCheck]) -> RateLimitDecision:
        """Count one request against every check, or none if any is exhausted."""
        if not checks:
            raise ValueError("at least one limit check is required")
        with self._lock:
            now = self._clock()
            self._purge_expired(now)

            counters = []
            for check in checks:
                counter = self._counters.get(check.key)
                if counter is None or counter.expired(now):
                    counter = WindowCounter(count=0, window_start=now, window_ms=check.window_ms)
                    self._counters[check.key] = counter
                counters.append(counter)

            for check, counter in zip(checks, counters):
                if counter.count >= check.max_requests:
                    return RateLimitDecision(
                        allowed=False,
                        key=check.key,
                        scope=check.scope,
                        limit=check.max_requests,
                        window_ms=counter.window_ms,
                        remaining=0,
                        reset_in_ms=counter.reset_in_ms(now),
                    )

            for counter in counters:
                counter.count += 1

            first, first_counter = checks[0], counters[0]
            return RateLimitDecision(
                allowed=True,
                key=first.key,
                scope=first.scope,
                limit=first.max_requests,
                window_ms=first_counter.window_ms,
                remaining=max(0, first.max_requests - first_counter.count),
                reset_in_ms=first_counter.reset_in_ms(now),
                tickets=tuple((c.key, counter.window_start) for c, counter in zip(checks, counters)),
            )

    def release(self, tickets: Sequence[Tuple[str, float]]) -> None:
        """Uncount requests, but only for windows that are still current."""
        with self._lock:
            for key, window_start in tickets:
                counter = self._counters.get(key)
                if counter is not None and counter.window_start == window_start and counter.count > 0:
                    counter.count -= 1

    def count(self, key: str) -> int:
        """Requests counted for *key* in its current window."""
        with self._lock:
            counter = self._counters.get(key)
            if counter is None or counter.expired(self._clock()):
                return 0
            return counter.count

    def clear(self) -> None:
        with self._lock:
            self._counters.clear()

    def __len__(self) -> int:
        with self._lock:
            return len(self._counters)

    def _purge_expired(self, now: float) -> None:
        if now - self._last_cleanup < self._cleanup_interval:
            return
        self._last_cleanup = now
        expired = [key for key, counter in self._counters.items() if counter.expired(now)]
        for key in expired:
            del self._counters[key]
        if expired:
            logger.debug("Purged %d expired rate-limit counters", len(expired))


# ── Middleware ───────────────────────────────────────────────────────────


def resolve_category(ctx: InteractionContext) -> str:
    """Map an interaction onto a rate-limit category."""
    if ctx.command_name or ctx.kind is InteractionKind.CHAT_INPUT_COMMAND:
        return "command"
    custom_id = ctx.custom_id or ""
    if custom_id.startswith("task_add") or "task_create" in custom_id:
        return "task_create"
    if custom_id.startswith("list_"):
        return "list_modify"
    return "general"


class RateLimitMiddleware:
    """Enforce per-user and per-guild quotas for each category."""

    name = "rate_limit"

    def __init__(
        self,
        settings: Optional[RateLimitSettings] = None,
        store: Optional[RateLimitStore] = None,
    ) -> None:
        self._settings = settings or RateLimitSettings()
        self._store = store if store is not None else RateLimitStore()

    @property
    def store(self) -> RateLimitStore:
        return self._store

    def limit_checks(self, ctx: InteractionContext, category: str) -> Tuple[LimitCheck, ...]:
        rule = self._settings.rule_for(category)
        checks = [LimitCheck(f"user:{ctx.user_id}:{category}", rule.max_requests, rule.window_ms)]
        if ctx.in_guild:
            guild_rule = self._settings.guild_rule_for(category)
            checks.append(
                LimitCheck(
                    f"guild:{ctx.guild_id}:{category}",
                    guild_rule.max_requests,
                    guild_rule.window_ms,
                    scope="guild",
                )
            )
        return tuple(checks)

    async def execute(self, ctx: InteractionContext, next_handler: NextHandler) -> Any:
        category = resolve_category(ctx)
        decision = self._store.hit(self.limit_checks(ctx, category))
        ctx.metadata["rate_limit"] = {
            "category": category,
            "limit": decision.limit,
            "remaining": decision.remaining,
            "reset_in_ms": decision.reset_in_ms,
        }

        if not decision.allowed:
            rule = self._settings.rule_for(category)
            exc = RateLimitExceeded(
                category=category,
                limit=decision.limit,
                window_ms=decision.window_ms,
                retry_after_ms=decision.reset_in_ms,
                scope=decision.scope,
                message=rule.message if decision.scope == "user" else None,
            )
            ctx.metadata["rejected_by"] = self.name
            logger.warning(
                "Rate limit exceeded",
                extra={
                    **ctx.log_extra(),
                    "event": "Rate limit exceeded",
                    "category": category,
                    "scope": decision.scope,
                    "retry_after_ms": decision.reset_in_ms,
                },
            )
            await send_ephemeral(ctx, exc.user_message)
            return None

        if decision.remaining < APPROACHING_LIMIT_REMAINING:
            logger.info(
                "User approaching rate limit",
                extra={
                    **ctx.log_extra(),
                    "event": "User approaching rate limit",
                    "category": category,
                    "remaining": decision.remaining,
                },
            )

        if not self._settings.skip_successful:
            return await next_handler(ctx)

        # Only failures count: a clean return gives the slot back.
        result = await next_handler(ctx)
        self._store.release(decision.tickets)
        return result
