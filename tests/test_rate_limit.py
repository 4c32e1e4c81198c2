"""Tests for the rate-limit counter store and middleware."""

from __future__ import annotations

import asyncio
import logging
import threading
from unittest.mock import AsyncMock

import pytest

from bwaincell.config.schema import RateLimitRule, RateLimitSettings
from bwaincell.interactions.middleware.rate_limit import (
    LimitCheck,
    RateLimitMiddleware,
    RateLimitStore,
    resolve_category,
)


class FakeClock:
    def __init__(self, now: float = 1000.0) -> None:
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def store(clock: FakeClock) -> RateLimitStore:
    return RateLimitStore(clock=clock)


def _check(key: str = "user:u1:x", max_requests: int = 5, window_ms: int = 60_000) -> LimitCheck:
    return LimitCheck(key, max_requests, window_ms)


# ── Store ────────────────────────────────────────────────────────────────


class TestRateLimitStore:
    def test_sixth_request_in_window_rejected(self, store: RateLimitStore) -> None:
        results = [store.hit([_check()]).allowed for _ in range(6)]
        assert results == [True] * 5 + [False]

    def test_rejection_does_not_count(self, store: RateLimitStore) -> None:
        for _ in range(8):
            store.hit([_check()])
        assert store.count("user:u1:x") == 5

    def test_window_reset_restarts_at_one(self, store: RateLimitStore, clock: FakeClock) -> None:
        for _ in range(6):
            store.hit([_check()])
        clock.advance(60.001)
        decision = store.hit([_check()])
        assert decision.allowed
        assert store.count("user:u1:x") == 1
        assert decision.remaining == 4

    def test_window_resets_exactly_at_boundary(self, store: RateLimitStore, clock: FakeClock) -> None:
        for _ in range(5):
            store.hit([_check()])
        clock.advance(60.0)
        assert store.hit([_check()]).allowed

    def test_still_limited_just_before_boundary(self, store: RateLimitStore, clock: FakeClock) -> None:
        for _ in range(5):
            store.hit([_check()])
        clock.advance(59.9)
        assert not store.hit([_check()]).allowed

    def test_reset_in_ms(self, store: RateLimitStore, clock: FakeClock) -> None:
        for _ in range(5):
            store.hit([_check()])
        clock.advance(10.0)
        decision = store.hit([_check()])
        assert not decision.allowed
        assert decision.reset_in_ms == pytest.approx(50_000.0)

    def test_remaining_counts_down(self, store: RateLimitStore) -> None:
        remaining = [store.hit([_check()]).remaining for _ in range(5)]
        assert remaining == [4, 3, 2, 1, 0]

    def test_second_key_blocks_without_counting_first(self, store: RateLimitStore) -> None:
        guild = LimitCheck("guild:g1:x", 2, 60_000, scope="guild")
        store.hit([_check("user:a:x"), guild])
        store.hit([_check("user:b:x"), guild])

        decision = store.hit([_check("user:c:x"), guild])
        assert not decision.allowed
        assert decision.scope == "guild"
        assert decision.limit == 2
        assert store.count("user:c:x") == 0

    def test_release_in_same_window(self, store: RateLimitStore) -> None:
        decision = store.hit([_check()])
        store.release(decision.tickets)
        assert store.count("user:u1:x") == 0

    def test_release_after_reset_is_ignored(self, store: RateLimitStore, clock: FakeClock) -> None:
        stale = store.hit([_check()])
        clock.advance(61.0)
        store.hit([_check()])
        store.release(stale.tickets)
        assert store.count("user:u1:x") == 1

    def test_expired_counters_are_purged(self, clock: FakeClock) -> None:
        store = RateLimitStore(clock=clock, cleanup_interval=60.0)
        store.hit([_check("user:a:x")])
        store.hit([_check("user:b:x")])
        assert len(store) == 2

        clock.advance(120.0)
        store.hit([_check("user:c:x")])
        assert len(store) == 1

    def test_requires_a_check(self, store: RateLimitStore) -> None:
        with pytest.raises(ValueError):
            store.hit([])

    def test_concurrent_hits_are_not_undercounted(self) -> None:
        store = RateLimitStore()
        allowed = []
        lock = threading.Lock()

        def worker() -> None:
            for _ in range(50):
                ok = store.hit([_check("user:busy:x", max_requests=100)]).allowed
                with lock:
                    allowed.append(ok)

        threads = [threading.Thread(target=worker) for _ in range(8)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert len(allowed) == 400
        assert sum(allowed) == 100
        assert store.count("user:busy:x") == 100


# ── Category resolution ──────────────────────────────────────────────────


class TestResolveCategory:
    def test_slash_command(self, make_ctx) -> None:
        assert resolve_category(make_ctx(kind="command")) == "command"

    @pytest.mark.parametrize(
        "custom_id, expected",
        [
            ("task_add_modal", "task_create"),
            ("quick_task_create", "task_create"),
            ("list_add_item", "list_modify"),
            ("list_remove_3", "list_modify"),
            ("task_done_4", "general"),
            ("note_edit", "general"),
        ],
    )
    def test_components(self, make_ctx, custom_id: str, expected: str) -> None:
        assert resolve_category(make_ctx(kind="button", custom_id=custom_id)) == expected

    def test_no_identifiers(self, make_ctx) -> None:
        assert resolve_category(make_ctx(kind="select")) == "general"


# ── Middleware ───────────────────────────────────────────────────────────


def _run(mw, ctx, handler):
    return asyncio.run(mw.execute(ctx, handler))


class TestRateLimitMiddleware:
    def test_task_create_limit(self, make_ctx, terminal, store, sent_contents) -> None:
        mw = RateLimitMiddleware(store=store)
        ctxs = [make_ctx(kind="button", custom_id="task_add") for _ in range(6)]
        for ctx in ctxs:
            _run(mw, ctx, terminal)

        assert terminal.await_count == 5
        rejected = ctxs[-1]
        assert rejected.metadata["rejected_by"] == "rate_limit"
        content = sent_contents(rejected.interaction)[0]
        assert content.startswith("⏱️")
        assert "You can only create 5 tasks per minute." in content
        assert "Limit: 5 requests per 60s" in content
        assert "try again in 60s" in content
        payload = rejected.interaction.reply.call_args.args[0]
        assert payload["ephemeral"] is True

    def test_accepts_again_after_window(self, make_ctx, terminal, store, clock) -> None:
        mw = RateLimitMiddleware(store=store)
        for _ in range(6):
            _run(mw, make_ctx(kind="button", custom_id="task_add"), terminal)
        clock.advance(61.0)

        ctx = make_ctx(kind="button", custom_id="task_add")
        _run(mw, ctx, terminal)
        assert terminal.await_count == 6
        assert store.count("user:user-1:task_create") == 1

    def test_categories_are_independent(self, make_ctx, terminal, store) -> None:
        mw = RateLimitMiddleware(store=store)
        for _ in range(5):
            _run(mw, make_ctx(kind="button", custom_id="task_add"), terminal)
        _run(mw, make_ctx(kind="button", custom_id="list_add"), terminal)
        assert terminal.await_count == 6

    def test_guild_quota_spans_users(self, make_ctx, terminal, store, sent_contents) -> None:
        mw = RateLimitMiddleware(RateLimitSettings(per_guild=2), store=store)
        ctxs = [make_ctx(kind="button", custom_id="note_edit", user_id=f"u{i}") for i in range(3)]
        for ctx in ctxs:
            _run(mw, ctx, terminal)

        assert terminal.await_count == 2
        content = sent_contents(ctxs[-1].interaction)[0]
        assert "You are sending requests too quickly." in content
        assert "Limit: 2 requests" in content

    def test_direct_message_uses_user_key_only(self, make_ctx, terminal, store) -> None:
        mw = RateLimitMiddleware(store=store)
        _run(mw, make_ctx(kind="command", guild_id=None), terminal)
        assert len(store) == 1
        assert store.count("user:user-1:command") == 1

    def test_metadata(self, make_ctx, terminal, store) -> None:
        mw = RateLimitMiddleware(store=store)
        ctx = make_ctx(kind="command")
        _run(mw, ctx, terminal)
        info = ctx.metadata["rate_limit"]
        assert info["category"] == "command"
        assert info["limit"] == 15
        assert info["remaining"] == 14
        assert info["reset_in_ms"] == pytest.approx(60_000.0)

    def test_approaching_limit_logged(self, make_ctx, terminal, store, caplog) -> None:
        mw = RateLimitMiddleware(store=store)
        with caplog.at_level(logging.INFO, logger="bwaincell.interactions.middleware.rate_limit"):
            for _ in range(3):
                _run(mw, make_ctx(kind="button", custom_id="task_add"), terminal)
        approaching = [r for r in caplog.records if r.getMessage() == "User approaching rate limit"]
        assert len(approaching) == 1
        assert approaching[0].remaining == 2

    def test_rejection_logged(self, make_ctx, terminal, store, caplog) -> None:
        mw = RateLimitMiddleware(RateLimitSettings(custom_limits={}, per_user=1), store=store)
        with caplog.at_level(logging.WARNING, logger="bwaincell.interactions.middleware.rate_limit"):
            for _ in range(2):
                _run(mw, make_ctx(kind="button", custom_id="note_edit"), terminal)
        records = [r for r in caplog.records if r.getMessage() == "Rate limit exceeded"]
        assert len(records) == 1
        assert records[0].category == "general"
        assert records[0].user_id == "user-1"

    def test_follow_up_when_acknowledged(self, make_ctx, terminal, store) -> None:
        mw = RateLimitMiddleware(RateLimitSettings(custom_limits={}, per_user=1), store=store)
        _run(mw, make_ctx(kind="button", custom_id="note_edit"), terminal)
        ctx = make_ctx(kind="button", custom_id="note_edit", deferred=True)
        _run(mw, ctx, terminal)
        ctx.interaction.reply.assert_not_awaited()
        ctx.interaction.follow_up.assert_awaited_once()

    def test_custom_rule_window(self, make_ctx, terminal, store, clock) -> None:
        settings = RateLimitSettings(
            custom_limits={"command": RateLimitRule(max_requests=1, window_ms=5_000)},
        )
        mw = RateLimitMiddleware(settings, store=store)
        _run(mw, make_ctx(kind="command"), terminal)
        _run(mw, make_ctx(kind="command"), terminal)
        clock.advance(5.0)
        _run(mw, make_ctx(kind="command"), terminal)
        assert terminal.await_count == 2


class TestSkipSuccessful:
    def _mw(self, store: RateLimitStore) -> RateLimitMiddleware:
        settings = RateLimitSettings(
            skip_successful=True,
            custom_limits={"command": RateLimitRule(max_requests=2)},
        )
        return RateLimitMiddleware(settings, store=store)

    def test_successes_are_not_counted(self, make_ctx, terminal, store) -> None:
        mw = self._mw(store)
        for _ in range(10):
            _run(mw, make_ctx(kind="command"), terminal)
        assert terminal.await_count == 10
        assert store.count("user:user-1:command") == 0

    def test_failures_count_and_propagate(self, make_ctx, store) -> None:
        mw = self._mw(store)
        failing = AsyncMock(side_effect=RuntimeError("boom"))
        for _ in range(2):
            with pytest.raises(RuntimeError):
                _run(mw, make_ctx(kind="command"), failing)
        assert store.count("user:user-1:command") == 2

        _run(mw, make_ctx(kind="command"), failing)
        assert failing.await_count == 2
