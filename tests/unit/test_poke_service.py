"""Poke use case: gate order, persistence, concurrency, notification."""

import asyncio

import pytest

from gitpoke.accounts.identifiers import GitHubUserId, Username
from gitpoke.errors import SelfPokeError, TransientDependencyError
from gitpoke.pokes.anti_abuse import FixedWindowRateLimiter
from gitpoke.pokes.notifier import RecordingNotifier
from gitpoke.pokes.policy import CannotPoke, CanPoke, PokeFailureReason, PokeSetting, UserAccount
from gitpoke.pokes.service import PokeService

ALICE = Username("alice")
BOB = Username("bob")
IP = "203.0.113.7"


async def _register(deps, username, github_id, setting=PokeSetting.ANYONE):
    await deps.accounts_store.save(UserAccount(GitHubUserId(github_id), username, poke_setting=setting))


@pytest.fixture
async def bob(deps):
    await _register(deps, BOB, 2)
    return BOB


class TestPoke:
    async def test_success(self, deps, bob, now):
        result = await deps.pokes.poke(ALICE, bob, client_ip=IP, context="octo/hello")
        assert result.success
        assert result.message == "Poked bob!"
        assert result.event_id == result.event.id
        assert result.event.occurred_at == now
        assert deps.events_store.events == [result.event]

    async def test_self_poke_rejected_before_gates(self, deps):
        with pytest.raises(SelfPokeError):
            await deps.pokes.poke(ALICE, Username("Alice"), client_ip=IP)
        assert deps.hot.keys() == []

    async def test_unregistered_recipient(self, deps):
        result = await deps.pokes.poke(ALICE, BOB, client_ip=IP)
        assert result.reason is PokeFailureReason.RECIPIENT_NOT_REGISTERED
        assert deps.events_store.events == []

    @pytest.mark.parametrize(
        ("setting", "follows", "reason"),
        [
            (PokeSetting.DISABLED, [("alice", "bob"), ("bob", "alice")], PokeFailureReason.RECIPIENT_DISABLED),
            (PokeSetting.FOLLOWERS_ONLY, [], PokeFailureReason.NOT_FOLLOWER),
            (PokeSetting.MUTUAL_ONLY, [("alice", "bob")], PokeFailureReason.NOT_MUTUAL_FOLLOWER),
            (PokeSetting.FOLLOWERS_ONLY, [("alice", "bob")], None),
            (PokeSetting.MUTUAL_ONLY, [("alice", "bob"), ("bob", "alice")], None),
        ],
    )
    async def test_recipient_setting_and_relation(self, deps, setting, follows, reason):
        await _register(deps, BOB, 2, setting)
        for follower, target in follows:
            deps.origin.follow(follower, target)
        result = await deps.pokes.poke(ALICE, BOB, client_ip=IP)
        assert result.reason is reason
        assert result.success is (reason is None)

    async def test_second_poke_same_day_denied(self, deps, bob, clock):
        assert (await deps.pokes.poke(ALICE, bob, client_ip=IP)).success
        clock.advance(3600)
        result = await deps.pokes.poke(ALICE, bob, client_ip=IP)
        assert result.reason is PokeFailureReason.ALREADY_POKED
        assert len(deps.events_store.events) == 1

    async def test_next_utc_day_allowed(self, deps, bob, clock):
        assert (await deps.pokes.poke(ALICE, bob, client_ip=IP)).success
        clock.advance(12 * 3600)  # 2026-03-05 00:00 UTC
        assert (await deps.pokes.poke(ALICE, bob, client_ip=IP)).success
        assert len(deps.events_store.events) == 2

    async def test_rate_limit_counts_denied_attempts(self, deps, bob):
        for _ in range(10):
            await deps.pokes.poke(ALICE, Username("nobody"), client_ip=IP)
        result = await deps.pokes.poke(ALICE, bob, client_ip=IP)
        assert result.reason is PokeFailureReason.RATE_LIMITED
        assert result.message == PokeFailureReason.RATE_LIMITED.message

    async def test_rate_limit_store_failure_records_nothing(self, deps, bob):
        class BrokenLimiter(FixedWindowRateLimiter):
            async def hit(self, ip):
                raise TransientDependencyError("hot_cache", "down")

        deps.pokes.limiter = BrokenLimiter(deps.hot, scope="poke", limit=10)
        with pytest.raises(TransientDependencyError):
            await deps.pokes.poke(ALICE, bob, client_ip=IP)
        assert deps.events_store.events == []

    async def test_social_graph_outage_is_transient(self, deps):
        await _register(deps, BOB, 2, PokeSetting.FOLLOWERS_ONLY)
        deps.origin.fail_next = 2
        with pytest.raises(TransientDependencyError):
            await deps.pokes.poke(ALICE, BOB, client_ip=IP)

    async def test_anyone_setting_skips_social_graph(self, deps, bob):
        deps.origin.fail_next = 5
        assert (await deps.pokes.poke(ALICE, bob, client_ip=IP)).success


class TestConcurrency:
    async def test_fifty_concurrent_pokes_record_one_event(self, deps, bob):
        deps.pokes.limiter = FixedWindowRateLimiter(deps.hot, scope="poke", limit=1000)
        results = await asyncio.gather(*(deps.pokes.poke(ALICE, bob, client_ip=IP) for _ in range(50)))

        assert sum(r.success for r in results) == 1
        assert len(deps.events_store.events) == 1
        assert {r.reason for r in results if not r.success} == {PokeFailureReason.ALREADY_POKED}


class TestNotification:
    async def test_delivered_in_background(self, deps, bob):
        result = await deps.pokes.poke(ALICE, bob, client_ip=IP)
        await deps.background.drain()
        assert deps.notifier.delivered == [result.event]

    async def test_failure_does_not_affect_result(self, deps, bob):
        deps.pokes.notifier = RecordingNotifier(fail=True)
        result = await deps.pokes.poke(ALICE, bob, client_ip=IP)
        await deps.background.drain()
        assert result.success
        assert len(deps.events_store.events) == 1


class TestPreviewAndHistory:
    async def test_preview_does_not_persist_or_count(self, deps, bob):
        verdict = await deps.pokes.preview(ALICE, bob)
        assert verdict == CanPoke(ALICE, BOB)
        assert deps.events_store.events == []
        assert deps.hot.keys() == []

    async def test_preview_after_poke(self, deps, bob):
        await deps.pokes.poke(ALICE, bob, client_ip=IP)
        assert await deps.pokes.preview(ALICE, bob) == CannotPoke(PokeFailureReason.ALREADY_POKED)

    async def test_today_history(self, deps, bob):
        await _register(deps, ALICE, 1)
        await deps.pokes.poke(ALICE, bob, client_ip=IP)
        await deps.pokes.poke(BOB, ALICE, client_ip="198.51.100.1")

        history = await deps.pokes.today_history(ALICE)
        assert [e.recipient for e in history.sent] == [BOB]
        assert [e.sender for e in history.received] == [BOB]


def test_service_constructs_with_defaults(deps):
    service = PokeService(
        deps.accounts_store, deps.events_store, deps.origin, deps.poke_limiter, deps.notifier, deps.background
    )
    assert service.store_timeout == 2.0
