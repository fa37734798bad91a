"""Tests for the rate gate, its store and sweeper."""

import asyncio
import threading

import pytest

from src.domain.entities.rate_limit import (
    RateLimitExceededError,
    RateLimitFeature,
    RateLimitRule,
)
from src.infrastructure.ratelimit import RateLimitGate, RateLimitStore, RateLimitSweeper


class FakeClock:
    """Manually advanced millisecond clock."""

    def __init__(self, now: int = 1_000_000) -> None:
        self.now = now

    def __call__(self) -> int:
        return self.now


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def store(clock):
    return RateLimitStore(clock=clock)


@pytest.fixture
def gate(store):
    return RateLimitGate(store=store, enabled=True)


RULE = RateLimitRule(window_ms=1000, max_requests=2, message="slow down")


class TestCheck:
    """Fixed-window check semantics."""

    def test_first_request_creates_record(self, gate, store, clock):
        result = gate.check("general:1", RULE)
        assert result.allowed is True
        assert result.remaining == 1
        assert result.reset_time == clock.now + 1000
        assert result.disabled is False
        assert len(store) == 1

    def test_deny_after_limit_without_increment(self, gate, store):
        gate.check("k", RULE)
        gate.check("k", RULE)
        first_denial = gate.check("k", RULE)
        second_denial = gate.check("k", RULE)
        assert first_denial.allowed is False
        assert first_denial.remaining == 0
        assert second_denial == first_denial
        assert store.get("k").count == 2

    def test_window_reset_after_expiry(self, gate, clock):
        gate.check("k", RULE)
        gate.check("k", RULE)
        clock.now += 1001
        result = gate.check("k", RULE)
        assert result.allowed is True
        assert result.remaining == 1

    def test_record_still_live_at_reset_time(self, gate, clock):
        gate.check("k", RULE)
        gate.check("k", RULE)
        clock.now += 1000
        assert gate.check("k", RULE).allowed is False

    def test_identifiers_independent(self, gate):
        gate.check("a", RULE)
        gate.check("a", RULE)
        assert gate.check("a", RULE).allowed is False
        assert gate.check("b", RULE).allowed is True

    def test_globally_disabled_bypasses(self, store):
        gate = RateLimitGate(store=store, enabled=False)
        result = gate.check("k", RULE)
        assert result.disabled is True
        assert result.remaining == -1
        assert result.reset_time == 0
        assert len(store) == 0

    def test_disabled_rule_bypasses(self, gate, store):
        result = gate.check("k", RULE.model_copy(update={"enabled": False}))
        assert result.disabled is True
        assert len(store) == 0

    def test_zero_limit_first_request_allowed(self, gate):
        """The creating request is always allowed; remaining may go negative."""
        rule = RateLimitRule(window_ms=1000, max_requests=0)
        assert gate.check("k", rule).remaining == -1
        assert gate.check("k", rule).allowed is False

    def test_concurrent_checks_do_not_lose_updates(self, gate, store):
        rule = RateLimitRule(window_ms=60_000, max_requests=1000)

        def worker():
            for _ in range(100):
                gate.check("shared", rule)

        threads = [threading.Thread(target=worker) for _ in range(8)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()
        assert store.get("shared").count == 800


class TestCheckFeature:
    """Rule resolution by feature and tier."""

    def _enable(self, gate, feature, tier):
        gate.update_rule(feature, "enabled", {"enabled": True})
        gate.update_rule(feature, tier, {"enabled": True})

    def test_feature_switch_off_by_default(self, gate, store):
        result = gate.check_feature(RateLimitFeature.OPTIMIZE, 1, "free")
        assert result.disabled is True
        assert len(store) == 0

    def test_tiered_feature_uses_tier_rule(self, gate, store):
        self._enable(gate, RateLimitFeature.OPTIMIZE, "pro")
        result = gate.check_feature(RateLimitFeature.OPTIMIZE, 7, "pro")
        assert result.remaining == 99
        assert store.get("optimize:7") is not None

    def test_untiered_feature_uses_all_rule(self, gate):
        self._enable(gate, RateLimitFeature.IMPORT, "all")
        result = gate.check_feature(RateLimitFeature.IMPORT, 7, "pro")
        assert result.remaining == 4

    def test_missing_tier_defaults_to_free(self, gate):
        self._enable(gate, RateLimitFeature.IMAGE_GENERATION, "free")
        assert gate.check_feature(RateLimitFeature.IMAGE_GENERATION, 7, None).remaining == 4

    def test_unknown_tier_limited_by_free_rule(self, gate, store):
        self._enable(gate, RateLimitFeature.OPTIMIZE, "free")
        gate.update_rule(RateLimitFeature.OPTIMIZE, "free", {"max_requests": 1})

        first = gate.check_feature(RateLimitFeature.OPTIMIZE, 7, "enterprise")
        second = gate.check_feature(RateLimitFeature.OPTIMIZE, 7, "enterprise")

        assert first.allowed is True
        assert first.disabled is False
        assert second.allowed is False
        assert store.get("optimize:7").count == 1

    def test_enforce_raises_with_message(self, gate):
        self._enable(gate, RateLimitFeature.IMPORT, "all")
        gate.update_rule(RateLimitFeature.IMPORT, "all", {"max_requests": 1})
        gate.enforce_feature(RateLimitFeature.IMPORT, 1)
        with pytest.raises(RateLimitExceededError, match="bulk imports") as exc:
            gate.enforce_feature(RateLimitFeature.IMPORT, 1)
        assert exc.value.reset_time > 0


class TestAdmin:
    """Admin operations."""

    def test_update_unknown_tier_or_feature(self, gate):
        assert gate.update_rule(RateLimitFeature.IMPORT, "pro", {"max_requests": 1}) is False
        assert gate.update_rule("nope", "all", {"max_requests": 1}) is False

    def test_apply_preset(self, gate):
        gate.apply_preset("strict")
        limits = gate.get_config()["limits"]
        assert limits["optimize"]["rules"]["free"]["max_requests"] == 5
        assert limits["optimize"]["rules"]["admin"]["max_requests"] == 1000
        assert limits["import"]["rules"]["all"]["max_requests"] == 3
        assert limits["general"]["rules"]["all"]["max_requests"] == 100

    def test_unknown_preset(self, gate):
        with pytest.raises(ValueError):
            gate.apply_preset("chaos")

    def test_status_and_reset(self, gate):
        gate.update_rule(RateLimitFeature.GENERAL, "enabled", {"enabled": True})
        gate.update_rule(RateLimitFeature.GENERAL, "all", {"enabled": True})
        gate.check_feature(RateLimitFeature.GENERAL, 3)
        gate.check_feature(RateLimitFeature.GENERAL, 3)

        status = gate.get_status(3, RateLimitFeature.GENERAL)
        assert status["used"] == 2
        assert status["remaining"] == 98
        assert status["max_requests"] == 100

        assert gate.reset_user(3) == 1
        assert gate.get_status(3, RateLimitFeature.GENERAL)["reset_time"] is None

    def test_reset_user_matches_suffix_only(self, gate, store):
        gate.check("general:3", RULE)
        gate.check("general:13", RULE)
        gate.reset_user(3)
        assert [r["identifier"] for r in gate.records()] == ["general:13"]


class TestStoreSweep:
    """Expired record cleanup."""

    def test_sweep_drops_expired(self, gate, store, clock):
        gate.check("old", RULE)
        clock.now += 500
        gate.check("new", RULE)
        clock.now += 600
        assert store.sweep() == 1
        assert [r["identifier"] for r in store.records()] == ["new"]

    def test_records_expired_flag(self, gate, store, clock):
        gate.check("k", RULE)
        clock.now += 2000
        assert store.records()[0]["expired"] is True

    @pytest.mark.asyncio
    async def test_sweeper_runs_periodically(self, gate, store, clock):
        gate.check("k", RULE)
        clock.now += 5000
        sweeper = RateLimitSweeper(store, interval_seconds=0.01)
        sweeper.start()
        await asyncio.sleep(0.05)
        await sweeper.stop()
        assert len(store) == 0
        assert sweeper.running is False
