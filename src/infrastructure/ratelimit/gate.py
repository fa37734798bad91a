"""Fixed-window rate gate keyed by "<feature>:<user_id>"."""

import logging
from typing import Any

from src.domain.entities.rate_limit import (
    ALL_TIERS_KEY,
    TIERED_FEATURES,
    FeatureLimits,
    RateLimitExceededError,
    RateLimitFeature,
    RateLimitRecord,
    RateLimitResult,
    RateLimitRule,
    RateLimitRuleUpdate,
    Tier,
)
from src.infrastructure.ratelimit.limits import PRESETS, PresetName, default_limits
from src.infrastructure.ratelimit.store import RateLimitStore

logger = logging.getLogger(__name__)

DISABLED = RateLimitResult(allowed=True, remaining=-1, reset_time=0, disabled=True)


def identifier_for(feature: RateLimitFeature, user_id: int | str) -> str:
    return f"{feature.value}:{user_id}"


def rule_key(feature: RateLimitFeature, tier: str | None) -> str:
    """Tiered features pick the rule by tier; the rest share the ``all`` rule."""
    if feature in TIERED_FEATURES:
        return tier or Tier.FREE.value
    return ALL_TIERS_KEY


class RateLimitGate:
    """Owns the limit table and the counter store.

    The check itself is tier-agnostic: callers resolve a rule first
    (``check_feature`` does this for them).
    """

    def __init__(
        self,
        store: RateLimitStore | None = None,
        limits: dict[RateLimitFeature, FeatureLimits] | None = None,
        enabled: bool = False,
    ) -> None:
        self.store = store or RateLimitStore()
        self._limits = limits if limits is not None else default_limits()
        self._enabled = enabled

    @property
    def enabled(self) -> bool:
        return self._enabled

    def check(self, identifier: str, rule: RateLimitRule) -> RateLimitResult:
        """Count one request against ``identifier``.

        Bypassed (no record touched) when the gate or the rule is off.
        Denials do not increment the counter.
        """
        if not self._enabled or not rule.enabled:
            return DISABLED

        with self.store.lock:
            now = self.store.clock()
            record = self.store.get(identifier)
            if record is None or now > record.reset_time:
                record = RateLimitRecord(identifier=identifier, count=1, reset_time=now + rule.window_ms)
                self.store.put(record)
                return RateLimitResult(allowed=True, remaining=rule.max_requests - 1, reset_time=record.reset_time)

            if record.count < rule.max_requests:
                record.count += 1
                return RateLimitResult(
                    allowed=True,
                    remaining=rule.max_requests - record.count,
                    reset_time=record.reset_time,
                )

            return RateLimitResult(allowed=False, remaining=0, reset_time=record.reset_time)

    def resolve_rule(self, feature: RateLimitFeature, tier: str | None) -> RateLimitRule | None:
        """Rule for ``feature``/``tier``. Tiers without a rule of their own get the free rule."""
        rules = self._limits[feature].rules
        rule = rules.get(rule_key(feature, tier))
        if rule is None and feature in TIERED_FEATURES:
            rule = rules.get(Tier.FREE.value)
        return rule

    def check_feature(self, feature: RateLimitFeature, user_id: int | str, tier: str | None = None) -> RateLimitResult:
        """Resolve the rule for ``feature``/``tier`` and check ``<feature>:<user_id>``."""
        if not self._enabled or not self._limits[feature].enabled:
            return DISABLED
        rule = self.resolve_rule(feature, tier)
        if rule is None:
            return DISABLED
        return self.check(identifier_for(feature, user_id), rule)

    def enforce_feature(self, feature: RateLimitFeature, user_id: int | str, tier: str | None = None) -> RateLimitResult:
        """Like ``check_feature`` but raises RateLimitExceededError on denial."""
        result = self.check_feature(feature, user_id, tier)
        if not result.allowed:
            rule = self.resolve_rule(feature, tier)
            message = (rule.message if rule else "") or "Rate limit exceeded"
            logger.info("Rate limit denied: feature=%s user=%s tier=%s", feature.value, user_id, tier)
            raise RateLimitExceededError(message, result.reset_time)
        return result

    # Admin operations

    def get_config(self) -> dict[str, Any]:
        return {
            "global_enabled": self._enabled,
            "limits": {f.value: limits.model_dump() for f, limits in self._limits.items()},
        }

    def set_global_enabled(self, enabled: bool) -> None:
        self._enabled = enabled
        logger.info("Rate limiting globally %s", "enabled" if enabled else "disabled")

    def update_rule(
        self,
        feature: RateLimitFeature | str,
        tier: str,
        updates: RateLimitRuleUpdate | dict[str, Any],
    ) -> bool:
        """Apply a partial update. ``tier="enabled"`` flips the feature switch.

        Returns False for unknown features or tiers.
        """
        try:
            feature = RateLimitFeature(feature)
        except ValueError:
            return False
        if isinstance(updates, dict):
            updates = RateLimitRuleUpdate.model_validate(updates)
        limits = self._limits[feature]

        if tier == "enabled":
            if updates.enabled is not None:
                limits.enabled = updates.enabled
            logger.info("Rate limit feature %s enabled=%s", feature.value, limits.enabled)
            return True

        rule = limits.rules.get(tier)
        if rule is None:
            return False
        limits.rules[tier] = rule.model_copy(update=updates.model_dump(exclude_none=True))
        logger.info("Rate limit rule %s/%s updated", feature.value, tier)
        return True

    def apply_preset(self, name: PresetName) -> None:
        """Apply a named preset (strict, relaxed, unlimited)."""
        preset = PRESETS.get(name)
        if preset is None:
            raise ValueError(f"Unknown rate limit preset: {name}")
        for feature, tiers in preset.items():
            for tier, settings in tiers.items():
                self.update_rule(feature, tier, settings)
        logger.info("Rate limit preset applied: %s", name)

    def get_status(self, user_id: int | str, feature: RateLimitFeature, tier: str | None = None) -> dict[str, Any]:
        """Usage of the current window for ``user_id`` (read-only)."""
        rule = self.resolve_rule(feature, tier)
        max_requests = rule.max_requests if rule else 0
        with self.store.lock:
            record = self.store.get(identifier_for(feature, user_id))
            if record is None or record.reset_time < self.store.clock():
                return {"used": 0, "remaining": max_requests, "reset_time": None, "max_requests": max_requests}
            return {
                "used": record.count,
                "remaining": max(0, max_requests - record.count),
                "reset_time": record.reset_time,
                "max_requests": max_requests,
            }

    def reset_user(self, user_id: int | str, feature: RateLimitFeature | None = None) -> int:
        if feature is not None:
            return int(self.store.delete(identifier_for(feature, user_id)))
        return self.store.delete_for_user(user_id)

    def clear_all(self) -> None:
        self.store.clear()

    def records(self) -> list[dict]:
        return self.store.records()
