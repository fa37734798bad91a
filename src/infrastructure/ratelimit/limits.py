"""Default per-feature limits and quick-configuration presets."""

from typing import Literal

from src.domain.entities.rate_limit import (
    ALL_TIERS_KEY,
    HOUR_MS,
    MINUTE_MS,
    FeatureLimits,
    RateLimitFeature,
    RateLimitRule,
)

PresetName = Literal["strict", "relaxed", "unlimited"]


def _rule(window_ms: int, max_requests: int, message: str) -> RateLimitRule:
    # Every rule ships switched off; admins enable them at runtime
    return RateLimitRule(window_ms=window_ms, max_requests=max_requests, message=message, enabled=False)


def default_limits() -> dict[RateLimitFeature, FeatureLimits]:
    """Fresh copy of the default limit table (all features disabled)."""
    return {
        RateLimitFeature.OPTIMIZE: FeatureLimits(
            rules={
                "free": _rule(HOUR_MS, 10, "Free plan is limited to 10 optimizations per hour"),
                "basic": _rule(HOUR_MS, 50, "Basic plan is limited to 50 optimizations per hour"),
                "pro": _rule(HOUR_MS, 100, "Pro plan is limited to 100 optimizations per hour"),
                "admin": _rule(HOUR_MS, 1000, "Admins are limited to 1000 optimizations per hour"),
            }
        ),
        RateLimitFeature.IMPORT: FeatureLimits(
            rules={ALL_TIERS_KEY: _rule(HOUR_MS, 5, "Limited to 5 bulk imports per hour")}
        ),
        RateLimitFeature.CREATE_SHARE: FeatureLimits(
            rules={ALL_TIERS_KEY: _rule(HOUR_MS, 20, "Limited to 20 share links per hour")}
        ),
        RateLimitFeature.GENERAL: FeatureLimits(
            rules={ALL_TIERS_KEY: _rule(MINUTE_MS, 100, "Limited to 100 requests per minute")}
        ),
        RateLimitFeature.IMAGE_GENERATION: FeatureLimits(
            rules={
                "free": _rule(HOUR_MS, 5, "Free plan is limited to 5 image generations per hour"),
                "basic": _rule(HOUR_MS, 20, "Basic plan is limited to 20 image generations per hour"),
                "pro": _rule(HOUR_MS, 50, "Pro plan is limited to 50 image generations per hour"),
                "admin": _rule(HOUR_MS, 500, "Admins are limited to 500 image generations per hour"),
            }
        ),
    }


def _hourly(**tiers: int) -> dict[str, dict[str, int]]:
    return {tier: {"max_requests": n, "window_ms": HOUR_MS} for tier, n in tiers.items()}


# feature -> tier -> rule updates. Admin and general rules are left as they are.
PRESETS: dict[str, dict[RateLimitFeature, dict[str, dict[str, int]]]] = {
    "strict": {
        RateLimitFeature.OPTIMIZE: _hourly(free=5, basic=20, pro=50),
        RateLimitFeature.IMAGE_GENERATION: _hourly(free=3, basic=10, pro=30),
        RateLimitFeature.IMPORT: _hourly(all=3),
        RateLimitFeature.CREATE_SHARE: _hourly(all=10),
    },
    "relaxed": {
        RateLimitFeature.OPTIMIZE: _hourly(free=10, basic=50, pro=100),
        RateLimitFeature.IMAGE_GENERATION: _hourly(free=5, basic=20, pro=50),
        RateLimitFeature.IMPORT: _hourly(all=5),
        RateLimitFeature.CREATE_SHARE: _hourly(all=20),
    },
    "unlimited": {
        RateLimitFeature.OPTIMIZE: _hourly(free=10000, basic=10000, pro=10000),
        RateLimitFeature.IMAGE_GENERATION: _hourly(free=10000, basic=10000, pro=10000),
        RateLimitFeature.IMPORT: _hourly(all=10000),
        RateLimitFeature.CREATE_SHARE: _hourly(all=10000),
    },
}
