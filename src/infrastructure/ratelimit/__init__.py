"""Per-user rate limiting."""

from src.infrastructure.ratelimit.gate import RateLimitGate, identifier_for
from src.infrastructure.ratelimit.limits import PRESETS, default_limits
from src.infrastructure.ratelimit.store import RateLimitStore, RateLimitSweeper

__all__ = [
    "PRESETS",
    "RateLimitGate",
    "RateLimitStore",
    "RateLimitSweeper",
    "default_limits",
    "identifier_for",
]
