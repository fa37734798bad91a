"""Rate limit entities: features, tiers, rules, records and check results."""

from dataclasses import dataclass
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field

HOUR_MS = 60 * 60 * 1000
MINUTE_MS = 60 * 1000


class RateLimitFeature(str, Enum):
    """Resource types guarded by the gate. Values are part of the record identifier."""

    OPTIMIZE = "optimize"
    IMPORT = "import"
    CREATE_SHARE = "createShare"
    GENERAL = "general"
    IMAGE_GENERATION = "imageGeneration"


class Tier(str, Enum):
    """Subscription level used to pick a rule for tiered features."""

    FREE = "free"
    BASIC = "basic"
    PRO = "pro"
    ADMIN = "admin"


# Features with one rule per tier; all others share a single "all" rule
TIERED_FEATURES = frozenset({RateLimitFeature.OPTIMIZE, RateLimitFeature.IMAGE_GENERATION})
ALL_TIERS_KEY = "all"


class RateLimitRule(BaseModel):
    """Resolved window/limit pair consumed by the gate."""

    window_ms: int = Field(gt=0)
    max_requests: int = Field(ge=0)
    message: str = ""
    enabled: bool = True


class RateLimitRuleUpdate(BaseModel):
    """Partial rule update from the admin API."""

    model_config = ConfigDict(extra="forbid")

    window_ms: int | None = Field(None, gt=0)
    max_requests: int | None = Field(None, ge=0)
    message: str | None = None
    enabled: bool | None = None


class FeatureLimits(BaseModel):
    """Feature switch plus its rules keyed by tier (or ``all``)."""

    enabled: bool = False
    rules: dict[str, RateLimitRule]


@dataclass
class RateLimitRecord:
    """Per-identifier counter for the current window."""

    identifier: str
    count: int
    reset_time: int  # Absolute timestamp (ms)


@dataclass(frozen=True)
class RateLimitResult:
    """Result of a single gate check.

    ``disabled`` distinguishes "allowed because limiting is off" from
    "allowed because under limit"; in that case remaining is -1 and reset_time 0.
    """

    allowed: bool
    remaining: int
    reset_time: int
    disabled: bool = False


class RateLimitExceededError(Exception):
    """Raised when a gated invocation is denied."""

    def __init__(self, message: str, reset_time: int) -> None:
        super().__init__(message)
        self.reset_time = reset_time
