"""Subscription plans and per-plan feature limits."""

from dataclasses import dataclass
from typing import Literal

from pydantic import BaseModel

SubscriptionTier = Literal["free", "basic", "pro"]

UNLIMITED = -1

NumericFeature = Literal["max_prompts", "max_optimizations", "max_agents", "max_workflows"]
BooleanFeature = Literal[
    "version_control", "multi_model_comparison", "batch_operations", "data_export", "priority_support"
]


class PlanFeatures(BaseModel):
    """Feature set of a plan. Numeric limits use -1 for unlimited."""

    max_prompts: int
    max_optimizations: int  # Per calendar month
    max_agents: int
    max_workflows: int
    version_control: bool
    multi_model_comparison: bool
    batch_operations: bool
    data_export: bool
    priority_support: bool


class SubscriptionPlan(BaseModel):
    """Subscription plan."""

    id: SubscriptionTier
    name: str
    price: float
    interval: Literal["month", "year"] = "month"
    features: PlanFeatures


SUBSCRIPTION_PLANS: dict[str, SubscriptionPlan] = {
    "free": SubscriptionPlan(
        id="free",
        name="Free",
        price=0,
        features=PlanFeatures(
            max_prompts=50,
            max_optimizations=10,
            max_agents=10,
            max_workflows=10,
            version_control=False,
            multi_model_comparison=False,
            batch_operations=False,
            data_export=False,
            priority_support=False,
        ),
    ),
    "basic": SubscriptionPlan(
        id="basic",
        name="Basic",
        price=9.9,
        features=PlanFeatures(
            max_prompts=200,
            max_optimizations=100,
            max_agents=50,
            max_workflows=50,
            version_control=True,
            multi_model_comparison=False,
            batch_operations=False,
            data_export=True,
            priority_support=False,
        ),
    ),
    "pro": SubscriptionPlan(
        id="pro",
        name="Pro",
        price=19.9,
        features=PlanFeatures(
            max_prompts=UNLIMITED,
            max_optimizations=500,
            max_agents=UNLIMITED,
            max_workflows=UNLIMITED,
            version_control=True,
            multi_model_comparison=True,
            batch_operations=True,
            data_export=True,
            priority_support=True,
        ),
    ),
}


@dataclass(frozen=True)
class FeatureLimit:
    """Result of a plan limit check."""

    allowed: bool
    limit: int | bool


class QuotaExceededError(Exception):
    """Plan quota for a feature is used up."""

    def __init__(self, message: str, limit: int) -> None:
        super().__init__(message)
        self.limit = limit


def get_user_plan(tier: str | None) -> SubscriptionPlan:
    """Plan for tier; unknown or missing tiers get the free plan."""
    return SUBSCRIPTION_PLANS.get(tier or "free", SUBSCRIPTION_PLANS["free"])


def check_feature_limit(
    tier: str | None,
    feature: NumericFeature | BooleanFeature,
    current_count: int | None = None,
) -> FeatureLimit:
    """Check whether a user on ``tier`` may use ``feature``.

    Boolean features return their flag. Numeric features are allowed when
    unlimited, when no count is given, or when ``current_count`` is under the limit.
    """
    plan = get_user_plan(tier)
    value = getattr(plan.features, feature)
    if isinstance(value, bool):
        return FeatureLimit(allowed=value, limit=value)
    if value == UNLIMITED:
        return FeatureLimit(allowed=True, limit=UNLIMITED)
    if current_count is not None:
        return FeatureLimit(allowed=current_count < value, limit=value)
    return FeatureLimit(allowed=True, limit=value)
