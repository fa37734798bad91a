"""Rate limit API - admin configuration and per-user status."""

import logging
from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, Request
from pydantic import BaseModel

from src.api.container import get_container
from src.api.dependencies import AdminUser, CurrentUser, get_rate_limit_gate, limiter
from src.domain.entities.rate_limit import RateLimitFeature, RateLimitRuleUpdate
from src.infrastructure.ratelimit import RateLimitGate
from src.infrastructure.ratelimit.limits import PresetName

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/rate-limit", tags=["rate-limit"])

Gate = Annotated[RateLimitGate, Depends(get_rate_limit_gate)]


class GlobalSwitchRequest(BaseModel):
    enabled: bool


class PresetRequest(BaseModel):
    preset: PresetName


def _audit(user_id: int, action: str, details: dict) -> None:
    get_container().repository.create_audit_log(user_id, action, "rate_limit", details=details)


@router.get("/config")
@limiter.limit("60/minute")
async def get_config(request: Request, admin: AdminUser, gate: Gate) -> dict:
    """Global switch and every feature's rules."""
    return gate.get_config()


@router.put("/global")
@limiter.limit("30/minute")
async def set_global(request: Request, body: GlobalSwitchRequest, admin: AdminUser, gate: Gate) -> dict:
    """Turn rate limiting on or off for everyone."""
    gate.set_global_enabled(body.enabled)
    _audit(admin.id, "update", {"global_enabled": body.enabled})
    return {"ok": True, "global_enabled": gate.enabled}


@router.put("/config/{feature}/{tier}")
@limiter.limit("30/minute")
async def update_rule(
    request: Request,
    feature: RateLimitFeature,
    tier: str,
    body: RateLimitRuleUpdate,
    admin: AdminUser,
    gate: Gate,
) -> dict:
    """Update one rule. ``tier=enabled`` toggles the feature switch."""
    if not gate.update_rule(feature, tier, body):
        raise HTTPException(status_code=404, detail=f"No rule {feature.value}/{tier}")
    _audit(admin.id, "update", {"feature": feature.value, "tier": tier, **body.model_dump(exclude_none=True)})
    return {"ok": True}


@router.post("/preset")
@limiter.limit("10/minute")
async def apply_preset(request: Request, body: PresetRequest, admin: AdminUser, gate: Gate) -> dict:
    """Apply a quick-configuration preset."""
    gate.apply_preset(body.preset)
    _audit(admin.id, "update", {"preset": body.preset})
    return {"ok": True, "preset": body.preset}


@router.get("/records")
@limiter.limit("60/minute")
async def list_records(request: Request, admin: AdminUser, gate: Gate) -> list[dict]:
    """Current counter records (debugging)."""
    return gate.records()


@router.delete("/users/{user_id}")
@limiter.limit("30/minute")
async def reset_user(
    request: Request,
    user_id: int,
    admin: AdminUser,
    gate: Gate,
    feature: RateLimitFeature | None = None,
) -> dict:
    """Reset one user's counters, optionally for one feature."""
    removed = gate.reset_user(user_id, feature)
    _audit(admin.id, "delete", {"user_id": user_id, "feature": feature.value if feature else None})
    return {"ok": True, "removed": removed}


@router.delete("/records")
@limiter.limit("10/minute")
async def clear_records(request: Request, admin: AdminUser, gate: Gate) -> dict:
    """Drop every counter record."""
    gate.clear_all()
    _audit(admin.id, "delete", {"all_records": True})
    return {"ok": True}


@router.get("/me/{feature}")
@limiter.limit("60/minute")
async def my_status(request: Request, feature: RateLimitFeature, user: CurrentUser, gate: Gate) -> dict:
    """Caller's usage of ``feature`` in the current window."""
    return {
        "feature": feature.value,
        "enabled": gate.enabled and gate.get_config()["limits"][feature.value]["enabled"],
        **gate.get_status(user.id, feature, user.rate_limit_tier),
    }
