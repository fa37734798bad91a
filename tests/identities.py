"""Caller identity headers used by API tests."""

USER_HEADERS = {"X-User-Id": "1", "X-User-Role": "user", "X-User-Tier": "free"}
ADMIN_HEADERS = {"X-User-Id": "99", "X-User-Role": "admin", "X-User-Tier": "pro"}
