"""
Share link lifecycle.

Per task, the share dimension is a small state machine:

    Unshared --share--> Active(expiry)
    Active(expiry) --share--> Active(expiry)       (not renewed)
    Active(expiry) --time passes--> Expired        (record kept, not public)
    Expired --share--> Active(now + ttl)

A task is publicly visible only while `share_expires_at` is strictly in the future.
"""

from datetime import UTC, datetime, timedelta

from app.config import settings
from app.models.base import ensure_utc


def is_share_active(expires_at: datetime | None, now: datetime | None = None) -> bool:
    if expires_at is None:
        return False
    now = now or datetime.now(UTC)
    return ensure_utc(expires_at) > ensure_utc(now)


def resolve_share_expiry(
    current: datetime | None,
    now: datetime | None = None,
    ttl: timedelta | None = None,
) -> tuple[datetime, bool]:
    """
    Return (expiry, changed). An active link keeps its expiry; an unset or
    expired one is (re)activated for `ttl` (SHARE_LINK_TTL_DAYS by default).
    """
    now = ensure_utc(now or datetime.now(UTC))
    if is_share_active(current, now):
        return ensure_utc(current), False
    ttl = ttl or timedelta(days=settings.share_link_ttl_days)
    return now + ttl, True


def build_share_url(base_url: str, task_id) -> str:
    return f"{base_url.rstrip('/')}/share/{task_id}"
