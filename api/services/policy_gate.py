"""
Policy Gate — Allow/Deny decisions for form creation and form access.

Creation:
  restrictions off        → allow
  owner exempt            → allow
  created today >= quota  → deny "quota exceeded"
  otherwise               → allow, form expires at now + lifespan

Access:
  form missing            → deny "not found"
  form expired (reaped)   → deny "expired"
  otherwise               → allow

Known property: the quota check and the creation record are not one
transaction, so two simultaneous creations at the boundary can both pass.
A small overshoot is accepted instead of serialising creations per user.
"""

from __future__ import annotations
import logging
from dataclasses import dataclass
from datetime import datetime
from enum import Enum

from sqlalchemy.ext.asyncio import AsyncSession

from models.form import FormConfig
from models.policy_settings import PolicySettings
from services.expiry import get_form, reap_if_expired, lifespan_of
from services.quota import count_today
from services.subscriptions import is_exempt

logger = logging.getLogger(__name__)


class DenyReason(str, Enum):
    QUOTA_EXCEEDED = "quota exceeded"
    NOT_FOUND = "not found"
    EXPIRED = "expired"


HTTP_STATUS_FOR_REASON = {
    DenyReason.QUOTA_EXCEEDED: 403,
    DenyReason.NOT_FOUND: 404,
    DenyReason.EXPIRED: 403,
}


@dataclass
class Decision:
    allowed: bool
    reason: DenyReason | None = None
    # Set on allowed creations: expiry to stamp on the new form (None = never)
    expires_at: datetime | None = None
    # Set on allowed access: the loaded form
    form: FormConfig | None = None

    @classmethod
    def allow(cls, **kwargs) -> "Decision":
        return cls(allowed=True, **kwargs)

    @classmethod
    def deny(cls, reason: DenyReason) -> "Decision":
        return cls(allowed=False, reason=reason)


def http_status_for(decision: Decision) -> int:
    if decision.allowed:
        return 200
    return HTTP_STATUS_FOR_REASON[decision.reason]


def decide_create(policy: PolicySettings, exempt: bool, created_today: int, now: datetime) -> Decision:
    """Pure creation rule; the async wrapper only gathers its inputs."""
    if not policy.restrictions_enabled or exempt:
        return Decision.allow()

    limit = policy.max_forms_per_user_per_day
    if limit is not None and created_today >= limit:
        return Decision.deny(DenyReason.QUOTA_EXCEEDED)

    lifespan = lifespan_of(policy)
    return Decision.allow(expires_at=now + lifespan if lifespan else None)


async def authorize_create(
    db: AsyncSession,
    user_id: str,
    policy: PolicySettings,
    now: datetime,
) -> Decision:
    if not policy.restrictions_enabled:
        return Decision.allow()

    if await is_exempt(db, user_id, now):
        return Decision.allow()

    created_today = await count_today(db, user_id, now)
    decision = decide_create(policy, False, created_today, now)
    if not decision.allowed:
        logger.info(
            "Form creation denied for user %s: %d/%s forms today",
            user_id, created_today, policy.max_forms_per_user_per_day,
        )
    return decision


async def authorize_access(
    db: AsyncSession,
    form_id: str,
    policy: PolicySettings,
    now: datetime,
) -> Decision:
    form = await get_form(db, form_id)
    if form is None:
        return Decision.deny(DenyReason.NOT_FOUND)

    if await reap_if_expired(db, form, policy, now):
        return Decision.deny(DenyReason.EXPIRED)

    return Decision.allow(form=form)
