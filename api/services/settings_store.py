"""
Settings Store — the global restriction policy configured from the admin panel.

One row, created with defaults on first access:
  - restrictions enabled
  - link lifespan 7 days
  - 10 forms per user per day

Updates are validated in full before anything is written. When the stored
policy ends up with restrictions enabled, existing forms are swept against it.
"""

from __future__ import annotations
import logging
from datetime import datetime

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from config import settings
from models.policy_settings import PolicySettings, POLICY_ROW_ID
from schemas.policy import PolicyUpdate
from services.errors import PolicyValidationError
from services.expiry import sweep_expired_forms

logger = logging.getLogger(__name__)

LIFESPAN_UNIT_MS = {
    "seconds": 1000,
    "minutes": 60 * 1000,
    "hours": 60 * 60 * 1000,
    "days": 24 * 60 * 60 * 1000,
}


def lifespan_to_ms(value: int, unit: str) -> int:
    if unit not in LIFESPAN_UNIT_MS:
        raise PolicyValidationError("link_lifespan_unit", f"Unit must be one of {', '.join(LIFESPAN_UNIT_MS)}")
    return value * LIFESPAN_UNIT_MS[unit]


def _is_positive_int(value) -> bool:
    return isinstance(value, int) and not isinstance(value, bool) and value > 0


def default_policy() -> PolicySettings:
    days = settings.DEFAULT_LINK_LIFESPAN_DAYS
    return PolicySettings(
        id=POLICY_ROW_ID,
        restrictions_enabled=settings.DEFAULT_RESTRICTIONS_ENABLED,
        link_lifespan_value=days,
        link_lifespan_unit="days",
        link_lifespan_ms=lifespan_to_ms(days, "days"),
        max_forms_per_user_per_day=settings.DEFAULT_MAX_FORMS_PER_DAY,
    )


def validate_policy_update(data: PolicyUpdate) -> dict:
    """
    Check an admin update and return the column values to write.

    Disabling restrictions leaves the stored lifespan and quota as they were,
    so they need not be sent.
    """
    if not data.restrictions_enabled:
        return {"restrictions_enabled": False}

    if not _is_positive_int(data.link_lifespan_value):
        raise PolicyValidationError("link_lifespan_value", "Lifespan must be a positive integer")
    if data.link_lifespan_unit not in LIFESPAN_UNIT_MS:
        raise PolicyValidationError(
            "link_lifespan_unit", f"Unit must be one of {', '.join(LIFESPAN_UNIT_MS)}"
        )
    if not _is_positive_int(data.max_forms_per_user_per_day):
        raise PolicyValidationError(
            "max_forms_per_user_per_day", "Max forms per day must be a positive integer"
        )

    return {
        "restrictions_enabled": True,
        "link_lifespan_value": data.link_lifespan_value,
        "link_lifespan_unit": data.link_lifespan_unit,
        "link_lifespan_ms": lifespan_to_ms(data.link_lifespan_value, data.link_lifespan_unit),
        "max_forms_per_user_per_day": data.max_forms_per_user_per_day,
    }


async def get_policy(db: AsyncSession) -> PolicySettings:
    result = await db.execute(select(PolicySettings).where(PolicySettings.id == POLICY_ROW_ID))
    policy = result.scalar_one_or_none()
    if policy is not None:
        return policy

    policy = default_policy()
    db.add(policy)
    try:
        await db.commit()
    except IntegrityError:
        # Another worker seeded the row first
        await db.rollback()
        result = await db.execute(select(PolicySettings).where(PolicySettings.id == POLICY_ROW_ID))
        return result.scalar_one()

    logger.info(
        "Seeded default policy: restrictions=%s lifespan=%sms max_forms=%s",
        policy.restrictions_enabled, policy.link_lifespan_ms, policy.max_forms_per_user_per_day,
    )
    return policy


async def update_policy(db: AsyncSession, data: PolicyUpdate, now: datetime) -> PolicySettings:
    values = validate_policy_update(data)

    policy = await get_policy(db)
    for column, value in values.items():
        setattr(policy, column, value)
    await db.commit()
    logger.info(
        "Policy updated: restrictions=%s lifespan=%sms max_forms=%s",
        policy.restrictions_enabled, policy.link_lifespan_ms, policy.max_forms_per_user_per_day,
    )

    await sweep_expired_forms(db, policy, now)
    return policy
