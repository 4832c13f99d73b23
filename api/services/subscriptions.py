"""
Subscription Oracle — who is currently exempt from form restrictions.

A user is exempt while they hold an `active` subscription whose `end_date`
lies in the future. Activation happens when the payment gateway confirms a
charge; activating a row flips any other active rows of the same user to
`inactive` so at most one is live at a time.
"""

from __future__ import annotations
import logging
from datetime import datetime, timedelta

from sqlalchemy import select, update, and_
from sqlalchemy.ext.asyncio import AsyncSession

from models.subscription import Subscription
from services.errors import UnknownPlanError

logger = logging.getLogger(__name__)

# Prices are in naira; the gateway is charged in kobo (x100)
SUBSCRIPTION_PLANS = {
    "premium-weekly": {
        "name": "Premium Weekly",
        "price": 80000,
        "billing_period": "weekly",
        "period_days": 7,
    },
    "premium-monthly": {
        "name": "Premium Monthly",
        "price": 300000,
        "billing_period": "monthly",
        "period_days": 30,
    },
}


def get_plan(plan_id: str) -> dict:
    plan = SUBSCRIPTION_PLANS.get(plan_id)
    if plan is None:
        raise UnknownPlanError(f"Invalid plan ID: {plan_id}")
    return plan


def plan_end_date(plan_id: str, start: datetime) -> datetime:
    return start + timedelta(days=get_plan(plan_id)["period_days"])


def _active_query(user_id: str, now: datetime):
    return (
        select(Subscription)
        .where(and_(
            Subscription.user_id == user_id,
            Subscription.status == "active",
            Subscription.end_date > now,
        ))
        .order_by(Subscription.created_at.desc())
        .limit(1)
    )


async def get_active_subscription(db: AsyncSession, user_id: str, now: datetime) -> Subscription | None:
    """Most recently created active, unexpired subscription for the user."""
    result = await db.execute(_active_query(user_id, now))
    return result.scalar_one_or_none()


async def is_exempt(db: AsyncSession, user_id: str, now: datetime) -> bool:
    return await get_active_subscription(db, user_id, now) is not None


async def get_by_reference(db: AsyncSession, reference: str) -> Subscription | None:
    result = await db.execute(select(Subscription).where(Subscription.reference == reference))
    return result.scalar_one_or_none()


async def create_pending_subscription(
    db: AsyncSession,
    user_id: str,
    email: str,
    plan_id: str,
    reference: str,
) -> Subscription:
    """Record a payment initiation. The row stays `pending` until the webhook arrives."""
    get_plan(plan_id)
    sub = Subscription(
        user_id=user_id,
        email=email,
        plan_id=plan_id,
        reference=reference,
        status="pending",
    )
    db.add(sub)
    await db.commit()
    logger.info("Pending subscription created: user=%s plan=%s ref=%s", user_id, plan_id, reference)
    return sub


async def activate_subscription(
    db: AsyncSession,
    reference: str,
    user_id: str,
    plan_id: str,
    email: str | None,
    now: datetime,
) -> Subscription:
    """
    Mark the subscription for `reference` active from `now` for the plan period.

    Replayed webhooks are no-ops. A confirmation for a reference we never saw
    (payment started outside this API) creates the row on the fly.
    """
    end_date = plan_end_date(plan_id, now)

    sub = await get_by_reference(db, reference)
    if sub is not None and sub.status == "active":
        logger.info("Subscription %s already active, ignoring replay", reference)
        return sub

    if sub is None:
        sub = Subscription(
            user_id=user_id,
            email=email,
            plan_id=plan_id,
            reference=reference,
        )
        db.add(sub)

    sub.status = "active"
    sub.start_date = now
    sub.end_date = end_date

    # Supersede whatever was active before
    await db.execute(
        update(Subscription)
        .where(and_(
            Subscription.user_id == user_id,
            Subscription.status == "active",
            Subscription.reference != reference,
        ))
        .values(status="inactive")
    )
    await db.commit()
    logger.info(
        "Subscription activated: user=%s plan=%s ref=%s until=%s",
        user_id, plan_id, reference, end_date.isoformat(),
    )
    return sub


async def deactivate_subscription(db: AsyncSession, reference: str) -> Subscription | None:
    """Failed or reversed charge: the pending row becomes inactive."""
    sub = await get_by_reference(db, reference)
    if sub is None:
        logger.warning("Deactivation for unknown reference %s", reference)
        return None
    if sub.status == "active":
        logger.warning("Ignoring failure event for already active subscription %s", reference)
        return sub
    sub.status = "inactive"
    await db.commit()
    logger.info("Subscription deactivated: user=%s ref=%s", sub.user_id, reference)
    return sub


async def list_subscriptions(db: AsyncSession, skip: int = 0, limit: int = 100) -> list[Subscription]:
    result = await db.execute(
        select(Subscription).offset(skip).limit(limit).order_by(Subscription.created_at.desc())
    )
    return list(result.scalars().all())
