"""
Expiry Evaluator — lazy, per-access form expiry.

Lifecycle of a form: ALIVE → EXPIRED → DELETED. Nothing runs on a timer;
every access re-evaluates the form against the current policy and reaps it
on the spot when its age exceeds the configured lifespan.

Rules (in order):
  - a missing form counts as expired
  - exempt owner or restrictions disabled → never expired
  - no lifespan configured → never expired (fail open)
  - otherwise expired iff now - created_at > lifespan
"""

from __future__ import annotations
import logging
from datetime import datetime, timedelta

from sqlalchemy import select, delete, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from models.form import FormConfig, FormCreationRecord, Submission
from models.policy_settings import PolicySettings
from services.subscriptions import is_exempt

logger = logging.getLogger(__name__)


# ── Pure rules ─────────────────────────────────────────────

def lifespan_of(policy: PolicySettings) -> timedelta | None:
    if not policy.link_lifespan_ms or policy.link_lifespan_ms <= 0:
        return None
    return timedelta(milliseconds=policy.link_lifespan_ms)


def is_form_expired(
    created_at: datetime,
    policy: PolicySettings,
    exempt: bool,
    now: datetime,
) -> bool:
    if exempt or not policy.restrictions_enabled:
        return False
    lifespan = lifespan_of(policy)
    if lifespan is None:
        return False
    return now - created_at > lifespan


def compute_expires_at(
    created_at: datetime,
    policy: PolicySettings,
    exempt: bool,
) -> datetime | None:
    if exempt or not policy.restrictions_enabled:
        return None
    lifespan = lifespan_of(policy)
    if lifespan is None:
        return None
    return created_at + lifespan


# ── Storage side ───────────────────────────────────────────

async def get_form(db: AsyncSession, form_id: str) -> FormConfig | None:
    result = await db.execute(select(FormConfig).where(FormConfig.form_id == form_id))
    return result.scalar_one_or_none()


async def delete_form_cascade(db: AsyncSession, form_id: str) -> None:
    """
    Delete a form, its creation record and its submissions.

    The form goes first and is committed on its own. Submission cleanup is
    best-effort: if it fails the rows are left orphaned for the next policy
    sweep and the caller is not interrupted. Deleting rows that no longer
    exist is a no-op, so concurrent reapers do not conflict.
    """
    await db.execute(delete(FormConfig).where(FormConfig.form_id == form_id))
    await db.execute(delete(FormCreationRecord).where(FormCreationRecord.form_id == form_id))
    await db.commit()

    try:
        await db.execute(delete(Submission).where(Submission.form_id == form_id))
        await db.commit()
    except SQLAlchemyError as e:
        await db.rollback()
        logger.warning("Form %s deleted but its submissions were not: %s", form_id, e)


async def reap_if_expired(
    db: AsyncSession,
    form: FormConfig,
    policy: PolicySettings,
    now: datetime,
    exempt: bool | None = None,
) -> bool:
    """Evaluate an already-loaded form; delete it and return True when expired."""
    if not policy.restrictions_enabled:
        return False
    if exempt is None:
        exempt = await is_exempt(db, form.user_id, now)
    if not is_form_expired(form.created_at, policy, exempt, now):
        return False

    logger.info(
        "Form %s (owner %s) expired: created %s, lifespan %sms",
        form.form_id, form.user_id, form.created_at.isoformat(), policy.link_lifespan_ms,
    )
    await delete_form_cascade(db, form.form_id)
    return True


async def check_and_reap(
    db: AsyncSession,
    form_id: str,
    policy: PolicySettings,
    now: datetime,
) -> bool:
    """Return True if the form is expired (or gone), reaping it when needed."""
    form = await get_form(db, form_id)
    if form is None:
        return True
    return await reap_if_expired(db, form, policy, now)


async def live_forms_for_owner(
    db: AsyncSession,
    user_id: str,
    policy: PolicySettings,
    now: datetime,
) -> list[FormConfig]:
    """The owner's forms, newest first. Expired ones are reaped and left out."""
    result = await db.execute(
        select(FormConfig).where(FormConfig.user_id == user_id).order_by(FormConfig.created_at.desc())
    )
    forms = result.scalars().all()

    exempt = await is_exempt(db, user_id, now) if policy.restrictions_enabled else False
    live = []
    for form in forms:
        if await reap_if_expired(db, form, policy, now, exempt=exempt):
            continue
        live.append(form)
    return live


# ── Batch sweep ────────────────────────────────────────────

async def purge_orphan_submissions(db: AsyncSession) -> int:
    """Remove submissions whose form no longer exists."""
    result = await db.execute(
        delete(Submission).where(Submission.form_id.not_in(select(FormConfig.form_id)))
    )
    await db.commit()
    purged = result.rowcount or 0
    if purged:
        logger.info("Purged %d orphaned submissions", purged)
    return purged


async def sweep_expired_forms(
    db: AsyncSession,
    policy: PolicySettings,
    now: datetime,
) -> int:
    """
    Apply `policy` to every stored form.

    With restrictions on, forms already past their recomputed expiry are
    deleted and the survivors get a fresh `expires_at`. With restrictions
    off, every `expires_at` is cleared. The batch is not atomic; anything
    left behind by a failure is picked up by the next sweep.

    Returns the number of forms deleted.
    """
    if not policy.restrictions_enabled:
        await db.execute(update(FormConfig).values(expires_at=None))
        await db.commit()
        logger.info("Restrictions disabled: cleared expiry on all forms")
        return 0

    forms = (await db.execute(select(FormConfig))).scalars().all()
    exempt_by_user: dict[str, bool] = {}
    reaped = 0

    for form in forms:
        if form.user_id not in exempt_by_user:
            exempt_by_user[form.user_id] = await is_exempt(db, form.user_id, now)
        exempt = exempt_by_user[form.user_id]

        if is_form_expired(form.created_at, policy, exempt, now):
            await delete_form_cascade(db, form.form_id)
            reaped += 1
        else:
            form.expires_at = compute_expires_at(form.created_at, policy, exempt)

    await db.commit()
    await purge_orphan_submissions(db)
    logger.info("Expiry sweep: %d of %d forms deleted", reaped, len(forms))
    return reaped
