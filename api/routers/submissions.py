"""Submission inbox for form owners."""

from fastapi import APIRouter, Depends
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from db.database import get_db
from dependencies.auth import CurrentUser, get_current_user
from dependencies.policy import current_policy
from models.form import Submission
from models.policy_settings import PolicySettings
from schemas import SubmissionResponse
from services.clock import Clock, get_clock
from services.expiry import live_forms_for_owner

router = APIRouter()


@router.get("/", response_model=list[SubmissionResponse])
async def list_my_submissions(
    skip: int = 0,
    limit: int = 100,
    user: CurrentUser = Depends(get_current_user),
    policy: PolicySettings = Depends(current_policy),
    clock: Clock = Depends(get_clock),
    db: AsyncSession = Depends(get_db),
):
    """
    Submissions received on the caller's live forms, newest first.

    Submissions whose form is gone (orphans of a failed cascade) or has just
    expired are not listed.
    """
    forms = await live_forms_for_owner(db, user.user_id, policy, clock())
    if not forms:
        return []

    result = await db.execute(
        select(Submission)
        .where(
            Submission.user_id == user.user_id,
            Submission.form_id.in_([form.form_id for form in forms]),
        )
        .order_by(Submission.timestamp.desc())
        .offset(skip).limit(limit)
    )
    return result.scalars().all()
