"""
Public form links — what visitors of a shared /f/<form_id> URL hit.

No authentication. Every request goes through the access gate, so an expired
link is reaped on first touch and answers like the policy says it should.
"""

import logging
from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.ext.asyncio import AsyncSession

from db.database import get_db
from dependencies.policy import current_policy, raise_for_decision
from models.form import Submission
from models.policy_settings import PolicySettings
from schemas import PublicFormResponse
from services.clock import Clock, get_clock
from services.errors import SubmissionValidationError
from services.form_templates import validate_submission
from services.policy_gate import authorize_access

router = APIRouter()
logger = logging.getLogger(__name__)


@router.get("/{form_id}", response_model=PublicFormResponse)
async def view_form(
    form_id: str,
    policy: PolicySettings = Depends(current_policy),
    clock: Clock = Depends(get_clock),
    db: AsyncSession = Depends(get_db),
):
    decision = await authorize_access(db, form_id, policy, clock())
    raise_for_decision(decision)
    return decision.form


@router.post("/{form_id}/submit")
async def submit_form(
    form_id: str,
    form_data: dict,
    policy: PolicySettings = Depends(current_policy),
    clock: Clock = Depends(get_clock),
    db: AsyncSession = Depends(get_db),
):
    """Validate visitor input against the form's template and store it for the owner."""
    now = clock()
    decision = await authorize_access(db, form_id, policy, now)
    raise_for_decision(decision)
    form = decision.form

    try:
        entries = validate_submission(form.template, form_data)
    except SubmissionValidationError as e:
        raise HTTPException(status_code=400, detail=e.message)

    submission = Submission(
        user_id=form.user_id,
        form_id=form.form_id,
        data=entries,
        timestamp=now,
    )
    db.add(submission)
    await db.commit()

    logger.info("Submission stored for form %s (%d fields)", form_id, len(entries))
    if form.button_action == "url" and form.button_url:
        return {"success": True, "redirect_url": form.button_url}
    return {"success": True, "message": form.button_message}
