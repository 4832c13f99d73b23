"""Form management API endpoints — owner side."""

import logging
import uuid
from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy import select, delete, and_
from sqlalchemy.ext.asyncio import AsyncSession

from config import settings
from db.database import get_db
from dependencies.auth import CurrentUser, get_current_user
from dependencies.policy import current_policy, raise_for_decision
from models.form import FormConfig, Submission
from models.policy_settings import PolicySettings
from schemas import (
    FormCreate, FormUpdate, FormResponse, FormCreatedResponse, SubmissionResponse,
)
from services.clock import Clock, get_clock
from services.expiry import get_form, delete_form_cascade, live_forms_for_owner
from services.form_templates import (
    FORM_TEMPLATES, DEFAULT_BUTTON_MESSAGE,
    apply_form_defaults, generate_form_id, normalize_url,
)
from services.policy_gate import authorize_create, authorize_access
from services.quota import record_creation

router = APIRouter()
logger = logging.getLogger(__name__)

FORM_ID_ATTEMPTS = 10


async def _unique_form_id(db: AsyncSession) -> str:
    for _ in range(FORM_ID_ATTEMPTS):
        candidate = generate_form_id()
        if await get_form(db, candidate) is None:
            return candidate
    raise HTTPException(status_code=503, detail="Could not allocate a form link, please retry")


def _resolve_button_url(raw: str | None, action: str) -> str:
    """Normalized button URL; a URL button with an unusable URL is rejected."""
    if not raw:
        return ""
    normalized = normalize_url(raw)
    if normalized is None and action == "url":
        logger.info("Invalid button URL rejected: %s", raw)
        raise HTTPException(status_code=400, detail="Invalid URL provided")
    return normalized or ""


async def _owned_form(
    db: AsyncSession,
    form_id: str,
    user: CurrentUser,
    policy: PolicySettings,
    clock: Clock,
) -> FormConfig:
    decision = await authorize_access(db, form_id, policy, clock())
    raise_for_decision(decision)
    if decision.form.user_id != user.user_id:
        logger.warning("User %s denied access to form %s", user.user_id, form_id)
        raise HTTPException(status_code=403, detail="Access denied: Form does not belong to you")
    return decision.form


@router.get("/templates")
async def list_templates():
    """Available form templates and their fields."""
    return FORM_TEMPLATES


@router.post("/", response_model=FormCreatedResponse, status_code=201)
async def create_form(
    data: FormCreate,
    user: CurrentUser = Depends(get_current_user),
    policy: PolicySettings = Depends(current_policy),
    clock: Clock = Depends(get_clock),
    db: AsyncSession = Depends(get_db),
):
    """Create a form, subject to the daily quota, and return its shareable link."""
    now = clock()
    decision = await authorize_create(db, user.user_id, policy, now)
    raise_for_decision(
        decision,
        detail=f"Maximum form limit of {policy.max_forms_per_user_per_day} per day reached",
    )

    values = apply_form_defaults(data.model_dump(mode="json"))
    values["button_url"] = _resolve_button_url(values.get("button_url"), values["button_action"])
    values.setdefault("button_message", "")

    form_id = await _unique_form_id(db)
    form = FormConfig(
        form_id=form_id,
        user_id=user.user_id,
        created_at=now,
        expires_at=decision.expires_at,
        **values,
    )
    db.add(form)
    record_creation(db, user.user_id, form_id, now)
    await db.commit()

    logger.info("Form %s created for user %s (expires %s)", form_id, user.user_id, decision.expires_at)
    return FormCreatedResponse(
        form_id=form_id,
        url=f"{settings.PUBLIC_BASE_URL.rstrip('/')}/f/{form_id}",
        expires_at=decision.expires_at,
    )


@router.get("/", response_model=list[FormResponse])
async def list_my_forms(
    user: CurrentUser = Depends(get_current_user),
    policy: PolicySettings = Depends(current_policy),
    clock: Clock = Depends(get_clock),
    db: AsyncSession = Depends(get_db),
):
    """The caller's live forms. Expired ones are reaped on the way."""
    return await live_forms_for_owner(db, user.user_id, policy, clock())


@router.get("/{form_id}", response_model=FormResponse)
async def get_my_form(
    form_id: str,
    user: CurrentUser = Depends(get_current_user),
    policy: PolicySettings = Depends(current_policy),
    clock: Clock = Depends(get_clock),
    db: AsyncSession = Depends(get_db),
):
    return await _owned_form(db, form_id, user, policy, clock)


@router.put("/{form_id}", response_model=FormResponse)
async def update_form(
    form_id: str,
    data: FormUpdate,
    user: CurrentUser = Depends(get_current_user),
    policy: PolicySettings = Depends(current_policy),
    clock: Clock = Depends(get_clock),
    db: AsyncSession = Depends(get_db),
):
    """Update presentation fields. Lifecycle fields cannot be changed here."""
    form = await _owned_form(db, form_id, user, policy, clock)

    changes = data.model_dump(mode="json", exclude_none=True)
    if "button_url" in changes:
        action = changes.get("button_action", form.button_action)
        changes["button_url"] = _resolve_button_url(changes["button_url"], action)

    for key, value in changes.items():
        setattr(form, key, value)
    if form.button_action == "message" and not form.button_message:
        form.button_message = DEFAULT_BUTTON_MESSAGE
    form.updated_at = clock()

    await db.commit()
    logger.info("Form %s updated by user %s", form_id, user.user_id)
    return form


@router.delete("/{form_id}")
async def delete_form(
    form_id: str,
    user: CurrentUser = Depends(get_current_user),
    policy: PolicySettings = Depends(current_policy),
    clock: Clock = Depends(get_clock),
    db: AsyncSession = Depends(get_db),
):
    """Delete a form together with its submissions."""
    await _owned_form(db, form_id, user, policy, clock)
    await delete_form_cascade(db, form_id)
    logger.info("Form %s deleted by user %s", form_id, user.user_id)
    return {"message": "Form and associated submissions deleted successfully"}


@router.get("/{form_id}/submissions", response_model=list[SubmissionResponse])
async def list_form_submissions(
    form_id: str,
    user: CurrentUser = Depends(get_current_user),
    policy: PolicySettings = Depends(current_policy),
    clock: Clock = Depends(get_clock),
    db: AsyncSession = Depends(get_db),
):
    await _owned_form(db, form_id, user, policy, clock)
    result = await db.execute(
        select(Submission).where(Submission.form_id == form_id).order_by(Submission.timestamp.desc())
    )
    return result.scalars().all()


@router.delete("/{form_id}/submissions/{submission_id}")
async def delete_submission(
    form_id: str,
    submission_id: uuid.UUID,
    user: CurrentUser = Depends(get_current_user),
    policy: PolicySettings = Depends(current_policy),
    clock: Clock = Depends(get_clock),
    db: AsyncSession = Depends(get_db),
):
    await _owned_form(db, form_id, user, policy, clock)
    result = await db.execute(
        delete(Submission).where(and_(
            Submission.id == submission_id,
            Submission.form_id == form_id,
            Submission.user_id == user.user_id,
        ))
    )
    if not result.rowcount:
        raise HTTPException(status_code=404, detail="Submission not found")

    await db.commit()
    logger.info("Submission %s on form %s deleted by user %s", submission_id, form_id, user.user_id)
    return {"message": "Submission deleted successfully"}
