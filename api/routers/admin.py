"""Admin panel API endpoints — restriction policy and platform overview."""

import logging
from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy import select, func
from sqlalchemy.ext.asyncio import AsyncSession

from db.database import get_db
from models.form import FormConfig
from schemas import SubscriptionResponse
from schemas.policy import PolicyUpdate, PolicyResponse, FormCountResponse
from services.clock import Clock, get_clock
from services.errors import PolicyValidationError
from services.settings_store import get_policy, update_policy
from services.subscriptions import list_subscriptions

router = APIRouter()
logger = logging.getLogger(__name__)


@router.get("/settings", response_model=PolicyResponse)
async def read_settings(db: AsyncSession = Depends(get_db)):
    return await get_policy(db)


@router.put("/settings", response_model=PolicyResponse)
async def write_settings(
    data: PolicyUpdate,
    clock: Clock = Depends(get_clock),
    db: AsyncSession = Depends(get_db),
):
    """
    Replace the restriction policy.

    The whole update is validated first; on failure nothing is stored and the
    response names the offending field. A stored update sweeps existing forms.
    """
    try:
        return await update_policy(db, data, clock())
    except PolicyValidationError as e:
        logger.info("Policy update rejected: %s", e)
        raise HTTPException(status_code=422, detail={"field": e.field, "message": e.message})


@router.get("/forms/count", response_model=FormCountResponse)
async def count_forms(db: AsyncSession = Depends(get_db)):
    result = await db.execute(select(func.count(FormConfig.id)))
    return FormCountResponse(form_count=result.scalar() or 0)


@router.get("/subscriptions", response_model=list[SubscriptionResponse])
async def all_subscriptions(
    skip: int = 0,
    limit: int = 100,
    db: AsyncSession = Depends(get_db),
):
    return await list_subscriptions(db, skip=skip, limit=limit)
