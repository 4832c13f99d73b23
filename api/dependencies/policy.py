"""FastAPI dependencies that hand the policy engine its inputs, and map its decisions to HTTP."""

from fastapi import Depends, HTTPException
from sqlalchemy.ext.asyncio import AsyncSession

from db.database import get_db
from models.policy_settings import PolicySettings
from services.policy_gate import Decision, DenyReason, http_status_for
from services.settings_store import get_policy

DENY_DETAIL = {
    DenyReason.NOT_FOUND: "Form not found",
    DenyReason.EXPIRED: "Form has expired",
    DenyReason.QUOTA_EXCEEDED: "Daily form limit reached",
}


async def current_policy(db: AsyncSession = Depends(get_db)) -> PolicySettings:
    return await get_policy(db)


def raise_for_decision(decision: Decision, detail: str | None = None) -> None:
    if decision.allowed:
        return
    raise HTTPException(
        status_code=http_status_for(decision),
        detail=detail or DENY_DETAIL[decision.reason],
    )
