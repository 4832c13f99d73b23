"""
Subscription endpoints — plan catalogue, Paystack checkout and its webhook.

Flow:
  1. POST /initiate → Paystack transaction + pending subscription row
  2. User pays on Paystack's hosted page
  3. Paystack POSTs /webhook → subscription activated (or marked inactive)
"""

import json
import logging
from fastapi import APIRouter, Depends, HTTPException, Request
from sqlalchemy.ext.asyncio import AsyncSession

from db.database import get_db
from dependencies.auth import CurrentUser, get_current_user
from schemas import (
    PlanResponse, PaymentInitiateRequest, PaymentInitiateResponse,
    SubscriptionResponse, SubscriptionStatusResponse,
)
from services.clock import Clock, get_clock
from services.errors import PaymentGatewayError, UnknownPlanError
from services.paystack import initialize_transaction, verify_signature
from services.subscriptions import (
    SUBSCRIPTION_PLANS, get_plan, get_active_subscription,
    create_pending_subscription, activate_subscription, deactivate_subscription,
)

router = APIRouter()
logger = logging.getLogger(__name__)


@router.get("/plans", response_model=list[PlanResponse])
async def list_plans():
    return [
        PlanResponse(id=plan_id, name=p["name"], price=p["price"], billing_period=p["billing_period"])
        for plan_id, p in SUBSCRIPTION_PLANS.items()
    ]


@router.post("/initiate", response_model=PaymentInitiateResponse)
async def initiate_payment(
    req: PaymentInitiateRequest,
    user: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Start a Paystack checkout for a plan and record the pending subscription."""
    try:
        plan = get_plan(req.plan_id)
    except UnknownPlanError as e:
        raise HTTPException(status_code=400, detail=str(e))
    if req.price != plan["price"]:
        raise HTTPException(status_code=400, detail="Price mismatch")
    if user.email and req.email.lower() != user.email.lower():
        raise HTTPException(status_code=400, detail="Email mismatch")

    metadata = {
        "userId": user.user_id,
        "planId": req.plan_id,
        "billingPeriod": plan["billing_period"],
    }
    try:
        tx = await initialize_transaction(req.email, plan["price"] * 100, metadata)
    except PaymentGatewayError as e:
        raise HTTPException(status_code=502, detail=f"Failed to initiate payment: {e}")

    await create_pending_subscription(db, user.user_id, req.email, req.plan_id, tx["reference"])
    return PaymentInitiateResponse(
        message="Payment initiated",
        authorization_url=tx["authorization_url"],
        reference=tx["reference"],
    )


@router.post("/webhook")
async def paystack_webhook(
    request: Request,
    clock: Clock = Depends(get_clock),
    db: AsyncSession = Depends(get_db),
):
    """
    Called BY Paystack. The body must carry a valid x-paystack-signature.

    charge.success activates the subscription, charge.failed marks it inactive,
    every other event is acknowledged and ignored.
    """
    raw_body = await request.body()
    if not verify_signature(raw_body, request.headers.get("x-paystack-signature")):
        logger.warning("Rejected Paystack webhook with bad signature")
        raise HTTPException(status_code=400, detail="Invalid signature")

    try:
        payload = json.loads(raw_body)
    except ValueError:
        raise HTTPException(status_code=400, detail="Invalid JSON body")

    event = payload.get("event")
    data = payload.get("data") or {}
    reference = data.get("reference")

    if event == "charge.success":
        metadata = data.get("metadata") or {}
        user_id, plan_id = metadata.get("userId"), metadata.get("planId")
        if not reference or not user_id or not plan_id:
            raise HTTPException(status_code=400, detail="Invalid webhook payload")
        try:
            await activate_subscription(
                db, reference, str(user_id), plan_id,
                (data.get("customer") or {}).get("email"), clock(),
            )
        except UnknownPlanError as e:
            raise HTTPException(status_code=400, detail=str(e))
    elif event == "charge.failed":
        if not reference:
            raise HTTPException(status_code=400, detail="Invalid webhook payload")
        await deactivate_subscription(db, reference)
    else:
        logger.info("Ignoring Paystack event %s", event)

    return {"status": "ok"}


@router.get("/status", response_model=SubscriptionStatusResponse)
async def subscription_status(
    user: CurrentUser = Depends(get_current_user),
    clock: Clock = Depends(get_clock),
    db: AsyncSession = Depends(get_db),
):
    sub = await get_active_subscription(db, user.user_id, clock())
    if sub is None:
        return SubscriptionStatusResponse(status="inactive", message="No active subscription")
    return SubscriptionStatusResponse(
        status="active",
        subscription=SubscriptionResponse.model_validate(sub),
        message=f"Active until {sub.end_date.isoformat()}",
    )
