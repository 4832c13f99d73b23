"""Tests for subscription state and the Paystack client."""

import sys
import os
sys.path.insert(0, os.path.join(os.path.dirname(__file__), "..", "api"))

import hashlib
import hmac
import pytest
from datetime import datetime, timedelta, timezone
from unittest.mock import AsyncMock, MagicMock, patch

from models.subscription import Subscription
from services.errors import PaymentGatewayError, UnknownPlanError
from services.subscriptions import (
    SUBSCRIPTION_PLANS, get_plan, plan_end_date, is_exempt,
    activate_subscription, deactivate_subscription, create_pending_subscription,
)
from services.paystack import initialize_transaction, verify_signature

NOW = datetime(2026, 3, 10, 12, 0, tzinfo=timezone.utc)


def make_db():
    db = MagicMock()
    db.execute = AsyncMock()
    db.commit = AsyncMock()
    return db


# ── Plans ──────────────────────────────────────────────────

def test_plan_periods():
    assert plan_end_date("premium-weekly", NOW) == NOW + timedelta(days=7)
    assert plan_end_date("premium-monthly", NOW) == NOW + timedelta(days=30)


def test_unknown_plan():
    with pytest.raises(UnknownPlanError):
        get_plan("gold-forever")


def test_plan_prices():
    assert SUBSCRIPTION_PLANS["premium-weekly"]["price"] == 80000
    assert SUBSCRIPTION_PLANS["premium-monthly"]["price"] == 300000


# ── Exemption ──────────────────────────────────────────────

@pytest.mark.asyncio
async def test_active_subscription_exempts_user():
    sub = Subscription(user_id="user-1", status="active", end_date=NOW + timedelta(days=1))
    with patch("services.subscriptions.get_active_subscription", AsyncMock(return_value=sub)):
        assert await is_exempt(make_db(), "user-1", NOW) is True


@pytest.mark.asyncio
async def test_no_active_subscription_not_exempt():
    with patch("services.subscriptions.get_active_subscription", AsyncMock(return_value=None)):
        assert await is_exempt(make_db(), "user-1", NOW) is False


@pytest.mark.asyncio
async def test_is_exempt_queries_by_user():
    result = MagicMock()
    result.scalar_one_or_none.return_value = None
    db = make_db()
    db.execute = AsyncMock(return_value=result)

    assert await is_exempt(db, "user-1", NOW) is False
    db.execute.assert_awaited_once()


# ── Lifecycle ──────────────────────────────────────────────

@pytest.mark.asyncio
async def test_pending_subscription_created():
    db = make_db()
    sub = await create_pending_subscription(db, "user-1", "a@b.com", "premium-weekly", "ref-1")
    assert sub.status == "pending"
    db.add.assert_called_once_with(sub)
    db.commit.assert_awaited_once()


@pytest.mark.asyncio
async def test_activation_sets_period_and_supersedes_others():
    pending = Subscription(user_id="user-1", plan_id="premium-weekly", reference="ref-1", status="pending")
    db = make_db()
    with patch("services.subscriptions.get_by_reference", AsyncMock(return_value=pending)):
        sub = await activate_subscription(db, "ref-1", "user-1", "premium-weekly", None, NOW)

    assert sub is pending
    assert sub.status == "active"
    assert sub.start_date == NOW
    assert sub.end_date == NOW + timedelta(days=7)
    # one UPDATE flipping the user's other active rows
    db.execute.assert_awaited_once()
    db.commit.assert_awaited_once()


@pytest.mark.asyncio
async def test_activation_for_unknown_reference_creates_row():
    db = make_db()
    with patch("services.subscriptions.get_by_reference", AsyncMock(return_value=None)):
        sub = await activate_subscription(
            db, "ref-9", "user-1", "premium-monthly", "a@b.com", NOW,
        )

    db.add.assert_called_once_with(sub)
    assert sub.reference == "ref-9"
    assert sub.end_date == NOW + timedelta(days=30)


@pytest.mark.asyncio
async def test_replayed_activation_is_noop():
    active = Subscription(
        user_id="user-1", plan_id="premium-weekly", reference="ref-1",
        status="active", start_date=NOW, end_date=NOW + timedelta(days=7),
    )
    db = make_db()
    with patch("services.subscriptions.get_by_reference", AsyncMock(return_value=active)):
        sub = await activate_subscription(
            db, "ref-1", "user-1", "premium-weekly", None, NOW + timedelta(days=1),
        )

    assert sub.start_date == NOW
    db.execute.assert_not_awaited()
    db.commit.assert_not_awaited()


@pytest.mark.asyncio
async def test_failed_charge_marks_pending_inactive():
    pending = Subscription(user_id="user-1", reference="ref-1", status="pending")
    db = make_db()
    with patch("services.subscriptions.get_by_reference", AsyncMock(return_value=pending)):
        sub = await deactivate_subscription(db, "ref-1")

    assert sub.status == "inactive"
    db.commit.assert_awaited_once()


@pytest.mark.asyncio
async def test_failed_charge_does_not_touch_active_subscription():
    active = Subscription(user_id="user-1", reference="ref-1", status="active")
    db = make_db()
    with patch("services.subscriptions.get_by_reference", AsyncMock(return_value=active)):
        await deactivate_subscription(db, "ref-1")

    assert active.status == "active"
    db.commit.assert_not_awaited()


# ── Paystack ───────────────────────────────────────────────

def test_signature_verification():
    body = b'{"event":"charge.success"}'
    with patch("services.paystack.settings") as mock_settings:
        mock_settings.PAYSTACK_SECRET_KEY = "sk_test_123"
        good = hmac.new(b"sk_test_123", body, hashlib.sha512).hexdigest()

        assert verify_signature(body, good) is True
        assert verify_signature(body, "0" * 128) is False
        assert verify_signature(body, None) is False


def test_signature_rejected_without_secret():
    body = b"{}"
    with patch("services.paystack.settings") as mock_settings:
        mock_settings.PAYSTACK_SECRET_KEY = ""
        assert verify_signature(body, "anything") is False


def _mock_client(status_code, body):
    resp = MagicMock(status_code=status_code)
    resp.json.return_value = body
    client = MagicMock()
    client.post = AsyncMock(return_value=resp)
    client_cls = MagicMock()
    client_cls.return_value.__aenter__ = AsyncMock(return_value=client)
    client_cls.return_value.__aexit__ = AsyncMock(return_value=False)
    return client_cls, client


@pytest.mark.asyncio
async def test_initialize_transaction_success():
    client_cls, client = _mock_client(200, {
        "status": True,
        "data": {"authorization_url": "https://checkout.paystack.com/x", "reference": "ref-1"},
    })
    with patch("services.paystack.httpx.AsyncClient", client_cls):
        tx = await initialize_transaction("a@b.com", 8000000, {"userId": "user-1"})

    assert tx == {"authorization_url": "https://checkout.paystack.com/x", "reference": "ref-1"}
    sent = client.post.call_args.kwargs["json"]
    assert sent["amount"] == 8000000
    assert sent["metadata"] == {"userId": "user-1"}


@pytest.mark.asyncio
async def test_initialize_transaction_rejected():
    client_cls, _ = _mock_client(400, {"status": False, "message": "Invalid key"})
    with patch("services.paystack.httpx.AsyncClient", client_cls):
        with pytest.raises(PaymentGatewayError):
            await initialize_transaction("a@b.com", 100, {})
