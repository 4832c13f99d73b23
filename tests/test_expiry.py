"""Tests for the expiry evaluator (mocked DB session)."""

import sys
import os
sys.path.insert(0, os.path.join(os.path.dirname(__file__), "..", "api"))

import pytest
from datetime import datetime, timedelta, timezone
from unittest.mock import AsyncMock, MagicMock, patch
from sqlalchemy.exc import SQLAlchemyError

from models.form import FormConfig
from models.policy_settings import PolicySettings
from services.expiry import (
    is_form_expired, compute_expires_at, lifespan_of,
    delete_form_cascade, reap_if_expired, check_and_reap, sweep_expired_forms,
    live_forms_for_owner,
)

NOW = datetime(2026, 3, 10, 12, 0, tzinfo=timezone.utc)


def make_policy(enabled=True, lifespan_ms=1000, max_forms=2):
    return PolicySettings(
        restrictions_enabled=enabled,
        link_lifespan_ms=lifespan_ms,
        max_forms_per_user_per_day=max_forms,
    )


def make_form(form_id="abc123", user_id="user-1", age=timedelta(0)):
    return FormConfig(form_id=form_id, user_id=user_id, created_at=NOW - age)


def make_db():
    db = MagicMock()
    db.execute = AsyncMock(return_value=MagicMock(rowcount=0))
    db.commit = AsyncMock()
    db.rollback = AsyncMock()
    return db


# ── Pure rules ─────────────────────────────────────────────

def test_not_expired_just_inside_lifespan():
    created = NOW - timedelta(milliseconds=999)
    assert is_form_expired(created, make_policy(), exempt=False, now=NOW) is False


def test_expired_just_past_lifespan():
    created = NOW - timedelta(milliseconds=1001)
    assert is_form_expired(created, make_policy(), exempt=False, now=NOW) is True


def test_exactly_at_lifespan_is_still_alive():
    created = NOW - timedelta(milliseconds=1000)
    assert is_form_expired(created, make_policy(), exempt=False, now=NOW) is False


def test_exempt_owner_never_expires():
    created = NOW - timedelta(days=365)
    assert is_form_expired(created, make_policy(), exempt=True, now=NOW) is False


def test_disabled_restrictions_never_expire():
    created = NOW - timedelta(days=365)
    assert is_form_expired(created, make_policy(enabled=False), exempt=False, now=NOW) is False


def test_missing_lifespan_fails_open():
    created = NOW - timedelta(days=365)
    assert lifespan_of(make_policy(lifespan_ms=None)) is None
    assert lifespan_of(make_policy(lifespan_ms=0)) is None
    assert is_form_expired(created, make_policy(lifespan_ms=None), exempt=False, now=NOW) is False


def test_compute_expires_at():
    policy = make_policy(lifespan_ms=60_000)
    assert compute_expires_at(NOW, policy, exempt=False) == NOW + timedelta(minutes=1)
    assert compute_expires_at(NOW, policy, exempt=True) is None
    assert compute_expires_at(NOW, make_policy(enabled=False), exempt=False) is None


# ── Reaping ────────────────────────────────────────────────

@pytest.mark.asyncio
async def test_check_and_reap_missing_form_counts_as_expired():
    db = make_db()
    with patch("services.expiry.get_form", AsyncMock(return_value=None)):
        assert await check_and_reap(db, "gone", make_policy(), NOW) is True
        # Repeating it is harmless
        assert await check_and_reap(db, "gone", make_policy(), NOW) is True
    db.commit.assert_not_awaited()


@pytest.mark.asyncio
async def test_reap_deletes_expired_form():
    db = make_db()
    form = make_form(age=timedelta(seconds=2))
    with patch("services.expiry.is_exempt", AsyncMock(return_value=False)), \
         patch("services.expiry.delete_form_cascade", AsyncMock()) as mock_cascade:
        assert await reap_if_expired(db, form, make_policy(), NOW) is True
        mock_cascade.assert_awaited_once_with(db, "abc123")


@pytest.mark.asyncio
async def test_reap_keeps_exempt_owners_form():
    db = make_db()
    form = make_form(age=timedelta(days=30))
    with patch("services.expiry.is_exempt", AsyncMock(return_value=True)), \
         patch("services.expiry.delete_form_cascade", AsyncMock()) as mock_cascade:
        assert await reap_if_expired(db, form, make_policy(), NOW) is False
        mock_cascade.assert_not_awaited()


@pytest.mark.asyncio
async def test_reap_skips_exemption_lookup_when_disabled():
    db = make_db()
    form = make_form(age=timedelta(days=30))
    with patch("services.expiry.is_exempt", AsyncMock()) as mock_exempt:
        assert await reap_if_expired(db, form, make_policy(enabled=False), NOW) is False
        mock_exempt.assert_not_awaited()


@pytest.mark.asyncio
async def test_cascade_deletes_form_record_and_submissions():
    db = make_db()
    await delete_form_cascade(db, "abc123")
    tables = [c.args[0].table.name for c in db.execute.await_args_list]
    assert tables == ["form_configs", "form_creation_records", "submissions"]
    assert db.commit.await_count == 2
    db.rollback.assert_not_awaited()


@pytest.mark.asyncio
async def test_cascade_tolerates_submission_delete_failure():
    db = make_db()
    db.execute = AsyncMock(side_effect=[MagicMock(), MagicMock(), SQLAlchemyError("db gone")])

    await delete_form_cascade(db, "abc123")

    # The form itself was committed before the failure
    assert db.commit.await_count == 1
    db.rollback.assert_awaited_once()


@pytest.mark.asyncio
async def test_reaping_a_stored_form_removes_its_submissions_and_stays_idempotent():
    db = make_db()
    form = make_form(age=timedelta(milliseconds=1001))
    with patch("services.expiry.get_form", AsyncMock(side_effect=[form, None])), \
         patch("services.expiry.is_exempt", AsyncMock(return_value=False)):
        assert await check_and_reap(db, "abc123", make_policy(lifespan_ms=1000), NOW) is True
        deleted = [c.args[0] for c in db.execute.await_args_list]
        # Second call finds nothing left and touches nothing
        assert await check_and_reap(db, "abc123", make_policy(lifespan_ms=1000), NOW) is True

    assert db.execute.await_count == len(deleted)
    submission_deletes = [
        stmt for stmt in deleted
        if stmt.table.name == "submissions"
        and "submissions.form_id = 'abc123'" in str(stmt.compile(compile_kwargs={"literal_binds": True}))
    ]
    assert len(submission_deletes) == 1
    assert {stmt.table.name for stmt in deleted} == {"form_configs", "form_creation_records", "submissions"}


@pytest.mark.asyncio
async def test_form_inside_lifespan_survives_check():
    db = make_db()
    form = make_form(age=timedelta(milliseconds=999))
    with patch("services.expiry.get_form", AsyncMock(return_value=form)), \
         patch("services.expiry.is_exempt", AsyncMock(return_value=False)):
        assert await check_and_reap(db, "abc123", make_policy(lifespan_ms=1000), NOW) is False
    db.execute.assert_not_awaited()


@pytest.mark.asyncio
async def test_live_forms_for_owner_reaps_expired():
    old = make_form(form_id="old111", age=timedelta(seconds=5))
    fresh = make_form(form_id="new222", age=timedelta(milliseconds=10))
    result = MagicMock()
    result.scalars.return_value.all.return_value = [fresh, old]
    db = make_db()
    db.execute = AsyncMock(return_value=result)

    with patch("services.expiry.is_exempt", AsyncMock(return_value=False)) as mock_exempt, \
         patch("services.expiry.delete_form_cascade", AsyncMock()) as mock_cascade:
        live = await live_forms_for_owner(db, "user-1", make_policy(), NOW)

    assert live == [fresh]
    mock_cascade.assert_awaited_once_with(db, "old111")
    mock_exempt.assert_awaited_once()


# ── Sweep ──────────────────────────────────────────────────

@pytest.mark.asyncio
async def test_sweep_deletes_expired_and_restamps_survivors():
    old = make_form(form_id="old111", age=timedelta(hours=2))
    fresh = make_form(form_id="new222", age=timedelta(minutes=10))
    policy = make_policy(lifespan_ms=60 * 60 * 1000)

    result = MagicMock(rowcount=0)
    result.scalars.return_value.all.return_value = [old, fresh]
    db = make_db()
    db.execute = AsyncMock(return_value=result)

    with patch("services.expiry.is_exempt", AsyncMock(return_value=False)) as mock_exempt, \
         patch("services.expiry.delete_form_cascade", AsyncMock()) as mock_cascade:
        reaped = await sweep_expired_forms(db, policy, NOW)

    assert reaped == 1
    mock_cascade.assert_awaited_once_with(db, "old111")
    assert fresh.expires_at == fresh.created_at + timedelta(hours=1)
    # One exemption lookup per owner
    mock_exempt.assert_awaited_once()


@pytest.mark.asyncio
async def test_sweep_keeps_forms_of_exempt_owner():
    old = make_form(form_id="old111", user_id="premium", age=timedelta(days=3))
    result = MagicMock(rowcount=0)
    result.scalars.return_value.all.return_value = [old]
    db = make_db()
    db.execute = AsyncMock(return_value=result)

    with patch("services.expiry.is_exempt", AsyncMock(return_value=True)), \
         patch("services.expiry.delete_form_cascade", AsyncMock()) as mock_cascade:
        reaped = await sweep_expired_forms(db, make_policy(), NOW)

    assert reaped == 0
    mock_cascade.assert_not_awaited()
    assert old.expires_at is None


@pytest.mark.asyncio
async def test_sweep_with_restrictions_off_clears_expiry():
    db = make_db()
    with patch("services.expiry.delete_form_cascade", AsyncMock()) as mock_cascade:
        reaped = await sweep_expired_forms(db, make_policy(enabled=False), NOW)

    assert reaped == 0
    db.execute.assert_awaited_once()
    db.commit.assert_awaited_once()
    mock_cascade.assert_not_awaited()
