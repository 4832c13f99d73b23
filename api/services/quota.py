"""
Quota Counter — forms created by a user during the current calendar day.

The day is the server's local wall-clock day: [local midnight, +24h).
Counting and recording are separate calls so a denied attempt is never
counted; the create endpoint records only after the gate allows it.
"""

from __future__ import annotations
from datetime import datetime, timedelta

from sqlalchemy import select, func, and_
from sqlalchemy.ext.asyncio import AsyncSession

from models.form import FormCreationRecord


def day_bounds(now: datetime) -> tuple[datetime, datetime]:
    """Return (local midnight, next local midnight) for the day containing `now`."""
    start = now.replace(hour=0, minute=0, second=0, microsecond=0)
    return start, start + timedelta(hours=24)


async def count_today(db: AsyncSession, user_id: str, now: datetime) -> int:
    start, end = day_bounds(now)
    result = await db.execute(
        select(func.count(FormCreationRecord.id)).where(and_(
            FormCreationRecord.user_id == user_id,
            FormCreationRecord.created_at >= start,
            FormCreationRecord.created_at < end,
        ))
    )
    return result.scalar() or 0


def record_creation(db: AsyncSession, user_id: str, form_id: str, now: datetime) -> FormCreationRecord:
    """Stage a creation record; it is committed together with the new form."""
    record = FormCreationRecord(user_id=user_id, form_id=form_id, created_at=now)
    db.add(record)
    return record
