"""PolicySettings ORM model — the single global restriction policy row."""

from datetime import datetime, timezone
from sqlalchemy import BigInteger, Boolean, DateTime, Integer, String
from sqlalchemy.orm import Mapped, mapped_column
from db.database import Base

POLICY_ROW_ID = 1


class PolicySettings(Base):
    __tablename__ = "policy_settings"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, default=POLICY_ROW_ID)
    restrictions_enabled: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    link_lifespan_ms: Mapped[int | None] = mapped_column(BigInteger)
    # Admin input as entered, kept for display
    link_lifespan_value: Mapped[int | None] = mapped_column(Integer)
    link_lifespan_unit: Mapped[str | None] = mapped_column(String(10))
    max_forms_per_user_per_day: Mapped[int | None] = mapped_column(Integer)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
    )
