"""FormConfig, Submission and FormCreationRecord ORM models."""

import uuid
from datetime import datetime, timezone
from sqlalchemy import String, DateTime, Text, Enum as PgEnum
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import Mapped, mapped_column
from db.database import Base


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class FormConfig(Base):
    __tablename__ = "form_configs"

    id: Mapped[uuid.UUID] = mapped_column(primary_key=True, default=uuid.uuid4)
    form_id: Mapped[str] = mapped_column(String(16), unique=True, nullable=False)
    user_id: Mapped[str] = mapped_column(String(64), nullable=False, index=True)

    # Presentation
    template: Mapped[str] = mapped_column(String(50), default="sign-in")
    header_text: Mapped[str] = mapped_column(String(255), default="My Form")
    header_colors: Mapped[list] = mapped_column(JSONB, default=list)
    subheader_text: Mapped[str] = mapped_column(String(255), default="Fill the form")
    subheader_color: Mapped[str] = mapped_column(String(50), default="#555555")
    placeholders: Mapped[list] = mapped_column(JSONB, default=list)
    border_shadow: Mapped[str] = mapped_column(String(100), default="0 0 0 2px #000000")
    button_color: Mapped[str] = mapped_column(
        String(255), default="linear-gradient(45deg, #00b7ff, #0078ff)"
    )
    button_text_color: Mapped[str] = mapped_column(String(50), default="#ffffff")
    button_text: Mapped[str] = mapped_column(String(100), default="Sign In")
    button_action: Mapped[str] = mapped_column(
        PgEnum("url", "message", name="button_action"),
        default="url",
    )
    button_url: Mapped[str] = mapped_column(Text, default="")
    button_message: Mapped[str] = mapped_column(Text, default="")
    theme: Mapped[str] = mapped_column(
        PgEnum("light", "dark", name="form_theme"),
        default="light",
    )

    # Lifecycle
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=_utcnow)
    updated_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    # Null when the owner is exempt or restrictions are off
    expires_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))


class Submission(Base):
    # No FK to form_configs: submissions are removed in a separate best-effort
    # step after their form, and orphans are purged by the policy sweep.
    __tablename__ = "submissions"

    id: Mapped[uuid.UUID] = mapped_column(primary_key=True, default=uuid.uuid4)
    user_id: Mapped[str] = mapped_column(String(64), nullable=False, index=True)
    form_id: Mapped[str] = mapped_column(String(16), nullable=False, index=True)
    data: Mapped[list] = mapped_column(JSONB, default=list)
    timestamp: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=_utcnow)


class FormCreationRecord(Base):
    """Append-only log of form creations, used for the daily quota."""

    __tablename__ = "form_creation_records"

    id: Mapped[uuid.UUID] = mapped_column(primary_key=True, default=uuid.uuid4)
    user_id: Mapped[str] = mapped_column(String(64), nullable=False, index=True)
    form_id: Mapped[str] = mapped_column(String(16), nullable=False, index=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
