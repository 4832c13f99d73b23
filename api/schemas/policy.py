"""Pydantic schemas for the admin restriction policy."""

from __future__ import annotations
from datetime import datetime
from pydantic import BaseModel


class PolicyUpdate(BaseModel):
    """Admin policy update. Field checks happen in the settings store so errors name the field."""
    restrictions_enabled: bool
    link_lifespan_value: int | None = None
    link_lifespan_unit: str | None = None
    max_forms_per_user_per_day: int | None = None


class PolicyResponse(BaseModel):
    restrictions_enabled: bool
    link_lifespan_ms: int | None
    link_lifespan_value: int | None
    link_lifespan_unit: str | None
    max_forms_per_user_per_day: int | None
    updated_at: datetime | None = None

    class Config:
        from_attributes = True


class FormCountResponse(BaseModel):
    form_count: int
