"""Pydantic schemas for API request/response models."""

from __future__ import annotations
import uuid
from datetime import datetime
from enum import Enum
from pydantic import BaseModel, Field


# ── Enums ──────────────────────────────────────────────────

class FormTemplateId(str, Enum):
    SIGN_IN = "sign-in"
    CONTACT = "contact"
    PAYMENT_CHECKOUT = "payment-checkout"


class ButtonAction(str, Enum):
    URL = "url"
    MESSAGE = "message"


class Theme(str, Enum):
    LIGHT = "light"
    DARK = "dark"


class SubscriptionStatus(str, Enum):
    PENDING = "pending"
    ACTIVE = "active"
    INACTIVE = "inactive"


# ── Form Schemas ───────────────────────────────────────────

class Placeholder(BaseModel):
    id: str
    placeholder: str = ""


class FormCreate(BaseModel):
    template: FormTemplateId = FormTemplateId.SIGN_IN
    header_text: str = Field("My Form", max_length=255)
    header_colors: list[str] = []
    subheader_text: str = Field("Fill the form", max_length=255)
    subheader_color: str | None = None
    placeholders: list[Placeholder] = []
    border_shadow: str | None = None
    button_color: str = "linear-gradient(45deg, #00b7ff, #0078ff)"
    button_text_color: str | None = None
    button_text: str = "Sign In"
    button_action: ButtonAction = ButtonAction.URL
    button_url: str | None = None
    button_message: str | None = None
    theme: Theme = Theme.LIGHT


class FormUpdate(BaseModel):
    header_text: str | None = Field(None, max_length=255)
    header_colors: list[str] | None = None
    subheader_text: str | None = Field(None, max_length=255)
    subheader_color: str | None = None
    placeholders: list[Placeholder] | None = None
    border_shadow: str | None = None
    button_color: str | None = None
    button_text_color: str | None = None
    button_text: str | None = None
    button_action: ButtonAction | None = None
    button_url: str | None = None
    button_message: str | None = None
    theme: Theme | None = None


class PublicFormResponse(BaseModel):
    """What a visitor of the shared link receives."""
    form_id: str
    template: str
    header_text: str
    header_colors: list[str]
    subheader_text: str
    subheader_color: str
    placeholders: list[Placeholder]
    border_shadow: str
    button_color: str
    button_text_color: str
    button_text: str
    button_action: str
    button_url: str
    button_message: str
    theme: str

    class Config:
        from_attributes = True


class FormResponse(PublicFormResponse):
    user_id: str
    created_at: datetime
    updated_at: datetime | None
    expires_at: datetime | None


class FormCreatedResponse(BaseModel):
    form_id: str
    url: str
    expires_at: datetime | None


# ── Submission Schemas ─────────────────────────────────────

class SubmissionField(BaseModel):
    field: str
    value: str | int | float | bool | None = None


class SubmissionResponse(BaseModel):
    id: uuid.UUID
    form_id: str
    data: list[SubmissionField]
    timestamp: datetime

    class Config:
        from_attributes = True


# ── Subscription Schemas ───────────────────────────────────

class PlanResponse(BaseModel):
    id: str
    name: str
    price: int
    billing_period: str


class PaymentInitiateRequest(BaseModel):
    plan_id: str
    email: str
    price: int


class PaymentInitiateResponse(BaseModel):
    message: str
    authorization_url: str
    reference: str


class SubscriptionResponse(BaseModel):
    id: uuid.UUID
    user_id: str
    email: str | None
    plan_id: str
    status: SubscriptionStatus
    start_date: datetime | None
    end_date: datetime | None
    reference: str
    created_at: datetime

    class Config:
        from_attributes = True


class SubscriptionStatusResponse(BaseModel):
    status: SubscriptionStatus
    subscription: SubscriptionResponse | None = None
    message: str
