"""
Form templates — field definitions, presentation defaults and submission checks.

Rendering happens in the frontend; this module only decides what a form
holds and whether a submission satisfies its template.
"""

from __future__ import annotations
import re
import secrets
import string

from services.errors import SubmissionValidationError

EMAIL_REGEX = r"^[^\s@]+@[^\s@]+\.[^\s@]+$"

FORM_TEMPLATES = {
    "sign-in": {
        "name": "Sign In Form",
        "fields": [
            {"id": "email", "placeholder": "Email", "type": "email",
             "validation": {"required": True, "regex": EMAIL_REGEX,
                            "error_message": "Please enter a valid email address."}},
            {"id": "password", "placeholder": "Password", "type": "password",
             "validation": {"required": True}},
        ],
        "button_text": "Sign In",
        "button_action": "url",
        "button_message": "",
    },
    "contact": {
        "name": "Contact Form",
        "fields": [
            {"id": "phone", "placeholder": "Phone Number", "type": "tel",
             "validation": {"required": True}},
            {"id": "email", "placeholder": "Email", "type": "email",
             "validation": {"required": True, "regex": EMAIL_REGEX,
                            "error_message": "Please enter a valid email address."}},
        ],
        "button_text": "Submit",
        "button_action": "message",
        "button_message": "Thank you for contacting us!",
    },
    "payment-checkout": {
        "name": "Payment Checkout Form",
        "fields": [
            {"id": "card-number", "placeholder": "Card Number", "type": "text",
             "validation": {"required": True, "regex": r"^\d{4}\s?\d{4}\s?\d{4}\s?\d{4}$",
                            "error_message": "Please enter a valid 16-digit card number."}},
            {"id": "exp-date", "placeholder": "Expiration Date (MM/YY)", "type": "text",
             "validation": {"required": True}},
            {"id": "cvv", "placeholder": "CVV", "type": "text",
             "validation": {"required": True}},
        ],
        "button_text": "Pay Now",
        "button_action": "message",
        "button_message": "Payment processed successfully!",
    },
}

DEFAULT_TEMPLATE = "sign-in"
DEFAULT_BUTTON_MESSAGE = "Form submitted successfully!"
FORM_ID_ALPHABET = string.ascii_letters + string.digits
FORM_ID_LENGTH = 6

THEME_DEFAULTS = {
    "light": {"subheader_color": "#555555", "border_shadow": "0 0 0 2px #000000"},
    "dark": {"subheader_color": "#d1d5db", "border_shadow": "0 0 0 2px #ffffff"},
}


def get_template(template_id: str | None) -> dict:
    return FORM_TEMPLATES.get(template_id or DEFAULT_TEMPLATE, FORM_TEMPLATES[DEFAULT_TEMPLATE])


def generate_form_id(length: int = FORM_ID_LENGTH) -> str:
    """Random short code for the shareable link. Uniqueness is checked by the caller."""
    return "".join(secrets.choice(FORM_ID_ALPHABET) for _ in range(length))


def normalize_url(url: str | None) -> str | None:
    """
    Return an absolute http(s) URL, or None if `url` does not look like one.

    "example.com" → "https://example.com"; bare words are rejected.
    """
    if not url:
        return None
    url = url.strip()
    if re.match(r"^https?://", url, re.IGNORECASE):
        return url
    if re.search(r"\.[a-z]{2,}$", url, re.IGNORECASE):
        return f"https://{url}"
    return None


def apply_form_defaults(data: dict) -> dict:
    """Fill presentation defaults that depend on the theme and button choices."""
    values = {k: v for k, v in data.items() if v is not None}
    theme = values.get("theme") or "light"
    values["theme"] = theme
    values.setdefault("template", DEFAULT_TEMPLATE)

    for key, default in THEME_DEFAULTS[theme].items():
        values.setdefault(key, default)

    if "button_text_color" not in values:
        values["button_text_color"] = "#000000" if values.get("button_color") == "#ffffff" else "#ffffff"

    if values.get("button_action") == "message" and not values.get("button_message"):
        values["button_message"] = DEFAULT_BUTTON_MESSAGE

    return values


def validate_submission(template_id: str, form_data: dict) -> list[dict]:
    """
    Check submitted values against the template's rules.

    Returns the submission as a list of {"field", "value"} pairs.
    Raises SubmissionValidationError on the first failing field.
    """
    template = get_template(template_id)

    for field in template["fields"]:
        rules = field.get("validation") or {}
        value = form_data.get(field["id"])
        if rules.get("required") and not value:
            raise SubmissionValidationError(field["id"], f"Missing required field: {field['id']}")
        if rules.get("regex") and value:
            if not re.search(rules["regex"], str(value)):
                raise SubmissionValidationError(
                    field["id"], rules.get("error_message") or f"Invalid format for field: {field['id']}"
                )

    return [{"field": key, "value": value} for key, value in form_data.items()]
