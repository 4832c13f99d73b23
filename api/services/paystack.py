"""
Paystack client — transaction initialisation and webhook signature checks.

Only the two touch points the subscription flow needs; everything else about
the payment happens on Paystack's side and reaches us through the webhook.
"""

import hashlib
import hmac
import logging

import httpx

from config import settings
from services.errors import PaymentGatewayError

logger = logging.getLogger(__name__)


async def initialize_transaction(email: str, amount: int, metadata: dict) -> dict:
    """
    Start a Paystack transaction.

    Args:
        email: Payer email
        amount: Amount in kobo
        metadata: Echoed back on the webhook (userId, planId, billingPeriod)

    Returns:
        {"authorization_url": ..., "reference": ...}
    """
    url = f"{settings.PAYSTACK_BASE_URL}/transaction/initialize"
    headers = {
        "Authorization": f"Bearer {settings.PAYSTACK_SECRET_KEY}",
        "Content-Type": "application/json",
    }
    payload = {"email": email, "amount": amount, "metadata": metadata}

    try:
        async with httpx.AsyncClient(timeout=10.0) as client:
            resp = await client.post(url, json=payload, headers=headers)
            body = resp.json()
    except (httpx.HTTPError, ValueError) as e:
        logger.error("Paystack initialize failed: %s", e)
        raise PaymentGatewayError("Failed to reach payment gateway") from e

    if resp.status_code != 200 or not body.get("status"):
        message = body.get("message", "unknown error")
        logger.error("Paystack rejected transaction (%s): %s", resp.status_code, message)
        raise PaymentGatewayError(message)

    data = body["data"]
    return {"authorization_url": data["authorization_url"], "reference": data["reference"]}


def verify_signature(raw_body: bytes, signature: str | None) -> bool:
    """Paystack signs the raw request body with HMAC-SHA512 of the secret key."""
    if not signature or not settings.PAYSTACK_SECRET_KEY:
        return False
    expected = hmac.new(
        settings.PAYSTACK_SECRET_KEY.encode(), raw_body, hashlib.sha512
    ).hexdigest()
    return hmac.compare_digest(expected, signature)
