"""
Stripe REST client for deposits and remaining-balance charges

Calls the Stripe API directly with httpx (form-encoded requests, bearer secret key).
"""

import logging
from typing import Any, Optional

import httpx

from ..config import STRIPE_API_URL, STRIPE_SECRET_KEY

logger = logging.getLogger(__name__)

STRIPE_TIMEOUT_SECONDS = 30.0


class StripeError(Exception):
    """Raised when Stripe is not configured or rejects a request"""

    def __init__(self, message: str, error_type: Optional[str] = None, code: Optional[str] = None):
        super().__init__(message)
        self.error_type = error_type
        self.code = code


def encode_form(params: dict, prefix: str = "") -> dict[str, str]:
    """Flatten nested params into Stripe's bracket notation (a[b][0][c]=...)."""
    encoded: dict[str, str] = {}
    for key, value in params.items():
        name = f"{prefix}[{key}]" if prefix else str(key)
        if value is None:
            continue
        if isinstance(value, dict):
            encoded.update(encode_form(value, name))
        elif isinstance(value, (list, tuple)):
            for index, item in enumerate(value):
                if isinstance(item, dict):
                    encoded.update(encode_form(item, f"{name}[{index}]"))
                else:
                    encoded[f"{name}[{index}]"] = str(item)
        elif isinstance(value, bool):
            encoded[name] = "true" if value else "false"
        else:
            encoded[name] = str(value)
    return encoded


async def _request(method: str, path: str, params: Optional[dict] = None) -> dict[str, Any]:
    if not STRIPE_SECRET_KEY:
        logger.error("❌ STRIPE_SECRET_KEY is not configured")
        raise StripeError("Payment system not configured")

    headers = {"Authorization": f"Bearer {STRIPE_SECRET_KEY}"}
    form = encode_form(params or {})

    try:
        async with httpx.AsyncClient(timeout=STRIPE_TIMEOUT_SECONDS) as client:
            if method == "GET":
                response = await client.get(f"{STRIPE_API_URL}{path}", params=form, headers=headers)
            else:
                response = await client.post(f"{STRIPE_API_URL}{path}", data=form, headers=headers)
    except httpx.HTTPError as e:
        logger.error(f"❌ Stripe request failed: {method} {path}: {e}")
        raise StripeError("Payment processor unreachable") from e

    payload = response.json() if response.content else {}
    if response.status_code >= 400:
        error = payload.get("error", {})
        logger.error(f"❌ Stripe error {response.status_code} on {path}: {error.get('message')}")
        raise StripeError(
            error.get("message") or "Payment processing failed",
            error_type=error.get("type"),
            code=error.get("code"),
        )
    return payload


async def find_or_create_customer(
    email: str, name: Optional[str] = None, phone: Optional[str] = None, address: Optional[str] = None
) -> dict:
    """Reuse the Stripe customer for this email so saved cards follow the customer"""
    existing = await _request("GET", "/customers", {"email": email, "limit": 1})
    if existing.get("data"):
        return existing["data"][0]

    customer = await _request(
        "POST",
        "/customers",
        {
            "email": email,
            "name": name,
            "phone": phone,
            "metadata": {"address": address or "", "source": "willow_water_website"},
        },
    )
    logger.info(f"✅ Created Stripe customer {customer.get('id')} for {email}")
    return customer


async def create_deposit_checkout_session(
    customer_id: str,
    deposit_amount: float,
    remaining_amount: float,
    sqft: int,
    metadata: dict,
    success_url: str,
    cancel_url: str,
) -> dict:
    """
    Checkout session for the booking deposit.

    The card is saved (setup_future_usage=off_session) so the remaining
    balance can be charged on the day of service.
    """
    session = await _request(
        "POST",
        "/checkout/sessions",
        {
            "mode": "payment",
            "customer": customer_id,
            "payment_method_types": ["card"],
            "payment_intent_data": {"setup_future_usage": "off_session", "metadata": metadata},
            "line_items": [
                {
                    "price_data": {
                        "currency": "usd",
                        "product_data": {
                            "name": "Cleaning Deposit (20%)",
                            "description": (
                                f"Deposit for organic home cleaning - {sqft} sq ft home. "
                                f"Remaining balance of ${remaining_amount:.0f} due on day of service."
                            ),
                        },
                        "unit_amount": int(round(deposit_amount * 100)),
                    },
                    "quantity": 1,
                }
            ],
            "metadata": metadata,
            "success_url": success_url,
            "cancel_url": cancel_url,
        },
    )
    logger.info(f"✅ Created checkout session {session.get('id')} for customer {customer_id}")
    return session


async def charge_saved_card(
    customer_id: str, amount: float, description: str, metadata: dict
) -> dict:
    """Off-session charge against the customer's first saved card"""
    methods = await _request("GET", "/payment_methods", {"customer": customer_id, "type": "card"})
    if not methods.get("data"):
        raise StripeError("No payment method on file", code="no_payment_method")

    return await _request(
        "POST",
        "/payment_intents",
        {
            "amount": int(round(amount * 100)),
            "currency": "usd",
            "customer": customer_id,
            "payment_method": methods["data"][0]["id"],
            "off_session": True,
            "confirm": True,
            "description": description,
            "metadata": metadata,
        },
    )
