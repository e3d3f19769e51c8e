# storefront/payments.py
"""Stripe gateway: hosted checkout sessions and signed webhook events."""
import json
import logging

import stripe
from starlette.concurrency import run_in_threadpool

from . import config
from .errors import InvalidSignature, UpstreamError
from .models import Order
from .pricing import to_minor_units

logger = logging.getLogger("storefront.payments")

CHECKOUT_COMPLETED = "checkout.session.completed"


def _price_line(name: str, amount, quantity: int, images: list) -> dict:
    return {
        "price_data": {
            "currency": config.CURRENCY,
            "product_data": {"name": name, "images": images},
            "unit_amount": to_minor_units(amount),
        },
        "quantity": quantity,
    }


def build_line_items(order: Order) -> list[dict]:
    """Order items plus separate shipping and tax lines when non-zero."""
    lines = [
        _price_line(item.name, item.price, item.quantity, [item.image] if item.image else [])
        for item in order.items
    ]
    if order.shipping_price and order.shipping_price > 0:
        lines.append(_price_line("Shipping", order.shipping_price, 1, []))
    if order.tax_price and order.tax_price > 0:
        lines.append(_price_line("Tax", order.tax_price, 1, []))
    return lines


async def create_checkout_session(order: Order):
    if not config.STRIPE_SECRET_KEY:
        raise UpstreamError("Stripe not configured")

    params = dict(
        api_key=config.STRIPE_SECRET_KEY,
        payment_method_types=["card"],
        line_items=build_line_items(order),
        mode="payment",
        success_url=f"{config.CLIENT_URL}/order/{order.id}?success=true",
        cancel_url=f"{config.CLIENT_URL}/order/{order.id}?cancelled=true",
        metadata={"order_id": str(order.id)},
    )
    try:
        # stripe's client is blocking; keep it off the event loop
        return await run_in_threadpool(stripe.checkout.Session.create, **params)
    except stripe.StripeError as exc:
        logger.warning("checkout session for order %s failed: %s", order.id, exc)
        raise UpstreamError(f"Payment gateway error: {exc.user_message or exc}")


def construct_event(payload: bytes, sig_header: str | None) -> dict:
    """Verify the signature over the raw body, then parse it.

    The body must be the exact bytes received; re-serialized JSON will not verify.
    Signatures older than Stripe's default tolerance (5 minutes) are rejected.
    """
    if not sig_header or not config.STRIPE_WEBHOOK_SECRET:
        raise InvalidSignature("Webhook Error: missing signature")
    try:
        text = payload.decode("utf-8")
        stripe.WebhookSignature.verify_header(
            text, sig_header, config.STRIPE_WEBHOOK_SECRET, tolerance=stripe.Webhook.DEFAULT_TOLERANCE,
        )
        return json.loads(text)
    except stripe.SignatureVerificationError as exc:
        raise InvalidSignature(f"Webhook Error: {exc}")
    except (UnicodeDecodeError, ValueError) as exc:
        raise InvalidSignature(f"Webhook Error: invalid payload ({exc})")
