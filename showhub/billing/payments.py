from __future__ import annotations

from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Any, Dict, Optional

from showhub.config import Config


def _debug(msg: str) -> None:
    print(f"[billing] {msg}")


class PaymentProviderError(Exception):
    """The payment provider rejected or failed a call."""


def _get_stripe(cfg: Config):
    try:
        import stripe  # type: ignore
    except Exception as e:
        raise RuntimeError(
            "Stripe selected but the 'stripe' package is not installed. Install stripe and try again."
        ) from e

    if not cfg.STRIPE_SECRET_KEY:
        raise RuntimeError("stripe_secret_key_missing")

    stripe.api_key = cfg.STRIPE_SECRET_KEY
    return stripe


def to_minor_units(amount: Any, *, discount_percent: int = 0) -> int:
    """Convert a major-unit amount (e.g. dollars) to integer minor units, applying a percent discount."""
    try:
        value = Decimal(str(amount))
    except InvalidOperation:
        raise ValueError("invalid_amount")
    if not value.is_finite() or value <= 0:
        raise ValueError("invalid_amount")

    if discount_percent:
        value = value * (Decimal(100) - Decimal(int(discount_percent))) / Decimal(100)

    cents = int((value * 100).quantize(Decimal("1"), rounding=ROUND_HALF_UP))
    if cents < 1:
        raise ValueError("invalid_amount")
    return cents


def create_payment_intent(
    cfg: Config,
    *,
    amount_minor: int,
    email: str,
    coupon_code: Optional[str] = None,
) -> Dict[str, Any]:
    """Create a Stripe PaymentIntent and return its client secret."""
    stripe = _get_stripe(cfg)

    metadata: Dict[str, str] = {"email": email}
    if coupon_code:
        metadata["coupon"] = coupon_code

    try:
        intent = stripe.PaymentIntent.create(
            amount=int(amount_minor),
            currency=cfg.PAYMENT_CURRENCY,
            payment_method_types=["card"],
            receipt_email=email,
            metadata=metadata,
        )
    except stripe.StripeError as e:
        _debug(f"payment intent failed email={email}: {e}")
        raise PaymentProviderError(str(e)) from e

    secret = intent.get("client_secret")
    if not secret:
        raise PaymentProviderError("client_secret_missing")
    return {"clientSecret": str(secret), "amount": int(amount_minor), "currency": cfg.PAYMENT_CURRENCY}
