"""
Reusable Stripe service — initializes SDK from settings and exposes a minimal API.

Use this module for all server-side Stripe operations; do not put Stripe logic in views.
"""
import logging

import stripe
from django.conf import settings

logger = logging.getLogger(__name__)


def is_configured() -> bool:
    """Return True if Stripe secret key is set and non-empty."""
    key = getattr(settings, "STRIPE_SECRET_KEY", None) or ""
    return bool(key.strip())


def get_client():
    """Return the Stripe SDK module with the API key set."""
    if not is_configured():
        raise RuntimeError("Stripe is not configured: STRIPE_SECRET_KEY is missing or empty.")
    stripe.api_key = settings.STRIPE_SECRET_KEY
    return stripe


def check_api_ok() -> bool:
    """
    Perform a minimal Stripe API call to verify the key works.
    Returns True if the request succeeds, False otherwise (e.g. invalid key, network error).
    """
    if not is_configured():
        return False
    try:
        get_client().Balance.retrieve()
        return True
    except stripe.StripeError as e:
        logger.warning("check_api_ok: Stripe API check failed: %s", e)
        return False


def construct_webhook_event(payload: bytes, sig_header: str):
    """Verify the signature and parse a webhook payload. Raises ValueError or SignatureVerificationError."""
    webhook_secret = getattr(settings, "STRIPE_WEBHOOK_SECRET", "") or ""
    if not webhook_secret:
        raise ValueError("STRIPE_WEBHOOK_SECRET is not set.")
    return stripe.Webhook.construct_event(payload, sig_header, webhook_secret)
