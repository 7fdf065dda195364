"""
Booking payment — create a Stripe PaymentIntent for a pending transaction and
apply gateway outcomes to it.

The customer is charged total_charged (subtotal + platform fee). Stripe expects IDR
in sen, so amounts are multiplied by config.STRIPE_AMOUNT_MULTIPLIER on the way out
and divided on the way back.
"""
import logging

import stripe

from billing import config
from billing.constants import TransactionStatus
from billing.services.booking_service import BookingError, mark_transaction_failed, mark_transaction_paid
from billing.services.stripe_service import get_client, is_configured

logger = logging.getLogger(__name__)


class BillingError(Exception):
    """Raised when payment fails; message is safe to show to user."""

    def __init__(self, message: str, payment_intent_id: str = None):
        self.message = message
        self.payment_intent_id = payment_intent_id
        super().__init__(message)


def to_stripe_amount(amount: int) -> int:
    return int(amount) * config.STRIPE_AMOUNT_MULTIPLIER


def from_stripe_amount(amount: int) -> int:
    return int(amount or 0) // config.STRIPE_AMOUNT_MULTIPLIER


def create_booking_payment_intent(transaction, *, customer_email: str, attempt_id: str = None) -> dict:
    """
    Create a Stripe PaymentIntent (not confirmed) for a pending transaction.

    Returns:
        {"payment_intent_id": "pi_xxx", "client_secret": "...", "amount": int}

    Raises:
        BillingError: when Stripe is not configured, the transaction is not payable, or create fails.
    """
    if not is_configured():
        raise BillingError("Payment is not configured. Please try again later.")
    if transaction.status != TransactionStatus.PENDING:
        raise BillingError("This booking is not awaiting payment.")
    total = transaction.total_charged
    if not total or total <= 0:
        raise BillingError("Invalid amount for payment.")

    client = get_client()
    metadata = {
        "transaction_id": str(transaction.id),
        "booking_id": str(transaction.booking_id or ""),
        "talent_id": str(transaction.talent_id),
        "customer_email": (customer_email or "")[:500],
        "subtotal": str(transaction.amount),
        "platform_fee": str(transaction.platform_fee),
        "commission_rate": str(transaction.commission_rate),
        "companion_earnings": str(transaction.companion_earnings),
    }
    create_kwargs = dict(
        amount=to_stripe_amount(total),
        currency=config.CURRENCY,
        confirm=False,
        capture_method="automatic",
        description=transaction.service_name or "Companion booking",
        metadata=metadata,
        payment_method_types=["card"],
    )
    # One key per attempt (one open of the payment UI) so retries reuse the same intent.
    if (attempt_id or "").strip():
        create_kwargs["idempotency_key"] = f"booking:{transaction.id}:{attempt_id.strip()[:64]}"
    try:
        intent = client.PaymentIntent.create(**create_kwargs)
    except stripe.StripeError as e:
        err = getattr(e, "error", e)
        msg = getattr(err, "user_message", None) or str(e)
        if not msg or "api" in msg.lower():
            msg = "Payment could not be set up. Please try again."
        raise BillingError(msg)

    return {
        "payment_intent_id": intent.id,
        "client_secret": intent.client_secret,
        "amount": total,
    }


def _transaction_for_intent(store, obj):
    pi_id = obj.get("id")
    transaction_id = (obj.get("metadata") or {}).get("transaction_id")
    if not pi_id or not transaction_id:
        logger.warning("payment webhook: intent without metadata.transaction_id pi=%s", pi_id)
        return None
    try:
        transaction = store.get_transaction(int(transaction_id))
    except (TypeError, ValueError):
        transaction = None
    if transaction is None:
        logger.warning("payment webhook: transaction %s not found pi=%s", transaction_id, pi_id)
    return transaction


def handle_payment_succeeded(store, obj, paid_at=None):
    """Mark the transaction paid. Idempotent: a repeated event for a paid transaction is a no-op."""
    transaction = _transaction_for_intent(store, obj)
    if transaction is None:
        return None
    if transaction.status == TransactionStatus.PAID:
        return transaction
    received = from_stripe_amount(obj.get("amount_received") or obj.get("amount"))
    if received != transaction.total_charged:
        logger.warning(
            "payment webhook: amount mismatch transaction=%s expected=%s received=%s",
            transaction.id, transaction.total_charged, received,
        )
        return None
    try:
        return mark_transaction_paid(store, transaction.id, paid_at=paid_at, stripe_payment_intent_id=obj.get("id"))
    except BookingError as e:
        logger.warning("payment webhook: cannot mark transaction %s paid: %s", transaction.id, e)
        return None


def handle_payment_failed(store, obj):
    transaction = _transaction_for_intent(store, obj)
    if transaction is None or transaction.status != TransactionStatus.PENDING:
        return transaction
    return mark_transaction_failed(store, transaction.id)
