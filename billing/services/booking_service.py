"""
Booking creation and transaction lifecycle.

create_booking prices the selection once and freezes the breakdown on a pending
transaction. Later transitions only touch status and timestamps; amounts are never
rewritten. A paid transaction can only be refunded while the talent balance still
covers its earnings. There is no slot reservation: two bookings for the same talent and date
are both accepted.
"""
import logging

from django.utils import timezone

from billing.constants import BookingStatus, TRANSACTION_TRANSITIONS, TransactionStatus
from billing.services.payout_service import get_talent_balance
from billing.services.pricing_service import compute_booking_charge, get_service_offerings

logger = logging.getLogger(__name__)


class BookingError(Exception):
    """Raised when a booking or transaction change is not allowed; message is safe to show to user."""

    def __init__(self, message: str):
        self.message = message
        super().__init__(message)


class TalentNotFound(BookingError):
    pass


def quote_booking(store, talent_id, selections):
    """Price selections for a talent without writing anything."""
    talent = store.get_talent(talent_id)
    if talent is None:
        raise TalentNotFound("Talent not found.")
    return compute_booking_charge(selections, talent.talent_level, offerings=get_service_offerings(talent))


def create_booking(
    store,
    *,
    talent_id,
    customer_email: str,
    selections,
    booking_date,
    location: str = "",
    notes: str = "",
):
    """
    Create a pending booking and its pending transaction.

    Returns (booking, transaction, charge). Raises BookingError for a missing talent
    and pricing ValidationError for an invalid selection; nothing is written then.
    """
    if not (customer_email or "").strip():
        raise BookingError("Customer email is required.")
    charge = quote_booking(store, talent_id, selections)
    lines = charge.as_dict()["lines"]

    with store.atomic():
        booking = store.insert_booking(
            talent_id=talent_id,
            customer_email=customer_email.strip().lower(),
            booking_date=booking_date,
            location=location or "",
            notes=notes or "",
            services=lines,
            total_price=charge.total_charged,
            status=BookingStatus.PENDING,
        )
        transaction = store.insert_transaction(
            booking_id=booking.id,
            talent_id=talent_id,
            customer_email=customer_email.strip().lower(),
            amount=charge.subtotal,
            platform_fee=charge.platform_fee,
            total_charged=charge.total_charged,
            commission_rate=charge.commission_rate,
            commission_amount=charge.commission_amount,
            companion_earnings=charge.talent_earnings,
            status=TransactionStatus.PENDING,
            service_name=charge.service_name,
            service_type=",".join(line["service_type"] for line in lines),
            duration=charge.duration,
        )
    logger.info(
        "create_booking: booking=%s transaction=%s talent=%s total=%s",
        booking.id, transaction.id, talent_id, charge.total_charged,
    )
    return booking, transaction, charge


def _transition(store, transaction_id, new_status, **fields):
    current = store.get_transaction(transaction_id)
    if current is None:
        raise BookingError("Transaction not found.")
    allowed_from = {status for status, targets in TRANSACTION_TRANSITIONS.items() if new_status in targets}
    if current.status not in allowed_from:
        raise BookingError(f"Cannot change a {current.status} transaction to {new_status}.")
    updated = store.update_transaction(
        transaction_id,
        expected_statuses=allowed_from,
        status=new_status,
        **fields,
    )
    if updated is None:
        # Lost a race with another status change.
        raise BookingError("Transaction was changed by another request. Please reload.")
    logger.info("transaction %s: %s -> %s", transaction_id, current.status, new_status)
    return updated


def _sync_booking(store, transaction, status):
    if getattr(transaction, "booking_id", None) is not None:
        store.update_booking(transaction.booking_id, status=status)


def mark_transaction_paid(store, transaction_id, paid_at=None, stripe_payment_intent_id=None):
    fields = {"paid_at": paid_at or timezone.now()}
    if stripe_payment_intent_id:
        fields["stripe_payment_intent_id"] = stripe_payment_intent_id
    updated = _transition(store, transaction_id, TransactionStatus.PAID, **fields)
    _sync_booking(store, updated, BookingStatus.CONFIRMED)
    return updated


def mark_transaction_failed(store, transaction_id):
    return _transition(store, transaction_id, TransactionStatus.FAILED)


def cancel_transaction(store, transaction_id):
    updated = _transition(store, transaction_id, TransactionStatus.CANCELLED)
    _sync_booking(store, updated, BookingStatus.CANCELLED)
    return updated


def refund_transaction(store, transaction_id):
    """Refund a paid transaction. Refused once its earnings have been paid out to the talent."""
    current = store.get_transaction(transaction_id)
    if current is None:
        raise BookingError("Transaction not found.")
    with store.atomic():
        store.lock_talent(current.talent_id)
        if current.status == TransactionStatus.PAID:
            balance = get_talent_balance(store, current.talent_id)
            if (current.companion_earnings or 0) > balance["available_balance"]:
                logger.warning(
                    "refund_transaction: transaction %s earnings %s exceed talent %s balance %s",
                    transaction_id, current.companion_earnings, current.talent_id, balance["available_balance"],
                )
                raise BookingError("Earnings for this booking were already paid out; it cannot be refunded.")
        updated = _transition(store, transaction_id, TransactionStatus.REFUNDED)
        _sync_booking(store, updated, BookingStatus.CANCELLED)
    return updated
