"""
Talent payout requests. All payout state changes go through this module.

A request is checked against the talent's balance as aggregated from paid
transactions; pending requests are reserved so a talent cannot over-request.
Approval re-checks the balance. Both checks hold the talent row lock until the
write is done.
"""
import logging

from django.utils import timezone

from billing import config
from billing.constants import PAYOUT_TRANSITIONS, PayoutMethod, PayoutStatus, TransactionStatus
from billing.services.settlement_service import aggregate_talent_earnings

logger = logging.getLogger(__name__)


class PayoutError(Exception):
    """Raised when a payout request cannot be created or changed; message is safe to show to user."""

    def __init__(self, message: str):
        self.message = message
        super().__init__(message)


class PayoutNotFound(PayoutError):
    pass


def get_talent_balance(store, talent_id) -> dict:
    return aggregate_talent_earnings(
        store.list_transactions(talent_id=talent_id, status=TransactionStatus.PAID),
        store.list_payout_requests(talent_id=talent_id),
    )


def request_payout(
    store,
    *,
    talent_id,
    amount,
    payout_method: str,
    bank_name: str = "",
    account_number: str = "",
    account_holder_name: str = "",
):
    if isinstance(amount, bool) or not isinstance(amount, int) or amount <= 0:
        raise PayoutError("Payout amount must be a positive whole amount.")
    if amount < config.MINIMUM_PAYOUT_AMOUNT:
        raise PayoutError(f"Minimum payout is {config.MINIMUM_PAYOUT_AMOUNT} IDR.")
    if payout_method not in PayoutMethod.values:
        raise PayoutError("Unsupported payout method.")
    if payout_method == PayoutMethod.BANK_TRANSFER and not (bank_name and account_number and account_holder_name):
        raise PayoutError("Bank name, account number and account holder are required for bank transfers.")

    with store.atomic():
        if store.lock_talent(talent_id) is None:
            raise PayoutNotFound("Talent not found.")
        balance = get_talent_balance(store, talent_id)
        requestable = balance["available_balance"] - balance["pending_payouts"]
        if amount > requestable:
            raise PayoutError("Requested amount exceeds available balance.")

        request = store.insert_payout_request(
            talent_id=talent_id,
            requested_amount=amount,
            available_earnings=balance["available_balance"],
            payout_method=payout_method,
            bank_name=bank_name or "",
            account_number=account_number or "",
            account_holder_name=account_holder_name or "",
            status=PayoutStatus.PENDING,
        )
    logger.info("request_payout: talent=%s amount=%s request=%s", talent_id, amount, request.id)
    return request


def _transition(store, request_id, new_status, **fields):
    current = store.get_payout_request(request_id)
    if current is None:
        raise PayoutNotFound("Payout request not found.")
    allowed_from = {status for status, targets in PAYOUT_TRANSITIONS.items() if new_status in targets}
    if current.status not in allowed_from:
        raise PayoutError(f"Cannot change a {current.status} payout request to {new_status}.")
    updated = store.update_payout_request(
        request_id,
        expected_statuses=allowed_from,
        status=new_status,
        **fields,
    )
    if updated is None:
        raise PayoutError("Payout request was changed by another request. Please reload.")
    logger.info("payout request %s: %s -> %s", request_id, current.status, new_status)
    return updated


def approve_payout(store, request_id, processed_by: str, admin_notes: str = "", now=None):
    request = store.get_payout_request(request_id)
    if request is None:
        raise PayoutNotFound("Payout request not found.")
    with store.atomic():
        store.lock_talent(request.talent_id)
        balance = get_talent_balance(store, request.talent_id)
        # This request is still pending, so it is not part of total_withdrawn yet.
        if request.requested_amount > balance["available_balance"]:
            raise PayoutError("Talent balance no longer covers this payout.")
        return _transition(
            store,
            request_id,
            PayoutStatus.APPROVED,
            processed_by=processed_by or "",
            admin_notes=admin_notes or "",
            processed_at=now or timezone.now(),
        )


def reject_payout(store, request_id, processed_by: str, admin_notes: str = "", now=None):
    return _transition(
        store,
        request_id,
        PayoutStatus.REJECTED,
        processed_by=processed_by or "",
        admin_notes=admin_notes or "",
        processed_at=now or timezone.now(),
    )


def mark_payout_processed(store, request_id):
    return _transition(store, request_id, PayoutStatus.PROCESSED)


def mark_payout_failed(store, request_id, admin_notes: str = ""):
    return _transition(store, request_id, PayoutStatus.FAILED, admin_notes=admin_notes or "")
