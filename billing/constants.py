from django.db import models


class TransactionStatus(models.TextChoices):
    PENDING = "pending", "Pending"
    PAID = "paid", "Paid"
    FAILED = "failed", "Failed"
    CANCELLED = "cancelled", "Cancelled"
    REFUNDED = "refunded", "Refunded"


class BookingStatus(models.TextChoices):
    PENDING = "pending", "Pending payment"
    CONFIRMED = "confirmed", "Confirmed"
    COMPLETED = "completed", "Completed"
    CANCELLED = "cancelled", "Cancelled"


class PayoutStatus(models.TextChoices):
    PENDING = "pending", "Pending"
    APPROVED = "approved", "Approved"
    REJECTED = "rejected", "Rejected"
    PROCESSED = "processed", "Processed"
    FAILED = "failed", "Failed"


class PayoutMethod(models.TextChoices):
    BANK_TRANSFER = "bank_transfer", "Bank transfer"
    E_WALLET = "e_wallet", "E-wallet"


# Allowed status transitions. Statuses missing from the right-hand side are terminal.
TRANSACTION_TRANSITIONS = {
    TransactionStatus.PENDING: {TransactionStatus.PAID, TransactionStatus.FAILED, TransactionStatus.CANCELLED},
    TransactionStatus.PAID: {TransactionStatus.REFUNDED},
    TransactionStatus.FAILED: set(),
    TransactionStatus.CANCELLED: set(),
    TransactionStatus.REFUNDED: set(),
}

PAYOUT_TRANSITIONS = {
    PayoutStatus.PENDING: {PayoutStatus.APPROVED, PayoutStatus.REJECTED},
    PayoutStatus.APPROVED: {PayoutStatus.PROCESSED, PayoutStatus.FAILED},
    PayoutStatus.REJECTED: set(),
    PayoutStatus.PROCESSED: set(),
    PayoutStatus.FAILED: set(),
}

# How each payout status weighs on a talent's balance.
PAYOUT_WITHDRAWN = "withdrawn"
PAYOUT_RESERVED = "reserved"
PAYOUT_IGNORED = "ignored"

PAYOUT_BALANCE_EFFECT = {
    PayoutStatus.PENDING: PAYOUT_RESERVED,
    PayoutStatus.APPROVED: PAYOUT_WITHDRAWN,
    PayoutStatus.PROCESSED: PAYOUT_WITHDRAWN,
    PayoutStatus.REJECTED: PAYOUT_IGNORED,
    PayoutStatus.FAILED: PAYOUT_IGNORED,
}

# Only paid transactions count towards earnings and revenue.
TRANSACTION_SETTLED = {
    TransactionStatus.PENDING: False,
    TransactionStatus.PAID: True,
    TransactionStatus.FAILED: False,
    TransactionStatus.CANCELLED: False,
    TransactionStatus.REFUNDED: False,
}
