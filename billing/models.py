"""
Billing models: bookings, payment transactions with their frozen fee breakdown, and payout requests.
Amount fields on Transaction are written once by booking_service and never recomputed.
"""
from django.db import models

from billing import config
from billing.constants import BookingStatus, PayoutMethod, PayoutStatus, TransactionStatus


class Booking(models.Model):
    talent = models.ForeignKey(
        "accounts.TalentProfile",
        on_delete=models.PROTECT,
        related_name="bookings",
    )
    customer_email = models.EmailField()
    booking_date = models.DateField()
    location = models.CharField(max_length=255, blank=True)
    notes = models.TextField(blank=True)
    # Priced lines as returned by BookingCharge.as_dict()["lines"]
    services = models.JSONField(default=list)
    total_price = models.PositiveBigIntegerField()
    status = models.CharField(max_length=20, choices=BookingStatus.choices, default=BookingStatus.PENDING)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["-created_at"]

    def __str__(self):
        return f"Booking #{self.pk} {self.talent_id} on {self.booking_date} ({self.status})"


class Transaction(models.Model):
    """One charge per booking. Legacy rows may lack platform_fee / commission fields."""

    booking = models.ForeignKey(
        "billing.Booking",
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="transactions",
    )
    talent = models.ForeignKey(
        "accounts.TalentProfile",
        on_delete=models.PROTECT,
        related_name="transactions",
    )
    customer_email = models.EmailField(blank=True)

    amount = models.PositiveBigIntegerField(help_text="Subtotal: services + transport, before platform fee")
    platform_fee = models.PositiveBigIntegerField(null=True, blank=True)
    total_charged = models.PositiveBigIntegerField(null=True, blank=True)
    commission_rate = models.PositiveSmallIntegerField(null=True, blank=True, help_text="Percent, frozen at charge time")
    commission_amount = models.PositiveBigIntegerField(null=True, blank=True)
    companion_earnings = models.PositiveBigIntegerField(null=True, blank=True)
    currency = models.CharField(max_length=10, default=config.CURRENCY)

    status = models.CharField(max_length=20, choices=TransactionStatus.choices, default=TransactionStatus.PENDING)
    service_name = models.CharField(max_length=255)
    service_type = models.CharField(max_length=100, blank=True)
    duration = models.DecimalField(
        max_digits=20,
        decimal_places=6,
        null=True,
        blank=True,
        help_text="Single-service bookings only; per-line durations are on the booking",
    )

    stripe_payment_intent_id = models.CharField(max_length=255, unique=True, null=True, blank=True)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)
    paid_at = models.DateTimeField(null=True, blank=True)

    class Meta:
        ordering = ["-created_at"]

    def __str__(self):
        return f"Transaction #{self.pk} {self.amount} IDR ({self.status})"


class PayoutRequest(models.Model):
    talent = models.ForeignKey(
        "accounts.TalentProfile",
        on_delete=models.PROTECT,
        related_name="payout_requests",
    )
    requested_amount = models.PositiveBigIntegerField()
    # Balance at request time, for the reviewing admin
    available_earnings = models.BigIntegerField()
    payout_method = models.CharField(max_length=20, choices=PayoutMethod.choices)
    bank_name = models.CharField(max_length=100, blank=True)
    account_number = models.CharField(max_length=50, blank=True)
    account_holder_name = models.CharField(max_length=150, blank=True)

    status = models.CharField(max_length=20, choices=PayoutStatus.choices, default=PayoutStatus.PENDING)
    admin_notes = models.TextField(blank=True)
    processed_by = models.CharField(max_length=150, blank=True)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)
    processed_at = models.DateTimeField(null=True, blank=True)

    class Meta:
        ordering = ["-created_at"]

    def __str__(self):
        return f"PayoutRequest #{self.pk} talent={self.talent_id} {self.requested_amount} ({self.status})"
