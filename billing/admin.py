from django.contrib import admin, messages

from .models import Booking, PayoutRequest, Transaction
from .services import payout_service
from .services.store import DjangoStore

AMOUNT_FIELDS = (
    "amount", "platform_fee", "total_charged", "commission_rate",
    "commission_amount", "companion_earnings", "currency",
)


@admin.register(Booking)
class BookingAdmin(admin.ModelAdmin):
    list_display = ("id", "talent", "customer_email", "booking_date", "total_price", "status", "created_at")
    list_filter = ("status",)
    search_fields = ("customer_email", "talent__full_name")
    readonly_fields = ("services", "total_price", "created_at", "updated_at")


@admin.register(Transaction)
class TransactionAdmin(admin.ModelAdmin):
    list_display = (
        "id", "talent", "service_name", "amount", "platform_fee",
        "commission_rate", "companion_earnings", "status", "created_at",
    )
    list_filter = ("status", "commission_rate")
    search_fields = ("stripe_payment_intent_id", "customer_email", "talent__full_name")
    # Fee breakdown is frozen at charge time
    readonly_fields = AMOUNT_FIELDS + ("status", "stripe_payment_intent_id", "created_at", "updated_at", "paid_at")


@admin.register(PayoutRequest)
class PayoutRequestAdmin(admin.ModelAdmin):
    list_display = ("id", "talent", "requested_amount", "payout_method", "status", "created_at", "processed_at")
    list_filter = ("status", "payout_method")
    search_fields = ("talent__full_name", "account_holder_name")
    readonly_fields = ("requested_amount", "available_earnings", "status", "processed_by", "created_at", "updated_at", "processed_at")
    actions = ["approve_requests", "reject_requests"]

    def _decide(self, request, queryset, action, label):
        store = DjangoStore()
        done = 0
        for payout in queryset:
            try:
                action(store, payout.id, processed_by=request.user.get_username())
                done += 1
            except payout_service.PayoutError as e:
                self.message_user(request, f"Request #{payout.id}: {e.message}", level=messages.ERROR)
        if done:
            self.message_user(request, f"{done} payout request(s) {label}.")

    def approve_requests(self, request, queryset):
        """Admin action to approve selected pending payout requests"""
        self._decide(request, queryset, payout_service.approve_payout, "approved")
    approve_requests.short_description = "Approve selected payout requests"

    def reject_requests(self, request, queryset):
        """Admin action to reject selected pending payout requests"""
        self._decide(request, queryset, payout_service.reject_payout, "rejected")
    reject_requests.short_description = "Reject selected payout requests"
