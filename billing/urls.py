from django.urls import path
from . import views

app_name = "billing"

urlpatterns = [
    path("quote/", views.booking_quote, name="booking_quote"),
    path("bookings/", views.create_booking, name="create_booking"),
    path("transactions/<int:transaction_id>/payment-intent/", views.transaction_payment_intent, name="transaction_payment_intent"),
    path("talents/<int:talent_id>/earnings/", views.talent_earnings, name="talent_earnings"),
    path("talents/<int:talent_id>/payouts/", views.request_payout, name="request_payout"),
    path("payouts/<int:request_id>/decision/", views.payout_decision, name="payout_decision"),
    path("reports/platform/", views.platform_report, name="platform_report"),
    path("stripe-status/", views.stripe_status, name="stripe_status"),
    path("stripe-webhook/", views.stripe_webhook, name="stripe_webhook"),
]
