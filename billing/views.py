"""
Billing views: quotes, booking creation, earnings and revenue reports, payouts, Stripe webhook.
JSON only; all money rules live in billing.services.
"""
import json
import logging

import stripe
from django.conf import settings
from django.contrib.admin.views.decorators import staff_member_required
from django.http import HttpResponse, JsonResponse
from django.utils.dateparse import parse_date
from django.views.decorators.csrf import csrf_exempt
from django.views.decorators.http import require_http_methods

from billing.services import booking_service, payout_service
from billing.services.payment_service import (
    BillingError,
    create_booking_payment_intent,
    handle_payment_failed,
    handle_payment_succeeded,
)
from billing.services.pricing_service import ServiceSelection, ValidationError
from billing.services.settlement_service import (
    aggregate_platform_revenue,
    build_financial_overview,
    summarize_talent_earnings,
)
from billing.services.store import DjangoStore
from billing.services.stripe_service import check_api_ok, construct_webhook_event, is_configured

logger = logging.getLogger(__name__)


def _json_body(request):
    try:
        data = json.loads(request.body or b"{}")
    except (ValueError, UnicodeDecodeError):
        return None
    return data if isinstance(data, dict) else None


def _selections(data):
    raw = data.get("selections")
    if not isinstance(raw, list):
        raise ValidationError("selections must be a list.")
    selections = []
    for item in raw:
        if not isinstance(item, dict) or "service_type" not in item:
            raise ValidationError("Each selection needs a service_type and a duration.")
        selections.append(ServiceSelection(service_type=item["service_type"], duration=item.get("duration")))
    return selections


def _error(message, status=400):
    return JsonResponse({"error": message}, status=status)


def _report(value):
    """Make a report dict JSON-safe (warnings, datetimes)."""
    if isinstance(value, dict):
        return {key: _report(item) for key, item in value.items()}
    if isinstance(value, list):
        return [_report(item) for item in value]
    if hasattr(value, "as_dict"):
        return value.as_dict()
    if hasattr(value, "isoformat"):
        return value.isoformat()
    return value


@csrf_exempt
@require_http_methods(["POST"])
def booking_quote(request):
    """
    POST /billing/quote/
    Body: {"talent_id": 1, "selections": [{"service_type": "chat", "duration": 2}]}
    Returns the price breakdown without creating anything.
    """
    data = _json_body(request)
    if data is None:
        return _error("Invalid JSON body.")
    try:
        charge = booking_service.quote_booking(DjangoStore(), data.get("talent_id"), _selections(data))
    except booking_service.TalentNotFound as e:
        return _error(e.message, status=404)
    except booking_service.BookingError as e:
        return _error(e.message)
    except ValidationError as e:
        return _error(e.message)
    return JsonResponse(charge.as_dict())


@csrf_exempt
@require_http_methods(["POST"])
def create_booking(request):
    """
    POST /billing/bookings/
    Body: quote body plus customer_email, booking_date (YYYY-MM-DD), optional location/notes.
    Creates a pending booking and transaction.
    """
    data = _json_body(request)
    if data is None:
        return _error("Invalid JSON body.")
    try:
        booking_date = parse_date(str(data.get("booking_date") or ""))
    except ValueError:
        booking_date = None
    if booking_date is None:
        return _error("booking_date must be YYYY-MM-DD.")
    try:
        booking, transaction, charge = booking_service.create_booking(
            DjangoStore(),
            talent_id=data.get("talent_id"),
            customer_email=data.get("customer_email") or "",
            selections=_selections(data),
            booking_date=booking_date,
            location=data.get("location") or "",
            notes=data.get("notes") or "",
        )
    except booking_service.TalentNotFound as e:
        return _error(e.message, status=404)
    except booking_service.BookingError as e:
        return _error(e.message)
    except ValidationError as e:
        return _error(e.message)
    return JsonResponse({
        "booking_id": booking.id,
        "transaction_id": transaction.id,
        "status": transaction.status,
        "charge": charge.as_dict(),
    }, status=201)


@csrf_exempt
@require_http_methods(["POST"])
def transaction_payment_intent(request, transaction_id):
    """
    POST /billing/transactions/<id>/payment-intent/
    Body: {"customer_email": "...", "attempt_id": "..."}. Starts card payment of total_charged.
    """
    data = _json_body(request)
    if data is None:
        return _error("Invalid JSON body.")
    transaction = DjangoStore().get_transaction(transaction_id)
    if transaction is None:
        return _error("Transaction not found.", status=404)
    try:
        intent = create_booking_payment_intent(
            transaction,
            customer_email=data.get("customer_email") or transaction.customer_email,
            attempt_id=data.get("attempt_id"),
        )
    except BillingError as e:
        return _error(e.message)
    intent["publishable_key"] = settings.STRIPE_PUBLISHABLE_KEY
    return JsonResponse(intent)


@staff_member_required
@require_http_methods(["GET"])
def talent_earnings(request, talent_id):
    """GET /billing/talents/<id>/earnings/ — staff-only earnings summary for one talent."""
    store = DjangoStore()
    if store.get_talent(talent_id) is None:
        return _error("Talent not found.", status=404)
    return JsonResponse(_report(payout_service.get_talent_balance(store, talent_id)))


@staff_member_required
@require_http_methods(["GET"])
def platform_report(request):
    """GET /billing/reports/platform/ — staff-only revenue report and per-talent earnings."""
    store = DjangoStore()
    overview = build_financial_overview(aggregate_platform_revenue(store.list_transactions()))
    overview["talents"] = summarize_talent_earnings(store)
    return JsonResponse(_report(overview))


@staff_member_required
@require_http_methods(["POST"])
def request_payout(request, talent_id):
    """POST /billing/talents/<id>/payouts/ — submit a payout request on a talent's behalf."""
    data = _json_body(request)
    if data is None:
        return _error("Invalid JSON body.")
    try:
        payout = payout_service.request_payout(
            DjangoStore(),
            talent_id=talent_id,
            amount=data.get("amount"),
            payout_method=data.get("payout_method") or "",
            bank_name=data.get("bank_name") or "",
            account_number=data.get("account_number") or "",
            account_holder_name=data.get("account_holder_name") or "",
        )
    except payout_service.PayoutNotFound as e:
        return _error(e.message, status=404)
    except payout_service.PayoutError as e:
        return _error(e.message)
    return JsonResponse({"payout_request_id": payout.id, "status": payout.status}, status=201)


@staff_member_required
@require_http_methods(["POST"])
def payout_decision(request, request_id):
    """POST /billing/payouts/<id>/decision/ — body {"decision": "approve"|"reject", "admin_notes": "..."}."""
    data = _json_body(request)
    if data is None:
        return _error("Invalid JSON body.")
    decisions = {"approve": payout_service.approve_payout, "reject": payout_service.reject_payout}
    action = decisions.get(data.get("decision"))
    if action is None:
        return _error("decision must be 'approve' or 'reject'.")
    try:
        payout = action(
            DjangoStore(),
            request_id,
            processed_by=request.user.get_username(),
            admin_notes=data.get("admin_notes") or "",
        )
    except payout_service.PayoutNotFound as e:
        return _error(e.message, status=404)
    except payout_service.PayoutError as e:
        return _error(e.message)
    return JsonResponse({"payout_request_id": payout.id, "status": payout.status})


@staff_member_required
def stripe_status(request):
    """GET /billing/stripe-status/ — staff-only; stripe_configured and api_ok."""
    return JsonResponse({
        "stripe_configured": is_configured(),
        "api_ok": check_api_ok() if is_configured() else False,
    })


@csrf_exempt
@require_http_methods(["POST"])
def stripe_webhook(request):
    """
    POST /billing/stripe-webhook/
    Verifies signature; payment_intent.succeeded marks the transaction paid,
    payment_intent.payment_failed marks it failed. Idempotent.
    """
    sig_header = request.META.get("HTTP_STRIPE_SIGNATURE", "")
    if not sig_header:
        logger.warning("stripe_webhook: missing Stripe-Signature header")
        return HttpResponse(status=400)
    try:
        event = construct_webhook_event(request.body, sig_header)
    except ValueError as e:
        logger.warning("stripe_webhook: invalid payload %s", e)
        return HttpResponse(status=400)
    except stripe.SignatureVerificationError as e:
        logger.warning("stripe_webhook: signature verification failed %s", e)
        return HttpResponse(status=400)

    store = DjangoStore()
    if event.type == "payment_intent.succeeded":
        handle_payment_succeeded(store, event.data.object)
    elif event.type == "payment_intent.payment_failed":
        handle_payment_failed(store, event.data.object)
    return HttpResponse(status=200)
