from datetime import date, datetime, timedelta, timezone as dt_timezone
from decimal import Decimal
from types import SimpleNamespace
from unittest import TestCase
from unittest.mock import Mock, patch

import stripe
from django.contrib.auth import get_user_model
from django.test import TestCase as DjangoTestCase
from django.urls import reverse

from accounts.models import TalentProfile
from billing import config
from billing.constants import (
    PAYOUT_BALANCE_EFFECT,
    PAYOUT_TRANSITIONS,
    TRANSACTION_SETTLED,
    TRANSACTION_TRANSITIONS,
    BookingStatus,
    PayoutStatus,
    TransactionStatus,
)
from billing.models import Booking, PayoutRequest, Transaction
from billing.services import booking_service, payout_service
from billing.services.payment_service import (
    BillingError,
    create_booking_payment_intent,
    handle_payment_failed,
    handle_payment_succeeded,
)
from billing.services.pricing_service import (
    ServiceOffering,
    ServiceSelection,
    ValidationError,
    commission_rate_for,
    compute_booking_charge,
    compute_line_subtotal,
    get_service_offerings,
)
from billing.services.settlement_service import (
    aggregate_platform_revenue,
    aggregate_talent_earnings,
    build_financial_overview,
    summarize_talent_earnings,
)
from billing.services.store import DjangoStore
from testing.financial.base import InMemoryStore, add_legacy_transaction, create_paid_booking

UTC = dt_timezone.utc


def _tx(status="paid", amount=50000, fee=5000, rate=20, commission=10000, earnings=40000, created_at=None):
    return {
        "status": status,
        "amount": amount,
        "platform_fee": fee,
        "commission_rate": rate,
        "commission_amount": commission,
        "companion_earnings": earnings,
        "created_at": created_at,
    }


def _payout(status, amount, created_at=None):
    return SimpleNamespace(status=status, requested_amount=amount, created_at=created_at)


class PricingServiceTests(TestCase):

    def test_chat_two_days_fresh(self):
        charge = compute_booking_charge([ServiceSelection("chat", 2)], "fresh")
        self.assertEqual(charge.subtotal, 50000)
        self.assertEqual(charge.platform_fee, 5000)
        self.assertEqual(charge.commission_rate, 20)
        self.assertEqual(charge.commission_amount, 10000)
        self.assertEqual(charge.talent_earnings, 40000)
        self.assertEqual(charge.total_charged, 55000)
        self.assertEqual(charge.platform_revenue, 15000)

    def test_offline_date_three_hours_vip(self):
        charge = compute_booking_charge([ServiceSelection("offline_date", 3)], "vip")
        line = charge.lines[0]
        self.assertEqual(line.base_amount, 450000)
        self.assertEqual(line.transport_amount, 90000)
        self.assertEqual(charge.subtotal, 540000)
        self.assertEqual(charge.platform_fee, 54000)
        self.assertEqual(charge.commission_amount, 81000)
        self.assertEqual(charge.talent_earnings, 459000)
        self.assertEqual(charge.total_charged, 594000)

    def test_multi_line_elite_sums_before_fee_and_commission(self):
        charge = compute_booking_charge([ServiceSelection("chat", 1), ServiceSelection("call", 2)], "elite")
        self.assertEqual(charge.subtotal, 105000)
        self.assertEqual(charge.platform_fee, 10500)
        self.assertEqual(charge.commission_amount, 18900)
        self.assertEqual(charge.talent_earnings, 86100)
        self.assertEqual(charge.total_charged, 115500)
        self.assertEqual(charge.service_name, "Chat + Call")

    def test_fee_applied_once_on_combined_subtotal(self):
        offerings = {
            "call": ServiceOffering("call", "Call", 40005, config.UNIT_HOUR),
            "video_call": ServiceOffering("video_call", "Video Call", 60005, config.UNIT_HOUR),
        }
        charge = compute_booking_charge(
            [ServiceSelection("call", 1), ServiceSelection("video_call", 1)], "elite", offerings=offerings
        )
        # Per line the fee would round to 4001 + 6001.
        self.assertEqual(charge.subtotal, 100010)
        self.assertEqual(charge.platform_fee, 10001)

    def test_rounds_half_up(self):
        offerings = {"call": ServiceOffering("call", "Call", 40005, config.UNIT_HOUR)}
        charge = compute_booking_charge([ServiceSelection("call", 1)], "fresh", offerings=offerings)
        self.assertEqual(charge.platform_fee, 4001)
        self.assertEqual(charge.commission_amount, 8001)
        self.assertEqual(charge.talent_earnings, 32004)

    def test_fractional_hours_rounded_at_money_step(self):
        self.assertEqual(compute_line_subtotal(ServiceSelection("call", 1.5), ServiceOffering("call", "Call", 40000, config.UNIT_HOUR)), 60000)
        offering = ServiceOffering("call", "Call", 33333, config.UNIT_HOUR)
        self.assertEqual(compute_line_subtotal(ServiceSelection("call", "0.5"), offering), 16667)

    def test_transport_rounded_separately(self):
        offering = ServiceOffering("offline_date", "Offline Date", 150001, config.UNIT_HOUR, 20)
        self.assertEqual(compute_line_subtotal(ServiceSelection("offline_date", 1), offering), 180001)

    def test_in_person_defaults_carry_transport(self):
        party = compute_booking_charge([ServiceSelection("party_buddy", 1)], "fresh")
        rent = compute_booking_charge([ServiceSelection("rent_lover", 2)], "fresh")
        self.assertEqual(party.subtotal, 1300000)
        self.assertEqual(rent.subtotal, 1250000)

    def test_commission_monotonic_by_level(self):
        earnings = {
            level: compute_booking_charge([ServiceSelection("chat", 2)], level).talent_earnings
            for level in ("fresh", "elite", "vip")
        }
        self.assertGreater(earnings["vip"], earnings["elite"])
        self.assertGreater(earnings["elite"], earnings["fresh"])

    def test_level_does_not_change_fee_or_total(self):
        charges = [compute_booking_charge([ServiceSelection("video_call", 2.5)], level) for level in ("fresh", "elite", "vip")]
        self.assertEqual({c.platform_fee for c in charges}, {15000})
        self.assertEqual({c.total_charged for c in charges}, {165000})
        self.assertEqual(len({c.commission_amount for c in charges}), 3)

    def test_same_input_same_output(self):
        selections = [ServiceSelection("offline_date", 2.25), ServiceSelection("chat", 1)]
        first = compute_booking_charge(selections, "elite")
        second = compute_booking_charge(selections, "elite")
        self.assertEqual(first, second)
        self.assertEqual(first.as_dict(), second.as_dict())

    def test_split_always_reconciles(self):
        cases = [
            ("chat", 1), ("chat", 7), ("call", 0.75), ("call", 3), ("video_call", 1.33),
            ("offline_date", 2.5), ("party_buddy", 1), ("rent_lover", 3),
        ]
        for service_type, duration in cases:
            for level in ("fresh", "elite", "vip"):
                charge = compute_booking_charge([ServiceSelection(service_type, duration)], level)
                self.assertEqual(charge.commission_amount + charge.talent_earnings, charge.subtotal)
                self.assertEqual(charge.platform_revenue + charge.talent_earnings, charge.total_charged)

    def test_rejects_zero_and_negative_duration_for_every_type(self):
        for service_type in config.SERVICE_OFFERINGS:
            for duration in (0, -1):
                with self.assertRaises(ValidationError):
                    compute_booking_charge([ServiceSelection(service_type, duration)], "fresh")

    def test_duration_granularity(self):
        for service_type, duration in (("chat", 1.5), ("rent_lover", 0.5), ("party_buddy", 2)):
            with self.assertRaises(ValidationError):
                compute_booking_charge([ServiceSelection(service_type, duration)], "fresh")
        self.assertEqual(compute_booking_charge([ServiceSelection("chat", 2.0)], "fresh").subtotal, 50000)

    def test_rejects_non_numeric_duration(self):
        for duration in ("two", None, True, float("nan")):
            with self.assertRaises(ValidationError):
                compute_booking_charge([ServiceSelection("call", duration)], "fresh")

    def test_rejects_unknown_type_level_and_empty(self):
        with self.assertRaises(ValidationError):
            compute_booking_charge([ServiceSelection("massage", 1)], "fresh")
        with self.assertRaises(ValidationError):
            compute_booking_charge([ServiceSelection("chat", 1)], "gold")
        with self.assertRaises(ValidationError):
            compute_booking_charge([], "fresh")

    def test_level_is_case_insensitive(self):
        self.assertEqual(commission_rate_for(" Elite "), 18)
        self.assertEqual(commission_rate_for("VIP"), 15)

    def test_offering_rules(self):
        with self.assertRaises(ValidationError):
            ServiceOffering("chat", "Chat", 25000, config.UNIT_DAY, 10)
        with self.assertRaises(ValidationError):
            ServiceOffering("chat", "Chat", 0, config.UNIT_DAY)
        with self.assertRaises(ValidationError):
            compute_line_subtotal(ServiceSelection("call", 1), ServiceOffering("chat", "Chat", 25000, config.UNIT_DAY))

    def test_talent_offerings(self):
        talent = SimpleNamespace(
            available_services=["chat", "party_buddy", "rent_lover"],
            party_buddy_eligible=False,
            party_buddy_rate=None,
            rent_lover_rate=700000,
        )
        offerings = get_service_offerings(talent)
        self.assertEqual(set(offerings), {"chat", "rent_lover"})
        self.assertEqual(offerings["rent_lover"].base_rate, 700000)
        self.assertEqual(offerings["rent_lover"].transport_percentage, 25)

        talent.party_buddy_eligible = True
        talent.party_buddy_rate = 1500000
        self.assertEqual(get_service_offerings(talent)["party_buddy"].base_rate, 1500000)

        empty = SimpleNamespace(available_services=[], party_buddy_eligible=True)
        self.assertEqual(set(get_service_offerings(empty)), set(config.DEFAULT_SERVICE_TYPES))

    def test_duration_precision_and_limit(self):
        charge = compute_booking_charge([ServiceSelection("call", "1.125")], "fresh")
        self.assertEqual(charge.duration, Decimal("1.125"))
        self.assertEqual(charge.subtotal, 45000)
        for duration in ("1.1234567", config.MAX_DURATION + 1):
            with self.assertRaises(ValidationError):
                compute_booking_charge([ServiceSelection("call", duration)], "fresh")
        self.assertEqual(compute_booking_charge([ServiceSelection("call", config.MAX_DURATION)], "fresh").subtotal, 400000000)

    def test_duration_kept_for_single_service_only(self):
        self.assertEqual(compute_booking_charge([ServiceSelection("chat", 2)], "fresh").duration, Decimal("2"))
        charge = compute_booking_charge([ServiceSelection("chat", 2), ServiceSelection("call", 1.5)], "fresh")
        self.assertIsNone(charge.duration)

    def test_unavailable_service_rejected(self):
        offerings = get_service_offerings(SimpleNamespace(available_services=["chat"]))
        with self.assertRaises(ValidationError):
            compute_booking_charge([ServiceSelection("call", 1)], "fresh", offerings=offerings)


class StatusTableTests(TestCase):

    def test_tables_cover_every_status(self):
        self.assertEqual(set(TRANSACTION_SETTLED), set(TransactionStatus))
        self.assertEqual(set(TRANSACTION_TRANSITIONS), set(TransactionStatus))
        self.assertEqual(set(PAYOUT_BALANCE_EFFECT), set(PayoutStatus))
        self.assertEqual(set(PAYOUT_TRANSITIONS), set(PayoutStatus))


class SettlementServiceTests(TestCase):

    def test_talent_earnings_only_count_paid(self):
        transactions = [
            _tx(earnings=40000),
            _tx(earnings=41000),
            _tx(status="pending", earnings=50000),
            _tx(status="failed", earnings=30000),
            _tx(status="refunded", earnings=20000),
        ]
        summary = aggregate_talent_earnings(transactions)
        self.assertEqual(summary["total_earnings"], 81000)
        self.assertEqual(summary["total_transactions"], 2)
        self.assertEqual(summary["skipped_records"], 0)

    def test_talent_balance_uses_completed_payouts(self):
        latest = datetime(2026, 10, 1, tzinfo=UTC)
        payouts = [
            _payout("approved", 20000, latest - timedelta(days=3)),
            _payout("processed", 10000, latest - timedelta(days=5)),
            _payout("pending", 5000, latest),
            _payout("rejected", 7000),
            _payout("failed", 3000),
        ]
        summary = aggregate_talent_earnings([_tx(earnings=81000)], payouts)
        self.assertEqual(summary["total_withdrawn"], 30000)
        self.assertEqual(summary["available_balance"], 51000)
        self.assertEqual(summary["pending_payouts"], 5000)
        self.assertEqual(summary["last_payout_date"], latest)

    def test_talent_earnings_skip_malformed(self):
        transactions = [_tx(earnings=40000), _tx(earnings=None), _tx(status="settled")]
        summary = aggregate_talent_earnings(transactions, [_payout("unknown", 1000)])
        self.assertEqual(summary["total_earnings"], 40000)
        self.assertEqual(summary["skipped_records"], 3)

    def test_talent_earnings_idempotent(self):
        transactions = [_tx(earnings=40000), _tx(rate=15, earnings=42500)]
        payouts = [_payout("approved", 10000)]
        self.assertEqual(
            aggregate_talent_earnings(transactions, payouts),
            aggregate_talent_earnings(transactions, payouts),
        )

    def test_platform_revenue_reconciles(self):
        now = datetime(2026, 10, 19, 12, tzinfo=UTC)
        transactions = [
            _tx(created_at=datetime(2026, 10, 5, 12, tzinfo=UTC)),
            _tx(amount=540000, fee=54000, rate=15, commission=81000, earnings=459000,
                created_at=datetime(2026, 9, 10, 12, tzinfo=UTC)),
            _tx(status="pending", amount=999999),
        ]
        report = aggregate_platform_revenue(transactions, now=now)
        self.assertEqual(report["total_revenue"], 649000)
        self.assertEqual(report["total_platform_fees"], 59000)
        self.assertEqual(report["total_commission_revenue"], 91000)
        self.assertEqual(report["total_companion_earnings"], 499000)
        self.assertEqual(report["total_platform_revenue"], 150000)
        self.assertEqual(report["total_revenue"], report["total_platform_revenue"] + report["total_companion_earnings"])
        self.assertEqual(report["total_transactions"], 2)
        self.assertEqual(report["average_transaction_value"], 324500)
        self.assertEqual(report["monthly_revenue"], 55000)
        self.assertEqual(report["monthly_transactions"], 1)
        self.assertEqual(report["discrepancy"], 0)
        self.assertEqual(report["warnings"], [])

    def test_legacy_records_are_skipped_and_flagged(self):
        transactions = [_tx(), _tx(rate=None, amount=70000), _tx(fee=None, amount=30000)]
        report = aggregate_platform_revenue(transactions)
        self.assertEqual(report["total_revenue"], 55000)
        self.assertEqual(report["skipped_records"], 2)
        self.assertEqual(len(report["warnings"]), 1)
        warning = report["warnings"][0]
        self.assertEqual(warning.code, "skipped_records")
        self.assertEqual(warning.skipped_amount, 100000)

    def test_missing_commission_amount_derived_from_earnings(self):
        report = aggregate_platform_revenue([_tx(commission=None)])
        self.assertEqual(report["total_commission_revenue"], 10000)
        self.assertEqual(report["skipped_records"], 0)

    def test_inconsistent_commission_reported_as_discrepancy(self):
        report = aggregate_platform_revenue([_tx(commission=9000)])
        self.assertEqual(report["discrepancy"], 1000)
        self.assertEqual([w.code for w in report["warnings"]], ["discrepancy"])

    def test_records_read_from_attributes(self):
        record = SimpleNamespace(**_tx())
        self.assertEqual(aggregate_platform_revenue([record])["total_revenue"], 55000)

    def test_talent_and_platform_reports_agree_on_legacy_rows(self):
        store = InMemoryStore()
        talent = store.add_talent(available_services=["chat"])
        create_paid_booking(store, talent.id, [ServiceSelection("chat", 2)])
        add_legacy_transaction(store, talent.id, 100000, companion_earnings=80000)

        talent_summary = summarize_talent_earnings(store)[0]
        platform = aggregate_platform_revenue(store.list_transactions())
        self.assertEqual(talent_summary["total_earnings"], 40000)
        self.assertEqual(talent_summary["skipped_records"], 1)
        self.assertEqual(platform["total_companion_earnings"], talent_summary["total_earnings"])
        self.assertEqual(platform["skipped_records"], 1)

    def test_stored_legacy_rows_are_skipped(self):
        store = InMemoryStore()
        talent = store.add_talent()
        add_legacy_transaction(store, talent.id, 100000)
        self.assertEqual(aggregate_platform_revenue(store.list_transactions())["skipped_records"], 1)

    def test_overview_fallback_for_missing_totals(self):
        overview = build_financial_overview({
            "total_revenue": 649000,
            "total_platform_fees": 59000,
            "total_companion_earnings": 499000,
        })
        self.assertEqual(overview["total_commission_revenue"], 91000)
        self.assertEqual(overview["total_platform_revenue"], 150000)
        self.assertEqual(overview["derived_fields"], ["total_commission_revenue", "total_platform_revenue"])
        self.assertEqual([w.code for w in overview["warnings"]], ["derived_totals"])
        self.assertTrue(overview["reconciled"])

    def test_overview_keeps_present_zero(self):
        overview = build_financial_overview({
            "total_revenue": 0,
            "total_platform_fees": 0,
            "total_companion_earnings": 0,
            "total_commission_revenue": 0,
            "total_platform_revenue": 0,
        })
        self.assertEqual(overview["derived_fields"], [])
        self.assertEqual(overview["warnings"], [])

    def test_overview_passes_complete_report_through(self):
        report = aggregate_platform_revenue([_tx()])
        overview = build_financial_overview(report)
        self.assertEqual(overview["derived_fields"], [])
        self.assertEqual(overview["total_platform_revenue"], 15000)
        self.assertTrue(overview["reconciled"])


class BookingServiceTests(TestCase):

    def setUp(self):
        self.store = InMemoryStore()
        self.talent = self.store.add_talent(talent_level="elite", available_services=["chat", "call"])

    def _create(self, selections=None):
        return booking_service.create_booking(
            self.store,
            talent_id=self.talent.id,
            customer_email=" Customer@Temanly.test ",
            selections=selections or [ServiceSelection("chat", 1), ServiceSelection("call", 2)],
            booking_date=date(2026, 11, 1),
        )

    def test_create_freezes_breakdown(self):
        booking, transaction, charge = self._create()
        self.assertEqual(transaction.status, TransactionStatus.PENDING)
        self.assertEqual(transaction.amount, 105000)
        self.assertEqual(transaction.platform_fee, 10500)
        self.assertEqual(transaction.total_charged, 115500)
        self.assertEqual(transaction.commission_rate, 18)
        self.assertEqual(transaction.commission_amount, 18900)
        self.assertEqual(transaction.companion_earnings, 86100)
        self.assertEqual(transaction.booking_id, booking.id)
        self.assertIsNone(transaction.duration)
        self.assertEqual(transaction.customer_email, "customer@temanly.test")
        self.assertEqual(booking.total_price, charge.total_charged)
        self.assertEqual(len(booking.services), 2)

    def test_invalid_selection_writes_nothing(self):
        with self.assertRaises(ValidationError):
            self._create([ServiceSelection("chat", 0)])
        with self.assertRaises(ValidationError):
            self._create([ServiceSelection("video_call", 1)])
        self.assertEqual(self.store.bookings, {})
        self.assertEqual(self.store.transactions, {})

    def test_missing_talent(self):
        with self.assertRaises(booking_service.BookingError):
            booking_service.quote_booking(self.store, 999, [ServiceSelection("chat", 1)])

    def test_paid_confirms_booking(self):
        booking, transaction, _ = self._create()
        paid = booking_service.mark_transaction_paid(self.store, transaction.id)
        self.assertEqual(paid.status, TransactionStatus.PAID)
        self.assertIsNotNone(paid.paid_at)
        self.assertEqual(paid.amount, transaction.amount)
        self.assertEqual(self.store.bookings[booking.id].status, BookingStatus.CONFIRMED)

    def test_paid_is_final_except_refund(self):
        _, transaction, _ = self._create()
        booking_service.mark_transaction_paid(self.store, transaction.id)
        with self.assertRaises(booking_service.BookingError):
            booking_service.mark_transaction_failed(self.store, transaction.id)
        with self.assertRaises(booking_service.BookingError):
            booking_service.mark_transaction_paid(self.store, transaction.id)
        refunded = booking_service.refund_transaction(self.store, transaction.id)
        self.assertEqual(refunded.status, TransactionStatus.REFUNDED)
        with self.assertRaises(booking_service.BookingError):
            booking_service.mark_transaction_paid(self.store, transaction.id)

    def test_cancel_pending(self):
        booking, transaction, _ = self._create()
        booking_service.cancel_transaction(self.store, transaction.id)
        self.assertEqual(self.store.bookings[booking.id].status, BookingStatus.CANCELLED)

    def test_lost_race_is_reported(self):
        _, transaction, _ = self._create()
        with patch.object(self.store, "update_transaction", return_value=None):
            with self.assertRaises(booking_service.BookingError):
                booking_service.mark_transaction_paid(self.store, transaction.id)

    def test_refund_cancels_booking(self):
        booking, transaction, _ = self._create()
        booking_service.mark_transaction_paid(self.store, transaction.id)
        booking_service.refund_transaction(self.store, transaction.id)
        self.assertEqual(self.store.bookings[booking.id].status, BookingStatus.CANCELLED)

    def test_refund_refused_after_earnings_paid_out(self):
        talent = self.store.add_talent(available_services=["chat"])
        transaction, charge = create_paid_booking(self.store, talent.id, [ServiceSelection("chat", 4)])
        payout = payout_service.request_payout(
            self.store, talent_id=talent.id, amount=charge.talent_earnings, payout_method="e_wallet"
        )
        payout_service.approve_payout(self.store, payout.id, processed_by="admin")

        with self.assertRaises(booking_service.BookingError):
            booking_service.refund_transaction(self.store, transaction.id)
        self.assertEqual(self.store.get_transaction(transaction.id).status, TransactionStatus.PAID)
        self.assertEqual(payout_service.get_talent_balance(self.store, talent.id)["available_balance"], 0)

    def test_create_runs_in_one_atomic_block(self):
        with patch.object(self.store, "atomic", wraps=self.store.atomic) as atomic:
            self._create()
        atomic.assert_called_once_with()

    def test_duplicate_slot_is_not_blocked(self):
        self._create()
        self._create()
        self.assertEqual(len(self.store.bookings), 2)


class PayoutServiceTests(TestCase):

    def setUp(self):
        self.store = InMemoryStore()
        self.talent = self.store.add_talent(available_services=["chat"])
        # 4 chat days at fresh: 80000 earnings
        create_paid_booking(self.store, self.talent.id, [ServiceSelection("chat", 4)])

    def _request(self, amount=50000, **kwargs):
        kwargs.setdefault("payout_method", "e_wallet")
        return payout_service.request_payout(self.store, talent_id=self.talent.id, amount=amount, **kwargs)

    def test_request_records_balance(self):
        payout = self._request()
        self.assertEqual(payout.status, PayoutStatus.PENDING)
        self.assertEqual(payout.available_earnings, 80000)

    def test_request_validation(self):
        for kwargs in (
            {"amount": 10000},
            {"amount": 50000.0},
            {"amount": 90000},
            {"payout_method": "crypto"},
            {"payout_method": "bank_transfer"},
        ):
            with self.assertRaises(payout_service.PayoutError):
                self._request(**kwargs)
        with self.assertRaises(payout_service.PayoutError):
            payout_service.request_payout(self.store, talent_id=42, amount=50000, payout_method="e_wallet")

    def test_bank_transfer_with_details(self):
        payout = self._request(
            payout_method="bank_transfer", bank_name="BCA", account_number="123", account_holder_name="Test"
        )
        self.assertEqual(payout.bank_name, "BCA")

    def test_approval_rechecks_balance(self):
        payout = self._request(60000)
        self.store.insert_payout_request(
            talent_id=self.talent.id,
            requested_amount=30000,
            available_earnings=80000,
            payout_method="e_wallet",
            status=PayoutStatus.APPROVED,
        )
        with self.assertRaises(payout_service.PayoutError):
            payout_service.approve_payout(self.store, payout.id, processed_by="admin")

    def test_lifecycle(self):
        payout = self._request()
        approved = payout_service.approve_payout(self.store, payout.id, processed_by="admin", admin_notes="ok")
        self.assertEqual(approved.status, PayoutStatus.APPROVED)
        self.assertEqual(approved.processed_by, "admin")
        self.assertIsNotNone(approved.processed_at)
        with self.assertRaises(payout_service.PayoutError):
            payout_service.reject_payout(self.store, payout.id, processed_by="admin")
        failed = payout_service.mark_payout_failed(self.store, payout.id, admin_notes="bounced")
        self.assertEqual(failed.status, PayoutStatus.FAILED)
        # A failed payout returns the money to the balance
        self.assertEqual(payout_service.get_talent_balance(self.store, self.talent.id)["available_balance"], 80000)

    def test_balance_checks_hold_talent_lock(self):
        with patch.object(self.store, "lock_talent", wraps=self.store.lock_talent) as lock_talent:
            payout = self._request()
            lock_talent.assert_called_once_with(self.talent.id)
            payout_service.approve_payout(self.store, payout.id, processed_by="admin")
            self.assertEqual(lock_talent.call_count, 2)

    def test_second_approval_sees_first(self):
        first = self._request(50000)
        # Inserted directly to model a request taken before the first was reserved.
        second = self.store.insert_payout_request(
            talent_id=self.talent.id,
            requested_amount=50000,
            available_earnings=80000,
            payout_method="e_wallet",
            status=PayoutStatus.PENDING,
        )
        payout_service.approve_payout(self.store, first.id, processed_by="admin")
        with self.assertRaises(payout_service.PayoutError):
            payout_service.approve_payout(self.store, second.id, processed_by="admin")
        self.assertEqual(payout_service.get_talent_balance(self.store, self.talent.id)["total_withdrawn"], 50000)

    def test_rejected_cannot_be_processed(self):
        payout = self._request()
        payout_service.reject_payout(self.store, payout.id, processed_by="admin")
        with self.assertRaises(payout_service.PayoutError):
            payout_service.mark_payout_processed(self.store, payout.id)


class PaymentServiceTests(TestCase):

    def setUp(self):
        self.store = InMemoryStore()
        talent = self.store.add_talent(available_services=["chat"])
        _, self.transaction, self.charge = booking_service.create_booking(
            self.store,
            talent_id=talent.id,
            customer_email="customer@temanly.test",
            selections=[ServiceSelection("chat", 2)],
            booking_date=date(2026, 11, 1),
        )

    def _intent(self, amount=None, **extra):
        obj = {
            "id": "pi_123",
            "amount_received": (amount if amount is not None else 55000) * 100,
            "metadata": {"transaction_id": str(self.transaction.id)},
        }
        obj.update(extra)
        return obj

    @patch("billing.services.payment_service.get_client")
    @patch("billing.services.payment_service.is_configured", return_value=True)
    def test_intent_charges_total_in_sen(self, is_configured, get_client):
        client = Mock()
        client.PaymentIntent.create.return_value = SimpleNamespace(id="pi_123", client_secret="pi_123_secret")
        get_client.return_value = client

        result = create_booking_payment_intent(self.transaction, customer_email="customer@temanly.test", attempt_id="a1")

        self.assertEqual(result, {"payment_intent_id": "pi_123", "client_secret": "pi_123_secret", "amount": 55000})
        kwargs = client.PaymentIntent.create.call_args.kwargs
        self.assertEqual(kwargs["amount"], 5500000)
        self.assertEqual(kwargs["currency"], "idr")
        self.assertEqual(kwargs["metadata"]["transaction_id"], str(self.transaction.id))
        self.assertEqual(kwargs["metadata"]["platform_fee"], "5000")
        self.assertEqual(kwargs["idempotency_key"], f"booking:{self.transaction.id}:a1")

    @patch("billing.services.payment_service.get_client")
    @patch("billing.services.payment_service.is_configured", return_value=True)
    def test_intent_stripe_error(self, is_configured, get_client):
        client = Mock()
        client.PaymentIntent.create.side_effect = stripe.StripeError("card declined")
        get_client.return_value = client
        with self.assertRaises(BillingError):
            create_booking_payment_intent(self.transaction, customer_email="customer@temanly.test")

    @patch("billing.services.payment_service.is_configured", return_value=False)
    def test_intent_requires_configuration(self, is_configured):
        with self.assertRaises(BillingError):
            create_booking_payment_intent(self.transaction, customer_email="customer@temanly.test")

    @patch("billing.services.payment_service.is_configured", return_value=True)
    def test_intent_requires_pending(self, is_configured):
        paid = booking_service.mark_transaction_paid(self.store, self.transaction.id)
        with self.assertRaises(BillingError):
            create_booking_payment_intent(paid, customer_email="customer@temanly.test")

    def test_succeeded_marks_paid_once(self):
        paid = handle_payment_succeeded(self.store, self._intent())
        self.assertEqual(paid.status, TransactionStatus.PAID)
        self.assertEqual(paid.stripe_payment_intent_id, "pi_123")
        again = handle_payment_succeeded(self.store, self._intent())
        self.assertEqual(again.status, TransactionStatus.PAID)
        self.assertEqual(again.paid_at, paid.paid_at)

    def test_succeeded_with_wrong_amount_is_ignored(self):
        self.assertIsNone(handle_payment_succeeded(self.store, self._intent(amount=50000)))
        self.assertEqual(self.store.get_transaction(self.transaction.id).status, TransactionStatus.PENDING)

    def test_succeeded_without_metadata_is_ignored(self):
        self.assertIsNone(handle_payment_succeeded(self.store, self._intent(metadata={})))

    def test_failed_marks_failed_only_when_pending(self):
        self.assertEqual(handle_payment_failed(self.store, self._intent()).status, TransactionStatus.FAILED)
        self.assertEqual(handle_payment_failed(self.store, self._intent()).status, TransactionStatus.FAILED)


class DjangoStoreTests(DjangoTestCase):

    def setUp(self):
        self.store = DjangoStore()
        self.talent = TalentProfile.objects.create(
            full_name="Amanda", email="Amanda@Temanly.test", talent_level="vip",
            available_services=["offline_date", "chat"],
        )

    def _book(self, selections):
        return booking_service.create_booking(
            self.store,
            talent_id=self.talent.id,
            customer_email="customer@temanly.test",
            selections=selections,
            booking_date=date(2026, 11, 1),
        )

    def test_booking_round_trip(self):
        booking, transaction, _ = self._book([ServiceSelection("offline_date", 3)])
        row = Transaction.objects.get(id=transaction.id)
        self.assertEqual(row.amount, 540000)
        self.assertEqual(row.companion_earnings, 459000)
        self.assertEqual(row.commission_rate, 15)
        self.assertEqual(row.status, "pending")

        booking_service.mark_transaction_paid(self.store, transaction.id)
        row.refresh_from_db()
        booking.refresh_from_db()
        self.assertEqual(row.status, "paid")
        self.assertIsNotNone(row.paid_at)
        self.assertEqual(booking.status, "confirmed")
        self.assertEqual(self.store.list_talent_ids_with_paid_transactions(), [self.talent.id])

    def test_fractional_duration_round_trip(self):
        _, transaction, charge = self._book([ServiceSelection("offline_date", "1.125")])
        row = Transaction.objects.get(id=transaction.id)
        self.assertEqual(row.duration, Decimal("1.125"))
        self.assertEqual(row.duration, charge.lines[0].duration)
        self.assertEqual(row.amount, 202500)
        self.assertEqual(aggregate_platform_revenue(self.store.list_transactions())["skipped_records"], 0)

    def test_multi_service_duration_is_left_to_booking_lines(self):
        booking, transaction, _ = self._book([ServiceSelection("chat", 2), ServiceSelection("offline_date", "1.5")])
        self.assertIsNone(Transaction.objects.get(id=transaction.id).duration)
        booking.refresh_from_db()
        self.assertEqual([line["duration"] for line in booking.services], ["2", "1.5"])

    def test_large_amounts_round_trip(self):
        talent = TalentProfile.objects.create(
            full_name="Eka", email="eka@temanly.test", talent_level="vip",
            available_services=["rent_lover"], rent_lover_rate=2000000000,
        )
        _, transaction, charge = booking_service.create_booking(
            self.store,
            talent_id=talent.id,
            customer_email="customer@temanly.test",
            selections=[ServiceSelection("rent_lover", 20)],
            booking_date=date(2026, 11, 1),
        )
        row = Transaction.objects.get(id=transaction.id)
        self.assertEqual(row.amount, 50000000000)
        self.assertEqual(row.total_charged, 55000000000)
        self.assertEqual(row.companion_earnings, charge.talent_earnings)

    def test_create_booking_rolls_back_when_transaction_insert_fails(self):
        with patch.object(self.store, "insert_transaction", side_effect=RuntimeError("insert failed")):
            with self.assertRaises(RuntimeError):
                self._book([ServiceSelection("chat", 1)])
        self.assertEqual(Booking.objects.count(), 0)

    def test_lock_talent(self):
        with self.store.atomic():
            self.assertEqual(self.store.lock_talent(self.talent.id).id, self.talent.id)
            self.assertIsNone(self.store.lock_talent("abc"))

    def test_compare_and_set(self):
        _, transaction, _ = self._book([ServiceSelection("chat", 1)])
        self.assertIsNone(self.store.update_transaction(transaction.id, expected_statuses=["paid"], status="refunded"))
        updated = self.store.update_transaction(transaction.id, expected_statuses=["pending"], status="cancelled")
        self.assertEqual(updated.status, "cancelled")

    def test_get_talent_tolerates_bad_id(self):
        self.assertIsNone(self.store.get_talent("abc"))
        self.assertIsNone(self.store.get_talent(None))
        self.assertEqual(self.store.get_talent(str(self.talent.id)).email, "amanda@temanly.test")

    def test_summaries(self):
        _, transaction, _ = self._book([ServiceSelection("chat", 2)])
        booking_service.mark_transaction_paid(self.store, transaction.id)
        summaries = summarize_talent_earnings(self.store)
        self.assertEqual(len(summaries), 1)
        self.assertEqual(summaries[0]["full_name"], "Amanda")
        self.assertEqual(summaries[0]["total_earnings"], 42500)


class BillingViewTests(DjangoTestCase):

    def setUp(self):
        self.talent = TalentProfile.objects.create(
            full_name="Bella", email="bella@temanly.test", talent_level="fresh", available_services=["chat"],
        )
        self.staff = get_user_model().objects.create_user(username="admin", password="pw-12345678", is_staff=True)

    def _post(self, name, body, **kwargs):
        return self.client.post(reverse(name, kwargs=kwargs), data=body, content_type="application/json")

    def _paid_booking(self, days=4):
        store = DjangoStore()
        _, transaction, _ = booking_service.create_booking(
            store,
            talent_id=self.talent.id,
            customer_email="customer@temanly.test",
            selections=[ServiceSelection("chat", days)],
            booking_date=date(2026, 11, 1),
        )
        return booking_service.mark_transaction_paid(store, transaction.id)

    def test_quote(self):
        response = self._post("billing:booking_quote", {
            "talent_id": self.talent.id, "selections": [{"service_type": "chat", "duration": 2}],
        })
        self.assertEqual(response.status_code, 200)
        data = response.json()
        self.assertEqual(data["total_charged"], 55000)
        self.assertEqual(data["talent_earnings"], 40000)
        self.assertEqual(Transaction.objects.count(), 0)

    def test_quote_errors(self):
        response = self._post("billing:booking_quote", {
            "talent_id": self.talent.id, "selections": [{"service_type": "chat", "duration": 0}],
        })
        self.assertEqual(response.status_code, 400)
        self.assertIn("error", response.json())
        response = self._post("billing:booking_quote", {
            "talent_id": 9999, "selections": [{"service_type": "chat", "duration": 1}],
        })
        self.assertEqual(response.status_code, 404)
        response = self.client.post(reverse("billing:booking_quote"), data="nope", content_type="application/json")
        self.assertEqual(response.status_code, 400)

    def test_create_booking(self):
        response = self._post("billing:create_booking", {
            "talent_id": self.talent.id,
            "customer_email": "customer@temanly.test",
            "booking_date": "2026-11-01",
            "selections": [{"service_type": "chat", "duration": 2}],
        })
        self.assertEqual(response.status_code, 201)
        transaction = Transaction.objects.get(id=response.json()["transaction_id"])
        self.assertEqual(transaction.total_charged, 55000)
        self.assertEqual(transaction.status, "pending")

    def test_create_booking_unknown_talent(self):
        response = self._post("billing:create_booking", {
            "talent_id": 9999,
            "customer_email": "customer@temanly.test",
            "booking_date": "2026-11-01",
            "selections": [{"service_type": "chat", "duration": 2}],
        })
        self.assertEqual(response.status_code, 404)
        self.assertEqual(Transaction.objects.count(), 0)

    def test_payout_missing_rows(self):
        self.client.force_login(self.staff)
        response = self._post("billing:request_payout", {"amount": 50000, "payout_method": "e_wallet"}, talent_id=9999)
        self.assertEqual(response.status_code, 404)
        response = self._post("billing:payout_decision", {"decision": "approve"}, request_id=9999)
        self.assertEqual(response.status_code, 404)

    def test_create_booking_bad_date(self):
        for booking_date in ("tomorrow", "2026-02-30"):
            response = self._post("billing:create_booking", {
                "talent_id": self.talent.id,
                "customer_email": "customer@temanly.test",
                "booking_date": booking_date,
                "selections": [{"service_type": "chat", "duration": 2}],
            })
            self.assertEqual(response.status_code, 400)

    def test_reports_are_staff_only(self):
        response = self.client.get(reverse("billing:platform_report"))
        self.assertEqual(response.status_code, 302)

    def test_platform_report(self):
        self._paid_booking()
        self.client.force_login(self.staff)
        data = self.client.get(reverse("billing:platform_report")).json()
        self.assertEqual(data["total_revenue"], 110000)
        self.assertEqual(data["total_platform_revenue"], 30000)
        self.assertEqual(data["total_companion_earnings"], 80000)
        self.assertTrue(data["reconciled"])
        self.assertEqual(data["talents"][0]["talent_id"], self.talent.id)

    def test_platform_report_flags_legacy_rows(self):
        self._paid_booking()
        Transaction.objects.create(
            talent=self.talent, amount=100000, status="paid", service_name="Legacy", duration=1,
        )
        self.client.force_login(self.staff)
        data = self.client.get(reverse("billing:platform_report")).json()
        self.assertEqual(data["skipped_records"], 1)
        self.assertFalse(data["reconciled"])
        self.assertEqual(data["warnings"][0]["code"], "skipped_records")

    def test_payout_flow(self):
        self._paid_booking()
        self.client.force_login(self.staff)
        response = self._post("billing:request_payout", {"amount": 50000, "payout_method": "e_wallet"}, talent_id=self.talent.id)
        self.assertEqual(response.status_code, 201)
        request_id = response.json()["payout_request_id"]

        response = self._post("billing:payout_decision", {"decision": "approve"}, request_id=request_id)
        self.assertEqual(response.json()["status"], "approved")
        self.assertEqual(PayoutRequest.objects.get(id=request_id).processed_by, "admin")

        data = self.client.get(reverse("billing:talent_earnings", kwargs={"talent_id": self.talent.id})).json()
        self.assertEqual(data["total_withdrawn"], 50000)
        self.assertEqual(data["available_balance"], 30000)

    def test_payout_over_balance(self):
        self._paid_booking()
        self.client.force_login(self.staff)
        response = self._post("billing:request_payout", {"amount": 90000, "payout_method": "e_wallet"}, talent_id=self.talent.id)
        self.assertEqual(response.status_code, 400)

    @patch("billing.views.create_booking_payment_intent")
    def test_payment_intent(self, create_intent):
        create_intent.return_value = {"payment_intent_id": "pi_1", "client_secret": "secret", "amount": 110000}
        transaction_id = self._paid_booking().id
        url = reverse("billing:transaction_payment_intent", kwargs={"transaction_id": transaction_id})
        response = self.client.post(url, data={"attempt_id": "a1"}, content_type="application/json")
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()["client_secret"], "secret")
        self.assertIn("publishable_key", response.json())

        missing = reverse("billing:transaction_payment_intent", kwargs={"transaction_id": 9999})
        self.assertEqual(self.client.post(missing, data={}, content_type="application/json").status_code, 404)

    def test_payment_intent_without_stripe(self):
        transaction_id = self._paid_booking().id
        url = reverse("billing:transaction_payment_intent", kwargs={"transaction_id": transaction_id})
        with self.settings(STRIPE_SECRET_KEY=""):
            response = self.client.post(url, data={}, content_type="application/json")
        self.assertEqual(response.status_code, 400)

    def test_webhook_requires_signature(self):
        response = self.client.post(reverse("billing:stripe_webhook"), data=b"{}", content_type="application/json")
        self.assertEqual(response.status_code, 400)

    @patch("billing.views.construct_webhook_event")
    def test_webhook_marks_paid(self, construct_event):
        store = DjangoStore()
        _, transaction, _ = booking_service.create_booking(
            store,
            talent_id=self.talent.id,
            customer_email="customer@temanly.test",
            selections=[ServiceSelection("chat", 2)],
            booking_date=date(2026, 11, 1),
        )
        construct_event.return_value = SimpleNamespace(
            type="payment_intent.succeeded",
            data=SimpleNamespace(object={
                "id": "pi_abc",
                "amount_received": 5500000,
                "metadata": {"transaction_id": str(transaction.id)},
            }),
        )
        response = self.client.post(
            reverse("billing:stripe_webhook"), data=b"{}", content_type="application/json",
            HTTP_STRIPE_SIGNATURE="t=1,v1=sig",
        )
        self.assertEqual(response.status_code, 200)
        row = Transaction.objects.get(id=transaction.id)
        self.assertEqual(row.status, "paid")
        self.assertEqual(row.stripe_payment_intent_id, "pi_abc")
