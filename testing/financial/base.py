"""
In-memory record store and fixtures for financial scenarios and tests.

InMemoryStore implements the same methods as billing.services.store.DjangoStore, so
services can be exercised without a database. Records are SimpleNamespace objects
with the same attribute names as the Django models.
"""
from contextlib import nullcontext
from copy import copy
from datetime import timedelta
from itertools import count
from types import SimpleNamespace

from django.conf import settings
from django.utils import timezone

from accounts.constants import TalentLevel
from billing.constants import TransactionStatus
from billing.services.booking_service import create_booking, mark_transaction_paid


class ScenarioError(Exception):
    pass


class InMemoryStore:

    def __init__(self, now=None):
        self._now = now or timezone.now
        self._ids = count(1)
        self.talents = {}
        self.bookings = {}
        self.transactions = {}
        self.payout_requests = {}

    def _insert(self, table, fields):
        now = self._now()
        record = SimpleNamespace(id=next(self._ids), created_at=now, updated_at=now)
        for name, value in fields.items():
            setattr(record, name, value)
        table[record.id] = record
        return copy(record)

    def _update(self, table, record_id, expected_statuses, fields):
        record = table.get(record_id)
        if record is None:
            return None
        if expected_statuses is not None and record.status not in set(expected_statuses):
            return None
        for name, value in fields.items():
            setattr(record, name, value)
        record.updated_at = self._now()
        return copy(record)

    def _get(self, table, record_id):
        record = table.get(record_id)
        return copy(record) if record is not None else None

    def _list(self, table, talent_id, status):
        return [
            copy(record) for record in table.values()
            if (talent_id is None or record.talent_id == talent_id)
            and (status is None or record.status == status)
        ]

    def atomic(self):
        return nullcontext()

    # talents
    def add_talent(self, **fields):
        defaults = {
            "full_name": "Test Talent",
            "email": f"talent{len(self.talents) + 1}@temanly.test",
            "talent_level": TalentLevel.FRESH,
            "total_orders": 0,
            "average_rating": 0,
            "available_services": [],
            "party_buddy_eligible": False,
            "party_buddy_rate": None,
            "rent_lover_rate": None,
        }
        defaults.update(fields)
        return self._insert(self.talents, defaults)

    def get_talent(self, talent_id):
        return self._get(self.talents, talent_id)

    def lock_talent(self, talent_id):
        return self._get(self.talents, talent_id)

    def update_talent(self, talent_id, **fields):
        return self._update(self.talents, talent_id, None, fields)

    # bookings
    def insert_booking(self, **fields):
        return self._insert(self.bookings, fields)

    def update_booking(self, booking_id, **fields):
        return self._update(self.bookings, booking_id, None, fields)

    # transactions
    def insert_transaction(self, **fields):
        fields.setdefault("paid_at", None)
        fields.setdefault("stripe_payment_intent_id", None)
        return self._insert(self.transactions, fields)

    def get_transaction(self, transaction_id):
        return self._get(self.transactions, transaction_id)

    def update_transaction(self, transaction_id, expected_statuses=None, **fields):
        return self._update(self.transactions, transaction_id, expected_statuses, fields)

    def list_transactions(self, talent_id=None, status=None):
        return self._list(self.transactions, talent_id, status)

    def list_talent_ids_with_paid_transactions(self):
        return sorted({t.talent_id for t in self.transactions.values() if t.status == TransactionStatus.PAID})

    # payout requests
    def insert_payout_request(self, **fields):
        fields.setdefault("processed_at", None)
        fields.setdefault("processed_by", "")
        fields.setdefault("admin_notes", "")
        return self._insert(self.payout_requests, fields)

    def get_payout_request(self, request_id):
        return self._get(self.payout_requests, request_id)

    def update_payout_request(self, request_id, expected_statuses=None, **fields):
        return self._update(self.payout_requests, request_id, expected_statuses, fields)

    def list_payout_requests(self, talent_id=None, status=None):
        return self._list(self.payout_requests, talent_id, status)


def assert_scenarios_enabled():
    if not settings.ALLOW_TEST_SCENARIOS:
        raise ScenarioError("Test scenarios disabled in this environment.")


def expect(condition, message):
    if not condition:
        raise ScenarioError(message)


def create_paid_booking(store, talent_id, selections, *, customer_email="customer@temanly.test", booking_date=None):
    """Book and pay in one go; returns the paid transaction and its charge."""
    _, transaction, charge = create_booking(
        store,
        talent_id=talent_id,
        customer_email=customer_email,
        selections=selections,
        booking_date=booking_date or (timezone.now() + timedelta(days=1)).date(),
    )
    return mark_transaction_paid(store, transaction.id), charge


def add_legacy_transaction(store, talent_id, amount, **fields):
    """Paid row from before the fee breakdown was stored."""
    record = {
        "talent_id": talent_id,
        "booking_id": None,
        "amount": amount,
        "platform_fee": None,
        "total_charged": None,
        "commission_rate": None,
        "commission_amount": None,
        "companion_earnings": None,
        "status": TransactionStatus.PAID,
        "service_name": "Legacy booking",
        "service_type": "",
        "duration": 1,
        "paid_at": timezone.now(),
    }
    record.update(fields)
    return store.insert_transaction(**record)
