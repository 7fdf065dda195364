"""
Record store used by the booking, payout and reporting services.

Services take the store as an argument and only use the methods below, so tests and
scenarios can pass testing.financial.base.InMemoryStore instead of the ORM.
update_* methods are compare-and-set: with expected_statuses given, the row is only
updated if its current status is one of them, otherwise None is returned.
Balance checks run inside atomic() with the talent row taken through lock_talent(),
so two money movements for one talent are serialized.
"""
from django.db import transaction
from django.utils import timezone

from accounts.models import TalentProfile
from billing.constants import TransactionStatus
from billing.models import Booking, PayoutRequest, Transaction


class DjangoStore:

    def atomic(self):
        return transaction.atomic()

    def get_talent(self, talent_id):
        try:
            talent_id = int(talent_id)
        except (TypeError, ValueError):
            return None
        return TalentProfile.objects.filter(id=talent_id).first()

    def lock_talent(self, talent_id):
        """Fetch the talent with a row lock; call inside atomic()."""
        try:
            talent_id = int(talent_id)
        except (TypeError, ValueError):
            return None
        return TalentProfile.objects.select_for_update().filter(id=talent_id).first()

    def update_talent(self, talent_id, **fields):
        talent = self.get_talent(talent_id)
        if talent is None:
            return None
        for name, value in fields.items():
            setattr(talent, name, value)
        talent.save(update_fields=list(fields) + ["updated_at"])
        return talent

    def insert_booking(self, **fields):
        return Booking.objects.create(**fields)

    def update_booking(self, booking_id, **fields):
        Booking.objects.filter(id=booking_id).update(updated_at=timezone.now(), **fields)
        return Booking.objects.filter(id=booking_id).first()

    def insert_transaction(self, **fields):
        return Transaction.objects.create(**fields)

    def get_transaction(self, transaction_id):
        return Transaction.objects.filter(id=transaction_id).first()

    @transaction.atomic()
    def update_transaction(self, transaction_id, expected_statuses=None, **fields):
        rows = Transaction.objects.filter(id=transaction_id)
        if expected_statuses is not None:
            rows = rows.filter(status__in=list(expected_statuses))
        if not rows.update(updated_at=timezone.now(), **fields):
            return None
        return self.get_transaction(transaction_id)

    def list_transactions(self, talent_id=None, status=None):
        rows = Transaction.objects.all()
        if talent_id is not None:
            rows = rows.filter(talent_id=talent_id)
        if status is not None:
            rows = rows.filter(status=status)
        return list(rows)

    def list_talent_ids_with_paid_transactions(self):
        return list(
            Transaction.objects.filter(status=TransactionStatus.PAID)
            .order_by()
            .values_list("talent_id", flat=True)
            .distinct()
        )

    def insert_payout_request(self, **fields):
        return PayoutRequest.objects.create(**fields)

    def get_payout_request(self, request_id):
        return PayoutRequest.objects.filter(id=request_id).first()

    @transaction.atomic()
    def update_payout_request(self, request_id, expected_statuses=None, **fields):
        rows = PayoutRequest.objects.filter(id=request_id)
        if expected_statuses is not None:
            rows = rows.filter(status__in=list(expected_statuses))
        if not rows.update(updated_at=timezone.now(), **fields):
            return None
        return self.get_payout_request(request_id)

    def list_payout_requests(self, talent_id=None, status=None):
        rows = PayoutRequest.objects.all()
        if talent_id is not None:
            rows = rows.filter(talent_id=talent_id)
        if status is not None:
            rows = rows.filter(status=status)
        return list(rows)
