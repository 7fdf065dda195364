"""
Earnings and revenue aggregation over persisted transactions.

Aggregates only read the amounts frozen on each transaction at charge time; nothing
is recomputed from a talent's current level. Malformed or legacy rows are skipped
and counted, never allowed to break a report.
"""
import logging
from collections.abc import Mapping
from dataclasses import dataclass
from decimal import Decimal

from django.utils import timezone

from billing.constants import (
    PAYOUT_BALANCE_EFFECT,
    PAYOUT_RESERVED,
    PAYOUT_WITHDRAWN,
    TRANSACTION_SETTLED,
)
from billing.services.pricing_service import round_half_up

logger = logging.getLogger(__name__)

REQUIRED_REVENUE_FIELDS = ("amount", "platform_fee", "commission_rate", "companion_earnings")


@dataclass(frozen=True)
class ReconciliationWarning:
    """Non-fatal report condition; shown to admins next to the figures it affects."""

    code: str
    message: str
    skipped_records: int = 0
    skipped_amount: int = 0
    discrepancy: int = 0

    def as_dict(self) -> dict:
        return {
            "code": self.code,
            "message": self.message,
            "skipped_records": self.skipped_records,
            "skipped_amount": self.skipped_amount,
            "discrepancy": self.discrepancy,
        }


def record_value(record, name):
    """Read a field from a model instance, namespace or mapping; None when absent."""
    if isinstance(record, Mapping):
        return record.get(name)
    return getattr(record, name, None)


def _is_settled(record):
    """True for paid, False for other known statuses, None for an unknown status."""
    return TRANSACTION_SETTLED.get(record_value(record, "status"))


def _has_breakdown(record) -> bool:
    return all(record_value(record, name) is not None for name in REQUIRED_REVENUE_FIELDS)


def aggregate_talent_earnings(transactions, payout_requests=()) -> dict:
    """
    Earnings summary for one talent.

    total_earnings: companion_earnings over paid transactions. Rows skipped by
    aggregate_platform_revenue are skipped here too, so both reports agree.
    total_withdrawn: approved/processed payout requests.
    available_balance: total_earnings - total_withdrawn.
    pending_payouts: requested but not yet decided; reserved against new requests.
    """
    total_earnings = 0
    paid_count = 0
    skipped = 0
    for record in transactions:
        settled = _is_settled(record)
        if settled is None:
            skipped += 1
            continue
        if not settled:
            continue
        if not _has_breakdown(record):
            skipped += 1
            continue
        total_earnings += int(record_value(record, "companion_earnings"))
        paid_count += 1

    total_withdrawn = 0
    pending = 0
    last_payout_date = None
    for request in payout_requests:
        effect = PAYOUT_BALANCE_EFFECT.get(record_value(request, "status"))
        amount = record_value(request, "requested_amount")
        if effect is None or amount is None:
            skipped += 1
            continue
        if effect == PAYOUT_WITHDRAWN:
            total_withdrawn += int(amount)
        elif effect == PAYOUT_RESERVED:
            pending += int(amount)
        created_at = record_value(request, "created_at")
        if created_at is not None and (last_payout_date is None or created_at > last_payout_date):
            last_payout_date = created_at

    if skipped:
        logger.warning("aggregate_talent_earnings: skipped %s malformed records", skipped)

    return {
        "total_earnings": total_earnings,
        "total_withdrawn": total_withdrawn,
        "available_balance": total_earnings - total_withdrawn,
        "pending_payouts": pending,
        "total_transactions": paid_count,
        "skipped_records": skipped,
        "last_payout_date": last_payout_date,
    }


def _same_month(created_at, now) -> bool:
    if timezone.is_aware(created_at):
        created_at = timezone.localtime(created_at)
    if timezone.is_aware(now):
        now = timezone.localtime(now)
    return created_at.year == now.year and created_at.month == now.month


def aggregate_platform_revenue(transactions, now=None) -> dict:
    """
    Platform financial report over paid transactions.

    total_revenue is what customers paid (subtotal + platform fee), so for a
    consistent set: total_revenue == total_platform_revenue + total_companion_earnings.
    Rows missing amount, platform_fee, commission_rate or companion_earnings are
    skipped and reported through a ReconciliationWarning.
    """
    now = now or timezone.now()
    total_revenue = 0
    total_fees = 0
    total_commission = 0
    total_earnings = 0
    paid_count = 0
    monthly_revenue = 0
    monthly_count = 0
    skipped = 0
    skipped_amount = 0

    for record in transactions:
        settled = _is_settled(record)
        if settled is False:
            continue
        if settled is None or not _has_breakdown(record):
            skipped += 1
            skipped_amount += int(record_value(record, "amount") or 0)
            continue

        amount = int(record_value(record, "amount"))
        fee = int(record_value(record, "platform_fee"))
        earnings = int(record_value(record, "companion_earnings"))
        commission = record_value(record, "commission_amount")
        commission = amount - earnings if commission is None else int(commission)

        total_revenue += amount + fee
        total_fees += fee
        total_commission += commission
        total_earnings += earnings
        paid_count += 1

        created_at = record_value(record, "created_at")
        if created_at is not None and _same_month(created_at, now):
            monthly_revenue += amount + fee
            monthly_count += 1

    total_platform_revenue = total_fees + total_commission
    discrepancy = total_revenue - (total_platform_revenue + total_earnings)

    warnings = []
    if skipped:
        logger.warning(
            "aggregate_platform_revenue: skipped %s malformed records (amount %s)", skipped, skipped_amount
        )
        warnings.append(ReconciliationWarning(
            code="skipped_records",
            message=f"{skipped} transaction(s) without a complete fee breakdown were left out of the totals.",
            skipped_records=skipped,
            skipped_amount=skipped_amount,
        ))
    if discrepancy:
        logger.warning("aggregate_platform_revenue: revenue does not reconcile, discrepancy=%s", discrepancy)
        warnings.append(ReconciliationWarning(
            code="discrepancy",
            message="Revenue does not equal platform revenue plus talent earnings.",
            discrepancy=discrepancy,
        ))

    return {
        "total_revenue": total_revenue,
        "total_platform_fees": total_fees,
        "total_commission_revenue": total_commission,
        "total_companion_earnings": total_earnings,
        "total_platform_revenue": total_platform_revenue,
        "total_transactions": paid_count,
        "average_transaction_value": round_half_up(Decimal(total_revenue) / paid_count) if paid_count else 0,
        "monthly_revenue": monthly_revenue,
        "monthly_transactions": monthly_count,
        "skipped_records": skipped,
        "discrepancy": discrepancy,
        "warnings": warnings,
    }


def build_financial_overview(analytics) -> dict:
    """
    Complete a possibly partial analytics mapping for display.

    Missing commission revenue falls back to total_revenue - platform fees - talent
    earnings; missing platform revenue to fees + commission. Derived fields are
    listed in derived_fields and flagged with a ReconciliationWarning.
    """
    total_revenue = analytics.get("total_revenue") or 0
    total_fees = analytics.get("total_platform_fees") or 0
    total_earnings = analytics.get("total_companion_earnings") or 0
    warnings = list(analytics.get("warnings") or [])
    derived = []

    commission = analytics.get("total_commission_revenue")
    if commission is None:
        commission = total_revenue - total_fees - total_earnings
        derived.append("total_commission_revenue")
    platform_revenue = analytics.get("total_platform_revenue")
    if platform_revenue is None:
        platform_revenue = total_fees + commission
        derived.append("total_platform_revenue")

    if derived:
        logger.warning("build_financial_overview: derived %s from remaining totals", ", ".join(derived))
        warnings.append(ReconciliationWarning(
            code="derived_totals",
            message=f"Derived from remaining totals: {', '.join(derived)}.",
        ))

    overview = dict(analytics)
    overview.update({
        "total_revenue": total_revenue,
        "total_platform_fees": total_fees,
        "total_companion_earnings": total_earnings,
        "total_commission_revenue": commission,
        "total_platform_revenue": platform_revenue,
        "derived_fields": derived,
        "reconciled": total_revenue == platform_revenue + total_earnings and not analytics.get("skipped_records"),
        "warnings": warnings,
    })
    return overview


def summarize_talent_earnings(store) -> list:
    """Earnings summary for every talent with at least one paid transaction, highest earner first."""
    summaries = []
    for talent_id in store.list_talent_ids_with_paid_transactions():
        talent = store.get_talent(talent_id)
        summary = aggregate_talent_earnings(
            store.list_transactions(talent_id=talent_id),
            store.list_payout_requests(talent_id=talent_id),
        )
        summary.update({
            "talent_id": talent_id,
            "full_name": record_value(talent, "full_name") if talent else "Unknown",
            "email": record_value(talent, "email") if talent else "",
            "talent_level": record_value(talent, "talent_level") if talent else None,
        })
        summaries.append(summary)
    summaries.sort(key=lambda s: s["total_earnings"], reverse=True)
    return summaries
