from datetime import timedelta

from django.utils import timezone

from accounts.constants import TalentLevel
from accounts.services.talent_level_service import apply_talent_level
from billing.services.payout_service import get_talent_balance
from billing.services.pricing_service import ServiceSelection
from testing.financial.base import InMemoryStore, create_paid_booking, expect


def run():
    print("Running: scenario_tier_change_keeps_history")
    store = InMemoryStore()
    talent = store.add_talent(
        talent_level=TalentLevel.FRESH,
        available_services=["video_call"],
        total_orders=120,
        average_rating=4.8,
        created_at=timezone.now() - timedelta(days=400),
    )
    first, _ = create_paid_booking(store, talent.id, [ServiceSelection("video_call", 1)])
    _, changed = apply_talent_level(store, talent.id)
    expect(changed, "Expected talent to be promoted.")
    expect(store.get_talent(talent.id).talent_level == TalentLevel.VIP, "Expected VIP after recalculation.")
    second, _ = create_paid_booking(store, talent.id, [ServiceSelection("video_call", 1)])

    expect(store.get_transaction(first.id).commission_rate == 20, "First transaction must keep its 20% rate.")
    expect(second.commission_rate == 15, f"Expected 15% after promotion, got {second.commission_rate}")
    balance = get_talent_balance(store, talent.id)
    # 60000 * 80% + 60000 * 85%
    expect(balance["total_earnings"] == 99000, f"Expected 99000 earnings, got {balance['total_earnings']}")
    print("✓ Passed")
