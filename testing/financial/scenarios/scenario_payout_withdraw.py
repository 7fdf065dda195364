from accounts.constants import TalentLevel
from billing.services.payout_service import approve_payout, get_talent_balance, mark_payout_processed, request_payout
from billing.services.pricing_service import ServiceSelection
from testing.financial.base import InMemoryStore, create_paid_booking, expect


def run():
    print("Running: scenario_payout_withdraw")
    store = InMemoryStore()
    talent = store.add_talent(talent_level=TalentLevel.FRESH, available_services=["chat"])
    create_paid_booking(store, talent.id, [ServiceSelection("chat", 4)])
    before = get_talent_balance(store, talent.id)
    expect(before["available_balance"] == 80000, f"Expected 80000 available, got {before['available_balance']}")

    payout = request_payout(store, talent_id=talent.id, amount=50000, payout_method="e_wallet")
    pending = get_talent_balance(store, talent.id)
    expect(pending["pending_payouts"] == 50000, "Expected the request to be reserved.")
    expect(pending["available_balance"] == 80000, "Pending requests must not count as withdrawn.")

    approve_payout(store, payout.id, processed_by="admin")
    mark_payout_processed(store, payout.id)
    after = get_talent_balance(store, talent.id)
    expect(after["total_withdrawn"] == 50000, f"Expected 50000 withdrawn, got {after['total_withdrawn']}")
    expect(after["available_balance"] == 30000, f"Expected 30000 available, got {after['available_balance']}")
    expect(after["pending_payouts"] == 0, "Expected no pending payouts.")
    print("✓ Passed")
