from accounts.constants import TalentLevel
from billing.services.payout_service import PayoutError, request_payout
from billing.services.pricing_service import ServiceSelection
from testing.financial.base import InMemoryStore, ScenarioError, create_paid_booking, expect


def run():
    print("Running: scenario_over_withdrawal_guard")
    store = InMemoryStore()
    talent = store.add_talent(talent_level=TalentLevel.FRESH, available_services=["chat"])
    create_paid_booking(store, talent.id, [ServiceSelection("chat", 4)])

    try:
        request_payout(store, talent_id=talent.id, amount=90000, payout_method="e_wallet")
    except PayoutError:
        pass
    else:
        raise ScenarioError("Expected over-withdrawal to be rejected.")

    request_payout(store, talent_id=talent.id, amount=60000, payout_method="e_wallet")
    try:
        request_payout(store, talent_id=talent.id, amount=50000, payout_method="e_wallet")
    except PayoutError:
        pass
    else:
        raise ScenarioError("Expected pending request to reserve the balance.")
    expect(len(store.list_payout_requests(talent_id=talent.id)) == 1, "Expected exactly one payout request.")
    print("✓ Passed")
