from accounts.constants import TalentLevel
from billing.services.booking_service import BookingError, refund_transaction
from billing.services.payout_service import approve_payout, get_talent_balance, request_payout
from billing.services.pricing_service import ServiceSelection
from testing.financial.base import InMemoryStore, ScenarioError, create_paid_booking, expect


def run():
    print("Running: scenario_illegal_refund_after_payout")
    store = InMemoryStore()
    talent = store.add_talent(talent_level=TalentLevel.FRESH, available_services=["chat"])
    transaction, charge = create_paid_booking(store, talent.id, [ServiceSelection("chat", 4)])
    payout = request_payout(store, talent_id=talent.id, amount=charge.talent_earnings, payout_method="e_wallet")
    approve_payout(store, payout.id, processed_by="scenario")

    try:
        refund_transaction(store, transaction.id)
    except BookingError:
        pass
    else:
        raise ScenarioError("Expected BookingError when refunding a booking whose earnings were paid out.")

    balance = get_talent_balance(store, talent.id)
    expect(balance["available_balance"] == 0, f"Expected balance 0, got {balance['available_balance']}")
    expect(store.get_transaction(transaction.id).status == "paid", "Transaction must stay paid.")
    print("✓ Passed")
