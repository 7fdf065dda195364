from accounts.constants import TalentLevel
from billing.services.pricing_service import ServiceSelection
from testing.financial.base import InMemoryStore, create_paid_booking, expect


def run():
    print("Running: scenario_chat_fresh")
    store = InMemoryStore()
    talent = store.add_talent(talent_level=TalentLevel.FRESH, available_services=["chat"])
    transaction, charge = create_paid_booking(store, talent.id, [ServiceSelection("chat", 2)])
    expect(charge.subtotal == 50000, f"Expected subtotal 50000, got {charge.subtotal}")
    expect(charge.platform_fee == 5000, f"Expected fee 5000, got {charge.platform_fee}")
    expect(charge.commission_amount == 10000, f"Expected commission 10000, got {charge.commission_amount}")
    expect(charge.talent_earnings == 40000, f"Expected earnings 40000, got {charge.talent_earnings}")
    expect(charge.total_charged == 55000, f"Expected total 55000, got {charge.total_charged}")
    expect(charge.platform_revenue == 15000, f"Expected platform revenue 15000, got {charge.platform_revenue}")
    expect(transaction.status == "paid", f"Expected paid, got {transaction.status}")
    print("✓ Passed")
