from accounts.constants import TalentLevel
from billing.services.pricing_service import ServiceSelection
from testing.financial.base import InMemoryStore, create_paid_booking, expect


def run():
    print("Running: scenario_offline_date_vip")
    store = InMemoryStore()
    talent = store.add_talent(talent_level=TalentLevel.VIP, available_services=["offline_date"])
    transaction, charge = create_paid_booking(store, talent.id, [ServiceSelection("offline_date", 3)])
    line = charge.lines[0]
    expect(line.base_amount == 450000, f"Expected base 450000, got {line.base_amount}")
    expect(line.transport_amount == 90000, f"Expected transport 90000, got {line.transport_amount}")
    expect(charge.subtotal == 540000, f"Expected subtotal 540000, got {charge.subtotal}")
    expect(charge.platform_fee == 54000, f"Expected fee 54000, got {charge.platform_fee}")
    expect(charge.commission_amount == 81000, f"Expected commission 81000, got {charge.commission_amount}")
    expect(charge.talent_earnings == 459000, f"Expected earnings 459000, got {charge.talent_earnings}")
    expect(charge.total_charged == 594000, f"Expected total 594000, got {charge.total_charged}")
    expect(transaction.commission_rate == 15, f"Expected frozen rate 15, got {transaction.commission_rate}")
    print("✓ Passed")
