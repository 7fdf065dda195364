from accounts.constants import TalentLevel
from billing.services.pricing_service import ServiceSelection
from testing.financial.base import InMemoryStore, create_paid_booking, expect


def run():
    print("Running: scenario_multi_line_elite")
    store = InMemoryStore()
    talent = store.add_talent(talent_level=TalentLevel.ELITE, available_services=["chat", "call"])
    _, charge = create_paid_booking(
        store, talent.id, [ServiceSelection("chat", 1), ServiceSelection("call", 1.5)]
    )
    # 25000 + 60000, fee and commission taken once on the combined subtotal
    expect(charge.subtotal == 85000, f"Expected subtotal 85000, got {charge.subtotal}")
    expect(charge.platform_fee == 8500, f"Expected fee 8500, got {charge.platform_fee}")
    expect(charge.commission_amount == 15300, f"Expected commission 15300, got {charge.commission_amount}")
    expect(charge.talent_earnings == 69700, f"Expected earnings 69700, got {charge.talent_earnings}")
    expect(charge.total_charged == 93500, f"Expected total 93500, got {charge.total_charged}")
    print("✓ Passed")
