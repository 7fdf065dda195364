from testing.financial.base import ScenarioError, assert_scenarios_enabled
from testing.financial.scenarios import (
    scenario_chat_fresh,
    scenario_illegal_refund_after_payout,
    scenario_legacy_reconciliation,
    scenario_multi_line_elite,
    scenario_offline_date_vip,
    scenario_over_withdrawal_guard,
    scenario_payout_withdraw,
    scenario_tier_change_keeps_history,
)

AVAILABLE_SCENARIOS = {
    "chat_fresh": scenario_chat_fresh,
    "offline_date_vip": scenario_offline_date_vip,
    "multi_line_elite": scenario_multi_line_elite,
    "tier_change": scenario_tier_change_keeps_history,
    "withdraw": scenario_payout_withdraw,
    "over_withdrawal_guard": scenario_over_withdrawal_guard,
    "legacy_reconciliation": scenario_legacy_reconciliation,
    "illegal_refund_after_payout": scenario_illegal_refund_after_payout,
}


def run_scenario(name):
    assert_scenarios_enabled()
    if name not in AVAILABLE_SCENARIOS:
        raise ScenarioError(f"Unknown scenario '{name}'. Available: {', '.join(AVAILABLE_SCENARIOS.keys())}")
    AVAILABLE_SCENARIOS[name].run()


def run_all():
    assert_scenarios_enabled()
    for _, scenario in AVAILABLE_SCENARIOS.items():
        scenario.run()
