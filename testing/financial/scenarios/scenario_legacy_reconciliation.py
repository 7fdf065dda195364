from accounts.constants import TalentLevel
from billing.services.pricing_service import ServiceSelection
from billing.services.settlement_service import aggregate_platform_revenue, build_financial_overview
from testing.financial.base import InMemoryStore, add_legacy_transaction, create_paid_booking, expect


def run():
    print("Running: scenario_legacy_reconciliation")
    store = InMemoryStore()
    talent = store.add_talent(talent_level=TalentLevel.ELITE, available_services=["chat", "offline_date"])
    create_paid_booking(store, talent.id, [ServiceSelection("chat", 3)])
    create_paid_booking(store, talent.id, [ServiceSelection("offline_date", 2)])
    add_legacy_transaction(store, talent.id, 100000)

    report = build_financial_overview(aggregate_platform_revenue(store.list_transactions()))
    expect(report["skipped_records"] == 1, f"Expected 1 skipped record, got {report['skipped_records']}")
    expect(report["total_transactions"] == 2, f"Expected 2 counted transactions, got {report['total_transactions']}")
    expect(
        report["total_revenue"] == report["total_platform_revenue"] + report["total_companion_earnings"],
        "Counted transactions must reconcile exactly.",
    )
    expect(any(w.code == "skipped_records" for w in report["warnings"]), "Expected a skipped-records warning.")
    expect(not report["reconciled"], "A report with skipped records must not claim to be reconciled.")
    print("✓ Passed")
