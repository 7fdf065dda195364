from datetime import datetime, timedelta, timezone as dt_timezone
from decimal import Decimal
from types import SimpleNamespace
from unittest import TestCase

from django.test import TestCase as DjangoTestCase

from accounts.constants import TalentLevel
from accounts.models import TalentProfile
from accounts.services.talent_level_service import (
    active_months,
    apply_talent_level,
    calculate_talent_level,
    get_talent_level_progress,
)
from billing.services.store import DjangoStore
from testing.financial.base import InMemoryStore

NOW = datetime(2026, 10, 19, tzinfo=dt_timezone.utc)


class TalentLevelTests(TestCase):

    def test_active_months_counts_whole_periods(self):
        self.assertEqual(active_months(NOW - timedelta(days=29), NOW), 0)
        self.assertEqual(active_months(NOW - timedelta(days=180), NOW), 6)
        self.assertEqual(active_months(NOW + timedelta(days=5), NOW), 0)

    def test_new_talent_is_fresh(self):
        self.assertEqual(calculate_talent_level(0, 0, NOW, NOW), TalentLevel.FRESH)
        self.assertEqual(calculate_talent_level(None, None, NOW, NOW), TalentLevel.FRESH)

    def test_elite_thresholds(self):
        self.assertEqual(calculate_talent_level(30, Decimal("4.50"), NOW, NOW), TalentLevel.ELITE)
        self.assertEqual(calculate_talent_level(29, 5, NOW, NOW), TalentLevel.FRESH)
        self.assertEqual(calculate_talent_level(30, Decimal("4.49"), NOW, NOW), TalentLevel.FRESH)

    def test_vip_needs_tenure(self):
        created = NOW - timedelta(days=180)
        self.assertEqual(calculate_talent_level(100, 4.5, created, NOW), TalentLevel.VIP)
        self.assertEqual(calculate_talent_level(100, 4.5, created + timedelta(days=1), NOW), TalentLevel.ELITE)

    def test_progress_to_next_level(self):
        profile = SimpleNamespace(
            talent_level="elite", total_orders=64, average_rating=Decimal("4.30"),
            created_at=NOW - timedelta(days=95),
        )
        progress = get_talent_level_progress(profile, NOW)
        self.assertEqual(progress["next_level"], "vip")
        self.assertEqual(progress["orders_to_next"], 36)
        self.assertEqual(progress["rating_to_next"], 0.2)
        self.assertEqual(progress["months_to_next"], 3)
        self.assertFalse(progress["can_upgrade"])
        self.assertEqual(progress["commission_rate"], 18)

    def test_progress_at_top_level(self):
        profile = SimpleNamespace(talent_level="vip", total_orders=150, average_rating=5, created_at=NOW)
        progress = get_talent_level_progress(profile, NOW)
        self.assertIsNone(progress["next_level"])
        self.assertIsNone(progress["orders_to_next"])
        self.assertEqual(progress["commission_rate"], 15)

    def test_apply_level_in_memory(self):
        store = InMemoryStore()
        talent = store.add_talent(total_orders=40, average_rating=4.7, created_at=NOW - timedelta(days=10))
        updated, changed = apply_talent_level(store, talent.id, NOW)
        self.assertTrue(changed)
        self.assertEqual(updated.talent_level, TalentLevel.ELITE)
        _, changed = apply_talent_level(store, talent.id, NOW)
        self.assertFalse(changed)
        self.assertEqual(apply_talent_level(store, 999, NOW), (None, False))


class TalentProfileTests(DjangoTestCase):

    def test_email_is_normalized(self):
        profile = TalentProfile.objects.create(full_name="Citra", email=" Citra@Temanly.TEST ")
        self.assertEqual(profile.email, "citra@temanly.test")
        self.assertEqual(profile.talent_level, TalentLevel.FRESH)

    def test_apply_level_persists(self):
        profile = TalentProfile.objects.create(
            full_name="Dewi", email="dewi@temanly.test", total_orders=35, average_rating=Decimal("4.80"),
        )
        _, changed = apply_talent_level(DjangoStore(), profile.id)
        self.assertTrue(changed)
        profile.refresh_from_db()
        self.assertEqual(profile.talent_level, TalentLevel.ELITE)
