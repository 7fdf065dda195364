"""
Talent level eligibility. Levels only move the commission rate for future charges;
transactions already created keep the rate frozen on them.
"""
import logging

from django.utils import timezone

from accounts.constants import DAYS_PER_ACTIVE_MONTH, LEVEL_ORDER, TALENT_LEVEL_REQUIREMENTS, TalentLevel
from billing import config

logger = logging.getLogger(__name__)


def active_months(account_created_at, now=None) -> int:
    now = now or timezone.now()
    return max(0, (now - account_created_at).days // DAYS_PER_ACTIVE_MONTH)


def _meets(level, total_orders, average_rating, months) -> bool:
    req = TALENT_LEVEL_REQUIREMENTS[level]
    return (
        total_orders >= req["min_orders"]
        and average_rating >= req["min_rating"]
        and months >= req["min_active_months"]
    )


def calculate_talent_level(total_orders, average_rating, account_created_at, now=None) -> str:
    """Highest level whose order, rating and tenure requirements are all met."""
    months = active_months(account_created_at, now)
    rating = float(average_rating or 0)
    for level in reversed(LEVEL_ORDER):
        if _meets(level, total_orders or 0, rating, months):
            return level
    return TalentLevel.FRESH


def get_talent_level_progress(profile, now=None) -> dict:
    """Current level, next level and what is still missing to reach it."""
    current = TalentLevel(profile.talent_level)
    orders = profile.total_orders or 0
    rating = float(profile.average_rating or 0)
    months = active_months(profile.created_at, now)
    index = LEVEL_ORDER.index(current)
    next_level = LEVEL_ORDER[index + 1] if index + 1 < len(LEVEL_ORDER) else None

    progress = {
        "current_level": current.value,
        "next_level": next_level.value if next_level else None,
        "current_orders": orders,
        "current_rating": rating,
        "active_months": months,
        "orders_to_next": None,
        "rating_to_next": None,
        "months_to_next": None,
        "can_upgrade": False,
        "commission_rate": config.TALENT_COMMISSION_PERCENT[current.value],
    }
    if next_level:
        req = TALENT_LEVEL_REQUIREMENTS[next_level]
        progress["orders_to_next"] = max(0, req["min_orders"] - orders)
        progress["rating_to_next"] = round(max(0.0, req["min_rating"] - rating), 2)
        progress["months_to_next"] = max(0, req["min_active_months"] - months)
        progress["can_upgrade"] = _meets(next_level, orders, rating, months)
    return progress


def apply_talent_level(store, talent_id, now=None):
    """Recalculate and persist a talent's level. Returns (talent, changed)."""
    talent = store.get_talent(talent_id)
    if talent is None:
        return None, False
    level = calculate_talent_level(talent.total_orders, talent.average_rating, talent.created_at, now)
    if level == talent.talent_level:
        return talent, False
    logger.info("apply_talent_level: talent=%s %s -> %s", talent_id, talent.talent_level, level)
    return store.update_talent(talent_id, talent_level=level), True
