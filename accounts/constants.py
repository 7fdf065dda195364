from django.db import models


class TalentLevel(models.TextChoices):
    FRESH = "fresh", "Fresh"
    ELITE = "elite", "Elite"
    VIP = "vip", "VIP"


LEVEL_ORDER = [TalentLevel.FRESH, TalentLevel.ELITE, TalentLevel.VIP]

# Eligibility thresholds per level; commission rates live in billing.config
TALENT_LEVEL_REQUIREMENTS = {
    TalentLevel.FRESH: {"min_orders": 0, "min_rating": 0, "min_active_months": 0},
    TalentLevel.ELITE: {"min_orders": 30, "min_rating": 4.5, "min_active_months": 0},
    TalentLevel.VIP: {"min_orders": 100, "min_rating": 4.5, "min_active_months": 6},
}

# Active months are counted in whole 30-day periods
DAYS_PER_ACTIVE_MONTH = 30
