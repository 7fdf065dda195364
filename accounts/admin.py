from django.contrib import admin

from billing.services.store import DjangoStore
from .models import TalentProfile
from .services.talent_level_service import apply_talent_level


@admin.register(TalentProfile)
class TalentProfileAdmin(admin.ModelAdmin):
    list_display = ("full_name", "email", "talent_level", "total_orders", "average_rating", "party_buddy_eligible")
    list_filter = ("talent_level", "party_buddy_eligible")
    search_fields = ("full_name", "email")
    readonly_fields = ("created_at", "updated_at")
    actions = ["recalculate_levels"]

    def recalculate_levels(self, request, queryset):
        """Admin action to recalculate talent level from orders, rating and tenure"""
        store = DjangoStore()
        changed = sum(1 for talent in queryset if apply_talent_level(store, talent.id)[1])
        self.message_user(request, f"{changed} talent level(s) updated.")
    recalculate_levels.short_description = "Recalculate talent level"
