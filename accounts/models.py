from django.db import models

from accounts.constants import TalentLevel


class TalentProfile(models.Model):
    """A companion offering services. Level drives the commission rate at charge time."""

    full_name = models.CharField(max_length=150)
    email = models.EmailField("email address", unique=True)
    talent_level = models.CharField(max_length=10, choices=TalentLevel.choices, default=TalentLevel.FRESH)
    # Stats used by tier eligibility
    total_orders = models.PositiveIntegerField(default=0)
    average_rating = models.DecimalField(max_digits=3, decimal_places=2, default=0)
    # Service types this talent sells, e.g. ["chat", "call"]
    available_services = models.JSONField(default=list, blank=True)
    party_buddy_eligible = models.BooleanField(default=False)
    party_buddy_rate = models.PositiveIntegerField(blank=True, null=True, help_text="Overrides the catalog rate per event")
    rent_lover_rate = models.PositiveIntegerField(blank=True, null=True, help_text="Overrides the catalog rate per day")
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        verbose_name = "Talent Profile"
        verbose_name_plural = "Talent Profiles"
        ordering = ["full_name"]

    def save(self, *args, **kwargs):
        if self.email:
            self.email = self.email.lower().strip()
        super().save(*args, **kwargs)

    def __str__(self):
        return f"{self.full_name} ({self.get_talent_level_display()})"
