from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = []

    operations = [
        migrations.CreateModel(
            name="TalentProfile",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("full_name", models.CharField(max_length=150)),
                ("email", models.EmailField(max_length=254, unique=True, verbose_name="email address")),
                ("talent_level", models.CharField(choices=[("fresh", "Fresh"), ("elite", "Elite"), ("vip", "VIP")], default="fresh", max_length=10)),
                ("total_orders", models.PositiveIntegerField(default=0)),
                ("average_rating", models.DecimalField(decimal_places=2, default=0, max_digits=3)),
                ("available_services", models.JSONField(blank=True, default=list)),
                ("party_buddy_eligible", models.BooleanField(default=False)),
                ("party_buddy_rate", models.PositiveIntegerField(blank=True, help_text="Overrides the catalog rate per event", null=True)),
                ("rent_lover_rate", models.PositiveIntegerField(blank=True, help_text="Overrides the catalog rate per day", null=True)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
            ],
            options={
                "verbose_name": "Talent Profile",
                "verbose_name_plural": "Talent Profiles",
                "ordering": ["full_name"],
            },
        ),
    ]
