import django.db.models.deletion
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        ("accounts", "0001_initial"),
    ]

    operations = [
        migrations.CreateModel(
            name="Booking",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("customer_email", models.EmailField(max_length=254)),
                ("booking_date", models.DateField()),
                ("location", models.CharField(blank=True, max_length=255)),
                ("notes", models.TextField(blank=True)),
                ("services", models.JSONField(default=list)),
                ("total_price", models.PositiveBigIntegerField()),
                ("status", models.CharField(choices=[("pending", "Pending payment"), ("confirmed", "Confirmed"), ("completed", "Completed"), ("cancelled", "Cancelled")], default="pending", max_length=20)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                ("talent", models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name="bookings", to="accounts.talentprofile")),
            ],
            options={
                "ordering": ["-created_at"],
            },
        ),
        migrations.CreateModel(
            name="Transaction",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("customer_email", models.EmailField(blank=True, max_length=254)),
                ("amount", models.PositiveBigIntegerField(help_text="Subtotal: services + transport, before platform fee")),
                ("platform_fee", models.PositiveBigIntegerField(blank=True, null=True)),
                ("total_charged", models.PositiveBigIntegerField(blank=True, null=True)),
                ("commission_rate", models.PositiveSmallIntegerField(blank=True, help_text="Percent, frozen at charge time", null=True)),
                ("commission_amount", models.PositiveBigIntegerField(blank=True, null=True)),
                ("companion_earnings", models.PositiveBigIntegerField(blank=True, null=True)),
                ("currency", models.CharField(default="idr", max_length=10)),
                ("status", models.CharField(choices=[("pending", "Pending"), ("paid", "Paid"), ("failed", "Failed"), ("cancelled", "Cancelled"), ("refunded", "Refunded")], default="pending", max_length=20)),
                ("service_name", models.CharField(max_length=255)),
                ("service_type", models.CharField(blank=True, max_length=100)),
                ("duration", models.DecimalField(blank=True, decimal_places=6, help_text="Single-service bookings only; per-line durations are on the booking", max_digits=20, null=True)),
                ("stripe_payment_intent_id", models.CharField(blank=True, max_length=255, null=True, unique=True)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                ("paid_at", models.DateTimeField(blank=True, null=True)),
                ("booking", models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name="transactions", to="billing.booking")),
                ("talent", models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name="transactions", to="accounts.talentprofile")),
            ],
            options={
                "ordering": ["-created_at"],
            },
        ),
        migrations.CreateModel(
            name="PayoutRequest",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("requested_amount", models.PositiveBigIntegerField()),
                ("available_earnings", models.BigIntegerField()),
                ("payout_method", models.CharField(choices=[("bank_transfer", "Bank transfer"), ("e_wallet", "E-wallet")], max_length=20)),
                ("bank_name", models.CharField(blank=True, max_length=100)),
                ("account_number", models.CharField(blank=True, max_length=50)),
                ("account_holder_name", models.CharField(blank=True, max_length=150)),
                ("status", models.CharField(choices=[("pending", "Pending"), ("approved", "Approved"), ("rejected", "Rejected"), ("processed", "Processed"), ("failed", "Failed")], default="pending", max_length=20)),
                ("admin_notes", models.TextField(blank=True)),
                ("processed_by", models.CharField(blank=True, max_length=150)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                ("processed_at", models.DateTimeField(blank=True, null=True)),
                ("talent", models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name="payout_requests", to="accounts.talentprofile")),
            ],
            options={
                "ordering": ["-created_at"],
            },
        ),
    ]
