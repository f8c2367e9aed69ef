import django.db.models.deletion
from django.conf import settings
from django.db import migrations, models


class Migration(migrations.Migration):
    initial = True

    dependencies = [
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
        ("reservations", "0001_initial"),
    ]

    operations = [
        migrations.CreateModel(
            name="Claim",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("claim_number", models.CharField(blank=True, max_length=32, null=True, unique=True)),
                ("claim_type", models.CharField(max_length=64)),
                ("claim_details", models.TextField()),
                ("incident_date", models.DateField(blank=True, null=True)),
                ("priority", models.PositiveSmallIntegerField(default=5)),
                (
                    "status",
                    models.CharField(
                        choices=[
                            ("submitted", "Submitted"),
                            ("under review", "Under review"),
                            ("awaiting customer response", "Awaiting customer response"),
                            ("reimbursement pending", "Reimbursement pending"),
                            ("legal action", "Legal action"),
                            ("canceled", "Canceled"),
                            ("rejected", "Rejected"),
                            ("resolved", "Resolved"),
                        ],
                        default="submitted",
                        max_length=32,
                    ),
                ),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                (
                    "order",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="claims",
                        to="reservations.order",
                    ),
                ),
                (
                    "created_by",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="claims_created",
                        to=settings.AUTH_USER_MODEL,
                    ),
                ),
                (
                    "assigned_to",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.SET_NULL,
                        related_name="claims_assigned",
                        to=settings.AUTH_USER_MODEL,
                    ),
                ),
            ],
            options={
                "ordering": ["priority", "-created_at"],
                "indexes": [
                    models.Index(fields=["status", "priority"], name="claim_status_priority_idx"),
                    models.Index(fields=["assigned_to", "status"], name="claim_assigned_status_idx"),
                ],
            },
        ),
    ]
