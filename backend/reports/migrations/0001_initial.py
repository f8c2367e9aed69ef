import django.db.models.deletion
from django.conf import settings
from django.db import migrations, models


class Migration(migrations.Migration):
    initial = True

    dependencies = [
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name="Report",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("report_number", models.CharField(blank=True, max_length=32, null=True, unique=True)),
                (
                    "report_for",
                    models.CharField(choices=[("listing", "Listing"), ("user", "User")], max_length=16),
                ),
                ("reported_id", models.PositiveIntegerField()),
                ("report_reasons", models.JSONField(default=list)),
                ("report_details", models.TextField(blank=True, default="")),
                ("content_snapshot", models.JSONField(blank=True, null=True)),
                (
                    "status",
                    models.CharField(
                        choices=[("submitted", "Submitted"), ("rejected", "Rejected"), ("resolved", "Resolved")],
                        default="submitted",
                        max_length=16,
                    ),
                ),
                ("moderator_message", models.TextField(blank=True, default="")),
                ("resolved_at", models.DateTimeField(blank=True, null=True)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                (
                    "reporter",
                    models.ForeignKey(
                        null=True,
                        on_delete=django.db.models.deletion.SET_NULL,
                        related_name="reports_filed",
                        to=settings.AUTH_USER_MODEL,
                    ),
                ),
                (
                    "assigned_to",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.SET_NULL,
                        related_name="reports_assigned",
                        to=settings.AUTH_USER_MODEL,
                    ),
                ),
            ],
            options={
                "ordering": ["-created_at"],
                "indexes": [
                    models.Index(fields=["report_for", "reported_id"], name="report_target_idx"),
                    models.Index(fields=["status", "created_at"], name="report_status_created_idx"),
                ],
            },
        ),
    ]
