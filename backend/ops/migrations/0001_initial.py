# backend/ops/migrations/0001_initial.py
import django.db.models.deletion
import django.utils.timezone
from django.conf import settings
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name="JobRun",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("job_name", models.CharField(db_index=True, max_length=64)),
                ("title", models.CharField(blank=True, max_length=255)),
                ("status", models.CharField(
                    choices=[
                        ("queued", "Queued"), ("running", "Running"), ("success", "Success"),
                        ("failed", "Failed"), ("cancelled", "Cancelled"), ("skipped", "Skipped"),
                    ],
                    default="queued",
                    max_length=16,
                )),
                ("triggered_by", models.CharField(blank=True, max_length=64)),
                ("params", models.JSONField(blank=True, default=dict)),
                ("metrics", models.JSONField(blank=True, default=dict)),
                ("total", models.PositiveIntegerField(default=0)),
                ("processed", models.PositiveIntegerField(default=0)),
                ("log_path", models.CharField(blank=True, max_length=512)),
                ("error_message", models.TextField(blank=True)),
                ("started_at", models.DateTimeField(db_index=True, default=django.utils.timezone.now)),
                ("finished_at", models.DateTimeField(blank=True, null=True)),
                ("heartbeat_at", models.DateTimeField(default=django.utils.timezone.now)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("owner", models.ForeignKey(
                    blank=True,
                    null=True,
                    on_delete=django.db.models.deletion.SET_NULL,
                    related_name="job_runs",
                    to=settings.AUTH_USER_MODEL,
                )),
            ],
            options={
                "db_table": "job_runs",
                "indexes": [models.Index(fields=["job_name", "status", "started_at"], name="ix_jobruns_main")],
            },
        ),
        migrations.CreateModel(
            name="JobItem",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("position", models.PositiveIntegerField()),
                ("entity_type", models.CharField(max_length=128)),
                ("entity_id", models.CharField(max_length=64)),
                ("status", models.CharField(
                    choices=[("pending", "Pending"), ("running", "Running"), ("done", "Done"), ("failed", "Failed")],
                    default="pending",
                    max_length=16,
                )),
                ("result", models.CharField(blank=True, max_length=64)),
                ("error_message", models.TextField(blank=True)),
                ("processed_at", models.DateTimeField(blank=True, null=True)),
                ("run", models.ForeignKey(
                    on_delete=django.db.models.deletion.CASCADE,
                    related_name="items",
                    to="ops.jobrun",
                )),
            ],
            options={
                "db_table": "job_items",
                "ordering": ["run_id", "position"],
                "indexes": [models.Index(fields=["run", "status", "position"], name="ix_jobitems_claim")],
                "constraints": [models.UniqueConstraint(fields=("run", "position"), name="uq_jobitem_run_position")],
            },
        ),
    ]
