# backend/ops/models.py

from __future__ import annotations
from django.conf import settings
from django.db import models
from django.db.models import Index
from django.utils import timezone

class JobRun(models.Model):
    class Status(models.TextChoices):
        QUEUED    = "queued",    "Queued"
        RUNNING   = "running",   "Running"
        SUCCESS   = "success",   "Success"
        FAILED    = "failed",    "Failed"
        CANCELLED = "cancelled", "Cancelled"
        SKIPPED   = "skipped",   "Skipped"

    FINAL_STATUSES = (Status.SUCCESS, Status.FAILED, Status.CANCELLED, Status.SKIPPED)

    job_name     = models.CharField(max_length=64, db_index=True)
    title        = models.CharField(max_length=255, blank=True)
    status       = models.CharField(max_length=16, choices=Status.choices, default=Status.QUEUED)
    triggered_by = models.CharField(max_length=64, blank=True)     # "admin", "cli", "worker", "poll", etc.
    owner        = models.ForeignKey(
        settings.AUTH_USER_MODEL, null=True, blank=True, on_delete=models.SET_NULL, related_name="job_runs"
    )
    params       = models.JSONField(default=dict, blank=True)
    metrics      = models.JSONField(default=dict, blank=True)

    total        = models.PositiveIntegerField(default=0)
    processed    = models.PositiveIntegerField(default=0)

    log_path     = models.CharField(max_length=512, blank=True)
    error_message= models.TextField(blank=True)

    started_at   = models.DateTimeField(default=timezone.now, db_index=True)
    finished_at  = models.DateTimeField(null=True, blank=True)
    # Dernière activité (worker ou polling) : sert au balayage des jobs abandonnés
    heartbeat_at = models.DateTimeField(default=timezone.now)

    created_at   = models.DateTimeField(auto_now_add=True)

    class Meta:
        db_table = "job_runs"
        indexes = [
            Index(fields=["job_name", "status", "started_at"], name="ix_jobruns_main"),
        ]

    def __str__(self) -> str:
        return f"JobRun #{self.pk} {self.job_name} [{self.status}]"

    @property
    def duration_ms(self) -> int | None:
        if not self.finished_at or not self.started_at:
            return None
        delta = self.finished_at - self.started_at
        return int(delta.total_seconds() * 1000)

    @property
    def is_finished(self) -> bool:
        return self.finished_at is not None

    @property
    def percent_complete(self) -> int:
        if not self.total:
            return 100 if self.is_finished else 0
        return int(self.processed * 100 / self.total)


class JobItem(models.Model):
    """
    Unité de travail d'un JobRun : une entité à traiter, dans l'ordre `position`.
    Supprimées à la fin du job (le JobRun reste comme journal).
    """
    class Status(models.TextChoices):
        PENDING = "pending", "Pending"
        RUNNING = "running", "Running"
        DONE    = "done",    "Done"
        FAILED  = "failed",  "Failed"

    run         = models.ForeignKey(JobRun, on_delete=models.CASCADE, related_name="items")
    position    = models.PositiveIntegerField()
    entity_type = models.CharField(max_length=128)              # "app_label.model_name"
    entity_id   = models.CharField(max_length=64)
    status      = models.CharField(max_length=16, choices=Status.choices, default=Status.PENDING)
    result      = models.CharField(max_length=64, blank=True)
    error_message = models.TextField(blank=True)
    processed_at  = models.DateTimeField(null=True, blank=True)

    class Meta:
        db_table = "job_items"
        ordering = ["run_id", "position"]
        constraints = [
            models.UniqueConstraint(fields=["run", "position"], name="uq_jobitem_run_position"),
        ]
        indexes = [
            Index(fields=["run", "status", "position"], name="ix_jobitems_claim"),
        ]

    def __str__(self) -> str:
        return f"JobItem #{self.pk} run={self.run_id} {self.entity_type}:{self.entity_id} [{self.status}]"
