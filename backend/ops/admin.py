# backend/ops/admin.py
from __future__ import annotations
from django.contrib import admin
from .models import JobItem, JobRun


class JobItemInline(admin.TabularInline):
    model = JobItem
    fields = ("position", "entity_type", "entity_id", "status", "result", "error_message", "processed_at")
    readonly_fields = fields
    extra = 0
    can_delete = False
    show_change_link = False

    def has_add_permission(self, request, obj=None):
        return False


@admin.register(JobRun)
class JobRunAdmin(admin.ModelAdmin):
    list_display = (
        "id",
        "job_name",
        "title",
        "status",
        "progress",
        "triggered_by",
        "owner",
        "started_at",
        "finished_at",
        "duration_ms",
    )
    list_filter = ("job_name", "status", "triggered_by", "started_at")
    search_fields = ("job_name", "title", "params", "metrics", "error_message", "log_path")
    inlines = [JobItemInline]
    readonly_fields = (
        "job_name",
        "title",
        "status",
        "triggered_by",
        "owner",
        "params",
        "metrics",
        "total",
        "processed",
        "log_path",
        "error_message",
        "started_at",
        "finished_at",
        "heartbeat_at",
        "created_at",
        "duration_ms",
    )
    fieldsets = (
        (None, {"fields": ("job_name", "title", "status", "triggered_by", "owner", "started_at", "finished_at", "duration_ms")}),
        ("Progress", {"fields": ("total", "processed", "heartbeat_at")}),
        ("Params & Metrics", {"fields": ("params", "metrics")}),
        ("Logs & Errors", {"fields": ("log_path", "error_message")}),
        ("Meta", {"fields": ("created_at",)}),
    )

    @admin.display(description="Progress")
    def progress(self, obj):
        return f"{obj.percent_complete}% ({obj.processed}/{obj.total})"

    # JobRun est un journal d'exécution : ni création ni suppression depuis l'admin
    def has_add_permission(self, request):
        return False

    def has_delete_permission(self, request, obj=None):
        return False
