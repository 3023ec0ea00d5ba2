# backend/refactions/urls.py

from django.contrib import admin
from django.urls import path

from .admin_views import cancel_job, confirm_action, field_settings_view, job_progress

app_name = "refactions"

urlpatterns = [
    path("confirm/", admin.site.admin_view(confirm_action), name="confirm"),
    path("jobs/<int:run_id>/", admin.site.admin_view(job_progress), name="job_progress"),
    path("jobs/<int:run_id>/cancel/", admin.site.admin_view(cancel_job), name="job_cancel"),
    path(
        "settings/<str:model_label>/<str:field_name>/",
        admin.site.admin_view(field_settings_view),
        name="field_settings",
    ),
]
