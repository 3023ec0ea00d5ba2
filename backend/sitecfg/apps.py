# backend/sitecfg/apps.py
from django.apps import AppConfig


class SitecfgConfig(AppConfig):
    default_auto_field = "django.db.models.BigAutoField"
    name = "sitecfg"
    verbose_name = "Site configuration"

    def ready(self):
        from . import checks  # noqa: F401  (enregistre les checks projet)
