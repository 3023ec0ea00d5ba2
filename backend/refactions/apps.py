# backend/refactions/apps.py
from django.apps import AppConfig
import logging
logger = logging.getLogger(__name__)

class RefactionsConfig(AppConfig):
    default_auto_field = "django.db.models.BigAutoField"
    name = "refactions"
    verbose_name = "Reference actions"

    def ready(self):
        from .registry import autodiscover, registry
        # Charge les modules <app>.actions de chaque app installée
        autodiscover()
        logger.debug("Reference actions registered: %d", len(registry))
