# backend/refactions/models.py

from __future__ import annotations
from django.conf import settings
from django.db import models

class FieldActionConfig(models.Model):
    """
    Réglages enregistrés depuis l'admin pour un champ de référence.
    Prioritaires sur le dict `reference_actions` déclaré sur la classe admin.
    """

    model_label = models.CharField(max_length=100)      # ex. "content.collection"
    field_name  = models.CharField(max_length=100)
    values      = models.JSONField(default=dict, blank=True)
    updated_by  = models.ForeignKey(
        settings.AUTH_USER_MODEL, null=True, blank=True, on_delete=models.SET_NULL, related_name="+"
    )
    updated_at  = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = "reference_action_field_settings"
        ordering = ["model_label", "field_name"]
        constraints = [
            models.UniqueConstraint(fields=["model_label", "field_name"], name="uq_fieldactionconfig_field"),
        ]
        verbose_name = "field action settings"
        verbose_name_plural = "field action settings"

    def __str__(self) -> str:
        return f"{self.model_label}.{self.field_name}"

    @property
    def enabled(self) -> bool:
        return bool((self.values or {}).get("enabled"))
