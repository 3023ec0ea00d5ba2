# backend/refactions/conf.py

from __future__ import annotations
from typing import Any, Dict
from django.conf import settings

DEFAULTS: Dict[str, Any] = {
    # Au-delà de ce nombre d'entités éligibles, on passe par un job (sinon exécution en ligne)
    "INLINE_THRESHOLD": 1,
    # La page de progression traite un lot d'items à chaque requête (sans worker)
    "PROCESS_ON_POLL": True,
    "POLL_CHUNK": 10,
    "POLL_INTERVAL_SECONDS": 1,
    # Durée de validité (s) des jetons de corrélation / confirmation
    "TOKEN_MAX_AGE": 3600,
    "JOB_TTL_HOURS": 24,
    "DEFAULT_ACTION_TITLE": "Action",
    "DIALOG_OPTIONS": {"height": "75%", "width": "75%"},
}


def get_setting(name: str) -> Any:
    cfg = getattr(settings, "REFERENCE_ACTIONS", None) or {}
    if name in cfg:
        return cfg[name]
    return DEFAULTS[name]
