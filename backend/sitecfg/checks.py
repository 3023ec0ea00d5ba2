# backend/sitecfg/checks.py
from pathlib import Path
from django.conf import settings
from django.core.checks import register, Error, Warning
from django.apps import apps as django_apps
from django.urls import NoReverseMatch, reverse

REQUIRED_APPS = {"sitecfg", "content", "ops", "refactions"}
REQUIRED_VAR_SUBDIRS = ["logs", "locks"]
POSITIVE_INT_SETTINGS = ["POLL_CHUNK", "POLL_INTERVAL_SECONDS", "TOKEN_MAX_AGE", "JOB_TTL_HOURS"]


@register()
def project_conventions_check(app_configs, **kwargs):
    errors = []
    warnings = []

    # 1) DB = PostgreSQL
    engine = settings.DATABASES.get("default", {}).get("ENGINE", "")
    if "postgresql" not in engine:
        errors.append(Error(
            "La base de données doit être PostgreSQL.",
            id="CFG.E001",
            hint="Régle DATABASES['default']['ENGINE'] = 'django.db.backends.postgresql'",
        ))

    # 2) Apps requises (via registry, pas via INSTALLED_APPS brut)
    present_apps = {cfg.name for cfg in django_apps.get_app_configs()}
    missing = REQUIRED_APPS - present_apps
    if missing:
        errors.append(Error(
            f"Apps manquantes: {', '.join(sorted(missing))}",
            id="CFG.E002",
        ))

    # 3) DEFAULT_AUTO_FIELD recommandé
    default_auto = getattr(settings, "DEFAULT_AUTO_FIELD", "")
    if default_auto != "django.db.models.BigAutoField":
        warnings.append(Warning(
            "DEFAULT_AUTO_FIELD devrait être 'django.db.models.BigAutoField'.",
            id="CFG.W003",
        ))

    # 4) USE_TZ
    if not getattr(settings, "USE_TZ", False):
        errors.append(Error("USE_TZ doit être True.", id="CFG.E005"))

    # 5) Arborescence var/*
    var_dir = Path(getattr(settings, "BASE_DIR")) / "var"
    missing_dirs = [d for d in REQUIRED_VAR_SUBDIRS if not (var_dir / d).exists()]
    if missing_dirs:
        warnings.append(Warning(
            f"Sous-dossiers manquants dans var/: {', '.join(missing_dirs)}",
            id="CFG.W007",
            hint="Crée-les ou ajoute une initialisation au démarrage.",
        ))

    return errors + warnings


@register()
def reference_actions_check(app_configs, **kwargs):
    from refactions.registry import registry

    errors = []
    warnings = []
    cfg = getattr(settings, "REFERENCE_ACTIONS", None)
    if cfg is None:
        return []
    if not isinstance(cfg, dict):
        return [Error("REFERENCE_ACTIONS doit être un dict.", id="REFACT.E001")]

    # 1) Valeurs numériques
    threshold = cfg.get("INLINE_THRESHOLD", 0)
    if not isinstance(threshold, int) or threshold < 0:
        errors.append(Error("REFERENCE_ACTIONS['INLINE_THRESHOLD'] doit être un entier >= 0.", id="REFACT.E002"))
    for key in POSITIVE_INT_SETTINGS:
        value = cfg.get(key, 1)
        if not isinstance(value, int) or value <= 0:
            errors.append(Error(f"REFERENCE_ACTIONS['{key}'] doit être un entier > 0.", id="REFACT.E003"))

    # 2) Sans worker ni traitement au poll, les jobs ne progressent jamais
    if cfg.get("PROCESS_ON_POLL") is False:
        warnings.append(Warning(
            "PROCESS_ON_POLL=False : les jobs n'avancent qu'avec un worker.",
            id="REFACT.W004",
            hint="Lance `manage.py run_jobs` (un ou plusieurs processus).",
        ))

    # 3) Routes de confirmation résolvables
    for action in registry:
        if not action.confirm_route:
            continue
        try:
            reverse(action.confirm_route)
        except NoReverseMatch:
            errors.append(Error(
                f"Route de confirmation introuvable pour l'action {action.id}: {action.confirm_route}",
                id="REFACT.E005",
            ))

    return errors + warnings
