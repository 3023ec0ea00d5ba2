# backend/refactions/admin_views.py

from __future__ import annotations
import logging
from typing import Any, Optional

from django.apps import apps
from django.contrib import admin, messages
from django.core.exceptions import FieldDoesNotExist, PermissionDenied
from django.http import Http404, HttpResponse, JsonResponse
from django.shortcuts import get_object_or_404, redirect, render
from django.template.loader import render_to_string
from django.urls import reverse
from django.utils.http import url_has_allowed_host_and_scheme
from django.views.decorators.http import require_POST

from ops.models import JobRun
from ops.services.queue import JobRunnerFailure, cancel, process

from .conf import get_setting
from .constants import JOB_NAME, DispatchState
from .exceptions import EmptySelection, NoEligibleEntities, UnknownAction
from .forms import ConfirmActionForm, FieldActionSettingsForm
from .models import FieldActionConfig
from .registry import ActionRegistry
from .responses import CommandResponse, wants_json
from .services.dispatcher import DispatchOutcome, Dispatcher
from .services.audit import write_action_log
from .services.field_settings import FieldActionSettings, effective_settings
from .services.resolver import ActionResolver
from .services.selection import capture_selection
from .services.tokens import ConfirmationTicket, CorrelationToken, messages_selector

logger = logging.getLogger("refactions.views")


def _safe_destination(request, url: Optional[str]) -> str:
    if url and url_has_allowed_host_and_scheme(url, allowed_hosts={request.get_host()}, require_https=request.is_secure()):
        return url
    return reverse("admin:index")


def _add_messages(request, texts, level) -> None:
    for text in texts:
        messages.add_message(request, level, text)


def render_outcome(request, outcome: DispatchOutcome, *, destination: str, selector: str,
                   in_dialog: bool = False) -> HttpResponse:
    """Traduit l'issue du dispatch en réponse : redirection (page pleine) ou commandes (AJAX)."""
    ajax = wants_json(request)
    resp = CommandResponse()
    title = outcome.action.bulk_label()
    dialog_options = get_setting("DIALOG_OPTIONS")

    if ajax:
        resp.messages(outcome.warnings, level="warning", selector=selector)
    else:
        _add_messages(request, outcome.warnings, messages.WARNING)

    if outcome.state == DispatchState.CONFIRMING:
        if ajax:
            return resp.open_dialog(title, url=outcome.confirm_url, options=dialog_options).to_response()
        return redirect(outcome.confirm_url)

    if outcome.state == DispatchState.EXECUTING:
        progress_url = reverse("refactions:job_progress", args=[outcome.job.pk])
        if ajax:
            return resp.open_dialog(title, url=progress_url, options=dialog_options).to_response()
        return redirect(progress_url)

    # DONE (exécution en ligne)
    if ajax:
        resp.message(outcome.summary, selector=selector, clear_previous=not outcome.warnings)
        if in_dialog:
            resp.close_dialog()
        return resp.to_response()
    messages.success(request, outcome.summary)
    return redirect(destination)


def dispatch_from_form(
    request,
    *,
    form,
    field_name: str,
    settings: FieldActionSettings,
    action_id: str,
    token: CorrelationToken,
    destination: str,
    site: Optional[ActionRegistry] = None,
) -> HttpResponse:
    """
    Gestionnaire de soumission d'un déclencheur : capture de la sélection,
    résolution de l'action puis dispatch.
    """
    ajax = wants_json(request)
    resp = CommandResponse()
    selector = token.selector
    allowed = {a.id for a in settings.available_actions(token.entity_type, site=site)}

    try:
        selection = capture_selection(form, field_name)
        outcome = Dispatcher(ActionResolver(site)).dispatch(
            action_id,
            selection,
            request.user,
            destination=destination,
            correlation=token.key,
            allowed_actions=allowed,
        )
    except EmptySelection:
        # Rien à faire, pas de message
        return resp.to_response() if ajax else redirect(destination)
    except UnknownAction as e:
        logger.warning("Unknown action  action=%s  field=%s  user=%s", action_id, field_name, request.user)
        if ajax:
            return resp.message(str(e), level="error", selector=selector).to_response()
        messages.error(request, str(e))
        return redirect(destination)
    except NoEligibleEntities as e:
        if ajax:
            return resp.messages(e.warnings, level="warning", selector=selector).to_response()
        _add_messages(request, e.warnings, messages.WARNING)
        return redirect(destination)

    return render_outcome(request, outcome, destination=destination, selector=selector)


def confirm_action(request) -> HttpResponse:
    """
    Page de confirmation générique (route `refactions:confirm`). Rien n'est
    appliqué avant le POST « confirm » ; l'accès est revérifié à ce moment-là.
    """
    ajax = wants_json(request)
    if request.method == "POST":
        form = ConfirmActionForm(request.POST)
        if not form.is_valid():
            if ajax:
                html = render_to_string("refactions/confirm.html", {"form": form, "form_action": request.path}, request=request)
                return CommandResponse().replace("[data-reference-actions-form]", html).to_response()
            return render(request, "refactions/confirm.html", {"form": form, "form_action": request.path}, status=400)
        ticket = form.ticket
    else:
        ticket = ConfirmationTicket.loads(request.GET.get("token", ""))
        form = ConfirmActionForm(initial={"token": request.GET.get("token", "")})

    destination = _safe_destination(request, ticket.destination)
    selector = messages_selector(ticket.correlation)
    resolver = ActionResolver()
    try:
        action = resolver.load_action(ticket.action_id, ticket.entity_type)
    except UnknownAction as e:
        if ajax:
            return CommandResponse().message(str(e), level="error", selector=selector).close_dialog().to_response()
        messages.error(request, str(e))
        return redirect(destination)

    if request.method == "POST" and "cancel" in request.POST:
        if ajax:
            return CommandResponse().close_dialog().to_response()
        return redirect(destination)

    entities = resolver.load_entities(action.model, ticket.ids)
    allowed, denied = resolver.filter_access(action, entities, request.user)

    if request.method != "POST":
        return render(request, "refactions/confirm.html", {
            "title": action.bulk_label(),
            "action": action,
            "entities": allowed,
            "verbose_name_plural": action.model._meta.verbose_name_plural,
            "form": form,
            "form_action": request.path,
        })

    if not allowed:
        exc = NoEligibleEntities(action, action.model, denied)
        if ajax:
            return CommandResponse().messages(exc.warnings, selector=selector).close_dialog().to_response()
        _add_messages(request, exc.warnings, messages.WARNING)
        return redirect(destination)

    outcome = Dispatcher(resolver).execute(
        action,
        allowed,
        user=request.user,
        destination=ticket.destination,
        correlation=ticket.correlation,
    )
    outcome.warnings = [str(d) for d in denied] + outcome.warnings
    return render_outcome(request, outcome, destination=destination, selector=selector, in_dialog=True)


def _get_run(request, run_id: int) -> JobRun:
    run = get_object_or_404(JobRun, pk=run_id, job_name=JOB_NAME)
    if run.owner_id and run.owner_id != request.user.pk and not request.user.is_superuser:
        raise PermissionDenied
    return run


def _finish_level(run: JobRun) -> tuple[int, str]:
    if run.status == JobRun.Status.SUCCESS:
        return messages.SUCCESS, "status"
    if run.status == JobRun.Status.CANCELLED:
        return messages.WARNING, "warning"
    return messages.ERROR, "error"


def _run_selector(run: JobRun) -> str:
    return messages_selector((run.metrics or {}).get("messages_key", ""))


def _progress_payload(run: JobRun) -> dict[str, Any]:
    return {
        "id": run.pk,
        "status": run.status,
        "percentage": run.percent_complete,
        "processed": run.processed,
        "total": run.total,
        "finished": run.is_finished,
        "message": (run.metrics or {}).get("summary", ""),
    }


def job_progress(request, run_id: int) -> HttpResponse:
    """
    Suivi d'un job. Chaque requête fait avancer le job d'un lot quand
    PROCESS_ON_POLL est actif (pas besoin de worker).
    """
    run = _get_run(request, run_id)
    if not run.is_finished and get_setting("PROCESS_ON_POLL"):
        try:
            process(run, limit=get_setting("POLL_CHUNK"), triggered_by="poll")
        except JobRunnerFailure as e:
            # Job déjà clos (FAILED) et nettoyé par ops
            logger.error("%s", e)
    run.refresh_from_db()
    destination = _safe_destination(request, run.params.get("destination"))

    if wants_json(request):
        payload = _progress_payload(run)
        if run.is_finished:
            _, level = _finish_level(run)
            resp = CommandResponse().close_dialog().message(payload["message"], level=level, selector=_run_selector(run))
            payload["commands"] = resp.commands
        return JsonResponse(payload)

    if run.is_finished:
        level, _ = _finish_level(run)
        messages.add_message(request, level, (run.metrics or {}).get("summary", ""))
        return redirect(destination)

    return render(request, "refactions/progress.html", {
        "title": run.title,
        "run": run,
        "percentage": run.percent_complete,
        "interval": get_setting("POLL_INTERVAL_SECONDS"),
    })


@require_POST
def cancel_job(request, run_id: int) -> HttpResponse:
    run = _get_run(request, run_id)
    cancel(run)
    run.refresh_from_db()
    destination = _safe_destination(request, run.params.get("destination"))
    summary = (run.metrics or {}).get("summary", "") or f"{run.title} was cancelled."
    if wants_json(request):
        return CommandResponse().close_dialog().message(summary, level="warning", selector=_run_selector(run)).to_response()
    messages.warning(request, summary)
    return redirect(destination)


def _reference_field(model_label: str, field_name: str):
    try:
        model = apps.get_model(model_label)
        db_field = model._meta.get_field(field_name)
    except (LookupError, ValueError, FieldDoesNotExist):
        raise Http404(f"Unknown field {model_label}.{field_name}")
    if not (db_field.many_to_many or db_field.many_to_one) or not db_field.concrete:
        raise Http404(f"{model_label}.{field_name} is not a reference field")
    return model, db_field


def _declared_settings(model) -> dict[str, Any]:
    """Dict `reference_actions` de l'admin (ou de l'inline) enregistré pour ce modèle."""
    for model_admin in admin.site._registry.values():
        for owner in [model_admin, *model_admin.inlines]:
            if owner.model is model and getattr(owner, "reference_actions", None):
                return owner.reference_actions
    return {}


def field_settings_view(request, model_label: str, field_name: str) -> HttpResponse:
    """
    Édition des réglages d'un champ de référence. Les valeurs enregistrées
    remplacent celles déclarées sur la classe admin ; « reset » les supprime.
    """
    if not request.user.has_perm("refactions.change_fieldactionconfig"):
        raise PermissionDenied
    model, db_field = _reference_field(model_label, field_name)
    label = model._meta.label_lower
    entity_type = db_field.related_model._meta.label_lower
    current = effective_settings(label, _declared_settings(model), field_name)

    if request.method == "POST" and "reset" in request.POST:
        FieldActionConfig.objects.filter(model_label=label, field_name=field_name).delete()
        write_action_log("Field settings reset", extra={"field": f"{label}.{field_name}", "user": request.user.get_username()})
        messages.success(request, f"Reference action settings for {label}.{field_name} were reset.")
        return redirect(request.path)

    if request.method == "POST":
        form = FieldActionSettingsForm(request.POST, entity_type=entity_type, settings=current)
        if form.is_valid():
            new = form.to_settings()
            FieldActionConfig.objects.update_or_create(
                model_label=label,
                field_name=field_name,
                defaults={"values": new.to_dict(), "updated_by": request.user},
            )
            write_action_log("Field settings saved", extra={"field": f"{label}.{field_name}", **new.to_dict()})
            logger.info("Field settings saved  field=%s.%s  enabled=%s", label, field_name, new.enabled)
            messages.success(request, f"Reference action settings for {label}.{field_name} were saved.")
            return redirect(request.path)
    else:
        form = FieldActionSettingsForm(entity_type=entity_type, settings=current)

    return render(request, "refactions/field_settings.html", {
        **admin.site.each_context(request),
        "title": f"Reference actions: {model._meta.verbose_name} {db_field.verbose_name}",
        "form": form,
        "stored": FieldActionConfig.objects.filter(model_label=label, field_name=field_name).exists(),
    })
