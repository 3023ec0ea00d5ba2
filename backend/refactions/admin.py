# backend/refactions/admin.py
"""
Intégration admin : déclencheurs d'actions sous les champs de référence
des formulaires d'édition (champs du formulaire principal et des inlines).

    class CollectionAdmin(ReferenceActionsMixin, admin.ModelAdmin):
        reference_actions = {"articles": {"enabled": True, "action_title": "Bulk"}}
"""
from __future__ import annotations
from typing import Any, Dict, Iterator, Optional, Tuple

from django.contrib import admin
from django.contrib.admin.utils import unquote
from django.core.exceptions import PermissionDenied, SuspiciousOperation
from django.urls import reverse
from django.utils.html import format_html

from .admin_views import dispatch_from_form
from .constants import SELECT_SUFFIX, TOKEN_SUFFIX, TRIGGER_NAME
from .models import FieldActionConfig
from .registry import ActionRegistry, registry
from .services.field_settings import FieldActionSettings, effective_settings
from .services.tokens import CorrelationToken
from .widgets import ReferenceActionsWidget


class ReferenceActionsFieldsMixin:
    """Pour ModelAdmin et InlineModelAdmin : enveloppe les champs configurés."""

    reference_actions: Dict[str, Dict[str, Any]] = {}
    reference_actions_site: ActionRegistry = registry

    def get_reference_action_settings(self, field_name: str) -> Optional[FieldActionSettings]:
        """Réglages actifs du champ : ceux enregistrés depuis l'admin, sinon `reference_actions`."""
        cfg = effective_settings(self.model._meta.label_lower, self.reference_actions, field_name)
        return cfg if cfg.enabled else None

    def formfield_for_dbfield(self, db_field, request, **kwargs):
        formfield = super().formfield_for_dbfield(db_field, request, **kwargs)
        if formfield is None or not db_field.is_relation or db_field.related_model is None:
            return formfield
        cfg = self.get_reference_action_settings(db_field.name)
        if cfg is None:
            return formfield
        entity_type = db_field.related_model._meta.label_lower
        options = cfg.options(entity_type, site=self.reference_actions_site)
        if options:
            formfield.widget = ReferenceActionsWidget(
                formfield.widget,
                field_name=db_field.name,
                entity_type=entity_type,
                options=options,
                settings=cfg,
            )
        return formfield


class ReferenceActionsMixin(ReferenceActionsFieldsMixin):
    """
    Pour ModelAdmin : un POST portant un déclencheur est traité comme un
    dispatch d'action (seul le champ déclencheur est lu, rien n'est enregistré).
    """

    def changeform_view(self, request, object_id=None, form_url="", extra_context=None):
        if request.method == "POST" and TRIGGER_NAME in request.POST:
            return self.reference_action_view(request, object_id)
        return super().changeform_view(request, object_id, form_url, extra_context)

    def reference_action_view(self, request, object_id=None):
        obj = None
        if object_id:
            obj = self.get_object(request, unquote(object_id))
            if obj is None:
                return self._get_obj_does_not_exist_redirect(request, self.opts, object_id)
            if not self.has_change_permission(request, obj):
                raise PermissionDenied
        elif not self.has_add_permission(request):
            raise PermissionDenied

        html_name, _, action_id = request.POST[TRIGGER_NAME].partition(":")
        if not action_id:
            action_id = request.POST.get(f"{html_name}{SELECT_SUFFIX}", "")
        token = CorrelationToken.loads(request.POST.get(f"{html_name}{TOKEN_SUFFIX}", ""))
        if token.field != html_name:
            raise SuspiciousOperation("Reference-actions token does not match the triggering field")

        located = self._locate_reference_field(request, obj, html_name)
        if located is None:
            raise SuspiciousOperation(f"No reference actions configured for {html_name!r}")
        form, field_name, cfg, owner = located

        return dispatch_from_form(
            request,
            form=form,
            field_name=field_name,
            settings=cfg,
            action_id=action_id,
            token=token,
            destination=request.get_full_path(),
            site=owner.reference_actions_site,
        )

    def _iter_reference_forms(self, request, obj) -> Iterator[Tuple[Any, Any]]:
        """(formulaire lié, admin propriétaire) : formulaire principal puis formulaires des inlines."""
        ModelForm = self.get_form(request, obj, change=obj is not None)
        yield ModelForm(request.POST, request.FILES, instance=obj), self

        prefixes: Dict[str, int] = {}
        for FormSet, inline in self.get_formsets_with_inlines(request, obj):
            # Même calcul de préfixe que ModelAdmin._create_formsets
            prefix = FormSet.get_default_prefix()
            prefixes[prefix] = prefixes.get(prefix, 0) + 1
            if prefixes[prefix] != 1 or not prefix:
                prefix = "%s-%s" % (prefix, prefixes[prefix])
            if not isinstance(inline, ReferenceActionsFieldsMixin):
                continue
            formset = FormSet(
                data=request.POST,
                files=request.FILES,
                instance=obj if obj is not None else self.model(),
                prefix=prefix,
                queryset=inline.get_queryset(request),
            )
            for form in formset.forms:
                yield form, inline

    def _locate_reference_field(self, request, obj, html_name: str):
        for form, owner in self._iter_reference_forms(request, obj):
            for field_name in form.fields:
                if form.add_prefix(field_name) == html_name:
                    cfg = owner.get_reference_action_settings(field_name)
                    if cfg is not None:
                        return form, field_name, cfg, owner
        return None


@admin.register(FieldActionConfig)
class FieldActionConfigAdmin(admin.ModelAdmin):
    list_display = ("model_label", "field_name", "enabled", "updated_by", "updated_at", "edit_link")
    search_fields = ("model_label", "field_name")
    readonly_fields = ("model_label", "field_name", "values", "updated_by", "updated_at")

    def has_add_permission(self, request):
        # Création via la page de réglages du champ
        return False

    @admin.display(boolean=True, description="Enabled")
    def enabled(self, obj):
        return obj.enabled

    @admin.display(description="Settings")
    def edit_link(self, obj):
        url = reverse("refactions:field_settings", args=[obj.model_label, obj.field_name])
        return format_html('<a href="{}">Edit</a>', url)
