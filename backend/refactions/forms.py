# backend/refactions/forms.py

from __future__ import annotations
from typing import Optional

from django import forms
from django.core.exceptions import SuspiciousOperation, ValidationError

from .constants import Display, IncludeExclude
from .registry import ActionRegistry
from .services.field_settings import FieldActionSettings
from .services.tokens import ConfirmationTicket


class FieldActionSettingsForm(forms.Form):
    """Édition des réglages d'un champ de référence."""

    enabled = forms.BooleanField(label="Enable reference actions", required=False)
    action_title = forms.CharField(
        label="Action title",
        max_length=128,
        required=False,
        help_text="The title shown above the actions.",
    )
    include_exclude = forms.ChoiceField(
        label="Available actions",
        choices=[
            (IncludeExclude.EXCLUDE.value, "All actions, except selected"),
            (IncludeExclude.INCLUDE.value, "Only selected actions"),
        ],
        widget=forms.RadioSelect,
        initial=IncludeExclude.EXCLUDE.value,
    )
    selected_actions = forms.MultipleChoiceField(
        label="Selected actions",
        choices=(),
        required=False,
        widget=forms.CheckboxSelectMultiple,
    )
    display = forms.ChoiceField(
        label="Display",
        choices=[
            (Display.BUTTONS.value, "One button per action"),
            (Display.SELECT.value, "Action selector and one button"),
        ],
        initial=Display.BUTTONS.value,
    )

    def __init__(self, *args, entity_type: str, site: Optional[ActionRegistry] = None,
                 settings: Optional[FieldActionSettings] = None, **kwargs):
        if settings is not None and "initial" not in kwargs:
            kwargs["initial"] = settings.to_dict()
        super().__init__(*args, **kwargs)
        base = settings or FieldActionSettings()
        # Toutes les actions du type, sans le filtre inclure/exclure
        self.fields["selected_actions"].choices = base.options(entity_type, filtered=False, site=site)

    def to_settings(self) -> FieldActionSettings:
        if not self.is_valid():
            raise ValueError("Invalid settings form")
        return FieldActionSettings.from_dict(self.cleaned_data)


class ConfirmActionForm(forms.Form):
    token = forms.CharField(widget=forms.HiddenInput)

    def clean_token(self) -> str:
        value = self.cleaned_data["token"]
        try:
            self.ticket = ConfirmationTicket.loads(value)
        except SuspiciousOperation:
            raise ValidationError("This confirmation link is invalid or has expired.", code="invalid_token")
        return value
