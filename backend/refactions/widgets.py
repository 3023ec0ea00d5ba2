# backend/refactions/widgets.py

from __future__ import annotations
import copy
from typing import List, Tuple

from django import forms

from .constants import SELECT_SUFFIX, TOKEN_SUFFIX, TRIGGER_NAME, Display
from .services.field_settings import FieldActionSettings
from .services.tokens import CorrelationToken


class ReferenceActionsWidget(forms.Widget):
    """
    Enveloppe le widget d'un champ de référence : conteneur de messages,
    jeton de corrélation caché et déclencheurs (boutons ou sélecteur + bouton).
    Construit sur le modèle de RelatedFieldWidgetWrapper.
    """

    template_name = "refactions/widget.html"

    def __init__(self, widget, *, field_name: str, entity_type: str,
                 options: List[Tuple[str, str]], settings: FieldActionSettings):
        self.needs_multipart_form = widget.needs_multipart_form
        self.attrs = widget.attrs
        self.widget = widget
        self.field_name = field_name
        self.entity_type = entity_type
        self.options = list(options)
        self.settings = settings

    def __deepcopy__(self, memo):
        obj = copy.copy(self)
        obj.widget = copy.deepcopy(self.widget, memo)
        obj.attrs = self.widget.attrs
        memo[id(self)] = obj
        return obj

    @property
    def is_hidden(self):
        return self.widget.is_hidden

    @property
    def media(self):
        return self.widget.media

    @property
    def choices(self):
        return self.widget.choices

    @choices.setter
    def choices(self, value):
        self.widget.choices = value

    def get_context(self, name, value, attrs):
        token = CorrelationToken.new(name, self.entity_type)
        use_select = self.settings.display == Display.SELECT and len(self.options) > 1
        return {
            "name": name,
            "rendered_widget": self.widget.render(name, value, attrs),
            "correlation": token.key,
            "token_name": f"{name}{TOKEN_SUFFIX}",
            "token": token.dumps(),
            "title": self.settings.action_title,
            "trigger_name": TRIGGER_NAME,
            "use_select": use_select,
            "select_name": f"{name}{SELECT_SUFFIX}",
            "options": [(f"{name}:{action_id}", label) for action_id, label in self.options],
            "choices": self.options,
        }

    def value_from_datadict(self, data, files, name):
        return self.widget.value_from_datadict(data, files, name)

    def value_omitted_from_data(self, data, files, name):
        return self.widget.value_omitted_from_data(data, files, name)

    def id_for_label(self, id_):
        return self.widget.id_for_label(id_)
