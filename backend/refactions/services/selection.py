# backend/refactions/services/selection.py

from __future__ import annotations
from dataclasses import dataclass
from typing import Any, Dict, Iterator, List, Tuple, Type

from django import forms
from django.core.exceptions import ImproperlyConfigured, ValidationError
from django.db import models

from ..exceptions import EmptySelection


@dataclass(frozen=True)
class Selection:
    """Ids des entités référencées par un champ au moment de la soumission (ordonnés, uniques)."""

    field_name: str
    model: Type[models.Model]
    ids: Tuple[Any, ...]

    @property
    def entity_type(self) -> str:
        return self.model._meta.label_lower

    def __len__(self) -> int:
        return len(self.ids)

    def __iter__(self) -> Iterator[Any]:
        return iter(self.ids)

    def __bool__(self) -> bool:
        return bool(self.ids)


def _raw_values(form: forms.BaseForm, field_name: str) -> List[Any]:
    field = form.fields[field_name]
    raw = field.widget.value_from_datadict(form.data, form.files, form.add_prefix(field_name))
    if raw is None:
        return []
    if isinstance(raw, (list, tuple)):
        return list(raw)
    return [raw]


def capture_selection(form: forms.BaseForm, field_name: str) -> Selection:
    """
    Lit la valeur soumise (non enregistrée) du champ de référence `field_name`
    du formulaire lié `form` :
      - valeurs vides ignorées, doublons retirés, ordre de saisie conservé
      - ids absents du queryset du champ ignorés
    Lève EmptySelection s'il ne reste rien.
    """
    if field_name not in form.fields:
        raise ImproperlyConfigured(f"{type(form).__name__} has no field {field_name!r}")
    field = form.fields[field_name]
    queryset = getattr(field, "queryset", None)
    if queryset is None:
        raise ImproperlyConfigured(f"Field {field_name!r} is not a reference field")

    model = queryset.model
    key = getattr(field, "to_field_name", None) or model._meta.pk.name
    key_field = model._meta.get_field(key)

    ordered: List[Any] = []
    seen = set()
    for value in _raw_values(form, field_name):
        if value in field.empty_values:
            continue
        text = str(value).strip()
        if not text:
            continue
        try:
            # Forme canonique : "07" et "7", UUID en majuscules ou sans tirets
            converted = key_field.to_python(text)
        except ValidationError:
            # Saisie invalide (ex. raw id non numérique) : ignorée
            continue
        if converted in seen:
            continue
        seen.add(converted)
        ordered.append(converted)

    if not ordered:
        raise EmptySelection(field_name)

    rows: Dict[Any, Any] = {
        k: pk for pk, k in queryset.filter(**{f"{key}__in": ordered}).values_list("pk", key)
    }
    ids = tuple(rows[v] for v in ordered if v in rows)
    if not ids:
        raise EmptySelection(field_name)
    return Selection(field_name=field_name, model=model, ids=ids)
