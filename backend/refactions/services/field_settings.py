# backend/refactions/services/field_settings.py

from __future__ import annotations
from dataclasses import dataclass, field
from typing import Any, Dict, FrozenSet, List, Mapping, Optional, Tuple

from django.core.exceptions import ImproperlyConfigured

from ..conf import get_setting
from ..constants import Display, IncludeExclude
from ..models import FieldActionConfig
from ..registry import Action, ActionRegistry, registry


def _selected_ids(raw: Any) -> FrozenSet[str]:
    # Accepte une liste d'ids ou un dict {id: id|0} (cases à cocher)
    if not raw:
        return frozenset()
    if isinstance(raw, Mapping):
        return frozenset(str(k) for k, v in raw.items() if v)
    if isinstance(raw, str):
        return frozenset([raw])
    return frozenset(str(v) for v in raw if v)


@dataclass(frozen=True)
class FieldActionSettings:
    """Réglages d'un champ de référence (paramètres du widget)."""

    enabled: bool = False
    action_title: str = ""
    include_exclude: str = IncludeExclude.EXCLUDE
    selected_actions: FrozenSet[str] = field(default_factory=frozenset)
    display: str = Display.BUTTONS

    @classmethod
    def from_dict(cls, raw: Optional[Mapping[str, Any]]) -> "FieldActionSettings":
        raw = dict(raw or {})
        # Ancien format imbriqué {"enabled": .., "options": {...}}
        options = raw.pop("options", None) or {}
        merged: Dict[str, Any] = {**options, **raw}

        include_exclude = str(merged.get("include_exclude") or IncludeExclude.EXCLUDE)
        if include_exclude not in {e.value for e in IncludeExclude}:
            raise ImproperlyConfigured(f"include_exclude must be 'include' or 'exclude', got {include_exclude!r}")
        display = str(merged.get("display") or Display.BUTTONS)
        if display not in {e.value for e in Display}:
            raise ImproperlyConfigured(f"display must be 'buttons' or 'select', got {display!r}")

        return cls(
            enabled=bool(merged.get("enabled", False)),
            action_title=str(merged.get("action_title") or get_setting("DEFAULT_ACTION_TITLE")),
            include_exclude=IncludeExclude(include_exclude),
            selected_actions=_selected_ids(merged.get("selected_actions")),
            display=Display(display),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "enabled": self.enabled,
            "action_title": self.action_title,
            "include_exclude": str(self.include_exclude),
            "selected_actions": sorted(self.selected_actions),
            "display": str(self.display),
        }

    def allows(self, action_id: str) -> bool:
        selected = action_id in self.selected_actions
        if self.include_exclude == IncludeExclude.INCLUDE:
            return selected
        return not selected

    def available_actions(
        self,
        entity_type: str,
        *,
        filtered: bool = True,
        site: Optional[ActionRegistry] = None,
    ) -> List[Action]:
        actions = (site or registry).for_entity_type(entity_type)
        if not filtered:
            return actions
        return [a for a in actions if self.allows(a.id)]

    def options(self, entity_type: str, *, filtered: bool = True, site: Optional[ActionRegistry] = None) -> List[Tuple[str, str]]:
        return [(a.id, a.bulk_label()) for a in self.available_actions(entity_type, filtered=filtered, site=site)]


def stored_settings(model_label: str, field_name: str) -> Optional[FieldActionSettings]:
    """Réglages enregistrés depuis l'admin (FieldActionConfig), activés ou non."""
    raw = (
        FieldActionConfig.objects.filter(model_label=model_label, field_name=field_name)
        .values_list("values", flat=True)
        .first()
    )
    return None if raw is None else FieldActionSettings.from_dict(raw)


def effective_settings(
    model_label: str, config: Optional[Mapping[str, Any]], field_name: str
) -> FieldActionSettings:
    """Réglages enregistrés s'il y en a, sinon ceux déclarés dans le code (éventuellement désactivés)."""
    stored = stored_settings(model_label, field_name)
    if stored is not None:
        return stored
    return FieldActionSettings.from_dict((config or {}).get(field_name))
