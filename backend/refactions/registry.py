# backend/refactions/registry.py
"""
Registre des actions applicables aux entités référencées.

Une action = un enregistrement (dataclass) portant ses callables :
`execute(entity)`, un contrôle d'accès optionnel `access_check(entity, user)`
et une route de confirmation optionnelle. Pas de sous-classe par type d'action.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Callable, Dict, Iterator, List, Optional

from django.apps import apps
from django.contrib.auth import get_permission_codename
from django.core.exceptions import ImproperlyConfigured
from django.utils.module_loading import autodiscover_modules

from .exceptions import UnknownAction


def entity_type_of(model_or_instance: Any) -> str:
    return model_or_instance._meta.label_lower


@dataclass(frozen=True)
class Action:
    id: str
    label: str
    entity_type: str
    execute: Callable[[Any], Any]
    access_check: Optional[Callable[[Any, Any], bool]] = None
    confirm_route: Optional[str] = None
    action_label: Optional[str] = None
    permission: str = "change"

    @property
    def model(self):
        return apps.get_model(self.entity_type)

    def access(self, entity: Any, user: Any) -> bool:
        if self.access_check is not None:
            return bool(self.access_check(entity, user))
        opts = self.model._meta
        codename = get_permission_codename(self.permission, opts)
        return bool(user.has_perm(f"{opts.app_label}.{codename}"))

    def requires_confirmation(self) -> Optional[str]:
        return self.confirm_route or None

    def apply_to(self, entity: Any) -> Any:
        return self.execute(entity)

    def bulk_label(self) -> str:
        # "Publish all articles" si l'action déclare un libellé de masse
        if self.action_label:
            return f"{self.action_label} all {self.model._meta.verbose_name_plural}"
        return self.label


class ActionRegistry:
    def __init__(self) -> None:
        self._actions: Dict[str, Action] = {}

    def register(self, action: Action, *, replace: bool = False) -> Action:
        if action.id in self._actions and not replace:
            raise ImproperlyConfigured(f"Action {action.id!r} is already registered.")
        self._actions[action.id] = action
        return action

    def unregister(self, action_id: str) -> None:
        if action_id not in self._actions:
            raise UnknownAction(action_id)
        del self._actions[action_id]

    def load(self, action_id: str) -> Action:
        try:
            return self._actions[action_id]
        except KeyError:
            raise UnknownAction(action_id) from None

    def for_entity_type(self, entity_type: str) -> List[Action]:
        return [a for a in self._actions.values() if a.entity_type == entity_type]

    def __contains__(self, action_id: object) -> bool:
        return action_id in self._actions

    def __iter__(self) -> Iterator[Action]:
        return iter(list(self._actions.values()))

    def __len__(self) -> int:
        return len(self._actions)


registry = ActionRegistry()


def action(
    *,
    model: Any,
    id: Optional[str] = None,
    label: Optional[str] = None,
    confirm_route: Optional[str] = None,
    action_label: Optional[str] = None,
    permission: str = "change",
    access: Optional[Callable[[Any, Any], bool]] = None,
    site: Optional[ActionRegistry] = None,
):
    """
    Décorateur à la manière de `@admin.action` : enregistre la fonction
    `func(entity)` comme action sur `model`.
    """
    def decorator(func: Callable[[Any], Any]) -> Callable[[Any], Any]:
        entity_type = model if isinstance(model, str) else entity_type_of(model)
        (site or registry).register(Action(
            id=id or func.__name__,
            label=label or func.__name__.replace("_", " ").capitalize(),
            entity_type=entity_type.lower(),
            execute=func,
            access_check=access,
            confirm_route=confirm_route,
            action_label=action_label,
            permission=permission,
        ))
        return func
    return decorator


def autodiscover() -> None:
    autodiscover_modules("actions")
