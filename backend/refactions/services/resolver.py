# backend/refactions/services/resolver.py

from __future__ import annotations
import logging
from dataclasses import dataclass, field
from typing import Any, Collection, Iterable, List, Optional, Tuple

from ..exceptions import AccessDenied, NoEligibleEntities, UnknownAction
from ..registry import Action, ActionRegistry, registry
from .selection import Selection

logger = logging.getLogger("refactions.resolver")


@dataclass
class Resolution:
    action: Action
    entities: List[Any]
    denied: List[AccessDenied] = field(default_factory=list)

    @property
    def warnings(self) -> List[str]:
        return [str(d) for d in self.denied]

    @property
    def confirm_route(self) -> Optional[str]:
        return self.action.requires_confirmation()


class ActionResolver:
    def __init__(self, site: Optional[ActionRegistry] = None):
        self.site = site or registry

    def load_action(self, action_id: str, entity_type: Optional[str] = None) -> Action:
        action = self.site.load(action_id)
        if entity_type is not None and action.entity_type != entity_type:
            raise UnknownAction(action_id)
        return action

    def load_entities(self, model: Any, ids: Iterable[Any]) -> List[Any]:
        """Charge les entités dans l'ordre des ids ; les ids disparus sont ignorés."""
        ids = list(ids)
        by_pk = {str(pk): obj for pk, obj in model._default_manager.in_bulk(ids).items()}
        return [by_pk[str(i)] for i in ids if str(i) in by_pk]

    def filter_access(self, action: Action, entities: Iterable[Any], user: Any) -> Tuple[List[Any], List[AccessDenied]]:
        allowed: List[Any] = []
        denied: List[AccessDenied] = []
        for entity in entities:
            if action.access(entity, user):
                allowed.append(entity)
            else:
                denied.append(AccessDenied(action, entity))
                logger.info("Access denied  action=%s  entity=%s:%s  user=%s", action.id, action.entity_type, entity.pk, user)
        return allowed, denied

    def resolve(
        self,
        action_id: str,
        selection: Selection,
        user: Any,
        *,
        allowed_actions: Optional[Collection[str]] = None,
    ) -> Resolution:
        action = self.load_action(action_id, selection.entity_type)
        if allowed_actions is not None and action.id not in allowed_actions:
            raise UnknownAction(action_id)

        entities = self.load_entities(selection.model, selection.ids)
        allowed, denied = self.filter_access(action, entities, user)
        if not allowed:
            raise NoEligibleEntities(action, selection.model, denied)
        return Resolution(action=action, entities=allowed, denied=denied)
