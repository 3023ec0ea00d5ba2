# backend/refactions/builtin.py
"""
Fabriques pour les actions courantes (mise à jour d'un champ, suppression).
"""
from __future__ import annotations
from typing import Any, Optional

from .registry import Action, entity_type_of


def field_update_action(
    id: str,
    label: str,
    model: Any,
    *,
    field: str,
    value: Any,
    action_label: Optional[str] = None,
    permission: str = "change",
) -> Action:
    """Positionne `field = value`. Idempotent : pas d'écriture si déjà à la valeur."""

    def execute(entity: Any) -> bool:
        if getattr(entity, field) == value:
            return False
        setattr(entity, field, value)
        update_fields = [field]
        if any(f.name == "updated_at" for f in entity._meta.concrete_fields):
            update_fields.append("updated_at")
        entity.save(update_fields=update_fields)
        return True

    return Action(
        id=id,
        label=label,
        entity_type=entity_type_of(model),
        execute=execute,
        action_label=action_label,
        permission=permission,
    )


def delete_action(
    model: Any,
    *,
    id: Optional[str] = None,
    label: str = "Delete",
    confirm_route: Optional[str] = "refactions:confirm",
) -> Action:
    entity_type = entity_type_of(model)

    def execute(entity: Any) -> None:
        entity.delete()

    return Action(
        id=id or f"{entity_type.replace('.', '_')}_delete",
        label=label,
        entity_type=entity_type,
        execute=execute,
        confirm_route=confirm_route,
        action_label="Delete",
        permission="delete",
    )
