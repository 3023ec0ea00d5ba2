# backend/refactions/exceptions.py

from __future__ import annotations
from typing import Any, List, Optional, Sequence

from ops.services.queue import JobRunnerFailure


class ReferenceActionError(Exception):
    """Base des erreurs du flux d'actions sur références."""


class EmptySelection(ReferenceActionError):
    """Aucune entité référencée : rien à faire (pas de message)."""

    def __init__(self, field_name: str = ""):
        super().__init__(f"No entity selected in field {field_name!r}")
        self.field_name = field_name


class UnknownAction(ReferenceActionError):
    def __init__(self, action_id: str):
        super().__init__(f"Unknown action: {action_id!r}")
        self.action_id = action_id


class AccessDenied(ReferenceActionError):
    """Refus d'accès sur une entité : non bloquant, remonté en avertissement."""

    def __init__(self, action: Any, entity: Any):
        type_label = entity._meta.verbose_name
        super().__init__(f"No access to execute {action.label} on the {type_label} {entity}.")
        self.action = action
        self.entity = entity


class NoEligibleEntities(ReferenceActionError):
    """
    Plus aucune entité après filtrage. Si des refus d'accès ont déjà été
    signalés, ce sont eux les avertissements ; sinon un seul message générique.
    """

    def __init__(self, action: Any, model: Any, denied: Optional[Sequence[AccessDenied]] = None):
        super().__init__(f"No {model._meta.verbose_name_plural} selected.")
        self.action = action
        self.model = model
        self.denied: List[AccessDenied] = list(denied or [])

    @property
    def warnings(self) -> List[str]:
        if self.denied:
            return [str(d) for d in self.denied]
        return [str(self)]


__all__ = [
    "ReferenceActionError",
    "EmptySelection",
    "UnknownAction",
    "AccessDenied",
    "NoEligibleEntities",
    "JobRunnerFailure",
]
