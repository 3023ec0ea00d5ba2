# backend/refactions/services/dispatcher.py
"""
Dispatch d'une action sur une sélection :

    idle -> resolving -> confirming            (route de confirmation déclarée)
                      -> executing -> done     (en ligne, ou via un job ops)

Politique de confirmation : confirmer AVANT d'exécuter. Rien n'est appliqué
tant que la page de confirmation n'a pas rappelé `Dispatcher.execute()`.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Collection, List, Optional, Sequence
from urllib.parse import urlencode

from django.apps import apps
from django.urls import reverse

from ops.models import JobItem, JobRun
from ops.services import queue

from ..conf import get_setting
from ..constants import JOB_NAME, RESULT_APPLIED, RESULT_MISSING, DispatchState
from ..exceptions import EmptySelection
from ..registry import Action, registry
from .audit import write_action_log
from .resolver import ActionResolver
from .selection import Selection
from .tokens import ConfirmationTicket

logger = logging.getLogger("refactions.dispatch")

CALLBACK_PATH = "refactions.services.dispatcher.apply_to_entity"
FINISH_CALLBACK_PATH = "refactions.services.dispatcher.finish_job"


def summary_message(label: str, applied: int) -> str:
    noun = "item" if applied == 1 else "items"
    return f"{label} was successfully applied to {applied} {noun}."


def apply_to_entity(entity_id: Any, entity_type: str, action_id: str) -> str:
    """
    Callback par entité (job ou exécution en ligne). Recharge l'action et
    l'entité : peut être rejoué sans effet de bord supplémentaire.
    """
    action = registry.load(action_id)
    model = apps.get_model(entity_type)
    entity = model._default_manager.filter(pk=entity_id).first()
    if entity is None:
        logger.warning("Entity missing  action=%s  entity=%s:%s", action_id, entity_type, entity_id)
        return RESULT_MISSING
    action.apply_to(entity)
    write_action_log(
        f"Action applied: {action_id}",
        extra={"entity": f"{entity_type}:{entity_id}"},
    )
    return RESULT_APPLIED


def finish_job(run: JobRun) -> None:
    """
    Callback de fin (appelé une seule fois par ops, succès, échec ou annulation) :
    calcule le résumé puis efface la clé de corrélation, quoi qu'il arrive.
    """
    try:
        applied = run.items.filter(status=JobItem.Status.DONE, result=RESULT_APPLIED).count()
        label = run.params.get("action_label") or run.title or run.job_name
        if run.status == JobRun.Status.SUCCESS:
            summary = summary_message(label, applied)
        elif run.status == JobRun.Status.CANCELLED:
            summary = f"{label} was cancelled after {applied} of {run.total} items."
        else:
            summary = f"{label} failed after {applied} of {run.total} items: {run.error_message}"
        metrics = dict(run.metrics or {})
        # Clé de corrélation conservée pour cibler les messages du champ après nettoyage
        metrics.update({"applied": applied, "summary": summary, "messages_key": run.params.get("correlation", "")})
        run.metrics = metrics
        run.save(update_fields=["metrics"])
        logger.info("Reference action finished  run_id=%s  status=%s  applied=%d", run.pk, run.status, applied)
    finally:
        params = dict(run.params or {})
        params.pop("correlation", None)
        run.params = params
        run.save(update_fields=["params"])


@dataclass
class DispatchOutcome:
    state: DispatchState
    action: Action
    entities: List[Any]
    warnings: List[str] = field(default_factory=list)
    job: Optional[JobRun] = None
    confirm_url: Optional[str] = None
    applied: int = 0
    summary: str = ""


class Dispatcher:
    def __init__(self, resolver: Optional[ActionResolver] = None, *, inline_threshold: Optional[int] = None):
        self.resolver = resolver or ActionResolver()
        self.inline_threshold = get_setting("INLINE_THRESHOLD") if inline_threshold is None else inline_threshold
        self.state = DispatchState.IDLE
        self.transitions: List[DispatchState] = [DispatchState.IDLE]

    def _enter(self, state: DispatchState) -> None:
        logger.debug("Dispatch state %s -> %s", self.state, state)
        self.state = state
        self.transitions.append(state)

    def dispatch(
        self,
        action_id: str,
        selection: Selection,
        user: Any,
        *,
        destination: str = "",
        correlation: str = "",
        allowed_actions: Optional[Collection[str]] = None,
    ) -> DispatchOutcome:
        if not selection:
            raise EmptySelection(selection.field_name)

        self._enter(DispatchState.RESOLVING)
        resolution = self.resolver.resolve(action_id, selection, user, allowed_actions=allowed_actions)
        action = resolution.action

        route = resolution.confirm_route
        if route:
            self._enter(DispatchState.CONFIRMING)
            ticket = ConfirmationTicket(
                action_id=action.id,
                entity_type=action.entity_type,
                ids=tuple(str(e.pk) for e in resolution.entities),
                destination=destination,
                correlation=correlation,
            )
            url = f"{reverse(route)}?{urlencode({'token': ticket.dumps()})}"
            logger.info("Dispatch confirming  action=%s  entities=%d", action.id, len(resolution.entities))
            return DispatchOutcome(
                state=DispatchState.CONFIRMING,
                action=action,
                entities=resolution.entities,
                warnings=resolution.warnings,
                confirm_url=url,
            )

        outcome = self.execute(
            action,
            resolution.entities,
            user=user,
            destination=destination,
            correlation=correlation,
        )
        outcome.warnings = resolution.warnings + outcome.warnings
        return outcome

    def execute(
        self,
        action: Action,
        entities: Sequence[Any],
        *,
        user: Any = None,
        destination: str = "",
        correlation: str = "",
    ) -> DispatchOutcome:
        """Exécution d'entités déjà filtrées (accès vérifié par l'appelant)."""
        self._enter(DispatchState.EXECUTING)
        entities = list(entities)
        label = action.bulk_label()

        if len(entities) > self.inline_threshold:
            run = queue.submit(
                JOB_NAME,
                [(e.pk, action.entity_type) for e in entities],
                callback=CALLBACK_PATH,
                finish_callback=FINISH_CALLBACK_PATH,
                kwargs={"action_id": action.id},
                params={
                    "action_id": action.id,
                    "action_label": label,
                    "destination": destination,
                    "correlation": correlation,
                },
                title=label,
                triggered_by="admin",
                owner=user,
            )
            logger.info("Dispatch queued  action=%s  run_id=%s  entities=%d", action.id, run.pk, len(entities))
            return DispatchOutcome(state=DispatchState.EXECUTING, action=action, entities=entities, job=run)

        applied = 0
        try:
            for entity in entities:
                if apply_to_entity(entity.pk, action.entity_type, action.id) == RESULT_APPLIED:
                    applied += 1
        finally:
            self._enter(DispatchState.DONE)
        summary = summary_message(label, applied)
        logger.info("Dispatch done inline  action=%s  applied=%d", action.id, applied)
        return DispatchOutcome(
            state=DispatchState.DONE,
            action=action,
            entities=entities,
            applied=applied,
            summary=summary,
        )
