# backend/ops/services/queue.py
"""
File d'attente de jobs adossée à la base (JobRun + JobItem).

Un job = une liste ordonnée d'items (entity_id, entity_type). Les items sont
traités par `process()` : depuis le worker (`manage.py run_jobs`), depuis la
page de progression (un lot par requête) ou en ligne. Le callback de fin est
appelé une seule fois, que le job réussisse, échoue ou soit annulé.
"""
from __future__ import annotations

import logging
from datetime import timedelta
from typing import Any, Dict, Iterable, List, Optional, Tuple

from django.db import transaction
from django.utils import timezone
from django.utils.module_loading import import_string

from ..models import JobItem, JobRun
from .jobrun import job_context

logger = logging.getLogger("ops.queue")

OPEN_ITEM_STATUSES = (JobItem.Status.PENDING, JobItem.Status.RUNNING)


class JobRunnerFailure(Exception):
    """Un callback d'item a levé une exception ; le job est clos en FAILED."""

    def __init__(self, run: JobRun, message: str):
        super().__init__(message)
        self.run = run


def submit(
    job_name: str,
    items: Iterable[Tuple[Any, str]],
    *,
    callback: str,
    finish_callback: Optional[str] = None,
    kwargs: Optional[Dict[str, Any]] = None,
    params: Optional[Dict[str, Any]] = None,
    title: str = "",
    triggered_by: str = "admin",
    owner: Any = None,
) -> JobRun:
    """
    Crée un JobRun QUEUED et ses items, dans l'ordre fourni.
    `callback` / `finish_callback` sont des chemins pointés (import_string).
    """
    pairs: List[Tuple[Any, str]] = list(items)
    run_params = dict(params or {})
    run_params.update({
        "callback": callback,
        "finish_callback": finish_callback,
        "kwargs": dict(kwargs or {}),
    })
    with transaction.atomic():
        run = JobRun.objects.create(
            job_name=job_name,
            title=title,
            status=JobRun.Status.QUEUED,
            triggered_by=triggered_by,
            owner=owner if getattr(owner, "pk", None) else None,
            params=run_params,
            total=len(pairs),
        )
        JobItem.objects.bulk_create([
            JobItem(run=run, position=pos, entity_id=str(entity_id), entity_type=entity_type)
            for pos, (entity_id, entity_type) in enumerate(pairs)
        ])
    logger.info("Job queued  run_id=%s  job=%s  items=%d", run.pk, job_name, len(pairs))
    return run


def _claim(run: JobRun, limit: int) -> List[JobItem]:
    with transaction.atomic():
        items = list(
            JobItem.objects.select_for_update(skip_locked=True)
            .filter(run=run, status=JobItem.Status.PENDING)
            .order_by("position")[:limit]
        )
        if items:
            JobItem.objects.filter(pk__in=[i.pk for i in items]).update(status=JobItem.Status.RUNNING)
    return items


def _still_open(run: JobRun) -> bool:
    return JobRun.objects.filter(pk=run.pk, finished_at__isnull=True).exists()


def _close_item(item: JobItem, **values: Any) -> None:
    # L'item peut avoir disparu (job annulé pendant le callback)
    JobItem.objects.filter(pk=item.pk).update(processed_at=timezone.now(), **values)


def process(run: JobRun, limit: Optional[int] = None, *, triggered_by: str = "worker") -> int:
    """
    Traite au plus `limit` items en attente (tous si None), dans l'ordre.
    Clôt le job quand il ne reste plus rien ; en cas d'erreur d'un callback,
    clôt le job en FAILED puis lève JobRunnerFailure. S'arrête sans erreur
    si le job est clos entre deux items (annulation).
    """
    run.refresh_from_db()
    if run.is_finished:
        return 0

    chunk = limit if limit is not None else max(run.total, 1)
    done = 0
    failure: Optional[BaseException] = None

    try:
        callback = import_string(run.params["callback"])
        kwargs = run.params.get("kwargs") or {}
        with job_context(run.job_name, run=run, triggered_by=triggered_by, use_lock=False) as jc:
            for item in _claim(run, chunk):
                if not _still_open(run):
                    jc.logger.info("Job closed while running, stopping  run_id=%s", run.pk)
                    break
                try:
                    result = callback(item.entity_id, item.entity_type, **kwargs)
                except Exception as e:
                    _close_item(item, status=JobItem.Status.FAILED, error_message=f"{type(e).__name__}: {e}")
                    raise
                item.result = str(result or "")[:64]
                _close_item(item, status=JobItem.Status.DONE, result=item.result)
                jc.heartbeat(processed=1)
                done += 1
                jc.logger.info(
                    "Item done  run_id=%s  pos=%s  %s:%s  result=%s",
                    run.pk, item.position, item.entity_type, item.entity_id, item.result,
                )
    except Exception as e:
        failure = e
        raise JobRunnerFailure(run, f"Job #{run.pk} failed: {e}") from e
    finally:
        run.refresh_from_db()
        if failure is not None:
            finish(run, JobRun.Status.FAILED, error=str(failure))
        elif not run.items.filter(status__in=OPEN_ITEM_STATUSES).exists():
            finish(run, JobRun.Status.SUCCESS)
    return done


def percent_complete(run: JobRun) -> int:
    run.refresh_from_db(fields=["total", "processed", "finished_at"])
    return run.percent_complete


def finish(run: JobRun, status: str, *, error: str = "") -> bool:
    """
    Clôture atomique : seul le premier appelant passe finished_at et déclenche
    le callback de fin. Les items sont supprimés quoi qu'il arrive.
    """
    updates: Dict[str, Any] = {"status": status, "finished_at": timezone.now()}
    if error:
        updates["error_message"] = error
    claimed = JobRun.objects.filter(pk=run.pk, finished_at__isnull=True).update(**updates)
    if not claimed:
        return False

    run.refresh_from_db()
    logger.info("Job finished  run_id=%s  status=%s  processed=%s/%s", run.pk, status, run.processed, run.total)
    try:
        cb_path = run.params.get("finish_callback")
        if cb_path:
            import_string(cb_path)(run)
    finally:
        run.items.all().delete()
    return True


def cancel(run: JobRun) -> bool:
    return finish(run, JobRun.Status.CANCELLED, error="Cancelled")


def purge(stale_after: timedelta, *, keep_logs_for: Optional[timedelta] = None) -> Dict[str, int]:
    """
    Balayage administratif : clôt les jobs sans activité depuis `stale_after`
    (session disparue, worker arrêté) et supprime optionnellement les vieux journaux.
    """
    now = timezone.now()
    abandoned = 0
    for run in JobRun.objects.filter(finished_at__isnull=True, heartbeat_at__lt=now - stale_after):
        if finish(run, JobRun.Status.CANCELLED, error="Abandoned"):
            abandoned += 1

    # Items orphelins d'un job déjà clos (crash pendant le nettoyage)
    orphans, _ = JobItem.objects.filter(run__finished_at__isnull=False).delete()

    deleted_logs = 0
    if keep_logs_for is not None:
        deleted_logs, _ = JobRun.objects.filter(finished_at__lt=now - keep_logs_for).delete()

    logger.info("Purge done  abandoned=%d  orphan_items=%d  deleted_logs=%d", abandoned, orphans, deleted_logs)
    return {"abandoned": abandoned, "orphan_items": orphans, "deleted_logs": deleted_logs}


def pending_runs(job_name: Optional[str] = None):
    qs = JobRun.objects.filter(finished_at__isnull=True).order_by("created_at", "pk")
    if job_name:
        qs = qs.filter(job_name=job_name)
    return qs
