# backend/ops/services/jobrun.py
from __future__ import annotations

import hashlib
import logging
from contextlib import contextmanager, nullcontext
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Iterator, Optional, Tuple

from django.conf import settings
from django.db import connection
from django.db.models import F
from django.utils import timezone

from ..models import JobRun

LOG_FORMAT = "[%(levelname)s] %(asctime)s %(name)s: %(message)s"


def _job_log_path(job_name: str) -> Path:
    var = Path(getattr(settings, "VAR_DIR", Path(settings.BASE_DIR) / "var"))
    log_dir = var / "logs" / "ops"
    log_dir.mkdir(parents=True, exist_ok=True)
    return log_dir / f"{job_name}-{timezone.now():%Y-%m-%d}.log"


@contextmanager
def _advisory_lock(job_name: str) -> Iterator[bool]:
    """
    Verrou consultatif PostgreSQL par job_name (une seule exécution à la fois).
    Hors PostgreSQL (sqlite en tests) le verrou est toujours accordé.
    """
    if connection.vendor != "postgresql":
        yield True
        return
    digest = hashlib.sha1(job_name.encode("utf-8")).digest()
    key = int.from_bytes(digest[:8], "big", signed=False) % (2**63 - 1)
    with connection.cursor() as cur:
        cur.execute("SELECT pg_try_advisory_lock(%s)", [key])
        row: Optional[Tuple[Any, ...]] = cur.fetchone()
    acquired = bool(row and row[0])
    try:
        yield acquired
    finally:
        if acquired:
            with connection.cursor() as cur:
                cur.execute("SELECT pg_advisory_unlock(%s)", [key])


@contextmanager
def _file_logger(job_name: str, log_path: Path) -> Iterator[logging.Logger]:
    # Un seul FileHandler par logger de job, retiré en sortie
    logger = logging.getLogger(f"ops.{job_name}")
    logger.setLevel(logging.INFO)
    for h in list(logger.handlers):
        if isinstance(h, logging.FileHandler):
            logger.removeHandler(h)
            h.close()
    fh = logging.FileHandler(log_path, encoding="utf-8")
    fh.setFormatter(logging.Formatter(LOG_FORMAT))
    logger.addHandler(fh)
    try:
        yield logger
    finally:
        logger.removeHandler(fh)
        fh.close()


@dataclass
class JobContext:
    run: JobRun
    logger: logging.Logger

    def update_metrics(self, **values: Any) -> None:
        # Copie : pas de mutation en place du JSONField
        metrics: Dict[str, Any] = dict(self.run.metrics) if isinstance(self.run.metrics, dict) else {}
        metrics.update(values)
        self.run.metrics = metrics
        self.run.save(update_fields=["metrics"])

    def set_metric(self, key: str, value: Any) -> None:
        self.update_metrics(**{key: value})

    def heartbeat(self, processed: int = 0) -> None:
        """Signe de vie (et avancement) ; `purge` s'en sert pour repérer les jobs abandonnés."""
        updates: Dict[str, Any] = {"heartbeat_at": timezone.now()}
        if processed:
            updates["processed"] = F("processed") + processed
        JobRun.objects.filter(pk=self.run.pk, finished_at__isnull=True).update(**updates)


def _start(job_name: str, run: Optional[JobRun], params: Dict[str, Any], triggered_by: str, log_path: Path) -> JobRun:
    if run is None:
        return JobRun.objects.create(
            job_name=job_name,
            status=JobRun.Status.RUNNING,
            triggered_by=triggered_by,
            params=params,
            log_path=str(log_path),
        )
    # Run repris : ne jamais rouvrir un run déjà clos
    updates: Dict[str, Any] = {"log_path": str(log_path), "heartbeat_at": timezone.now()}
    if run.status == JobRun.Status.QUEUED:
        updates["status"] = JobRun.Status.RUNNING
    JobRun.objects.filter(pk=run.pk, finished_at__isnull=True).update(**updates)
    run.refresh_from_db()
    return run


@contextmanager
def job_context(
    job_name: str,
    *,
    run: Optional[JobRun] = None,
    params: Optional[Dict[str, Any]] = None,
    triggered_by: str = "cli",
    use_lock: bool = True,
) -> Iterator[JobContext]:
    """
    Cycle de vie d'une exécution.

    Sans `run` : crée un JobRun RUNNING et le passe SUCCESS/FAILED en sortie.
    Avec `run` : reprend un JobRun existant (file d'attente) ; en cas d'erreur
    le run est marqué FAILED mais la clôture (finished_at, callback de fin)
    reste à la charge de l'appelant.
    Verrou déjà pris : un JobRun SKIPPED est enregistré et le corps s'exécute
    avec ce run (à l'appelant de tester `jc.run.status`).
    """
    params = params or {}
    log_path = _job_log_path(job_name)

    lock = _advisory_lock(job_name) if use_lock else nullcontext(True)
    with lock as acquired:
        if not acquired:
            skipped = JobRun.objects.create(
                job_name=job_name,
                status=JobRun.Status.SKIPPED,
                triggered_by=triggered_by,
                params=params,
                log_path=str(log_path),
                finished_at=timezone.now(),
            )
            yield JobContext(skipped, logging.getLogger(f"ops.{job_name}.skipped"))
            return

        with _file_logger(job_name, log_path) as logger:
            owned = run is None
            run = _start(job_name, run, params, triggered_by, log_path)
            if owned:
                logger.info("Job started  run_id=%s  params=%s", run.pk, params)
            else:
                logger.info("Job resumed  run_id=%s  by=%s", run.pk, triggered_by)

            try:
                yield JobContext(run=run, logger=logger)
            except Exception as e:
                if owned:
                    run.status = JobRun.Status.FAILED
                    run.error_message = str(e)
                    run.finished_at = timezone.now()
                    run.save(update_fields=["status", "error_message", "finished_at"])
                else:
                    # Un run clos entre-temps (annulé) garde son statut
                    JobRun.objects.filter(pk=run.pk, finished_at__isnull=True).update(
                        status=JobRun.Status.FAILED, error_message=str(e),
                    )
                logger.exception("Job failed: %s", e)
                raise

            if owned:
                run.status = JobRun.Status.SUCCESS
                run.finished_at = timezone.now()
                run.save(update_fields=["status", "finished_at"])
                logger.info("Job finished success  run_id=%s  duration_ms=%s", run.pk, run.duration_ms)
