# ops/management/commands/purge_jobs.py

from __future__ import annotations
from datetime import timedelta

from django.conf import settings
from django.core.management.base import BaseCommand, CommandError
from ops.models import JobRun
from ops.services.jobrun import job_context
from ops.services.queue import purge

class Command(BaseCommand):
    help = "Balayage des jobs abandonnés (clôture + nettoyage des items) et purge optionnelle des vieux JobRun."

    def add_arguments(self, parser):
        parser.add_argument(
            "--stale-hours",
            type=float,
            default=None,
            help="Inactivité (heures) au-delà de laquelle un job ouvert est considéré abandonné",
        )
        parser.add_argument("--keep-days", type=int, default=None, help="Supprimer les JobRun clos depuis plus de N jours")

    def handle(self, *args, **opts):
        cfg = getattr(settings, "REFERENCE_ACTIONS", {})
        stale_hours = opts["stale_hours"] if opts["stale_hours"] is not None else cfg.get("JOB_TTL_HOURS", 24)
        if stale_hours <= 0:
            raise CommandError("--stale-hours doit être > 0")
        keep = timedelta(days=opts["keep_days"]) if opts["keep_days"] else None

        with job_context("purge_jobs", params={"stale_hours": stale_hours, "keep_days": opts["keep_days"]}) as jc:
            if jc.run.status == JobRun.Status.SKIPPED:
                self.stdout.write(self.style.WARNING("Purge déjà en cours, ignoré."))
                return
            metrics = purge(timedelta(hours=stale_hours), keep_logs_for=keep)
            jc.update_metrics(**metrics)

            msg = f"abandoned={metrics['abandoned']} orphan_items={metrics['orphan_items']} deleted_logs={metrics['deleted_logs']}"
            self.stdout.write(self.style.SUCCESS(msg))
