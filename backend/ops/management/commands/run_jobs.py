# ops/management/commands/run_jobs.py

from __future__ import annotations
import logging
import time

from django.core.management.base import BaseCommand

from ops.services.queue import JobRunnerFailure, pending_runs, process

logger = logging.getLogger("ops.run_jobs")

class Command(BaseCommand):
    help = (
        "Worker : traite les items des jobs en attente. "
        "Lancer plusieurs processus pour un pool de workers (items réservés en SKIP LOCKED)."
    )

    def add_arguments(self, parser):
        parser.add_argument("--job", default=None, help="Limiter à un job_name")
        parser.add_argument("--chunk", type=int, default=20, help="Items réservés par passage")
        parser.add_argument("--sleep", type=float, default=2.0, help="Pause (s) quand la file est vide")
        parser.add_argument("--once", action="store_true", help="Un seul passage puis sortie")

    def handle(self, *args, **opts):
        chunk = max(1, opts["chunk"])
        processed_total = 0
        failures = 0

        while True:
            processed = 0
            for run in pending_runs(opts["job"]):
                try:
                    processed += process(run, limit=chunk, triggered_by="worker")
                except JobRunnerFailure as e:
                    failures += 1
                    logger.error("%s", e)
                    self.stderr.write(self.style.ERROR(str(e)))
            processed_total += processed

            if opts["once"]:
                break
            if not processed:
                time.sleep(opts["sleep"])

        msg = f"processed={processed_total} failures={failures}"
        self.stdout.write(self.style.SUCCESS(msg) if not failures else self.style.WARNING(msg))
