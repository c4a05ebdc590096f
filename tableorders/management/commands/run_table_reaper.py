# -*- coding: utf-8 -*-
"""
CHANGE LOG
- 2026-02-10: Initial `run_table_reaper` command.
  Runs the stale table lock reaper in the foreground (worker process) or once
  with --once (cron / manual recovery).
"""

from __future__ import annotations

from django.core.management.base import BaseCommand, CommandParser

from tableorders.services.reaper import StaleLockReaper, stale_pending_window, sweep


class Command(BaseCommand):
    help = "Release tables held by stale, failed, expired, cancelled or completed orders."

    def add_arguments(self, parser: CommandParser) -> None:
        parser.add_argument(
            "--once",
            action="store_true",
            help="Run a single sweep and exit.",
        )
        parser.add_argument(
            "--interval",
            type=float,
            default=None,
            help="Seconds between sweeps (default: TABLEORDERS_REAPER_INTERVAL_SECONDS).",
        )

    def handle(self, *args, **opts) -> None:
        window = stale_pending_window()
        if opts.get("once"):
            released = sweep()
            self.stdout.write(
                self.style.SUCCESS(f"Released {released} table(s) (pending window {window}).")
            )
            return

        reaper = StaleLockReaper(interval=opts.get("interval"))
        self.stdout.write(
            self.style.NOTICE(f"[reaper] interval={reaper.interval:.0f}s pending_window={window}  (Ctrl-C to stop)")
        )
        reaper.run_forever()
        self.stdout.write(self.style.NOTICE("[reaper] stopped"))
